"""
积分配置与交易管理路由
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.credit import TransactionStatus
from vestisen.models.user import User
from vestisen.schemas.admin import AdminCreditTransactionList
from vestisen.schemas.credit import (
    CreditConfigResponse,
    CreditConfigUpdate,
    CreditConfirmResponse,
    CreditTransactionResponse,
)
from vestisen.services.credit_service import CreditService
from vestisen.utils.security import get_admin_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/credit-config", response_model=CreditConfigResponse)
async def get_credit_config(
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    return await CreditService(db).get_config()


@router.put("/credit-config", response_model=CreditConfigResponse)
async def update_credit_config(
    data: CreditConfigUpdate,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """修改积分单价（FCFA，必须大于 0）"""
    config = await CreditService(db).update_config(data.price_per_credit_fcfa)
    logger.info("Admin %s set price per credit to %s", admin.email, config.price_per_credit_fcfa)
    return config


@router.get("/credit-transactions", response_model=AdminCreditTransactionList)
async def list_credit_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[TransactionStatus] = Query(None),
    user_id: Optional[str] = Query(None),
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    transactions, total = await CreditService(db).list_all(
        page=page,
        page_size=page_size,
        status=status.value if status else None,
        user_id=user_id,
    )
    return AdminCreditTransactionList(
        transactions=[CreditTransactionResponse.model_validate(t) for t in transactions],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/credit-transactions/{transaction_id}/confirm", response_model=CreditConfirmResponse)
async def confirm_credit_transaction(
    transaction_id: str,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """管理员手动确认任意交易（线下支付到账）"""
    balance = await CreditService(db).confirm(transaction_id)
    logger.info("Admin %s confirmed credit transaction %s", admin.email, transaction_id)
    return CreditConfirmResponse(transaction_id=transaction_id, status="COMPLETED", balance=balance)
