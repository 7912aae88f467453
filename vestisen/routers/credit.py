"""
积分路由
"""
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from vestisen.config import get_settings
from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.credit import (
    CreditBalance,
    CreditConfigResponse,
    CreditConfirmResponse,
    CreditPurchaseRequest,
    CreditTransactionResponse,
)
from vestisen.services import payment_gateway
from vestisen.services.credit_service import CreditService
from vestisen.services.errors import ConflictError
from vestisen.services.payment_service import PaymentService
from vestisen.utils.security import get_current_user, get_seller_user

router = APIRouter()
settings = get_settings()
logger = logging.getLogger(__name__)


@router.get("/config", response_model=CreditConfigResponse)
async def get_config(db: AsyncSession = Depends(get_db)):
    """获取积分价格（FCFA/积分）"""
    return await CreditService(db).get_config()


@router.get("/balance", response_model=CreditBalance)
async def get_balance(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """获取积分余额"""
    return CreditBalance(balance=await CreditService(db).get_balance(current_user.id))


@router.post("/purchase", response_model=CreditTransactionResponse, status_code=status.HTTP_201_CREATED)
async def purchase_credits(
    data: CreditPurchaseRequest,
    current_user: User = Depends(get_seller_user),
    db: AsyncSession = Depends(get_db),
):
    """购买积分（仅卖家/管理员），返回待确认的交易"""
    return await CreditService(db).purchase(current_user, data.credits, data.payment_method.value)


@router.get("/transactions", response_model=List[CreditTransactionResponse])
async def list_transactions(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """最近 100 条购买记录"""
    return await CreditService(db).list_transactions(current_user.id)


@router.post("/confirm/{transaction_id}", response_model=CreditConfirmResponse)
async def confirm_purchase(
    transaction_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """确认购买并入账（仅交易所有者，重复确认返回 409）"""
    balance = await CreditService(db).confirm(transaction_id, owner=current_user)
    return CreditConfirmResponse(transaction_id=transaction_id, status="COMPLETED", balance=balance)


@router.post("/webhook/stripe")
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Stripe webhook：PaymentIntent 成功后确认对应的积分购买或发布支付"""
    if not settings.stripe_webhook_secret:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Stripe webhook not configured")

    payload = await request.body()
    try:
        event = payment_gateway.construct_webhook_event(payload, request.headers.get("stripe-signature"))
    except (ValueError, stripe.SignatureVerificationError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid webhook: {exc}")

    if event["type"] != "payment_intent.succeeded":
        return {"received": True}

    provider_id = event["data"]["object"]["id"]
    credit_service = CreditService(db)
    payment_service = PaymentService(db)
    try:
        tx = await credit_service.find_by_provider_id(provider_id)
        if tx is not None:
            await credit_service.confirm(tx.id)
            return {"received": True, "transaction_id": tx.id}

        payment = await payment_service.find_by_provider_id(provider_id)
        if payment is not None:
            await payment_service.confirm(payment.id)
            return {"received": True, "payment_id": payment.id}
    except ConflictError:
        # Stripe 会重发事件，已确认的直接返回
        return {"received": True, "duplicate": True}

    logger.warning("Stripe webhook for unknown PaymentIntent %s", provider_id)
    return {"received": True}
