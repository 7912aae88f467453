"""
发布支付路由（按单条发布直接付费）
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestisen.database import get_db
from vestisen.models.user import User
from vestisen.schemas.payment import PaymentCreate, PaymentResponse
from vestisen.services.payment_service import PaymentService
from vestisen.utils.security import get_current_user

router = APIRouter()


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """为自己的发布创建支付，每个发布仅一笔"""
    return await PaymentService(db).create(current_user, data.annonce_id, data.payment_method)


@router.post("/{payment_id}/confirm", response_model=PaymentResponse)
async def confirm_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """确认支付，随后发布进入上架流程"""
    return await PaymentService(db).confirm(payment_id, owner=current_user)


@router.get("/my", response_model=List[PaymentResponse])
async def my_payments(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService(db).list_for_user(current_user.id)
