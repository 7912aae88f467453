"""
发布支付 Schemas
"""
from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional

from vestisen.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    """创建发布支付请求"""
    annonce_id: str
    payment_method: PaymentMethod


class PaymentResponse(BaseModel):
    """支付响应"""
    id: str
    annonce_id: str
    user_id: str
    amount: Decimal
    payment_method: str
    status: str
    transaction_id: Optional[str] = None
    payment_provider_id: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True
