"""
积分相关 Schemas
"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from vestisen.models.credit import CreditPaymentMethod


class CreditConfigResponse(BaseModel):
    price_per_credit_fcfa: Decimal

    class Config:
        from_attributes = True


class CreditConfigUpdate(BaseModel):
    price_per_credit_fcfa: Decimal = Field(gt=0)


class CreditBalance(BaseModel):
    """积分余额"""
    balance: Decimal


class CreditPurchaseRequest(BaseModel):
    credits: Decimal = Field(gt=0)
    payment_method: CreditPaymentMethod


class CreditTransactionResponse(BaseModel):
    """积分购买记录响应"""
    id: str
    code: str
    user_id: str
    amount_fcfa: Decimal
    credits_added: Decimal
    payment_method: str
    status: str
    transaction_id: Optional[str] = None
    payment_provider_id: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CreditConfirmResponse(BaseModel):
    transaction_id: str
    status: str
    balance: Decimal
