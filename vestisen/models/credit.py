"""
积分购买交易模型
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import String, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class TransactionStatus(str, Enum):
    """交易状态"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class CreditPaymentMethod(str, Enum):
    """积分购买支付方式"""
    STRIPE = "STRIPE"
    WAVE = "WAVE"
    ORANGE_MONEY = "ORANGE_MONEY"
    CARD = "CARD"


class CreditTransaction(Base):
    """积分购买记录表 (每次购买尝试一条)"""
    __tablename__ = "credit_transactions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code: Mapped[str] = mapped_column(String(18), unique=True, index=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    amount_fcfa: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    credits_added: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    payment_method: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=TransactionStatus.PENDING.value)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # 外部支付网关引用 (如 Stripe PaymentIntent id)
    payment_provider_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<CreditTransaction {self.code}: {self.status}>"
