"""
发布支付模型 (按单条发布直接付费)
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import String, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class PaymentMethod(str, Enum):
    STRIPE = "STRIPE"
    ORANGE_MONEY = "ORANGE_MONEY"
    WAVE = "WAVE"
    PAIEMENT_LIVRAISON = "PAIEMENT_LIVRAISON"  # 货到付款


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(Base):
    """发布支付表，与 annonce 一对一"""
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    annonce_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("annonces.id", ondelete="CASCADE"), unique=True, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    payment_method: Mapped[str] = mapped_column(String(30))
    status: Mapped[str] = mapped_column(String(20), default=PaymentStatus.PENDING.value)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_provider_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Payment {self.id}: {self.status}>"
