"""
商品发布 (annonce) 模型
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Integer, Numeric, Float, Text, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class AnnonceStatus(str, Enum):
    """发布状态"""
    PENDING = "PENDING"      # 待审核
    APPROVED = "APPROVED"    # 已上架
    REJECTED = "REJECTED"    # 已拒绝
    SOLD = "SOLD"            # 已售出
    EXPIRED = "EXPIRED"      # 保留状态，过期通过降级档位实现


class AnnonceCondition(str, Enum):
    """商品成色"""
    NEUF = "NEUF"
    OCCASION = "OCCASION"
    TRES_BON_ETAT = "TRES_BON_ETAT"
    BON_ETAT = "BON_ETAT"


class Annonce(Base):
    """商品发布表"""
    __tablename__ = "annonces"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code: Mapped[str] = mapped_column(String(18), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("categories.id"), index=True
    )
    # 引用 publication_tarifs.type_name
    publication_type: Mapped[str] = mapped_column(String(50), default="Standard", index=True)
    publication_credit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    condition: Mapped[str] = mapped_column(String(20), default=AnnonceCondition.OCCASION.value)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    images: Mapped[list[str]] = mapped_column(JSON, default=list)
    seller_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    buyer_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default=AnnonceStatus.PENDING.value, index=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    contact_count: Mapped[int] = mapped_column(Integer, default=0)
    tout_doit_partir: Mapped[bool] = mapped_column(Boolean, default=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    is_lot: Mapped[bool] = mapped_column(Boolean, default=False)
    accept_payment_on_delivery: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    # 关系
    category = relationship("Category", lazy="selectin")
    seller = relationship("User", foreign_keys=[seller_id], lazy="selectin")
    buyer = relationship("User", foreign_keys=[buyer_id], lazy="selectin")

    def __repr__(self):
        return f"<Annonce {self.code}: {self.status}>"
