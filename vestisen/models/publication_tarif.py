"""
发布档位模型
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Boolean, DateTime, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class PublicationTarif(Base):
    """
    发布档位表

    type_name 为档位名称 (Standard / Premium / Top Pub ...)，annonce.publication_type 引用此名称。
    duration_days 为 0 或空表示不限时。
    """
    __tablename__ = "publication_tarifs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    type_name: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))  # 积分价格
    duration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=0)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )

    @property
    def is_unlimited(self) -> bool:
        return not self.duration_days or self.duration_days <= 0
