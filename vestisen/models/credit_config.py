"""
积分配置模型 (单行表)
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive

CREDIT_CONFIG_ID = 1


class CreditConfig(Base):
    """积分价格配置，仅有 id=1 一行"""
    __tablename__ = "credit_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=CREDIT_CONFIG_ID)
    price_per_credit_fcfa: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive
    )
