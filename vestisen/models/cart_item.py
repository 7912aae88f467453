"""
收藏/购物车模型
"""
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class CartItem(Base):
    """购物车表，(user, annonce) 唯一，无数量概念"""
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("user_id", "annonce_id", name="uq_cart_user_annonce"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    annonce_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("annonces.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)

    annonce = relationship("Annonce", lazy="selectin")
