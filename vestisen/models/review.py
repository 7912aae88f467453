"""
评价模型
"""
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from vestisen.database import Base
from vestisen.utils.timezone import utc_now_naive


class Review(Base):
    """买家对卖家的评价表，每个 (annonce, reviewer) 仅一条"""
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("annonce_id", "reviewer_id", name="uq_review_annonce_reviewer"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    annonce_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("annonces.id", ondelete="CASCADE"), index=True
    )
    reviewer_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    reviewee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)

    reviewer = relationship("User", foreign_keys=[reviewer_id], lazy="selectin")
    annonce = relationship("Annonce", lazy="selectin")
