"""User call score model module."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dialler.models.base import Base, TimestampMixin


class UserCallScore(Base, TimestampMixin):
    """One row per user. Lower score is called sooner; 200 means frozen.

    `current_queue_type` caches the replica-derived classification and can be
    recomputed from the replica at any time. Rows are never deleted.
    """

    __tablename__ = "user_call_scores"
    __table_args__ = (
        Index("idx_user_call_scores_queue_active", "current_queue_type", "is_active"),
        Index("idx_user_call_scores_score_created", "current_score", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    current_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_queue_type: Mapped[str | None] = mapped_column(String(40))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    next_call_after: Mapped[datetime | None] = mapped_column(DateTime)
    last_outcome: Mapped[str | None] = mapped_column(Text)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<UserCallScore(user_id={self.user_id}, score={self.current_score}, "
            f"queue={self.current_queue_type}, active={self.is_active})>"
        )
