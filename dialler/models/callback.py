"""Scheduled callback model module."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dialler.core.enums import CallbackStatus
from dialler.models.base import Base, TimestampMixin


class Callback(Base, TimestampMixin):
    """Agent-requested callback. Created by the agent application, consumed by dequeue."""

    __tablename__ = "callbacks"
    __table_args__ = (Index("idx_callbacks_status_scheduled", "status", "scheduled_for"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    scheduled_for: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    callback_reason: Mapped[str | None] = mapped_column(Text)
    preferred_agent_id: Mapped[int | None] = mapped_column(Integer)
    original_call_session_id: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(20), default=CallbackStatus.PENDING.value, nullable=False)
    consumed_by_agent: Mapped[int | None] = mapped_column(Integer)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime)
