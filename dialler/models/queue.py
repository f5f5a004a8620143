"""Snapshot queue table models, one table per queue type."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from dialler.core.enums import QueueEntryStatus, QueueType
from dialler.models.base import Base, TimestampMixin


class QueueEntryMixin(TimestampMixin):
    """Columns shared by every snapshot table.

    Rows are bulk-replaced each generation cycle, so there is no foreign key to
    `user_call_scores`; linkage is by `user_id`.
    """

    queue_type: str

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    claim_id: Mapped[int | None] = mapped_column(BigInteger)
    priority_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    queue_position: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=QueueEntryStatus.PENDING.value, nullable=False)
    queue_reason: Mapped[str | None] = mapped_column(Text)
    assigned_to_agent: Mapped[int | None] = mapped_column(Integer)
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime)
    available_from: Mapped[datetime | None] = mapped_column(DateTime)

    @declared_attr.directive
    def __table_args__(cls):
        return (Index(f"idx_{cls.__tablename__}_status_position", "status", "queue_position"),)


class UnsignedUsersQueue(QueueEntryMixin, Base):
    __tablename__ = "unsigned_users_queue"
    queue_type = QueueType.UNSIGNED_USERS.value

    signature_missing_since: Mapped[datetime | None] = mapped_column(DateTime)
    signature_type: Mapped[str | None] = mapped_column(String(20), default="initial")


class OutstandingRequestsQueue(QueueEntryMixin, Base):
    __tablename__ = "outstanding_requests_queue"
    queue_type = QueueType.OUTSTANDING_REQUESTS.value

    requirement_types: Mapped[list | None] = mapped_column(JSON)
    total_requirements: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    pending_requirements: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_requirements: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    oldest_requirement_date: Mapped[datetime | None] = mapped_column(DateTime)
