"""Lead scoring progress per queue type."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from dialler.models.base import Base, TimestampMixin


class LeadScoringCursor(Base, TimestampMixin):
    """Last replica user id scored for a queue type; NULL restarts from the beginning."""

    __tablename__ = "lead_scoring_cursors"

    queue_type: Mapped[str] = mapped_column(String(40), primary_key=True)
    last_user_id: Mapped[int | None] = mapped_column(BigInteger)

    def __repr__(self) -> str:
        return f"<LeadScoringCursor(queue_type={self.queue_type}, last_user_id={self.last_user_id})>"
