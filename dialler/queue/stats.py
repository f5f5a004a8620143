"""Depth statistics for a snapshot table."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dialler.core.enums import QueueEntryStatus
from dialler.models.queue import QueueEntryMixin


@dataclass
class QueueStats:
    queue_type: str
    total: int = 0
    pending: int = 0
    assigned: int = 0
    completed: int = 0
    skipped: int = 0
    inactive: int = 0
    oldest_entry: datetime | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def collect_queue_stats(db: Session, model: type[QueueEntryMixin]) -> QueueStats:
    """Count rows per status; `oldest_entry` is the oldest pending row."""
    stats = QueueStats(queue_type=model.queue_type)
    rows = db.execute(select(model.status, func.count()).group_by(model.status))
    for status, count in rows:
        stats.total += count
        try:
            setattr(stats, QueueEntryStatus(status).value, count)
        except ValueError:
            continue
    stats.oldest_entry = db.scalar(
        select(func.min(model.created_at)).where(model.status == QueueEntryStatus.PENDING.value)
    )
    return stats
