"""SQLAlchemy models for the score store, snapshot tables and callbacks."""

from dialler.models.base import Base, utcnow
from dialler.models.callback import Callback
from dialler.models.cursor import LeadScoringCursor
from dialler.models.queue import (
    OutstandingRequestsQueue,
    QueueEntryMixin,
    UnsignedUsersQueue,
)
from dialler.models.score import UserCallScore

__all__ = [
    "Base",
    "Callback",
    "LeadScoringCursor",
    "OutstandingRequestsQueue",
    "QueueEntryMixin",
    "UnsignedUsersQueue",
    "UserCallScore",
    "utcnow",
]
