"""Queue schema module."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dialler.core.enums import QueueType


class NextUserForCallResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    claim_id: int | None = None
    queue_position: int = Field(ge=0)
    queue_entry_id: int
    queue_type: QueueType
    is_callback: bool = False


class QueueStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    queue_type: QueueType
    total: int = 0
    pending: int = 0
    assigned: int = 0
    completed: int = 0
    skipped: int = 0
    inactive: int = 0
    oldest_entry: datetime | None = None
