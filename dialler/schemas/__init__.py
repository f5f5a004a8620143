"""Pydantic schema package for agent-facing queue contracts."""

from dialler.schemas.queue import NextUserForCallResponse, QueueStatsResponse

__all__ = [
    "NextUserForCallResponse",
    "QueueStatsResponse",
]
