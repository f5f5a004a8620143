"""Structured logging helpers for batch jobs and the dequeue path."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    queue_type: str | None = None
    agent_id: str | None = None
    run_id: str | None = None
    job_name: str | None = None
    trace_id: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "queue_type": context.queue_type,
        "agent_id": context.agent_id,
        "run_id": context.run_id,
        "job_name": context.job_name,
        "trace_id": context.trace_id,
    }
    payload.update(fields)
    return payload
