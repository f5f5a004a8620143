"""Timer-triggered entry points for the queue core."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from dialler.core import dependencies
from dialler.core.enums import QueueType
from dialler.services.queue_level_monitor import QueueLevelMonitorService
from dialler.tasks.celery_app import celery_app
from dialler.tasks.hooks import after_task, before_task

logger = logging.getLogger(__name__)

# Lives for the worker process so the monitor's throttle survives between checks.
_monitor: QueueLevelMonitorService | None = None


def get_monitor() -> QueueLevelMonitorService:
    global _monitor
    if _monitor is None:
        _monitor = dependencies.get_queue_level_monitor()
    return _monitor


def _execute(task_key: str, run_id: str | None, job: Callable[[], dict[str, Any]], **context: Any) -> dict[str, Any]:
    """Run a job with start/finish logging; failures are logged and re-raised for the worker."""
    context.update(run_id=run_id or f"run-{uuid.uuid4().hex}", trace_id=uuid.uuid4().hex)
    logger.info("task.start", extra=before_task(task_key=task_key, context=context))
    try:
        result = job()
    except Exception:
        logger.exception("task.failed", extra=after_task(task_key=task_key, context=context, status="failed"))
        raise
    logger.info("task.finish", extra=after_task(task_key=task_key, context=context, status="succeeded"))
    return result


def _aging_job() -> dict[str, Any]:
    with dependencies.get_aging_service() as service:
        return service.run_daily_aging().to_dict()


def _lead_scoring_job() -> dict[str, Any]:
    with dependencies.get_lead_scoring_service() as service:
        return service.run_lead_scoring().to_dict()


@celery_app.task(bind=True, name="queue.run_daily_aging")
def run_daily_aging(self) -> dict[str, Any]:
    return _execute("queue.run_daily_aging", self.request.id, _aging_job)


@celery_app.task(bind=True, name="queue.run_lead_scoring")
def run_lead_scoring(self) -> dict[str, Any]:
    return _execute("queue.run_lead_scoring", self.request.id, _lead_scoring_job)


@celery_app.task(bind=True, name="queue.populate_queue")
def populate_queue(self, queue_type: str) -> dict[str, Any]:
    resolved = QueueType(queue_type)
    return _execute(
        "queue.populate_queue",
        self.request.id,
        lambda: dependencies.populate_queue(resolved).to_dict(),
        queue_type=resolved.value,
    )


@celery_app.task(bind=True, name="queue.check_queue_levels")
def check_queue_levels(self) -> dict[str, Any]:
    return _execute(
        "queue.check_queue_levels",
        self.request.id,
        lambda: get_monitor().check_and_regenerate_queues().to_dict(),
    )
