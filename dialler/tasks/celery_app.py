"""Celery application bootstrap and beat schedule."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from dialler.core.config import get_config
from dialler.core.enums import QueueType
from dialler.core.startup import bootstrap

config = get_config()

celery_app = Celery(
    "dialler",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["dialler.tasks.queue_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    beat_schedule={
        "queue-daily-aging": {
            "task": "queue.run_daily_aging",
            "schedule": crontab(hour=0, minute=5),
        },
        "queue-lead-scoring": {
            "task": "queue.run_lead_scoring",
            "schedule": crontab(minute="*/15"),
        },
        **{
            f"queue-populate-{queue_type.value}": {
                "task": "queue.populate_queue",
                "schedule": crontab(minute=0),
                "args": (queue_type.value,),
            }
            for queue_type in QueueType
        },
        "queue-level-monitor": {
            "task": "queue.check_queue_levels",
            "schedule": crontab(minute="*/5"),
        },
    },
)

# Local/dev convenience: run tasks synchronously when requested.
if os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() in {"1", "true", "yes", "on"}:
    celery_app.conf.task_always_eager = True


@worker_process_init.connect
def _bootstrap_worker(**_kwargs) -> None:
    bootstrap()
