"""Dependency providers for background workers and the agent-facing call."""

from __future__ import annotations

from functools import partial

from sqlalchemy.orm import Session

import dialler.database.db as db_module
from dialler.core.config import Config, get_config
from dialler.core.enums import QueueType
from dialler.queue.stats import QueueStats
from dialler.replica.db import get_source_of_truth_reader
from dialler.replica.reader import SourceOfTruthReader
from dialler.services.aging_service import AgingService
from dialler.services.lead_scoring_service import LeadScoringService
from dialler.services.queue_generation_service import (
    OutstandingRequestsQueueGenerationService,
    QueueGenerationResult,
    QueueGenerationService,
    UnsignedUsersQueueGenerationService,
)
from dialler.services.queue_level_monitor import QueueLevelMonitorService
from dialler.services.queue_router import QueueRouter
from dialler.services.queue_service import (
    OutstandingRequestsQueueService,
    QueueService,
    UnsignedUsersQueueService,
)

GENERATION_SERVICES: dict[QueueType, type[QueueGenerationService]] = {
    QueueType.UNSIGNED_USERS: UnsignedUsersQueueGenerationService,
    QueueType.OUTSTANDING_REQUESTS: OutstandingRequestsQueueGenerationService,
}

QUEUE_SERVICES: dict[QueueType, type[QueueService]] = {
    QueueType.UNSIGNED_USERS: UnsignedUsersQueueService,
    QueueType.OUTSTANDING_REQUESTS: OutstandingRequestsQueueService,
}


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Session:
    return db_module.get_session_factory()()


def get_reader() -> SourceOfTruthReader:
    return get_source_of_truth_reader()


def get_aging_service() -> AgingService:
    return AgingService(db=get_db_session(), settings=get_settings().QUEUE)


def get_lead_scoring_service() -> LeadScoringService:
    return LeadScoringService(db=get_db_session(), reader=get_reader(), settings=get_settings().QUEUE)


def get_generation_service(queue_type: QueueType | str) -> QueueGenerationService:
    settings = get_settings()
    service_cls = GENERATION_SERVICES[QueueType(queue_type)]
    return service_cls(
        db=get_db_session(),
        reader=get_reader(),
        settings=settings.QUEUE,
        migration_phase=settings.MIGRATION_PHASE,
    )


def get_queue_service(queue_type: QueueType | str) -> QueueService:
    service_cls = QUEUE_SERVICES[QueueType(queue_type)]
    return service_cls(db=get_db_session(), reader=get_reader(), settings=get_settings().QUEUE)


def populate_queue(queue_type: QueueType | str) -> QueueGenerationResult:
    """Regenerate one snapshot table with a fresh session."""
    with get_generation_service(queue_type) as service:
        return service.populate_queue()


def read_queue_stats(queue_type: QueueType | str) -> QueueStats:
    with get_queue_service(queue_type) as service:
        return service.get_queue_stats()


def get_queue_level_monitor() -> QueueLevelMonitorService:
    return QueueLevelMonitorService(
        stats_providers={queue_type: partial(read_queue_stats, queue_type) for queue_type in QueueType},
        regenerators={queue_type: partial(populate_queue, queue_type) for queue_type in QueueType},
        settings=get_settings().QUEUE,
    )


def get_queue_router() -> QueueRouter:
    return QueueRouter(
        service_factories={queue_type: partial(get_queue_service, queue_type) for queue_type in QueueType},
        migration_phase=get_settings().MIGRATION_PHASE,
    )
