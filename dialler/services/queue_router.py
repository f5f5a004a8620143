"""Queue router: picks which per-type dequeue service serves an agent."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from dialler.core.config import get_config
from dialler.core.enums import MigrationPhase, QueueType
from dialler.schemas.queue import NextUserForCallResponse, QueueStatsResponse
from dialler.services.queue_service import QueueService

logger = logging.getLogger(__name__)


class QueueRouter:
    """Fans out over the dequeue services in fixed order: unsigned, then outstanding.

    Services are built per call by `service_factories` so each request gets its
    own session.
    """

    def __init__(
        self,
        service_factories: Mapping[QueueType, Callable[[], QueueService]],
        migration_phase: MigrationPhase | None = None,
    ) -> None:
        self._service_factories = dict(service_factories)
        self.migration_phase = migration_phase or get_config().MIGRATION_PHASE

    def get_next_user_for_call(
        self, agent_id: int | None = None, queue_type: QueueType | str | None = None
    ) -> NextUserForCallResponse | None:
        if not self.migration_phase.reads_separated_queues:
            logger.warning(
                "queue.router.phase_not_serving",
                extra={"event": "queue.router.phase_not_serving", "migration_phase": self.migration_phase.value},
            )
            return None

        order = [QueueType(queue_type)] if queue_type is not None else list(QueueType)
        for candidate_type in order:
            with self._service_factories[candidate_type]() as service:
                response = service.get_next_user_for_call(agent_id=agent_id)
            if response is not None:
                logger.info(
                    "queue.router.user_served",
                    extra={
                        "event": "queue.router.user_served",
                        "queue_type": candidate_type.value,
                        "agent_id": agent_id,
                        "user_id": response.user_id,
                        "is_callback": response.is_callback,
                    },
                )
                return response

        logger.info(
            "queue.router.no_users_available",
            extra={"event": "queue.router.no_users_available", "agent_id": agent_id},
        )
        return None

    def mark_completed(self, queue_type: QueueType | str, entry_id: int, *, is_callback: bool = False) -> bool:
        if is_callback:
            return self._reject_callback_entry("completed", entry_id)
        with self._service_factories[QueueType(queue_type)]() as service:
            return service.mark_user_completed(entry_id)

    def mark_skipped(self, queue_type: QueueType | str, entry_id: int, *, is_callback: bool = False) -> bool:
        if is_callback:
            return self._reject_callback_entry("skipped", entry_id)
        with self._service_factories[QueueType(queue_type)]() as service:
            return service.mark_user_skipped(entry_id)

    def get_all_queue_stats(self) -> dict[str, QueueStatsResponse]:
        stats: dict[str, QueueStatsResponse] = {}
        for queue_type in QueueType:
            with self._service_factories[queue_type]() as service:
                stats[queue_type.value] = QueueStatsResponse.model_validate(service.get_queue_stats().to_dict())
        return stats

    def _reject_callback_entry(self, outcome: str, entry_id: int) -> bool:
        # Callback ids live in the callbacks table, not in a snapshot table.
        logger.warning(
            "queue.router.callback_outcome_rejected",
            extra={"event": "queue.router.callback_outcome_rejected", "outcome": outcome, "callback_id": entry_id},
        )
        return False
