"""Dequeue with revalidation: hands an agent the next still-valid user of one queue type."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import ClassVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dialler.core.config import QueueSettings
from dialler.core.enums import CALLBACK_PRIORITY_SCORE, CallbackStatus, QueueEntryStatus, QueueType
from dialler.core.exceptions import QueueServiceError
from dialler.models.callback import Callback
from dialler.models.queue import OutstandingRequestsQueue, QueueEntryMixin, UnsignedUsersQueue
from dialler.models.score import UserCallScore
from dialler.queue.state_machine import CALLBACK_STATE_MACHINE, ENTRY_STATE_MACHINE
from dialler.queue.stats import QueueStats, collect_queue_stats
from dialler.replica.db import get_source_of_truth_reader
from dialler.replica.reader import SourceOfTruthReader
from dialler.schemas.queue import NextUserForCallResponse
from dialler.services.base_service import BaseService

logger = logging.getLogger(__name__)


@dataclass
class DequeuedEntry:
    """A snapshot row, or a due callback presented as one."""

    queue_type: str
    queue_entry_id: int
    user_id: int
    claim_id: int | None
    priority_score: int
    queue_position: int
    status: str
    queue_reason: str | None
    assigned_to_agent: int | None = None
    assigned_at: datetime | None = None
    is_callback: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class QueueService(BaseService):
    """Per-queue-type dequeue loop.

    Every attempt checks for a due callback first, then the lowest pending
    snapshot row. Snapshot rows are revalidated against the replica; stale
    users are deactivated and the loop moves on, up to `dequeue_max_attempts`.
    """

    queue_type: ClassVar[QueueType]
    entry_model: ClassVar[type[QueueEntryMixin]]

    def __init__(
        self,
        db: Session | None = None,
        reader: SourceOfTruthReader | None = None,
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(db=db, settings=settings, clock=clock)
        self.reader = reader or get_source_of_truth_reader()
        self._sleep = sleep

    def get_next_valid_user(self, agent_id: int | None = None) -> DequeuedEntry | None:
        max_attempts = self.settings.dequeue_max_attempts
        try:
            for attempt in range(1, max_attempts + 1):
                callback = self._next_due_callback()
                if callback is not None:
                    if agent_id is None:
                        return self._callback_entry(callback)
                    if self._consume_callback(callback.id, agent_id):
                        return self._callback_entry(callback, agent_id=agent_id)
                    self._log_race("callback", callback.id, agent_id, attempt)
                    self._backoff()
                    continue

                entry = self._next_pending_entry()
                if entry is None:
                    return None

                verdict = self.reader.is_eligible(self.queue_type, entry.user_id)
                if verdict.eligible:
                    if agent_id is None:
                        return self._snapshot_entry(entry)
                    if self._assign(entry.id, agent_id):
                        return self._snapshot_entry(entry)
                    self._log_race("snapshot", entry.id, agent_id, attempt)
                    self._backoff()
                    continue

                logger.info(
                    "queue.dequeue.candidate_rejected",
                    extra={
                        "event": "queue.dequeue.candidate_rejected",
                        "queue_type": self.queue_type.value,
                        "user_id": entry.user_id,
                        "reason": verdict.reason,
                        "attempt": attempt,
                    },
                )
                self.mark_user_inactive(entry.user_id, verdict.reason or "No longer eligible")
                self._backoff()
        except SQLAlchemyError as exc:
            self.rollback()
            logger.exception(
                "queue.dequeue.failed",
                extra={"event": "queue.dequeue.failed", "queue_type": self.queue_type.value},
            )
            raise QueueServiceError(f"Dequeue failed for {self.queue_type.value}.", self.queue_type.value) from exc

        logger.warning(
            "queue.dequeue.retry_cap_reached",
            extra={
                "event": "queue.dequeue.retry_cap_reached",
                "queue_type": self.queue_type.value,
                "max_attempts": max_attempts,
            },
        )
        return None

    def get_next_user_for_call(self, agent_id: int | None = None) -> NextUserForCallResponse | None:
        entry = self.get_next_valid_user(agent_id=agent_id)
        if entry is None:
            return None
        return NextUserForCallResponse(
            user_id=entry.user_id,
            claim_id=entry.claim_id,
            queue_position=entry.queue_position,
            queue_entry_id=entry.queue_entry_id,
            queue_type=self.queue_type,
            is_callback=entry.is_callback,
        )

    def mark_user_inactive(self, user_id: int, reason: str) -> None:
        """Deactivate the score record, then retire the user's pending snapshot rows."""
        now = self.clock()
        try:
            self.db.execute(
                update(UserCallScore)
                .where(UserCallScore.user_id == user_id)
                .values(is_active=False, current_queue_type=None, last_outcome=reason, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.commit()
            self.db.execute(
                update(self.entry_model)
                .where(
                    self.entry_model.user_id == user_id,
                    self.entry_model.status.in_(ENTRY_STATE_MACHINE.sources_for(QueueEntryStatus.INACTIVE.value)),
                )
                .values(status=QueueEntryStatus.INACTIVE.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise QueueServiceError(f"Failed to deactivate user {user_id}.", self.queue_type.value, user_id) from exc
        logger.info(
            "queue.user.deactivated",
            extra={
                "event": "queue.user.deactivated",
                "queue_type": self.queue_type.value,
                "user_id": user_id,
                "reason": reason,
            },
        )

    def mark_user_completed(self, entry_id: int) -> bool:
        return self._finish(entry_id, QueueEntryStatus.COMPLETED)

    def mark_user_skipped(self, entry_id: int) -> bool:
        return self._finish(entry_id, QueueEntryStatus.SKIPPED)

    def get_queue_stats(self) -> QueueStats:
        return collect_queue_stats(self.db, self.entry_model)

    def _next_due_callback(self) -> Callback | None:
        return self.db.scalars(
            select(Callback)
            .where(Callback.status == CallbackStatus.PENDING.value, Callback.scheduled_for <= self.clock())
            .order_by(Callback.scheduled_for.asc(), Callback.id.asc())
            .limit(1)
        ).first()

    def _consume_callback(self, callback_id: int, agent_id: int) -> bool:
        now = self.clock()
        target = CallbackStatus.CONSUMED.value
        result = self.db.execute(
            update(Callback)
            .where(Callback.id == callback_id, Callback.status.in_(CALLBACK_STATE_MACHINE.sources_for(target)))
            .values(status=target, consumed_by_agent=agent_id, consumed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.commit()
        return result.rowcount == 1

    def _next_pending_entry(self) -> QueueEntryMixin | None:
        model = self.entry_model
        return self.db.scalars(
            select(model)
            .where(model.status == QueueEntryStatus.PENDING.value, model.assigned_to_agent.is_(None))
            .order_by(model.queue_position.asc(), model.id.asc())
            .limit(1)
        ).first()

    def _assign(self, entry_id: int, agent_id: int) -> bool:
        """Conditional assignment; zero rows means another agent won the row."""
        model = self.entry_model
        now = self.clock()
        target = QueueEntryStatus.ASSIGNED.value
        result = self.db.execute(
            update(model)
            .where(
                model.id == entry_id,
                model.status.in_(ENTRY_STATE_MACHINE.sources_for(target)),
                model.assigned_to_agent.is_(None),
            )
            .values(status=target, assigned_to_agent=agent_id, assigned_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.commit()
        return result.rowcount == 1

    def _finish(self, entry_id: int, target: QueueEntryStatus) -> bool:
        model = self.entry_model
        values: dict = {"status": target.value, "updated_at": self.clock()}
        if target is QueueEntryStatus.SKIPPED:
            values.update(assigned_to_agent=None, assigned_at=None)
        try:
            result = self.db.execute(
                update(model)
                .where(model.id == entry_id, model.status.in_(ENTRY_STATE_MACHINE.sources_for(target.value)))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise QueueServiceError(f"Failed to mark entry {entry_id} {target.value}.", self.queue_type.value) from exc
        updated = result.rowcount == 1
        logger.info(
            f"queue.entry.{target.value}",
            extra={
                "event": f"queue.entry.{target.value}",
                "queue_type": self.queue_type.value,
                "queue_entry_id": entry_id,
                "updated": updated,
            },
        )
        return updated

    def _callback_entry(self, callback: Callback, agent_id: int | None = None) -> DequeuedEntry:
        return DequeuedEntry(
            queue_type=self.queue_type.value,
            queue_entry_id=callback.id,
            user_id=callback.user_id,
            claim_id=None,
            priority_score=CALLBACK_PRIORITY_SCORE,
            queue_position=0,
            status=CallbackStatus.CONSUMED.value if agent_id is not None else CallbackStatus.PENDING.value,
            queue_reason=f"Callback: {callback.callback_reason or 'Scheduled callback'}",
            assigned_to_agent=agent_id if agent_id is not None else callback.preferred_agent_id,
            assigned_at=self.clock() if agent_id is not None else None,
            is_callback=True,
        )

    def _snapshot_entry(self, entry: QueueEntryMixin) -> DequeuedEntry:
        # Attributes reload after commit, so an assigned row reports its new state.
        return DequeuedEntry(
            queue_type=self.queue_type.value,
            queue_entry_id=entry.id,
            user_id=entry.user_id,
            claim_id=entry.claim_id,
            priority_score=entry.priority_score,
            queue_position=entry.queue_position,
            status=entry.status,
            queue_reason=entry.queue_reason,
            assigned_to_agent=entry.assigned_to_agent,
            assigned_at=entry.assigned_at,
        )

    def _backoff(self) -> None:
        if self.settings.dequeue_retry_backoff_seconds > 0:
            self._sleep(self.settings.dequeue_retry_backoff_seconds)

    def _log_race(self, source: str, row_id: int, agent_id: int, attempt: int) -> None:
        logger.info(
            "queue.dequeue.assignment_race_lost",
            extra={
                "event": "queue.dequeue.assignment_race_lost",
                "queue_type": self.queue_type.value,
                "source": source,
                "row_id": row_id,
                "agent_id": agent_id,
                "attempt": attempt,
            },
        )


class UnsignedUsersQueueService(QueueService):
    queue_type = QueueType.UNSIGNED_USERS
    entry_model = UnsignedUsersQueue


class OutstandingRequestsQueueService(QueueService):
    queue_type = QueueType.OUTSTANDING_REQUESTS
    entry_model = OutstandingRequestsQueue
