"""Queue generation: materializes a bounded, ranked snapshot per queue type."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, ClassVar

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dialler.core.config import QueueSettings, get_config
from dialler.core.enums import MigrationPhase, QueueEntryStatus, QueueType
from dialler.core.exceptions import DatabaseError, SourceOfTruthUnavailableError
from dialler.models.queue import OutstandingRequestsQueue, QueueEntryMixin, UnsignedUsersQueue
from dialler.models.score import UserCallScore
from dialler.queue.candidates import OutstandingCandidate, ScoredCandidate, UnsignedCandidate
from dialler.queue.stats import QueueStats, collect_queue_stats
from dialler.replica.db import get_source_of_truth_reader
from dialler.replica.reader import CandidateDetails, SourceOfTruthReader
from dialler.services.base_service import BaseService

logger = logging.getLogger(__name__)

HIGH_PRIORITY_MAX_SCORE = 5
MEDIUM_PRIORITY_MAX_SCORE = 10
# Candidates read per window slot when the replica must confirm each one.
CONFIRMED_CANDIDATE_OVERFETCH = 2


@dataclass
class QueueGenerationResult:
    queue_type: str
    total_eligible: int = 0
    queue_populated: int = 0
    removed: int = 0
    errors: int = 0
    duration_ms: int = 0
    skipped_by_phase: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class QueueGenerationService(BaseService):
    """Full-replace generator for one snapshot table.

    Each run deletes every row of the table, then inserts the top window of
    eligible score records ranked by score, freshest first on ties.
    """

    queue_type: ClassVar[QueueType]
    entry_model: ClassVar[type[QueueEntryMixin]]
    candidate_type: ClassVar[type[ScoredCandidate]]
    new_lead_description: ClassVar[str]
    description: ClassVar[str]
    confirm_with_replica: ClassVar[bool] = False

    def __init__(
        self,
        db: Session | None = None,
        reader: SourceOfTruthReader | None = None,
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        migration_phase: MigrationPhase | None = None,
    ) -> None:
        super().__init__(db=db, settings=settings, clock=clock)
        self.reader = reader or get_source_of_truth_reader()
        self.migration_phase = migration_phase or get_config().MIGRATION_PHASE

    @property
    def window_size(self) -> int:
        return self.settings.window_for(self.queue_type)

    def queue_reason(self, score: int) -> str:
        if score == 0:
            return f"New lead - {self.new_lead_description}"
        if score <= HIGH_PRIORITY_MAX_SCORE:
            return f"High priority - {self.description}"
        if score <= MEDIUM_PRIORITY_MAX_SCORE:
            return f"Medium priority - {self.description}"
        return f"Aged lead - {self.description}"

    def populate_queue(self) -> QueueGenerationResult:
        started = time.perf_counter()
        result = QueueGenerationResult(queue_type=self.queue_type.value)
        if not self.migration_phase.writes_separated_queues:
            result.skipped_by_phase = True
            logger.info(
                "queue.generation.skipped_by_phase",
                extra={
                    "event": "queue.generation.skipped_by_phase",
                    "queue_type": self.queue_type.value,
                    "migration_phase": self.migration_phase.value,
                },
            )
            return result

        now = self.clock()
        try:
            result.removed = self._clear_snapshot()
            result.total_eligible = self._count_eligible(now)
            records = self._select_window(now)
        except SQLAlchemyError as exc:
            self.rollback()
            logger.exception(
                "queue.generation.failed",
                extra={"event": "queue.generation.failed", "queue_type": self.queue_type.value},
            )
            raise DatabaseError(f"Queue generation failed for {self.queue_type.value}.") from exc

        candidates = self._build_candidates(records)
        result.queue_populated, result.errors = self._insert_entries(candidates, now)
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "queue.generation.completed",
            extra={"event": "queue.generation.completed", **result.to_dict()},
        )
        return result

    def get_queue_stats(self) -> QueueStats:
        return collect_queue_stats(self.db, self.entry_model)

    def _clear_snapshot(self) -> int:
        removed = self.db.execute(delete(self.entry_model)).rowcount or 0
        self.commit()
        return removed

    def _eligibility_filters(self, now: datetime) -> tuple:
        cooled_before = now - timedelta(minutes=self.settings.cooling_period_minutes)
        return (
            UserCallScore.current_queue_type == self.queue_type.value,
            UserCallScore.is_active.is_(True),
            or_(UserCallScore.next_call_after.is_(None), UserCallScore.next_call_after <= now),
            # Score 0 leads skip the cooling period.
            or_(UserCallScore.current_score == 0, UserCallScore.created_at <= cooled_before),
        )

    def _count_eligible(self, now: datetime) -> int:
        return self.db.scalar(
            select(func.count()).select_from(UserCallScore).where(*self._eligibility_filters(now))
        ) or 0

    def _select_window(self, now: datetime) -> list[UserCallScore]:
        stmt = (
            select(UserCallScore)
            .where(*self._eligibility_filters(now))
            .order_by(
                UserCallScore.current_score.asc(),
                UserCallScore.created_at.desc(),
                UserCallScore.user_id.asc(),
            )
            .limit(self._fetch_limit())
        )
        return list(self.db.scalars(stmt))

    def _is_confirmed(self, details: CandidateDetails | None) -> bool:
        return details is not None

    def _fetch_limit(self) -> int:
        if self.confirm_with_replica:
            return self.window_size * CONFIRMED_CANDIDATE_OVERFETCH
        return self.window_size

    def _describe(self, user_ids: list[int]) -> dict[int, CandidateDetails] | None:
        try:
            return self.reader.describe_candidates(self.queue_type, user_ids)
        except SourceOfTruthUnavailableError:
            logger.warning(
                "queue.generation.enrichment_unavailable",
                extra={"event": "queue.generation.enrichment_unavailable", "queue_type": self.queue_type.value},
                exc_info=True,
            )
            return None

    def _build_candidates(self, records: list[UserCallScore]) -> list[ScoredCandidate]:
        details = self._describe([record.user_id for record in records])
        if details is None:
            # Replica down: keep the score store's ranking and default the details.
            return [self.candidate_type.from_score(record) for record in records[: self.window_size]]

        if self.confirm_with_replica:
            confirmed = [record for record in records if self._is_confirmed(details.get(record.user_id))]
            if len(confirmed) < len(records):
                logger.info(
                    "queue.generation.unconfirmed_dropped",
                    extra={
                        "event": "queue.generation.unconfirmed_dropped",
                        "queue_type": self.queue_type.value,
                        "dropped": len(records) - len(confirmed),
                    },
                )
            records = confirmed
        return [
            self.candidate_type.from_score(record, details.get(record.user_id))
            for record in records[: self.window_size]
        ]

    def _entry_row(self, candidate: ScoredCandidate, position: int, now: datetime) -> dict[str, Any]:
        return {
            "user_id": candidate.user_id,
            "claim_id": candidate.claim_id,
            "priority_score": candidate.current_score,
            "queue_position": position,
            "status": QueueEntryStatus.PENDING.value,
            "queue_reason": self.queue_reason(candidate.current_score),
            "available_from": candidate.next_call_after or now,
            "created_at": now,
            "updated_at": now,
            **candidate.snapshot_fields(),
        }

    def _insert_entries(self, candidates: list[ScoredCandidate], now: datetime) -> tuple[int, int]:
        rows = [self._entry_row(candidate, position, now) for position, candidate in enumerate(candidates, start=1)]
        if not rows:
            return 0, 0
        try:
            self.db.execute(insert(self.entry_model), rows)
            self.commit()
            return len(rows), 0
        except SQLAlchemyError:
            self.rollback()
            logger.warning(
                "queue.generation.bulk_insert_failed",
                extra={"event": "queue.generation.bulk_insert_failed", "queue_type": self.queue_type.value},
                exc_info=True,
            )

        inserted = errors = 0
        for row in rows:
            try:
                self.db.execute(insert(self.entry_model), [row])
                self.commit()
                inserted += 1
            except SQLAlchemyError:
                self.rollback()
                errors += 1
                logger.exception(
                    "queue.generation.row_failed",
                    extra={
                        "event": "queue.generation.row_failed",
                        "queue_type": self.queue_type.value,
                        "user_id": row["user_id"],
                    },
                )
        return inserted, errors


class UnsignedUsersQueueGenerationService(QueueGenerationService):
    queue_type = QueueType.UNSIGNED_USERS
    entry_model = UnsignedUsersQueue
    candidate_type = UnsignedCandidate
    new_lead_description = "Missing signature"
    description = "Missing signature"


class OutstandingRequestsQueueGenerationService(QueueGenerationService):
    queue_type = QueueType.OUTSTANDING_REQUESTS
    entry_model = OutstandingRequestsQueue
    candidate_type = OutstandingCandidate
    confirm_with_replica = True
    new_lead_description = "Pending document requirements"
    description = "Outstanding requirements"

    def _is_confirmed(self, details: CandidateDetails | None) -> bool:
        return details is not None and details.pending_requirements > 0
