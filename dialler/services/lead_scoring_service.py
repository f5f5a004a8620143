"""Lead scoring: discovers eligible users on the replica and seeds their score records."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dialler.core.config import QueueSettings
from dialler.core.enums import QueueType
from dialler.core.exceptions import SourceOfTruthUnavailableError
from dialler.models.cursor import LeadScoringCursor
from dialler.models.score import UserCallScore
from dialler.replica.db import get_source_of_truth_reader
from dialler.replica.reader import SourceOfTruthReader
from dialler.services.base_service import BaseService

logger = logging.getLogger(__name__)


@dataclass
class QueueScoringResult:
    queue_type: str
    eligible: int = 0
    new_leads: int = 0
    existing_leads: int = 0
    errors: int = 0
    batches: int = 0


@dataclass
class LeadScoringReport:
    total_eligible: int
    total_new_leads: int
    total_existing_leads: int
    errors: int
    batches_processed: int
    timeout_hit: bool
    duration_ms: int
    summary: str
    results: list[QueueScoringResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class LeadScoringService(BaseService):
    """Pages eligible users per queue type and creates missing score records.

    New users start at score 0. Existing records keep their score; only
    `updated_at` is touched so rediscovery never resets priority. The run stops
    at the wall-clock budget, split evenly between queue types, and a stored
    cursor per queue type lets the next tick resume where this one stopped.
    """

    def __init__(
        self,
        db: Session | None = None,
        reader: SourceOfTruthReader | None = None,
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(db=db, settings=settings, clock=clock)
        self.reader = reader or get_source_of_truth_reader()
        self._timer = timer

    def run_lead_scoring(self) -> LeadScoringReport:
        started = self._timer()
        deadline = started + self.settings.lead_scoring_max_seconds
        queue_types = list(QueueType)
        results: list[QueueScoringResult] = []
        timeout_hit = False

        for index, queue_type in enumerate(queue_types):
            # Each queue type gets an equal share of whatever budget is left.
            now = self._timer()
            share_deadline = now + max(deadline - now, 0.0) / (len(queue_types) - index)
            result, queue_timed_out = self._score_queue_type(queue_type, share_deadline)
            results.append(result)
            timeout_hit = timeout_hit or queue_timed_out

        total_eligible = sum(r.eligible for r in results)
        total_new = sum(r.new_leads for r in results)
        total_existing = sum(r.existing_leads for r in results)
        report = LeadScoringReport(
            total_eligible=total_eligible,
            total_new_leads=total_new,
            total_existing_leads=total_existing,
            errors=sum(r.errors for r in results),
            batches_processed=sum(r.batches for r in results),
            timeout_hit=timeout_hit,
            duration_ms=int((self._timer() - started) * 1000),
            summary=(
                f"Lead scoring complete: {total_eligible} leads ({total_new} new, {total_existing} existing)"
                + (" - stopped at time budget" if timeout_hit else "")
            ),
            results=results,
        )
        logger.info(
            "queue.lead_scoring.completed",
            extra={
                "event": "queue.lead_scoring.completed",
                "total_eligible": report.total_eligible,
                "total_new_leads": report.total_new_leads,
                "total_existing_leads": report.total_existing_leads,
                "errors": report.errors,
                "batches_processed": report.batches_processed,
                "timeout_hit": report.timeout_hit,
            },
        )
        return report

    def _score_queue_type(self, queue_type: QueueType, deadline: float) -> tuple[QueueScoringResult, bool]:
        """Page the replica from the stored cursor until the end of the list or the deadline."""
        result = QueueScoringResult(queue_type=queue_type.value)
        batch_size = self.settings.lead_scoring_batch_size
        after_id = self._load_cursor(queue_type)

        while True:
            if self._timer() >= deadline:
                logger.warning(
                    "queue.lead_scoring.time_budget_exhausted",
                    extra={
                        "event": "queue.lead_scoring.time_budget_exhausted",
                        "queue_type": queue_type.value,
                        "after_id": after_id,
                    },
                )
                return result, True

            try:
                user_ids = self.reader.list_eligible_user_ids(queue_type, after_id=after_id, limit=batch_size)
            except SourceOfTruthUnavailableError:
                # Paging cannot continue without the replica; the next tick resumes from the cursor.
                result.errors += 1
                logger.exception(
                    "queue.lead_scoring.reader_failed",
                    extra={"event": "queue.lead_scoring.reader_failed", "queue_type": queue_type.value, "after_id": after_id},
                )
                return result, False

            if user_ids:
                result.eligible += len(user_ids)
                result.batches += 1
                try:
                    new_leads, existing_leads = self._apply_batch(queue_type, user_ids)
                except SQLAlchemyError:
                    self.rollback()
                    result.errors += 1
                    logger.exception(
                        "queue.lead_scoring.batch_failed",
                        extra={
                            "event": "queue.lead_scoring.batch_failed",
                            "queue_type": queue_type.value,
                            "batch_size": len(user_ids),
                        },
                    )
                else:
                    result.new_leads += new_leads
                    result.existing_leads += existing_leads
                after_id = user_ids[-1]

            if len(user_ids) < batch_size:
                # End of the eligible list: the next run starts a fresh pass.
                self._restart_pass(queue_type, result)
                return result, False

    def _apply_batch(self, queue_type: QueueType, user_ids: list[int]) -> tuple[int, int]:
        now = self.clock()
        existing_ids = set(self.db.scalars(select(UserCallScore.user_id).where(UserCallScore.user_id.in_(user_ids))))
        new_ids = [user_id for user_id in user_ids if user_id not in existing_ids]

        if existing_ids:
            self.db.execute(
                update(UserCallScore)
                .where(UserCallScore.user_id.in_(sorted(existing_ids)))
                .values(updated_at=now)
                .execution_options(synchronize_session=False)
            )
        self.db.add_all(
            UserCallScore(
                user_id=user_id,
                current_score=0,
                current_queue_type=queue_type.value,
                is_active=True,
                total_attempts=0,
                created_at=now,
                updated_at=now,
            )
            for user_id in new_ids
        )
        self._store_cursor(queue_type, user_ids[-1])
        self.commit()
        return len(new_ids), len(existing_ids)

    def _load_cursor(self, queue_type: QueueType) -> int | None:
        cursor = self.db.get(LeadScoringCursor, queue_type.value)
        return cursor.last_user_id if cursor is not None else None

    def _store_cursor(self, queue_type: QueueType, last_user_id: int | None) -> None:
        now = self.clock()
        cursor = self.db.get(LeadScoringCursor, queue_type.value)
        if cursor is None:
            self.db.add(
                LeadScoringCursor(queue_type=queue_type.value, last_user_id=last_user_id, created_at=now, updated_at=now)
            )
        else:
            cursor.last_user_id = last_user_id
            cursor.updated_at = now

    def _restart_pass(self, queue_type: QueueType, result: QueueScoringResult) -> None:
        try:
            self._store_cursor(queue_type, None)
            self.commit()
        except SQLAlchemyError:
            self.rollback()
            result.errors += 1
            logger.exception(
                "queue.lead_scoring.cursor_reset_failed",
                extra={"event": "queue.lead_scoring.cursor_reset_failed", "queue_type": queue_type.value},
            )
