"""Daily score aging: every unfrozen score moves one step down the queue."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from dialler.core.exceptions import DatabaseError
from dialler.models.score import UserCallScore
from dialler.services.base_service import BaseService

logger = logging.getLogger(__name__)


@dataclass
class AgingReport:
    users_aged: int
    conversions_detected: int
    skipped_sunday: bool
    duration_ms: int

    def to_dict(self) -> dict:
        return asdict(self)


class AgingService(BaseService):
    """Increments `current_score` by one per day, skipping the configured rest day."""

    def is_rest_day(self) -> bool:
        return self.clock().weekday() == self.settings.aging_rest_weekday

    def run_daily_aging(self) -> AgingReport:
        started = time.perf_counter()
        if self.is_rest_day():
            logger.info("queue.aging.skipped_rest_day", extra={"event": "queue.aging.skipped_rest_day"})
            return AgingReport(users_aged=0, conversions_detected=0, skipped_sunday=True, duration_ms=0)

        ceiling = self.settings.aging_score_ceiling
        now = self.clock()
        # Inactive records age too.
        unfrozen = UserCallScore.current_score < ceiling
        try:
            # Reaching the ceiling is reported only; it has no effect on eligibility.
            conversions = self.db.scalar(
                select(func.count())
                .select_from(UserCallScore)
                .where(unfrozen, UserCallScore.current_score == ceiling - 1)
            ) or 0
            result = self.db.execute(
                update(UserCallScore)
                .where(unfrozen)
                .values(current_score=UserCallScore.current_score + 1, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            logger.exception("queue.aging.failed", extra={"event": "queue.aging.failed"})
            raise DatabaseError("Daily aging failed.") from exc

        report = AgingReport(
            users_aged=result.rowcount or 0,
            conversions_detected=conversions,
            skipped_sunday=False,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        logger.info("queue.aging.completed", extra={"event": "queue.aging.completed", **report.to_dict()})
        return report
