"""Queue level monitor: regenerates a snapshot out of cycle when it runs low."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from dialler.core.config import QueueSettings, get_config
from dialler.core.enums import QueueType
from dialler.models.base import utcnow
from dialler.queue.stats import QueueStats
from dialler.services.queue_generation_service import QueueGenerationResult

logger = logging.getLogger(__name__)


@dataclass
class QueueLevelStatus:
    queue_type: str
    current_level: int
    threshold: int
    needs_regeneration: bool
    last_regeneration: datetime | None
    can_regenerate: bool


@dataclass
class QueueLevelReport:
    timestamp: datetime
    queues: dict[str, QueueLevelStatus]
    regeneration_triggered: bool = False
    reason: str | None = None
    regeneration_details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


class QueueLevelMonitorService:
    """Compares pending depth to the low-water-mark per queue type.

    Last-regeneration timestamps live in memory only; losing them on restart
    costs at most one extra regeneration per queue type.
    """

    def __init__(
        self,
        stats_providers: Mapping[QueueType, Callable[[], QueueStats]],
        regenerators: Mapping[QueueType, Callable[[], QueueGenerationResult]],
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stats_providers = dict(stats_providers)
        self._regenerators = dict(regenerators)
        self.settings = settings or get_config().QUEUE
        self.clock = clock or utcnow
        self._last_regenerations: dict[QueueType, datetime] = {}

    def check_and_regenerate_queues(self) -> QueueLevelReport:
        now = self.clock()
        report = QueueLevelReport(timestamp=now, queues={})
        reasons: list[str] = []

        for queue_type in QueueType:
            try:
                stats = self._stats_providers[queue_type]()
            except Exception as exc:
                logger.exception(
                    "queue.monitor.level_read_failed",
                    extra={"event": "queue.monitor.level_read_failed", "queue_type": queue_type.value},
                )
                report.regeneration_details[queue_type.value] = {"error": str(exc)}
                continue

            status = self._analyze(queue_type, stats.pending, now)
            report.queues[queue_type.value] = status
            if not (self.settings.auto_regeneration and status.needs_regeneration and status.can_regenerate):
                continue

            logger.info(
                "queue.monitor.regeneration_triggered",
                extra={
                    "event": "queue.monitor.regeneration_triggered",
                    "queue_type": queue_type.value,
                    "current_level": status.current_level,
                    "threshold": status.threshold,
                },
            )
            try:
                result = self._regenerators[queue_type]()
            except Exception as exc:
                # One queue type failing must not block the other.
                logger.exception(
                    "queue.monitor.regeneration_failed",
                    extra={"event": "queue.monitor.regeneration_failed", "queue_type": queue_type.value},
                )
                report.regeneration_details[queue_type.value] = {"error": str(exc)}
                continue

            self._last_regenerations[queue_type] = now
            report.regeneration_details[queue_type.value] = result.to_dict()
            report.regeneration_triggered = True
            reasons.append(f"{queue_type.value} queue low ({status.current_level} < {status.threshold})")

        if reasons:
            report.reason = ", ".join(reasons)
        logger.info(
            "queue.monitor.checked",
            extra={
                "event": "queue.monitor.checked",
                "levels": {key: status.current_level for key, status in report.queues.items()},
                "regeneration_triggered": report.regeneration_triggered,
                "reason": report.reason,
            },
        )
        return report

    def get_configuration(self) -> dict[str, Any]:
        return {
            "low_threshold": self.settings.low_water_mark,
            "min_regeneration_minutes": self.settings.min_regeneration_minutes,
            "auto_regeneration": self.settings.auto_regeneration,
        }

    def update_configuration(self, **changes: Any) -> dict[str, Any]:
        """Replace monitor settings in place, e.g. `auto_regeneration=False`."""
        self.settings = replace(self.settings, **changes)
        logger.info(
            "queue.monitor.configuration_updated",
            extra={"event": "queue.monitor.configuration_updated", **self.get_configuration()},
        )
        return self.get_configuration()

    def health_check(self) -> dict[str, Any]:
        return {
            "healthy": self.settings.auto_regeneration,
            "config": self.get_configuration(),
            "last_regenerations": {
                queue_type.value: moment.isoformat() for queue_type, moment in self._last_regenerations.items()
            },
        }

    def _analyze(self, queue_type: QueueType, current_level: int, now: datetime) -> QueueLevelStatus:
        last = self._last_regenerations.get(queue_type)
        interval = timedelta(minutes=self.settings.min_regeneration_minutes)
        return QueueLevelStatus(
            queue_type=queue_type.value,
            current_level=current_level,
            threshold=self.settings.low_water_mark,
            needs_regeneration=current_level < self.settings.low_water_mark,
            last_regeneration=last,
            can_regenerate=last is None or now - last >= interval,
        )
