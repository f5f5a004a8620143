"""Typed queue candidates handed from generation to the snapshot tables."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from dialler.core.enums import QueueType
from dialler.models.score import UserCallScore
from dialler.replica.reader import CandidateDetails


@dataclass(frozen=True)
class ScoredCandidate(ABC):
    """Fields every queue type shares, copied from the score store."""

    queue_type: ClassVar[QueueType]

    user_id: int
    current_score: int
    created_at: datetime
    next_call_after: datetime | None = None
    claim_id: int | None = None

    @classmethod
    @abstractmethod
    def from_score(cls, record: UserCallScore, details: CandidateDetails | None = None) -> "ScoredCandidate":
        """Build the candidate from its score record and optional replica details."""

    def snapshot_fields(self) -> dict[str, Any]:
        """Queue-type specific snapshot columns."""
        return {}


@dataclass(frozen=True)
class UnsignedCandidate(ScoredCandidate):
    queue_type: ClassVar[QueueType] = QueueType.UNSIGNED_USERS

    signature_missing_since: datetime | None = None

    @classmethod
    def from_score(cls, record: UserCallScore, details: CandidateDetails | None = None) -> "UnsignedCandidate":
        return cls(
            user_id=record.user_id,
            current_score=record.current_score,
            created_at=record.created_at,
            next_call_after=record.next_call_after,
            claim_id=details.claim_id if details else None,
            # The replica has no signature request timestamp; first sighting is the closest proxy.
            signature_missing_since=record.created_at,
        )

    def snapshot_fields(self) -> dict[str, Any]:
        return {
            "signature_missing_since": self.signature_missing_since,
            "signature_type": "initial",
        }


@dataclass(frozen=True)
class OutstandingCandidate(ScoredCandidate):
    queue_type: ClassVar[QueueType] = QueueType.OUTSTANDING_REQUESTS

    requirement_types: tuple[str, ...] = field(default_factory=tuple)
    total_requirements: int = 0
    pending_requirements: int = 0
    oldest_requirement_date: datetime | None = None

    @classmethod
    def from_score(cls, record: UserCallScore, details: CandidateDetails | None = None) -> "OutstandingCandidate":
        if details is None or not details.requirement_types:
            return cls(
                user_id=record.user_id,
                current_score=record.current_score,
                created_at=record.created_at,
                next_call_after=record.next_call_after,
                claim_id=details.claim_id if details else None,
                requirement_types=("document",),
                total_requirements=1,
                pending_requirements=1,
                oldest_requirement_date=record.created_at,
            )
        return cls(
            user_id=record.user_id,
            current_score=record.current_score,
            created_at=record.created_at,
            next_call_after=record.next_call_after,
            claim_id=details.claim_id,
            requirement_types=tuple(details.requirement_types),
            total_requirements=details.total_requirements,
            pending_requirements=details.pending_requirements,
            oldest_requirement_date=details.oldest_requirement_date or record.created_at,
        )

    def snapshot_fields(self) -> dict[str, Any]:
        return {
            "requirement_types": list(self.requirement_types),
            "total_requirements": self.total_requirements,
            "pending_requirements": self.pending_requirements,
            "completed_requirements": max(self.total_requirements - self.pending_requirements, 0),
            "oldest_requirement_date": self.oldest_requirement_date,
        }
