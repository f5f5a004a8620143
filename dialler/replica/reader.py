"""Source-of-truth reader over the operational replica.

The eligibility predicate for each queue type lives here once and is shared by
lead scoring (list queries) and dequeue revalidation (single-user lookups).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from dialler.core.enums import (
    BASE_REQUIREMENT_REASON,
    CLAIM_STATUS_COMPLETE,
    EXCLUDED_REQUIREMENT_TYPES,
    ID_DOCUMENT_REQUIREMENT_TYPE,
    REQUIREMENT_STATUS_PENDING,
    QueueType,
)
from dialler.core.exceptions import SourceOfTruthUnavailableError
from dialler.replica.models import Claim, ClaimRequirement, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str | None = None


@dataclass
class CandidateDetails:
    """Queue-type specific facts used to enrich snapshot rows."""

    claim_id: int | None = None
    requirement_types: list[str] = field(default_factory=list)
    total_requirements: int = 0
    pending_requirements: int = 0
    completed_requirements: int = 0
    oldest_requirement_date: datetime | None = None


def _open_claim() -> ColumnElement[bool]:
    return Claim.status != CLAIM_STATUS_COMPLETE


def _counted_requirement() -> ColumnElement[bool]:
    """Requirement types that justify a call once pending."""
    return and_(
        ClaimRequirement.type.notin_(EXCLUDED_REQUIREMENT_TYPES),
        or_(
            ClaimRequirement.type != ID_DOCUMENT_REQUIREMENT_TYPE,
            ClaimRequirement.claim_requirement_reason.is_(None),
            ClaimRequirement.claim_requirement_reason != BASE_REQUIREMENT_REASON,
        ),
    )


def _has_open_claim() -> ColumnElement[bool]:
    return exists(select(Claim.id).where(Claim.user_id == User.id, _open_claim()))


def _has_pending_requirement() -> ColumnElement[bool]:
    return exists(
        select(ClaimRequirement.id)
        .join(Claim, Claim.id == ClaimRequirement.claim_id)
        .where(
            Claim.user_id == User.id,
            _open_claim(),
            ClaimRequirement.status == REQUIREMENT_STATUS_PENDING,
            _counted_requirement(),
        )
    )


def eligibility_clause(queue_type: QueueType | str) -> ColumnElement[bool]:
    """WHERE clause on `User` selecting users who belong in `queue_type`."""
    queue_type = QueueType(queue_type)
    if queue_type is QueueType.UNSIGNED_USERS:
        return and_(
            User.is_enabled.is_(True),
            User.current_signature_file_id.is_(None),
            _has_open_claim(),
        )
    return and_(
        User.is_enabled.is_(True),
        User.current_signature_file_id.is_not(None),
        _has_pending_requirement(),
    )


class SourceOfTruthReader:
    """Read-only query surface used by scoring, generation and revalidation."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def list_eligible_user_ids(
        self, queue_type: QueueType | str, after_id: int | None = None, limit: int = 50
    ) -> list[int]:
        """One page of eligible user ids above `after_id`, ordered by id so paging is stable."""
        stmt = select(User.id).where(eligibility_clause(queue_type))
        if after_id is not None:
            stmt = stmt.where(User.id > after_id)
        stmt = stmt.order_by(User.id.asc()).limit(limit)
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise SourceOfTruthUnavailableError(f"Failed to list eligible users for {QueueType(queue_type).value}.") from exc

    def is_eligible(self, queue_type: QueueType | str, user_id: int) -> EligibilityResult:
        """Evaluate the queue predicate fresh for one user."""
        queue_type = QueueType(queue_type)
        try:
            with self._session_factory() as session:
                user = session.get(User, user_id)
                if user is None:
                    return EligibilityResult(False, "User not found")
                if not user.is_enabled:
                    return EligibilityResult(False, "User disabled")
                matched = session.scalar(
                    select(User.id).where(User.id == user_id, eligibility_clause(queue_type))
                )
                has_signature = user.current_signature_file_id is not None
        except SQLAlchemyError as exc:
            raise SourceOfTruthUnavailableError(f"Failed to revalidate user {user_id}.") from exc

        if matched is not None:
            return EligibilityResult(True)
        if queue_type is QueueType.UNSIGNED_USERS:
            if has_signature:
                return EligibilityResult(False, "No longer missing signature")
            return EligibilityResult(False, "No open claims")
        if not has_signature:
            return EligibilityResult(False, "Missing signature")
        return EligibilityResult(False, "No longer has pending requirements")

    def describe_candidates(
        self, queue_type: QueueType | str, user_ids: Iterable[int]
    ) -> dict[int, CandidateDetails]:
        """Claim and requirement summary per user, for snapshot enrichment."""
        queue_type = QueueType(queue_type)
        ids = list(user_ids)
        if not ids:
            return {}
        try:
            with self._session_factory() as session:
                if queue_type is QueueType.UNSIGNED_USERS:
                    return self._describe_unsigned(session, ids)
                return self._describe_outstanding(session, ids)
        except SQLAlchemyError as exc:
            raise SourceOfTruthUnavailableError("Failed to describe queue candidates.") from exc

    def _describe_unsigned(self, session: Session, user_ids: list[int]) -> dict[int, CandidateDetails]:
        rows = session.execute(
            select(Claim.user_id, Claim.id)
            .where(Claim.user_id.in_(user_ids), _open_claim())
            .order_by(Claim.user_id, Claim.id)
        )
        details: dict[int, CandidateDetails] = {}
        for user_id, claim_id in rows:
            details.setdefault(user_id, CandidateDetails(claim_id=claim_id))
        return details

    def _describe_outstanding(self, session: Session, user_ids: list[int]) -> dict[int, CandidateDetails]:
        rows = session.execute(
            select(
                Claim.user_id,
                Claim.id,
                ClaimRequirement.type,
                ClaimRequirement.status,
                ClaimRequirement.created_at,
            )
            .join(ClaimRequirement, ClaimRequirement.claim_id == Claim.id)
            .where(Claim.user_id.in_(user_ids), _open_claim(), _counted_requirement())
            .order_by(Claim.user_id, ClaimRequirement.created_at, ClaimRequirement.id)
        )
        details: dict[int, CandidateDetails] = {}
        for user_id, claim_id, requirement_type, status, created_at in rows:
            entry = details.setdefault(user_id, CandidateDetails())
            entry.total_requirements += 1
            if status != REQUIREMENT_STATUS_PENDING:
                entry.completed_requirements += 1
                continue
            entry.pending_requirements += 1
            if requirement_type not in entry.requirement_types:
                entry.requirement_types.append(requirement_type)
            if entry.claim_id is None:
                # Rows are ordered by age, so the first pending one is the oldest.
                entry.claim_id = claim_id
                entry.oldest_requirement_date = created_at
        return details
