"""Enums for the dialler queue core."""

from __future__ import annotations

import enum


class QueueType(str, enum.Enum):
    """Why a user needs a call. Order of declaration is the routing order."""

    UNSIGNED_USERS = "unsigned_users"
    OUTSTANDING_REQUESTS = "outstanding_requests"


class QueueEntryStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    INACTIVE = "inactive"


class CallbackStatus(str, enum.Enum):
    PENDING = "pending"
    CONSUMED = "consumed"


class MigrationPhase(str, enum.Enum):
    """Rollout phase of the separated queue tables.

    Replaces the scattered environment flags of the legacy queue: the phase is
    resolved once by the config layer and handed to components.
    """

    PRE_MIGRATION = "pre_migration"
    DUAL_WRITE = "dual_write"
    DUAL_READ = "dual_read"
    NEW_ONLY = "new_only"
    CLEANUP = "cleanup"
    EMERGENCY_ROLLBACK = "emergency_rollback"

    @property
    def writes_separated_queues(self) -> bool:
        return self not in {MigrationPhase.PRE_MIGRATION, MigrationPhase.EMERGENCY_ROLLBACK}

    @property
    def reads_separated_queues(self) -> bool:
        return self in {MigrationPhase.DUAL_READ, MigrationPhase.NEW_ONLY, MigrationPhase.CLEANUP}


# Replica values
CLAIM_STATUS_COMPLETE = "complete"
REQUIREMENT_STATUS_PENDING = "PENDING"

# Requirement types that never justify an outstanding-requests call.
EXCLUDED_REQUIREMENT_TYPES = (
    "signature",
    "vehicle_registration",
    "cfa",
    "solicitor_letter_of_authority",
    "letter_of_authority",
)
ID_DOCUMENT_REQUIREMENT_TYPE = "id_document"
BASE_REQUIREMENT_REASON = "base requirement for claim."

# Callbacks outrank every snapshot entry.
CALLBACK_PRIORITY_SCORE = -1000
