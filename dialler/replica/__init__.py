"""Read-only access to the operational replica."""

from dialler.replica.models import Claim, ClaimRequirement, ReplicaBase, User
from dialler.replica.reader import CandidateDetails, EligibilityResult, SourceOfTruthReader, eligibility_clause

__all__ = [
    "CandidateDetails",
    "Claim",
    "ClaimRequirement",
    "EligibilityResult",
    "ReplicaBase",
    "SourceOfTruthReader",
    "User",
    "eligibility_clause",
]
