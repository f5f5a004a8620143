from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dialler.core.enums import BASE_REQUIREMENT_REASON, QueueType
from dialler.core.exceptions import SourceOfTruthUnavailableError
from dialler.replica.reader import SourceOfTruthReader


def test_unsigned_predicate_requires_enabled_user_without_signature_and_open_claim(replica, reader):
    replica.unsigned_user(1)
    replica.user(2, signed=True)
    replica.claim(2)
    replica.user(3, enabled=False)
    replica.claim(3)
    replica.user(4)
    replica.claim(4, status="complete")
    replica.user(5)

    assert reader.list_eligible_user_ids(QueueType.UNSIGNED_USERS) == [1]


def test_outstanding_predicate_ignores_structural_requirement_types(replica, reader):
    replica.outstanding_user(10)
    replica.outstanding_user(11, requirement_type="signature")
    replica.outstanding_user(12, requirement_type="letter_of_authority")
    replica.user(13, signed=True)
    claim_id = replica.claim(13)
    replica.requirement(claim_id, requirement_type="id_document", reason=BASE_REQUIREMENT_REASON)
    replica.user(14, signed=True)
    claim_id = replica.claim(14)
    replica.requirement(claim_id, requirement_type="id_document", reason="Expired passport")
    replica.user(15, signed=True)
    claim_id = replica.claim(15)
    replica.requirement(claim_id, status="COMPLETE")

    assert reader.list_eligible_user_ids(QueueType.OUTSTANDING_REQUESTS) == [10, 14]


def test_queue_types_are_mutually_exclusive(replica, reader):
    claim_id = replica.unsigned_user(20)
    replica.requirement(claim_id)

    assert reader.list_eligible_user_ids(QueueType.UNSIGNED_USERS) == [20]
    assert reader.list_eligible_user_ids(QueueType.OUTSTANDING_REQUESTS) == []


def test_list_eligible_user_ids_pages_in_id_order(replica, reader):
    for user_id in (7, 3, 5, 1):
        replica.unsigned_user(user_id)

    assert reader.list_eligible_user_ids("unsigned_users", limit=2) == [1, 3]
    assert reader.list_eligible_user_ids("unsigned_users", after_id=3, limit=2) == [5, 7]
    assert reader.list_eligible_user_ids("unsigned_users", after_id=7, limit=2) == []


def test_is_eligible_explains_why_a_user_dropped_out(replica, reader):
    replica.unsigned_user(30)
    assert reader.is_eligible(QueueType.UNSIGNED_USERS, 30).eligible is True

    replica.sign(30)
    result = reader.is_eligible(QueueType.UNSIGNED_USERS, 30)
    assert result.eligible is False
    assert result.reason == "No longer missing signature"

    assert reader.is_eligible(QueueType.OUTSTANDING_REQUESTS, 30).reason == "No longer has pending requirements"
    assert reader.is_eligible(QueueType.UNSIGNED_USERS, 999).reason == "User not found"


def test_is_eligible_reports_disabled_user(replica, reader):
    replica.user(31, enabled=False)
    replica.claim(31)

    result = reader.is_eligible(QueueType.UNSIGNED_USERS, 31)
    assert result.eligible is False
    assert result.reason == "User disabled"


def test_describe_candidates_summarizes_pending_requirements(replica, reader, now):
    replica.user(40, signed=True)
    first_claim = replica.claim(40)
    second_claim = replica.claim(40)
    replica.requirement(second_claim, requirement_type="payslip", created_at=now - timedelta(days=9))
    replica.requirement(first_claim, requirement_type="bank_statement", created_at=now - timedelta(days=2))
    replica.requirement(first_claim, requirement_type="payslip", status="COMPLETE")
    replica.requirement(first_claim, requirement_type="signature")

    details = reader.describe_candidates(QueueType.OUTSTANDING_REQUESTS, [40])[40]

    assert details.claim_id == second_claim
    assert details.requirement_types == ["payslip", "bank_statement"]
    assert details.total_requirements == 3
    assert details.pending_requirements == 2
    assert details.completed_requirements == 1
    assert details.oldest_requirement_date == now - timedelta(days=9)


def test_describe_candidates_for_unsigned_picks_first_open_claim(replica, reader):
    replica.user(50)
    replica.claim(50, status="complete")
    open_claim = replica.claim(50)

    assert reader.describe_candidates(QueueType.UNSIGNED_USERS, [50])[50].claim_id == open_claim
    assert reader.describe_candidates(QueueType.UNSIGNED_USERS, []) == {}


def test_reader_wraps_database_failures(tmp_path):
    # No tables were created, so every query fails.
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    reader = SourceOfTruthReader(sessionmaker(bind=engine))

    with pytest.raises(SourceOfTruthUnavailableError):
        reader.list_eligible_user_ids(QueueType.UNSIGNED_USERS)
    with pytest.raises(SourceOfTruthUnavailableError):
        reader.is_eligible(QueueType.UNSIGNED_USERS, 1)
