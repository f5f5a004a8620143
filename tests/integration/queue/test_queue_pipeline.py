from __future__ import annotations

from datetime import timedelta

import pytest

import dialler.database.db as db_module
import dialler.replica.db as replica_db
from dialler.core import dependencies
from dialler.core.config import get_config
from dialler.core.enums import MigrationPhase, QueueType
from dialler.models import UserCallScore
from dialler.services.aging_service import AgingService
from dialler.services.lead_scoring_service import LeadScoringService
from dialler.services.queue_generation_service import UnsignedUsersQueueGenerationService
from dialler.services.queue_router import QueueRouter
from dialler.services.queue_service import OutstandingRequestsQueueService, UnsignedUsersQueueService


def test_discovered_leads_flow_from_replica_to_agent(db_session, session_factory, reader, replica, clock, now, settings):
    for user_id in (1, 2, 3):
        replica.unsigned_user(user_id)
    replica.outstanding_user(4)

    scoring = LeadScoringService(db=db_session, reader=reader, settings=settings, clock=clock).run_lead_scoring()
    assert scoring.total_new_leads == 4

    # Two days of aging, then a second discovery pass must not reset the scores.
    for days in (1, 2):
        day = now + timedelta(days=days)
        AgingService(db=db_session, settings=settings, clock=lambda day=day: day).run_daily_aging()
    LeadScoringService(db=db_session, reader=reader, settings=settings, clock=clock).run_lead_scoring()
    db_session.expire_all()
    assert {record.current_score for record in db_session.query(UserCallScore)} == {2}

    later = now + timedelta(days=2, hours=3)
    UnsignedUsersQueueGenerationService(
        db=db_session,
        reader=reader,
        settings=settings,
        clock=lambda: later,
        migration_phase=MigrationPhase.NEW_ONLY,
    ).populate_queue()

    replica.sign(1)
    router = QueueRouter(
        service_factories={
            QueueType.UNSIGNED_USERS: lambda: UnsignedUsersQueueService(
                db=session_factory(), reader=reader, settings=settings, clock=lambda: later
            ),
            QueueType.OUTSTANDING_REQUESTS: lambda: OutstandingRequestsQueueService(
                db=session_factory(), reader=reader, settings=settings, clock=lambda: later
            ),
        },
        migration_phase=MigrationPhase.NEW_ONLY,
    )

    first = router.get_next_user_for_call(agent_id=11)
    second = router.get_next_user_for_call(agent_id=12)
    third = router.get_next_user_for_call(agent_id=13)

    assert [first.user_id, second.user_id] == [2, 3]
    # The outstanding snapshot was never generated, so nothing is left.
    assert third is None
    db_session.expire_all()
    signed = db_session.query(UserCallScore).filter(UserCallScore.user_id == 1).one()
    assert signed.is_active is False


@pytest.fixture
def wired_databases(tmp_path, session_factory, replica_session_factory, monkeypatch):
    """Point the module-level engines at the per-test sqlite files."""
    monkeypatch.setenv("QUEUE_MIGRATION_PHASE", "new_only")
    monkeypatch.delenv("QUEUE_EMERGENCY_ROLLBACK", raising=False)
    get_config.cache_clear()
    previous_score_url = db_module.get_active_database_url()
    previous_replica_url = replica_db.REPLICA_DATABASE_URL
    db_module.reset_engine(f"sqlite:///{tmp_path / 'score_store.db'}")
    replica_db.reset_replica_engine(f"sqlite:///{tmp_path / 'replica.db'}")
    yield
    db_module.get_engine().dispose()
    replica_db.get_replica_engine().dispose()
    db_module.reset_engine(previous_score_url)
    replica_db.reset_replica_engine(previous_replica_url)
    get_config.cache_clear()


def test_wired_services_use_configured_databases(wired_databases, replica):
    replica.unsigned_user(21)
    replica.outstanding_user(22)

    with dependencies.get_lead_scoring_service() as service:
        assert service.run_lead_scoring().total_new_leads == 2

    assert dependencies.populate_queue(QueueType.UNSIGNED_USERS).queue_populated == 1
    assert dependencies.populate_queue("outstanding_requests").queue_populated == 1

    report = dependencies.get_queue_level_monitor().check_and_regenerate_queues()
    assert report.queues["unsigned_users"].current_level == 1

    response = dependencies.get_queue_router().get_next_user_for_call(agent_id=3)
    assert response is not None
    assert response.user_id == 21
