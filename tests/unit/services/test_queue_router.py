from __future__ import annotations

from datetime import timedelta

from dialler.core.enums import MigrationPhase, QueueType
from dialler.models import Callback
from dialler.services.queue_generation_service import (
    OutstandingRequestsQueueGenerationService,
    UnsignedUsersQueueGenerationService,
)
from dialler.services.queue_router import QueueRouter
from dialler.services.queue_service import OutstandingRequestsQueueService, UnsignedUsersQueueService


def _router(session_factory, reader, clock, settings, phase=MigrationPhase.NEW_ONLY) -> QueueRouter:
    return QueueRouter(
        service_factories={
            QueueType.UNSIGNED_USERS: lambda: UnsignedUsersQueueService(
                db=session_factory(), reader=reader, settings=settings, clock=clock
            ),
            QueueType.OUTSTANDING_REQUESTS: lambda: OutstandingRequestsQueueService(
                db=session_factory(), reader=reader, settings=settings, clock=clock
            ),
        },
        migration_phase=phase,
    )


def _generate(db_session, reader, clock, settings) -> None:
    for service_cls in (UnsignedUsersQueueGenerationService, OutstandingRequestsQueueGenerationService):
        service_cls(
            db=db_session, reader=reader, settings=settings, clock=clock, migration_phase=MigrationPhase.NEW_ONLY
        ).populate_queue()


def test_router_prefers_unsigned_users(db_session, session_factory, reader, replica, add_score, clock, settings):
    replica.unsigned_user(1)
    replica.outstanding_user(2)
    add_score(1, score=30)
    add_score(2, score=0, queue_type=QueueType.OUTSTANDING_REQUESTS)
    _generate(db_session, reader, clock, settings)

    response = _router(session_factory, reader, clock, settings).get_next_user_for_call(agent_id=4)

    assert response.user_id == 1
    assert response.queue_type is QueueType.UNSIGNED_USERS
    assert response.queue_position == 1


def test_router_falls_through_to_outstanding(db_session, session_factory, reader, replica, add_score, clock, settings):
    claim_id = replica.outstanding_user(2)
    add_score(2, queue_type=QueueType.OUTSTANDING_REQUESTS)
    _generate(db_session, reader, clock, settings)

    response = _router(session_factory, reader, clock, settings).get_next_user_for_call(agent_id=4)

    assert response.user_id == 2
    assert response.claim_id == claim_id
    assert response.queue_type is QueueType.OUTSTANDING_REQUESTS


def test_router_honours_explicit_queue_type(db_session, session_factory, reader, replica, add_score, clock, settings):
    replica.unsigned_user(1)
    replica.outstanding_user(2)
    add_score(1)
    add_score(2, queue_type=QueueType.OUTSTANDING_REQUESTS)
    _generate(db_session, reader, clock, settings)

    router = _router(session_factory, reader, clock, settings)
    response = router.get_next_user_for_call(agent_id=4, queue_type="outstanding_requests")

    assert response.user_id == 2


def test_router_returns_none_when_nothing_is_callable(session_factory, reader, clock, settings):
    assert _router(session_factory, reader, clock, settings).get_next_user_for_call(agent_id=4) is None


def test_router_serves_callbacks_first(db_session, session_factory, reader, replica, add_score, clock, now, settings):
    replica.unsigned_user(1)
    add_score(1)
    _generate(db_session, reader, clock, settings)
    db_session.add(Callback(user_id=50, scheduled_for=now - timedelta(minutes=1)))
    db_session.commit()

    response = _router(session_factory, reader, clock, settings).get_next_user_for_call(agent_id=4)

    assert response.user_id == 50
    assert response.is_callback is True
    assert response.queue_position == 0


def test_router_does_not_serve_when_phase_reads_legacy_queue(
    db_session, session_factory, reader, replica, add_score, clock, settings
):
    replica.unsigned_user(1)
    add_score(1)
    _generate(db_session, reader, clock, settings)

    router = _router(session_factory, reader, clock, settings, phase=MigrationPhase.DUAL_WRITE)

    assert router.get_next_user_for_call(agent_id=4) is None


def test_router_marks_entries_and_reports_stats(db_session, session_factory, reader, replica, add_score, clock, settings):
    replica.unsigned_user(1)
    add_score(1)
    _generate(db_session, reader, clock, settings)
    router = _router(session_factory, reader, clock, settings)

    response = router.get_next_user_for_call(agent_id=4)
    assert router.mark_completed(response.queue_type, response.queue_entry_id) is True
    assert router.mark_skipped(response.queue_type, response.queue_entry_id) is False

    stats = router.get_all_queue_stats()
    assert stats["unsigned_users"].completed == 1
    assert stats["outstanding_requests"].total == 0


def test_callback_outcomes_never_touch_snapshot_rows(
    db_session, session_factory, reader, replica, add_score, clock, now, settings
):
    replica.unsigned_user(1)
    add_score(1)
    _generate(db_session, reader, clock, settings)
    router = _router(session_factory, reader, clock, settings)
    entry = router.get_next_user_for_call(agent_id=4)
    db_session.add(Callback(id=entry.queue_entry_id, user_id=50, scheduled_for=now - timedelta(minutes=1)))
    db_session.commit()

    callback = router.get_next_user_for_call(agent_id=5)

    assert callback.is_callback is True
    assert callback.queue_entry_id == entry.queue_entry_id
    assert router.mark_completed(callback.queue_type, callback.queue_entry_id, is_callback=True) is False
    assert router.mark_skipped(callback.queue_type, callback.queue_entry_id, is_callback=True) is False
    assert router.get_all_queue_stats()["unsigned_users"].assigned == 1
