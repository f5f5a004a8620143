from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dialler.core.config import QueueSettings
from dialler.core.enums import CLAIM_STATUS_COMPLETE, REQUIREMENT_STATUS_PENDING, QueueType
from dialler.models import Base, UserCallScore
from dialler.replica.models import Claim, ClaimRequirement, ReplicaBase, User
from dialler.replica.reader import SourceOfTruthReader

# A Wednesday, so aging runs unless a test moves the clock.
FIXED_NOW = datetime(2026, 10, 14, 12, 0, 0)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'score_store.db'}")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def replica_session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'replica.db'}")
    ReplicaSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    ReplicaBase.metadata.create_all(bind=engine)
    yield ReplicaSessionLocal
    engine.dispose()


@pytest.fixture
def reader(replica_session_factory):
    return SourceOfTruthReader(replica_session_factory)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def settings():
    return QueueSettings()


class ReplicaSeeder:
    """Writes operational rows the way the upstream application would."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory
        self._claim_ids = 0

    def user(self, user_id: int, *, signed: bool = False, enabled: bool = True) -> None:
        with self._session_factory() as session:
            session.add(
                User(
                    id=user_id,
                    is_enabled=enabled,
                    current_signature_file_id=9000 + user_id if signed else None,
                    first_name=f"User{user_id}",
                    last_name="Test",
                    phone_number=f"+44700900{user_id:04d}",
                )
            )
            session.commit()

    def claim(self, user_id: int, *, status: str = "active") -> int:
        self._claim_ids += 1
        with self._session_factory() as session:
            session.add(Claim(id=self._claim_ids, user_id=user_id, status=status))
            session.commit()
        return self._claim_ids

    def requirement(
        self,
        claim_id: int,
        *,
        requirement_type: str = "bank_statement",
        status: str = REQUIREMENT_STATUS_PENDING,
        reason: str | None = None,
        created_at: datetime | None = None,
    ) -> None:
        with self._session_factory() as session:
            session.add(
                ClaimRequirement(
                    claim_id=claim_id,
                    type=requirement_type,
                    status=status,
                    claim_requirement_reason=reason,
                    created_at=created_at or FIXED_NOW - timedelta(days=3),
                )
            )
            session.commit()

    def unsigned_user(self, user_id: int) -> int:
        self.user(user_id, signed=False)
        return self.claim(user_id)

    def outstanding_user(self, user_id: int, requirement_type: str = "bank_statement") -> int:
        self.user(user_id, signed=True)
        claim_id = self.claim(user_id)
        self.requirement(claim_id, requirement_type=requirement_type)
        return claim_id

    def sign(self, user_id: int) -> None:
        with self._session_factory() as session:
            session.get(User, user_id).current_signature_file_id = 9000 + user_id
            session.commit()

    def complete_claims(self, user_id: int) -> None:
        with self._session_factory() as session:
            for claim in session.query(Claim).filter(Claim.user_id == user_id):
                claim.status = CLAIM_STATUS_COMPLETE
            session.commit()


@pytest.fixture
def replica(replica_session_factory):
    return ReplicaSeeder(replica_session_factory)


@pytest.fixture
def add_score(db_session, now):
    """Insert a score record directly into the score store."""

    def _add_score(
        user_id: int,
        *,
        score: int = 0,
        queue_type: QueueType = QueueType.UNSIGNED_USERS,
        active: bool = True,
        created_at: datetime | None = None,
        next_call_after: datetime | None = None,
    ) -> UserCallScore:
        record = UserCallScore(
            user_id=user_id,
            current_score=score,
            current_queue_type=queue_type.value if queue_type is not None else None,
            is_active=active,
            next_call_after=next_call_after,
            created_at=created_at or now - timedelta(days=1),
            updated_at=created_at or now - timedelta(days=1),
        )
        db_session.add(record)
        db_session.commit()
        return record

    return _add_score
