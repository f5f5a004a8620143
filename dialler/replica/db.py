"""Replica connection management. Sessions are used for reads only."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from dialler.core.config import get_config
from dialler.database.db import build_engine
from dialler.replica.reader import SourceOfTruthReader

logger = logging.getLogger(__name__)

config = get_config()
REPLICA_DATABASE_URL = config.REPLICA_DATABASE_URL


def _configure_engine(database_url: str) -> None:
    global REPLICA_DATABASE_URL, replica_engine, ReplicaSessionLocal
    REPLICA_DATABASE_URL = database_url
    replica_engine = build_engine(database_url)
    ReplicaSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=replica_engine,
    )


_configure_engine(REPLICA_DATABASE_URL)


def get_replica_engine() -> Engine:
    return replica_engine


def reset_replica_engine(database_url: str | None = None) -> None:
    """Rebind the replica engine/sessionmaker to the given URL (or current active URL)."""
    _configure_engine(database_url or REPLICA_DATABASE_URL)


def get_replica_session_factory() -> sessionmaker:
    return ReplicaSessionLocal


def verify_replica_connection() -> bool:
    """Verify replica connectivity during startup."""
    try:
        with replica_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:  # pragma: no cover - exercised in deployment.
        logger.exception("replica.connection_failed", extra={"event": "replica.connection_failed"})
        return False


def get_source_of_truth_reader() -> SourceOfTruthReader:
    return SourceOfTruthReader(get_replica_session_factory())
