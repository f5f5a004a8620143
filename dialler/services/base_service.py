"""Shared service base with robust session lifecycle behavior."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

import dialler.database.db as db_module
from dialler.core.config import QueueSettings, get_config
from dialler.models.base import utcnow


class BaseService:
    """Base class for services that operate on a score store session.

    `clock` returns naive UTC and is injected by tests instead of patching time.
    """

    def __init__(
        self,
        db: Session | None = None,
        settings: QueueSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db or db_module.get_session_factory()()
        self.settings = settings or get_config().QUEUE
        self.clock = clock or utcnow

    def commit(self) -> None:
        """Commit current transaction and rollback on failure."""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "BaseService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type:
            self.rollback()
        self.close()
