"""Startup validation and bootstrap helpers."""

from __future__ import annotations

import logging

from dialler.core.config import collect_config_warnings, get_config
from dialler.core.logging_config import configure_logging
from dialler.database.db import get_active_database_url, verify_database_connection
from dialler.replica.db import verify_replica_connection

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Fail-fast config and connectivity checks."""
    config = get_config()
    checks = {
        "database": verify_database_connection(),
        "replica": verify_replica_connection(),
    }
    failed = sorted(name for name, ok in checks.items() if not ok)
    if failed and config.DB_CONNECTIVITY_REQUIRED:
        raise RuntimeError(f"Connectivity check failed: {', '.join(failed)}.")
    for name in failed:
        logger.warning(
            f"startup.{name}.connectivity_optional_failed",
            extra={"event": f"startup.{name}.connectivity_optional_failed"},
        )

    active_database_url = get_active_database_url()
    if config.is_production and active_database_url.startswith("sqlite"):
        logger.warning(
            "startup.production.sqlite_detected",
            extra={"event": "startup.production.sqlite_detected"},
        )

    for warning in collect_config_warnings(config):
        logger.warning(
            "startup.config.conflict",
            extra={"event": "startup.config.conflict", "detail": warning},
        )

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": active_database_url.split("://", 1)[0],
            "db_connectivity_required": config.DB_CONNECTIVITY_REQUIRED,
            "migration_phase": config.MIGRATION_PHASE.value,
        },
    )


def bootstrap() -> None:
    """Initialize logging and validate runtime configuration."""
    configure_logging()
    validate_startup_config()
