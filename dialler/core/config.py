"""Configuration module for the dialler queue core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from dialler.core.enums import MigrationPhase
from dialler.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer.") from exc


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number.") from exc


@dataclass(frozen=True)
class QueueSettings:
    """Tunables shared by the scoring, generation and dequeue components."""

    low_water_mark: int = 20
    min_regeneration_minutes: int = 15
    auto_regeneration: bool = True
    unsigned_window: int = 200
    outstanding_window: int = 100
    cooling_period_minutes: int = 120
    dequeue_max_attempts: int = 10
    dequeue_retry_backoff_seconds: float = 0.0
    lead_scoring_batch_size: int = 50
    lead_scoring_max_seconds: float = 20.0
    aging_rest_weekday: int = 6
    aging_score_ceiling: int = 200

    def window_for(self, queue_type: str) -> int:
        if queue_type == "unsigned_users":
            return self.unsigned_window
        if queue_type == "outstanding_requests":
            return self.outstanding_window
        raise ConfigurationError(f"Unknown queue type: {queue_type}")


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    REPLICA_DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    LOG_LEVEL: str
    LOG_FILE: str
    MIGRATION_PHASE: MigrationPhase
    EMERGENCY_ROLLBACK: bool
    REQUESTED_MIGRATION_PHASE: str | None
    QUEUE: QueueSettings

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


def _resolve_migration_phase(requested: str | None, emergency_rollback: bool) -> MigrationPhase:
    if emergency_rollback:
        return MigrationPhase.EMERGENCY_ROLLBACK
    if requested is None or not requested.strip():
        return MigrationPhase.NEW_ONLY
    normalized = requested.strip().lower().replace("-", "_")
    try:
        return MigrationPhase(normalized)
    except ValueError as exc:
        allowed = ", ".join(phase.value for phase in MigrationPhase)
        raise ConfigurationError(f"QUEUE_MIGRATION_PHASE must be one of: {allowed}.") from exc


def _build_queue_settings() -> QueueSettings:
    return QueueSettings(
        low_water_mark=_as_int("QUEUE_LOW_WATER_MARK", 20),
        min_regeneration_minutes=_as_int("QUEUE_MIN_REGENERATION_MINUTES", 15),
        auto_regeneration=_as_bool(os.getenv("QUEUE_AUTO_REGENERATION"), default=True),
        unsigned_window=_as_int("UNSIGNED_QUEUE_WINDOW", 200),
        outstanding_window=_as_int("OUTSTANDING_QUEUE_WINDOW", 100),
        cooling_period_minutes=_as_int("QUEUE_COOLING_PERIOD_MINUTES", 120),
        dequeue_max_attempts=_as_int("DEQUEUE_MAX_ATTEMPTS", 10),
        dequeue_retry_backoff_seconds=_as_float("DEQUEUE_RETRY_BACKOFF_SECONDS", 0.0),
        lead_scoring_batch_size=_as_int("LEAD_SCORING_BATCH_SIZE", 50),
        lead_scoring_max_seconds=_as_float("LEAD_SCORING_MAX_SECONDS", 20.0),
        aging_rest_weekday=_as_int("AGING_REST_WEEKDAY", 6),
        aging_score_ceiling=_as_int("AGING_SCORE_CEILING", 200),
    )


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))
    database_url = os.getenv("DATABASE_URL", "sqlite:///./dialler.db")
    requested_phase = os.getenv("QUEUE_MIGRATION_PHASE")
    emergency_rollback = _as_bool(os.getenv("QUEUE_EMERGENCY_ROLLBACK"))
    broker_url = os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0"))

    config = Config(
        APP_NAME="dialler",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=database_url,
        REPLICA_DATABASE_URL=os.getenv("REPLICA_DATABASE_URL", database_url),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"),
            default=(resolved_env == "production"),
        ),
        CELERY_BROKER_URL=broker_url,
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", broker_url),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", "dialler.log"),
        MIGRATION_PHASE=_resolve_migration_phase(requested_phase, emergency_rollback),
        EMERGENCY_ROLLBACK=emergency_rollback,
        REQUESTED_MIGRATION_PHASE=requested_phase,
        QUEUE=_build_queue_settings(),
    )
    _validate_config(config)
    return config


def _validate_database_url(name: str, database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2", "mysql+pymysql"}:
        raise ConfigurationError(f"{name} must use sqlite://, postgresql:// or mysql+pymysql:// style URL.")
    if not parsed.scheme.startswith("sqlite") and not parsed.hostname:
        raise ConfigurationError(f"{name} is missing hostname.")


def _validate_queue_settings(queue: QueueSettings) -> None:
    if queue.low_water_mark < 0:
        raise ConfigurationError("QUEUE_LOW_WATER_MARK must be >= 0.")
    if queue.min_regeneration_minutes < 0:
        raise ConfigurationError("QUEUE_MIN_REGENERATION_MINUTES must be >= 0.")
    if queue.unsigned_window < 1 or queue.outstanding_window < 1:
        raise ConfigurationError("Queue window sizes must be >= 1.")
    if queue.cooling_period_minutes < 0:
        raise ConfigurationError("QUEUE_COOLING_PERIOD_MINUTES must be >= 0.")
    if queue.dequeue_max_attempts < 1:
        raise ConfigurationError("DEQUEUE_MAX_ATTEMPTS must be >= 1.")
    if queue.dequeue_retry_backoff_seconds < 0:
        raise ConfigurationError("DEQUEUE_RETRY_BACKOFF_SECONDS must be >= 0.")
    if queue.lead_scoring_batch_size < 1:
        raise ConfigurationError("LEAD_SCORING_BATCH_SIZE must be >= 1.")
    if queue.lead_scoring_max_seconds <= 0:
        raise ConfigurationError("LEAD_SCORING_MAX_SECONDS must be > 0.")
    if not 0 <= queue.aging_rest_weekday <= 6:
        raise ConfigurationError("AGING_REST_WEEKDAY must be between 0 (Monday) and 6 (Sunday).")
    if queue.aging_score_ceiling < 1:
        raise ConfigurationError("AGING_SCORE_CEILING must be >= 1.")


def _validate_config(config: Config) -> None:
    _validate_database_url("DATABASE_URL", config.DATABASE_URL)
    _validate_database_url("REPLICA_DATABASE_URL", config.REPLICA_DATABASE_URL)
    _validate_queue_settings(config.QUEUE)

    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


def collect_config_warnings(config: Config) -> list[str]:
    """Return non-fatal configuration conflicts worth reporting at startup."""
    warnings: list[str] = []
    requested = (config.REQUESTED_MIGRATION_PHASE or "").strip().lower().replace("-", "_")
    if config.EMERGENCY_ROLLBACK and requested and requested != MigrationPhase.EMERGENCY_ROLLBACK.value:
        warnings.append(
            f"QUEUE_EMERGENCY_ROLLBACK overrides QUEUE_MIGRATION_PHASE={requested}; separated queues are disabled."
        )
    if not config.MIGRATION_PHASE.reads_separated_queues:
        warnings.append(f"Migration phase {config.MIGRATION_PHASE.value} does not serve agents from separated queues.")
    smallest_window = min(config.QUEUE.unsigned_window, config.QUEUE.outstanding_window)
    if config.QUEUE.low_water_mark >= smallest_window:
        warnings.append(
            f"QUEUE_LOW_WATER_MARK={config.QUEUE.low_water_mark} is not below the smallest queue window "
            f"({smallest_window}); the level monitor will regenerate on every check."
        )
    if config.REPLICA_DATABASE_URL == config.DATABASE_URL and config.is_production:
        warnings.append("REPLICA_DATABASE_URL is not set; the source-of-truth reader shares the score store database.")
    return warnings


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
