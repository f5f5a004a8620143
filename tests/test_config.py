from __future__ import annotations

import pytest

import dialler.core.config as config_module
from dialler.core.enums import MigrationPhase
from dialler.core.exceptions import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "ENV",
        "DATABASE_URL",
        "REPLICA_DATABASE_URL",
        "QUEUE_MIGRATION_PHASE",
        "QUEUE_EMERGENCY_ROLLBACK",
        "QUEUE_LOW_WATER_MARK",
        "UNSIGNED_QUEUE_WINDOW",
        "OUTSTANDING_QUEUE_WINDOW",
        "DEQUEUE_MAX_ATTEMPTS",
        "AGING_REST_WEEKDAY",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    config_module.get_config.cache_clear()
    yield monkeypatch
    config_module.get_config.cache_clear()


def test_defaults_match_documented_queue_settings(clean_env):
    config = config_module.get_config()

    assert config.MIGRATION_PHASE is MigrationPhase.NEW_ONLY
    assert config.REPLICA_DATABASE_URL == config.DATABASE_URL
    assert config.QUEUE.low_water_mark == 20
    assert config.QUEUE.window_for("unsigned_users") == 200
    assert config.QUEUE.window_for("outstanding_requests") == 100
    assert config.QUEUE.cooling_period_minutes == 120
    assert config.QUEUE.dequeue_max_attempts == 10
    assert config.QUEUE.aging_rest_weekday == 6


def test_queue_settings_are_read_from_environment(clean_env):
    clean_env.setenv("UNSIGNED_QUEUE_WINDOW", "50")
    clean_env.setenv("DEQUEUE_MAX_ATTEMPTS", "3")
    clean_env.setenv("QUEUE_MIGRATION_PHASE", "dual-read")

    config = config_module.get_config()

    assert config.QUEUE.unsigned_window == 50
    assert config.QUEUE.dequeue_max_attempts == 3
    assert config.MIGRATION_PHASE is MigrationPhase.DUAL_READ


def test_emergency_rollback_wins_and_is_reported(clean_env):
    clean_env.setenv("QUEUE_MIGRATION_PHASE", "new_only")
    clean_env.setenv("QUEUE_EMERGENCY_ROLLBACK", "true")

    config = config_module.get_config()
    warnings = config_module.collect_config_warnings(config)

    assert config.MIGRATION_PHASE is MigrationPhase.EMERGENCY_ROLLBACK
    assert config.MIGRATION_PHASE.writes_separated_queues is False
    assert any("QUEUE_EMERGENCY_ROLLBACK overrides" in warning for warning in warnings)


def test_low_water_mark_above_window_is_a_warning(clean_env):
    clean_env.setenv("QUEUE_LOW_WATER_MARK", "150")

    warnings = config_module.collect_config_warnings(config_module.get_config())

    assert any("QUEUE_LOW_WATER_MARK=150" in warning for warning in warnings)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("QUEUE_MIGRATION_PHASE", "big_bang"),
        ("DEQUEUE_MAX_ATTEMPTS", "0"),
        ("UNSIGNED_QUEUE_WINDOW", "lots"),
        ("AGING_REST_WEEKDAY", "7"),
        ("DATABASE_URL", "oracle://db/dialler"),
    ],
)
def test_invalid_settings_raise_configuration_error(clean_env, name, value):
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError):
        config_module.get_config()


def test_migration_phase_read_and_write_gates():
    assert MigrationPhase.DUAL_WRITE.writes_separated_queues is True
    assert MigrationPhase.DUAL_WRITE.reads_separated_queues is False
    assert MigrationPhase.CLEANUP.reads_separated_queues is True
    assert MigrationPhase.PRE_MIGRATION.writes_separated_queues is False
