"""Tool settings read from environment variables."""

from __future__ import annotations

from pathlib import Path

from automation_cli.settings import Settings


def test_defaults_without_environment():
    assert Settings.from_env({}) == Settings()


def test_every_knob_is_read_from_environment():
    settings = Settings.from_env(
        {
            "AUTOMATION_CLI_GAS_PREMIUM_PERCENT": "35",
            "AUTOMATION_CLI_HEALTH_TIMEOUT": "30",
            "AUTOMATION_CLI_HEALTH_INTERVAL": "0.5",
            "AUTOMATION_CLI_DB_GRACE": "2",
            "AUTOMATION_CLI_RECEIPT_TIMEOUT": "90",
            "AUTOMATION_CLI_RECEIPT_POLL_INTERVAL": "0.25",
            "AUTOMATION_CLI_CONTRACTS_DIR": "/work/artifacts",
        }
    )
    assert settings.gas_premium_percent == 35
    assert settings.health_timeout == 30.0
    assert settings.health_interval == 0.5
    assert settings.database_grace == 2.0
    assert settings.receipt_timeout == 90.0
    assert settings.receipt_poll_interval == 0.25
    assert settings.contracts_directory == Path("/work/artifacts")


def test_unparseable_or_negative_values_fall_back():
    settings = Settings.from_env(
        {
            "AUTOMATION_CLI_GAS_PREMIUM_PERCENT": "lots",
            "AUTOMATION_CLI_RECEIPT_POLL_INTERVAL": "-1",
            "AUTOMATION_CLI_HEALTH_TIMEOUT": "  ",
        }
    )
    assert settings.gas_premium_percent == 20
    assert settings.receipt_poll_interval == 1.0
    assert settings.health_timeout == 120.0
