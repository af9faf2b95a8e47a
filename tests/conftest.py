"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from rcon_scheduler.core.config import MainConfig, ServerConfig
from tests.fixtures.fakes import FakeClock, RecordingNotifier, RecordingTarget


@pytest.fixture
def server_config() -> ServerConfig:
    """Provide a single server configuration."""
    return ServerConfig(
        name="Main",
        host="127.0.0.1",
        port=28016,
        password="hunter2",
        daily_restart_times_utc=["06:00"],
    )


@pytest.fixture
def sample_config_data() -> dict[str, object]:
    """Provide raw configuration data in the on-disk camelCase layout."""
    return {
        "discordWebhook": "https://discord.com/api/webhooks/123/abc_token",
        "servers": [
            {
                "name": "Main",
                "host": "127.0.0.1",
                "port": 28016,
                "password": "hunter2",
                "dailyRestartTimesUTC": ["06:00", "18:00"],
            }
        ],
    }


@pytest.fixture
def make_config(sample_config_data: dict[str, object]) -> Callable[..., MainConfig]:
    """Build a MainConfig from the sample data with top-level overrides."""

    def factory(**overrides: object) -> MainConfig:
        return MainConfig.model_validate({**sample_config_data, **overrides})

    return factory


@pytest.fixture
def recording_target() -> RecordingTarget:
    return RecordingTarget()


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock frozen at 2024-01-01 05:00 UTC, one hour before the sample restart."""
    return FakeClock(datetime(2024, 1, 1, 5, 0, tzinfo=UTC))
