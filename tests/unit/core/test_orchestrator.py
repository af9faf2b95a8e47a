"""Tests for the Orchestrator core component."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from rcon_scheduler.core.channel import CommandChannel
from rcon_scheduler.core.config import MainConfig, ServerConfig
from rcon_scheduler.core.orchestrator import Orchestrator
from rcon_scheduler.core.scheduler import RestartScheduler
from rcon_scheduler.notifications.discord import DiscordWebhookNotifier
from tests.fixtures.fakes import FakeClock, FakeConnection


class LoopClock:
    """UTC clock that starts at a fixed instant and advances with the event loop."""

    def __init__(self, start: datetime) -> None:
        self.start: datetime = start
        self.origin: float = asyncio.get_running_loop().time()

    def __call__(self) -> datetime:
        elapsed = asyncio.get_running_loop().time() - self.origin
        return self.start + timedelta(seconds=elapsed)


class ChannelFactory:
    """Creates real channels over fake connections and remembers them."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail: bool = fail
        self.connections: dict[str, FakeConnection] = {}

    def __call__(self, server: ServerConfig) -> CommandChannel:
        connection = FakeConnection()
        self.connections[server.name] = connection
        if self.fail:
            connector = AsyncMock(side_effect=ConnectionRefusedError("refused"))
        else:
            connector = AsyncMock(return_value=connection)
        return CommandChannel(server, connector=connector)


def _two_servers(make_config: Callable[..., MainConfig], **overrides: object) -> MainConfig:
    return make_config(
        servers=[
            {"name": "Main", "host": "h", "port": 1, "password": "a", "dailyRestartTimesUTC": ["06:00", "18:00"]},
            {"name": "Creative", "host": "h", "port": 2, "password": "b", "dailyRestartTimesUTC": ["04:00"]},
        ],
        **overrides,
    )


@pytest.mark.unit
class TestOrchestratorStart:
    """Test channel creation and cascade arming."""

    @pytest.mark.asyncio
    async def test_arms_one_cascade_per_time(
        self,
        make_config: Callable[..., MainConfig],
        fake_clock: FakeClock,
    ) -> None:
        """Test every configured time is armed at its next occurrence."""
        factory = ChannelFactory()
        orchestrator = Orchestrator(config=_two_servers(make_config), channel_factory=factory, clock=fake_clock)

        await orchestrator.start()

        assert set(orchestrator.channels) == {"Main", "Creative"}
        assert all(channel.is_open for channel in orchestrator.channels.values())
        instants = sorted((c.server_name, c.event_instant) for c in orchestrator.cascades)
        assert instants == [
            ("Creative", datetime(2024, 1, 2, 4, 0, tzinfo=UTC)),
            ("Main", datetime(2024, 1, 1, 6, 0, tzinfo=UTC)),
            ("Main", datetime(2024, 1, 1, 18, 0, tzinfo=UTC)),
        ]
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_failed_connection_still_arms(
        self,
        make_config: Callable[..., MainConfig],
        fake_clock: FakeClock,
    ) -> None:
        """Test a server that cannot connect keeps its schedule."""
        orchestrator = Orchestrator(
            config=make_config(),
            channel_factory=ChannelFactory(fail=True),
            clock=fake_clock,
        )

        await orchestrator.start()

        assert not orchestrator.channels["Main"].is_open
        assert len(orchestrator.cascades) == 2
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_cancels_and_closes(
        self,
        make_config: Callable[..., MainConfig],
        fake_clock: FakeClock,
    ) -> None:
        """Test shutdown cancels pending cascades and closes channels."""
        factory = ChannelFactory()
        orchestrator = Orchestrator(config=make_config(), channel_factory=factory, clock=fake_clock)
        await orchestrator.start()
        cascades = orchestrator.cascades

        await orchestrator.shutdown()

        assert all(cascade.done for cascade in cascades)
        assert orchestrator.cascades == []
        assert not orchestrator.channels["Main"].is_open
        assert factory.connections["Main"].sent == []


@pytest.mark.unit
class TestOrchestratorRun:
    """Test the run loop and re-arming."""

    @pytest.mark.asyncio
    async def test_run_until_shutdown_requested(
        self,
        make_config: Callable[..., MainConfig],
        fake_clock: FakeClock,
    ) -> None:
        """Test run blocks until request_shutdown and then cleans up."""
        orchestrator = Orchestrator(config=make_config(), channel_factory=ChannelFactory(), clock=fake_clock)

        task = asyncio.create_task(orchestrator.run())
        for _ in range(100):
            if orchestrator.cascades:
                break
            await asyncio.sleep(0.01)

        assert orchestrator.is_running
        orchestrator.request_shutdown()
        await asyncio.wait_for(task, timeout=5)

        assert not orchestrator.is_running
        assert not orchestrator.channels["Main"].is_open

    @pytest.mark.asyncio
    async def test_restart_executes_and_rearms_for_next_day(self, make_config: Callable[..., MainConfig]) -> None:
        """Test a fired restart sends its commands and arms tomorrow's restart."""
        config = make_config(
            discordWebhook=None,
            rearmDaily=True,
            servers=[{"name": "Main", "host": "h", "port": 1, "password": "a", "dailyRestartTimesUTC": ["06:00"]}],
        )
        clock = LoopClock(datetime(2024, 1, 1, 5, 59, 59, 800_000, tzinfo=UTC))
        factory = ChannelFactory()
        orchestrator = Orchestrator(
            config=config,
            scheduler=RestartScheduler(clock=clock, restart_delay=0),
            channel_factory=factory,
        )
        await orchestrator.start()
        (first,) = orchestrator.cascades

        await asyncio.wait_for(first.wait(), timeout=5)

        messages = [json.loads(raw)["Message"] for raw in factory.connections["Main"].sent]
        assert messages == ["say [Notification] Restarting now...", "server.save", "restart 0"]
        (second,) = orchestrator.cascades
        assert second.event_instant == datetime(2024, 1, 2, 6, 0, tzinfo=UTC)
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_no_rearm_by_default(self, make_config: Callable[..., MainConfig]) -> None:
        """Test a fired restart is not re-armed unless configured."""
        config = make_config(
            servers=[{"name": "Main", "host": "h", "port": 1, "password": "a", "dailyRestartTimesUTC": ["06:00"]}],
            discordWebhook=None,
        )
        clock = LoopClock(datetime(2024, 1, 1, 5, 59, 59, 900_000, tzinfo=UTC))
        orchestrator = Orchestrator(
            config=config,
            scheduler=RestartScheduler(clock=clock, restart_delay=0),
            channel_factory=ChannelFactory(),
        )
        await orchestrator.start()
        (first,) = orchestrator.cascades

        await asyncio.wait_for(first.wait(), timeout=5)

        assert orchestrator.cascades == []
        await orchestrator.shutdown()


@pytest.mark.unit
def test_webhook_notifier_built_from_config(make_config: Callable[..., MainConfig]) -> None:
    """Test a configured webhook wires a Discord notifier into the scheduler."""
    orchestrator = Orchestrator(config=make_config(reconnectMessage="Back soon"))

    notifier = orchestrator._scheduler._notifier  # pyright: ignore[reportPrivateUsage]
    assert isinstance(notifier, DiscordWebhookNotifier)
    assert notifier.reconnect_message == "Back soon"
    assert Orchestrator(config=make_config(discordWebhook=None))._scheduler._notifier is None  # pyright: ignore[reportPrivateUsage]
