"""Application orchestrator wiring servers, channels and restart cascades.

The orchestrator owns the process-level lifecycle:

- One CommandChannel per configured server, connected concurrently at start
- One restart cascade per configured daily time, armed through a shared
  RestartScheduler (optionally re-armed for the next day once it fires)
- Graceful shutdown: pending cascades are cancelled and channels closed

Servers never share state; a failed connection only affects its own server.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime

from rcon_scheduler.core.channel import CommandChannel
from rcon_scheduler.core.config import MainConfig, ServerConfig
from rcon_scheduler.core.schedule import next_occurrence
from rcon_scheduler.core.scheduler import (
    DEFAULT_EVENT_LABEL,
    ArmedCascade,
    Clock,
    RestartScheduler,
)
from rcon_scheduler.notifications.discord import DiscordWebhookNotifier
from rcon_scheduler.types import RestartNotifier

__all__ = ["Orchestrator"]

type ChannelFactory = Callable[[ServerConfig], CommandChannel]

logger = logging.getLogger(__name__)


def _build_notifier(config: MainConfig) -> RestartNotifier | None:
    if config.discord_webhook is None:
        return None
    return DiscordWebhookNotifier(
        config.discord_webhook,
        reconnect_message=config.reconnect_message,
    )


class Orchestrator:
    """Coordinate channel lifecycles and restart scheduling for all servers."""

    def __init__(
        self,
        *,
        config: MainConfig,
        scheduler: RestartScheduler | None = None,
        channel_factory: ChannelFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Validated application configuration
            scheduler: Scheduler used to arm cascades; built from config if None
            channel_factory: Creates the channel for a server; defaults to
                CommandChannel with the configured client settings
            clock: Source of the current UTC time, shared with the default scheduler
        """
        self.config: MainConfig = config
        self._scheduler: RestartScheduler = scheduler or RestartScheduler(
            notifier=_build_notifier(config),
            clock=clock,
        )
        self._channel_factory: ChannelFactory = channel_factory or self._default_channel_factory

        self._channels: dict[str, CommandChannel] = {}
        self._cascades: list[ArmedCascade] = []
        self._shutdown_event: asyncio.Event = asyncio.Event()
        self._is_running: bool = False

    @property
    def is_running(self) -> bool:
        """Return True while ``run`` is active."""
        return self._is_running

    @property
    def channels(self) -> Mapping[str, CommandChannel]:
        """Channels keyed by server name."""
        return self._channels

    @property
    def cascades(self) -> list[ArmedCascade]:
        """Cascades that have not finished yet."""
        return [cascade for cascade in self._cascades if not cascade.done]

    def _default_channel_factory(self, server: ServerConfig) -> CommandChannel:
        return CommandChannel(
            server,
            client_name=self.config.client.name,
            reply_timeout=self.config.client.reply_timeout_seconds,
        )

    async def start(self) -> None:
        """Connect every server's channel and arm its daily restarts."""
        for server in self.config.servers:
            self._channels[server.name] = self._channel_factory(server)

        async with asyncio.TaskGroup() as tg:
            for channel in self._channels.values():
                _ = tg.create_task(channel.connect(), name=f"connect-{channel.name}")

        for server in self.config.servers:
            channel = self._channels[server.name]
            for hhmm in server.daily_restart_times_utc:
                _ = self.arm_daily(channel, hhmm)

    def arm_daily(
        self,
        channel: CommandChannel,
        hhmm: str,
        *,
        after: datetime | None = None,
    ) -> ArmedCascade | None:
        """Arm the next occurrence of a daily restart time on a channel.

        Args:
            channel: Channel of the server to restart
            hhmm: Time of day, ``HH:MM`` UTC
            after: Earliest reference instant; the next occurrence is strictly
                after both this and the current time
        """
        reference = self._scheduler.now()
        if after is not None and after > reference:
            reference = after
        event_instant = next_occurrence(hhmm, reference)
        on_complete = self._rearm_hook(channel, hhmm) if self.config.rearm_daily else None
        cascade = self._scheduler.arm(channel, event_instant, DEFAULT_EVENT_LABEL, on_complete=on_complete)
        if cascade is not None:
            self._cascades = [*self.cascades, cascade]
        return cascade

    def _rearm_hook(self, channel: CommandChannel, hhmm: str) -> Callable[[ArmedCascade], object]:
        def rearm(cascade: ArmedCascade) -> None:
            if self._shutdown_event.is_set():
                return
            _ = self.arm_daily(channel, hhmm, after=cascade.event_instant)

        return rearm

    async def run(self) -> None:
        """Start, then block until shutdown is requested, then clean up."""
        self._is_running = True
        try:
            await self.start()
            logger.info("Scheduler running for %d server(s)", len(self._channels))
            _ = await self._shutdown_event.wait()
        finally:
            await self.shutdown()
            self._is_running = False

    def request_shutdown(self) -> None:
        """Ask ``run`` to stop; safe to call from a signal handler."""
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Cancel pending cascades and close every channel."""
        self._shutdown_event.set()

        pending = self.cascades
        for cascade in pending:
            cascade.cancel()
        for cascade in pending:
            await cascade.wait()
        self._cascades.clear()

        for channel in self._channels.values():
            await channel.close()

        logger.info("Shutdown complete")
