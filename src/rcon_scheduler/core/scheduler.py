"""Restart cascades: countdown announcements followed by save and restart.

Arming a restart creates one asyncio task per countdown announcement plus a
terminal task. Every task sleeps until an absolute deadline on the event
loop's monotonic clock, all computed from the same reference point when the
cascade is armed, so timer slippage never accumulates across the cascade.

Countdown announcements are due at the fixed lead times (30 minutes down to
5 seconds) that are still ahead of the event. When an announcement fires it
re-checks the wall clock and is skipped if it is more than one second late.
The terminal task notifies the webhook (if configured), announces the
restart, saves, waits two seconds and restarts the server.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final

from rcon_scheduler.types import RestartNotifier, RestartTarget
from rcon_scheduler.utils.formatting import format_time

__all__ = [
    "COUNTDOWN_LEAD_TIMES",
    "DEFAULT_EVENT_LABEL",
    "RESTART_DELAY_SECONDS",
    "ArmedCascade",
    "CountdownStep",
    "RestartScheduler",
    "plan_countdown",
]

COUNTDOWN_LEAD_TIMES: Final[tuple[int, ...]] = (1800, 1200, 900, 600, 300, 120, 60, 30, 10, 5)

# Pause between the save command and the restart command
RESTART_DELAY_SECONDS: Final[float] = 2.0

# Announcements firing later than this behind their lead time are skipped
LATE_TOLERANCE_SECONDS: Final[float] = 1.0

DEFAULT_EVENT_LABEL: Final[str] = "Daily restart"
RESTARTING_NOW_MESSAGE: Final[str] = "Restarting now..."

type Clock = Callable[[], datetime]
type CompletionHook = Callable[[ArmedCascade], object]

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class CountdownStep:
    """One countdown announcement: its lead time and its delay from arming."""

    lead_time: float
    delay: float


def plan_countdown(
    seconds_until: float,
    lead_times: Sequence[float] = COUNTDOWN_LEAD_TIMES,
) -> list[CountdownStep]:
    """Select the countdown announcements still ahead of an event.

    A lead time is kept only if the event is strictly further away than it.

    Args:
        seconds_until: Seconds from now until the event
        lead_times: Candidate lead times in seconds, largest first

    Returns:
        Steps in firing order

    Examples:
        >>> [step.lead_time for step in plan_countdown(40)]
        [30, 10, 5]
        >>> [step.delay for step in plan_countdown(40)]
        [10, 30, 35]
        >>> plan_countdown(5)
        []
    """
    return [
        CountdownStep(lead_time=lead_time, delay=seconds_until - lead_time)
        for lead_time in lead_times
        if seconds_until > lead_time
    ]


@dataclass(slots=True)
class ArmedCascade:
    """Handle on the tasks of one armed restart."""

    server_name: str
    label: str
    event_instant: datetime
    lead_times: tuple[float, ...]
    tasks: list[asyncio.Task[None]] = field(default_factory=list)

    @property
    def done(self) -> bool:
        """Return True once every task of the cascade has finished."""
        return all(task.done() for task in self.tasks)

    def cancel(self) -> None:
        """Cancel every task that has not fired yet."""
        for task in self.tasks:
            _ = task.cancel()

    async def wait(self) -> None:
        """Wait until every task (including late-spawned ones) has finished."""
        while pending := [task for task in self.tasks if not task.done()]:
            _ = await asyncio.wait(pending)


class RestartScheduler:
    """Arms countdown and restart tasks for scheduled restart events."""

    def __init__(
        self,
        *,
        notifier: RestartNotifier | None = None,
        clock: Clock | None = None,
        restart_delay: float = RESTART_DELAY_SECONDS,
        lead_times: Sequence[float] = COUNTDOWN_LEAD_TIMES,
    ) -> None:
        """Initialize the scheduler.

        Args:
            notifier: Sink told about each executed restart, or None
            clock: Source of the current UTC time (defaults to the system clock)
            restart_delay: Seconds between the save and restart commands
            lead_times: Countdown lead times in seconds, largest first
        """
        self._notifier: RestartNotifier | None = notifier
        self._clock: Clock = clock or _utc_now
        self._restart_delay: float = restart_delay
        self._lead_times: tuple[float, ...] = tuple(lead_times)

    def now(self) -> datetime:
        """Return the current UTC time as seen by this scheduler."""
        return self._clock()

    def arm(
        self,
        channel: RestartTarget,
        event_instant: datetime,
        label: str = DEFAULT_EVENT_LABEL,
        *,
        on_complete: CompletionHook | None = None,
    ) -> ArmedCascade | None:
        """Arm the countdown and restart for one event.

        Must be called from a running event loop.

        Args:
            channel: Server the cascade drives
            event_instant: When the restart happens
            label: Event label used in announcements and notifications
            on_complete: Called with the cascade after the restart was issued

        Returns:
            The armed cascade, or None if the event is already in the past
        """
        seconds_until = (event_instant - self._clock()).total_seconds()
        if seconds_until <= 0:
            logger.info("[%s] Event time already passed.", channel.name)
            return None

        logger.info(
            "[%s] Scheduling %s at %s (in %d seconds)",
            channel.name,
            label,
            event_instant.isoformat(),
            int(seconds_until),
        )

        loop = asyncio.get_running_loop()
        start = loop.time()
        steps = plan_countdown(seconds_until, self._lead_times)
        cascade = ArmedCascade(
            server_name=channel.name,
            label=label,
            event_instant=event_instant,
            lead_times=tuple(step.lead_time for step in steps),
        )

        for step in steps:
            cascade.tasks.append(
                asyncio.create_task(
                    self._run_countdown_step(channel, cascade, step.lead_time, start + step.delay),
                    name=f"countdown-{channel.name}-{step.lead_time:g}",
                )
            )

        cascade.tasks.append(
            asyncio.create_task(
                self._run_restart(channel, cascade, start + seconds_until, on_complete),
                name=f"restart-{channel.name}",
            )
        )
        return cascade

    @staticmethod
    async def _sleep_until(deadline: float) -> None:
        loop = asyncio.get_running_loop()
        await asyncio.sleep(max(0.0, deadline - loop.time()))

    async def _run_countdown_step(
        self,
        channel: RestartTarget,
        cascade: ArmedCascade,
        lead_time: float,
        deadline: float,
    ) -> None:
        await self._sleep_until(deadline)
        _ = await self.announce_if_due(channel, cascade.event_instant, cascade.label, lead_time)

    async def announce_if_due(
        self,
        channel: RestartTarget,
        event_instant: datetime,
        label: str,
        lead_time: float,
    ) -> bool:
        """Announce ``{label} in {lead time}`` unless the moment has passed.

        Returns:
            True if the announcement was sent
        """
        remaining = (event_instant - self._clock()).total_seconds()
        if remaining < lead_time - LATE_TOLERANCE_SECONDS:
            return False

        text = f"{label} in {format_time(lead_time)}"
        await channel.announce(text)
        logger.info("[%s] Announced: %s", channel.name, text)
        return True

    async def _run_restart(
        self,
        channel: RestartTarget,
        cascade: ArmedCascade,
        deadline: float,
        on_complete: CompletionHook | None,
    ) -> None:
        await self._sleep_until(deadline)
        await self.execute_restart(channel, cascade)
        if on_complete is not None:
            _ = on_complete(cascade)

    async def execute_restart(self, channel: RestartTarget, cascade: ArmedCascade) -> None:
        """Run the terminal restart sequence for a cascade.

        The webhook notification is dispatched without waiting for it; its
        task joins the cascade so shutdown can wait for or cancel it.
        """
        if self._notifier is not None:
            cascade.tasks.append(
                asyncio.create_task(
                    self._notify(channel.name, cascade.label),
                    name=f"notify-{channel.name}",
                )
            )

        await channel.announce(RESTARTING_NOW_MESSAGE)
        await channel.save()
        await asyncio.sleep(self._restart_delay)
        await channel.restart()
        logger.info("[%s] Executed restart", channel.name)

    async def _notify(self, server_name: str, label: str) -> None:
        if self._notifier is not None:
            _ = await self._notifier.notify_restart(server_name, label)
