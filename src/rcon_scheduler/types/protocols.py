"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that let the restart
scheduler talk to a command channel and a notification sink without
depending on their concrete implementations.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class RestartTarget(Protocol):
    """Command surface a restart cascade drives.

    Implemented by CommandChannel; tests substitute in-memory recorders.
    """

    @property
    def name(self) -> str:
        """Display name of the server, used in logs and notifications."""
        ...

    async def announce(self, text: str) -> None:
        """Broadcast a chat message to all players."""
        ...

    async def save(self) -> None:
        """Persist server world state."""
        ...

    async def restart(self) -> None:
        """Restart the server immediately."""
        ...


@runtime_checkable
class RestartNotifier(Protocol):
    """Out-of-band sink told about every executed restart."""

    async def notify_restart(self, server_name: str, label: str) -> bool:
        """Deliver one restart notification.

        Args:
            server_name: Display name of the restarting server
            label: Event label, e.g. "Daily restart"

        Returns:
            True if the sink accepted the notification
        """
        ...
