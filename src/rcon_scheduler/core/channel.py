"""Persistent WebRCON command channel with reply correlation.

A CommandChannel owns one WebSocket connection to one game server. Commands
are sent as JSON frames::

    {"Identifier": 1001, "Message": "status", "Name": "NodeRcon"}

Fire-and-forget commands use the sentinel identifier ``-1``. Commands sent with
a reply handler draw the next value from a per-channel counter seeded at the
reserved threshold (1000); the handler is registered before transmission and
invoked once with the matching reply. Inbound frames whose identifier is absent
or at or below the threshold are server broadcast chatter and are discarded.

Transport failures are logged and swallowed; nothing in this module raises to
the caller at runtime. There is no reconnect.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from contextlib import suppress
from dataclasses import dataclass
from typing import Final, Self

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException
from websockets.protocol import State

from rcon_scheduler.core.config import DEFAULT_CLIENT_NAME, ServerConfig

__all__ = [
    "NOTIFICATION_PREFIX",
    "RESERVED_IDENTIFIER_THRESHOLD",
    "SENTINEL_IDENTIFIER",
    "CommandChannel",
    "CommandFrame",
    "InboundFrame",
]

SENTINEL_IDENTIFIER: Final[int] = -1
RESERVED_IDENTIFIER_THRESHOLD: Final[int] = 1000
NOTIFICATION_PREFIX: Final[str] = "[Notification] "

SAVE_COMMAND: Final[str] = "server.save"
RESTART_COMMAND: Final[str] = "restart 0"

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CommandFrame:
    """Outbound command frame."""

    identifier: int
    message: str
    name: str

    def to_json(self) -> str:
        return json.dumps({"Identifier": self.identifier, "Message": self.message, "Name": self.name})


@dataclass(slots=True, frozen=True)
class InboundFrame:
    """Parsed inbound frame.

    Only ``identifier`` is interpreted; the full decoded object is kept in
    ``data`` for reply handlers.
    """

    identifier: int | None
    data: Mapping[str, object]

    @classmethod
    def parse(cls, raw: str | bytes) -> Self:
        """Decode a raw frame.

        A missing or non-integer ``Identifier`` yields ``identifier=None``.

        Raises:
            ValueError: If the frame is not a JSON object
        """
        decoded: object = json.loads(raw)  # pyright: ignore[reportAny]  # JSON boundary
        if not isinstance(decoded, dict):
            msg = f"Expected a JSON object, got: {type(decoded).__name__}"
            raise ValueError(msg)

        data: dict[str, object] = {str(key): value for key, value in decoded.items()}  # pyright: ignore[reportUnknownVariableType]  # JSON boundary
        raw_identifier = data.get("Identifier")
        identifier: int | None = None
        if isinstance(raw_identifier, int) and not isinstance(raw_identifier, bool):
            identifier = raw_identifier
        return cls(identifier=identifier, data=data)


type ReplyHandler = Callable[[InboundFrame], object]
type Connector = Callable[[str], Awaitable[ClientConnection]]


def _default_connector(url: str) -> Awaitable[ClientConnection]:
    return connect(url)


class CommandChannel:
    """One persistent command connection to one game server."""

    def __init__(
        self,
        server: ServerConfig,
        *,
        client_name: str = DEFAULT_CLIENT_NAME,
        reply_timeout: float | None = None,
        connector: Connector = _default_connector,
    ) -> None:
        """Initialize the channel (does not connect).

        Args:
            server: Identity of the server this channel talks to
            client_name: Value of the ``Name`` field in every frame
            reply_timeout: Seconds after which an unanswered reply handler is
                dropped; None keeps handlers until their reply arrives
            connector: Coroutine factory opening the WebSocket connection
        """
        self.server: ServerConfig = server
        self.name: str = server.name
        self.client_name: str = client_name
        self.reply_timeout: float | None = reply_timeout
        self._connector: Connector = connector
        self._connection: ClientConnection | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[int, ReplyHandler] = {}
        self._expiry_handles: dict[int, asyncio.TimerHandle] = {}
        self._last_identifier: int = RESERVED_IDENTIFIER_THRESHOLD

    @property
    def is_open(self) -> bool:
        """Return True if the transport is connected and open."""
        connection = self._connection
        return connection is not None and connection.state is State.OPEN

    @property
    def pending_count(self) -> int:
        """Number of reply handlers still waiting for their reply."""
        return len(self._pending)

    async def connect(self) -> bool:
        """Open the transport and start reading inbound frames.

        Returns:
            True if the connection was established
        """
        logger.info("[%s] Connecting to RCON at %s", self.name, self.server.url)
        try:
            connection = await self._connector(self.server.url)
        except (OSError, TimeoutError, WebSocketException) as exc:
            logger.error("[%s] Connection error: %s", self.name, exc)
            return False

        self._connection = connection
        logger.info("[%s] Connected", self.name)
        self._reader_task = asyncio.create_task(
            self._read_loop(connection),
            name=f"rcon-reader-{self.name}",
        )
        return True

    async def close(self) -> None:
        """Close the transport and wait for the reader to finish."""
        connection = self._connection
        if connection is not None:
            await connection.close()

        reader_task = self._reader_task
        if reader_task is not None:
            with suppress(asyncio.CancelledError):
                await reader_task
            self._reader_task = None

        for handle in self._expiry_handles.values():
            handle.cancel()
        self._expiry_handles.clear()

    async def _read_loop(self, connection: ClientConnection) -> None:
        try:
            async for raw in connection:
                self.handle_frame(raw)
        except ConnectionClosedError as exc:
            logger.error("[%s] Connection error: %s", self.name, exc)
        finally:
            logger.info("[%s] Connection closed", self.name)

    def handle_frame(self, raw: str | bytes) -> None:
        """Process one inbound frame."""
        try:
            frame = InboundFrame.parse(raw)
        except (ValueError, RecursionError):
            # RecursionError: nesting deeper than the JSON decoder can handle
            logger.error("[%s] Error parsing message: %s", self.name, raw)
            return

        identifier = frame.identifier
        if identifier is None or identifier <= RESERVED_IDENTIFIER_THRESHOLD:
            return

        callback = self._pending.pop(identifier, None)
        if callback is None:
            return

        expiry = self._expiry_handles.pop(identifier, None)
        if expiry is not None:
            expiry.cancel()

        try:
            _ = callback(frame)
        except Exception:
            logger.exception("[%s] Reply handler for identifier %d failed", self.name, identifier)

    def _next_identifier(self) -> int:
        self._last_identifier += 1
        return self._last_identifier

    def _register(self, identifier: int, callback: ReplyHandler) -> None:
        self._pending[identifier] = callback
        if self.reply_timeout is not None:
            loop = asyncio.get_running_loop()
            self._expiry_handles[identifier] = loop.call_later(
                self.reply_timeout,
                self._expire,
                identifier,
            )

    def _unregister(self, identifier: int) -> None:
        _ = self._pending.pop(identifier, None)
        expiry = self._expiry_handles.pop(identifier, None)
        if expiry is not None:
            expiry.cancel()

    def _expire(self, identifier: int) -> None:
        _ = self._expiry_handles.pop(identifier, None)
        if self._pending.pop(identifier, None) is not None:
            logger.warning("[%s] No reply for identifier %d; dropping handler", self.name, identifier)

    async def send(self, command: str, callback: ReplyHandler | None = None) -> int | None:
        """Send a command frame.

        Args:
            command: Console command text
            callback: Invoked with the reply frame; None sends fire-and-forget

        Returns:
            Identifier used for the frame, or None if nothing was sent
        """
        connection = self._connection
        if connection is None or connection.state is not State.OPEN:
            logger.error("[%s] WebSocket not open. Cannot send: %s", self.name, command)
            return None

        identifier = SENTINEL_IDENTIFIER
        if callback is not None:
            identifier = self._next_identifier()
            self._register(identifier, callback)

        frame = CommandFrame(identifier=identifier, message=command, name=self.client_name)
        try:
            await connection.send(frame.to_json())
        except (ConnectionClosed, OSError) as exc:
            if callback is not None:
                self._unregister(identifier)
            logger.error("[%s] Failed to send %s: %s", self.name, command, exc)
            return None

        logger.info("[%s] Sent command: %s", self.name, command)
        return identifier

    async def announce(self, text: str) -> None:
        """Broadcast a chat message to all players."""
        _ = await self.send(f"say {NOTIFICATION_PREFIX}{text}")

    async def save(self) -> None:
        """Ask the server to persist its world state."""
        _ = await self.send(SAVE_COMMAND)

    async def restart(self) -> None:
        """Restart the server immediately."""
        _ = await self.send(RESTART_COMMAND)
