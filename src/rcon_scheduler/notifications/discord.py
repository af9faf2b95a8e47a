"""Discord webhook notifier for executed restarts."""

from __future__ import annotations

import logging
from typing import Final, TypedDict, override

import httpx
from pydantic import BaseModel, Field, ValidationError

from rcon_scheduler.core.config import DEFAULT_RECONNECT_MESSAGE
from rcon_scheduler.utils.sanitization import sanitize_exception, sanitize_url

__all__ = ["RESTART_EMBED_COLOR", "DiscordEmbed", "DiscordWebhookNotifier", "WebhookPayload"]

# Red
RESTART_EMBED_COLOR: Final[int] = 16711680

DEFAULT_TIMEOUT_SECONDS: Final[float] = 10.0

logger = logging.getLogger(__name__)


class DiscordEmbed(BaseModel):
    """Discord embed structure."""

    title: str | None = Field(None, max_length=256)
    description: str | None = Field(None, max_length=4096)
    color: int | None = None


class WebhookPayload(TypedDict, total=False):
    """Discord webhook payload structure."""

    content: str
    embeds: list[dict[str, object]]


class DiscordWebhookNotifier:
    """Posts a single embed per executed restart.

    One attempt per notification, no retries. Failures are logged and never
    propagate to the caller.
    """

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        reconnect_message: str = DEFAULT_RECONNECT_MESSAGE,
    ) -> None:
        """Initialize the notifier.

        Args:
            webhook_url: Discord webhook URL
            timeout: Request timeout in seconds
            reconnect_message: Embed description shown to players
        """
        self.webhook_url: str = webhook_url
        self.timeout: float = timeout
        self.reconnect_message: str = reconnect_message

    def build_embed(self, server_name: str, label: str) -> DiscordEmbed:
        """Build the restart embed for one server.

        Examples:
            >>> notifier = DiscordWebhookNotifier("https://discord.com/api/webhooks/1/x")
            >>> notifier.build_embed("Main", "Daily restart").title
            'Main - Daily restart'
        """
        return DiscordEmbed(
            title=f"{server_name} - {label}",
            description=self.reconnect_message,
            color=RESTART_EMBED_COLOR,
        )

    async def notify_restart(self, server_name: str, label: str) -> bool:
        """Post the restart embed.

        Args:
            server_name: Display name of the restarting server
            label: Event label, e.g. "Daily restart"

        Returns:
            True if the webhook accepted the message, False otherwise
        """
        try:
            embed = self.build_embed(server_name, label)
        except ValidationError as exc:
            logger.error("[%s] Discord webhook error: invalid embed: %s", server_name, exc)
            return False

        payload: WebhookPayload = {"embeds": [embed.model_dump(exclude_none=True)]}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("[%s] Discord webhook error: %s", server_name, sanitize_exception(exc))
            return False

        if response.is_success:
            logger.info("[%s] Discord notification sent.", server_name)
            return True

        logger.error(
            "[%s] Discord webhook error: status %d: %s",
            server_name,
            response.status_code,
            response.text,
        )
        return False

    @override
    def __repr__(self) -> str:
        return f"DiscordWebhookNotifier(webhook_url={sanitize_url(self.webhook_url)!r})"
