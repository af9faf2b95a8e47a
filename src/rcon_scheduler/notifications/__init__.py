"""Out-of-band restart notifications."""

from rcon_scheduler.notifications.discord import DiscordEmbed, DiscordWebhookNotifier

__all__ = ["DiscordEmbed", "DiscordWebhookNotifier"]
