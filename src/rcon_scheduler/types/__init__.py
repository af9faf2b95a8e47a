"""Shared type definitions."""

from rcon_scheduler.types.protocols import RestartNotifier, RestartTarget

__all__ = ["RestartNotifier", "RestartTarget"]
