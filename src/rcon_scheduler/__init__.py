"""rcon-scheduler - Scheduled daily restarts for WebRCON game servers.

This package keeps a persistent WebRCON command channel to every configured
server, announces upcoming restarts in-game on a fixed countdown, and saves
and restarts each server at its configured UTC times, optionally notifying a
Discord webhook.
"""

from rcon_scheduler.__main__ import main

__all__ = ["main"]
