"""Shared utility modules for common operations.

This package provides:
- Countdown duration formatting (seconds to "2 minutes and 5 seconds")
- Secret sanitization for log output and error messages
- Logging setup with daily rotated, compressed log files
"""

from rcon_scheduler.utils.formatting import format_time
from rcon_scheduler.utils.sanitization import REDACTED, sanitize_url, sanitize_value

__all__ = ["REDACTED", "format_time", "sanitize_url", "sanitize_value"]
