"""Pure formatting utilities for in-game announcement text.

This module provides stateless formatting functions for converting countdown
durations into the phrasing used by restart announcements. All functions are
pure with no side effects.
"""

_MINUTE = 60


def _plural(count: int, unit: str) -> str:
    return unit if count == 1 else f"{unit}s"


def format_time(total_seconds: float) -> str:
    """Convert a countdown duration into announcement phrasing.

    Fractional seconds are floored before formatting. Durations of a minute or
    more are expressed in minutes, with the leftover seconds appended only when
    non-zero.

    Args:
        total_seconds: Duration in seconds

    Returns:
        Human-readable duration string

    Examples:
        >>> format_time(5)
        '5 seconds'
        >>> format_time(1)
        '1 second'
        >>> format_time(90)
        '1 minute and 30 seconds'
        >>> format_time(120)
        '2 minutes'
        >>> format_time(61)
        '1 minute and 1 second'
    """
    seconds_total = int(total_seconds // 1)

    if seconds_total >= _MINUTE:
        minutes = seconds_total // _MINUTE
        seconds = seconds_total % _MINUTE
        minute_str = f"{minutes} {_plural(minutes, 'minute')}"
        if seconds > 0:
            return f"{minute_str} and {seconds} {_plural(seconds, 'second')}"
        return minute_str

    if seconds_total == 1:
        return "1 second"
    return f"{seconds_total} seconds"
