"""Next-occurrence computation for daily UTC restart times."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from rcon_scheduler.core.config import TIME_OF_DAY_PATTERN

__all__ = ["next_occurrence", "parse_time_of_day"]

_ONE_DAY = timedelta(days=1)


def parse_time_of_day(hhmm: str) -> tuple[int, int]:
    """Parse a zero-padded ``HH:MM`` string into ``(hour, minute)``.

    Raises:
        ValueError: If the value is not a valid 24h time of day

    Examples:
        >>> parse_time_of_day("06:30")
        (6, 30)
    """
    match = TIME_OF_DAY_PATTERN.match(hhmm)
    if match is None:
        msg = f"Expected zero-padded HH:MM (24h), got: {hhmm!r}"
        raise ValueError(msg)
    return int(match.group(1)), int(match.group(2))


def next_occurrence(hhmm: str, now: datetime) -> datetime:
    """Return the next instant strictly after ``now`` at ``hhmm`` UTC.

    Today's instant at ``HH:MM:00`` UTC is used unless it is at or before
    ``now``, in which case it is advanced by exactly one day.

    Args:
        hhmm: Time of day, zero-padded ``HH:MM`` in UTC
        now: Reference instant; naive values are taken as UTC

    Returns:
        Timezone-aware UTC datetime

    Examples:
        >>> next_occurrence("00:00", datetime(2024, 1, 1, tzinfo=UTC))
        datetime.datetime(2024, 1, 2, 0, 0, tzinfo=datetime.timezone.utc)
    """
    hour, minute = parse_time_of_day(hhmm)

    now_utc = now.replace(tzinfo=UTC) if now.tzinfo is None else now.astimezone(UTC)
    candidate = now_utc.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now_utc:
        candidate += _ONE_DAY
    return candidate
