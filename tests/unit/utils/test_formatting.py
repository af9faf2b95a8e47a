"""Unit tests for countdown duration formatting."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from rcon_scheduler.utils.formatting import format_time


@pytest.mark.unit
class TestFormatTime:
    """Test format_time phrasing and pluralization."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0 seconds"),
            (1, "1 second"),
            (5, "5 seconds"),
            (59, "59 seconds"),
            (60, "1 minute"),
            (61, "1 minute and 1 second"),
            (90, "1 minute and 30 seconds"),
            (120, "2 minutes"),
            (121, "2 minutes and 1 second"),
            (300, "5 minutes"),
            (1800, "30 minutes"),
        ],
    )
    def test_known_values(self, seconds: int, expected: str) -> None:
        """Test the phrasing used by countdown announcements."""
        assert format_time(seconds) == expected

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (1.9, "1 second"),
            (59.999, "59 seconds"),
            (60.5, "1 minute"),
            (90.2, "1 minute and 30 seconds"),
        ],
    )
    def test_fractional_seconds_are_floored(self, seconds: float, expected: str) -> None:
        """Test fractional durations are floored before formatting."""
        assert format_time(seconds) == expected

    @given(st.integers(min_value=60, max_value=100_000))
    def test_minutes_and_remainder_round_trip(self, seconds: int) -> None:
        """Test the rendered minutes and seconds add back up to the input."""
        text = format_time(seconds)
        parts = text.split(" and ")
        minutes = int(parts[0].split()[0])
        remainder = int(parts[1].split()[0]) if len(parts) == 2 else 0

        assert minutes * 60 + remainder == seconds
        assert 0 <= remainder < 60

    @given(st.integers(min_value=0, max_value=100_000))
    def test_singular_only_for_one(self, seconds: int) -> None:
        """Test units are singular exactly when their count is one."""
        for chunk in format_time(seconds).split(" and "):
            count_str, unit = chunk.split()
            assert unit.endswith("s") == (int(count_str) != 1)
