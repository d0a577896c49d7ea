"""Tests for time-tracking duration helpers."""

import re

import pytest

from gitlab_mcp.core.durations import (
    DURATION_PATTERN,
    calculate_accuracy_percentage,
    calculate_variance_percentage,
    format_seconds_to_human_duration,
    get_time_tracking_status,
    parse_duration_to_seconds,
)


class TestParseDuration:
    """Tests for parse_duration_to_seconds."""

    @pytest.mark.parametrize(
        "text,seconds",
        [
            ("1h", 3600),
            ("30m", 1800),
            ("1d", 28800),
            ("1w", 144000),
            ("1mo", 576000),
            ("2h 30m", 9000),
            ("2h30m", 9000),
            ("1d 4h 30m", 45000),
            ("1mo 1w 1d 1h 1m", 752460),
            ("2 h", 7200),
            ("", 0),
            ("soon", 0),
        ],
    )
    def test_parse(self, text, seconds):
        assert parse_duration_to_seconds(text) == seconds


class TestFormatDuration:
    """Tests for format_seconds_to_human_duration."""

    @pytest.mark.parametrize(
        "seconds,text",
        [
            (0, "0m"),
            (-5, "0m"),
            (59, "0m"),
            (5400, "1h 30m"),
            (28800, "1d"),
            (32400, "1d 1h"),
            (86400, "3d"),
            (90060, "3d 1h 1m"),
            (144000, "1w"),
            (576000, "1mo"),
            (752460, "1mo 1w 1d 1h 1m"),
        ],
    )
    def test_format(self, seconds, text):
        assert format_seconds_to_human_duration(seconds) == text


class TestComparison:
    """Tests for estimate-vs-actual helpers."""

    def test_accuracy(self):
        assert calculate_accuracy_percentage(3600, 7200) == 50

    def test_accuracy_guards_zero(self):
        assert calculate_accuracy_percentage(0, 3600) == 0
        assert calculate_accuracy_percentage(3600, 0) == 0

    def test_variance(self):
        assert calculate_variance_percentage(3600, 5400) == 50
        assert calculate_variance_percentage(0, 5400) == 0

    @pytest.mark.parametrize(
        "estimated,actual,status",
        [(3600, 3600, "exact"), (3600, 7200, "over_estimate"), (7200, 3600, "under_estimate")],
    )
    def test_status(self, estimated, actual, status):
        assert get_time_tracking_status(estimated, actual) == status


class TestDurationPattern:
    """Tests for DURATION_PATTERN."""

    @pytest.mark.parametrize("text", ["1h", "2h30m", "1mo 2w", " 3d ", "1 h 5 m"])
    def test_accepts(self, text):
        assert re.match(DURATION_PATTERN, text)

    @pytest.mark.parametrize("text", ["", "soon", "1x", "h", "1h later", "-1h"])
    def test_rejects(self, text):
        assert re.match(DURATION_PATTERN, text) is None
