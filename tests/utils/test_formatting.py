"""Tests for time formatting helpers."""

import math

import pytest

from storyline.utils.formatting import (
    format_as_duration,
    format_as_remaining,
    format_as_short_duration,
    format_progress,
)


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0, "0:00"),
        (59.9, "0:59"),
        (75, "1:15"),
        (3600, "1:00:00"),
        (5025, "1:23:45"),
        (-5, "0:00"),
        (math.nan, "0:00"),
        (None, "0:00"),
    ],
)
def test_format_as_duration(seconds, expected):
    assert format_as_duration(seconds) == expected


@pytest.mark.parametrize(
    "seconds,expected",
    [(45, "45s"), (600, "10m"), (5025, "1h 23m")],
)
def test_format_as_short_duration(seconds, expected):
    assert format_as_short_duration(seconds) == expected


def test_format_as_remaining():
    assert format_as_remaining(1425) == "-23:45"


def test_format_progress():
    assert format_progress(0.256) == "26%"
    assert format_progress(1.7) == "100%"
    assert format_progress(math.nan) == "0%"
