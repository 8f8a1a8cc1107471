"""Time formatting helpers shared by the CLI and the IPC status line."""

import math


def _whole_seconds(seconds: float) -> int:
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return 0
    return int(seconds)


def format_as_duration(seconds: float) -> str:
    """
    Format seconds as H:MM:SS, or M:SS under an hour.

    Args:
        seconds: Time in seconds; negative or non-finite values show as 0:00

    Returns:
        Formatted time string, e.g. "1:23:45" or "23:45"
    """
    total = _whole_seconds(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_as_short_duration(seconds: float) -> str:
    """Format seconds as "1h 23m", "23m" or "45s"."""
    total = _whole_seconds(seconds)
    hours, rest = divmod(total, 3600)
    minutes = rest // 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m"
    return f"{total}s"


def format_as_remaining(seconds: float) -> str:
    """Format time left, e.g. "-23:45"."""
    return f"-{format_as_duration(seconds)}"


def format_progress(fraction: float) -> str:
    fraction = min(max(fraction, 0.0), 1.0) if math.isfinite(fraction) else 0.0
    return f"{fraction * 100:.0f}%"
