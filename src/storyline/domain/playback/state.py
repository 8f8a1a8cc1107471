"""
Playback session state for Storyline

Immutable snapshots published by the coordinator, the state machine's
states, and playback rate validation.
"""

import math
from enum import Enum
from typing import Optional, NamedTuple

from storyline.core.config import DEFAULT_RATE, SUPPORTED_RATES
from storyline.domain.errors import InvalidCommandError


class PlaybackState(str, Enum):
    """Coordinator state machine states."""

    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"


class PlaybackEvent(str, Enum):
    """Discrete notifications delivered alongside snapshots."""

    LOAD_FAILED = "load_failed"
    SLEEP_TIMER_ELAPSED = "sleep_timer_elapsed"
    FINISHED = "finished"


class SleepTimerMode(str, Enum):
    END_OF_CHAPTER = "end_of_chapter"


# Sentinel accepted by set_sleep_timer in place of a number of minutes
END_OF_CHAPTER = SleepTimerMode.END_OF_CHAPTER


class PlaybackSnapshot(NamedTuple):
    """Immutable view of the playback session."""

    state: PlaybackState = PlaybackState.STOPPED
    title_id: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    current_time: float = 0.0
    duration: float = 0.0
    rate: float = DEFAULT_RATE
    sleep_remaining: Optional[float] = None
    sleep_at_chapter_end: bool = False

    @property
    def is_loaded(self) -> bool:
        return self.title_id is not None

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_active(self) -> bool:
        """Playing, or buffering with playback intended."""
        return self.state in (PlaybackState.PLAYING, PlaybackState.BUFFERING)

    @property
    def progress(self) -> float:
        if self.duration <= 0:
            return 0.0
        return min(self.current_time / self.duration, 1.0)


def clamp_rate(rate: float, default: float = DEFAULT_RATE) -> float:
    """Snap ``rate`` to the nearest supported playback speed.

    Remote controls send approximate values (e.g. 1.3), so out-of-set values
    are clamped rather than rejected. Non-finite or non-positive values fall
    back to ``default``.
    """
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(rate) or rate <= 0:
        return default
    # Ties resolve to the slower speed
    return min(SUPPORTED_RATES, key=lambda supported: (abs(supported - rate), supported))


def next_rate(rate: float, default: float = DEFAULT_RATE) -> float:
    """The supported speed after ``rate``, wrapping to the slowest.

    A rate outside the supported set restarts the cycle at ``default``.
    """
    if rate not in SUPPORTED_RATES:
        return default
    return SUPPORTED_RATES[(SUPPORTED_RATES.index(rate) + 1) % len(SUPPORTED_RATES)]


def validate_rate(rate: float, strict: bool = False) -> float:
    """Return a supported rate for ``rate``.

    Raises:
        InvalidCommandError: In strict mode, if ``rate`` is not supported
    """
    if strict and rate not in SUPPORTED_RATES:
        raise InvalidCommandError(
            f"Unsupported playback rate {rate!r}; expected one of {list(SUPPORTED_RATES)}"
        )
    return clamp_rate(rate)
