"""Playback domain - the coordination core.

This domain handles:
- The playback coordinator (single-writer session owner)
- The media engine contract and its mpv implementation
- Position write-through, sleep timer and interruption handling
- Now-playing metadata and remote command translation
"""

from .state import (
    END_OF_CHAPTER,
    PlaybackEvent,
    PlaybackSnapshot,
    PlaybackState,
    SleepTimerMode,
    clamp_rate,
    next_rate,
    validate_rate,
)
from .engine import EngineEvents, MediaEngine, TickFeed
from .mpv_engine import MpvEngine, check_mpv_available
from .store import PositionStore
from .sleep_timer import SleepTimer
from .now_playing import (
    NowPlayingCenter,
    NowPlayingInfo,
    NowPlayingLog,
    build_now_playing,
    describe_now_playing,
)
from .coordinator import PlaybackCoordinator
from .interruptions import InterruptionMonitor, InterruptionSignal
from .remote import RemoteCommand, RemoteCommandCenter, RemoteCommandStatus

__all__ = [
    "END_OF_CHAPTER",
    "PlaybackEvent",
    "PlaybackSnapshot",
    "PlaybackState",
    "SleepTimerMode",
    "clamp_rate",
    "next_rate",
    "validate_rate",
    "EngineEvents",
    "MediaEngine",
    "TickFeed",
    "MpvEngine",
    "check_mpv_available",
    "PositionStore",
    "SleepTimer",
    "NowPlayingCenter",
    "NowPlayingInfo",
    "NowPlayingLog",
    "build_now_playing",
    "describe_now_playing",
    "PlaybackCoordinator",
    "InterruptionMonitor",
    "InterruptionSignal",
    "RemoteCommand",
    "RemoteCommandCenter",
    "RemoteCommandStatus",
]
