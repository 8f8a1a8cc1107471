"""Now-playing metadata published to the platform shell."""

import threading
from typing import Callable, NamedTuple, Optional

from loguru import logger

from storyline.domain.library.models import Title

from .state import PlaybackSnapshot, PlaybackState


class NowPlayingInfo(NamedTuple):
    title: str
    author: str
    narrator: Optional[str]
    elapsed: float
    duration: float
    rate: float
    default_rate: float
    progress: float
    playback_state: PlaybackState
    artwork_path: Optional[str] = None


def build_now_playing(
    title: Title, snapshot: PlaybackSnapshot, default_rate: float = 1.0
) -> NowPlayingInfo:
    """Now-playing fields for ``title`` in the given session snapshot.

    The published rate is 0 unless playback is advancing, so platform
    scrubbers do not extrapolate elapsed time while paused.
    """
    return NowPlayingInfo(
        title=title.title,
        author=title.author,
        narrator=title.narrator,
        elapsed=snapshot.current_time,
        duration=snapshot.duration,
        rate=snapshot.rate if snapshot.is_playing else 0.0,
        default_rate=default_rate,
        progress=snapshot.progress,
        playback_state=snapshot.state,
        artwork_path=title.artwork_path,
    )


class NowPlayingCenter:
    """Holds the latest now-playing info and fans it out to sinks.

    A sink receives a NowPlayingInfo, or None when the metadata is cleared.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._info: Optional[NowPlayingInfo] = None
        self._sinks: list[Callable[[Optional[NowPlayingInfo]], None]] = []

    @property
    def info(self) -> Optional[NowPlayingInfo]:
        return self._info

    def add_sink(self, sink: Callable[[Optional[NowPlayingInfo]], None]) -> None:
        with self._lock:
            self._sinks.append(sink)

    def publish(self, info: NowPlayingInfo, force: bool = False) -> None:
        """Publish ``info``; unchanged info is skipped unless ``force``."""
        with self._lock:
            if info == self._info and not force:
                return
            self._info = info
            sinks = list(self._sinks)
        self._deliver(sinks, info)

    def clear(self) -> None:
        with self._lock:
            self._info = None
            sinks = list(self._sinks)
        self._deliver(sinks, None)

    def _deliver(self, sinks, info: Optional[NowPlayingInfo]) -> None:
        for sink in sinks:
            try:
                sink(info)
            except Exception:
                logger.exception("Now-playing sink failed")


class NowPlayingLog:
    """Sink that logs when the title or playback state changes.

    Elapsed-time updates arrive every tick and are not logged.
    """

    def __init__(self):
        self._last: Optional[tuple] = None

    def __call__(self, info: Optional[NowPlayingInfo]) -> None:
        key = None if info is None else (info.title, info.playback_state)
        if key == self._last:
            return
        self._last = key
        if info is None:
            logger.info("Now playing cleared")
        else:
            logger.info(f"Now playing: {info.title} by {info.author} ({info.playback_state.value})")


def describe_now_playing(info: Optional[NowPlayingInfo]) -> str:
    if info is None:
        return "Nothing playing"
    line = f"{info.title} - {info.author}"
    if info.narrator:
        line += f", read by {info.narrator}"
    return f"{line} ({info.playback_state.value}, {info.progress:.0%})"
