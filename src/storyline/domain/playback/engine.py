"""
Media engine contract.

The coordinator is the only caller of a MediaEngine. Engines report time
ticks, end of media and buffering stalls through EngineEvents callbacks,
invoked from the engine's own thread.
"""

import math
import threading
from abc import ABC, abstractmethod
from typing import Callable, NamedTuple, Optional

from loguru import logger


def _ignore_tick(position: float) -> None:
    pass


def _ignore_end() -> None:
    pass


def _ignore_stall(stalled: bool) -> None:
    pass


class EngineEvents(NamedTuple):
    """Callbacks an engine invokes from its tick thread."""

    on_tick: Callable[[float], None] = _ignore_tick
    on_end: Callable[[], None] = _ignore_end
    on_stall: Callable[[bool], None] = _ignore_stall


def usable_duration(value) -> Optional[float]:
    """Return ``value`` as seconds, or None if it is unknown, non-finite or <= 0."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


class MediaEngine(ABC):
    """Abstract Base Class for the audio decode/output primitive."""

    def __init__(self) -> None:
        self.events = EngineEvents()

    def set_events(self, events: EngineEvents) -> None:
        self.events = events

    @abstractmethod
    def open(self, locator: str) -> Optional[float]:
        """
        Open an audio resource, paused at position 0.

        Args:
            locator: Path or URL of the resource

        Returns:
            Duration in seconds, or None if the resource does not report one

        Raises:
            ResourceError: If the resource cannot be opened or decoded
        """

    @abstractmethod
    def close(self) -> None:
        """Unload the current resource."""

    @abstractmethod
    def play(self, rate: float) -> None:
        """Start advancing at ``rate``."""

    @abstractmethod
    def pause(self) -> None:
        """Stop advancing."""

    @abstractmethod
    def seek(self, time: float) -> None:
        """Move to an absolute position in seconds."""

    @abstractmethod
    def current_time(self) -> float:
        """Current position in seconds."""

    @abstractmethod
    def activate_output(self) -> None:
        """Claim the audio output route.

        Raises:
            EngineTransientError: If the output cannot be claimed
        """

    @abstractmethod
    def deactivate_output(self) -> None:
        """Release the audio output route.

        Raises:
            EngineTransientError: If the output cannot be released
        """

    @abstractmethod
    def reconfigure(self) -> None:
        """Rebuild the output after the media subsystem was reset."""

    @abstractmethod
    def start_ticks(self, interval: float) -> None:
        """Begin delivering on_tick every ``interval`` seconds."""

    @abstractmethod
    def stop_ticks(self) -> None:
        """Stop the tick feed."""

    def shutdown(self) -> None:
        """Release every engine resource."""
        self.stop_ticks()


class TickFeed:
    """Background thread calling ``poll`` every ``interval`` seconds.

    Runs until stop() is called. Exceptions from ``poll`` are logged and the
    feed keeps running.
    """

    def __init__(self, poll: Callable[[], None], interval: float, name: str = "tick-feed"):
        self.poll = poll
        self.interval = interval
        self.name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.poll()
            except Exception:
                logger.exception(f"{self.name}: poll failed")
