"""Shared fixtures: a scripted media engine, a temp catalog and a running coordinator."""

from pathlib import Path
from typing import Optional

import pytest

from storyline.core.config import PlaybackConfig
from storyline.domain.errors import ResourceError
from storyline.domain.library.catalog import Catalog
from storyline.domain.library.models import Title
from storyline.domain.playback.coordinator import PlaybackCoordinator
from storyline.domain.playback.engine import MediaEngine
from storyline.domain.playback.now_playing import NowPlayingCenter
from storyline.domain.playback.store import PositionStore


class FakeEngine(MediaEngine):
    """In-memory MediaEngine driven by the test.

    Call tick(), finish() and stall() to simulate the engine's own thread.
    """

    def __init__(self, duration: Optional[float] = 3600.0, fail_open: bool = False):
        super().__init__()
        self.duration = duration
        self.fail_open = fail_open
        self.locator: Optional[str] = None
        self.position = 0.0
        self.playing = False
        self.rate: Optional[float] = None
        self.activations = 0
        self.deactivations = 0
        self.reconfigures = 0
        self.activate_error: Optional[Exception] = None
        self.tick_interval: Optional[float] = None
        self.calls: list[str] = []

    def open(self, locator: str) -> Optional[float]:
        self.calls.append("open")
        if self.fail_open:
            raise ResourceError(locator, "unreadable")
        self.locator = locator
        self.position = 0.0
        self.playing = False
        return self.duration

    def close(self) -> None:
        self.calls.append("close")
        self.locator = None
        self.playing = False

    def play(self, rate: float) -> None:
        self.calls.append("play")
        self.playing = True
        self.rate = rate

    def pause(self) -> None:
        self.calls.append("pause")
        self.playing = False

    def seek(self, time: float) -> None:
        self.calls.append("seek")
        self.position = time

    def current_time(self) -> float:
        return self.position

    def activate_output(self) -> None:
        self.activations += 1
        if self.activate_error:
            raise self.activate_error

    def deactivate_output(self) -> None:
        self.deactivations += 1

    def reconfigure(self) -> None:
        self.reconfigures += 1

    def start_ticks(self, interval: float) -> None:
        self.tick_interval = interval

    def stop_ticks(self) -> None:
        self.tick_interval = None

    # -- simulation helpers --

    def tick(self, position: float) -> None:
        self.position = position
        self.events.on_tick(position)

    def finish(self) -> None:
        self.position = self.duration or 0.0
        self.events.on_end()

    def stall(self, stalled: bool) -> None:
        self.events.on_stall(stalled)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "storyline.db"


@pytest.fixture
def catalog(db_path: Path) -> Catalog:
    return Catalog(db_path)


@pytest.fixture
def title(catalog: Catalog) -> Title:
    """A one hour title at position 0."""
    return catalog.create(
        title="The Long Road",
        author="Ada Writer",
        narrator="Sam Reader",
        duration=3600.0,
        resource_locator="/books/long-road.m4b",
        tags=["Fiction"],
    )


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def playback_config() -> PlaybackConfig:
    return PlaybackConfig(sleep_poll_interval=0.01)


@pytest.fixture
def now_playing() -> NowPlayingCenter:
    return NowPlayingCenter()


@pytest.fixture
def coordinator(engine, catalog, clock, playback_config, now_playing):
    """A started coordinator over the fake engine; shut down after the test."""
    coordinator = PlaybackCoordinator(
        engine,
        PositionStore(catalog, playback_config.finished_threshold),
        playback_config,
        now_playing=now_playing,
        clock=clock,
    ).start()
    yield coordinator
    coordinator.shutdown()

