"""Tests for the engine contract helpers."""

import math
import threading

import pytest

from storyline.domain.playback.engine import EngineEvents, TickFeed, usable_duration


class TestUsableDuration:
    @pytest.mark.parametrize("value,expected", [(3600, 3600.0), ("12.5", 12.5)])
    def test_valid(self, value, expected) -> None:
        assert usable_duration(value) == expected

    @pytest.mark.parametrize("value", [None, 0, -3.0, math.nan, math.inf, "n/a"])
    def test_unusable(self, value) -> None:
        assert usable_duration(value) is None


class TestEngineEvents:
    def test_defaults_are_noops(self) -> None:
        events = EngineEvents()
        events.on_tick(1.0)
        events.on_end()
        events.on_stall(True)


class TestTickFeed:
    def test_polls_until_stopped(self) -> None:
        polled = threading.Event()
        count = []

        def poll() -> None:
            count.append(1)
            if len(count) >= 3:
                polled.set()

        feed = TickFeed(poll, interval=0.01)
        feed.start()
        assert polled.wait(2.0)
        feed.stop()

        assert not feed.running
        stopped_at = len(count)
        threading.Event().wait(0.05)
        assert len(count) == stopped_at

    def test_poll_errors_do_not_kill_feed(self) -> None:
        calls = []
        recovered = threading.Event()

        def poll() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("socket hiccup")
            recovered.set()

        feed = TickFeed(poll, interval=0.01)
        feed.start()
        assert recovered.wait(2.0)
        feed.stop()

    def test_start_twice_keeps_one_thread(self) -> None:
        feed = TickFeed(lambda: None, interval=0.01)
        feed.start()
        thread = feed._thread
        feed.start()
        assert feed._thread is thread
        feed.stop()
