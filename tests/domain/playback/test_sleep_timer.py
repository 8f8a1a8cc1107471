"""Tests for the sleep timer generation/claim protocol."""

import threading

import pytest

from storyline.domain.playback.sleep_timer import SleepTimer


@pytest.fixture
def expired():
    """Records generations reported by the waiter thread."""
    generations = []
    event = threading.Event()

    def on_expire(generation: int) -> None:
        generations.append(generation)
        event.set()

    on_expire.generations = generations
    on_expire.event = event
    return on_expire


class TestSleepTimer:
    def test_inactive_by_default(self, expired) -> None:
        timer = SleepTimer(expired)
        assert timer.remaining() is None
        assert not timer.is_active
        assert not timer.at_chapter_end

    def test_expiry_reports_generation(self, expired) -> None:
        timer = SleepTimer(expired, poll_interval=0.01)
        generation = timer.start(0.001)

        assert expired.event.wait(2.0)
        assert expired.generations == [generation]
        assert timer.claim(generation) is True
        assert not timer.is_active

    def test_claim_only_once(self, expired) -> None:
        timer = SleepTimer(expired, poll_interval=0.01)
        generation = timer.start(0.001)
        expired.event.wait(2.0)

        assert timer.claim(generation) is True
        assert timer.claim(generation) is False

    def test_cancel_before_expiry_never_fires(self, expired) -> None:
        timer = SleepTimer(expired, poll_interval=0.01)
        timer.start(0.002)
        assert timer.cancel() is True

        assert not expired.event.wait(0.3)
        assert expired.generations == []

    def test_cancel_after_fire_wins_over_claim(self, expired) -> None:
        """A waiter that already fired cannot act once cancel was requested."""
        timer = SleepTimer(expired, poll_interval=0.01)
        generation = timer.start(0.001)
        expired.event.wait(2.0)

        timer.cancel()
        assert timer.claim(generation) is False

    def test_restart_invalidates_previous_generation(self, expired) -> None:
        timer = SleepTimer(expired, poll_interval=0.01)
        first = timer.start(10)
        second = timer.start(20)

        assert second != first
        assert timer.claim(first) is False
        assert 19 * 60 < timer.remaining() <= 20 * 60
        timer.cancel()

    def test_remaining_uses_clock(self, expired) -> None:
        now = [100.0]
        timer = SleepTimer(expired, poll_interval=0.01, clock=lambda: now[0])
        timer.start(5)
        assert timer.remaining() == 300.0

        now[0] += 120.0
        assert timer.remaining() == 180.0
        timer.cancel()

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_non_positive_minutes_cancel(self, expired, minutes) -> None:
        timer = SleepTimer(expired)
        timer.start(10)
        timer.start(minutes)
        assert not timer.is_active

    def test_end_of_chapter_sets_flag_only(self, expired) -> None:
        timer = SleepTimer(expired)
        generation = timer.start_end_of_chapter()

        assert timer.at_chapter_end
        assert timer.is_active
        assert timer.remaining() is None
        assert timer.claim(generation) is False

        timer.cancel()
        assert not timer.at_chapter_end

    def test_end_of_chapter_returns_current_generation(self, expired) -> None:
        timer = SleepTimer(expired)
        assert timer.start_end_of_chapter() == timer.generation

    def test_cancel_with_stale_generation_keeps_newer_timer(self, expired) -> None:
        timer = SleepTimer(expired)
        stale = timer.generation
        timer.start(30)

        assert timer.cancel(stale) is False
        assert timer.is_active
        assert timer.cancel(timer.generation) is True
        assert not timer.is_active

    def test_cancel_when_inactive_returns_false(self, expired) -> None:
        assert SleepTimer(expired).cancel() is False

    def test_callback_errors_are_contained(self) -> None:
        called = threading.Event()

        def broken(generation: int) -> None:
            called.set()
            raise RuntimeError("boom")

        timer = SleepTimer(broken, poll_interval=0.01)
        timer.start(0.001)
        assert called.wait(2.0)
