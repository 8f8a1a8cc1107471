"""Tests for the interruption monitor signal mapping."""

from unittest.mock import MagicMock

import pytest

from storyline.domain.playback.interruptions import InterruptionMonitor, InterruptionSignal
from storyline.domain.playback.state import PlaybackSnapshot, PlaybackState


@pytest.fixture
def mock_coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.snapshot.return_value = PlaybackSnapshot(
        state=PlaybackState.PLAYING, title_id="abc"
    )
    return coordinator


class TestInterruptionMonitor:
    def test_began_pauses_and_remembers_playing(self, mock_coordinator) -> None:
        monitor = InterruptionMonitor(mock_coordinator)
        monitor.handle(InterruptionSignal.INTERRUPTION_BEGAN)

        mock_coordinator.pause.assert_called_once()
        assert monitor.was_playing is True

    def test_ended_with_resume_plays(self, mock_coordinator) -> None:
        monitor = InterruptionMonitor(mock_coordinator)
        monitor.handle(InterruptionSignal.INTERRUPTION_BEGAN)
        mock_coordinator.snapshot.return_value = PlaybackSnapshot(state=PlaybackState.PAUSED)

        monitor.handle(InterruptionSignal.INTERRUPTION_ENDED, should_resume=True)

        mock_coordinator.play.assert_called_once()
        assert monitor.was_playing is False

    def test_ended_without_resume_stays_paused(self, mock_coordinator) -> None:
        monitor = InterruptionMonitor(mock_coordinator)
        monitor.handle(InterruptionSignal.INTERRUPTION_BEGAN)
        monitor.handle(InterruptionSignal.INTERRUPTION_ENDED, should_resume=False)

        mock_coordinator.play.assert_not_called()

    def test_resume_requires_playing_before(self, mock_coordinator) -> None:
        mock_coordinator.snapshot.return_value = PlaybackSnapshot(state=PlaybackState.PAUSED)
        monitor = InterruptionMonitor(mock_coordinator)
        monitor.handle(InterruptionSignal.INTERRUPTION_BEGAN)
        monitor.handle(InterruptionSignal.INTERRUPTION_ENDED, should_resume=True)

        mock_coordinator.play.assert_not_called()

    def test_buffering_counts_as_playing(self, mock_coordinator) -> None:
        mock_coordinator.snapshot.return_value = PlaybackSnapshot(
            state=PlaybackState.BUFFERING, title_id="abc"
        )
        monitor = InterruptionMonitor(mock_coordinator)
        monitor.handle(InterruptionSignal.INTERRUPTION_BEGAN)
        monitor.handle(InterruptionSignal.INTERRUPTION_ENDED, should_resume=True)

        mock_coordinator.play.assert_called_once()

    def test_route_lost_pauses(self, mock_coordinator) -> None:
        InterruptionMonitor(mock_coordinator).handle(InterruptionSignal.ROUTE_LOST)
        mock_coordinator.pause.assert_called_once()

    def test_route_gained_does_nothing(self, mock_coordinator) -> None:
        InterruptionMonitor(mock_coordinator).handle(InterruptionSignal.ROUTE_GAINED)
        mock_coordinator.play.assert_not_called()
        mock_coordinator.pause.assert_not_called()
        mock_coordinator.stop.assert_not_called()

    def test_media_services_lost_stops_and_clears(self, mock_coordinator) -> None:
        InterruptionMonitor(mock_coordinator).handle(InterruptionSignal.MEDIA_SERVICES_LOST)
        mock_coordinator.stop.assert_called_once()
        mock_coordinator.clear_now_playing.assert_called_once()

    def test_media_services_reset_reconfigures(self, mock_coordinator) -> None:
        InterruptionMonitor(mock_coordinator).handle(InterruptionSignal.MEDIA_SERVICES_RESET)
        mock_coordinator.reconfigure_output.assert_called_once()
