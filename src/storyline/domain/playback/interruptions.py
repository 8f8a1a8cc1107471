"""
Interruption monitor: maps external audio-session signals to coordinator commands.

Signal sources (the OS audio session, device hot-plug, the media service
watchdog) call handle() from their own threads; the coordinator serializes
the resulting commands.
"""

from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from .coordinator import PlaybackCoordinator


class InterruptionSignal(str, Enum):
    INTERRUPTION_BEGAN = "interruption_began"
    INTERRUPTION_ENDED = "interruption_ended"
    ROUTE_LOST = "route_lost"
    ROUTE_GAINED = "route_gained"
    MEDIA_SERVICES_LOST = "media_services_lost"
    MEDIA_SERVICES_RESET = "media_services_reset"


class InterruptionMonitor:
    """Translates interruption signals into coordinator commands.

    Whether playback was active is captured when the interruption begins,
    because the resume decision depends on the intent before the
    interruption rather than the paused state after it.
    """

    def __init__(self, coordinator: "PlaybackCoordinator"):
        self.coordinator = coordinator
        self._was_playing = False

    @property
    def was_playing(self) -> bool:
        return self._was_playing

    def handle(self, signal: InterruptionSignal, should_resume: bool = False) -> None:
        logger.debug(f"Interruption signal: {signal.value} (should_resume={should_resume})")

        if signal is InterruptionSignal.INTERRUPTION_BEGAN:
            self._was_playing = self.coordinator.snapshot().is_active
            self.coordinator.pause()

        elif signal is InterruptionSignal.INTERRUPTION_ENDED:
            resume = should_resume and self._was_playing
            self._was_playing = False
            if resume:
                logger.info("Interruption ended, resuming playback")
                self.coordinator.play()
            else:
                logger.info("Interruption ended, staying paused")

        elif signal is InterruptionSignal.ROUTE_LOST:
            logger.info("Audio route lost, pausing")
            self.coordinator.pause()

        elif signal is InterruptionSignal.ROUTE_GAINED:
            logger.info("Audio route gained")

        elif signal is InterruptionSignal.MEDIA_SERVICES_LOST:
            logger.warning("Media services lost, stopping playback")
            self.coordinator.stop()
            self.coordinator.clear_now_playing()

        elif signal is InterruptionSignal.MEDIA_SERVICES_RESET:
            logger.warning("Media services reset, reconfiguring output")
            self.coordinator.reconfigure_output()
