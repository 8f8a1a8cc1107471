"""
Sleep timer: a single cancellable delayed pause.

Every start or cancel bumps a generation counter. The waiter thread reports
expiry together with the generation it was started for, and the owner must
claim() that generation before acting. A cancel issued at any point before
the claim makes the claim fail, so cancellation always wins.
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger


class SleepTimer:
    def __init__(
        self,
        on_expire: Callable[[int], None],
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.on_expire = on_expire
        self.poll_interval = poll_interval
        self.clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._deadline: Optional[float] = None
        self._at_chapter_end = False
        self._wake: Optional[threading.Event] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._deadline is not None or self._at_chapter_end

    @property
    def at_chapter_end(self) -> bool:
        return self._at_chapter_end

    def remaining(self) -> Optional[float]:
        """Seconds until expiry, or None when no timed countdown is running."""
        with self._lock:
            if self._deadline is None:
                return None
            return max(0.0, self._deadline - self.clock())

    def start(self, minutes: float) -> int:
        """Start a countdown, replacing any active timer.

        Non-positive ``minutes`` only cancel. Returns the new generation.
        """
        self.cancel()
        if minutes <= 0:
            return self._generation

        with self._lock:
            self._generation += 1
            generation = self._generation
            self._deadline = self.clock() + minutes * 60.0
            wake = threading.Event()
            self._wake = wake

        thread = threading.Thread(
            target=self._wait,
            args=(generation, wake),
            name=f"sleep-timer-{generation}",
            daemon=True,
        )
        thread.start()
        logger.info(f"Sleep timer set for {minutes:g} minutes")
        return generation

    def start_end_of_chapter(self) -> int:
        """Arm the end-of-chapter mode.

        Chapter boundaries are not tracked, so this only records the pending
        flag; it never expires on its own.
        """
        self.cancel()
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._at_chapter_end = True
        logger.info("Sleep timer set for end of chapter")
        return generation

    def cancel(self, generation: Optional[int] = None) -> bool:
        """Cancel any active timer. Returns True if one was active.

        With ``generation``, cancel only if the timer has not been started or
        cancelled since that generation was read.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            was_active = self._deadline is not None or self._at_chapter_end
            self._generation += 1
            self._deadline = None
            self._at_chapter_end = False
            wake, self._wake = self._wake, None
        if wake is not None:
            wake.set()
        if was_active:
            logger.info("Sleep timer cancelled")
        return was_active

    def claim(self, generation: int) -> bool:
        """Consume an expiry. False if the timer was cancelled or restarted since."""
        with self._lock:
            if generation != self._generation or self._deadline is None:
                return False
            self._deadline = None
            self._wake = None
            return True

    def _wait(self, generation: int, wake: threading.Event) -> None:
        while True:
            with self._lock:
                if generation != self._generation or self._deadline is None:
                    return
                left = self._deadline - self.clock()
            if left <= 0:
                break
            if wake.wait(min(self.poll_interval, left)):
                return

        logger.debug(f"Sleep timer generation {generation} expired")
        try:
            self.on_expire(generation)
        except Exception:
            logger.exception("Sleep timer expiry callback failed")
