"""
Playback coordinator for Storyline

The single owner of the playback session. Every public command is queued
and executed in order on one worker thread, which is the only code that
mutates session state or calls the media engine. Callers get a Future that
resolves to whether the command changed state, and observe the session
through immutable snapshots pushed to subscribers.
"""

import math
import queue
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Optional, Union

from loguru import logger

from storyline.core.config import PlaybackConfig
from storyline.domain.errors import EngineTransientError, ResourceError, StorageError
from storyline.domain.library.models import Title

from .engine import EngineEvents, MediaEngine
from .now_playing import NowPlayingCenter, build_now_playing
from .sleep_timer import SleepTimer
from .state import (
    END_OF_CHAPTER,
    PlaybackEvent,
    PlaybackSnapshot,
    PlaybackState,
    SleepTimerMode,
    clamp_rate,
    next_rate,
)
from .store import PositionStore

SnapshotListener = Callable[[PlaybackSnapshot], None]
EventListener = Callable[[PlaybackEvent], None]

_STOP_WORKER = object()


class PlaybackCoordinator:
    """Serializes playback commands and publishes session snapshots.

    Args:
        engine: Media engine; nothing else may call it while the
            coordinator is running
        store: Write-through position persistence
        config: Playback tunables (skip interval, auto-save cadence, rates)
        now_playing: Receives now-playing metadata on every change
        notifier: Called with the title name when the sleep timer pauses
        clock: Monotonic clock used for the auto-save counter
    """

    def __init__(
        self,
        engine: MediaEngine,
        store: PositionStore,
        config: Optional[PlaybackConfig] = None,
        now_playing: Optional[NowPlayingCenter] = None,
        notifier: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.store = store
        self.config = config or PlaybackConfig()
        self.now_playing = now_playing or NowPlayingCenter()
        self.notifier = notifier
        self.clock = clock
        self.sleep_timer = SleepTimer(
            self._on_sleep_expired, poll_interval=self.config.sleep_poll_interval
        )

        self._queue: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._accepting = True
        self._lock = threading.RLock()
        self._listeners: list[SnapshotListener] = []
        self._event_listeners: list[EventListener] = []

        self._tick_lock = threading.Lock()
        self._pending_tick: Optional[float] = None

        # Session state, owned by the worker thread
        self._title: Optional[Title] = None
        self._state = PlaybackState.STOPPED
        self._rate = self.config.default_rate
        self._current_time = 0.0
        self._duration = 0.0
        self._intent_play = False
        self._since_save = 0.0
        self._last_tick_at: Optional[float] = None
        self._now_playing_suspended = False

        self._snapshot = PlaybackSnapshot(rate=self._rate)

        engine.set_events(
            EngineEvents(
                on_tick=self._on_engine_tick,
                on_end=self._on_engine_end,
                on_stall=self._on_engine_stall,
            )
        )

    # -- lifecycle -----------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> "PlaybackCoordinator":
        if self.is_running:
            return self
        self._accepting = True
        self._worker = threading.Thread(
            target=self._run, name="playback-coordinator", daemon=True
        )
        self._worker.start()
        logger.debug("Playback coordinator started")
        return self

    def shutdown(self, timeout: float = 5.0) -> None:
        """Flush the position, stop the worker, and release the engine."""
        if not self.is_running:
            return
        self.sleep_timer.cancel()
        self.engine.stop_ticks()
        self._submit("shutdown", self._shutdown_session)
        self._accepting = False
        self._queue.put(_STOP_WORKER)
        self._worker.join(timeout)
        if self._worker.is_alive():
            logger.warning("Playback coordinator did not stop within {}s", timeout)
        self._worker = None
        self.engine.shutdown()
        logger.info("Playback coordinator stopped")

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Block until every command submitted so far has run."""
        if not self.is_running:
            return
        self._submit("sync", lambda: False).result(timeout)

    # -- observation ---------------------------------------------------

    def snapshot(self) -> PlaybackSnapshot:
        with self._lock:
            snapshot = self._snapshot
        return snapshot._replace(sleep_remaining=self.sleep_timer.remaining())

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener; it receives the current snapshot immediately."""
        with self._lock:
            self._listeners.append(listener)
        self._deliver(listener, self.snapshot())

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def subscribe_events(self, listener: EventListener) -> Callable[[], None]:
        with self._lock:
            self._event_listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._event_listeners:
                    self._event_listeners.remove(listener)

        return unsubscribe

    @property
    def loaded_title(self) -> Optional[Title]:
        return self._title

    # -- commands ------------------------------------------------------

    def load(self, title: Title) -> Future:
        # A sleep timer armed after this call survives the load
        return self._submit("load", self._load, title, self.sleep_timer.generation)

    def play(self) -> Future:
        return self._submit("play", self._play)

    def pause(self) -> Future:
        return self._submit("pause", self._pause)

    def stop(self) -> Future:
        return self._submit("stop", self._stop)

    def toggle_play_pause(self) -> Future:
        return self._submit("toggle", self._toggle)

    def seek(self, time: float) -> Future:
        return self._submit("seek", self._seek, time)

    def skip_forward(self) -> Future:
        return self._submit("skip_forward", self._skip, self.config.skip_interval)

    def skip_backward(self) -> Future:
        return self._submit("skip_backward", self._skip, -self.config.skip_interval)

    def set_rate(self, rate: float) -> Future:
        return self._submit("set_rate", self._set_rate, rate)

    def cycle_rate(self) -> Future:
        """Step to the next supported rate, wrapping to the slowest."""
        return self._submit("cycle_rate", self._cycle_rate)

    def restart(self) -> Future:
        """Rewind the loaded title to the start and clear its finished flag."""
        return self._submit("restart", self._restart)

    def mark_finished(self) -> Future:
        return self._submit("mark_finished", self._end_of_media)

    def toggle_favorite(self) -> Future:
        return self._submit("toggle_favorite", self._toggle_favorite)

    def set_sleep_timer(self, minutes: Union[float, SleepTimerMode]) -> Future:
        """Start a sleep timer of ``minutes``, or END_OF_CHAPTER.

        The timer is armed on the calling thread so that a later
        cancel_sleep_timer() from the same caller always applies after it.
        """
        if minutes == END_OF_CHAPTER:
            self.sleep_timer.start_end_of_chapter()
        else:
            try:
                minutes = float(minutes)
            except (TypeError, ValueError):
                minutes = math.nan
            if not math.isfinite(minutes):
                logger.warning(f"Ignoring sleep timer of {minutes!r} minutes")
                return self._submit("set_sleep_timer", lambda: False)
            self.sleep_timer.start(minutes)
        return self._submit("set_sleep_timer", lambda: True)

    def cancel_sleep_timer(self) -> Future:
        """Cancel the sleep timer. Takes effect before this call returns."""
        cancelled = self.sleep_timer.cancel()
        return self._submit("cancel_sleep_timer", lambda: cancelled)

    def clear_now_playing(self) -> Future:
        return self._submit("clear_now_playing", self._clear_now_playing)

    def reconfigure_output(self) -> Future:
        return self._submit("reconfigure_output", self._reconfigure_output)

    # -- engine callbacks (engine thread) ------------------------------

    def _on_engine_tick(self, position: float) -> None:
        with self._tick_lock:
            queued = self._pending_tick is not None
            self._pending_tick = position
        if not queued:
            self._submit("tick", self._apply_pending_tick)

    def _on_engine_end(self) -> None:
        self._submit("end_of_media", self._end_of_media)

    def _on_engine_stall(self, stalled: bool) -> None:
        self._submit("stall", self._stall, stalled)

    def _on_sleep_expired(self, generation: int) -> None:
        self._submit("sleep_expired", self._sleep_expired, generation)

    # -- worker --------------------------------------------------------

    def _submit(self, name: str, fn: Callable[..., bool], *args: Any) -> Future:
        future: Future = Future()
        if not self._accepting:
            future.set_result(False)
            return future
        self._queue.put((name, fn, args, future))
        return future

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP_WORKER:
                break
            name, fn, args, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                changed = bool(fn(*args))
            except Exception:
                logger.exception(f"Playback command {name} failed")
                changed = False
            if changed:
                self._publish()
            future.set_result(changed)

        # Resolve anything queued behind the stop marker
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not _STOP_WORKER:
                item[3].set_result(False)

    def _build_snapshot(self) -> PlaybackSnapshot:
        title = self._title
        return PlaybackSnapshot(
            state=self._state,
            title_id=title.id if title else None,
            title=title.title if title else None,
            author=title.author if title else None,
            current_time=self._current_time,
            duration=self._duration,
            rate=self._rate,
            sleep_remaining=self.sleep_timer.remaining(),
            sleep_at_chapter_end=self.sleep_timer.at_chapter_end,
        )

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        with self._lock:
            if snapshot == self._snapshot:
                return
            self._snapshot = snapshot
            listeners = list(self._listeners)

        for listener in listeners:
            self._deliver(listener, snapshot)

        if self._title is None:
            if self.now_playing.info is not None:
                self.now_playing.clear()
        elif not self._now_playing_suspended:
            self.now_playing.publish(
                build_now_playing(self._title, snapshot, self.config.default_rate)
            )

    def _deliver(self, listener: SnapshotListener, snapshot: PlaybackSnapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Playback snapshot listener failed")

    def _emit(self, event: PlaybackEvent) -> None:
        with self._lock:
            listeners = list(self._event_listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Playback event listener failed for {event.value}")

    # -- session helpers (worker thread only) --------------------------

    def _clamp_time(self, value: float) -> float:
        return max(0.0, min(value, self._duration))

    def _read_engine_time(self) -> float:
        position = self.engine.current_time()
        if position is None or not math.isfinite(position):
            return self._current_time
        return self._clamp_time(position)

    def _flush(self) -> bool:
        """Write the current position through to storage."""
        if self._title is None:
            return False
        try:
            self.store.update_position(self._title, self._current_time)
        except StorageError as e:
            logger.warning(f"Position save failed, retrying on next tick: {e}")
            return False
        self._since_save = 0.0
        return True

    def _activate_output(self) -> None:
        try:
            self.engine.activate_output()
        except EngineTransientError as e:
            logger.warning(f"Audio output activation failed: {e}")

    def _deactivate_output(self) -> None:
        try:
            self.engine.deactivate_output()
        except EngineTransientError as e:
            logger.warning(f"Audio output deactivation failed: {e}")

    def _leave_playing(self, state: PlaybackState) -> None:
        self._state = state
        self._intent_play = False
        self._last_tick_at = None

    def _unload(self) -> None:
        """Flush and release the current title, leaving no title loaded."""
        if self._title is None:
            return
        active = self._state in (PlaybackState.PLAYING, PlaybackState.BUFFERING)
        if active:
            self.engine.pause()
            self._current_time = self._read_engine_time()
        self._flush()
        if active:
            self._deactivate_output()
        self.engine.close()
        self._title = None
        self._current_time = 0.0
        self._duration = 0.0
        self._since_save = 0.0
        self._leave_playing(PlaybackState.STOPPED)

    def _shutdown_session(self) -> bool:
        self._unload()
        return False

    # -- command bodies (worker thread only) ---------------------------

    def _load(self, title: Title, timer_generation: Optional[int] = None) -> bool:
        self._unload()
        self.sleep_timer.cancel(timer_generation)
        with self._tick_lock:
            self._pending_tick = None

        try:
            engine_duration = self.engine.open(title.resource_locator)
        except ResourceError as e:
            logger.error(f"Failed to load {title.display_name}: {e}")
            self._publish()
            self._emit(PlaybackEvent.LOAD_FAILED)
            return False

        self._title = title
        if title.duration <= 0 and engine_duration is not None and engine_duration > 0:
            try:
                self.store.adopt_duration(title, engine_duration)
            except StorageError as e:
                logger.warning(f"Could not save duration of {title.display_name}: {e}")
        self._duration = engine_duration if engine_duration is not None else title.duration
        self._current_time = 0.0
        if title.current_position > 0:
            self._current_time = self._clamp_time(title.current_position)
            self.engine.seek(self._current_time)
        self._now_playing_suspended = False
        self.engine.start_ticks(self.config.tick_interval)

        logger.info(
            f"Loaded {title.display_name} at {self._current_time:.1f}s of {self._duration:.1f}s"
        )
        return True

    def _play(self) -> bool:
        if self._title is None:
            return False
        if self._state == PlaybackState.PLAYING:
            return False
        if self._state == PlaybackState.BUFFERING:
            self._intent_play = True
            return False

        self.engine.play(self._rate)
        self._state = PlaybackState.PLAYING
        self._intent_play = True
        self._last_tick_at = None
        self._activate_output()
        return True

    def _pause(self) -> bool:
        if self._state not in (PlaybackState.PLAYING, PlaybackState.BUFFERING):
            return False
        self.engine.pause()
        self._current_time = self._read_engine_time()
        self._leave_playing(PlaybackState.PAUSED)
        self._flush()
        return True

    def _stop(self) -> bool:
        if self._title is None:
            return False
        if self._state in (PlaybackState.PLAYING, PlaybackState.BUFFERING):
            self.engine.pause()
            self._current_time = self._read_engine_time()
        self._flush()
        self.engine.seek(0.0)
        self._current_time = 0.0
        self._leave_playing(PlaybackState.STOPPED)
        self._deactivate_output()
        return True

    def _toggle(self) -> bool:
        if self._state == PlaybackState.PLAYING:
            return self._pause()
        return self._play()

    def _seek(self, time: float) -> bool:
        if self._title is None:
            return False
        try:
            time = float(time)
        except (TypeError, ValueError):
            time = math.nan
        if not math.isfinite(time):
            logger.warning(f"Ignoring seek to non-finite time {time!r}")
            return False

        target = self._clamp_time(time)
        self.engine.seek(target)
        self._current_time = target
        self._flush()
        return True

    def _skip(self, interval: float) -> bool:
        return self._seek(self._current_time + interval)

    def _set_rate(self, rate: float) -> bool:
        clamped = clamp_rate(rate, default=self.config.default_rate)
        if clamped != rate:
            logger.debug(f"Playback rate {rate!r} clamped to {clamped}")
        if clamped == self._rate:
            return False
        self._rate = clamped
        if self._state in (PlaybackState.PLAYING, PlaybackState.BUFFERING):
            self.engine.play(clamped)
        return True

    def _cycle_rate(self) -> bool:
        return self._set_rate(next_rate(self._rate, default=self.config.default_rate))

    def _restart(self) -> bool:
        if self._title is None:
            return False
        try:
            self.store.reset(self._title)
        except StorageError as e:
            logger.warning(f"Could not persist restart: {e}")
        self.engine.seek(0.0)
        self._current_time = 0.0
        self._since_save = 0.0
        logger.info(f"Restarted {self._title.display_name}")
        return True

    def _toggle_favorite(self) -> bool:
        if self._title is None:
            return False
        try:
            favorite = self.store.toggle_favorite(self._title)
        except StorageError as e:
            logger.warning(f"Could not save favourite for {self._title.display_name}: {e}")
            return False
        logger.info(
            f"{'Added' if favorite else 'Removed'} {self._title.display_name} "
            f"{'to' if favorite else 'from'} favourites"
        )
        return True

    def _apply_pending_tick(self) -> bool:
        with self._tick_lock:
            position, self._pending_tick = self._pending_tick, None
        if position is None or self._title is None:
            return False
        if not math.isfinite(position):
            return False

        position = self._clamp_time(position)
        changed = position != self._current_time
        self._current_time = position

        if self._state == PlaybackState.PLAYING:
            now = self.clock()
            if self._last_tick_at is not None:
                self._since_save += max(0.0, now - self._last_tick_at)
            self._last_tick_at = now
            if self._since_save >= self.config.autosave_interval:
                self._flush()
        return changed

    def _end_of_media(self) -> bool:
        if self._title is None:
            return False
        self.engine.pause()
        self._current_time = self._duration
        try:
            self.store.mark_as_finished(self._title)
        except StorageError as e:
            logger.warning(f"Could not persist finished state: {e}")
        self._leave_playing(PlaybackState.STOPPED)
        self.sleep_timer.cancel()
        self._deactivate_output()
        logger.info(f"Finished {self._title.display_name}")

        self._publish()
        self._emit(PlaybackEvent.FINISHED)
        return True

    def _stall(self, stalled: bool) -> bool:
        if self._title is None:
            return False
        if stalled:
            if self._state != PlaybackState.PLAYING:
                return False
            logger.debug("Engine stalled, buffering")
            self._state = PlaybackState.BUFFERING
            self._intent_play = True
            self._last_tick_at = None
            return True

        if self._state != PlaybackState.BUFFERING:
            return False
        self._state = PlaybackState.PLAYING if self._intent_play else PlaybackState.PAUSED
        return True

    def _sleep_expired(self, generation: int) -> bool:
        if not self.sleep_timer.claim(generation):
            logger.debug(f"Sleep timer generation {generation} was cancelled")
            return False

        title = self._title
        self._pause()
        logger.info("Sleep timer elapsed, playback paused")
        self._publish()
        self._emit(PlaybackEvent.SLEEP_TIMER_ELAPSED)
        if self.notifier is not None and title is not None:
            self.notifier(title.title)
        return True

    def _clear_now_playing(self) -> bool:
        self._now_playing_suspended = True
        self.now_playing.clear()
        return False

    def _reconfigure_output(self) -> bool:
        try:
            self.engine.reconfigure()
        except EngineTransientError as e:
            logger.warning(f"Output reconfiguration failed: {e}")
        except ResourceError as e:
            logger.error(f"Could not reopen {e.locator} after reset: {e}")
            self._unload()
            self._emit(PlaybackEvent.LOAD_FAILED)
            return True

        self._now_playing_suspended = False
        if self._title is None:
            return False
        if self._state == PlaybackState.PLAYING:
            self.engine.play(self._rate)
        self.now_playing.publish(
            build_now_playing(self._title, self._build_snapshot(), self.config.default_rate),
            force=True,
        )
        return True
