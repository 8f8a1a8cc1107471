"""
mpv media engine over JSON IPC for Storyline

One mpv process in idle mode holds at most one loaded audiobook. Position,
end of file and cache stalls are polled on a TickFeed thread.
"""

import json
import os
import socket
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from storyline.core.config import PlayerConfig
from storyline.domain.errors import EngineTransientError, ResourceError

from .engine import MediaEngine, TickFeed, usable_duration

# Consecutive equal duration reads before a freshly loaded file counts as parsed
REQUIRED_STABLE_READS = 2

LOAD_POLL_INTERVAL = 0.05


def check_mpv_available(executable: str = "mpv") -> bool:
    """Check if mpv is available on the system."""
    try:
        result = subprocess.run(
            [executable, "--version"], capture_output=True, text=True, timeout=5
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def send_mpv_command(socket_path: Optional[str], command: dict[str, Any]) -> bool:
    """Send a JSON IPC command to mpv, True if mpv answered with success."""
    response = _request(socket_path, command)
    if response is None:
        return False
    return response.get("error") == "success"


def get_mpv_property(socket_path: Optional[str], property_name: str) -> Any:
    """Get a property value from mpv, None if unavailable."""
    response = _request(socket_path, {"command": ["get_property", property_name]})
    if response and response.get("error") == "success":
        return response.get("data")
    return None


def _request(socket_path: Optional[str], command: dict[str, Any]) -> Optional[dict]:
    if not socket_path or not os.path.exists(socket_path):
        return None

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.settimeout(2.0)
            sock.connect(socket_path)
            sock.sendall((json.dumps(command) + "\n").encode("utf-8"))
            raw = sock.recv(4096).decode("utf-8")
    except OSError:
        return None

    # mpv may interleave async event lines before the reply
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if "error" in data:
            return data
    return None


class MpvEngine(MediaEngine):
    """MediaEngine backed by an mpv subprocess."""

    def __init__(self, config: Optional[PlayerConfig] = None):
        super().__init__()
        self.config = config or PlayerConfig()
        self.socket_path = self.config.mpv_socket_path or str(
            Path(tempfile.gettempdir()) / f"storyline-mpv-{os.getpid()}"
        )
        self.process: Optional[subprocess.Popen] = None
        self.locator: Optional[str] = None
        self._position = 0.0
        self._stalled = False
        self._ended = False
        self._feed: Optional[TickFeed] = None

    # -- process management --------------------------------------------

    def is_running(self) -> bool:
        if not self.process or self.process.poll() is not None:
            return False
        return os.path.exists(self.socket_path)

    def start(self) -> bool:
        """Start mpv with JSON IPC. Returns False if it did not come up."""
        if self.is_running():
            return True

        logger.info(f"Starting mpv with socket: {self.socket_path}")
        try:
            if os.path.exists(self.socket_path):
                logger.debug(f"Removing stale socket: {self.socket_path}")
                os.unlink(self.socket_path)

            cmd = [
                self.config.mpv_executable,
                "--idle=yes",
                "--no-video",
                "--no-terminal",
                f"--input-ipc-server={self.socket_path}",
                f"--volume={self.config.volume}",
                "--keep-open=yes",
                "--load-scripts=no",
            ]
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start mpv: {e}")
            self.process = None
            return False

        deadline = time.monotonic() + 5.0
        while not os.path.exists(self.socket_path):
            if time.monotonic() > deadline:
                logger.error("mpv socket creation timeout")
                self._kill()
                return False
            time.sleep(0.1)

        if not send_mpv_command(
            self.socket_path, {"command": ["get_property", "idle-active"]}
        ):
            logger.error("mpv socket connection test failed")
            self._kill()
            return False

        logger.info("mpv started")
        return True

    def _kill(self) -> None:
        if self.process:
            try:
                self.process.kill()
                self.process.wait(timeout=2.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                logger.warning(f"mpv did not exit cleanly: {e}")
        self.process = None
        if os.path.exists(self.socket_path):
            try:
                os.unlink(self.socket_path)
            except OSError:
                logger.debug(f"Could not remove socket {self.socket_path}")

    def shutdown(self) -> None:
        self.stop_ticks()
        self._kill()

    def _command(self, *args: Any) -> bool:
        return send_mpv_command(self.socket_path, {"command": list(args)})

    # -- MediaEngine ---------------------------------------------------

    def open(self, locator: str) -> Optional[float]:
        if "://" not in locator and not os.path.exists(locator):
            raise ResourceError(locator, "file not found")
        if not self.start():
            raise ResourceError(locator, "mpv is not running")

        self._command("set_property", "pause", True)
        if not self._command("loadfile", locator, "replace"):
            raise ResourceError(locator, "mpv rejected the file")

        self.locator = locator
        self._position = 0.0
        self._stalled = False
        self._ended = False

        # Wait for the demuxer to report a stable duration
        elapsed = 0.0
        last_duration = None
        stable_reads = 0
        logger.debug(f"Loading file metadata for: {locator}")

        while elapsed < self.config.load_timeout:
            duration = usable_duration(get_mpv_property(self.socket_path, "duration"))
            if duration is not None:
                if last_duration is not None and abs(duration - last_duration) < 0.1:
                    stable_reads += 1
                    if stable_reads >= REQUIRED_STABLE_READS:
                        logger.info(
                            f"Metadata loaded: duration={duration:.2f}s, elapsed={elapsed:.3f}s"
                        )
                        return duration
                else:
                    stable_reads = 0
                last_duration = duration
            elif get_mpv_property(self.socket_path, "idle-active") is True and elapsed > 0.5:
                # mpv went back to idle: the file could not be decoded
                self.locator = None
                raise ResourceError(locator, "mpv could not decode the file")

            time.sleep(LOAD_POLL_INTERVAL)
            elapsed += LOAD_POLL_INTERVAL

        logger.warning(
            f"Metadata load incomplete after {self.config.load_timeout}s: duration={last_duration}"
        )
        return last_duration

    def close(self) -> None:
        if self.locator is None:
            return
        self._command("stop")
        self.locator = None
        self._position = 0.0

    def play(self, rate: float) -> None:
        self._command("set_property", "speed", rate)
        self._command("set_property", "pause", False)

    def pause(self) -> None:
        self._command("set_property", "pause", True)

    def seek(self, time: float) -> None:
        if self._command("seek", time, "absolute"):
            self._position = time
            self._ended = False

    def current_time(self) -> float:
        position = get_mpv_property(self.socket_path, "time-pos")
        if position is not None:
            self._position = float(position)
        return self._position

    def activate_output(self) -> None:
        if not self.is_running():
            raise EngineTransientError("mpv is not running, audio output unavailable")

    def deactivate_output(self) -> None:
        # mpv keeps its audio output open while idle
        logger.debug("Output route released")

    def reconfigure(self) -> None:
        """Restart mpv and reload the current file at its current position."""
        locator = self.locator
        position = self._position
        logger.info("Reconfiguring mpv output")
        self._kill()
        if not self.start():
            raise EngineTransientError("mpv failed to restart")
        if locator:
            self.open(locator)
            self.seek(position)

    def start_ticks(self, interval: float) -> None:
        if self._feed and self._feed.running:
            return
        self._feed = TickFeed(self._poll, interval, name="mpv-ticks")
        self._feed.start()

    def stop_ticks(self) -> None:
        if self._feed:
            self._feed.stop()
            self._feed = None

    def _poll(self) -> None:
        if self.locator is None or not self.is_running():
            return

        stalled = bool(get_mpv_property(self.socket_path, "paused-for-cache"))
        if stalled != self._stalled:
            self._stalled = stalled
            self.events.on_stall(stalled)

        self.events.on_tick(self.current_time())

        eof = get_mpv_property(self.socket_path, "eof-reached")
        if eof is True and not self._ended:
            self._ended = True
            logger.info(f"End of file reached: {self.locator}")
            self.events.on_end()
        elif eof is False:
            self._ended = False
