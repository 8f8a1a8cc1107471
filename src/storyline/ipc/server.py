"""IPC server for receiving remote control commands from external processes."""

import json
import math
import os
import socket
import threading
from pathlib import Path
from typing import Callable, Optional, Tuple

from loguru import logger

from storyline.domain.library.catalog import Catalog
from storyline.domain.playback import (
    END_OF_CHAPTER,
    InterruptionMonitor,
    InterruptionSignal,
    PlaybackCoordinator,
    RemoteCommand,
    RemoteCommandCenter,
    RemoteCommandStatus,
    describe_now_playing,
)
from storyline.utils.formatting import format_as_duration

CommandHandler = Callable[[str, list], Tuple[bool, str]]

# Seconds an IPC client waits for a load to finish
LOAD_TIMEOUT = 15.0

# IPC command names that are plain remote commands
REMOTE_ALIASES = {
    'play': RemoteCommand.PLAY,
    'pause': RemoteCommand.PAUSE,
    'stop': RemoteCommand.STOP,
    'toggle': RemoteCommand.TOGGLE_PLAY_PAUSE,
    'forward': RemoteCommand.SKIP_FORWARD,
    'skip-forward': RemoteCommand.SKIP_FORWARD,
    'back': RemoteCommand.SKIP_BACKWARD,
    'skip-backward': RemoteCommand.SKIP_BACKWARD,
    'seek': RemoteCommand.CHANGE_POSITION,
    'rate': RemoteCommand.CHANGE_RATE,
    'next': RemoteCommand.NEXT_TRACK,
    'previous': RemoteCommand.PREVIOUS_TRACK,
}


def get_socket_path() -> Path:
    """
    Get the path to the Storyline control socket.

    Returns:
        Path to Unix socket
    """
    # Use XDG_RUNTIME_DIR if available, otherwise fall back to ~/.local/share
    runtime_dir = os.environ.get('XDG_RUNTIME_DIR')
    if runtime_dir:
        return Path(runtime_dir) / 'storyline' / 'control.sock'
    return Path.home() / '.local' / 'share' / 'storyline' / 'control.sock'


class IPCServer:
    """Unix socket server for IPC commands.

    Runs in a background thread. Each connection carries one JSON line
    ``{"command": ..., "args": [...]}`` and gets one JSON line
    ``{"success": ..., "message": ...}`` back. The handler only submits
    commands to the coordinator, so it is safe to call from this thread.
    """

    def __init__(self, handler: CommandHandler, socket_path: Optional[Path] = None):
        self.handler = handler
        self.socket_path = socket_path or get_socket_path()
        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Bind the socket and start serving in a background thread."""
        if self.running:
            return

        self.socket_path.parent.mkdir(parents=True, exist_ok=True)
        if self.socket_path.exists():
            logger.debug(f"Removing stale control socket: {self.socket_path}")
            self.socket_path.unlink()

        self.server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server_socket.bind(str(self.socket_path))
        self.server_socket.listen(5)
        self.server_socket.settimeout(1.0)  # Poll every second

        self.running = True
        self.thread = threading.Thread(target=self._run_server, name='ipc-server', daemon=True)
        self.thread.start()
        logger.info(f"IPC server listening on {self.socket_path}")

    def stop(self) -> None:
        """Stop the IPC server and cleanup."""
        self.running = False

        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)

        if self.server_socket:
            self.server_socket.close()
            self.server_socket = None

        if self.socket_path.exists():
            try:
                self.socket_path.unlink()
            except OSError as e:
                logger.warning(f"Could not remove control socket: {e}")

    def _run_server(self) -> None:
        while self.running:
            try:
                client_socket, _ = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"Error accepting connection: {e}")
                continue

            with client_socket:
                self._handle_client(client_socket)

    def _handle_client(self, client_socket: socket.socket) -> None:
        data = b''
        try:
            while b'\n' not in data:
                chunk = client_socket.recv(4096)
                if not chunk:
                    break
                data += chunk
        except OSError as e:
            logger.warning(f"IPC read failed: {e}")
            return

        if not data:
            return

        success, message = self.dispatch(data)
        response = json.dumps({'success': success, 'message': message}) + '\n'
        try:
            client_socket.sendall(response.encode('utf-8'))
        except OSError as e:
            logger.warning(f"IPC reply failed: {e}")

    def dispatch(self, data: bytes) -> Tuple[bool, str]:
        """Decode one request line and run the handler."""
        try:
            payload = json.loads(data.decode('utf-8').strip())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return False, f'Invalid JSON: {e}'

        if not isinstance(payload, dict):
            return False, 'Invalid request: expected an object'

        command = payload.get('command', '')
        args = payload.get('args') or []
        if not isinstance(args, list):
            args = [args]

        logger.debug(f"IPC command: {command} {args}")
        try:
            return self.handler(command, [str(a) for a in args])
        except Exception as e:
            logger.exception(f"IPC command {command} failed")
            return False, f'Error processing command: {e}'


def describe_snapshot(coordinator: PlaybackCoordinator) -> str:
    """One-line status of the playback session."""
    snapshot = coordinator.snapshot()
    if not snapshot.is_loaded:
        return 'Nothing loaded'

    status = (
        f"{snapshot.state.value}: {snapshot.title} - {snapshot.author} "
        f"[{format_as_duration(snapshot.current_time)} / {format_as_duration(snapshot.duration)}] "
        f"{snapshot.rate:g}x"
    )
    if snapshot.sleep_remaining is not None:
        status += f" (sleep in {format_as_duration(snapshot.sleep_remaining)})"
    elif snapshot.sleep_at_chapter_end:
        status += ' (sleep at end of chapter)'
    return status


def process_ipc_command(
    coordinator: PlaybackCoordinator,
    remote: RemoteCommandCenter,
    catalog: Catalog,
    command: str,
    args: list,
    monitor: Optional[InterruptionMonitor] = None,
) -> Tuple[bool, str]:
    """
    Process an IPC command against the running player.

    Args:
        coordinator: Playback coordinator of this process
        remote: Remote command adapter bound to the coordinator
        catalog: Library used to resolve title ids for ``load``
        command: Command name
        args: Command arguments as strings
        monitor: Interruption monitor for the `signal` command (optional)

    Returns:
        (success, message) tuple
    """
    if command in REMOTE_ALIASES:
        value = args[0] if args else None
        status = remote.handle(REMOTE_ALIASES[command], value)
        if status is RemoteCommandStatus.SUCCESS:
            return True, f"Executed: {command} {' '.join(args)}".strip()
        if REMOTE_ALIASES[command] in (RemoteCommand.NEXT_TRACK, RemoteCommand.PREVIOUS_TRACK):
            return False, f"{command} is not supported for audiobooks"
        return False, f"Invalid argument for {command}: {value!r}"

    if command == 'load':
        if not args:
            return False, 'Title id required'
        title = catalog.get(args[0])
        if title is None:
            return False, f"No title with id {args[0]}"
        loaded = coordinator.load(title).result(timeout=LOAD_TIMEOUT)
        if not loaded:
            return False, f"Could not open {title.display_name}"
        return True, f"Loaded {title.display_name}"

    if command == 'sleep':
        if not args:
            options = ', '.join(f"{m:g}" for m in coordinator.config.sleep_timer_options)
            return False, f'Minutes or "chapter" required, e.g. {options}'
        if args[0] == 'chapter':
            coordinator.set_sleep_timer(END_OF_CHAPTER)
            return True, 'Sleep timer set for end of chapter'
        try:
            minutes = float(args[0])
        except ValueError:
            return False, f"Invalid minutes: {args[0]!r}"
        if not math.isfinite(minutes):
            return False, f"Invalid minutes: {args[0]!r}"
        coordinator.set_sleep_timer(minutes)
        if minutes <= 0:
            return True, 'Sleep timer cancelled'
        return True, f"Sleep timer set for {minutes:g} minutes"

    if command == 'cancel-sleep':
        coordinator.cancel_sleep_timer()
        return True, 'Sleep timer cancelled'

    if command == 'restart':
        if not coordinator.restart().result(timeout=LOAD_TIMEOUT):
            return False, 'Nothing loaded'
        return True, f"Restarted {coordinator.loaded_title.display_name}"

    if command == 'finish':
        title = coordinator.loaded_title
        if not coordinator.mark_finished().result(timeout=LOAD_TIMEOUT):
            return False, 'Nothing loaded'
        return True, f"Marked {title.display_name} finished"

    if command == 'favorite':
        if not coordinator.toggle_favorite().result(timeout=LOAD_TIMEOUT):
            return False, 'Nothing loaded'
        title = coordinator.loaded_title
        if title.is_favorite:
            return True, f"Added {title.display_name} to favourites"
        return True, f"Removed {title.display_name} from favourites"

    if command == 'cycle-rate':
        coordinator.cycle_rate().result(timeout=LOAD_TIMEOUT)
        return True, f"Rate {coordinator.snapshot().rate:g}x"

    if command == 'now-playing':
        coordinator.wait_idle(timeout=LOAD_TIMEOUT)
        return True, describe_now_playing(coordinator.now_playing.info)

    if command == 'status':
        coordinator.wait_idle(timeout=LOAD_TIMEOUT)
        return True, describe_snapshot(coordinator)

    if command == 'signal':
        # Hooks for udev/acpid scripts: signal <name> [resume]
        if monitor is None:
            return False, 'Interruption signals are not enabled'
        if not args:
            return False, 'Signal name required'
        try:
            signal = InterruptionSignal(args[0].replace('-', '_'))
        except ValueError:
            return False, f"Unknown signal: {args[0]}"
        monitor.handle(signal, should_resume='resume' in args[1:])
        return True, f"Handled {signal.value}"

    return False, f"Unknown command: {command}"
