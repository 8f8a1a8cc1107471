"""
Remote command boundary adapter.

Translates inbound remote-control commands (media keys, IPC clients) into
coordinator operations. Next/previous track have no meaning for a single
audiobook and report failure instead of silently doing nothing.
"""

import math
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

if TYPE_CHECKING:
    from .coordinator import PlaybackCoordinator


class RemoteCommand(str, Enum):
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    TOGGLE_PLAY_PAUSE = "toggle"
    SKIP_FORWARD = "skip-forward"
    SKIP_BACKWARD = "skip-backward"
    CHANGE_POSITION = "change-position"
    CHANGE_RATE = "change-rate"
    NEXT_TRACK = "next"
    PREVIOUS_TRACK = "previous"


class RemoteCommandStatus(str, Enum):
    SUCCESS = "success"
    COMMAND_FAILED = "command_failed"


UNSUPPORTED_COMMANDS = frozenset({RemoteCommand.NEXT_TRACK, RemoteCommand.PREVIOUS_TRACK})


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class RemoteCommandCenter:
    def __init__(self, coordinator: "PlaybackCoordinator"):
        self.coordinator = coordinator

    def handle(self, command: RemoteCommand | str, value: Any = None) -> RemoteCommandStatus:
        """Dispatch a remote command.

        Args:
            command: RemoteCommand or its string value
            value: Position in seconds for CHANGE_POSITION, rate for CHANGE_RATE

        Returns:
            SUCCESS if the command was submitted, COMMAND_FAILED otherwise
        """
        try:
            command = RemoteCommand(command)
        except ValueError:
            logger.warning(f"Unknown remote command: {command!r}")
            return RemoteCommandStatus.COMMAND_FAILED

        if command in UNSUPPORTED_COMMANDS:
            logger.info(f"Remote command {command.value} is not supported")
            return RemoteCommandStatus.COMMAND_FAILED

        coordinator = self.coordinator

        if command is RemoteCommand.PLAY:
            coordinator.play()
        elif command is RemoteCommand.PAUSE:
            coordinator.pause()
        elif command is RemoteCommand.STOP:
            coordinator.stop()
        elif command is RemoteCommand.TOGGLE_PLAY_PAUSE:
            coordinator.toggle_play_pause()
        elif command is RemoteCommand.SKIP_FORWARD:
            coordinator.skip_forward()
        elif command is RemoteCommand.SKIP_BACKWARD:
            coordinator.skip_backward()
        elif command in (RemoteCommand.CHANGE_POSITION, RemoteCommand.CHANGE_RATE):
            number = _number(value)
            if number is None:
                logger.warning(f"Remote command {command.value} needs a number, got {value!r}")
                return RemoteCommandStatus.COMMAND_FAILED
            if command is RemoteCommand.CHANGE_POSITION:
                coordinator.seek(number)
            else:
                coordinator.set_rate(number)

        return RemoteCommandStatus.SUCCESS
