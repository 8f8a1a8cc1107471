"""Desktop notifications for Storyline."""

import shutil
import subprocess
from typing import Literal

from loguru import logger


def notify(
    title: str, message: str, urgency: Literal["low", "normal", "critical"] = "normal"
) -> bool:
    """
    Show a desktop notification using notify-send.

    Args:
        title: Notification title
        message: Notification body
        urgency: Urgency level ('low', 'normal', 'critical')

    Returns:
        True if notify-send ran, False if it is missing or failed
    """
    if not shutil.which("notify-send"):
        logger.debug("notify-send not available, skipping notification")
        return False

    try:
        subprocess.run(
            [
                "notify-send",
                "--urgency",
                urgency,
                "--app-name",
                "Storyline",
                title,
                message,
            ],
            check=False,
            timeout=2.0,
            capture_output=True,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"Desktop notification failed: {e}")
        return False
    return True


def notify_sleep_timer_elapsed(title: str) -> bool:
    """Tell the listener the sleep timer paused their book."""
    return notify("Sleep timer", f"Paused {title}", urgency="low")
