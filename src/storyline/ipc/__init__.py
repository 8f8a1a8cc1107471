"""IPC (Inter-Process Communication) for Storyline.

Lets `storyline play`, media-key bindings and scripts control a running
player process.
"""

from .client import send_command

__all__ = ['send_command']
