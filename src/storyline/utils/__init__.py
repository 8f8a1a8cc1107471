"""
Cross-cutting utilities for Storyline.

Contains:
- formatting: Duration and progress display strings
"""

from .formatting import *

__all__ = [
    'format_as_duration',
    'format_as_short_duration',
    'format_as_remaining',
    'format_progress',
]
