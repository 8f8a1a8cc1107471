"""
Durable per-title playback position.

The position store applies Title mutations and writes them through to the
catalog. Every method raises StorageError on a failed write; the in-memory
Title keeps the new value either way so the next save carries it.
"""

from datetime import datetime
from typing import Optional

from loguru import logger

from storyline.domain.library.catalog import Catalog
from storyline.domain.library.models import FAVORITES_TAG, FINISHED_THRESHOLD, Title


class PositionStore:
    """Write-through persistence of position, finished flag and tags."""

    def __init__(self, catalog: Catalog, finished_threshold: float = FINISHED_THRESHOLD):
        self.catalog = catalog
        self.finished_threshold = finished_threshold

    def update_position(
        self, title: Title, position: float, now: Optional[datetime] = None
    ) -> None:
        was_finished = title.is_finished
        title.update_position(position, now=now, finished_threshold=self.finished_threshold)
        if title.is_finished and not was_finished:
            logger.info(f"Title {title.id} reached its end threshold, marked finished")
        self.catalog.save(title)

    def mark_as_finished(self, title: Title) -> None:
        title.mark_as_finished()
        self.catalog.save(title)

    def reset(self, title: Title) -> None:
        title.reset()
        self.catalog.save(title)

    def adopt_duration(self, title: Title, duration: float) -> None:
        """Record a duration learned from the engine for a title imported without one."""
        title.duration = max(0.0, duration)
        self.catalog.save(title)

    def add_tag(self, title: Title, tag: str) -> None:
        title.add_tag(tag)
        self.catalog.save(title)

    def remove_tag(self, title: Title, tag: str) -> None:
        title.remove_tag(tag)
        self.catalog.save(title)

    def toggle_favorite(self, title: Title) -> bool:
        """Flip the Favorites tag and return the new favourite status."""
        if title.is_favorite:
            self.remove_tag(title, FAVORITES_TAG)
        else:
            self.add_tag(title, FAVORITES_TAG)
        return title.is_favorite
