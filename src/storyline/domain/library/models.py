"""
Audiobook library domain models.

Contains the Title record persisted per audiobook plus the filter and sort
options understood by the catalog.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Set

# Reserved tag used to mark favourite titles
FAVORITES_TAG = "Favorites"

# Positions this close to the end count as finished
FINISHED_THRESHOLD = 10.0


def new_title_id() -> str:
    """Generate an opaque unique title id."""
    return uuid.uuid4().hex


@dataclass
class Title:
    """An audiobook and its persisted playback progress.

    Invariant: 0 <= current_position <= duration. Mutate only through
    update_position, reset, mark_as_finished, add_tag and remove_tag.
    """

    title: str
    author: str
    duration: float  # in seconds, fixed at import or on first open
    resource_locator: str  # local path or URL of the audio
    narrator: Optional[str] = None
    artwork_path: Optional[str] = None
    id: str = field(default_factory=new_title_id)
    date_added: datetime = field(default_factory=datetime.now)
    last_played_at: Optional[datetime] = None
    current_position: float = 0.0
    is_finished: bool = False
    tags: Set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ValueError(f"duration must be >= 0, got {self.duration}")
        self.tags = set(self.tags)
        self.current_position = self._clamp(self.current_position)

    def _clamp(self, position: float) -> float:
        return max(0.0, min(position, self.duration))

    @property
    def progress(self) -> float:
        """Progress as a fraction between 0.0 and 1.0."""
        if self.duration <= 0:
            return 0.0
        return min(self.current_position / self.duration, 1.0)

    @property
    def remaining_time(self) -> float:
        return max(self.duration - self.current_position, 0.0)

    @property
    def display_name(self) -> str:
        return f"{self.title} - {self.author}"

    @property
    def is_favorite(self) -> bool:
        return FAVORITES_TAG in self.tags

    def update_position(
        self,
        position: float,
        now: Optional[datetime] = None,
        finished_threshold: float = FINISHED_THRESHOLD,
    ) -> None:
        """Store a new playback position.

        The position is clamped to the title's length and stamps
        last_played_at. Reaching the last ``finished_threshold`` seconds of a
        title marks it finished; moving back never clears the flag.
        """
        self.current_position = self._clamp(position)
        self.last_played_at = now or datetime.now()

        if (
            not self.is_finished
            and self.duration > 0
            and self.current_position >= self.duration - finished_threshold
        ):
            self.is_finished = True

    def reset(self) -> None:
        """Rewind to the beginning and clear the finished flag."""
        self.current_position = 0.0
        self.is_finished = False

    def mark_as_finished(self) -> None:
        self.is_finished = True
        self.current_position = self.duration

    def add_tag(self, tag: str) -> None:
        self.tags.add(tag)

    def remove_tag(self, tag: str) -> None:
        self.tags.discard(tag)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class TitleFilter(str, Enum):
    """Library filter options."""

    ALL = "all"
    FAVORITES = "favorites"
    UNFINISHED = "unfinished"
    FINISHED = "finished"


class TitleSort(str, Enum):
    """Library sort options."""

    TITLE = "title"
    AUTHOR = "author"
    DATE_ADDED = "date_added"
    LAST_PLAYED = "last_played"
    PROGRESS = "progress"
    DURATION = "duration"
