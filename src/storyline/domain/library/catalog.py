"""
Catalog of audiobook titles backed by SQLite.

The playback core reads and saves Title records through this interface;
library management (deletion, import pipelines) lives elsewhere.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from storyline.core.database import get_db_connection, init_database
from storyline.domain.errors import StorageError

from .models import Title, TitleFilter, TitleSort

_FILTER_CLAUSES = {
    TitleFilter.ALL: "",
    TitleFilter.FAVORITES: (
        "WHERE EXISTS (SELECT 1 FROM title_tags tt "
        "WHERE tt.title_id = t.id AND tt.tag = 'Favorites')"
    ),
    TitleFilter.UNFINISHED: "WHERE t.is_finished = 0",
    TitleFilter.FINISHED: "WHERE t.is_finished = 1",
}

_SORT_CLAUSES = {
    TitleSort.TITLE: "t.title COLLATE NOCASE ASC",
    TitleSort.AUTHOR: "t.author COLLATE NOCASE ASC, t.title COLLATE NOCASE ASC",
    TitleSort.DATE_ADDED: "t.date_added DESC",
    # Never-played titles sink to the bottom
    TitleSort.LAST_PLAYED: "t.last_played_at IS NULL, t.last_played_at DESC",
    TitleSort.PROGRESS: (
        "CASE WHEN t.duration > 0 THEN t.current_position / t.duration ELSE 0 END DESC"
    ),
    TitleSort.DURATION: "t.duration ASC",
}


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Catalog:
    """Create, query and save Title records."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        init_database(db_path)

    def create(
        self,
        title: str,
        author: str,
        narrator: Optional[str],
        duration: float,
        resource_locator: str,
        tags: Iterable[str] = (),
        artwork_path: Optional[str] = None,
    ) -> Title:
        """Create and persist a new title at position 0.

        Raises:
            StorageError: If the record cannot be written
        """
        record = Title(
            title=title,
            author=author,
            narrator=narrator,
            duration=max(0.0, float(duration or 0.0)),
            resource_locator=resource_locator,
            artwork_path=artwork_path,
            tags=set(tags),
        )
        self.save(record)
        logger.info(f"Catalog: created {record.id} ({record.display_name})")
        return record

    def save(self, title: Title) -> None:
        """Insert or update a title and its tags.

        Raises:
            StorageError: If the record cannot be written
        """
        try:
            with get_db_connection(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO titles (
                        id, title, author, narrator, duration, resource_locator,
                        artwork_path, date_added, last_played_at, current_position,
                        is_finished
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        title = excluded.title,
                        author = excluded.author,
                        narrator = excluded.narrator,
                        duration = excluded.duration,
                        resource_locator = excluded.resource_locator,
                        artwork_path = excluded.artwork_path,
                        last_played_at = excluded.last_played_at,
                        current_position = excluded.current_position,
                        is_finished = excluded.is_finished
                    """,
                    (
                        title.id,
                        title.title,
                        title.author,
                        title.narrator,
                        title.duration,
                        title.resource_locator,
                        title.artwork_path,
                        title.date_added.isoformat(),
                        title.last_played_at.isoformat() if title.last_played_at else None,
                        title.current_position,
                        title.is_finished,
                    ),
                )
                conn.execute("DELETE FROM title_tags WHERE title_id = ?", (title.id,))
                conn.executemany(
                    "INSERT INTO title_tags (title_id, tag) VALUES (?, ?)",
                    [(title.id, tag) for tag in sorted(title.tags)],
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to save title {title.id}: {e}") from e

    def get(self, title_id: str) -> Optional[Title]:
        """Get a title by id, or None if it does not exist."""
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM titles WHERE id = ?", (title_id,)
            ).fetchone()
            if row is None:
                return None
            return self._row_to_title(conn, row)

    def query(
        self,
        filter: TitleFilter = TitleFilter.ALL,
        sort: TitleSort = TitleSort.DATE_ADDED,
    ) -> List[Title]:
        """List titles matching ``filter`` ordered by ``sort``."""
        sql = (
            f"SELECT t.* FROM titles t {_FILTER_CLAUSES[TitleFilter(filter)]} "
            f"ORDER BY {_SORT_CLAUSES[TitleSort(sort)]}"
        )
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(sql).fetchall()
            return [self._row_to_title(conn, row) for row in rows]

    def _row_to_title(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Title:
        tags = {
            tag_row["tag"]
            for tag_row in conn.execute(
                "SELECT tag FROM title_tags WHERE title_id = ?", (row["id"],)
            )
        }
        return Title(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            narrator=row["narrator"],
            duration=row["duration"],
            resource_locator=row["resource_locator"],
            artwork_path=row["artwork_path"],
            date_added=_parse_timestamp(row["date_added"]),
            last_played_at=_parse_timestamp(row["last_played_at"]),
            current_position=row["current_position"],
            is_finished=bool(row["is_finished"]),
            tags=tags,
        )
