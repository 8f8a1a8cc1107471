"""
SQLite database operations for Storyline
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from .config import get_database_path as _default_database_path

# Database schema version for migrations
SCHEMA_VERSION = 2


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    return _default_database_path()


@contextmanager
def get_db_connection(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support."""
    path = db_path or get_database_path()
    # Position writes come from the coordinator thread while the CLI may read
    conn = sqlite3.connect(path, timeout=30.0)
    conn.row_factory = sqlite3.Row

    # WAL lets readers proceed during the coordinator's writes
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn: sqlite3.Connection, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 2:
        # v1 -> v2: artwork reference and last-played index for library sorting
        try:
            conn.execute("ALTER TABLE titles ADD COLUMN artwork_path TEXT")
        except sqlite3.OperationalError as e:
            if "duplicate column name" not in str(e).lower():
                raise

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_titles_last_played ON titles (last_played_at)"
        )
        conn.commit()


def init_database(db_path: Optional[Path] = None) -> None:
    """Initialize the database with required tables."""
    path = db_path or get_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS titles (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                narrator TEXT,
                duration REAL NOT NULL DEFAULT 0 CHECK (duration >= 0),
                resource_locator TEXT NOT NULL,
                date_added TIMESTAMP NOT NULL,
                last_played_at TIMESTAMP,
                current_position REAL NOT NULL DEFAULT 0,
                is_finished BOOLEAN NOT NULL DEFAULT FALSE
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS title_tags (
                title_id TEXT NOT NULL,
                tag TEXT NOT NULL,
                PRIMARY KEY (title_id, tag),
                FOREIGN KEY (title_id) REFERENCES titles (id) ON DELETE CASCADE
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_title_tags_tag ON title_tags (tag)"
        )

        # Use MAX to handle databases with multiple version rows
        cursor = conn.execute("SELECT MAX(version) as version FROM schema_version")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] else 0

        if current_version < SCHEMA_VERSION:
            logger.info(
                f"Migrating database {path} from v{current_version} to v{SCHEMA_VERSION}"
            )
            migrate_database(conn, current_version)

        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
        )
        conn.commit()
