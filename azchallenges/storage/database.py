"""Durable key/value storage for serialised progress records."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import aiosqlite

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class ProgressStore(ABC):
    """Durable storage of one serialised progress record per user key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Load the stored bytes for a key, or None if nothing is stored."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Store bytes for a key, replacing any previous value.

        Raises:
            PersistenceError: If the write did not succeed
        """


class SqliteProgressStore(ProgressStore):
    """SQLite database holding progress records."""

    def __init__(self, db_path: Optional[Union[Path, str]] = None):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
                    Defaults to ~/.local/share/azchallenges/progress.db
        """
        if db_path is None:
            db_path = Path.home() / ".local" / "share" / "azchallenges" / "progress.db"
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Connect to the database."""
        self._connection = await aiosqlite.connect(self.db_path)
        await self._create_tables()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        assert self._connection is not None

        await self._connection.executescript("""
            CREATE TABLE IF NOT EXISTS progress (
                key TEXT PRIMARY KEY,
                data BLOB NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        await self._connection.commit()

    @property
    def connection(self) -> aiosqlite.Connection:
        """Get the database connection."""
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def get(self, key: str) -> Optional[bytes]:
        async with self.connection.execute(
            "SELECT data FROM progress WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
            return bytes(row[0]) if row else None

    async def put(self, key: str, data: bytes) -> None:
        try:
            await self.connection.execute(
                """
                INSERT INTO progress (key, data, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET data = ?, updated_at = CURRENT_TIMESTAMP
                """,
                (key, data, data),
            )
            await self.connection.commit()
        except sqlite3.Error as e:
            logger.error("Failed to save progress for %s: %s", key, e)
            raise PersistenceError(f"Could not save progress for '{key}'") from e
