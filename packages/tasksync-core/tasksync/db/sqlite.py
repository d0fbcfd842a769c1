"""
SQLite cache adapter using aiosqlite.

Values are stored as JSON text in a single key-value table. Every write is
committed immediately so the cache survives a crash between mutations.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Any

from tasksync.db.interface import CacheAdapter

logger = logging.getLogger(__name__)

try:
    import aiosqlite
    HAS_AIOSQLITE = True
except ImportError:
    HAS_AIOSQLITE = False
    aiosqlite = None


SCHEMA = """
    CREATE TABLE IF NOT EXISTS kv_cache (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
"""


class SQLiteCache(CacheAdapter):
    """
    Durable key-value cache on SQLite.

    Uses aiosqlite for async database operations.
    Automatically creates the database file, parent directories and table.
    """

    def __init__(self, db_path: str = "~/.tasksync/cache.db"):
        """
        Initialize SQLite cache.

        Args:
            db_path: Path to SQLite database file.
                    Supports ~ expansion for home directory.
        """
        if not HAS_AIOSQLITE:
            raise RuntimeError(
                "aiosqlite not installed. Run: pip install tasksync"
            )

        self.db_path = Path(db_path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Open the database and create the cache table if needed."""
        if self._conn is not None:
            return

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Connect (creates file if doesn't exist)
        self._conn = await aiosqlite.connect(str(self.db_path))

        # Use WAL mode for better concurrent access
        await self._conn.execute("PRAGMA journal_mode = WAL")

        await self._conn.execute(SCHEMA)
        await self._conn.commit()

        logger.info(f"SQLite cache connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite cache closed")

    async def _get_conn(self) -> aiosqlite.Connection:
        """Get or create connection."""
        if self._conn is None:
            await self.connect()
        return self._conn

    async def get(self, key: str, default: Any = None) -> Any:
        conn = await self._get_conn()

        cursor = await conn.execute("SELECT value FROM kv_cache WHERE key = ?", (key,))
        row = await cursor.fetchone()

        if row is None:
            return default

        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            return default

    async def set(self, key: str, value: Any) -> None:
        conn = await self._get_conn()

        await conn.execute(
            """
            INSERT INTO kv_cache (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, json.dumps(value), datetime.now(timezone.utc).isoformat()),
        )
        await conn.commit()

    async def delete(self, key: str) -> bool:
        conn = await self._get_conn()

        cursor = await conn.execute("DELETE FROM kv_cache WHERE key = ?", (key,))
        await conn.commit()

        return cursor.rowcount > 0

    async def keys(self) -> List[str]:
        conn = await self._get_conn()

        cursor = await conn.execute("SELECT key FROM kv_cache ORDER BY key")
        rows = await cursor.fetchall()

        return [row[0] for row in rows]

    @property
    def is_durable(self) -> bool:
        return True
