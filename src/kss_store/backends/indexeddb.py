"""Indexed database backend on top of SQLite.

A database is identified by name and opened at a schema version. Each object
store is a table keyed by the logical key. The schema version lives in
``PRAGMA user_version``: opening at a higher version than the one on disk runs
the upgrade step, which creates the object store if it is missing.

Opening at a lower version than the one on disk fails, as does using a store
that was never created by an upgrade.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping

import aiosqlite

from kss_store.backends.base import LazyInit, utc_now
from kss_store.config import IndexedDBOptions, StoreOptions
from kss_store.errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = ".kss-indexeddb"
MEMORY = ":memory:"


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class IndexedDBStore:
    """Indexed database implementation of the Store protocol.

    Table schema for each object store:
    - key: TEXT PRIMARY KEY
    - value: TEXT (JSON)
    - updated_at: TEXT (ISO-8601, UTC)

    ``keys()`` returns keys in ascending order. The whole object store is the
    store's scope.
    """

    def __init__(self, options: Mapping[str, Any] | StoreOptions | None = None) -> None:
        """Initialize indexed database store.

        Args:
            options: IndexedDB options (``dbName``, ``storeName``,
                ``version``, ``location``)

        Note:
            The database is opened lazily on first use.
        """
        self.options = IndexedDBOptions.parse(options)
        self.db_name = self.options.db_name
        self.store_name = self.options.store_name
        self.version = self.options.version

        location = self.options.location
        if location is not None and str(location) == MEMORY:
            self.database_path: str | Path = MEMORY
        else:
            self.database_path = Path(location or Path.cwd() / DEFAULT_LOCATION) / f"{self.db_name}.sqlite3"

        self._table = _quote_identifier(self.store_name)
        self._conn: aiosqlite.Connection | None = None
        self._db = LazyInit(self._open, f"IndexedDBStore({self.db_name}/{self.store_name})")

    async def _open(self) -> aiosqlite.Connection:
        if isinstance(self.database_path, Path):
            await asyncio.to_thread(self.database_path.parent.mkdir, parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.database_path)
        try:
            await self._upgrade_if_needed(conn)
        except BaseException:
            await conn.close()
            raise
        self._conn = conn
        logger.debug("Opened %s at version %d", self.db_name, self.version)
        return conn

    async def _upgrade_if_needed(self, conn: aiosqlite.Connection) -> None:
        async with conn.execute("PRAGMA user_version") as cursor:
            row = await cursor.fetchone()
        current = row[0] if row else 0

        if current > self.version:
            raise StoreError(
                f"Requested version {self.version} of {self.db_name} "
                f"is less than the existing version {current}"
            )
        if current == self.version:
            return

        logger.debug("Upgrading %s from version %d to %d", self.db_name, current, self.version)
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        # PRAGMA takes no bound parameters; version is validated as int >= 1
        await conn.execute(f"PRAGMA user_version = {int(self.version)}")
        await conn.commit()

    async def get(self, key: str) -> Any | None:
        """Read a value from the object store.

        Args:
            key: Record key

        Returns:
            Decoded value, or None if the key is missing
        """
        conn = await self._db.get()
        async with conn.execute(
            f"SELECT value FROM {self._table} WHERE key = ?",
            (key,),
        ) as cursor:
            row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def set(self, key: str, value: Any) -> None:
        """Insert or replace a record.

        Args:
            key: Record key
            value: JSON-serializable value
        """
        conn = await self._db.get()
        await conn.execute(
            f"""
            INSERT INTO {self._table} (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (key)
            DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, json.dumps(value), utc_now().isoformat()),
        )
        await conn.commit()

    async def remove(self, key: str) -> None:
        """Delete a record. Missing keys are ignored."""
        conn = await self._db.get()
        await conn.execute(f"DELETE FROM {self._table} WHERE key = ?", (key,))
        await conn.commit()

    async def clear(self) -> None:
        """Delete every record in the object store."""
        conn = await self._db.get()
        await conn.execute(f"DELETE FROM {self._table}")
        await conn.commit()

    async def keys(self) -> list[str]:
        """List record keys.

        Returns:
            Keys in ascending order
        """
        conn = await self._db.get()
        async with conn.execute(f"SELECT key FROM {self._table} ORDER BY key") as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self) -> None:
        """Close the database; a later operation re-opens it."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            self._db.reset()
            logger.debug("Closed %s", self.db_name)
