"""Filesystem backend: one JSON file per key."""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Mapping

from kss_store.backends.base import LazyInit, utc_now
from kss_store.config import FileSystemOptions, StoreOptions

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".json"
DEFAULT_DIRNAME = ".kss-store"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_key(key: str) -> str:
    """Map a logical key to a safe file stem.

    Every character outside ``[A-Za-z0-9_-]`` becomes ``_``. Distinct keys can
    map to the same stem (``a/b`` and ``a:b``); the later write wins.
    """
    return _UNSAFE_CHARS.sub("_", key)


class FileSystemStore:
    """Store that keeps each record in its own file.

    Stores records in a flat directory:
    path/
      {sanitized key}.json    {"key": ..., "value": ..., "updatedAt": ...}

    The original key is kept inside the record so ``keys()`` can report it.
    Only ``*.json`` files are considered part of the store; anything else in
    the directory is left alone.
    """

    def __init__(self, options: Mapping[str, Any] | StoreOptions | None = None) -> None:
        """Initialize filesystem store.

        Args:
            options: Filesystem options; ``path`` is the root directory

        Note:
            The directory is created lazily on first use.
        """
        self.options = FileSystemOptions.parse(options)
        self.path = Path(self.options.path or Path.cwd() / DEFAULT_DIRNAME)
        self._init = LazyInit(self._create_root, f"FileSystemStore({self.path})")

    async def _create_root(self) -> Path:
        await asyncio.to_thread(self.path.mkdir, parents=True, exist_ok=True)
        logger.debug("Using store directory %s", self.path)
        return self.path

    def file_path(self, key: str) -> Path:
        """Path of the file holding key."""
        return self.path / f"{sanitize_key(key)}{FILE_SUFFIX}"

    def _record_files(self) -> list[Path]:
        return [
            f for f in self.path.iterdir()
            if f.name.endswith(FILE_SUFFIX) and f.is_file()
        ]

    async def get(self, key: str) -> Any | None:
        """Read the value stored under a key.

        Args:
            key: Original (unsanitized) key

        Returns:
            Stored value, or None if no record file exists
        """
        await self._init.get()
        try:
            text = await asyncio.to_thread(self.file_path(key).read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        return json.loads(text).get("value")

    async def set(self, key: str, value: Any) -> None:
        """Write a record file, replacing any previous one.

        Args:
            key: Original key, kept inside the record
            value: JSON-serializable value
        """
        await self._init.get()
        record = {
            "key": key,
            "value": value,
            "updatedAt": utc_now().isoformat(),
        }
        text = json.dumps(record, indent=2)
        await asyncio.to_thread(self.file_path(key).write_text, text, encoding="utf-8")

    async def remove(self, key: str) -> None:
        """Delete the record file for a key. Missing files are ignored."""
        await self._init.get()
        await asyncio.to_thread(self.file_path(key).unlink, missing_ok=True)

    async def clear(self) -> None:
        """Delete every ``.json`` record file. Other files are left alone."""
        await self._init.get()
        for record_file in await asyncio.to_thread(self._record_files):
            await asyncio.to_thread(record_file.unlink, missing_ok=True)

    async def keys(self) -> list[str]:
        """List stored keys.

        Returns:
            Original keys read from the records, in directory order
        """
        await self._init.get()
        return await asyncio.to_thread(self._read_keys)

    def _read_keys(self) -> list[str]:
        keys = []
        for record_file in self._record_files():
            try:
                record = json.loads(record_file.read_text(encoding="utf-8"))
            except FileNotFoundError:
                # Removed between listing and reading
                continue
            key = record.get("key") if isinstance(record, dict) else None
            keys.append(key if isinstance(key, str) else record_file.name[: -len(FILE_SUFFIX)])
        return keys
