"""Web storage backend (localStorage / sessionStorage).

The storage areas themselves belong to the host and are injected through
``HostStorage``. When the host has no area of the requested kind the store
falls back to an in-memory ``MemoryStorage`` and logs a warning instead of
failing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from kss_store.backends.base import decode_text_value, encode_text_value
from kss_store.config import StorageType, StoreOptions, WebStorageOptions
from kss_store.protocols import StorageArea

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-memory ``StorageArea`` for hosts without web storage.

    Also handy as a stand-in area in tests.
    """

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def key(self, index: int) -> str | None:
        keys = list(self._items)
        if 0 <= index < len(keys):
            return keys[index]
        return None

    def keys(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class HostStorage:
    """Storage areas provided by the host environment.

    Either area may be missing, in which case stores built for it use
    in-memory storage.
    """

    local: StorageArea | None = None
    session: StorageArea | None = None

    def area(self, storage_type: StorageType | str) -> StorageArea | None:
        if StorageType(storage_type) is StorageType.SESSION_STORAGE:
            return self.session
        return self.local


class WebStorageStore:
    """Store backed by a web storage area.

    Keys are namespaced as ``prefix:key`` when a prefix is configured.
    Non-string values, and strings that would parse as JSON, are JSON
    encoded. Other strings are stored as-is.

    Without a prefix the store's scope is the whole area: ``keys()`` lists
    every item and ``clear()`` empties the area.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | StoreOptions | None = None,
        *,
        storage: StorageArea | None = None,
        host: HostStorage | None = None,
    ) -> None:
        """Initialize web storage store.

        Args:
            options: Web storage options (``prefix``, ``storageType``)
            storage: Storage area to use. Takes precedence over ``host``.
            host: Host areas; the one matching ``storageType`` is used

        Note:
            With neither ``storage`` nor a matching host area the store
            falls back to in-memory storage.
        """
        self.options = WebStorageOptions.parse(options)
        self.prefix = self.options.prefix
        self.storage_type = self.options.storage_type
        if storage is None and host is not None:
            storage = host.area(self.storage_type)
        if storage is None:
            logger.warning(
                "%s is not available in this environment, using in-memory storage",
                self.storage_type.value,
            )
            storage = MemoryStorage()
        self.storage: StorageArea = storage

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    async def get(self, key: str) -> Any | None:
        """Read a value from the storage area.

        Args:
            key: Key without the prefix

        Returns:
            Decoded value, or None if the key is not set
        """
        raw = self.storage.get_item(self._full_key(key))
        if raw is None:
            return None
        return decode_text_value(raw)

    async def set(self, key: str, value: Any) -> None:
        """Write a value under the prefixed key.

        Args:
            key: Key without the prefix
            value: JSON-serializable value
        """
        self.storage.set_item(self._full_key(key), encode_text_value(value))

    async def remove(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        self.storage.remove_item(self._full_key(key))

    async def clear(self) -> None:
        """Remove every key in this store's scope."""
        if not self.prefix:
            self.storage.clear()
            return
        for key in await self.keys():
            await self.remove(key)

    async def keys(self) -> list[str]:
        """List keys in this store's scope.

        Returns:
            Keys with the prefix stripped
        """
        all_keys = self.storage.keys()
        if not self.prefix:
            return all_keys
        marker = f"{self.prefix}:"
        return [key[len(marker):] for key in all_keys if key.startswith(marker)]


def _pinned_store(
    storage_type: StorageType,
    options: Mapping[str, Any] | StoreOptions | None,
    host: HostStorage | None,
) -> WebStorageStore:
    data = dict(StoreOptions.parse(options).model_dump(by_alias=True))
    data["storageType"] = storage_type.value
    return WebStorageStore(data, host=host)


def local_storage_store(
    options: Mapping[str, Any] | StoreOptions | None = None,
    *,
    host: HostStorage | None = None,
) -> WebStorageStore:
    """Web storage store pinned to the persistent area."""
    return _pinned_store(StorageType.LOCAL_STORAGE, options, host)


def session_storage_store(
    options: Mapping[str, Any] | StoreOptions | None = None,
    *,
    host: HostStorage | None = None,
) -> WebStorageStore:
    """Web storage store pinned to the session-scoped area."""
    return _pinned_store(StorageType.SESSION_STORAGE, options, host)
