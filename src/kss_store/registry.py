"""Static mapping from backend identifiers to store factories.

Identifiers without a registered factory (``SQLite``, ``MySQL``,
``PostgreSQL``, ``Redis``) are reserved: asking for them raises
``StoreNotFoundError`` just like an unknown identifier does.
"""

from typing import Any, Awaitable, Callable, Mapping

from kss_store.backends import (
    FileSystemStore,
    HostStorage,
    IndexedDBStore,
    MongoDBStore,
    local_storage_store,
    session_storage_store,
)
from kss_store.config import StorageType
from kss_store.errors import StoreNotFoundError
from kss_store.protocols import Store

StoreFactory = Callable[[Mapping[str, Any], HostStorage], "Store | Awaitable[Store]"]


class StoreRegistry:
    """Maps each ``StorageType`` to the factory that builds its store.

    A factory receives the options mapping and the host's storage areas, and
    returns a store (or an awaitable resolving to one).
    """

    def __init__(self) -> None:
        self._factories: dict[StorageType, StoreFactory] = {}

    def register(self, store_type: StorageType | str, factory: StoreFactory) -> None:
        """Register (or replace) the factory for a backend identifier."""
        self._factories[StorageType(store_type)] = factory

    def factory(self, store_type: StorageType | str) -> StoreFactory:
        """Look up the factory for a backend identifier.

        Raises:
            StoreNotFoundError: If the identifier is unknown or has no factory
        """
        try:
            resolved = StorageType(store_type)
        except ValueError as e:
            raise StoreNotFoundError(str(store_type), cause=e) from e

        factory = self._factories.get(resolved)
        if factory is None:
            raise StoreNotFoundError(resolved.value)
        return factory

    def types(self) -> list[StorageType]:
        """Identifiers that currently have a factory."""
        return list(self._factories)

    def __contains__(self, store_type: object) -> bool:
        try:
            return StorageType(store_type) in self._factories
        except ValueError:
            return False


def _build_default_registry() -> StoreRegistry:
    registry = StoreRegistry()
    registry.register(
        StorageType.LOCAL_STORAGE,
        lambda options, host: local_storage_store(options, host=host),
    )
    registry.register(
        StorageType.SESSION_STORAGE,
        lambda options, host: session_storage_store(options, host=host),
    )
    registry.register(StorageType.FILE_SYSTEM, lambda options, host: FileSystemStore(options))
    registry.register(StorageType.MONGODB, lambda options, host: MongoDBStore(options))
    registry.register(StorageType.INDEXED_DB, lambda options, host: IndexedDBStore(options))
    return registry


default_registry = _build_default_registry()
