"""kss-store - One asynchronous key-value interface over several backends.

This package provides:
- Store protocol shared by every backend (get/set/remove/clear/keys)
- Web storage, filesystem, MongoDB and IndexedDB backends
- KssStore facade that selects a backend from configuration
"""

__version__ = "0.1.0"

# Re-export commonly used items at package level
from kss_store.backends import (
    FileSystemStore,
    HostStorage,
    IndexedDBStore,
    MemoryStorage,
    MongoDBStore,
    WebStorageStore,
    local_storage_store,
    session_storage_store,
)
from kss_store.config import (
    FileSystemOptions,
    IndexedDBOptions,
    MongoDBOptions,
    StorageType,
    StoreConfig,
    StoreOptions,
    StoreSettings,
    WebStorageOptions,
)
from kss_store.errors import ConfigurationError, StoreError, StoreNotFoundError
from kss_store.protocols import StorageArea, Store
from kss_store.registry import StoreRegistry, default_registry
from kss_store.store import KssStore

__all__ = [
    # Facade
    "KssStore",
    "StoreRegistry",
    "default_registry",
    # Protocols
    "Store",
    "StorageArea",
    # Backends
    "FileSystemStore",
    "IndexedDBStore",
    "MongoDBStore",
    "WebStorageStore",
    "MemoryStorage",
    "HostStorage",
    "local_storage_store",
    "session_storage_store",
    # Configuration
    "StorageType",
    "StoreConfig",
    "StoreSettings",
    "StoreOptions",
    "WebStorageOptions",
    "FileSystemOptions",
    "MongoDBOptions",
    "IndexedDBOptions",
    # Errors
    "StoreError",
    "ConfigurationError",
    "StoreNotFoundError",
]
