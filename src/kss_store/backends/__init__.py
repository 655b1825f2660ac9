"""Store backend implementations."""

from kss_store.backends.base import LazyInit
from kss_store.backends.filesystem import FileSystemStore, sanitize_key
from kss_store.backends.indexeddb import IndexedDBStore
from kss_store.backends.mongodb import MongoDBStore
from kss_store.backends.web import (
    HostStorage,
    MemoryStorage,
    WebStorageStore,
    local_storage_store,
    session_storage_store,
)

__all__ = [
    "LazyInit",
    "FileSystemStore",
    "sanitize_key",
    "IndexedDBStore",
    "MongoDBStore",
    "HostStorage",
    "MemoryStorage",
    "WebStorageStore",
    "local_storage_store",
    "session_storage_store",
]
