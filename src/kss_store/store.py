"""Facade that picks a backend from configuration and forwards to it."""

import asyncio
import inspect
import logging
from types import TracebackType
from typing import Any, Awaitable, Mapping

from pydantic import ValidationError

from kss_store.backends.base import consume_task_exception
from kss_store.backends.web import HostStorage
from kss_store.config import WEB_STORAGE_TYPES, StoreConfig, StoreSettings
from kss_store.errors import ConfigurationError
from kss_store.protocols import Store
from kss_store.registry import StoreRegistry, default_registry

logger = logging.getLogger(__name__)


class KssStore:
    """Store facade that dispatches to the configured backend.

    Web storage backends are built in the constructor. Every other backend is
    built on first use; concurrent first calls share one resolution. If
    resolution fails, the error is raised to the first caller and to every
    call after it. There is no fallback backend.

    Example:
        ```python
        store = KssStore({"type": "FileSystem", "options": {"path": "data"}})
        await store.set("user:1", {"name": "Ada"})
        await store.get("user:1")
        ```
    """

    def __init__(
        self,
        config: StoreConfig | Mapping[str, Any],
        *,
        host: HostStorage | None = None,
        registry: StoreRegistry | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Backend type and options
            host: Storage areas provided by the host, for web storage types
            registry: Factories to resolve the type with; defaults to the
                built-in backends
        """
        if isinstance(config, StoreConfig):
            self.config = config
        else:
            try:
                self.config = StoreConfig.model_validate(config)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid store configuration: {e}", cause=e) from e
        self.type = self.config.type
        self.options: dict[str, Any] = dict(self.config.options)
        self._host = host or HostStorage()
        self._registry = registry or default_registry

        self._store: Store | None = None
        self._pending: Awaitable[Store] | None = None
        self._error: Exception | None = None
        self._error_tb: TracebackType | None = None
        self._resolving: asyncio.Task[Store] | None = None

        if self.type in WEB_STORAGE_TYPES:
            try:
                created = self._create()
            except Exception as e:
                self._fail(e)
            else:
                if inspect.isawaitable(created):
                    self._pending = created
                else:
                    self._store = created

    @classmethod
    def from_settings(cls, settings: StoreSettings | None = None, **kwargs: Any) -> "KssStore":
        """Build a store from environment settings (``KSS_STORE_*``)."""
        settings = settings or StoreSettings()
        return cls(settings.to_config(), **kwargs)

    def _create(self) -> "Store | Awaitable[Store]":
        factory = self._registry.factory(self.type)
        return factory(self.options, self._host)

    def _fail(self, error: Exception) -> None:
        logger.error("Failed to initialize %s store: %s", self.type, error)
        self._error = error
        self._error_tb = error.__traceback__

    async def resolve(self) -> Store:
        """Return the backend store, building it if needed."""
        if self._store is not None:
            return self._store
        if self._error is not None:
            # Restore the original traceback so repeated raises do not grow it.
            raise self._error.with_traceback(self._error_tb)
        if self._resolving is None:
            self._resolving = asyncio.ensure_future(self._resolve())
            self._resolving.add_done_callback(consume_task_exception)
        return await asyncio.shield(self._resolving)

    async def _resolve(self) -> Store:
        try:
            if self._pending is not None:
                created, self._pending = self._pending, None
            else:
                created = self._create()
            store = await created if inspect.isawaitable(created) else created
        except Exception as e:
            self._fail(e)
            raise
        self._store = store
        return store

    async def get(self, key: str) -> Any | None:
        store = await self.resolve()
        return await store.get(key)

    async def set(self, key: str, value: Any) -> None:
        store = await self.resolve()
        return await store.set(key, value)

    async def remove(self, key: str) -> None:
        store = await self.resolve()
        return await store.remove(key)

    async def clear(self) -> None:
        store = await self.resolve()
        return await store.clear()

    async def keys(self) -> list[str]:
        store = await self.resolve()
        return await store.keys()

    async def close(self) -> None:
        """Release the backend's resources, if it holds any.

        Only backends with a ``close()`` method (MongoDB, IndexedDB) have
        anything to release. Does nothing if the backend was never built.
        """
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "KssStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
