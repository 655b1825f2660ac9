"""Error definitions for kss-store.

Missing keys are not errors: ``get`` returns ``None`` and ``remove`` is a
no-op. Anything the substrate raises beyond that propagates unchanged.
"""


class StoreError(Exception):
    """Base exception for all kss-store errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(StoreError):
    """Required option missing or invalid at construction time."""

    pass


class StoreNotFoundError(StoreError):
    """No store implementation is registered for the requested type."""

    def __init__(self, store_type: str, cause: Exception | None = None):
        super().__init__(f"Store implementation not found for type {store_type}", cause)
        self.store_type = store_type
