"""Protocol definitions for kss-store.

``Store`` is the contract every backend satisfies and the only type
application code needs to depend on. ``StorageArea`` is the item-access shape
of a host-provided web storage area.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Store(Protocol):
    """Asynchronous key-value store.

    Every operation may perform I/O. Missing keys are never an error:
    ``get`` returns ``None`` and ``remove`` does nothing.
    """

    async def get(self, key: str) -> Any | None:
        """Retrieve the value stored under key.

        Args:
            key: Logical key

        Returns:
            The stored value, or None if not found
        """
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store value under key, overwriting any previous value.

        Args:
            key: Logical key
            value: Any JSON-compatible value
        """
        ...

    async def remove(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        ...

    async def clear(self) -> None:
        """Remove every key within the store's scope and nothing outside it."""
        ...

    async def keys(self) -> list[str]:
        """List the logical keys currently in scope."""
        ...


@runtime_checkable
class StorageArea(Protocol):
    """Synchronous string-to-string storage area (localStorage-like)."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def key(self, index: int) -> str | None: ...

    def keys(self) -> list[str]: ...

    def __len__(self) -> int: ...
