"""Shared pytest fixtures for kss-store tests."""

import pytest

from kss_store.backends import HostStorage, MemoryStorage


@pytest.fixture
def host() -> HostStorage:
    """Host environment with both web storage areas available.

    Returns:
        HostStorage backed by two independent in-memory areas
    """
    return HostStorage(local=MemoryStorage(), session=MemoryStorage())


@pytest.fixture
def sample_values() -> dict:
    """One value of each kind a store has to round-trip."""
    return {
        "string-key": "string-value",
        "number-key": 12345,
        "float-key": 1.5,
        "bool-key": True,
        "array-key": [1, 2, 3, "test"],
        "object-key": {"name": "Test", "value": 123, "nested": {"tags": ["a", "b"]}},
    }
