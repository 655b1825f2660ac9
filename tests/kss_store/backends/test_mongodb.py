"""Tests for the MongoDB backend.

Runs against an in-memory fake of the async client so no server is needed.
"""

import asyncio
import copy
from datetime import datetime
from typing import Any

import pytest

from kss_store.backends import MongoDBStore
from kss_store.backends.mongodb import DEFAULT_COLLECTION
from kss_store.errors import ConfigurationError
from kss_store.protocols import Store


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return list(self._documents[:length] if length else self._documents)


class FakeCollection:
    """Implements the subset of AsyncCollection the store uses."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self._next_id = 0

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        document = self.documents.get(query["key"])
        return copy.deepcopy(document)

    async def update_one(self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False) -> None:
        document = self.documents.get(query["key"])
        if document is None:
            if not upsert:
                return
            self._next_id += 1
            document = {"_id": self._next_id, **query}
            self.documents[query["key"]] = document
        document.update(copy.deepcopy(update["$set"]))

    async def delete_one(self, query: dict[str, Any]) -> None:
        self.documents.pop(query["key"], None)

    async def delete_many(self, query: dict[str, Any]) -> None:
        assert query == {}
        self.documents.clear()

    def find(self, query: dict[str, Any], projection: dict[str, int]) -> FakeCursor:
        fields = [name for name, include in projection.items() if include]
        return FakeCursor([
            {name: document[name] for name in fields if name in document}
            for document in self.documents.values()
        ])


class FakeDatabase(dict):
    def __missing__(self, name: str) -> FakeCollection:
        collection = self[name] = FakeCollection()
        return collection


class FakeMongoClient:
    """Records connections; databases live in a dict shared by all clients."""

    def __init__(self, connection_string: str, server: dict[str, FakeDatabase]) -> None:
        self.connection_string = connection_string
        self._server = server
        self.connected = False
        self.closed = False

    async def aconnect(self) -> None:
        await asyncio.sleep(0)
        self.connected = True

    def __getitem__(self, name: str) -> FakeDatabase:
        return self._server.setdefault(name, FakeDatabase())

    async def close(self) -> None:
        self.closed = True


class FakeMongoServer:
    def __init__(self) -> None:
        self.databases: dict[str, FakeDatabase] = {}
        self.clients: list[FakeMongoClient] = []

    def client(self, connection_string: str) -> FakeMongoClient:
        client = FakeMongoClient(connection_string, self.databases)
        self.clients.append(client)
        return client


CONNECTION_STRING = "mongodb://localhost:27017"


@pytest.fixture
def server() -> FakeMongoServer:
    return FakeMongoServer()


@pytest.fixture
def store(server) -> MongoDBStore:
    return MongoDBStore(
        {
            "connectionString": CONNECTION_STRING,
            "database": "kss-test-db",
            "collection": "kss-test-collection",
        },
        client_factory=server.client,
    )


class TestConfiguration:
    def test_missing_connection_string(self):
        with pytest.raises(ConfigurationError, match="connection string is required"):
            MongoDBStore({"database": "kss-test-db"})

    def test_missing_database(self):
        with pytest.raises(ConfigurationError, match="database name is required"):
            MongoDBStore({"connectionString": CONNECTION_STRING})

    def test_no_connection_attempt_on_construction(self, server, store):
        assert server.clients == []

    def test_default_collection(self, server):
        store = MongoDBStore(
            {"connectionString": CONNECTION_STRING, "database": "kss-test-db"},
            client_factory=server.client,
        )
        assert store.collection_name == DEFAULT_COLLECTION == "kss_store"

    def test_snake_case_options(self, server):
        store = MongoDBStore(
            {"connection_string": CONNECTION_STRING, "database": "db"},
            client_factory=server.client,
        )
        assert store.connection_string == CONNECTION_STRING


class TestMongoDBStore:
    def test_is_store(self, store):
        assert isinstance(store, Store)

    @pytest.mark.asyncio
    async def test_round_trip(self, store, sample_values):
        for key, value in sample_values.items():
            await store.set(key, value)

        for key, value in sample_values.items():
            assert await store.get(key) == value

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("non-existent") is None

    @pytest.mark.asyncio
    async def test_document_shape(self, store, server):
        await store.set("doc", {"name": "Test"})

        document = server.databases["kss-test-db"]["kss-test-collection"].documents["doc"]
        assert document["key"] == "doc"
        assert document["value"] == {"name": "Test"}
        assert isinstance(document["updatedAt"], datetime)

    @pytest.mark.asyncio
    async def test_overwrite_keeps_one_document(self, store, server):
        await store.set("key", "first")
        await store.set("key", "second")

        assert await store.get("key") == "second"
        assert len(server.databases["kss-test-db"]["kss-test-collection"].documents) == 1

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, store):
        await store.set("key-to-remove", "value")

        await store.remove("key-to-remove")
        await store.remove("key-to-remove")

        assert await store.get("key-to-remove") is None

    @pytest.mark.asyncio
    async def test_clear(self, store):
        await store.set("key1", "value1")
        await store.set("key2", "value2")

        await store.clear()

        assert await store.get("key1") is None
        assert await store.get("key2") is None

    @pytest.mark.asyncio
    async def test_clear_leaves_other_collections(self, store, server):
        other = MongoDBStore(
            {"connectionString": CONNECTION_STRING, "database": "kss-test-db", "collection": "other"},
            client_factory=server.client,
        )
        await store.set("key", 1)
        await other.set("key", 2)

        await store.clear()

        assert await other.get("key") == 2

    @pytest.mark.asyncio
    async def test_keys(self, store):
        await store.set("key1", "value1")
        await store.set("key2", "value2")
        await store.set("key3", "value3")

        assert sorted(await store.keys()) == ["key1", "key2", "key3"]

    @pytest.mark.asyncio
    async def test_default_collection_crud(self, server):
        store = MongoDBStore(
            {"connectionString": CONNECTION_STRING, "database": "kss-test-db"},
            client_factory=server.client,
        )
        await store.set("key", {"a": 1})
        assert await store.get("key") == {"a": 1}
        assert await store.keys() == ["key"]

        await store.remove("key")
        assert await store.get("key") is None
        assert "kss_store" in server.databases["kss-test-db"]

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_share_connection(self, store, server):
        await asyncio.gather(*(store.set(f"key{i}", i) for i in range(5)))

        assert len(server.clients) == 1
        assert server.clients[0].connection_string == CONNECTION_STRING
        assert server.clients[0].connected

    @pytest.mark.asyncio
    async def test_close_releases_client_and_reconnects(self, store, server):
        await store.set("key", "value")
        await store.close()

        assert server.clients[0].closed

        assert await store.get("key") == "value"
        assert len(server.clients) == 2

    @pytest.mark.asyncio
    async def test_close_before_connect_is_noop(self, store, server):
        await store.close()
        assert server.clients == []

    @pytest.mark.asyncio
    async def test_connection_failure_propagates_and_retries(self, server):
        attempts = []

        class RefusingClient(FakeMongoClient):
            async def aconnect(self) -> None:
                attempts.append(self)
                raise ConnectionRefusedError("refused")

        store = MongoDBStore(
            {"connectionString": CONNECTION_STRING, "database": "db"},
            client_factory=lambda cs: RefusingClient(cs, server.databases),
        )

        with pytest.raises(ConnectionRefusedError):
            await store.get("key")
        with pytest.raises(ConnectionRefusedError):
            await store.get("key")

        assert len(attempts) == 2
        assert all(client.closed for client in attempts)
