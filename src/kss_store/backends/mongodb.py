"""MongoDB backend for key-value storage."""

import logging
from typing import Any, Callable, Mapping

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

from kss_store.backends.base import LazyInit, utc_now
from kss_store.config import MongoDBOptions, StoreOptions
from kss_store.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "kss_store"


class MongoDBStore:
    """MongoDB implementation of the Store protocol.

    Each key is one document in the configured collection:
    - key: the logical key
    - value: the value, stored as a native BSON document/value
    - updatedAt: UTC timestamp of the last write

    The whole collection is the store's scope, so ``clear()`` empties it.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | StoreOptions | None = None,
        *,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        """Initialize MongoDB store.

        Args:
            options: MongoDB options (``connectionString``, ``database``,
                ``collection``)
            client_factory: Builds the client from the connection string;
                defaults to ``AsyncMongoClient``

        Raises:
            ConfigurationError: If the connection string or database name is missing

        Note:
            The connection is opened lazily on first use.
        """
        self.options = MongoDBOptions.parse(options)
        if not self.options.connection_string:
            raise ConfigurationError("MongoDB connection string is required")
        if not self.options.database:
            raise ConfigurationError("MongoDB database name is required")

        self.connection_string: str = self.options.connection_string
        self.database: str = self.options.database
        self.collection_name = self.options.collection or DEFAULT_COLLECTION
        self._client_factory = client_factory or AsyncMongoClient
        self._client: Any | None = None
        self._collection = LazyInit(self._connect, f"MongoDBStore({self.database})")

    async def _connect(self) -> AsyncCollection:
        client = self._client_factory(self.connection_string)
        try:
            await client.aconnect()
        except Exception:
            await client.close()
            raise
        self._client = client
        logger.debug("Connected to MongoDB database %s", self.database)
        return client[self.database][self.collection_name]

    async def get(self, key: str) -> Any | None:
        """Get the value of the document with this key.

        Args:
            key: Document key

        Returns:
            Stored value, or None if there is no such document
        """
        collection = await self._collection.get()
        document = await collection.find_one({"key": key})
        return document["value"] if document else None

    async def set(self, key: str, value: Any) -> None:
        """Upsert the document for a key and stamp ``updatedAt``.

        Args:
            key: Document key
            value: BSON-serializable value
        """
        collection = await self._collection.get()
        await collection.update_one(
            {"key": key},
            {"$set": {"value": value, "updatedAt": utc_now()}},
            upsert=True,
        )

    async def remove(self, key: str) -> None:
        """Delete the document for a key, if any."""
        collection = await self._collection.get()
        await collection.delete_one({"key": key})

    async def clear(self) -> None:
        """Delete every document in the collection."""
        collection = await self._collection.get()
        await collection.delete_many({})

    async def keys(self) -> list[str]:
        """List the keys of all documents in the collection.

        Returns:
            Document keys, in server order
        """
        collection = await self._collection.get()
        cursor = collection.find({}, {"key": 1, "_id": 0})
        return [document["key"] for document in await cursor.to_list(None)]

    async def close(self) -> None:
        """Close the MongoDB client.

        Should be called during application shutdown. A later operation
        reconnects.
        """
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collection.reset()
            logger.debug("Closed MongoDB connection to %s", self.database)
