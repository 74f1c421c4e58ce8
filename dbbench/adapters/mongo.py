"""
MongoDB Adapter.

Uses the native asyncio client of pymongo. The client owns a connection pool
that is safe for concurrent use, so one client is shared by all chunks.
"""

from typing import Any

import structlog
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)


class MongoAdapter(BackendAdapter):
    """MongoDB collection with an ascending index on ``value``."""

    name = "mongo"
    connection_discipline = "shared"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().mongo
        self._client: AsyncMongoClient | None = None

    def _connect(self) -> AsyncMongoClient:
        if self._client is None:
            self._client = AsyncMongoClient(
                host=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=self._settings.password.get_secret_value(),
                authSource=self._settings.auth_source,
            )
            logger.info("Connected to MongoDB", host=self._settings.host, port=self._settings.port)
        return self._client

    @property
    def collection(self) -> AsyncCollection:
        client = self._connect()
        return client[self._settings.database][self._settings.collection]

    async def setup(self) -> None:
        async with self.provisioning("setup"):
            database = self._connect()[self._settings.database]
            await database.drop_collection(self._settings.collection)
            await self.collection.create_index([("value", ASCENDING)])
        logger.info("Collection provisioned", collection=self._settings.collection)

    async def setup_read(self) -> None:
        self._connect()

    async def insert(self, start: int, count: int) -> None:
        collection = self.collection
        for value in range(start, start + count):
            result = await collection.insert_one({"name": "", "value": value})
            if not result.acknowledged:
                raise WriteFailure("mongo: insert not acknowledged", backend=self.name, value=value)

    async def bulk_insert(self, start: int, count: int) -> None:
        if count == 0:
            return
        documents = [{"name": "", "value": value} for value in range(start, start + count)]
        result = await self.collection.insert_many(documents)
        if not result.acknowledged or len(result.inserted_ids) != count:
            raise WriteFailure(
                f"mongo: bulk insert wrote {len(result.inserted_ids)} of {count} documents",
                backend=self.name,
                value=start,
            )

    async def read(self, key: int) -> Record:
        document = await self.collection.find_one({"value": key})
        if document is None:
            raise NotFound(key, backend=self.name)
        return Record(id=str(document["_id"]), name=document["name"], value=document["value"])

    async def cleanup(self, drop: bool = False) -> None:
        if self._client is None:
            return
        try:
            if drop:
                async with self.provisioning("teardown"):
                    await self._client[self._settings.database].drop_collection(
                        self._settings.collection
                    )
        finally:
            await self._client.close()
            self._client = None
            logger.info("Disconnected from MongoDB")
