"""
Elasticsearch Adapter.

Documents carry a client-generated ``id`` keyword, a ``name`` text field and
an integer ``value`` that reads match with a ``term`` query. The async client
pools HTTP connections, so one client is shared by all chunks.
"""

import uuid
from typing import Any

import structlog
from elasticsearch import AsyncElasticsearch
from elasticsearch.helpers import async_bulk

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)

INDEX_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "name": {"type": "text"},
        "value": {"type": "integer"},
    }
}


def _document(value: int) -> dict[str, Any]:
    return {"id": str(uuid.uuid4()), "name": "", "value": value}


class ElasticsearchAdapter(BackendAdapter):
    """Single Elasticsearch index with an integer mapping on ``value``."""

    name = "elasticsearch"
    connection_discipline = "shared"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().elasticsearch
        self._client: AsyncElasticsearch | None = None

    @property
    def index(self) -> str:
        return self._settings.index

    def _connect(self) -> AsyncElasticsearch:
        if self._client is None:
            basic_auth = None
            if self._settings.username and self._settings.password:
                basic_auth = (self._settings.username, self._settings.password.get_secret_value())
            self._client = AsyncElasticsearch(
                self._settings.url,
                basic_auth=basic_auth,
                request_timeout=self._settings.request_timeout,
            )
            logger.info("Connected to Elasticsearch", url=self._settings.url)
        return self._client

    async def setup(self) -> None:
        client = self._connect()
        async with self.provisioning("setup"):
            if await client.indices.exists(index=self.index):
                await client.indices.delete(index=self.index)
            await client.indices.create(index=self.index, mappings=INDEX_MAPPINGS)
        logger.info("Index provisioned", index=self.index)

    async def setup_read(self) -> None:
        client = self._connect()
        # Documents become searchable only after a refresh
        async with self.provisioning("refresh"):
            await client.indices.refresh(index=self.index)

    async def insert(self, start: int, count: int) -> None:
        client = self._connect()
        for value in range(start, start + count):
            document = _document(value)
            response = await client.index(index=self.index, id=document["id"], document=document)
            if response.get("result") not in ("created", "updated"):
                raise WriteFailure(
                    f"elasticsearch: index returned {response.get('result')!r}",
                    backend=self.name,
                    value=value,
                )

    async def bulk_insert(self, start: int, count: int) -> None:
        if count == 0:
            return
        actions = [
            {"_index": self.index, "_id": document["id"], "_source": document}
            for document in (_document(value) for value in range(start, start + count))
        ]
        succeeded, errors = await async_bulk(self._connect(), actions, raise_on_error=False)
        if errors or succeeded != count:
            raise WriteFailure(
                f"elasticsearch: bulk indexed {succeeded} of {count} documents",
                backend=self.name,
                value=start,
            )

    async def read(self, key: int) -> Record:
        response = await self._connect().search(
            index=self.index,
            query={"term": {"value": key}},
            size=1,
        )
        hits = response["hits"]["hits"]
        if not hits:
            raise NotFound(key, backend=self.name)
        source = hits[0]["_source"]
        return Record(id=source.get("id", hits[0]["_id"]), name=source["name"], value=source["value"])

    async def cleanup(self, drop: bool = False) -> None:
        if self._client is None:
            return
        try:
            if drop:
                async with self.provisioning("teardown"):
                    await self._client.indices.delete(index=self.index, ignore_unavailable=True)
        finally:
            await self._client.close()
            self._client = None
            logger.info("Disconnected from Elasticsearch")
