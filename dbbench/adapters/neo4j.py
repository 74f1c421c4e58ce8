"""
Neo4j Adapter.

Benchmark records are nodes with a range index on ``value``. The driver
pools connections and is shared, but sessions are not safe for concurrent
use, so each chunk runs inside its own session. Queries run as auto-commit
transactions, which the driver never retries.
"""

import uuid
from typing import Any

import structlog
from neo4j import AsyncDriver, AsyncGraphDatabase

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)

INDEX_NAME = "benchmark_value"


class Neo4jAdapter(BackendAdapter):
    """Neo4j nodes with a range index on ``value``."""

    name = "neo4j"
    connection_discipline = "shared"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().neo4j
        self._driver: AsyncDriver | None = None

    @property
    def label(self) -> str:
        return self._settings.label

    async def connect(self) -> AsyncDriver:
        """Establish connection to Neo4j database."""
        if self._driver is None:
            self._driver = AsyncGraphDatabase.driver(
                self._settings.uri,
                auth=(self._settings.username, self._settings.password.get_secret_value()),
                max_connection_pool_size=self._settings.max_connection_pool_size,
            )
            await self._driver.verify_connectivity()
            logger.info("Connected to Neo4j", uri=self._settings.uri)
        return self._driver

    def session(self) -> Any:
        assert self._driver is not None
        return self._driver.session(database=self._settings.database)

    async def _run(self, query: str) -> None:
        async with self.session() as session:
            result = await session.run(query)
            await result.consume()

    async def _drop(self) -> None:
        await self._run(f"MATCH (n:`{self.label}`) DETACH DELETE n")
        await self._run(f"DROP INDEX {INDEX_NAME} IF EXISTS")

    async def setup(self) -> None:
        async with self.provisioning("setup"):
            await self.connect()
            await self._drop()
            await self._run(
                f"CREATE INDEX {INDEX_NAME} IF NOT EXISTS FOR (n:`{self.label}`) ON (n.value)"
            )
            await self._run("CALL db.awaitIndexes()")
        logger.info("Graph provisioned", label=self.label)

    async def setup_read(self) -> None:
        async with self.provisioning("setup_read"):
            await self.connect()

    async def insert(self, start: int, count: int) -> None:
        query = f"CREATE (n:`{self.label}` {{id: $id, name: $name, value: $value}})"
        async with self.session() as session:
            for value in range(start, start + count):
                result = await session.run(query, id=str(uuid.uuid4()), name="", value=value)
                summary = await result.consume()
                if summary.counters.nodes_created != 1:
                    raise WriteFailure("neo4j: node not created", backend=self.name, value=value)

    async def bulk_insert(self, start: int, count: int) -> None:
        if count == 0:
            return
        rows = [{"id": str(uuid.uuid4()), "name": "", "value": v} for v in range(start, start + count)]
        async with self.session() as session:
            result = await session.run(
                f"UNWIND $rows AS row CREATE (n:`{self.label}`) SET n = row",
                rows=rows,
            )
            summary = await result.consume()
        if summary.counters.nodes_created != count:
            raise WriteFailure(
                f"neo4j: bulk insert created {summary.counters.nodes_created} of {count} nodes",
                backend=self.name,
                value=start,
            )

    async def read(self, key: int) -> Record:
        async with self.session() as session:
            result = await session.run(
                f"MATCH (n:`{self.label}` {{value: $value}}) "
                "RETURN n.id AS id, n.name AS name, n.value AS value LIMIT 1",
                value=key,
            )
            record = await result.single()
        if record is None:
            raise NotFound(key, backend=self.name)
        return Record(id=record["id"], name=record["name"], value=record["value"])

    async def cleanup(self, drop: bool = False) -> None:
        if self._driver is None:
            return
        try:
            if drop:
                async with self.provisioning("teardown"):
                    await self._drop()
        finally:
            await self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")
