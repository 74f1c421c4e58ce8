"""
ClickHouse Adapter.

MergeTree table ordered by a UUID string, with a bloom-filter skip index on
``value``. Each chunk opens its own HTTP client: a client carries one server
session, and ClickHouse rejects concurrent queries within a session.
"""

import inspect
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import clickhouse_connect
import structlog
from clickhouse_connect.driver.summary import QuerySummary

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)

COLUMNS = ["id", "name", "value"]


def _written_rows(summary: Any) -> int | None:
    if isinstance(summary, QuerySummary):
        return summary.written_rows
    return None


class ClickHouseAdapter(BackendAdapter):
    """ClickHouse table with a bloom-filter index on ``value``."""

    name = "clickhouse"
    connection_discipline = "per_chunk"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().clickhouse

    @property
    def table(self) -> str:
        return f"{self._settings.database}.{self._settings.table}"

    @asynccontextmanager
    async def _client(self, database: str | None = None) -> AsyncGenerator[Any, None]:
        client = await clickhouse_connect.get_async_client(
            host=self._settings.host,
            port=self._settings.port,
            username=self._settings.username,
            password=self._settings.password.get_secret_value(),
            database=database or self._settings.database,
        )
        try:
            yield client
        finally:
            closed = client.close()
            if inspect.isawaitable(closed):
                await closed

    async def setup(self) -> None:
        async with self.provisioning("setup"):
            async with self._client(database="default") as client:
                await client.command(f"CREATE DATABASE IF NOT EXISTS {self._settings.database}")
                await client.command(f"DROP TABLE IF EXISTS {self.table}")
                await client.command(
                    f"CREATE TABLE {self.table} ("
                    "id String DEFAULT generateUUIDv4(), name String, value Int32"
                    ") ENGINE = MergeTree() ORDER BY id"
                )
                await client.command(
                    f"ALTER TABLE {self.table} "
                    "ADD INDEX idx_value value TYPE bloom_filter GRANULARITY 1"
                )
        logger.info("Table provisioned", table=self.table)

    async def setup_read(self) -> None:
        async with self.provisioning("setup_read"):
            async with self._client() as client:
                await client.command("SELECT 1")

    async def insert(self, start: int, count: int) -> None:
        statement = (
            f"INSERT INTO {self.table} (name, value) VALUES ({{name:String}}, {{value:Int32}})"
        )
        async with self._client() as client:
            for value in range(start, start + count):
                summary = await client.command(statement, parameters={"name": "", "value": value})
                written = _written_rows(summary)
                if written is not None and written < 1:
                    raise WriteFailure("clickhouse: insert wrote no rows", backend=self.name, value=value)

    async def bulk_insert(self, start: int, count: int) -> None:
        if count == 0:
            return
        rows = [[str(uuid.uuid4()), "", value] for value in range(start, start + count)]
        async with self._client() as client:
            summary = await client.insert(
                self._settings.table,
                rows,
                column_names=COLUMNS,
                database=self._settings.database,
            )
        written = _written_rows(summary)
        if written is not None and written != count:
            raise WriteFailure(
                f"clickhouse: bulk insert wrote {written} of {count} rows",
                backend=self.name,
                value=start,
            )

    async def read(self, key: int) -> Record:
        async with self._client() as client:
            result = await client.query(
                f"SELECT id, name, value FROM {self.table} WHERE value = {{value:Int32}} LIMIT 1",
                parameters={"value": key},
            )
        rows = result.result_rows
        if not rows:
            raise NotFound(key, backend=self.name)
        record_id, name, value = rows[0]
        return Record(id=str(record_id), name=name, value=value)

    async def cleanup(self, drop: bool = False) -> None:
        # Connections are per chunk; only teardown needs a client
        if drop:
            async with self.provisioning("teardown"):
                async with self._client(database="default") as client:
                    await client.command(f"DROP TABLE IF EXISTS {self.table}")
