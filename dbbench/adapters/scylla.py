"""
ScyllaDB Adapter.

CQL table keyed by a client-generated UUID with a secondary index on
``value``. The driver session is thread-safe and multiplexes requests, so
one session is shared by all chunks. Driver futures complete on the driver's
I/O thread and are handed back to the event loop without blocking it.

Statements are not marked idempotent: the harness never retries, and a
replayed insert would add a second row with a fresh id.
"""

import asyncio
import uuid
from typing import Any

import structlog
from cassandra import ConsistencyLevel, Unavailable, WriteTimeout
from cassandra import WriteFailure as CqlWriteFailure
from cassandra.auth import PlainTextAuthProvider
from cassandra.query import BatchStatement, BatchType

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)

_WRITE_ERRORS = (WriteTimeout, CqlWriteFailure, Unavailable)


def _set_result(future: asyncio.Future, result: Any) -> None:
    if not future.done():
        future.set_result(result)


def _set_exception(future: asyncio.Future, exc: BaseException) -> None:
    if not future.done():
        future.set_exception(exc)


class ScyllaAdapter(BackendAdapter):
    """ScyllaDB keyspace with one table and a secondary index on ``value``."""

    name = "scylla"
    connection_discipline = "shared"

    TABLE = "testdata"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().scylla
        self._cluster: Any = None
        self._session: Any = None
        self._insert_stmt: Any = None
        self._read_stmt: Any = None

    @property
    def keyspace(self) -> str:
        return self._settings.keyspace

    @property
    def consistency_level(self) -> int:
        return getattr(ConsistencyLevel, self._settings.consistency)

    def _build_cluster(self) -> Any:
        # Importing cassandra.cluster selects the I/O reactor
        from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile

        auth_provider = None
        if self._settings.username and self._settings.password:
            auth_provider = PlainTextAuthProvider(
                username=self._settings.username,
                password=self._settings.password.get_secret_value(),
            )
        profile = ExecutionProfile(
            consistency_level=self.consistency_level,
            serial_consistency_level=ConsistencyLevel.LOCAL_SERIAL,
            request_timeout=self._settings.request_timeout,
        )
        return Cluster(
            contact_points=self._settings.contact_points,
            port=self._settings.port,
            auth_provider=auth_provider,
            execution_profiles={EXEC_PROFILE_DEFAULT: profile},
        )

    async def _connect(self) -> Any:
        if self._session is None:
            self._cluster = self._build_cluster()
            self._session = await asyncio.to_thread(self._cluster.connect)
            logger.info("Connected to Scylla", contact_points=self._settings.contact_points)
        return self._session

    async def _execute(self, statement: Any, parameters: Any = None) -> list[Any]:
        """Run a statement and resolve to the first page of rows."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        response_future = self._session.execute_async(statement, parameters)
        response_future.add_callbacks(
            lambda rows: loop.call_soon_threadsafe(_set_result, future, rows),
            lambda exc: loop.call_soon_threadsafe(_set_exception, future, exc),
        )
        rows = await future
        return list(rows) if rows is not None else []

    async def _prepare(self, query: str) -> Any:
        return await asyncio.to_thread(self._session.prepare, query)

    async def setup(self) -> None:
        async with self.provisioning("setup"):
            await self._connect()
            await self._execute(f"DROP KEYSPACE IF EXISTS {self.keyspace}")
            await self._execute(
                f"CREATE KEYSPACE {self.keyspace} WITH replication = "
                f"{{'class': 'SimpleStrategy', 'replication_factor': {self._settings.replication_factor}}}"
            )
            await self._execute(
                f"CREATE TABLE {self.keyspace}.{self.TABLE} ("
                "id uuid PRIMARY KEY, name text, value int)"
            )
            await self._execute(
                f"CREATE INDEX IF NOT EXISTS idx_value ON {self.keyspace}.{self.TABLE} (value)"
            )
            self._insert_stmt = await self._prepare(
                f"INSERT INTO {self.keyspace}.{self.TABLE} (id, name, value) VALUES (?, ?, ?)"
            )
        logger.info("Keyspace provisioned", keyspace=self.keyspace)

    async def setup_read(self) -> None:
        async with self.provisioning("setup_read"):
            await self._connect()
            self._read_stmt = await self._prepare(
                f"SELECT id, name, value FROM {self.keyspace}.{self.TABLE} WHERE value = ?"
            )

    async def insert(self, start: int, count: int) -> None:
        for value in range(start, start + count):
            try:
                await self._execute(self._insert_stmt, (uuid.uuid4(), "", value))
            except _WRITE_ERRORS as e:
                raise WriteFailure(f"scylla: {e}", backend=self.name, value=value) from e

    async def bulk_insert(self, start: int, count: int) -> None:
        if count == 0:
            return
        batch = BatchStatement(batch_type=BatchType.UNLOGGED, consistency_level=self.consistency_level)
        for value in range(start, start + count):
            batch.add(self._insert_stmt, (uuid.uuid4(), "", value))
        try:
            await self._execute(batch)
        except _WRITE_ERRORS as e:
            raise WriteFailure(f"scylla: batch failed: {e}", backend=self.name, value=start) from e

    async def read(self, key: int) -> Record:
        rows = await self._execute(self._read_stmt, (key,))
        if not rows:
            raise NotFound(key, backend=self.name)
        row = rows[0]
        return Record(id=str(row.id), name=row.name or "", value=row.value)

    async def cleanup(self, drop: bool = False) -> None:
        if self._session is None:
            return
        try:
            if drop:
                async with self.provisioning("teardown"):
                    await self._execute(f"DROP KEYSPACE IF EXISTS {self.keyspace}")
        finally:
            cluster = self._cluster
            self._session = None
            self._cluster = None
            self._insert_stmt = None
            self._read_stmt = None
            await asyncio.to_thread(cluster.shutdown)
            logger.info("Disconnected from Scylla")
