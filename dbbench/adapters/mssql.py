"""
SQL Server Adapter.

Table keyed by ``NEWID()`` with a nonclustered index on ``value``, driven
through aioodbc. ODBC connections are not safe for concurrent statements, so
each chunk opens and closes its own connection.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import aioodbc
import structlog

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.config.settings import get_settings
from dbbench.core.errors import NotFound, WriteFailure

logger = structlog.get_logger(__name__)


class MSSQLAdapter(BackendAdapter):
    """SQL Server table with an index on ``value``."""

    name = "mssql"
    connection_discipline = "per_chunk"

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings or get_settings().mssql

    @property
    def table(self) -> str:
        return self._settings.table

    @property
    def insert_statement(self) -> str:
        return f"INSERT INTO {self.table} (name, value) VALUES (?, ?)"

    @asynccontextmanager
    async def _connect(
        self,
        database: str | None = None,
        autocommit: bool = True,
    ) -> AsyncGenerator[Any, None]:
        connection = await aioodbc.connect(
            dsn=self._settings.connection_string(database),
            autocommit=autocommit,
        )
        try:
            yield connection
        finally:
            await connection.close()

    async def setup(self) -> None:
        database = self._settings.database
        async with self.provisioning("setup"):
            async with self._connect(database="master") as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(
                        f"IF DB_ID(N'{database}') IS NULL CREATE DATABASE [{database}]"
                    )
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute(f"DROP TABLE IF EXISTS {self.table}")
                    await cursor.execute(
                        f"CREATE TABLE {self.table} ("
                        "id UNIQUEIDENTIFIER PRIMARY KEY DEFAULT NEWID(), "
                        "name NVARCHAR(255), value INT)"
                    )
                    await cursor.execute(
                        f"CREATE INDEX IX_{self.table}_value ON {self.table} (value)"
                    )
        logger.info("Table provisioned", database=database, table=self.table)

    async def setup_read(self) -> None:
        async with self.provisioning("setup_read"):
            async with self._connect() as connection:
                async with connection.cursor() as cursor:
                    await cursor.execute("SELECT 1")

    async def insert(self, start: int, count: int) -> None:
        async with self._connect() as connection:
            async with connection.cursor() as cursor:
                for value in range(start, start + count):
                    await cursor.execute(self.insert_statement, ("", value))
                    if cursor.rowcount <= 0:
                        raise WriteFailure("mssql: insert affected no rows", backend=self.name, value=value)

    async def bulk_insert(self, start: int, count: int) -> None:
        async with self._connect(autocommit=False) as connection:
            try:
                async with connection.cursor() as cursor:
                    for value in range(start, start + count):
                        await cursor.execute(self.insert_statement, ("", value))
                        if cursor.rowcount <= 0:
                            raise WriteFailure(
                                "mssql: insert affected no rows", backend=self.name, value=value
                            )
                await connection.commit()
            except Exception:
                await connection.rollback()
                raise

    async def read(self, key: int) -> Record:
        async with self._connect() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute(
                    f"SELECT TOP 1 id, name, value FROM {self.table} WHERE value = ?", (key,)
                )
                row = await cursor.fetchone()
        if row is None:
            raise NotFound(key, backend=self.name)
        return Record(id=str(row[0]), name=row[1] or "", value=row[2])

    async def cleanup(self, drop: bool = False) -> None:
        if drop:
            async with self.provisioning("teardown"):
                async with self._connect() as connection:
                    async with connection.cursor() as cursor:
                        await cursor.execute(f"DROP TABLE IF EXISTS {self.table}")
