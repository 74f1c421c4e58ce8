"""
Unit Tests for the ClickHouse Adapter.
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from clickhouse_connect.driver.summary import QuerySummary

from dbbench.adapters.clickhouse import COLUMNS, ClickHouseAdapter
from dbbench.config.settings import ClickHouseSettings
from dbbench.core.errors import NotFound, ProvisioningFailure, WriteFailure


@pytest.fixture
def ch_client() -> Generator[tuple[AsyncMock, MagicMock], None, None]:
    client = MagicMock()
    client.command = AsyncMock(return_value=QuerySummary({"written_rows": "1"}))
    client.insert = AsyncMock()
    client.query = AsyncMock()
    client.close = MagicMock()
    with patch(
        "dbbench.adapters.clickhouse.clickhouse_connect.get_async_client",
        new=AsyncMock(return_value=client),
    ) as factory:
        yield factory, client


@pytest.fixture
def adapter() -> ClickHouseAdapter:
    return ClickHouseAdapter(ClickHouseSettings())


class TestClickHouseAdapter:
    """Test cases for ClickHouseAdapter."""

    # =========================================================================
    # Provisioning
    # =========================================================================

    @pytest.mark.asyncio
    async def test_setup(self, adapter: ClickHouseAdapter, ch_client) -> None:
        factory, client = ch_client

        await adapter.setup()

        assert factory.await_args.kwargs["database"] == "default"
        statements = [c.args[0] for c in client.command.await_args_list]
        assert statements[0] == "CREATE DATABASE IF NOT EXISTS benchmark"
        assert statements[1] == "DROP TABLE IF EXISTS benchmark.testdata"
        assert "ENGINE = MergeTree() ORDER BY id" in statements[2]
        assert "bloom_filter" in statements[3]
        client.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_setup_failure_closes_client(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.command.side_effect = RuntimeError("Code: 516")

        with pytest.raises(ProvisioningFailure):
            await adapter.setup()

        client.close.assert_called_once()

    # =========================================================================
    # Writes
    # =========================================================================

    @pytest.mark.asyncio
    async def test_insert_one_client_per_chunk(
        self, adapter: ClickHouseAdapter, ch_client
    ) -> None:
        factory, client = ch_client

        await adapter.insert(0, 3)
        await adapter.insert(3, 3)

        assert factory.await_count == 2
        params = [c.kwargs["parameters"] for c in client.command.await_args_list]
        assert [p["value"] for p in params] == [0, 1, 2, 3, 4, 5]
        assert "{value:Int32}" in client.command.await_args.args[0]

    @pytest.mark.asyncio
    async def test_insert_no_rows_written(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.command.return_value = QuerySummary({"written_rows": "0"})

        with pytest.raises(WriteFailure):
            await adapter.insert(0, 1)

    @pytest.mark.asyncio
    async def test_bulk_insert(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.insert.return_value = QuerySummary({"written_rows": "3"})

        await adapter.bulk_insert(7, 3)

        args, kwargs = client.insert.await_args
        assert args[0] == "testdata"
        assert [row[2] for row in args[1]] == [7, 8, 9]
        assert kwargs == {"column_names": COLUMNS, "database": "benchmark"}

    @pytest.mark.asyncio
    async def test_bulk_insert_short_write(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.insert.return_value = QuerySummary({"written_rows": "2"})

        with pytest.raises(WriteFailure, match="2 of 3"):
            await adapter.bulk_insert(7, 3)

    # =========================================================================
    # Reads
    # =========================================================================

    @pytest.mark.asyncio
    async def test_read(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.query.return_value = MagicMock(result_rows=[("3f2a", "", 21)])

        record = await adapter.read(21)

        assert client.query.await_args.kwargs == {"parameters": {"value": 21}}
        assert (record.id, record.name, record.value) == ("3f2a", "", 21)

    @pytest.mark.asyncio
    async def test_read_miss(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client
        client.query.return_value = MagicMock(result_rows=[])

        with pytest.raises(NotFound):
            await adapter.read(21)

    # =========================================================================
    # Cleanup
    # =========================================================================

    @pytest.mark.asyncio
    async def test_cleanup_without_drop_is_a_no_op(
        self, adapter: ClickHouseAdapter, ch_client
    ) -> None:
        factory, _ = ch_client

        await adapter.cleanup()

        factory.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cleanup_drop(self, adapter: ClickHouseAdapter, ch_client) -> None:
        _, client = ch_client

        await adapter.cleanup(drop=True)

        client.command.assert_awaited_once_with("DROP TABLE IF EXISTS benchmark.testdata")
