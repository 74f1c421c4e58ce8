"""
Unit Tests for the MongoDB Adapter.

The pymongo async client is replaced by MagicMock/AsyncMock doubles.
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import ASCENDING

from dbbench.adapters.mongo import MongoAdapter
from dbbench.config.settings import MongoSettings
from dbbench.core.errors import NotFound, ProvisioningFailure, WriteFailure


@pytest.fixture
def mongo_client() -> Generator[tuple[MagicMock, MagicMock, MagicMock], None, None]:
    """Patched AsyncMongoClient class, database and collection doubles."""
    with patch("dbbench.adapters.mongo.AsyncMongoClient") as mock_cls:
        collection = MagicMock()
        collection.create_index = AsyncMock()
        collection.insert_one = AsyncMock(return_value=MagicMock(acknowledged=True))
        collection.find_one = AsyncMock()

        database = MagicMock()
        database.drop_collection = AsyncMock()
        database.__getitem__.return_value = collection

        client = MagicMock()
        client.__getitem__.return_value = database
        client.close = AsyncMock()
        mock_cls.return_value = client

        yield mock_cls, database, collection


@pytest.fixture
def adapter() -> MongoAdapter:
    return MongoAdapter(MongoSettings(password="s3cret"))


class TestMongoAdapter:
    """Test cases for MongoAdapter."""

    # =========================================================================
    # Provisioning
    # =========================================================================

    @pytest.mark.asyncio
    async def test_setup_drops_and_indexes(self, adapter: MongoAdapter, mongo_client) -> None:
        mock_cls, database, collection = mongo_client

        await adapter.setup()

        mock_cls.assert_called_once_with(
            host="127.0.0.1",
            port=27017,
            username="root",
            password="s3cret",
            authSource="admin",
        )
        database.drop_collection.assert_awaited_once_with("keyvaluecollection")
        collection.create_index.assert_awaited_once_with([("value", ASCENDING)])

    @pytest.mark.asyncio
    async def test_setup_failure_is_provisioning_failure(
        self, adapter: MongoAdapter, mongo_client
    ) -> None:
        _, database, _ = mongo_client
        database.drop_collection.side_effect = RuntimeError("auth failed")

        with pytest.raises(ProvisioningFailure) as exc_info:
            await adapter.setup()

        assert exc_info.value.backend == "mongo"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_client_is_shared(self, adapter: MongoAdapter, mongo_client) -> None:
        mock_cls, _, _ = mongo_client

        await adapter.setup()
        await adapter.setup_read()
        await adapter.insert(0, 3)

        assert mock_cls.call_count == 1

    # =========================================================================
    # Writes
    # =========================================================================

    @pytest.mark.asyncio
    async def test_insert_one_per_record(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client

        await adapter.insert(84, 3)

        documents = [c.args[0] for c in collection.insert_one.await_args_list]
        assert documents == [{"name": "", "value": v} for v in (84, 85, 86)]

    @pytest.mark.asyncio
    async def test_unacknowledged_insert(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client
        collection.insert_one.return_value = MagicMock(acknowledged=False)

        with pytest.raises(WriteFailure) as exc_info:
            await adapter.insert(10, 2)

        assert exc_info.value.value == 10

    @pytest.mark.asyncio
    async def test_bulk_insert(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client
        collection.insert_many = AsyncMock(
            return_value=MagicMock(acknowledged=True, inserted_ids=[1, 2, 3, 4])
        )

        await adapter.bulk_insert(4, 4)

        documents = collection.insert_many.await_args.args[0]
        assert [d["value"] for d in documents] == [4, 5, 6, 7]

    @pytest.mark.asyncio
    async def test_short_bulk_insert(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client
        collection.insert_many = AsyncMock(
            return_value=MagicMock(acknowledged=True, inserted_ids=[1])
        )

        with pytest.raises(WriteFailure, match="1 of 4"):
            await adapter.bulk_insert(0, 4)

    # =========================================================================
    # Reads
    # =========================================================================

    @pytest.mark.asyncio
    async def test_read(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client
        object_id = ObjectId()
        collection.find_one.return_value = {"_id": object_id, "name": "", "value": 42}

        record = await adapter.read(42)

        collection.find_one.assert_awaited_once_with({"value": 42})
        assert record.id == str(object_id)
        assert record.value == 42

    @pytest.mark.asyncio
    async def test_read_miss(self, adapter: MongoAdapter, mongo_client) -> None:
        _, _, collection = mongo_client
        collection.find_one.return_value = None

        with pytest.raises(NotFound):
            await adapter.read(7)

    # =========================================================================
    # Cleanup
    # =========================================================================

    @pytest.mark.asyncio
    async def test_cleanup_without_connection(self, adapter: MongoAdapter) -> None:
        await adapter.cleanup(drop=True)

    @pytest.mark.asyncio
    async def test_cleanup_drop_closes_even_on_error(
        self, adapter: MongoAdapter, mongo_client
    ) -> None:
        mock_cls, database, _ = mongo_client
        await adapter.setup()
        database.drop_collection.side_effect = RuntimeError("gone")

        with pytest.raises(ProvisioningFailure):
            await adapter.cleanup(drop=True)

        mock_cls.return_value.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cleanup_keeps_collection(self, adapter: MongoAdapter, mongo_client) -> None:
        mock_cls, database, _ = mongo_client
        await adapter.setup()
        database.drop_collection.reset_mock()

        await adapter.cleanup()

        database.drop_collection.assert_not_awaited()
        mock_cls.return_value.close.assert_awaited_once()
