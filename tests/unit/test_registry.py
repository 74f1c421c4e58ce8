"""
Unit Tests for Backend Selection.
"""

import pytest

from dbbench.adapters import BACKENDS, available_backends, get_adapter, get_adapter_class
from dbbench.adapters.base import BackendAdapter, Record, workload_records
from dbbench.adapters.memory import InMemoryAdapter


class TestRegistry:
    """Test cases for the adapter registry."""

    def test_available_backends(self) -> None:
        assert available_backends() == [
            "clickhouse", "elasticsearch", "memory", "mongo", "mssql", "neo4j", "scylla",
        ]

    @pytest.mark.parametrize("name", sorted(BACKENDS))
    def test_every_backend_implements_contract(self, name: str) -> None:
        cls = get_adapter_class(name)

        assert issubclass(cls, BackendAdapter)
        assert cls.name == name
        assert cls.connection_discipline in ("shared", "per_chunk")

    def test_get_adapter_is_case_insensitive(self) -> None:
        assert isinstance(get_adapter("Memory"), InMemoryAdapter)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError, match="Unknown backend 'redis'"):
            get_adapter("redis")

    def test_per_chunk_disciplines(self) -> None:
        assert get_adapter_class("clickhouse").connection_discipline == "per_chunk"
        assert get_adapter_class("mssql").connection_discipline == "per_chunk"
        assert get_adapter_class("mongo").connection_discipline == "shared"


class TestRecords:
    """Test cases for workload records."""

    def test_workload_records(self) -> None:
        records = workload_records(84, 3)

        assert [r.value for r in records] == [84, 85, 86]
        assert all(r.name == "" and r.id is None for r in records)

    def test_empty(self) -> None:
        assert workload_records(10, 0) == []

    def test_record_requires_value(self) -> None:
        with pytest.raises(ValueError):
            Record()  # type: ignore[call-arg]

    def test_adapter_repr(self) -> None:
        assert repr(InMemoryAdapter()) == "<InMemoryAdapter name='memory' discipline='shared'>"
