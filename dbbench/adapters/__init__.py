"""
Backend Adapters.

One adapter per data store, all implementing ``BackendAdapter``. Backends are
selected by name once per run; driver modules are imported only for the
backend actually selected.
"""

import importlib
from typing import Any

from dbbench.adapters.base import BackendAdapter, Record, workload_records

# name -> (module, class)
BACKENDS: dict[str, tuple[str, str]] = {
    "memory": ("dbbench.adapters.memory", "InMemoryAdapter"),
    "mongo": ("dbbench.adapters.mongo", "MongoAdapter"),
    "elasticsearch": ("dbbench.adapters.elasticsearch", "ElasticsearchAdapter"),
    "scylla": ("dbbench.adapters.scylla", "ScyllaAdapter"),
    "clickhouse": ("dbbench.adapters.clickhouse", "ClickHouseAdapter"),
    "mssql": ("dbbench.adapters.mssql", "MSSQLAdapter"),
    "neo4j": ("dbbench.adapters.neo4j", "Neo4jAdapter"),
}


def available_backends() -> list[str]:
    """Names accepted by ``get_adapter``."""
    return sorted(BACKENDS)


def get_adapter_class(name: str) -> type[BackendAdapter]:
    """Import and return the adapter class registered under ``name``."""
    try:
        module_name, class_name = BACKENDS[name.lower()]
    except KeyError:
        choices = ", ".join(available_backends())
        raise ValueError(f"Unknown backend {name!r}; choose one of: {choices}") from None
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


def get_adapter(name: str, settings: Any = None) -> BackendAdapter:
    """Instantiate the adapter registered under ``name``."""
    return get_adapter_class(name)(settings=settings)


__all__ = [
    "BACKENDS",
    "BackendAdapter",
    "Record",
    "available_backends",
    "get_adapter",
    "get_adapter_class",
    "workload_records",
]
