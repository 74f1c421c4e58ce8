"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the benchmark harness.
No fixture needs a live database: backends are either the in-memory
adapter or driver doubles built from ``unittest.mock``.
"""

from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dbbench.adapters.memory import FaultPlan, InMemoryAdapter
from dbbench.benchmark.case import BenchmarkCase
from dbbench.benchmark.runner import BenchmarkConfig, BenchmarkRunner
from dbbench.config.settings import Settings, get_settings
from dbbench.core.dispatcher import ConcurrentDispatcher


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "BENCH_BACKEND": "memory",
            "BENCH_ITERATIONS": "2",
            "BENCH_WARMUP_ITERATIONS": "0",
            "MONGO_PASSWORD": "mongo-secret",
            "NEO4J_PASSWORD": "password123",
        },
    ):
        get_settings.cache_clear()
        yield get_settings()


# =============================================================================
# Adapter Fixtures
# =============================================================================


@pytest.fixture
def memory_adapter() -> InMemoryAdapter:
    """In-memory adapter with no artificial latency."""
    return InMemoryAdapter()


@pytest.fixture
def slow_memory_adapter() -> InMemoryAdapter:
    """In-memory adapter whose operations yield to the event loop."""
    return InMemoryAdapter(latency_seconds=0.001)


@pytest.fixture
def faulty_adapter() -> InMemoryAdapter:
    """In-memory adapter failing writes of 5 and 500 and reads of 0."""
    return InMemoryAdapter(
        latency_seconds=0.001,
        faults=FaultPlan(fail_writes={5, 500}, fail_reads={0}),
    )


@pytest.fixture
def dispatcher() -> ConcurrentDispatcher:
    return ConcurrentDispatcher(max_concurrency=12)


@pytest.fixture
def memory_case(memory_adapter: InMemoryAdapter, dispatcher: ConcurrentDispatcher) -> BenchmarkCase:
    return BenchmarkCase(memory_adapter, 100, dispatcher)


# =============================================================================
# Runner Fixtures
# =============================================================================


@pytest.fixture
def runner_config(tmp_path: Path) -> BenchmarkConfig:
    return BenchmarkConfig(
        name="test",
        warmup_iterations=1,
        iterations=3,
        track_allocations=False,
        output_dir=str(tmp_path / "results"),
        save_raw_results=False,
    )


@pytest.fixture
def runner(runner_config: BenchmarkConfig) -> BenchmarkRunner:
    return BenchmarkRunner(runner_config)


# =============================================================================
# Helper Functions
# =============================================================================


def create_mock_session(result: Any = None) -> MagicMock:
    """Async context manager double whose ``run`` returns ``result``."""
    session = MagicMock()
    session.run = AsyncMock(return_value=result or MagicMock())
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


def create_mock_cursor(rowcount: int = 1, row: Any = None) -> MagicMock:
    """aioodbc cursor double."""
    cursor = MagicMock()
    cursor.execute = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=row)
    cursor.rowcount = rowcount
    cursor.__aenter__ = AsyncMock(return_value=cursor)
    cursor.__aexit__ = AsyncMock(return_value=False)
    return cursor


@pytest.fixture
def mock_session() -> MagicMock:
    return create_mock_session()


@pytest.fixture
def mock_cursor() -> MagicMock:
    return create_mock_cursor()
