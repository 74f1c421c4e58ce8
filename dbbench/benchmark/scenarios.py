"""
Benchmark Scenarios.

The three measured scenarios of a ``BenchmarkCase``:
- Insert: one write per record, chunks dispatched concurrently
- Bulk insert: one batched write per chunk
- Read: one point lookup per chunk, by secondary key

Write scenarios provision a clean store in ``setup`` and leave the data in
place; the read scenario reuses it and drops it in ``teardown``.
"""

import time
from typing import Any

import structlog

from dbbench.benchmark.case import BenchmarkCase
from dbbench.benchmark.runner import BenchmarkScenario

logger = structlog.get_logger(__name__)


class CaseScenario(BenchmarkScenario):
    """Base class binding a scenario to a benchmark case."""

    category: str = "insert"

    def __init__(self, case: BenchmarkCase):
        self.case = case

    @property
    def backend(self) -> str:
        return self.case.adapter.name

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "scenario": self.name,
            "category": self.category,
            "num_inserts": self.case.num_inserts,
            "num_queries": self.case.num_queries,
            "max_concurrency": self.case.dispatcher.max_concurrency,
            "connection_discipline": self.case.adapter.connection_discipline,
        }

    async def setup(self) -> None:
        await self.case.setup_for_writes()

    async def teardown(self) -> None:
        await self.case.cleanup()

    async def operation(self) -> int:
        """Run the scenario once; returns the number of logical operations."""
        raise NotImplementedError

    async def run_iteration(self) -> tuple[bool, float, dict[str, Any]]:
        start_time = time.perf_counter()
        operations = await self.operation()
        latency_ms = (time.perf_counter() - start_time) * 1000
        return True, latency_ms, {"operations": operations}


class InsertScenario(CaseScenario):
    """Single-record inserts."""

    name = "insert"
    description = "One write per record, chunks dispatched concurrently"

    async def operation(self) -> int:
        await self.case.insert()
        return self.case.num_inserts


class BulkInsertScenario(CaseScenario):
    """Batched inserts."""

    name = "bulk_insert"
    description = "One batched write per chunk"

    async def operation(self) -> int:
        await self.case.bulk_insert()
        return self.case.num_inserts


class ReadScenario(CaseScenario):
    """Point reads by secondary key."""

    name = "read"
    description = "One point lookup per chunk at the chunk's start key"
    category = "read"

    async def setup(self) -> None:
        await self.case.setup_for_reads()

    async def teardown(self) -> None:
        await self.case.cleanup(drop=True)

    async def operation(self) -> int:
        records = await self.case.read()
        return len(records)


def scenarios_for(case: BenchmarkCase) -> list[CaseScenario]:
    """Scenarios in execution order: writes first, then reads."""
    return [InsertScenario(case), BulkInsertScenario(case), ReadScenario(case)]
