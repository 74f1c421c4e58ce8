"""
Benchmark Case.

Binds one backend adapter to the dispatcher for the three measured
scenarios. Each scenario entry point is a zero-argument coroutine that the
measurement driver times and repeats.
"""

from dataclasses import dataclass

import structlog

from dbbench.adapters.base import BackendAdapter, Record
from dbbench.core.dispatcher import DEFAULT_MAX_CONCURRENCY, ConcurrentDispatcher

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BenchmarkParameters:
    """Workload size for one trial."""

    num_inserts: int

    def __post_init__(self) -> None:
        if not isinstance(self.num_inserts, int) or isinstance(self.num_inserts, bool):
            raise TypeError("num_inserts must be an integer")
        if self.num_inserts < 0:
            raise ValueError("num_inserts must be a non-negative integer")

    @property
    def num_queries(self) -> int:
        return self.num_inserts // 2


class BenchmarkCase:
    """Insert, bulk-insert and read scenarios for one backend and workload size."""

    def __init__(
        self,
        adapter: BackendAdapter,
        num_inserts: int,
        dispatcher: ConcurrentDispatcher | None = None,
    ):
        self.adapter = adapter
        self.parameters = BenchmarkParameters(num_inserts)
        self.dispatcher = dispatcher or ConcurrentDispatcher(DEFAULT_MAX_CONCURRENCY)

    @property
    def num_inserts(self) -> int:
        return self.parameters.num_inserts

    @property
    def num_queries(self) -> int:
        return self.parameters.num_queries

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def setup_for_writes(self) -> None:
        logger.debug("Setting up for writes", backend=self.adapter.name)
        await self.adapter.setup()

    async def setup_for_reads(self) -> None:
        logger.debug("Setting up for reads", backend=self.adapter.name)
        await self.adapter.setup_read()

    async def cleanup(self, drop: bool = False) -> None:
        logger.debug("Cleaning up", backend=self.adapter.name, drop=drop)
        await self.adapter.cleanup(drop=drop)

    # =========================================================================
    # Scenarios
    # =========================================================================

    async def insert(self) -> None:
        await self.dispatcher.run_writes(
            self.num_inserts, self.adapter.insert, scenario=f"{self.adapter.name}.insert"
        )

    async def bulk_insert(self) -> None:
        await self.dispatcher.run_writes(
            self.num_inserts, self.adapter.bulk_insert, scenario=f"{self.adapter.name}.bulk_insert"
        )

    async def read(self) -> list[Record]:
        return await self.dispatcher.run_reads(
            self.num_queries, self.adapter.read, scenario=f"{self.adapter.name}.read"
        )

    def __repr__(self) -> str:
        return (
            f"<BenchmarkCase backend={self.adapter.name!r} num_inserts={self.num_inserts} "
            f"max_concurrency={self.dispatcher.max_concurrency}>"
        )
