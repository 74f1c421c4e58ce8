"""
Concurrent Dispatcher.

Fans a partitioned workload out to one asyncio task per chunk and joins them
with wait-for-all semantics: a failing chunk never cancels its siblings, and
the aggregate failure is raised only after every chunk has settled.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog

from dbbench.core.errors import ChunkFailure, DispatchError
from dbbench.core.partition import Chunk, partition

logger = structlog.get_logger(__name__)

T = TypeVar("T")

WriteOperation = Callable[[int, int], Awaitable[None]]
ReadOperation = Callable[[int], Awaitable[T]]

DEFAULT_MAX_CONCURRENCY = 12


class ConcurrentDispatcher:
    """
    Drives chunks through an operation at bounded concurrency.

    The bound is structural: the partitioner never produces more than
    ``max_concurrency`` chunks, and exactly one task runs per chunk.
    """

    def __init__(self, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be a positive integer")
        self.max_concurrency = max_concurrency

    def chunks(self, total: int) -> list[Chunk]:
        """Partition ``total`` with this dispatcher's bound."""
        return partition(total, self.max_concurrency)

    async def run_writes(
        self,
        total: int,
        op: WriteOperation,
        scenario: str = "write",
    ) -> None:
        """
        Run ``op(start, count)`` once per chunk of ``total``.

        Raises:
            DispatchError: One or more chunks failed (raised after all settle)
        """
        chunks = self.chunks(total)
        await self._gather(scenario, chunks, [op(c.start, c.count) for c in chunks])

    async def run_reads(
        self,
        total: int,
        op: ReadOperation[T],
        scenario: str = "read",
    ) -> list[T]:
        """
        Probe ``op(chunk.start)`` once per chunk of ``total``.

        Returns:
            One result per chunk, in chunk start order

        Raises:
            DispatchError: One or more probes failed (raised after all settle)
        """
        chunks = self.chunks(total)
        return await self._gather(scenario, chunks, [op(c.start) for c in chunks])

    async def _gather(
        self,
        scenario: str,
        chunks: Sequence[Chunk],
        coroutines: Sequence[Awaitable[Any]],
    ) -> list[Any]:
        if not chunks:
            return []

        logger.debug(
            "Dispatching chunks",
            scenario=scenario,
            chunks=len(chunks),
            max_concurrency=self.max_concurrency,
        )

        tasks = [asyncio.ensure_future(coro) for coro in coroutines]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failures: list[ChunkFailure] = []
        for chunk, result in zip(chunks, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Chunk failed",
                    scenario=scenario,
                    start=chunk.start,
                    count=chunk.count,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                failures.append(ChunkFailure(chunk=chunk, error=result))

        if failures:
            logger.error(
                "Dispatch failed",
                scenario=scenario,
                failed_chunks=len(failures),
                total_chunks=len(chunks),
            )
            raise DispatchError(scenario, failures, len(chunks)) from failures[0].error

        return list(results)
