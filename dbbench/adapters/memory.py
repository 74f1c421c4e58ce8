"""
In-Memory Adapter.

A dependency-free store used for dry runs of the harness itself and for
exercising the dispatcher. Supports fault injection and an artificial
per-operation latency so that chunks genuinely interleave.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

from dbbench.adapters.base import BackendAdapter, Record, workload_records
from dbbench.core.errors import NotFound, ProvisioningFailure, WriteFailure

logger = structlog.get_logger(__name__)


@dataclass
class FaultPlan:
    """Values whose writes or reads should fail."""

    fail_writes: set[int] = field(default_factory=set)
    fail_reads: set[int] = field(default_factory=set)
    fail_setup: bool = False


class InMemoryAdapter(BackendAdapter):
    """Dictionary-backed store; all chunks share one table."""

    name = "memory"
    connection_discipline = "shared"

    def __init__(
        self,
        settings: Any = None,
        latency_seconds: float = 0.0,
        faults: FaultPlan | None = None,
    ) -> None:
        self._rows: dict[str, Record] = {}
        # Secondary index: value -> ids
        self._by_value: dict[int, list[str]] = {}
        self._connected = False
        self.latency_seconds = latency_seconds
        self.faults = faults or FaultPlan()

        # Observed concurrency, for tests and dry runs
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[tuple[str, int, int]] = []

    @property
    def rows(self) -> list[Record]:
        return list(self._rows.values())

    @property
    def connected(self) -> bool:
        return self._connected

    async def _io(self, op: str, start: int, count: int) -> None:
        self.calls.append((op, start, count))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.latency_seconds)
        finally:
            self.in_flight -= 1

    def _clear(self) -> None:
        self._rows.clear()
        self._by_value.clear()

    async def setup(self) -> None:
        if self.faults.fail_setup:
            raise ProvisioningFailure("memory: injected setup failure", backend=self.name)
        self._clear()
        self._connected = True
        logger.debug("Memory store provisioned")

    async def setup_read(self) -> None:
        self._connected = True

    def _write(self, record: Record) -> None:
        if record.value in self.faults.fail_writes:
            raise WriteFailure(
                f"memory: injected write failure for value {record.value}",
                backend=self.name,
                value=record.value,
            )
        record_id = str(uuid.uuid4())
        self._rows[record_id] = record.model_copy(update={"id": record_id})
        self._by_value.setdefault(record.value, []).append(record_id)

    async def insert(self, start: int, count: int) -> None:
        for record in workload_records(start, count):
            await self._io("insert", record.value, 1)
            self._write(record)

    async def bulk_insert(self, start: int, count: int) -> None:
        records = workload_records(start, count)
        await self._io("bulk_insert", start, count)
        failing = [r.value for r in records if r.value in self.faults.fail_writes]
        if failing:
            raise WriteFailure(
                f"memory: injected batch failure for values {failing}",
                backend=self.name,
                value=failing[0],
            )
        for record in records:
            self._write(record)

    async def read(self, key: int) -> Record:
        await self._io("read", key, 1)
        if key in self.faults.fail_reads:
            raise NotFound(key, backend=self.name)
        ids = self._by_value.get(key)
        if not ids:
            raise NotFound(key, backend=self.name)
        return self._rows[ids[0]]

    async def cleanup(self, drop: bool = False) -> None:
        if drop:
            self._clear()
        self._connected = False
