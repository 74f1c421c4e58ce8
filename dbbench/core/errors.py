"""
Benchmark Error Taxonomy.

Every failure the harness can surface. Nothing here is retried: an error
aborts the unit of work that raised it and propagates to the driver.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dbbench.core.partition import Chunk


class BenchmarkError(Exception):
    """Base class for harness failures."""

    def __init__(self, message: str, backend: str | None = None):
        super().__init__(message)
        self.backend = backend


class ProvisioningFailure(BenchmarkError):
    """Raised when schema, index or keyspace setup or teardown fails."""

    pass


class WriteFailure(BenchmarkError):
    """Raised when a single or batched write is not acknowledged."""

    def __init__(self, message: str, backend: str | None = None, value: int | None = None):
        super().__init__(message, backend=backend)
        self.value = value


class NotFound(BenchmarkError, LookupError):
    """Raised when a read probe finds no record for its key."""

    def __init__(self, key: int, backend: str | None = None):
        super().__init__(f"Value {key} not found", backend=backend)
        self.key = key


@dataclass(frozen=True)
class ChunkFailure:
    """A chunk together with the exception its operation raised."""

    chunk: "Chunk"
    error: BaseException


class DispatchError(BenchmarkError):
    """
    Raised once every chunk of a dispatch has settled and at least one failed.

    The first failure (in chunk order) is chained as ``__cause__``.
    """

    def __init__(self, scenario: str, failures: list[ChunkFailure], total_chunks: int):
        self.scenario = scenario
        self.failures = failures
        self.total_chunks = total_chunks
        summary = "; ".join(
            f"chunk {f.chunk.start}+{f.chunk.count}: {type(f.error).__name__}: {f.error}"
            for f in failures
        )
        super().__init__(
            f"{scenario} failed in {len(failures)} of {total_chunks} chunks ({summary})"
        )

    @property
    def first(self) -> BaseException:
        """The earliest failing chunk's exception."""
        return self.failures[0].error
