"""
Workload Partitioner.

Splits a logical operation count into contiguous chunks using a static
ceiling-division partition, so chunk boundaries are identical across runs
and across backends.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Chunk:
    """A contiguous key range ``[start, start + count)`` handled by one task."""

    start: int
    count: int

    @property
    def end(self) -> int:
        return self.start + self.count

    def keys(self) -> range:
        return range(self.start, self.end)


def _require_int(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an integer")
    return value


def chunk_size(total: int, max_concurrency: int) -> int:
    """Ceiling of ``total / max_concurrency``."""
    return -(-total // max_concurrency)


def partition(total: int, max_concurrency: int) -> list[Chunk]:
    """
    Partition ``[0, total)`` into at most ``max_concurrency`` chunks.

    Every chunk holds ``ceil(total / max_concurrency)`` keys except the last,
    which is clipped to the remainder.

    Args:
        total: Number of logical operations (>= 0)
        max_concurrency: Upper bound on the number of chunks (>= 1)

    Returns:
        Chunks ordered by start key; empty when ``total`` is 0
    """
    _require_int("total", total)
    _require_int("max_concurrency", max_concurrency)
    if max_concurrency <= 0:
        raise ValueError("max_concurrency must be a positive integer")
    if total < 0:
        raise ValueError("total must be a non-negative integer")

    if total == 0:
        return []

    size = chunk_size(total, max_concurrency)
    return [
        Chunk(start=start, count=min(size, total - start))
        for start in range(0, total, size)
    ]
