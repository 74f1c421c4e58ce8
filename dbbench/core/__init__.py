"""
Core Dispatch Module.

Workload partitioning, bounded-concurrency dispatch and the error taxonomy
shared by every backend.
"""

from dbbench.core.dispatcher import (
    DEFAULT_MAX_CONCURRENCY,
    ConcurrentDispatcher,
)
from dbbench.core.errors import (
    BenchmarkError,
    ChunkFailure,
    DispatchError,
    NotFound,
    ProvisioningFailure,
    WriteFailure,
)
from dbbench.core.partition import Chunk, chunk_size, partition

__all__ = [
    # Partitioning
    "Chunk",
    "chunk_size",
    "partition",
    # Dispatch
    "ConcurrentDispatcher",
    "DEFAULT_MAX_CONCURRENCY",
    # Errors
    "BenchmarkError",
    "ChunkFailure",
    "DispatchError",
    "NotFound",
    "ProvisioningFailure",
    "WriteFailure",
]
