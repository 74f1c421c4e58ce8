"""
Benchmark Harness.

Provides timed measurement of every backend for:
- Single-record insert throughput
- Bulk insert throughput
- Point reads by secondary key
"""

from dbbench.benchmark.case import BenchmarkCase, BenchmarkParameters
from dbbench.benchmark.runner import (
    BenchmarkRunner,
    BenchmarkConfig,
    BenchmarkResult,
    BenchmarkScenario,
    LatencyStats,
)
from dbbench.benchmark.scenarios import (
    BulkInsertScenario,
    InsertScenario,
    ReadScenario,
    scenarios_for,
)

__all__ = [
    "BenchmarkCase",
    "BenchmarkParameters",
    "BenchmarkRunner",
    "BenchmarkConfig",
    "BenchmarkResult",
    "BenchmarkScenario",
    "LatencyStats",
    "InsertScenario",
    "BulkInsertScenario",
    "ReadScenario",
    "scenarios_for",
]
