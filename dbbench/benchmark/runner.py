"""
Benchmark Runner.

Executes benchmark scenarios and collects metrics: warmup, timed iterations,
latency statistics, an allocation sample and JSON result files. Scenarios are
never cancelled or timed out; a failing iteration is recorded and the run
moves on.
"""

import json
import statistics
import tracemalloc
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from dbbench.observability.logging import LogContext

if TYPE_CHECKING:
    from dbbench.benchmark.case import BenchmarkCase

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark execution."""

    name: str = "benchmark"
    warmup_iterations: int = 1
    iterations: int = 5
    track_allocations: bool = True

    # Output
    output_dir: str = "./benchmark_results"
    save_raw_results: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> "BenchmarkConfig":
        """Build from ``BenchmarkSettings``."""
        return cls(
            name=settings.backend,
            warmup_iterations=settings.warmup_iterations,
            iterations=settings.iterations,
            track_allocations=settings.track_allocations,
            output_dir=settings.output_dir,
            save_raw_results=settings.save_raw_results,
        )


@dataclass
class LatencyStats:
    """Latency statistics."""

    min_ms: float = 0.0
    max_ms: float = 0.0
    mean_ms: float = 0.0
    median_ms: float = 0.0
    p50_ms: float = 0.0
    p75_ms: float = 0.0
    p90_ms: float = 0.0
    p95_ms: float = 0.0
    p99_ms: float = 0.0
    std_dev_ms: float = 0.0

    @classmethod
    def from_samples(cls, samples_ms: list[float]) -> "LatencyStats":
        """Calculate statistics from latency samples."""
        if not samples_ms:
            return cls()

        sorted_samples = sorted(samples_ms)
        n = len(sorted_samples)

        def percentile(p: float) -> float:
            k = (n - 1) * (p / 100)
            f = int(k)
            c = f + 1 if f < n - 1 else f
            return sorted_samples[f] + (k - f) * (sorted_samples[c] - sorted_samples[f])

        return cls(
            min_ms=sorted_samples[0],
            max_ms=sorted_samples[-1],
            mean_ms=statistics.mean(sorted_samples),
            median_ms=statistics.median(sorted_samples),
            p50_ms=percentile(50),
            p75_ms=percentile(75),
            p90_ms=percentile(90),
            p95_ms=percentile(95),
            p99_ms=percentile(99),
            std_dev_ms=statistics.stdev(sorted_samples) if n > 1 else 0.0,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "min_ms": round(self.min_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "mean_ms": round(self.mean_ms, 3),
            "median_ms": round(self.median_ms, 3),
            "p50_ms": round(self.p50_ms, 3),
            "p75_ms": round(self.p75_ms, 3),
            "p90_ms": round(self.p90_ms, 3),
            "p95_ms": round(self.p95_ms, 3),
            "p99_ms": round(self.p99_ms, 3),
            "std_dev_ms": round(self.std_dev_ms, 3),
        }


@dataclass
class BenchmarkResult:
    """Result of a benchmark run."""

    name: str
    description: str
    started_at: datetime
    completed_at: datetime | None = None
    parameters: dict[str, Any] = field(default_factory=dict)

    # Counts
    total_iterations: int = 0
    successful_iterations: int = 0
    failed_iterations: int = 0

    # Latency
    latency_samples_ms: list[float] = field(default_factory=list)
    latency_stats: LatencyStats | None = None

    # Throughput, over successful iterations only
    operations: int = 0
    throughput_ops_per_sec: float = 0.0

    # Allocation sample (bytes, peak during one extra iteration)
    allocated_bytes: int | None = None

    # Custom metrics
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    # Errors
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors) or self.failed_iterations > 0

    def calculate_stats(self) -> None:
        """Calculate statistics from collected samples."""
        if self.latency_samples_ms:
            self.latency_stats = LatencyStats.from_samples(self.latency_samples_ms)
            busy_seconds = sum(self.latency_samples_ms) / 1000
            if busy_seconds > 0:
                self.throughput_ops_per_sec = self.operations / busy_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": (
                (self.completed_at - self.started_at).total_seconds()
                if self.completed_at else None
            ),
            "iterations": {
                "total": self.total_iterations,
                "successful": self.successful_iterations,
                "failed": self.failed_iterations,
                "success_rate": (
                    self.successful_iterations / self.total_iterations * 100
                    if self.total_iterations > 0 else 0
                ),
            },
            "latency": self.latency_stats.to_dict() if self.latency_stats else None,
            "operations": self.operations,
            "throughput_ops_per_sec": round(self.throughput_ops_per_sec, 2),
            "allocated_bytes": self.allocated_bytes,
            "custom_metrics": self.custom_metrics,
            "errors": self.errors[:10],  # Limit errors in output
        }


class BenchmarkScenario(ABC):
    """Abstract base class for benchmark scenarios."""

    name: str = "scenario"
    description: str = ""

    @property
    def parameters(self) -> dict[str, Any]:
        return {}

    @abstractmethod
    async def setup(self) -> None:
        """Setup before benchmark runs."""

    @abstractmethod
    async def run_iteration(self) -> tuple[bool, float, dict[str, Any]]:
        """
        Run a single benchmark iteration.

        Returns:
            Tuple of (success, latency_ms, custom_metrics)
        """

    @abstractmethod
    async def teardown(self) -> None:
        """Cleanup after benchmark runs."""


class BenchmarkRunner:
    """
    Runs benchmark scenarios and collects metrics.

    Features:
    - Warmup iterations
    - Sequential timed iterations
    - Allocation sampling with tracemalloc
    - Result persistence
    """

    def __init__(self, config: BenchmarkConfig):
        self.config = config
        self._results: list[BenchmarkResult] = []

    async def run_scenario(self, scenario: BenchmarkScenario) -> BenchmarkResult:
        """
        Run a benchmark scenario.

        Args:
            scenario: The scenario to run

        Returns:
            Benchmark result with collected metrics
        """
        parameters = scenario.parameters
        result = BenchmarkResult(
            name=scenario.name,
            description=scenario.description,
            started_at=_utcnow(),
            parameters=parameters,
        )

        with LogContext(**{k: parameters[k] for k in ("backend", "num_inserts") if k in parameters}):
            logger.info(
                "Starting benchmark",
                scenario=scenario.name,
                iterations=self.config.iterations,
            )

            try:
                await scenario.setup()

                if self.config.warmup_iterations > 0:
                    logger.info("Running warmup iterations", count=self.config.warmup_iterations)
                    for _ in range(self.config.warmup_iterations):
                        try:
                            await scenario.run_iteration()
                        except Exception as e:
                            logger.warning("Warmup iteration failed", error=str(e))

                await self._run_sequential(scenario, result)

                if self.config.track_allocations:
                    result.allocated_bytes = await self._measure_allocations(scenario, result)

                result.completed_at = _utcnow()
                result.calculate_stats()

                logger.info(
                    "Benchmark completed",
                    scenario=scenario.name,
                    successful=result.successful_iterations,
                    failed=result.failed_iterations,
                    mean_latency_ms=result.latency_stats.mean_ms if result.latency_stats else 0,
                    throughput=f"{result.throughput_ops_per_sec:.2f} ops/sec",
                )

            except Exception as e:
                result.errors.append(f"Benchmark failed: {e}")
                result.completed_at = _utcnow()
                logger.error("Benchmark failed", scenario=scenario.name, error=str(e))

            finally:
                try:
                    await scenario.teardown()
                except Exception as e:
                    result.errors.append(f"Teardown failed: {e}")
                    logger.warning("Teardown failed", scenario=scenario.name, error=str(e))

        self._results.append(result)
        if self.config.save_raw_results:
            self._save_result(result)

        return result

    async def _run_sequential(
        self,
        scenario: BenchmarkScenario,
        result: BenchmarkResult,
    ) -> None:
        """Run iterations sequentially."""
        for i in range(self.config.iterations):
            result.total_iterations += 1

            try:
                success, latency_ms, custom_metrics = await scenario.run_iteration()

                if success:
                    result.successful_iterations += 1
                    result.latency_samples_ms.append(latency_ms)
                    result.operations += custom_metrics.get("operations", 0)
                else:
                    result.failed_iterations += 1

                for key, value in custom_metrics.items():
                    result.custom_metrics.setdefault(key, []).append(value)

            except Exception as e:
                result.failed_iterations += 1
                result.errors.append(f"Iteration {i + 1} failed: {e}")
                logger.warning("Iteration failed", iteration=i + 1, error=str(e))

    async def _measure_allocations(
        self,
        scenario: BenchmarkScenario,
        result: BenchmarkResult,
    ) -> int | None:
        """Peak bytes allocated during one extra, untimed iteration."""
        already_tracing = tracemalloc.is_tracing()
        if not already_tracing:
            tracemalloc.start()
        try:
            tracemalloc.reset_peak()
            baseline, _ = tracemalloc.get_traced_memory()
            await scenario.run_iteration()
            _, peak = tracemalloc.get_traced_memory()
            return max(peak - baseline, 0)
        except Exception as e:
            result.errors.append(f"Allocation sample failed: {e}")
            logger.warning("Allocation sample failed", error=str(e))
            return None
        finally:
            if not already_tracing:
                tracemalloc.stop()

    async def run_case(self, case: "BenchmarkCase") -> list[BenchmarkResult]:
        """Run insert, bulk-insert and read scenarios of one case, in that order."""
        from dbbench.benchmark.scenarios import scenarios_for

        return [await self.run_scenario(scenario) for scenario in scenarios_for(case)]

    async def run_sizes(
        self,
        case_factory: Callable[[int], "BenchmarkCase"],
        sizes: Iterable[int],
    ) -> list[BenchmarkResult]:
        """Run every scenario for each workload size."""
        results: list[BenchmarkResult] = []
        for num_inserts in sizes:
            results.extend(await self.run_case(case_factory(num_inserts)))
        return results

    def _save_result(self, result: BenchmarkResult) -> None:
        """Save benchmark result to file."""
        output_dir = Path(self.config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = _utcnow().strftime("%Y%m%d_%H%M%S_%f")
        size = result.parameters.get("num_inserts", "")
        filename = f"{self.config.name}_{result.name}_{size}_{timestamp}.json"
        filepath = output_dir / filename

        with open(filepath, "w") as f:
            json.dump(result.to_dict(), f, indent=2)

        logger.info("Benchmark result saved", path=str(filepath))

    def get_results(self) -> list[dict[str, Any]]:
        """Get all benchmark results."""
        return [r.to_dict() for r in self._results]

    def get_summary(self) -> dict[str, Any]:
        """Get summary of all benchmark runs."""
        if not self._results:
            return {"message": "No benchmarks have been run"}

        return {
            "total_benchmarks": len(self._results),
            "failed_benchmarks": sum(1 for r in self._results if r.failed),
            "benchmarks": [
                {
                    "name": r.name,
                    "num_inserts": r.parameters.get("num_inserts"),
                    "success_rate": r.successful_iterations / r.total_iterations * 100 if r.total_iterations > 0 else 0,
                    "mean_latency_ms": r.latency_stats.mean_ms if r.latency_stats else 0,
                    "p99_latency_ms": r.latency_stats.p99_ms if r.latency_stats else 0,
                    "throughput_ops_per_sec": r.throughput_ops_per_sec,
                    "allocated_bytes": r.allocated_bytes,
                }
                for r in self._results
            ],
        }
