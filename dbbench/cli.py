"""Command line entry point.

Usage:
    dbbench run --backend mongo --sizes 10 100 1000
    dbbench run --backend memory --iterations 3 --warmup 0
    dbbench backends
    dbbench partition --total 1000 --max-concurrency 12
"""

import argparse
import asyncio
import sys
from dataclasses import replace

import structlog

from dbbench import __version__
from dbbench.adapters import available_backends, get_adapter
from dbbench.benchmark.case import BenchmarkCase
from dbbench.benchmark.runner import BenchmarkConfig, BenchmarkResult, BenchmarkRunner
from dbbench.config.settings import Settings, get_settings
from dbbench.core.dispatcher import ConcurrentDispatcher
from dbbench.core.partition import partition
from dbbench.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    bench = settings.benchmark
    parser = argparse.ArgumentParser(
        prog="dbbench",
        description="Concurrent insert and read benchmarks across data stores",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level", default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument(
        "--log-format", default=settings.observability.log_format,
        choices=["json", "console"],
        help=f"Log renderer (default: {settings.observability.log_format})",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run insert, bulk insert and read scenarios")
    run_parser.add_argument(
        "--backend", default=bench.backend, choices=available_backends(),
        help=f"Backend to benchmark (default: {bench.backend})",
    )
    run_parser.add_argument(
        "--sizes", type=int, nargs="+", default=bench.num_inserts,
        help=f"Workload sizes (default: {' '.join(map(str, bench.num_inserts))})",
    )
    run_parser.add_argument(
        "--max-concurrency", type=int, default=bench.max_concurrency,
        help=f"Maximum concurrent chunks (default: {bench.max_concurrency})",
    )
    run_parser.add_argument(
        "--iterations", type=int, default=bench.iterations,
        help=f"Timed iterations per scenario (default: {bench.iterations})",
    )
    run_parser.add_argument(
        "--warmup", type=int, default=bench.warmup_iterations,
        help=f"Warmup iterations per scenario (default: {bench.warmup_iterations})",
    )
    run_parser.add_argument(
        "--output-dir", default=bench.output_dir,
        help=f"Directory for result JSON files (default: {bench.output_dir})",
    )
    run_parser.add_argument("--no-save", action="store_true", help="Do not write result files")
    run_parser.add_argument(
        "--no-allocations", action="store_true", help="Skip the tracemalloc allocation sample",
    )

    subparsers.add_parser("backends", help="List registered backends")

    partition_parser = subparsers.add_parser("partition", help="Print chunk boundaries")
    partition_parser.add_argument("--total", type=int, required=True, help="Number of keys")
    partition_parser.add_argument(
        "--max-concurrency", type=int, default=bench.max_concurrency,
        help=f"Maximum chunks (default: {bench.max_concurrency})",
    )

    return parser


def _print_summary(backend: str, results: list[BenchmarkResult]) -> None:
    print(f"\n{'='*78}")
    print(f"  Backend: {backend}")
    print(f"{'='*78}")
    print(
        f"  {'Scenario':<12} {'N':>6} {'mean ms':>10} {'p99 ms':>10} "
        f"{'ops/s':>12} {'alloc KiB':>10} {'ok/total':>10}"
    )
    print(f"  {'-'*74}")
    for r in results:
        stats = r.latency_stats
        alloc = f"{r.allocated_bytes / 1024:.1f}" if r.allocated_bytes is not None else "-"
        print(
            f"  {r.name:<12} {r.parameters.get('num_inserts', ''):>6} "
            f"{stats.mean_ms if stats else 0:>10.2f} {stats.p99_ms if stats else 0:>10.2f} "
            f"{r.throughput_ops_per_sec:>12.0f} {alloc:>10} "
            f"{r.successful_iterations:>4}/{r.total_iterations:<5}"
        )
        for error in r.errors[:3]:
            print(f"    ! {error}")
    print(f"{'='*78}\n")


async def run_benchmarks(args: argparse.Namespace, settings: Settings) -> list[BenchmarkResult]:
    """Run every scenario for each requested size against one backend."""
    config = replace(
        BenchmarkConfig.from_settings(settings.benchmark),
        name=args.backend,
        warmup_iterations=args.warmup,
        iterations=args.iterations,
        output_dir=args.output_dir,
    )
    if args.no_allocations:
        config.track_allocations = False
    if args.no_save:
        config.save_raw_results = False
    runner = BenchmarkRunner(config)
    dispatcher = ConcurrentDispatcher(args.max_concurrency)
    adapter = get_adapter(args.backend, settings=getattr(settings, args.backend, None))

    logger.info(
        "Starting run",
        backend=args.backend,
        sizes=args.sizes,
        max_concurrency=args.max_concurrency,
    )
    return await runner.run_sizes(
        lambda num_inserts: BenchmarkCase(adapter, num_inserts, dispatcher),
        args.sizes,
    )


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, format=args.log_format)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "backends":
        for name in available_backends():
            print(name)
        return 0

    if args.command == "partition":
        try:
            chunks = partition(args.total, args.max_concurrency)
        except ValueError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        for chunk in chunks:
            print(f"{chunk.start}\t{chunk.count}")
        return 0

    if args.max_concurrency <= 0 or args.iterations <= 0 or args.warmup < 0:
        parser.error("--max-concurrency and --iterations must be positive, --warmup non-negative")
    if any(size < 0 for size in args.sizes):
        parser.error("--sizes must be non-negative")

    results = asyncio.run(run_benchmarks(args, settings))
    _print_summary(args.backend, results)

    failed = [r for r in results if r.failed]
    if failed:
        logger.error("Run finished with failures", failed_scenarios=len(failed))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
