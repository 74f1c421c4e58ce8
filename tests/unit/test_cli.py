"""
Unit Tests for the Command Line Interface.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from dbbench.cli import build_parser, main
from dbbench.config.settings import Settings


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("dbbench.cli.configure_logging"):
        yield


class TestCli:
    """Test cases for the dbbench CLI."""

    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "usage: dbbench" in capsys.readouterr().out

    def test_backends(self, capsys) -> None:
        assert main(["backends"]) == 0

        lines = capsys.readouterr().out.split()
        assert "memory" in lines
        assert "scylla" in lines

    def test_partition(self, capsys) -> None:
        assert main(["partition", "--total", "10", "--max-concurrency", "4"]) == 0

        assert capsys.readouterr().out.splitlines() == ["0\t3", "3\t3", "6\t3", "9\t1"]

    def test_partition_invalid(self, capsys) -> None:
        assert main(["partition", "--total", "10", "--max-concurrency", "0"]) == 2
        assert "max_concurrency" in capsys.readouterr().err

    def test_parser_defaults_come_from_settings(self) -> None:
        with patch.dict("os.environ", {"BENCH_MAX_CONCURRENCY": "3", "BENCH_BACKEND": "mongo"}):
            args = build_parser(Settings(_env_file=None)).parse_args(["run"])

        assert args.max_concurrency == 3
        assert args.backend == "mongo"
        assert args.sizes == [10, 100, 1000]

    def test_run_memory_backend(self, tmp_path: Path, capsys) -> None:
        code = main([
            "run", "--backend", "memory", "--sizes", "10", "24",
            "--iterations", "2", "--warmup", "0", "--output-dir", str(tmp_path),
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "Backend: memory" in out
        files = sorted(tmp_path.glob("memory_*.json"))
        assert len(files) == 6
        names = {json.loads(f.read_text())["name"] for f in files}
        assert names == {"insert", "bulk_insert", "read"}

    def test_run_honours_settings(self, tmp_path: Path) -> None:
        with patch.dict("os.environ", {"BENCH_TRACK_ALLOCATIONS": "false"}):
            code = main([
                "run", "--backend", "memory", "--sizes", "10",
                "--iterations", "1", "--warmup", "0", "--output-dir", str(tmp_path),
            ])

        assert code == 0
        files = list(tmp_path.glob("memory_*.json"))
        assert len(files) == 3
        assert all(json.loads(f.read_text())["allocated_bytes"] is None for f in files)

    def test_run_failure_exit_code(self, tmp_path: Path) -> None:
        with patch("dbbench.adapters.memory.InMemoryAdapter.read", side_effect=RuntimeError("down")):
            code = main([
                "run", "--backend", "memory", "--sizes", "10",
                "--iterations", "1", "--warmup", "0", "--no-save", "--no-allocations",
                "--output-dir", str(tmp_path),
            ])

        assert code == 1
        assert list(tmp_path.iterdir()) == []

    def test_run_rejects_bad_concurrency(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "--max-concurrency", "0"])

        assert exc_info.value.code == 2
