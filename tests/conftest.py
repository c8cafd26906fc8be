"""
Shared pytest fixtures for sysperf tests.

These fixtures provide mock loggers, a mock command executor and fio
benchmark factories so tests run without fio, sysstat or a real /proc.
"""

import io
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from sysperf.benchmarks import FioBenchmark
from sysperf.config import FioSettings
from sysperf.results import ResultAggregator
from tests.fixtures import MockCommandExecutor, MockLogger


# =============================================================================
# Path Fixtures
# =============================================================================

@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def proc_file(tmp_path):
    """
    Write text to a file under tmp_path and return its path.

    Usage:
        def test_something(proc_file):
            path = proc_file("meminfo", SAMPLE_MEMINFO)
            collector = MemInfoCollector(logger, path=path)
    """
    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content)
        return str(path)
    return _write


# =============================================================================
# Logger and Executor Fixtures
# =============================================================================

@pytest.fixture
def mock_logger():
    """
    Create a logger that captures messages per level.

    Usage:
        def test_something(mock_logger):
            some_function(logger=mock_logger)
            assert mock_logger.has_message('warning', 'failed')
    """
    return MockLogger()


@pytest.fixture
def mock_executor():
    """Executor whose fio version check succeeds and every other command exits 0."""
    return MockCommandExecutor({r'--version': ('fio-3.36\n', '', 0)})


@pytest.fixture
def quiet_console():
    """Rich console that renders into a string buffer."""
    return Console(file=io.StringIO(), width=200)


# =============================================================================
# Benchmark Fixtures
# =============================================================================

@pytest.fixture
def fio_settings():
    """Small fio settings suitable for fast runs."""
    return FioSettings(size="1M", numjobs=1, iodepth=1, runtime=1)


@pytest.fixture
def fio_on_path():
    """Pretend fio is installed."""
    with patch("sysperf.benchmarks.base.shutil.which", return_value="/usr/bin/fio") as which:
        yield which


@pytest.fixture
def tools_on_path():
    """Pretend mpstat, vmstat and iostat are installed."""
    with patch("sysperf.telemetry.collectors.shutil.which", return_value="/usr/bin/sysstat") as which:
        yield which


@pytest.fixture
def fio_benchmark_factory(tmp_path, mock_logger, mock_executor, fio_settings, quiet_console):
    """
    Build FioBenchmark instances rooted in tmp_path.

    Usage:
        def test_something(fio_benchmark_factory):
            benchmark = fio_benchmark_factory(fail_fast=True)
    """
    def _create(**kwargs):
        params = dict(
            benchmark_dir=str(tmp_path / "bench"),
            results_dir=str(tmp_path / "results"),
            settings=fio_settings,
            executor=mock_executor,
            aggregator=ResultAggregator(logger=mock_logger, console=quiet_console),
            run_datetime="20250111_143000",
        )
        params.update(kwargs)
        return FioBenchmark(mock_logger, **params)
    return _create


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture
def clean_env(monkeypatch):
    """Remove every SYSPERF_* variable so module defaults apply."""
    for key in list(os.environ):
        if key.startswith("SYSPERF_"):
            monkeypatch.delenv(key, raising=False)
    yield monkeypatch
