"""
Tests for sysperf.results.

Tests cover:
- fio JSON result parsing
- BenchmarkRun identifiers and timing
- RunOutcome constructors
- ResultAggregator logging, summary and table rendering
"""

import json

import pytest

from sysperf.config import IO_PATTERN, RUN_STATUS
from sysperf.errors import InvocationError, NonZeroExitError
from sysperf.results import BenchmarkRun, FioJobResult, IoStats, ResultAggregator, RunOutcome
from sysperf.workloads import WorkloadConfig
from tests.fixtures.sample_data import SAMPLE_FIO_OUTPUT, SAMPLE_FIO_RESULT


@pytest.fixture
def workload():
    return WorkloadConfig("mixed_70r_30w", IO_PATTERN.RANDRW, 70, "Virtualized servers")


@pytest.fixture
def benchmark_run(workload):
    return BenchmarkRun(
        workload=workload,
        token="20250111_143000_000001_0001",
        scratch_path="/bench/fio_mixed_70r_30w.dat",
        result_path="/results/results_mixed_70r_30w.json",
        telemetry_path="/results/telemetry_mixed_70r_30w.json",
        command=["fio", "--rw=randrw"],
    )


class TestFioJobResult:
    """Tests for fio JSON parsing."""

    def test_read_section(self):
        result = FioJobResult.from_json_text(json.dumps(SAMPLE_FIO_RESULT))
        assert result.job_name == "fio_ai_train_95r_5w_nvme"
        assert result.fio_version == "fio-3.36"
        assert result.read.iops == pytest.approx(262144.5)
        assert result.read.bandwidth_mb == pytest.approx(1024.0)
        assert result.read.lat_usec == pytest.approx(450.0)
        assert result.read.lat_usec_p99 == pytest.approx(1200.0)
        assert result.read.lat_usec_max == pytest.approx(2500.0)

    def test_write_section_and_total(self):
        result = FioJobResult.from_json_text(json.dumps(SAMPLE_FIO_RESULT))
        assert result.write.iops == pytest.approx(13797.0)
        assert result.write.lat_usec_p99 == pytest.approx(1500.0)
        assert result.total_iops == pytest.approx(262144.5 + 13797.0)

    def test_leading_warnings_ignored(self):
        result = FioJobResult.from_json_text(SAMPLE_FIO_OUTPUT)
        assert result.job_name == "fio_ai_train_95r_5w_nvme"

    def test_no_json(self):
        with pytest.raises(ValueError):
            FioJobResult.from_json_text("fio: engine io_uring not loadable\n")

    def test_no_jobs(self):
        with pytest.raises(ValueError):
            FioJobResult.from_json_text('{"fio version": "fio-3.36", "jobs": []}')

    def test_from_file(self, tmp_path):
        path = tmp_path / "result.json"
        path.write_text(SAMPLE_FIO_OUTPUT)
        assert FioJobResult.from_file(str(path)).read.iops == pytest.approx(262144.5)

    def test_missing_latency_defaults_to_zero(self):
        stats = IoStats.from_fio_section({"iops": 10, "bw": 2048})
        assert stats.bandwidth_mb == pytest.approx(2.0)
        assert stats.lat_usec == 0.0


class TestBenchmarkRun:
    """Tests for BenchmarkRun."""

    def test_run_id(self, benchmark_run):
        assert benchmark_run.run_id == "mixed_70r_30w_20250111_143000_000001_0001"

    def test_duration_before_finish(self, benchmark_run):
        benchmark_run.start()
        assert benchmark_run.duration == 0.0

    def test_finalize(self, benchmark_run):
        benchmark_run.start()
        benchmark_run.finalize(1, "error")
        assert benchmark_run.exit_code == 1
        assert benchmark_run.stderr == "error"
        assert benchmark_run.duration >= 0.0

    def test_to_dict(self, benchmark_run):
        data = benchmark_run.to_dict()
        assert data["command"] == "fio --rw=randrw"
        assert data["workload"]["pattern"] == "randrw"


class TestRunOutcome:
    """Tests for RunOutcome constructors."""

    def test_success(self, benchmark_run):
        outcome = RunOutcome.success(benchmark_run)
        assert outcome.ok
        assert outcome.name == "mixed_70r_30w"

    def test_failure_carries_error_code(self, workload, benchmark_run):
        error = NonZeroExitError("fio exited with code 1", exit_code=1, stderr="bad")
        outcome = RunOutcome.failure(workload, error, benchmark_run)
        assert outcome.status == RUN_STATUS.FAILED
        assert outcome.error_code == "E201"
        assert outcome.detail == "fio exited with code 1"

    def test_failure_without_run(self, workload):
        outcome = RunOutcome.failure(workload, InvocationError("Unable to start fio"))
        assert outcome.error_code == "E205"
        assert outcome.duration == 0.0
        assert outcome.to_dict()["run"] is None

    def test_failure_from_plain_exception(self, workload):
        outcome = RunOutcome.failure(workload, RuntimeError("unexpected"))
        assert outcome.error_code is None
        assert outcome.detail == "unexpected"

    def test_skipped(self, workload):
        outcome = RunOutcome.skipped(workload, "fail-fast")
        assert outcome.status == RUN_STATUS.SKIPPED
        assert outcome.to_dict()["status"] == "skipped"


class TestResultAggregator:
    """Tests for ResultAggregator."""

    def test_record_logs_by_status(self, mock_logger, workload, benchmark_run):
        aggregator = ResultAggregator(mock_logger)
        aggregator.record(RunOutcome.success(benchmark_run))
        aggregator.record(RunOutcome.failure(workload, NonZeroExitError("fio failed")))
        aggregator.record(RunOutcome.skipped(workload, "fail-fast"))

        assert mock_logger.has_message('status', 'completed')
        assert mock_logger.has_message('error', 'fio failed')
        assert mock_logger.has_message('warning', 'skipped')

    def test_summary_counts(self, mock_logger, workload, benchmark_run):
        aggregator = ResultAggregator(mock_logger)
        aggregator.record(RunOutcome.success(benchmark_run))
        aggregator.record(RunOutcome.failure(workload, NonZeroExitError("fio failed")))

        summary = aggregator.summary()

        assert summary["total"] == 2
        assert summary["succeeded"] == 1
        assert summary["failed"] == 1
        assert summary["skipped"] == 0
        assert not aggregator.all_succeeded
        json.dumps(summary)

    def test_report(self, mock_logger, quiet_console, benchmark_run):
        aggregator = ResultAggregator(mock_logger, console=quiet_console)
        outcome = RunOutcome.success(benchmark_run)
        outcome.fio_result = FioJobResult.from_json_text(SAMPLE_FIO_OUTPUT)
        aggregator.record(outcome)

        aggregator.report()

        rendered = quiet_console.file.getvalue()
        assert "mixed_70r_30w" in rendered
        assert "70% R / 30% W" in rendered
        assert "275,942" in rendered
        assert mock_logger.has_message('result', '1 succeeded, 0 failed, 0 skipped')
