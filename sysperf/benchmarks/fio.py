"""
fio workload-matrix benchmark.

Runs every workload of a catalog through fio, one at a time, against the same
benchmark directory. Workloads never overlap because they share the storage
target under test.

Failure policy:
    - validate() and check_tool_available() failures are fatal and raised
      before any workload runs.
    - A workload that cannot be spawned or whose output cannot be captured
      (InvocationError), or whose fio exits
      non-zero (NonZeroExitError) is recorded as a failed outcome and the
      matrix continues with the next entry.
    - With fail_fast=True the first failure stops the matrix and the remaining
      entries are recorded as skipped.
"""

import os

from typing import Any, Callable, Dict, List, Optional, Sequence

from sysperf.benchmarks.base import Benchmark
from sysperf.config import FioSettings, TELEMETRY_PHASE
from sysperf.errors import InvocationError, NonZeroExitError
from sysperf.interfaces.benchmark import BenchmarkConfig
from sysperf.progress import matrix_progress
from sysperf.results import BenchmarkRun, FioJobResult, ResultAggregator, RunOutcome
from sysperf.utils import generate_run_token, write_json
from sysperf.workloads import WorkloadConfig, list_workloads, validate_catalog


class FioBenchmark(Benchmark):

    def __init__(self, logger, benchmark_dir: str, results_dir: Optional[str] = None,
                 settings: Optional[FioSettings] = None,
                 workloads: Optional[Sequence[WorkloadConfig]] = None,
                 fail_fast: bool = False,
                 aggregator: Optional[ResultAggregator] = None,
                 token_factory: Callable[[], str] = generate_run_token,
                 **kwargs) -> None:
        super().__init__(logger, benchmark_dir, results_dir, **kwargs)
        self.settings = settings or FioSettings()
        self.workloads = validate_catalog(workloads if workloads is not None else list_workloads())
        self.fail_fast = fail_fast
        self.aggregator = aggregator or ResultAggregator(logger=self.logger)
        self.token_factory = token_factory
        self.outcomes: List[RunOutcome] = []

        self._config = BenchmarkConfig(
            name="fio workload matrix",
            tool="fio",
            tool_path=self.settings.fio_bin,
            install_hint="apt-get install fio (Debian/Ubuntu) or dnf install fio (RHEL/Fedora)",
        )

    @property
    def config(self) -> BenchmarkConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Command construction
    # -------------------------------------------------------------------------

    def block_size(self, workload: WorkloadConfig) -> str:
        if workload.pattern.is_random:
            return self.settings.random_block_size
        return self.settings.sequential_block_size

    def prepare_run(self, workload: WorkloadConfig, token: Optional[str] = None) -> BenchmarkRun:
        """Allocate the token and artifact paths for one run and build its command."""
        token = token or self.token_factory()
        run = BenchmarkRun(
            workload=workload,
            token=token,
            scratch_path=os.path.join(self.benchmark_dir, f"fio_{workload.name}_{token}.dat"),
            result_path=os.path.join(self.results_dir, f"results_{workload.name}_{token}.json"),
            telemetry_path=os.path.join(self.results_dir, f"telemetry_{workload.name}_{token}.json"),
        )
        run.command = self.build_command(workload, run)
        return run

    def build_command(self, workload: WorkloadConfig, run: BenchmarkRun) -> List[str]:
        s = self.settings
        command = [
            s.fio_bin,
            f"--filename={run.scratch_path}",
            f"--ioengine={s.ioengine}",
            f"--direct={1 if s.direct else 0}",
            f"--rw={workload.pattern.value}",
            f"--bs={self.block_size(workload)}",
            f"--size={s.size}",
            f"--numjobs={s.numjobs}",
            f"--iodepth={s.iodepth}",
            f"--runtime={s.runtime}",
            "--time_based",
            "--group_reporting",
            f"--name=fio_{workload.name}_{s.job_name_suffix}",
            "--output-format=json",
            f"--output={run.result_path}",
        ]
        if workload.read_percentage is not None:
            command.append(f"--rwmixread={workload.read_percentage}")
        return command

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _load_result(self, run: BenchmarkRun) -> Optional[FioJobResult]:
        if self.what_if:
            return None
        try:
            return FioJobResult.from_file(run.result_path)
        except (OSError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f'Could not read fio results from {run.result_path}: {e}')
            return None

    def run_workload(self, workload: WorkloadConfig) -> RunOutcome:
        """
        Run one workload and return its outcome. Never raises for a tool failure.
        """
        run = self.prepare_run(workload)
        self.logger.status(f"▶ {workload.name} ({workload.mix_label}) → {run.result_path}")

        telemetry: Dict[str, list] = {}
        telemetry_errors: List[str] = []
        error = None

        self._snapshot(TELEMETRY_PHASE.BEFORE, telemetry, telemetry_errors)
        samplers = self._start_samplers(telemetry_errors)
        run.start()
        try:
            stdout, stderr, return_code = self._execute_command(run.command)
        except OSError as e:
            run.finalize(None, str(e))
            error = InvocationError(f"Unable to start fio for {workload.name}",
                                    command=" ".join(run.command), os_error=str(e))
        except Exception as e:
            run.finalize(None, f"{type(e).__name__}: {e}")
            error = InvocationError(f"fio invocation failed for {workload.name}",
                                    command=" ".join(run.command), os_error=f"{type(e).__name__}: {e}")
        else:
            run.finalize(return_code, stderr)
            if return_code != 0:
                error = NonZeroExitError(f"fio exited with code {return_code} for {workload.name}",
                                         command=" ".join(run.command), exit_code=return_code,
                                         stderr=stderr)
        finally:
            self._stop_samplers(samplers, telemetry, telemetry_errors)
        self._snapshot(TELEMETRY_PHASE.AFTER, telemetry, telemetry_errors)

        if error is not None:
            self.logger.debug(str(error))
            outcome = RunOutcome.failure(workload, error, run)
        else:
            outcome = RunOutcome.success(run)
            outcome.fio_result = self._load_result(run)

        if telemetry:
            try:
                write_json(run.telemetry_path, {"run_id": run.run_id, "samples": telemetry})
            except OSError as e:
                self.logger.warning(f'Failed to write telemetry for {workload.name}: {e}')
                telemetry_errors.append(f"write: {e}")
        outcome.telemetry = {key: len(value) for key, value in telemetry.items()}
        outcome.telemetry_errors = telemetry_errors
        return outcome

    def run_all(self) -> List[RunOutcome]:
        """
        Run the catalog in order.

        Raises:
            EnvironmentSetupError: If the directories cannot be prepared.
            ToolUnavailableError: If fio is missing or its version check fails.

        Returns:
            One outcome per catalog entry, in catalog order.
        """
        self.validate()
        self.check_tool_available()

        self.outcomes = []
        self.aggregator.clear()
        stop_reason = None
        self.logger.status(f'Running {len(self.workloads)} workload(s) with fio')

        with matrix_progress([w.name for w in self.workloads], logger=self.logger) as (start, finish):
            for workload in self.workloads:
                if stop_reason:
                    outcome = RunOutcome.skipped(workload, stop_reason)
                else:
                    start(workload.name)
                    outcome = self.run_workload(workload)
                    if not outcome.ok and self.fail_fast:
                        stop_reason = f"fail-fast after {workload.name} failed"
                    finish()
                self.outcomes.append(outcome)
                self.aggregator.record(outcome)

        self.logger.status('All benchmarks completed')
        return list(self.outcomes)

    def get_metadata(self) -> Dict[str, Any]:
        return {
            'benchmark': self.config.name,
            'tool': self.config.tool,
            'tool_version': self.tool_version,
            'run_datetime': self.run_datetime,
            'runtime': self.runtime,
            'what_if': self.what_if,
            'fail_fast': self.fail_fast,
            'benchmark_dir': self.benchmark_dir,
            'results_dir': self.results_dir,
            'settings': self.settings.to_dict(),
            'telemetry': {
                'sources': self.telemetry,
                'phases': sorted(p.value for p in self.telemetry_phases),
            },
            'workloads': [w.to_dict() for w in self.workloads],
            'outcomes': [o.to_dict() for o in self.outcomes],
        }
