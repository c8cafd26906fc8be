import abc
import errno
import os
import shutil
import signal
import time

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sysperf.config import DATETIME_STR, SYSPERF_DEBUG, TELEMETRY_PHASE
from sysperf.errors import ConfigurationError, EnvironmentSetupError, SysPerfException, ToolUnavailableError
from sysperf.interfaces.benchmark import BenchmarkInterface
from sysperf.telemetry.collectors import BackgroundSampler, CollectorConfig, COLLECTORS, get_collector
from sysperf.telemetry.models import samples_to_dicts
from sysperf.utils import CommandExecutor, write_json


class Benchmark(BenchmarkInterface, abc.ABC):
    """
    Shared plumbing for tool-driven benchmarks.

    Handles directory preparation, the tool version check, command execution
    (including --what-if), telemetry around each invocation and the metadata
    file. Subclasses build commands and decide what a single run means.
    """

    def __init__(self, logger, benchmark_dir: str, results_dir: Optional[str] = None,
                 run_datetime: Optional[str] = None, what_if: bool = False, debug: bool = False,
                 executor: Optional[CommandExecutor] = None,
                 telemetry: Sequence[str] = (),
                 telemetry_phases: Sequence[TELEMETRY_PHASE] = (),
                 telemetry_config: Optional[CollectorConfig] = None,
                 collector_factory: Callable = get_collector) -> None:
        self.logger = logger
        self.debug = debug or SYSPERF_DEBUG
        self.what_if = what_if

        if not run_datetime:
            self.logger.verbose('No run datetime provided. Using process start datetime.')
        self.run_datetime = run_datetime or DATETIME_STR
        self.runtime = 0.0

        self.benchmark_dir = os.path.abspath(benchmark_dir)
        self.results_dir = os.path.abspath(results_dir or benchmark_dir)
        self.cmd_executor = executor or CommandExecutor(logger=self.logger, debug=self.debug)
        self.tool_version = None

        self.telemetry = list(telemetry)
        unknown = [name for name in self.telemetry if name not in COLLECTORS]
        if unknown:
            raise ConfigurationError(
                f"Unknown telemetry source(s): {', '.join(unknown)}",
                parameter="telemetry",
                expected=sorted(COLLECTORS),
                actual=unknown,
            )
        self.telemetry_phases = {TELEMETRY_PHASE(p) for p in telemetry_phases}
        if self.telemetry and not self.telemetry_phases:
            self.telemetry_phases = {TELEMETRY_PHASE.BEFORE, TELEMETRY_PHASE.AFTER}
        self.telemetry_config = telemetry_config or CollectorConfig(interval=1, count=1)
        self.collector_factory = collector_factory

        self.metadata_filename = f"sysperf_{self.run_datetime}_metadata.json"
        self.metadata_file_path = os.path.join(self.results_dir, self.metadata_filename)

    def _execute_command(self, command: List[str], print_stdout=False, print_stderr=False) -> Tuple[str, str, int]:
        """
        Execute the given command and return stdout, stderr, and return code.

        In --what-if mode nothing is executed and a successful empty result is returned.
        """
        if self.what_if:
            self.logger.info(f'What-if mode: \nCommand: {" ".join(command)}')
            return "", "", 0

        watch_signals = {signal.SIGINT, signal.SIGTERM}
        return self.cmd_executor.execute(command, watch_signals=watch_signals,
                                         print_stdout=print_stdout,
                                         print_stderr=print_stderr)

    # -------------------------------------------------------------------------
    # Pre-loop checks
    # -------------------------------------------------------------------------

    def _ensure_directory(self, path: str, role: str):
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise EnvironmentSetupError(
                f"Unable to create {role} directory",
                path=path,
                operation="mkdir",
                os_error=e.strerror or str(e),
                code=EnvironmentSetupError.code_for_errno(e.errno),
            ) from e

        if not os.path.isdir(path):
            raise EnvironmentSetupError(
                f"{role.capitalize()} path exists but is not a directory",
                path=path,
                operation="mkdir",
                code=EnvironmentSetupError.code_for_errno(errno.ENOTDIR),
            )
        if not os.access(path, os.W_OK | os.X_OK):
            raise EnvironmentSetupError(
                f"{role.capitalize()} directory is not writable",
                path=path,
                operation="access",
                code=EnvironmentSetupError.code_for_errno(errno.EACCES),
            )

    def validate(self) -> None:
        self._ensure_directory(self.benchmark_dir, "benchmark")
        if self.results_dir != self.benchmark_dir:
            self._ensure_directory(self.results_dir, "results")
        self.logger.verbose(f'Benchmark directory: {self.benchmark_dir}')
        self.logger.verbose(f'Results directory: {self.results_dir}')

    def check_tool_available(self) -> str:
        tool = self.config.tool_path
        version_cmd = [tool, *self.config.version_args]

        if self.what_if:
            self.logger.info(f'What-if mode: skipping tool version check: {" ".join(version_cmd)}')
            self.tool_version = "what-if"
            return self.tool_version

        if shutil.which(tool) is None:
            raise ToolUnavailableError(f"{self.config.tool} was not found", tool=tool,
                                       install_hint=self.config.install_hint)
        try:
            stdout, stderr, return_code = self.cmd_executor.execute(version_cmd)
        except OSError as e:
            raise ToolUnavailableError(f"Unable to start {self.config.tool}", tool=tool,
                                       stderr=str(e)) from e
        if return_code != 0:
            raise ToolUnavailableError(f"{self.config.tool} version check failed", tool=tool,
                                       exit_code=return_code, stderr=stderr)

        self.tool_version = stdout.strip() or stderr.strip()
        self.logger.verbose(f'Using {self.config.tool} {self.tool_version}')
        return self.tool_version

    # -------------------------------------------------------------------------
    # Telemetry around each invocation
    # -------------------------------------------------------------------------

    def _snapshot(self, phase: TELEMETRY_PHASE, samples: Dict[str, list], errors: List[str]):
        if phase not in self.telemetry_phases:
            return
        for name in self.telemetry:
            try:
                collector = self.collector_factory(name, self.logger, self.telemetry_config)
                samples[f"{phase.value}.{name}"] = samples_to_dicts(collector.collect())
            except SysPerfException as e:
                self.logger.warning(f'Telemetry {phase.value}/{name} failed: {e.message}')
                errors.append(f"{phase.value}.{name}: {e.message}")

    def _start_samplers(self, errors: List[str]) -> Dict[str, BackgroundSampler]:
        samplers = {}
        if TELEMETRY_PHASE.DURING not in self.telemetry_phases:
            return samplers

        config = CollectorConfig(interval=self.telemetry_config.interval or 1, count=None,
                                 per_unit=self.telemetry_config.per_unit)
        for name in self.telemetry:
            try:
                sampler = BackgroundSampler(self.collector_factory(name, self.logger, config))
                sampler.start()
                samplers[name] = sampler
            except SysPerfException as e:
                self.logger.warning(f'Telemetry during/{name} failed to start: {e.message}')
                errors.append(f"during.{name}: {e.message}")
        return samplers

    def _stop_samplers(self, samplers: Dict[str, BackgroundSampler], samples: Dict[str, list],
                       errors: List[str]):
        for name, sampler in samplers.items():
            collected = sampler.stop()
            if sampler.error is not None:
                message = getattr(sampler.error, "message", str(sampler.error))
                self.logger.warning(f'Telemetry during/{name} failed: {message}')
                errors.append(f"during.{name}: {message}")
            if collected:
                samples[f"during.{name}"] = samples_to_dicts(collected)

    # -------------------------------------------------------------------------
    # Execution and metadata
    # -------------------------------------------------------------------------

    def run(self):
        """Run the whole matrix, timing it and writing metadata afterwards."""
        start_time = time.time()
        try:
            return self.run_all()
        finally:
            self.runtime = time.time() - start_time
            if os.path.isdir(self.results_dir):
                try:
                    self.write_metadata()
                except OSError as e:
                    self.logger.warning(f"Failed to write metadata: {e}")

    def write_metadata(self):
        self.logger.verbose(f'Writing metadata to: {self.metadata_file_path}')
        write_json(self.metadata_file_path, self.get_metadata())
