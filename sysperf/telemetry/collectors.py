"""
Telemetry collectors.

Each collector owns one source and a parser. A sampling tick reads the whole
source once and parses it; ``collect()`` runs ``count`` ticks, or ticks until
a cancel event is set when ``count`` is None.

File collectors (cpuinfo, meminfo, loadavg) wait ``interval`` seconds between
ticks with no wait before the first. Command collectors (mpstat, vmstat,
iostat) hand the interval to the tool itself, which blocks for one
measurement window per tick, so no extra wait is added between ticks. An
interval of 0 makes the tools report since-boot figures immediately.

Usage:
    collector = MemInfoCollector(logger, CollectorConfig(interval=1, count=5))
    samples = collector.collect()

    sampler = BackgroundSampler(get_collector("vmstat", logger, CollectorConfig(count=None)))
    sampler.start()
    # ... run benchmark ...
    samples = sampler.stop()
"""

import math
import os
import shutil
import threading

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from sysperf.config import (
    CPUINFO_PATH,
    MEMINFO_PATH,
    LOADAVG_PATH,
    MIN_FREE_KBYTES_PATH,
    MPSTAT_BIN,
    VMSTAT_BIN,
    IOSTAT_BIN,
)
from sysperf.errors import (
    ConfigurationError,
    EmptyResultError,
    ParseError,
    SourceUnavailableError,
    TelemetryError,
)
from sysperf.interfaces.collector import TelemetryCollectorInterface
from sysperf.telemetry import parsers
from sysperf.telemetry.models import IostatSample, TelemetrySample
from sysperf.utils import CommandExecutor, utc_timestamp


@dataclass(frozen=True)
class CollectorConfig:
    """
    Sampling policy for one collector.

    Attributes:
        interval: Seconds between ticks (file sources) or the tool's
            measurement window (command sources). Must be >= 0.
        count: Number of ticks, or None to run until cancelled.
        per_unit: Per-CPU / per-device rows when True, aggregate rows when False.
    """
    interval: float = 1.0
    count: Optional[int] = 1
    per_unit: bool = True

    def __post_init__(self):
        if isinstance(self.interval, bool) or not isinstance(self.interval, (int, float)) \
                or math.isnan(self.interval) or self.interval < 0:
            raise ConfigurationError(
                "Collector interval must be a number >= 0",
                parameter="interval",
                expected=">= 0",
                actual=self.interval,
            )
        if self.count is not None:
            if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count < 1:
                raise ConfigurationError(
                    "Collector count must be a positive integer or None",
                    parameter="count",
                    expected="integer >= 1 or None",
                    actual=self.count,
                )
        elif self.interval == 0:
            raise ConfigurationError(
                "Continuous collection needs a positive interval",
                parameter="interval",
                expected="> 0 when count is None",
                actual=self.interval,
            )

    @property
    def unbounded(self) -> bool:
        return self.count is None


class Collector(TelemetryCollectorInterface):
    """Shared tick loop. Subclasses provide ``read_source`` and ``parse``."""

    name = "collector"
    waits_between_ticks = True

    def __init__(self, logger, config: Optional[CollectorConfig] = None):
        self.logger = logger
        self.config = config or CollectorConfig()

    @property
    def source(self) -> str:
        raise NotImplementedError

    def read_source(self) -> str:
        raise NotImplementedError

    def parse(self, text: str) -> List[TelemetrySample]:
        raise NotImplementedError

    def sample(self, sample_index: int = 0) -> List[TelemetrySample]:
        """Run one tick: read, parse and stamp the records."""
        try:
            text = self.read_source()
        except UnicodeDecodeError as e:
            raise ParseError(f"{self.name} output is not valid text: {e.reason}", source=self.source) from e
        records = self.parse(text)
        if not records:
            raise EmptyResultError(f"{self.name} produced no records", source=self.source)

        timestamp = utc_timestamp()
        return [record.stamped(timestamp, sample_index) for record in records]

    def collect(self, cancel_event: Optional[threading.Event] = None,
                sink: Optional[List[TelemetrySample]] = None) -> List[TelemetrySample]:
        """
        Run the configured number of ticks.

        Records are appended to ``sink`` as each tick completes when one is
        given, so a caller holding the list keeps earlier ticks if a later
        tick raises. A tick that fails after ``cancel_event`` was set ends the
        collection quietly.
        """
        if self.config.unbounded and cancel_event is None:
            raise ConfigurationError(
                f"Continuous {self.name} collection needs a cancel event",
                parameter="count",
                actual=None,
            )

        self.check_source()
        waiter = cancel_event or threading.Event()
        samples: List[TelemetrySample] = sink if sink is not None else []
        tick = 0

        while True:
            try:
                records = self.sample(tick)
            except TelemetryError:
                if tick > 0 and waiter.is_set():
                    self.logger.debug(f"{self.name}: tick {tick} interrupted by shutdown")
                    break
                raise
            samples.extend(records)
            tick += 1
            self.logger.ridiculous(f"{self.name}: tick {tick} collected {len(samples)} record(s) so far")

            if self.config.count is not None and tick >= self.config.count:
                break
            if self.waits_between_ticks:
                if waiter.wait(timeout=self.config.interval):
                    break
            elif waiter.is_set():
                break

        self.logger.debug(f"{self.name}: collected {len(samples)} record(s) over {tick} tick(s)")
        return samples


# =============================================================================
# Pseudo-file collectors
# =============================================================================

class FileCollector(Collector):

    default_path = None

    def __init__(self, logger, config: Optional[CollectorConfig] = None, path: Optional[str] = None):
        super().__init__(logger, config)
        self.path = path or self.default_path

    @property
    def source(self) -> str:
        return self.path

    def is_available(self) -> bool:
        return os.path.isfile(self.path) and os.access(self.path, os.R_OK)

    def check_source(self) -> None:
        if not os.path.exists(self.path):
            raise SourceUnavailableError(f"{self.name} source does not exist", source=self.path,
                                         reason="file not found")
        if not self.is_available():
            raise SourceUnavailableError(f"{self.name} source is not readable", source=self.path,
                                         reason="permission denied or not a regular file")

    def read_source(self) -> str:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise SourceUnavailableError(f"Unable to read {self.name} source", source=self.path,
                                         reason=str(e)) from e


class CpuInfoCollector(FileCollector):
    name = "cpuinfo"
    default_path = CPUINFO_PATH

    def parse(self, text: str) -> List[TelemetrySample]:
        records = parsers.parse_cpuinfo(text)
        if self.config.per_unit:
            return records
        # Aggregate only: drop the per-processor detail
        return [replace(r, cores=()) for r in records]


class MemInfoCollector(FileCollector):
    """
    /proc/meminfo snapshot plus the kernel's free-memory watermarks.

    The low watermark is vm.min_free_kbytes in bytes and the high watermark
    is twice that. Both are 0 when the sysctl cannot be read.
    """
    name = "meminfo"
    default_path = MEMINFO_PATH

    def __init__(self, logger, config: Optional[CollectorConfig] = None, path: Optional[str] = None,
                 min_free_path: str = MIN_FREE_KBYTES_PATH):
        super().__init__(logger, config, path)
        self.min_free_path = min_free_path

    def read_low_watermark(self) -> int:
        try:
            with open(self.min_free_path, "r", encoding="utf-8") as f:
                return parsers.parse_min_free_kbytes(f.read(), source=self.min_free_path)
        except (OSError, UnicodeDecodeError, ParseError) as e:
            self.logger.debug(f"meminfo: no watermark from {self.min_free_path}: {e}")
            return 0

    def parse(self, text: str) -> List[TelemetrySample]:
        records = parsers.parse_meminfo(text)
        if not records:
            return records
        low = self.read_low_watermark()
        return [replace(record, low_watermark=low, high_watermark=low * 2) for record in records]


class LoadAvgCollector(FileCollector):
    name = "loadavg"
    default_path = LOADAVG_PATH

    def parse(self, text: str) -> List[TelemetrySample]:
        return parsers.parse_loadavg(text)


# =============================================================================
# Command collectors
# =============================================================================

class CommandCollector(Collector):
    """
    Runs a sysstat tool once per tick.

    The tools run under the C locale so decimals always print with a dot, and
    in their own session so a Ctrl-C aimed at sysperf does not kill a tick
    half way through.
    """

    binary = None
    waits_between_ticks = False
    command_env = {"LC_ALL": "C"}

    def __init__(self, logger, config: Optional[CollectorConfig] = None,
                 executor: Optional[CommandExecutor] = None, binary: Optional[str] = None):
        super().__init__(logger, config)
        self.executor = executor or CommandExecutor(logger=logger)
        if binary:
            self.binary = binary

    @property
    def source(self) -> str:
        return self.binary

    @property
    def tool_interval(self) -> Optional[int]:
        """Whole-second measurement window for the tool, or None for since-boot."""
        if self.config.interval == 0:
            return None
        return max(1, math.ceil(self.config.interval))

    def build_command(self) -> List[str]:
        raise NotImplementedError

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def check_source(self) -> None:
        if not self.is_available():
            raise SourceUnavailableError(f"{self.binary} was not found in PATH", source=self.binary,
                                         reason="executable not found")

    def read_source(self) -> str:
        command = self.build_command()
        try:
            stdout, stderr, return_code = self.executor.execute(command, env=self.command_env,
                                                                new_session=True)
        except OSError as e:
            raise SourceUnavailableError(f"Unable to start {self.binary}", source=" ".join(command),
                                         reason=str(e)) from e

        if return_code != 0:
            raise SourceUnavailableError(
                f"{self.binary} exited with code {return_code}",
                source=" ".join(command),
                reason=stderr.strip()[:300] or f"exit code {return_code}",
            )
        return stdout


class MpstatCollector(CommandCollector):
    name = "mpstat"
    binary = MPSTAT_BIN

    def build_command(self) -> List[str]:
        command = [self.binary]
        if self.config.per_unit:
            command += ["-P", "ALL"]
        if self.tool_interval is not None:
            command += [str(self.tool_interval), "1"]
        return command

    def parse(self, text: str) -> List[TelemetrySample]:
        return parsers.parse_mpstat(text)


class VmstatCollector(CommandCollector):
    name = "vmstat"
    binary = VMSTAT_BIN

    def build_command(self) -> List[str]:
        command = [self.binary, "-n"]
        if self.tool_interval is not None:
            command += [str(self.tool_interval), "2"]
        return command

    def parse(self, text: str) -> List[TelemetrySample]:
        records = parsers.parse_vmstat(text)
        if self.tool_interval is not None and len(records) > 1:
            # The first row is the since-boot average; keep the measured one
            return records[-1:]
        return records


class IostatCollector(CommandCollector):
    name = "iostat"
    binary = IOSTAT_BIN

    def build_command(self) -> List[str]:
        command = [self.binary, "-d", "-x", "-k"]
        if self.tool_interval is not None:
            command += [str(self.tool_interval), "2"]
        return command

    def parse(self, text: str) -> List[TelemetrySample]:
        reports = parsers.parse_iostat_reports(text)
        if not reports:
            return []
        # With an interval the first report is since boot
        records = reports[-1]
        if self.config.per_unit:
            return records
        return [aggregate_iostat(records)]


def aggregate_iostat(records: List[IostatSample]) -> IostatSample:
    """
    Collapse per-device rows into one ``all`` row.

    Rates and queue sizes are summed. Request size and service time are
    averaged weighted by tps. Utilization is the busiest device's.
    """
    tps = sum(r.tps for r in records)

    def weighted(attr):
        if tps == 0:
            return sum(getattr(r, attr) for r in records) / len(records)
        return sum(getattr(r, attr) * r.tps for r in records) / tps

    return IostatSample(
        device="all",
        tps=tps,
        kb_read_per_sec=sum(r.kb_read_per_sec for r in records),
        kb_written_per_sec=sum(r.kb_written_per_sec for r in records),
        avg_request_size=weighted("avg_request_size"),
        avg_queue_size=sum(r.avg_queue_size for r in records),
        avg_service_time_ms=weighted("avg_service_time_ms"),
        utilization=max(r.utilization for r in records),
    )


COLLECTORS: Dict[str, type] = {
    CpuInfoCollector.name: CpuInfoCollector,
    MemInfoCollector.name: MemInfoCollector,
    LoadAvgCollector.name: LoadAvgCollector,
    MpstatCollector.name: MpstatCollector,
    VmstatCollector.name: VmstatCollector,
    IostatCollector.name: IostatCollector,
}


def get_collector(name: str, logger, config: Optional[CollectorConfig] = None,
                  executor: Optional[CommandExecutor] = None) -> Collector:
    """Build a collector by name."""
    collector_class = COLLECTORS.get(name)
    if collector_class is None:
        raise ConfigurationError(
            f"Unknown metric source: {name}",
            parameter="metric",
            expected=sorted(COLLECTORS),
            actual=name,
        )
    if issubclass(collector_class, CommandCollector):
        return collector_class(logger, config, executor=executor)
    return collector_class(logger, config)


class BackgroundSampler:
    """Runs one collector on a background thread until stopped.

    Uses a non-daemon thread and an Event for shutdown. The wrapped collector
    must be configured with ``count=None`` (or a count large enough to cover
    the run); ``stop()`` sets the event and the collector finishes its current
    tick before returning.

    Attributes:
        samples: Records collected so far. Ticks completed before an error
            are kept.
        error: Exception raised by the collector, if any.
    """

    def __init__(self, collector: Collector, join_timeout: Optional[float] = None):
        self.collector = collector
        self.join_timeout = join_timeout
        self.samples: List[TelemetrySample] = []
        self.error: Optional[Exception] = None

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            daemon=False,
            name=f"sampler-{collector.name}",
        )
        self._started = False
        self._stopped = False

    def _run(self):
        try:
            self.collector.collect(cancel_event=self._stop_event, sink=self.samples)
        except Exception as e:
            # Reported to the caller through stop()/error
            self.error = e

    def start(self) -> None:
        if self._started:
            raise RuntimeError(f'BackgroundSampler for {self.collector.name} already started')
        self._started = True
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the collector finishes on its own. Returns True if it has."""
        if not self._started:
            raise RuntimeError(f'BackgroundSampler for {self.collector.name} not started')
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def stop(self) -> List[TelemetrySample]:
        if not self._started:
            raise RuntimeError(f'BackgroundSampler for {self.collector.name} not started')
        if not self._stopped:
            self._stop_event.set()
            self._thread.join(timeout=self.join_timeout)
            self._stopped = True
        return list(self.samples)

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped
