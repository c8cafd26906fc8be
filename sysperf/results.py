"""
Run records, outcomes and the matrix aggregator.

A BenchmarkRun is created when the runner starts a workload and is finalized
when the tool exits. A RunOutcome summarizes that run for the aggregator,
which keeps outcomes in catalog order and renders the post-run summary.
"""

import json
import time

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from sysperf.config import RUN_STATUS
from sysperf.workloads import WorkloadConfig


@dataclass
class BenchmarkRun:
    """
    One execution of a WorkloadConfig.

    ``run_id`` is ``{workload}_{token}``; the scratch file, result file and
    telemetry file all carry the same token.
    """
    workload: WorkloadConfig
    token: str
    scratch_path: str
    result_path: str
    telemetry_path: str
    command: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    stderr: str = ""
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    @property
    def run_id(self) -> str:
        return f"{self.workload.name}_{self.token}"

    @property
    def duration(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return self.finished_at - self.started_at

    def start(self):
        self.started_at = time.monotonic()

    def finalize(self, exit_code: Optional[int], stderr: str = ""):
        self.finished_at = time.monotonic()
        self.exit_code = exit_code
        self.stderr = stderr

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workload": self.workload.to_dict(),
            "token": self.token,
            "scratch_path": self.scratch_path,
            "result_path": self.result_path,
            "telemetry_path": self.telemetry_path,
            "command": " ".join(self.command),
            "exit_code": self.exit_code,
            "stderr": self.stderr,
            "duration": self.duration,
        }


@dataclass
class IoStats:
    """Aggregate statistics for one direction of a fio job."""
    iops: float = 0.0
    bandwidth_mb: float = 0.0
    lat_usec: float = 0.0
    lat_usec_p99: float = 0.0
    lat_usec_max: float = 0.0

    @classmethod
    def from_fio_section(cls, section: Dict[str, Any]) -> "IoStats":
        clat = section.get("clat_ns") or section.get("lat_ns") or {}
        percentiles = clat.get("percentile") or {}
        return cls(
            iops=float(section.get("iops", 0.0)),
            bandwidth_mb=float(section.get("bw", 0)) / 1024,
            lat_usec=float(clat.get("mean", 0.0)) / 1000,
            lat_usec_p99=float(percentiles.get("99.000000", 0.0)) / 1000,
            lat_usec_max=float(clat.get("max", 0.0)) / 1000,
        )


@dataclass
class FioJobResult:
    """Summary of a fio ``--output-format=json`` result file."""
    job_name: str
    read: IoStats
    write: IoStats
    fio_version: str = ""

    @property
    def total_iops(self) -> float:
        return self.read.iops + self.write.iops

    @classmethod
    def from_json_text(cls, text: str) -> "FioJobResult":
        """
        Parse fio JSON output.

        fio may print warnings ahead of the JSON document, so parsing starts
        at the first ``{``.

        Raises:
            ValueError: If no JSON document or no job is found.
        """
        start = text.find("{")
        if start < 0:
            raise ValueError("No JSON document in fio output")
        document = json.loads(text[start:])
        jobs = document.get("jobs") or []
        if not jobs:
            raise ValueError("fio output contains no jobs")

        job = jobs[0]
        return cls(
            job_name=job.get("jobname", ""),
            read=IoStats.from_fio_section(job.get("read") or {}),
            write=IoStats.from_fio_section(job.get("write") or {}),
            fio_version=document.get("fio version", ""),
        )

    @classmethod
    def from_file(cls, path: str) -> "FioJobResult":
        with open(path, "r") as f:
            return cls.from_json_text(f.read())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunOutcome:
    """Success/failure summary of one catalog entry."""
    workload: WorkloadConfig
    status: RUN_STATUS
    detail: str = ""
    duration: float = 0.0
    error_code: Optional[str] = None
    run: Optional[BenchmarkRun] = None
    fio_result: Optional[FioJobResult] = None
    telemetry: Dict[str, int] = field(default_factory=dict)
    telemetry_errors: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.workload.name

    @property
    def ok(self) -> bool:
        return self.status == RUN_STATUS.OK

    @classmethod
    def success(cls, run: BenchmarkRun, detail: str = "") -> "RunOutcome":
        return cls(workload=run.workload, status=RUN_STATUS.OK, detail=detail,
                   duration=run.duration, run=run)

    @classmethod
    def failure(cls, workload: WorkloadConfig, error: Exception,
                run: Optional[BenchmarkRun] = None) -> "RunOutcome":
        code = getattr(error, "code", None)
        return cls(
            workload=workload,
            status=RUN_STATUS.FAILED,
            detail=getattr(error, "message", None) or str(error),
            duration=run.duration if run else 0.0,
            error_code=code.value if code is not None else None,
            run=run,
        )

    @classmethod
    def skipped(cls, workload: WorkloadConfig, reason: str) -> "RunOutcome":
        return cls(workload=workload, status=RUN_STATUS.SKIPPED, detail=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workload": self.workload.to_dict(),
            "status": self.status.value,
            "detail": self.detail,
            "duration": self.duration,
            "error_code": self.error_code,
            "run": self.run.to_dict() if self.run else None,
            "fio_result": self.fio_result.to_dict() if self.fio_result else None,
            "telemetry": self.telemetry,
            "telemetry_errors": self.telemetry_errors,
        }


class ResultAggregator:
    """Collects outcomes in catalog order and reports progress and summaries."""

    def __init__(self, logger, console: Optional[Console] = None):
        self.logger = logger
        self.console = console
        self.outcomes: List[RunOutcome] = []

    def clear(self):
        self.outcomes = []

    def record(self, outcome: RunOutcome):
        self.outcomes.append(outcome)
        if outcome.status == RUN_STATUS.OK:
            self.logger.status(f"✔ {outcome.name} completed in {outcome.duration:.1f}s")
        elif outcome.status == RUN_STATUS.FAILED:
            self.logger.error(f"✘ {outcome.name} failed: {outcome.detail}")
        else:
            self.logger.warning(f"- {outcome.name} skipped: {outcome.detail}")

    def count(self, status: RUN_STATUS) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def all_succeeded(self) -> bool:
        return all(o.ok for o in self.outcomes)

    def summary(self) -> Dict[str, Any]:
        return {
            "total": len(self.outcomes),
            "succeeded": self.count(RUN_STATUS.OK),
            "failed": self.count(RUN_STATUS.FAILED),
            "skipped": self.count(RUN_STATUS.SKIPPED),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    def build_table(self) -> Table:
        table = Table(title="Benchmark matrix summary")
        table.add_column("Workload")
        table.add_column("Pattern")
        table.add_column("Mix")
        table.add_column("Status")
        table.add_column("Duration (s)", justify="right")
        table.add_column("IOPS", justify="right")
        table.add_column("Detail")

        styles = {RUN_STATUS.OK: "green", RUN_STATUS.FAILED: "red", RUN_STATUS.SKIPPED: "yellow"}
        for outcome in self.outcomes:
            iops = f"{outcome.fio_result.total_iops:,.0f}" if outcome.fio_result else "-"
            table.add_row(
                outcome.name,
                outcome.workload.pattern.value,
                outcome.workload.mix_label,
                f"[{styles[outcome.status]}]{outcome.status.value}[/]",
                f"{outcome.duration:.1f}",
                iops,
                outcome.detail,
            )
        return table

    def report(self):
        """Print the summary table and log the totals at RESULT level."""
        console = self.console or Console()
        console.print(self.build_table())
        self.logger.result(
            f"{self.count(RUN_STATUS.OK)} succeeded, {self.count(RUN_STATUS.FAILED)} failed, "
            f"{self.count(RUN_STATUS.SKIPPED)} skipped"
        )
