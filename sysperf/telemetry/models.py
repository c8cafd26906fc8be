"""
Typed telemetry records.

One frozen dataclass per telemetry kind. Records are produced by the parsers
in ``sysperf.telemetry.parsers`` and stamped by a collector with the tick
they belong to (``sample_index``) and a UTC ``timestamp``. Every numeric field
is populated at construction; a record is never partially filled.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class TelemetrySample:
    """Fields shared by every record kind."""
    timestamp: Optional[str] = field(default=None, kw_only=True)
    sample_index: int = field(default=0, kw_only=True)

    KIND = "sample"

    def stamped(self, timestamp: str, sample_index: int) -> "TelemetrySample":
        return replace(self, timestamp=timestamp, sample_index=sample_index)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["kind"] = self.KIND
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TelemetrySample":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class CpuCoreInfo(TelemetrySample):
    """One logical processor block from /proc/cpuinfo."""
    processor: int
    vendor_id: str = ""
    model_name: str = ""
    cpu_mhz: Optional[float] = None
    core_id: Optional[int] = None
    physical_id: Optional[int] = None
    flags: Tuple[str, ...] = ()
    bugs: Tuple[str, ...] = ()
    features: Dict[str, str] = field(default_factory=dict)

    KIND = "cpu_core"


@dataclass(frozen=True)
class CpuInfoSample(TelemetrySample):
    """All logical processors plus the aggregates derived from them."""
    vendor_id: str
    model_name: str
    cores: Tuple[CpuCoreInfo, ...]
    total_cores: int
    physical_cores: int
    total_threads: int
    num_sockets: int
    cpu_mhz: Optional[float] = None
    flags: Tuple[str, ...] = ()
    bugs: Tuple[str, ...] = ()

    KIND = "cpuinfo"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CpuInfoSample":
        data = dict(data)
        data["cores"] = tuple(CpuCoreInfo.from_dict(c) for c in data.get("cores", ()))
        data["flags"] = tuple(data.get("flags", ()))
        data["bugs"] = tuple(data.get("bugs", ()))
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class MemInfoSample(TelemetrySample):
    """/proc/meminfo snapshot. All values are bytes."""
    total: int
    free: int
    available: int
    used: int
    buffers: int = 0
    cached: int = 0
    active: int = 0
    inactive: int = 0
    swap_total: int = 0
    swap_free: int = 0
    swap_used: int = 0
    dirty: int = 0
    writeback: int = 0
    reclaimable: int = 0
    low_watermark: int = 0
    high_watermark: int = 0

    KIND = "meminfo"

    def memory_usage_percent(self) -> float:
        if not self.total:
            return 0.0
        return self.used / self.total * 100.0

    def swap_usage_percent(self) -> float:
        if not self.swap_total:
            return 0.0
        return self.swap_used / self.swap_total * 100.0


@dataclass(frozen=True)
class LoadAvgSample(TelemetrySample):
    load_1: float
    load_5: float
    load_15: float
    running_tasks: int
    total_tasks: int
    last_pid: int

    KIND = "loadavg"


@dataclass(frozen=True)
class MpstatSample(TelemetrySample):
    """One mpstat row. ``cpu_id`` is ``"all"`` or the CPU number as a string."""
    cpu_id: str
    usr: float
    nice: float
    sys: float
    iowait: float
    irq: float
    soft: float
    steal: float
    guest: float
    gnice: float
    idle: float

    KIND = "mpstat"

    @property
    def busy(self) -> float:
        return 100.0 - self.idle


@dataclass(frozen=True)
class VmstatSample(TelemetrySample):
    """One vmstat data row. Memory columns are KiB, rates are per second."""
    procs_running: int
    procs_blocked: int
    swap_used: int
    mem_free: int
    mem_buffer: int
    mem_cache: int
    swap_in: int
    swap_out: int
    blocks_in: int
    blocks_out: int
    interrupts: int
    context_switches: int
    cpu_user: int
    cpu_system: int
    cpu_idle: int
    cpu_iowait: int
    cpu_steal: Optional[int] = None

    KIND = "vmstat"


@dataclass(frozen=True)
class IostatSample(TelemetrySample):
    """One device row from ``iostat -x``."""
    device: str
    tps: float
    kb_read_per_sec: float
    kb_written_per_sec: float
    avg_request_size: float
    avg_queue_size: float
    avg_service_time_ms: float
    utilization: float

    KIND = "iostat"


SAMPLE_TYPES = {
    cls.KIND: cls
    for cls in (CpuInfoSample, MemInfoSample, LoadAvgSample, MpstatSample, VmstatSample, IostatSample)
}


def samples_to_dicts(samples: List[TelemetrySample]) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in samples]


def sample_from_dict(data: Dict[str, Any]) -> TelemetrySample:
    kind = data.get("kind")
    if kind not in SAMPLE_TYPES:
        raise ValueError(f"Unknown telemetry record kind: {kind}")
    return SAMPLE_TYPES[kind].from_dict(data)
