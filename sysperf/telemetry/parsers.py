"""
Parsers for /proc pseudo-files and sysstat/procps command output.

Every function here is pure: text in, typed records out. The failure policy is
the same for every source:

- Structural noise is skipped: blank lines, ``Linux ...`` banners, column
  header rows, ``Average:`` summary rows and vmstat group headers.
- Anything else is a data row and must parse completely. A data row with too
  few columns or a non-numeric field raises ParseError naming the line.

Parsers return an empty list when the text holds no data rows at all. It is
the collector's job to turn that into EmptyResultError.
"""

import re

from typing import Dict, List, Optional, Sequence

from sysperf.config import KIB
from sysperf.errors import ParseError
from sysperf.telemetry.models import (
    CpuCoreInfo,
    CpuInfoSample,
    IostatSample,
    LoadAvgSample,
    MemInfoSample,
    MpstatSample,
    VmstatSample,
)


def _to_int(value: str, field_name: str, line: str, source: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(f"Field '{field_name}' is not an integer: {value!r}", line=line, source=source)


def _to_float(value: str, field_name: str, line: str, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ParseError(f"Field '{field_name}' is not numeric: {value!r}", line=line, source=source)


def _is_banner(line: str) -> bool:
    return line.startswith("Linux ")


# =============================================================================
# /proc/cpuinfo
# =============================================================================

CPUINFO_KEYS = {
    "processor": "processor",
    "vendor_id": "vendor_id",
    "model name": "model_name",
    "cpu MHz": "cpu_mhz",
    "core id": "core_id",
    "physical id": "physical_id",
    "flags": "flags",
    "bugs": "bugs",
}


def split_cpuinfo_blocks(content: str) -> List[str]:
    """Split /proc/cpuinfo into blank-line separated blocks."""
    return [block for block in re.split(r"\n\s*\n", content.strip()) if block.strip()]


def parse_cpuinfo_block(block: str) -> Optional[CpuCoreInfo]:
    """
    Parse one /proc/cpuinfo block into a CpuCoreInfo.

    Returns None for blocks that carry no ``processor`` key (the trailing
    machine-wide block some architectures print). Keys other than the ones in
    CPUINFO_KEYS are kept verbatim in ``features``.

    Raises:
        ParseError: If a line has no ``key: value`` shape or a numeric field
            does not parse.
    """
    source = "/proc/cpuinfo"
    values = {}
    features = {}

    for line in block.splitlines():
        if not line.strip():
            continue
        if ":" not in line:
            raise ParseError("cpuinfo line is not a 'key: value' pair", line=line, source=source)
        key, value = line.split(":", 1)
        key = key.strip()
        value = value.strip()
        if key in CPUINFO_KEYS:
            values[CPUINFO_KEYS[key]] = (value, line)
        else:
            features[key] = value

    if "processor" not in values:
        return None

    def _optional(name, convert):
        if name not in values:
            return None
        value, line = values[name]
        return convert(value, name, line, source)

    return CpuCoreInfo(
        processor=_optional("processor", _to_int),
        vendor_id=values.get("vendor_id", ("", ""))[0],
        model_name=values.get("model_name", ("", ""))[0],
        cpu_mhz=_optional("cpu_mhz", _to_float),
        core_id=_optional("core_id", _to_int),
        physical_id=_optional("physical_id", _to_int),
        flags=tuple(values.get("flags", ("", ""))[0].split()),
        bugs=tuple(values.get("bugs", ("", ""))[0].split()),
        features=features,
    )


def summarize_cores(cores: Sequence[CpuCoreInfo]) -> CpuInfoSample:
    """
    Aggregate per-processor blocks.

    total_threads is the block count and total_cores the number of distinct
    core ids. physical_cores counts distinct (physical id, core id) pairs,
    which differs from total_cores on multi-socket hosts. When no block has a
    core id (many VMs and ARM hosts) every thread is counted as a core.
    """
    cores = tuple(cores)
    core_ids = {c.core_id for c in cores if c.core_id is not None}
    socket_ids = {c.physical_id for c in cores if c.physical_id is not None}
    core_pairs = {(c.physical_id, c.core_id) for c in cores if c.core_id is not None}
    mhz = [c.cpu_mhz for c in cores if c.cpu_mhz is not None]

    first = cores[0]
    return CpuInfoSample(
        vendor_id=first.vendor_id,
        model_name=first.model_name,
        cores=cores,
        total_cores=len(core_ids) if core_ids else len(cores),
        physical_cores=len(core_pairs) if core_pairs else len(cores),
        total_threads=len(cores),
        num_sockets=len(socket_ids) if socket_ids else 1,
        cpu_mhz=sum(mhz) / len(mhz) if mhz else None,
        flags=first.flags,
        bugs=first.bugs,
    )


def parse_cpuinfo(content: str) -> List[CpuInfoSample]:
    cores = [core for core in (parse_cpuinfo_block(b) for b in split_cpuinfo_blocks(content)) if core]
    if not cores:
        return []
    return [summarize_cores(cores)]


# =============================================================================
# /proc/meminfo
# =============================================================================

MEMINFO_REQUIRED = ("MemTotal", "MemFree", "MemAvailable")

MEMINFO_OPTIONAL = {
    "Buffers": "buffers",
    "Cached": "cached",
    "Active": "active",
    "Inactive": "inactive",
    "SwapTotal": "swap_total",
    "SwapFree": "swap_free",
    "Dirty": "dirty",
    "Writeback": "writeback",
    "SReclaimable": "reclaimable",
}


def parse_meminfo_values(content: str) -> Dict[str, int]:
    """
    Parse /proc/meminfo into a dict of byte values.

    Values tagged ``kB`` are converted to bytes. Untagged values (page counts
    such as HugePages_Total) are returned as-is.

    Raises:
        ParseError: If a line is not ``Key: value [kB]`` or the value is not
            an integer.
    """
    source = "/proc/meminfo"
    result = {}
    for line in content.splitlines():
        if not line.strip():
            continue
        if ":" not in line:
            raise ParseError("meminfo line is not a 'Key: value' pair", line=line, source=source)
        key, value = line.split(":", 1)
        parts = value.split()
        if not parts or len(parts) > 2:
            raise ParseError(f"meminfo value for '{key.strip()}' is malformed", line=line, source=source)
        number = _to_int(parts[0], key.strip(), line, source)
        if len(parts) == 2:
            if parts[1].lower() != "kb":
                raise ParseError(f"Unknown meminfo unit {parts[1]!r}", line=line, source=source)
            number *= KIB
        result[key.strip()] = number
    return result


def parse_meminfo(content: str) -> List[MemInfoSample]:
    """
    Build one MemInfoSample from /proc/meminfo.

    used = MemTotal - MemAvailable and swap_used = SwapTotal - SwapFree.
    """
    values = parse_meminfo_values(content)
    if not values:
        return []

    missing = [key for key in MEMINFO_REQUIRED if key not in values]
    if missing:
        raise ParseError(f"meminfo is missing required key(s): {', '.join(missing)}", source="/proc/meminfo")

    optional = {name: values.get(key, 0) for key, name in MEMINFO_OPTIONAL.items()}
    return [MemInfoSample(
        total=values["MemTotal"],
        free=values["MemFree"],
        available=values["MemAvailable"],
        used=values["MemTotal"] - values["MemAvailable"],
        swap_used=optional["swap_total"] - optional["swap_free"],
        **optional,
    )]


def parse_min_free_kbytes(content: str, source: str = "/proc/sys/vm/min_free_kbytes") -> int:
    """Return vm.min_free_kbytes in bytes."""
    line = content.strip()
    return _to_int(line, "min_free_kbytes", line, source) * KIB


# =============================================================================
# /proc/loadavg
# =============================================================================

def parse_loadavg_line(line: str) -> LoadAvgSample:
    """
    Parse ``"0.52 0.58 0.59 2/245 12345"``.

    Raises:
        ParseError: If there are fewer than 5 fields, the task field is not
            ``running/total``, or any number fails to parse.
    """
    source = "/proc/loadavg"
    parts = line.split()
    if len(parts) < 5:
        raise ParseError(f"loadavg needs 5 fields, got {len(parts)}", line=line, source=source)

    tasks = parts[3].split("/")
    if len(tasks) != 2:
        raise ParseError("loadavg task field is not 'running/total'", line=line, source=source)

    return LoadAvgSample(
        load_1=_to_float(parts[0], "load_1", line, source),
        load_5=_to_float(parts[1], "load_5", line, source),
        load_15=_to_float(parts[2], "load_15", line, source),
        running_tasks=_to_int(tasks[0], "running_tasks", line, source),
        total_tasks=_to_int(tasks[1], "total_tasks", line, source),
        last_pid=_to_int(parts[4], "last_pid", line, source),
    )


def parse_loadavg(content: str) -> List[LoadAvgSample]:
    lines = [line for line in content.splitlines() if line.strip()]
    return [parse_loadavg_line(line) for line in lines[:1]]


# =============================================================================
# mpstat
# =============================================================================

MPSTAT_FIELDS = ("usr", "nice", "sys", "iowait", "irq", "soft", "steal", "guest", "gnice", "idle")
MPSTAT_MIN_TOKENS = len(MPSTAT_FIELDS) + 2  # time, cpu id, then the value columns


def _is_mpstat_noise(line: str) -> bool:
    stripped = line.strip()
    if not stripped or _is_banner(stripped) or stripped.startswith("Average"):
        return True
    # Header rows: "12:00:00 PM  CPU    %usr   %nice ..."
    return "%usr" in stripped or "%idle" in stripped


def parse_mpstat_line(line: str) -> MpstatSample:
    """
    Parse one mpstat data row.

    The trailing ten columns are usr, nice, sys, iowait, irq, soft, steal,
    guest, gnice and idle in that order; the column before them is the CPU
    id. The timestamp in front may be one token (24h) or two (AM/PM).

    Raises:
        ParseError: If the row has fewer than 12 tokens or a value column is
            not numeric.
    """
    source = "mpstat"
    tokens = line.split()
    if len(tokens) < MPSTAT_MIN_TOKENS:
        raise ParseError(
            f"mpstat row needs at least {MPSTAT_MIN_TOKENS} columns, got {len(tokens)}",
            line=line, source=source,
        )

    values = tokens[-len(MPSTAT_FIELDS):]
    parsed = {name: _to_float(value, name, line, source) for name, value in zip(MPSTAT_FIELDS, values)}
    return MpstatSample(cpu_id=tokens[-len(MPSTAT_FIELDS) - 1], **parsed)


def parse_mpstat(content: str) -> List[MpstatSample]:
    return [parse_mpstat_line(line) for line in content.splitlines() if not _is_mpstat_noise(line)]


# =============================================================================
# vmstat
# =============================================================================

VMSTAT_FIELDS = (
    "procs_running", "procs_blocked",
    "swap_used", "mem_free", "mem_buffer", "mem_cache",
    "swap_in", "swap_out",
    "blocks_in", "blocks_out",
    "interrupts", "context_switches",
    "cpu_user", "cpu_system", "cpu_idle", "cpu_iowait",
)


def _is_vmstat_noise(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return True
    first = stripped.split()[0]
    # "procs ---memory--- ..." group header and " r  b   swpd ..." column header
    return first == "procs" or first == "r"


def parse_vmstat_line(line: str) -> VmstatSample:
    """
    Parse one vmstat data row.

    Columns: r b swpd free buff cache si so bi bo in cs us sy id wa [st [gu]].
    The steal column is optional; later columns are ignored.

    Raises:
        ParseError: If the row has fewer than 16 columns or any column is
            not an integer.
    """
    source = "vmstat"
    tokens = line.split()
    if len(tokens) < len(VMSTAT_FIELDS):
        raise ParseError(
            f"vmstat row needs at least {len(VMSTAT_FIELDS)} columns, got {len(tokens)}",
            line=line, source=source,
        )

    parsed = {name: _to_int(value, name, line, source) for name, value in zip(VMSTAT_FIELDS, tokens)}
    steal = None
    if len(tokens) > len(VMSTAT_FIELDS):
        steal = _to_int(tokens[len(VMSTAT_FIELDS)], "cpu_steal", line, source)
    return VmstatSample(cpu_steal=steal, **parsed)


def parse_vmstat(content: str) -> List[VmstatSample]:
    return [parse_vmstat_line(line) for line in content.splitlines() if not _is_vmstat_noise(line)]


# =============================================================================
# iostat -x
# =============================================================================

def _first_column(values: Dict[str, float], *names: str) -> Optional[float]:
    for name in names:
        if name in values:
            return values[name]
    return None


def _weighted(values: Dict[str, float], read_col: str, write_col: str) -> Optional[float]:
    if read_col not in values or write_col not in values:
        return None
    reads = values.get("r/s", 0.0)
    writes = values.get("w/s", 0.0)
    if reads + writes == 0:
        return 0.0
    return (reads * values[read_col] + writes * values[write_col]) / (reads + writes)


def iostat_record(device: str, values: Dict[str, float], line: str) -> IostatSample:
    """
    Map a header-keyed iostat row onto IostatSample.

    Both ``iostat -x`` layouts are accepted. sysstat 10/11 reports avgrq-sz
    (in 512-byte sectors), avgqu-sz and svctm. sysstat 12+ reports rareq-sz,
    wareq-sz (kB), aqu-sz and per-direction awaits. Request size is always
    reported in kB.
    """
    source = "iostat"

    tps = _first_column(values, "tps")
    if tps is None:
        if "r/s" not in values or "w/s" not in values:
            raise ParseError("iostat row has neither tps nor r/s and w/s", line=line, source=source)
        tps = values["r/s"] + values["w/s"] + values.get("d/s", 0.0)

    kb_read = _first_column(values, "rkB/s", "kB_read/s")
    if kb_read is None and "rMB/s" in values:
        kb_read = values["rMB/s"] * 1024
    kb_written = _first_column(values, "wkB/s", "kB_wrtn/s")
    if kb_written is None and "wMB/s" in values:
        kb_written = values["wMB/s"] * 1024
    if kb_read is None or kb_written is None:
        raise ParseError("iostat row has no read/write throughput columns", line=line, source=source)

    request_size = _first_column(values, "areq-sz")
    if request_size is None and "avgrq-sz" in values:
        request_size = values["avgrq-sz"] / 2
    if request_size is None:
        request_size = _weighted(values, "rareq-sz", "wareq-sz")

    queue_size = _first_column(values, "aqu-sz", "avgqu-sz")

    service_time = _first_column(values, "svctm", "await")
    if service_time is None:
        service_time = _weighted(values, "r_await", "w_await")

    utilization = _first_column(values, "%util")

    missing = [name for name, value in (("request size", request_size), ("queue size", queue_size),
                                        ("service time", service_time), ("%util", utilization))
               if value is None]
    if missing:
        raise ParseError(f"iostat row is missing column(s): {', '.join(missing)}", line=line, source=source)

    return IostatSample(
        device=device,
        tps=tps,
        kb_read_per_sec=kb_read,
        kb_written_per_sec=kb_written,
        avg_request_size=request_size,
        avg_queue_size=queue_size,
        avg_service_time_ms=service_time,
        utilization=utilization,
    )


def parse_iostat_reports(content: str) -> List[List[IostatSample]]:
    """
    Parse ``iostat -d -x`` output into one list of device records per report.

    Each ``Device`` header starts a new report and defines the column layout
    for the rows below it. ``avg-cpu`` sections (printed when ``-d`` is not
    given) are skipped up to the next blank line.

    Raises:
        ParseError: If a device row appears before any header, its column
            count differs from the header, or a value is not numeric.
    """
    source = "iostat"
    reports: List[List[IostatSample]] = []
    columns: Optional[List[str]] = None
    in_cpu_section = False

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            in_cpu_section = False
            continue
        if _is_banner(stripped):
            continue
        if stripped.startswith("avg-cpu"):
            in_cpu_section = True
            continue
        if in_cpu_section:
            continue
        if stripped.startswith("Device"):
            columns = stripped.split()[1:]
            reports.append([])
            continue

        if columns is None:
            raise ParseError("iostat device row appears before a 'Device' header", line=line, source=source)

        tokens = stripped.split()
        if len(tokens) != len(columns) + 1:
            raise ParseError(
                f"iostat row has {len(tokens) - 1} values for {len(columns)} columns",
                line=line, source=source,
            )
        values = {name: _to_float(value, name, line, source) for name, value in zip(columns, tokens[1:])}
        reports[-1].append(iostat_record(tokens[0], values, line))

    return [report for report in reports if report]


def parse_iostat(content: str) -> List[IostatSample]:
    return [record for report in parse_iostat_reports(content) for record in report]

