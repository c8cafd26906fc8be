"""
Configuration constants and loaders for sysperf.

Defaults live here as module constants. Environment variables may override a
few of them (see ``check_env``), and a YAML file passed with ``--config-file``
may override the benchmark and general settings at runtime.
"""

import datetime
import enum
import os

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Optional

import yaml

from sysperf.errors import ConfigurationError, ErrorCode


def check_env(setting, default_value=None):
    """
    Return a value from the environment if it exists, otherwise the default.

    Strings "true"/"false" (any case) are converted to booleans. Other values
    are cast to the type of the default when one is given.
    """
    value = os.environ.get(setting)
    if value is None:
        return default_value

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    if default_value is not None and not isinstance(default_value, (bool, str)):
        try:
            return type(default_value)(value)
        except (TypeError, ValueError):
            return default_value

    return value


def get_datetime_string():
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


DATETIME_STR = get_datetime_string()

SYSPERF_DEBUG = check_env("SYSPERF_DEBUG", False)

DEFAULT_BENCHMARK_DIR = check_env("SYSPERF_BENCHMARK_DIR", os.path.join(os.getcwd(), "benchmark"))
FIO_BIN = check_env("SYSPERF_FIO_BIN", "fio")

CPUINFO_PATH = "/proc/cpuinfo"
MEMINFO_PATH = "/proc/meminfo"
LOADAVG_PATH = "/proc/loadavg"
MIN_FREE_KBYTES_PATH = "/proc/sys/vm/min_free_kbytes"
MPSTAT_BIN = "mpstat"
VMSTAT_BIN = "vmstat"
IOSTAT_BIN = "iostat"

KIB = 1024


class EXIT_CODE(enum.IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    FAILURE = 1
    INVALID_ARGUMENTS = 2
    FILE_NOT_FOUND = 3
    CONFIG_ERROR = 4
    ENVIRONMENT_ERROR = 5
    TOOL_UNAVAILABLE = 6
    INTERRUPTED = 130

    def __str__(self):
        return f"{self.name} ({self.value})"


class IO_PATTERN(enum.Enum):
    """fio ``--rw`` access patterns."""
    READ = "read"
    WRITE = "write"
    RANDREAD = "randread"
    RANDWRITE = "randwrite"
    RANDRW = "randrw"
    RW = "rw"
    TRIM = "trim"
    RANDTRIM = "randtrim"

    @property
    def is_mixed(self) -> bool:
        return self in (IO_PATTERN.RANDRW, IO_PATTERN.RW)

    @property
    def is_random(self) -> bool:
        return self.value.startswith("rand")

    @classmethod
    def values(cls):
        return [p.value for p in cls]


class CATALOGS(enum.Enum):
    AI = "ai"
    TRADITIONAL = "traditional"
    ALL = "all"

    @classmethod
    def values(cls):
        return [c.value for c in cls]


class TELEMETRY_PHASE(enum.Enum):
    BEFORE = "before"
    DURING = "during"
    AFTER = "after"

    @classmethod
    def values(cls):
        return [p.value for p in cls]


class RUN_STATUS(enum.Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


BENCHMARK_TOOLS = ["fio"]
METRIC_SOURCES = ["cpuinfo", "meminfo", "loadavg", "mpstat", "vmstat", "iostat"]


@dataclass
class FioSettings:
    """Tuning values applied to every fio invocation in a matrix."""
    fio_bin: str = FIO_BIN
    ioengine: str = "io_uring"
    direct: bool = True
    size: str = "256G"
    numjobs: int = 16
    iodepth: int = 128
    runtime: int = 600
    random_block_size: str = "4k"
    sequential_block_size: str = "1M"
    job_name_suffix: str = "nvme"

    def __post_init__(self):
        for name in ("numjobs", "iodepth", "runtime"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(
                    f"fio setting '{name}' must be a positive integer",
                    parameter=f"fio.{name}",
                    expected="integer >= 1",
                    actual=value,
                )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SysPerfConfig:
    log_level: str = "INFO"
    benchmark_dir: str = DEFAULT_BENCHMARK_DIR
    results_dir: Optional[str] = None
    fio: FioSettings = field(default_factory=FioSettings)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


GENERAL_CONFIG_KEYS = ("log_level", "benchmark_dir", "results_dir")


def _check_keys(section: str, data: Dict[str, Any], allowed: List[str]):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in '{section}' section: {', '.join(unknown)}",
            parameter=section,
            expected=list(allowed),
            actual=unknown,
        )


def load_config_file(path: Optional[str], base: Optional[SysPerfConfig] = None) -> SysPerfConfig:
    """
    Load a YAML config file and apply it on top of ``base`` (or the defaults).

    Recognized sections are ``general`` and ``fio``. A missing file, malformed
    YAML and unknown keys all raise ConfigurationError.
    """
    config = base or SysPerfConfig()
    if not path:
        return config

    if not os.path.isfile(path):
        raise ConfigurationError(
            f"Config file not found: {path}",
            parameter="config_file",
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
        )

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Unable to parse config file: {path}",
            parameter="config_file",
            actual=str(e),
            code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Config file must contain a mapping at the top level",
            parameter="config_file",
            actual=type(data).__name__,
            code=ErrorCode.CONFIG_PARSE_ERROR,
        )

    _check_keys("<root>", data, ["general", "fio"])

    general = data.get("general") or {}
    _check_keys("general", general, list(GENERAL_CONFIG_KEYS))
    for key, value in general.items():
        setattr(config, key, value)

    fio_overrides = data.get("fio") or {}
    _check_keys("fio", fio_overrides, [f.name for f in fields(FioSettings)])
    if fio_overrides:
        merged = config.fio.to_dict()
        merged.update(fio_overrides)
        config.fio = FioSettings(**merged)

    return config
