"""
Workload catalogs for the fio benchmark matrix.

A catalog is an ordered, immutable tuple of WorkloadConfig entries. Adding a
workload is a data change only; the runner iterates whatever list it is given.

Catalogs:
    AI_WORKLOADS: AI/ML access mixes (training, checkpoint, pipeline,
        feature ingest, inference). This is the default matrix.
    TRADITIONAL_WORKLOADS: Classic enterprise mixes (OLTP, VDI, warehouse,
        backup) plus pure random read/write baselines.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from sysperf.config import IO_PATTERN, CATALOGS
from sysperf.errors import ConfigurationError, ErrorCode


@dataclass(frozen=True)
class WorkloadConfig:
    """
    One named read/write mix to exercise.

    Attributes:
        name: Unique, filesystem-safe workload name.
        pattern: fio access pattern.
        read_percentage: Read share of a mixed pattern in [0, 100]. Must be
            None for pure read/write/trim patterns.
        description: Short human-readable label.
    """
    name: str
    pattern: IO_PATTERN
    read_percentage: Optional[int] = None
    description: str = ""

    def __post_init__(self):
        if isinstance(self.pattern, str):
            try:
                object.__setattr__(self, "pattern", IO_PATTERN(self.pattern))
            except ValueError:
                raise ConfigurationError(
                    f"Unknown I/O pattern for workload '{self.name}'",
                    parameter="pattern",
                    expected=IO_PATTERN.values(),
                    actual=self.pattern,
                )

        if not self.name or any(c in self.name for c in "/\\ \t\n"):
            raise ConfigurationError(
                "Workload names must be non-empty and contain no path separators or whitespace",
                parameter="name",
                actual=self.name,
            )

        if self.pattern.is_mixed:
            if self.read_percentage is None:
                raise ConfigurationError(
                    f"Workload '{self.name}' uses mixed pattern '{self.pattern.value}' without a read percentage",
                    parameter="read_percentage",
                    expected="integer in [0, 100]",
                    code=ErrorCode.CONFIG_MISSING_REQUIRED,
                )
            if (not isinstance(self.read_percentage, int) or isinstance(self.read_percentage, bool)
                    or not 0 <= self.read_percentage <= 100):
                raise ConfigurationError(
                    f"Workload '{self.name}' has an invalid read percentage",
                    parameter="read_percentage",
                    expected="integer in [0, 100]",
                    actual=self.read_percentage,
                )
        elif self.read_percentage is not None:
            raise ConfigurationError(
                f"Workload '{self.name}' uses pure pattern '{self.pattern.value}' but sets a read percentage",
                parameter="read_percentage",
                expected=None,
                actual=self.read_percentage,
                code=ErrorCode.CONFIG_INCOMPATIBLE,
            )

    @property
    def write_percentage(self) -> Optional[int]:
        if self.read_percentage is None:
            return None
        return 100 - self.read_percentage

    @property
    def mix_label(self) -> str:
        if self.read_percentage is None:
            return self.pattern.value
        return f"{self.read_percentage}% R / {self.write_percentage}% W"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["pattern"] = self.pattern.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkloadConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


AI_WORKLOADS: Tuple[WorkloadConfig, ...] = (
    WorkloadConfig("ai_train_95r_5w", IO_PATTERN.RANDRW, 95, "Training: read-heavy sample loading"),
    WorkloadConfig("ai_checkpoint_10r_90w", IO_PATTERN.RANDRW, 10, "Checkpoint burst"),
    WorkloadConfig("ai_pipeline_48r_52w", IO_PATTERN.RANDRW, 48, "End-to-end pipeline aggregate"),
    WorkloadConfig("ai_feature_ingest_20r_80w", IO_PATTERN.RANDRW, 20, "Feature store ingest"),
    WorkloadConfig("ai_inference_99r_1w", IO_PATTERN.RANDRW, 99, "Inference: model and embedding reads"),
)

TRADITIONAL_WORKLOADS: Tuple[WorkloadConfig, ...] = (
    WorkloadConfig("pure_read", IO_PATTERN.RANDREAD, None, "Random read baseline"),
    WorkloadConfig("pure_write", IO_PATTERN.RANDWRITE, None, "Random write baseline"),
    WorkloadConfig("mixed_75r_25w", IO_PATTERN.RANDRW, 75, "OLTP database"),
    WorkloadConfig("mixed_70r_30w", IO_PATTERN.RANDRW, 70, "Virtualized servers"),
    WorkloadConfig("mixed_65r_35w", IO_PATTERN.RANDRW, 65, "VDI"),
    WorkloadConfig("mixed_50r_50w", IO_PATTERN.RANDRW, 50, "Balanced mixed"),
    WorkloadConfig("mixed_25r_75w", IO_PATTERN.RANDRW, 25, "Write-heavy logging"),
    WorkloadConfig("seq_warehouse_95r_5w", IO_PATTERN.RW, 95, "Data warehouse scan"),
    WorkloadConfig("seq_backup_5r_95w", IO_PATTERN.RW, 5, "Backup stream"),
)


def validate_catalog(workloads: Iterable[WorkloadConfig]) -> Tuple[WorkloadConfig, ...]:
    """Return the workloads as a tuple, rejecting duplicate names."""
    catalog = tuple(workloads)
    seen = set()
    for workload in catalog:
        if workload.name in seen:
            raise ConfigurationError(
                f"Duplicate workload name in catalog: {workload.name}",
                parameter="name",
                actual=workload.name,
                code=ErrorCode.CONFIG_INCOMPATIBLE,
            )
        seen.add(workload.name)
    return catalog


def list_workloads(catalog: Union[str, CATALOGS] = CATALOGS.AI) -> Tuple[WorkloadConfig, ...]:
    """
    Return the ordered workload list for a named catalog.

    Every call returns the same entries in the same order.
    """
    if isinstance(catalog, str):
        try:
            catalog = CATALOGS(catalog)
        except ValueError:
            raise ConfigurationError(
                f"Unknown workload catalog: {catalog}",
                parameter="catalog",
                expected=CATALOGS.values(),
                actual=catalog,
            )

    if catalog == CATALOGS.AI:
        return validate_catalog(AI_WORKLOADS)
    if catalog == CATALOGS.TRADITIONAL:
        return validate_catalog(TRADITIONAL_WORKLOADS)
    return validate_catalog(AI_WORKLOADS + TRADITIONAL_WORKLOADS)
