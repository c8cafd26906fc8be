"""
Benchmark interface definitions for sysperf.

This module defines the abstract interface for workload-matrix benchmarks:
prepare the environment, confirm the external tool works, then run every
workload in a catalog.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class BenchmarkConfig:
    """Descriptive metadata for a benchmark implementation.

    Attributes:
        name: Human-readable name of the benchmark.
        tool: Name of the external tool the benchmark drives.
        tool_path: Executable to run; defaults to ``tool``.
        version_args: Arguments that make the tool print its version.
        install_hint: Shown when the tool is missing.
    """
    name: str
    tool: str
    tool_path: Optional[str] = None
    version_args: Tuple[str, ...] = ("--version",)
    install_hint: Optional[str] = None

    def __post_init__(self):
        if not self.tool_path:
            self.tool_path = self.tool


class BenchmarkInterface(ABC):
    """Abstract interface that all benchmarks must implement.

    ``validate`` and ``check_tool_available`` are fatal checks: they raise
    and nothing runs. ``run_all`` never raises for a single workload's
    failure; failures come back as entries in the returned outcome list.

    Example:
        class MyBenchmark(BenchmarkInterface):
            @property
            def config(self) -> BenchmarkConfig:
                return BenchmarkConfig(name="My Benchmark", tool="mytool")

            def validate(self):
                os.makedirs(self.scratch_dir, exist_ok=True)

            # ... implement the other abstract methods
    """

    @property
    @abstractmethod
    def config(self) -> BenchmarkConfig:
        """Return benchmark metadata."""
        pass

    @abstractmethod
    def validate(self) -> None:
        """Create scratch and result directories if missing.

        Raises:
            EnvironmentSetupError: If a directory cannot be created or written.
        """
        pass

    @abstractmethod
    def check_tool_available(self) -> str:
        """Run the tool's version check.

        Returns:
            The version string reported by the tool.

        Raises:
            ToolUnavailableError: If the executable is missing or the check
                exits non-zero.
        """
        pass

    @abstractmethod
    def run_all(self) -> List[Any]:
        """Run every workload in catalog order.

        Returns:
            One RunOutcome per catalog entry, in catalog order.
        """
        pass

    @abstractmethod
    def get_metadata(self) -> Dict[str, Any]:
        """Return the settings, catalog and outcomes of the matrix."""
        pass
