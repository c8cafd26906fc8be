"""
Interface definitions for sysperf.

This package defines the abstract interfaces (contracts) that components
implement. The runner and the CLI depend only on these interfaces; concrete
implementations are passed in at construction time.

Available Interfaces:

Benchmark Interfaces:
    - BenchmarkInterface: Environment checks, tool version check and matrix execution
    - BenchmarkConfig: Descriptive metadata for a benchmark implementation

Collector Interfaces:
    - TelemetryCollectorInterface: Read a telemetry source and parse it into records

Storage Interfaces:
    - KeyValueStoreInterface: get/set/delete persistence for run summaries
"""

from sysperf.interfaces.benchmark import (
    BenchmarkInterface,
    BenchmarkConfig,
)

from sysperf.interfaces.collector import (
    TelemetryCollectorInterface,
)

from sysperf.interfaces.storage import (
    KeyValueStoreInterface,
)

__all__ = [
    'BenchmarkInterface',
    'BenchmarkConfig',
    'TelemetryCollectorInterface',
    'KeyValueStoreInterface',
]
