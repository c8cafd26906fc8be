"""
Test fixtures package for sysperf tests.

This package provides reusable mock classes and sample data
for testing parsers, collectors and the benchmark runner.
"""

from tests.fixtures.mock_logger import MockLogger, create_mock_logger
from tests.fixtures.mock_executor import MockCommandExecutor
from tests.fixtures.sample_data import (
    SAMPLE_MEMINFO,
    SAMPLE_MEMINFO_MINIMAL,
    SAMPLE_CPUINFO,
    SAMPLE_CPUINFO_TWO_SOCKETS,
    SAMPLE_CPUINFO_ARM,
    SAMPLE_LOADAVG,
    SAMPLE_MPSTAT,
    SAMPLE_MPSTAT_24H,
    SAMPLE_VMSTAT,
    SAMPLE_VMSTAT_GU,
    SAMPLE_VMSTAT_NO_STEAL,
    SAMPLE_IOSTAT_OLD,
    SAMPLE_IOSTAT_NEW,
    SAMPLE_IOSTAT_WITH_CPU,
    SAMPLE_FIO_RESULT,
    SAMPLE_FIO_OUTPUT,
)

__all__ = [
    # Mock classes
    'MockLogger',
    'create_mock_logger',
    'MockCommandExecutor',
    # Sample data
    'SAMPLE_MEMINFO',
    'SAMPLE_MEMINFO_MINIMAL',
    'SAMPLE_CPUINFO',
    'SAMPLE_CPUINFO_TWO_SOCKETS',
    'SAMPLE_CPUINFO_ARM',
    'SAMPLE_LOADAVG',
    'SAMPLE_MPSTAT',
    'SAMPLE_MPSTAT_24H',
    'SAMPLE_VMSTAT',
    'SAMPLE_VMSTAT_GU',
    'SAMPLE_VMSTAT_NO_STEAL',
    'SAMPLE_IOSTAT_OLD',
    'SAMPLE_IOSTAT_NEW',
    'SAMPLE_IOSTAT_WITH_CPU',
    'SAMPLE_FIO_RESULT',
    'SAMPLE_FIO_OUTPUT',
]
