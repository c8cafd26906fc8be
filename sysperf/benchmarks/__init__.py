from sysperf.benchmarks.base import Benchmark
from sysperf.benchmarks.fio import FioBenchmark

__all__ = ['Benchmark', 'FioBenchmark']
