"""
Telemetry collector interface definitions for sysperf.

A collector owns one data source (a pseudo-file or an external command),
reads raw text from it on each sampling tick and hands the text to a parser.
"""

import threading

from abc import ABC, abstractmethod
from typing import List, Optional


class TelemetryCollectorInterface(ABC):
    """Interface for telemetry collectors.

    Implementations must:
    - Check the source before any parsing and raise SourceUnavailableError
      if it cannot be used at all
    - Raise ParseError for a malformed data row rather than substituting a
      placeholder value
    - Raise EmptyResultError when a tick yields no valid records

    Example:
        class UptimeCollector(TelemetryCollectorInterface):
            name = "uptime"

            def is_available(self):
                return os.path.exists("/proc/uptime")

            def collect(self, cancel_event=None):
                ...
    """

    name: str = "collector"

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether the source exists on this host.

        Returns:
            True if collection can be attempted.
        """
        pass

    @abstractmethod
    def check_source(self) -> None:
        """Raise SourceUnavailableError if the source cannot be used."""
        pass

    @abstractmethod
    def collect(self, cancel_event: Optional[threading.Event] = None,
                sink: Optional[List] = None) -> List:
        """Sample the source according to the collector's configuration.

        Args:
            cancel_event: Set by the caller to stop an unbounded collection.
                Checked once per tick, never in the middle of one.
            sink: Optional list that receives each tick's records as soon as
                the tick completes.

        Returns:
            List of TelemetrySample records from all ticks.
        """
        pass
