"""
Host telemetry: typed records, text parsers and sampling collectors.
"""

from sysperf.telemetry.collectors import (
    BackgroundSampler,
    CollectorConfig,
    COLLECTORS,
    get_collector,
)
from sysperf.telemetry.models import sample_from_dict, samples_to_dicts

__all__ = [
    'BackgroundSampler',
    'CollectorConfig',
    'COLLECTORS',
    'get_collector',
    'sample_from_dict',
    'samples_to_dicts',
]
