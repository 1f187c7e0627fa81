"""Scanner package - Data collection from the nginx host.

Scanners read files and run probe commands to collect raw data.
Parsing is handled by the parser package.
"""

from nginx_manager.scanner.access_log import STATS_READ_LIMIT, AccessLogReader
from nginx_manager.scanner.metrics import (
    InterfaceProbe,
    MetricsSampler,
    ProbeError,
    ProcessProbe,
    StatusProbe,
)

__all__ = [
    "AccessLogReader",
    "InterfaceProbe",
    "MetricsSampler",
    "ProbeError",
    "ProcessProbe",
    "STATS_READ_LIMIT",
    "StatusProbe",
]
