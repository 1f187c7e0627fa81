"""Realtime metrics model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class MetricsSample:
    """Point-in-time measurement of nginx load, shared read-only by subscribers."""

    timestamp: datetime
    active_connections: int = 0
    requests_per_second: float = 0.0
    cpu_usage_percent: float = 0.0
    memory_usage_percent: float = 0.0
    bandwidth_in_bytes_per_sec: int = 0
    bandwidth_out_bytes_per_sec: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "activeConnections": self.active_connections,
            "requestsPerSecond": self.requests_per_second,
            "cpuUsage": self.cpu_usage_percent,
            "memoryUsage": self.memory_usage_percent,
            "bandwidthIn": self.bandwidth_in_bytes_per_sec,
            "bandwidthOut": self.bandwidth_out_bytes_per_sec,
        }
