"""Traffic model dataclasses - Parsed access-log entries and windowed statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class AccessLogEntry:
    """One parsed line of the nginx access log."""

    timestamp: datetime  # timezone aware
    client_ip: str
    method: str
    path: str
    status_code: int
    response_time_ms: float
    user_agent: str
    bytes_sent: int = 0
    referrer: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "ip": self.client_ip,
            "method": self.method,
            "path": self.path,
            "status": self.status_code,
            "responseTime": self.response_time_ms,
            "userAgent": self.user_agent,
            "bytesSent": self.bytes_sent,
            "referrer": self.referrer,
        }


@dataclass
class TrafficStats:
    """Summary of the access log over a trailing window."""

    window_minutes: int
    requests_per_minute: float = 0.0
    avg_response_time_ms: float = 0.0
    total_requests: int = 0
    status_code_counts: dict[str, int] = field(default_factory=dict)
    top_paths: list[tuple[str, int]] = field(default_factory=list)
    top_ips: list[tuple[str, int]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "windowMinutes": self.window_minutes,
            "requestsPerMinute": self.requests_per_minute,
            "avgResponseTime": self.avg_response_time_ms,
            "totalRequests": self.total_requests,
            "statusCodes": dict(self.status_code_counts),
            "topPaths": [{"path": path, "count": count} for path, count in self.top_paths],
            "topIps": [{"ip": ip, "count": count} for ip, count in self.top_ips],
        }
