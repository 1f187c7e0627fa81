"""Traffic aggregation over a trailing time window."""

import datetime
from typing import Callable, Iterable, Sequence

from nginx_manager.model.traffic import AccessLogEntry, TrafficStats

TOP_N = 10


class TrafficAggregator:
    """Turns access log entries into windowed TrafficStats.

    Counting goes through insertion-ordered dicts followed by a stable sort,
    so entries with equal counts keep the order in which they first appeared.
    """

    def __init__(self, top_n: int = TOP_N) -> None:
        self.top_n = top_n

    def aggregate(
        self,
        entries: Sequence[AccessLogEntry],
        window_minutes: int,
        now: datetime.datetime | None = None,
    ) -> TrafficStats:
        """Compute statistics for entries newer than ``now - window_minutes``.

        Raises:
            ValueError: If window_minutes is not positive.
        """
        if window_minutes <= 0:
            raise ValueError(f"window_minutes must be positive, got {window_minutes}")

        now = now or datetime.datetime.now(datetime.timezone.utc)
        cutoff = now - datetime.timedelta(minutes=window_minutes)
        recent = [entry for entry in entries if entry.timestamp > cutoff]

        stats = TrafficStats(window_minutes=window_minutes, total_requests=len(recent))
        if not recent:
            return stats

        stats.requests_per_minute = len(recent) / window_minutes
        stats.avg_response_time_ms = sum(e.response_time_ms for e in recent) / len(recent)
        stats.status_code_counts = _count(recent, lambda e: str(e.status_code))
        stats.top_paths = self._top(_count(recent, lambda e: e.path))
        stats.top_ips = self._top(_count(recent, lambda e: e.client_ip))
        return stats

    def _top(self, counts: dict[str, int]) -> list[tuple[str, int]]:
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return ranked[: self.top_n]


def _count(entries: Iterable[AccessLogEntry], key: Callable[[AccessLogEntry], str]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for entry in entries:
        k = key(entry)
        counts[k] = counts.get(k, 0) + 1
    return counts
