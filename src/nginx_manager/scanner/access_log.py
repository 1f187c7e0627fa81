"""Access Log Scanner - Reads recent entries from the nginx access log.

The log file belongs to nginx: it may be missing, rotated, or mid-write.
None of that is an error for analytics - the reader returns what it can.
"""

import logging
from collections import deque
from pathlib import Path

from nginx_manager.engine.traffic import TrafficAggregator
from nginx_manager.model.traffic import AccessLogEntry, TrafficStats
from nginx_manager.parser.access_log import AccessLogParser

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 1000
STATS_READ_LIMIT = 10000


class AccessLogReader:
    """Reader for the append-only access log."""

    def __init__(
        self,
        log_path: Path | str,
        parser: AccessLogParser | None = None,
        aggregator: TrafficAggregator | None = None,
        default_limit: int = DEFAULT_READ_LIMIT,
    ) -> None:
        self.log_path = Path(log_path)
        self.parser = parser or AccessLogParser()
        self.aggregator = aggregator or TrafficAggregator()
        self.default_limit = default_limit

    def read(self, limit: int | None = None) -> list[AccessLogEntry]:
        """Read the newest parseable entries.

        Args:
            limit: Maximum number of entries to return, default_limit if None.

        Returns:
            Entries newest first. Malformed lines are skipped.
        """
        if limit is None:
            limit = self.default_limit
        if limit <= 0:
            return []

        recent: deque[AccessLogEntry] = deque(maxlen=limit)
        skipped = 0
        try:
            with open(self.log_path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    if not line.strip():
                        continue
                    entry = self.parser.parse(line)
                    if entry is None:
                        skipped += 1
                        continue
                    recent.append(entry)
        except OSError as e:
            logger.warning("Failed to read access log %s: %s", self.log_path, e)
            return []

        if skipped:
            logger.debug("Skipped %d malformed lines in %s", skipped, self.log_path)

        entries = list(recent)
        entries.reverse()
        return entries

    def read_stats(self, window_minutes: int = 60) -> TrafficStats:
        """Traffic statistics over the last ``window_minutes``."""
        return self.aggregator.aggregate(self.read(STATS_READ_LIMIT), window_minutes)
