"""Access log line parser.

Expected layout (nginx "combined" plus $request_time):

    203.0.113.5 - - [10/Oct/2023:13:55:36 +0000] "GET /index.html HTTP/1.1" 200 512 "-" "curl/7.68.0" 0.012

The log is written by nginx while we read it, so half-written lines and
format drift are normal. Anything that does not match gives None.
"""

import datetime
import re

from nginx_manager.model.traffic import AccessLogEntry

LOG_LINE_RE = re.compile(
    r"^(?P<ip>\S+) \S+ \S+ \[(?P<time>[^\]]+)\] "
    r'"(?P<method>\S+) (?P<path>[^"\s]+)(?: [^"]*)?" '
    r"(?P<status>\d{3}) (?P<bytes>\d+|-) "
    r'"(?P<referrer>[^"]*)" "(?P<agent>[^"]*)" '
    r"(?P<response_time>\d+(?:\.\d+)?)$"
)

_TIME_FORMATS = ("%d/%b/%Y:%H:%M:%S %z", "%d/%b/%Y:%H:%M:%S")


class AccessLogParser:
    """Parser for single access log lines."""

    def parse(self, line: str) -> AccessLogEntry | None:
        """Parse one log line.

        Returns:
            AccessLogEntry, or None if the line does not have the expected shape.
        """
        match = LOG_LINE_RE.match(line.strip())
        if not match:
            return None

        timestamp = self.parse_timestamp(match.group("time"))
        if timestamp is None:
            return None

        bytes_raw = match.group("bytes")
        try:
            return AccessLogEntry(
                timestamp=timestamp,
                client_ip=match.group("ip"),
                method=match.group("method"),
                path=match.group("path"),
                status_code=int(match.group("status")),
                response_time_ms=float(match.group("response_time")),
                user_agent=match.group("agent"),
                bytes_sent=int(bytes_raw) if bytes_raw.isdigit() else 0,
                referrer=match.group("referrer"),
            )
        except ValueError:
            return None

    @staticmethod
    def parse_timestamp(value: str) -> datetime.datetime | None:
        """Convert an nginx $time_local value to an aware datetime (UTC if no zone)."""
        for fmt in _TIME_FORMATS:
            try:
                parsed = datetime.datetime.strptime(value.strip(), fmt)
            except ValueError:
                continue
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=datetime.timezone.utc)
            return parsed
        return None
