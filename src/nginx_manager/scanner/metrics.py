"""Metrics Scanner - Collects live nginx load figures.

One sample combines:
- active connections and request rate from the stub_status page
- CPU% and memory% of nginx processes from the process table
- inbound/outbound bandwidth from network interface counters

Every probe may fail on its own (status page disabled, interface renamed,
ps missing). A failed probe contributes zeros; the sample is still produced.
"""

import datetime
import logging
import re
import time
from typing import Callable

from nginx_manager.config import Settings
from nginx_manager.connector.local import LocalConnector
from nginx_manager.model.metrics import MetricsSample

logger = logging.getLogger(__name__)

_ACTIVE_RE = re.compile(r"Active connections:\s*(\d+)")
# "server accepts handled requests" followed by the three counters
_COUNTERS_RE = re.compile(r"requests\s*\n\s*(\d+)\s+(\d+)\s+(\d+)")


class ProbeError(Exception):
    """A probe could not produce a value."""


class StatusProbe:
    """Reads the nginx stub_status page."""

    def __init__(self, connector: LocalConnector, url: str) -> None:
        self.connector = connector
        self.url = url

    def read(self) -> tuple[int, int]:
        """Return (active_connections, total_requests)."""
        result = self.connector.run(["curl", "-s", "--max-time", "2", self.url], timeout=5)
        if not result.success:
            raise ProbeError(f"status page unavailable: {result.stderr.strip()}")

        active = _ACTIVE_RE.search(result.stdout)
        counters = _COUNTERS_RE.search(result.stdout)
        if not active or not counters:
            raise ProbeError("unexpected stub_status output")
        return int(active.group(1)), int(counters.group(3))


class ProcessProbe:
    """Reads CPU and memory usage of all processes with a given name."""

    def __init__(self, connector: LocalConnector, process_name: str = "nginx") -> None:
        self.connector = connector
        self.process_name = process_name

    def cpu_percent(self) -> float:
        return self._sum_column("%cpu")

    def memory_percent(self) -> float:
        return self._sum_column("%mem")

    def _sum_column(self, column: str) -> float:
        result = self.connector.run(["ps", "-C", self.process_name, "-o", f"{column}="], timeout=5)
        if not result.success:
            raise ProbeError(f"no {self.process_name} processes")
        try:
            return round(sum(float(v) for v in result.stdout.split()), 2)
        except ValueError as e:
            raise ProbeError(f"unexpected ps output: {e}") from e


class InterfaceProbe:
    """Reads byte counters of a network interface from /proc/net/dev."""

    def __init__(
        self,
        connector: LocalConnector,
        interface: str = "eth0",
        proc_path: str = "/proc/net/dev",
    ) -> None:
        self.connector = connector
        self.interface = interface
        self.proc_path = proc_path

    def read(self) -> tuple[int, int]:
        """Return cumulative (rx_bytes, tx_bytes)."""
        content = self.connector.read_file(self.proc_path)
        if content is None:
            raise ProbeError(f"{self.proc_path} not readable")

        for line in content.splitlines():
            name, sep, counters = line.partition(":")
            if not sep or name.strip() != self.interface:
                continue
            parts = counters.split()
            if len(parts) < 9 or not (parts[0].isdigit() and parts[8].isdigit()):
                raise ProbeError(f"unexpected counters for {self.interface}")
            return int(parts[0]), int(parts[8])

        raise ProbeError(f"interface {self.interface} not found")


class MetricsSampler:
    """Produces MetricsSample objects from the three probes.

    Request rate and bandwidth are derived from counter deltas between two
    consecutive samples, so the first sample reports zero for them.
    """

    def __init__(
        self,
        status_probe: StatusProbe,
        process_probe: ProcessProbe,
        interface_probe: InterfaceProbe,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.status_probe = status_probe
        self.process_probe = process_probe
        self.interface_probe = interface_probe
        self._clock = clock
        self._last_time: float | None = None
        self._last_requests: int | None = None
        self._last_bytes: tuple[int, int] | None = None

    @classmethod
    def from_settings(cls, settings: Settings, connector: LocalConnector | None = None) -> "MetricsSampler":
        connector = connector or LocalConnector(timeout=settings.command_timeout)
        return cls(
            StatusProbe(connector, settings.status_url),
            ProcessProbe(connector, settings.process_name),
            InterfaceProbe(connector, settings.network_interface),
        )

    def sample(self) -> MetricsSample:
        """Take one sample. Never raises because of a probe failure."""
        now = self._clock()
        elapsed = now - self._last_time if self._last_time is not None else 0.0
        self._last_time = now

        active_connections = 0
        requests_per_second = 0.0
        status = self._probe("status", self.status_probe.read)
        if status is not None:
            active_connections, total_requests = status
            if self._last_requests is not None and elapsed > 0 and total_requests >= self._last_requests:
                requests_per_second = round((total_requests - self._last_requests) / elapsed, 2)
            self._last_requests = total_requests
        else:
            self._last_requests = None

        bandwidth_in = bandwidth_out = 0
        counters = self._probe("interface", self.interface_probe.read)
        if counters is not None:
            if self._last_bytes is not None and elapsed > 0:
                rx_delta = counters[0] - self._last_bytes[0]
                tx_delta = counters[1] - self._last_bytes[1]
                if rx_delta >= 0 and tx_delta >= 0:
                    bandwidth_in = int(rx_delta / elapsed)
                    bandwidth_out = int(tx_delta / elapsed)
            self._last_bytes = counters
        else:
            self._last_bytes = None

        return MetricsSample(
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            active_connections=active_connections,
            requests_per_second=requests_per_second,
            cpu_usage_percent=self._probe("cpu", self.process_probe.cpu_percent) or 0.0,
            memory_usage_percent=self._probe("memory", self.process_probe.memory_percent) or 0.0,
            bandwidth_in_bytes_per_sec=bandwidth_in,
            bandwidth_out_bytes_per_sec=bandwidth_out,
        )

    @staticmethod
    def _probe(name: str, read: Callable):
        try:
            return read()
        except Exception as e:
            logger.debug("Metrics probe %s failed: %s", name, e)
            return None

