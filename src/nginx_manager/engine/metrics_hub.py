"""Metrics hub - Fan-out of live metrics samples to subscribers.

The hub owns exactly one sampling loop, and only while somebody listens:

    IDLE   --first subscribe-->    ACTIVE   (sampling thread started)
    ACTIVE --last unsubscribe-->   IDLE     (sampling thread told to stop)

Subscribers are called on the sampling thread, in registration order. A
failing subscriber is logged and skipped; it never stops delivery to the
others or the loop itself.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Callable

from nginx_manager.model.metrics import MetricsSample
from nginx_manager.scanner.metrics import MetricsSampler

logger = logging.getLogger(__name__)

MetricsCallback = Callable[[MetricsSample], None]


class HubState(str, Enum):
    """Sampling state of a hub."""

    IDLE = "idle"
    ACTIVE = "active"


class Subscription:
    """Handle returned by MetricsHub.subscribe(); calling it unsubscribes."""

    def __init__(self, hub: "MetricsHub", callback: MetricsCallback) -> None:
        self._hub = hub
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        self._hub.unsubscribe(self)

    def __call__(self) -> None:
        self.unsubscribe()


class MetricsHub:
    """Subscription registry driving a single MetricsSampler loop.

    Thread-safe: subscribe/unsubscribe may be called from any thread,
    including from inside a subscriber callback.
    """

    def __init__(self, sampler: MetricsSampler, interval: float = 1.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.sampler = sampler
        self.interval = interval
        self._lock = threading.Lock()
        self._subscribers: list[Subscription] = []
        self._thread: threading.Thread | None = None
        self._stop: threading.Event | None = None
        # Loop that was told to stop but may still be finishing a tick
        self._retired: threading.Thread | None = None

    @property
    def state(self) -> HubState:
        with self._lock:
            return HubState.ACTIVE if self._thread is not None else HubState.IDLE

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: MetricsCallback) -> Subscription:
        """Register a callback; starts sampling for the first subscriber."""
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(subscription)
            if self._thread is None:
                self._start_locked()
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; stops sampling when none are left.

        Unknown or already removed subscriptions are ignored.
        """
        with self._lock:
            subscription.active = False
            if subscription not in self._subscribers:
                return
            self._subscribers.remove(subscription)
            if not self._subscribers:
                self._stop_locked()

    def close(self, timeout: float | None = 5.0) -> None:
        """Drop all subscribers and wait for the sampling loop to finish."""
        with self._lock:
            for subscription in self._subscribers:
                subscription.active = False
            self._subscribers.clear()
            self._stop_locked()
            retired = self._retired
        if retired is not None and retired is not threading.current_thread():
            retired.join(timeout)

    def _start_locked(self) -> None:
        stop = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(stop, self._retired),
            name="metrics-hub",
            daemon=True,
        )
        self._stop = stop
        self._thread = thread
        thread.start()
        logger.debug("Metrics sampling started (interval=%ss)", self.interval)

    def _stop_locked(self) -> None:
        if self._thread is None:
            return
        if self._stop is not None:
            self._stop.set()
        logger.debug("Metrics sampling stopped")
        self._retired = self._thread
        self._thread = None
        self._stop = None

    def _run(self, stop: threading.Event, previous: threading.Thread | None) -> None:
        # Never sample concurrently with a loop that is still winding down
        if previous is not None:
            previous.join()

        while not stop.wait(self.interval):
            try:
                sample = self.sampler.sample()
            except Exception:
                logger.exception("Metrics sampling failed, skipping tick")
                continue

            with self._lock:
                if stop.is_set():
                    break
                subscribers = list(self._subscribers)

            for subscription in subscribers:
                if not subscription.active:
                    continue
                try:
                    subscription.callback(sample)
                except Exception:
                    logger.exception("Metrics subscriber %r failed", subscription.callback)


class AsyncSubscription:
    """Bridges hub samples into an asyncio.Queue for async consumers.

    Example:
        >>> async with AsyncSubscription(hub) as samples:
        ...     sample = await samples.get()
    """

    def __init__(self, hub: MetricsHub, maxsize: int = 60) -> None:
        self.hub = hub
        self.queue: asyncio.Queue[MetricsSample] = asyncio.Queue(maxsize=maxsize)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscription: Subscription | None = None

    async def __aenter__(self) -> asyncio.Queue:
        self._loop = asyncio.get_running_loop()
        self._subscription = self.hub.subscribe(self._deliver)
        return self.queue

    async def __aexit__(self, *args: object) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _deliver(self, sample: MetricsSample) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._put, sample)

    def _put(self, sample: MetricsSample) -> None:
        if self.queue.full():
            # Slow consumer: drop the oldest sample
            self.queue.get_nowait()
        self.queue.put_nowait(sample)
