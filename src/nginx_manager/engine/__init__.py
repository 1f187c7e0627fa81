"""Engine package - Aggregation and live metrics distribution."""

from nginx_manager.engine.metrics_hub import AsyncSubscription, HubState, MetricsHub, Subscription
from nginx_manager.engine.traffic import TrafficAggregator

__all__ = [
    "AsyncSubscription",
    "HubState",
    "MetricsHub",
    "Subscription",
    "TrafficAggregator",
]
