"""Model package - Core data structures for nginx-manager."""

from nginx_manager.model.metrics import MetricsSample
from nginx_manager.model.site import LocationRule, SiteConfig, SslInfo, StorageClass
from nginx_manager.model.traffic import AccessLogEntry, TrafficStats

__all__ = [
    "AccessLogEntry",
    "LocationRule",
    "MetricsSample",
    "SiteConfig",
    "SslInfo",
    "StorageClass",
    "TrafficStats",
]
