"""nginx-manager: site configuration, access-log analytics and live metrics for nginx."""

__version__ = "0.3.0"
