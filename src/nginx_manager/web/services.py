"""Service wiring shared by the web routes.

One Services object lives on ``app.state.services`` for the lifetime of the
application; routes never build their own stores or hubs.
"""

from dataclasses import dataclass

from fastapi import Request, WebSocket

from nginx_manager.config import Settings
from nginx_manager.engine.metrics_hub import MetricsHub
from nginx_manager.scanner.access_log import AccessLogReader
from nginx_manager.scanner.metrics import MetricsSampler
from nginx_manager.storage.sites import SiteStore


@dataclass
class Services:
    """Core components used by the HTTP layer."""

    settings: Settings
    store: SiteStore
    reader: AccessLogReader
    hub: MetricsHub


def build_services(settings: Settings) -> Services:
    return Services(
        settings=settings,
        store=SiteStore.from_settings(settings),
        reader=AccessLogReader(settings.access_log, default_limit=settings.log_read_limit),
        hub=MetricsHub(MetricsSampler.from_settings(settings), interval=settings.metrics_interval),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_ws_services(websocket: WebSocket) -> Services:
    return websocket.app.state.services
