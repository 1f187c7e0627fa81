"""Access log API routes.

Endpoints:
    GET /api/nginx/logs   - Newest access log entries
    GET /api/nginx/stats  - Traffic statistics over a trailing window
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from nginx_manager.scanner.access_log import STATS_READ_LIMIT
from nginx_manager.web.services import Services, get_services

router = APIRouter()


@router.get("/nginx/logs")
def get_logs(
    limit: Optional[int] = Query(None, ge=1, le=STATS_READ_LIMIT, description="Maximum entries (default: log_read_limit)"),
    services: Services = Depends(get_services),
) -> list:
    """Return parsed access log entries, newest first."""
    return [entry.to_dict() for entry in services.reader.read(limit)]


@router.get("/nginx/stats")
def get_stats(
    minutes: int = Query(60, ge=1, le=7 * 24 * 60, description="Window size in minutes"),
    services: Services = Depends(get_services),
) -> dict:
    """Return traffic statistics for the last ``minutes``."""
    return services.reader.read_stats(minutes).to_dict()
