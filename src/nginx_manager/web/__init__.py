"""Web package - FastAPI surface over the core components."""

from nginx_manager.web.app import create_app, run_server

__all__ = ["create_app", "run_server"]
