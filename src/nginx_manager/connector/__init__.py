"""Connector package - Access to the local host running nginx."""

from nginx_manager.connector.local import CommandResult, LocalConnector

__all__ = ["CommandResult", "LocalConnector"]
