"""Pytest configuration and fixtures for nginx-manager tests."""

from unittest.mock import MagicMock

import pytest

from nginx_manager.actions.control import CertbotIssuer, NginxControl
from nginx_manager.config import Settings
from nginx_manager.connector.local import CommandResult, LocalConnector
from nginx_manager.storage.sites import SiteStore


@pytest.fixture
def mock_connector():
    """Create a mock local connector where every command succeeds."""
    connector = MagicMock(spec=LocalConnector)
    connector.run.return_value = CommandResult(
        command="test",
        stdout="",
        stderr="",
        exit_code=0,
    )
    connector.read_file.return_value = None
    return connector


@pytest.fixture
def nginx_settings(tmp_path):
    """Settings pointing at an empty nginx layout under tmp_path."""
    settings = Settings(config_dir=tmp_path / "nginx", log_dir=tmp_path / "log")
    for directory in (settings.sites_available, settings.sites_enabled, settings.conf_d, settings.log_dir):
        directory.mkdir(parents=True)
    return settings


@pytest.fixture
def mock_control():
    return MagicMock(spec=NginxControl)


@pytest.fixture
def mock_issuer():
    return MagicMock(spec=CertbotIssuer)


@pytest.fixture
def site_store(nginx_settings, mock_control, mock_issuer):
    """SiteStore on the tmp layout with reload and certbot mocked."""
    return SiteStore(nginx_settings, mock_control, mock_issuer)


@pytest.fixture
def sample_site_conf():
    """A typical reverse-proxy site file."""
    return """# managed site
server {
    listen 80;
    server_name app.example.com;
    root /var/www/app;

    location / {
        proxy_pass http://127.0.0.1:3000;
        proxy_set_header Host $host;
    }

    location /static {
        alias /var/www/app/static;
    }
}
"""


@pytest.fixture
def sample_ssl_conf():
    return """server {
    listen 443 ssl;
    server_name secure.example.com;
    ssl_certificate /etc/letsencrypt/live/secure.example.com/fullchain.pem;
    ssl_certificate_key /etc/letsencrypt/live/secure.example.com/privkey.pem;
    ssl_protocols TLSv1.2 TLSv1.3 TLSv1.2;
}
"""


def log_line(
    ip="203.0.113.5",
    time="10/Oct/2023:13:55:36 +0000",
    method="GET",
    path="/index.html",
    status=200,
    response_time="0.012",
):
    """Build one access log line in the combined + $request_time format."""
    return (
        f'{ip} - - [{time}] "{method} {path} HTTP/1.1" {status} 512 '
        f'"-" "curl/7.68.0" {response_time}'
    )
