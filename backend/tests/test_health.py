"""Basic sanity tests for the threatscope backend."""

import sys
from pathlib import Path

from fastapi.testclient import TestClient

from conftest import FakeProbe, make_settings
from threatscope.container import ServiceContainer
from threatscope.main import create_app


class TestBasic:
    """Basic tests that don't need running services."""

    def test_python_version(self) -> None:
        """Verify Python version is 3.11+."""
        assert sys.version_info >= (3, 11)

    def test_settings_defaults(self, tmp_path: Path) -> None:
        settings = make_settings(tmp_path)
        assert settings.api_prefix == "/api"
        assert settings.tor_proxy_url == "socks5://tor:9050"
        assert settings.require_tor


def test_health_endpoint(tmp_path: Path) -> None:
    container = ServiceContainer.from_settings(make_settings(tmp_path), probe=FakeProbe())
    with TestClient(create_app(container)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "app": container.settings.app_name}
