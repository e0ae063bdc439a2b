"""Global test fixtures - keep tests offline and environment-independent."""
import sys
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Drop identity overrides from the developer's shell or .env."""
    monkeypatch.delenv("RAIN_ALERT_USER_AGENT", raising=False)
    monkeypatch.delenv("RAIN_ALERT_CONTACT_EMAIL", raising=False)
    monkeypatch.setattr("rain_alert.alert_engine.load_dotenv", lambda *a, **kw: False)
    yield


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    """Any real HTTP request from a test is a bug."""
    def _refuse(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Network access in tests: {method} {url}")

    monkeypatch.setattr(requests.Session, "request", _refuse)
    yield
