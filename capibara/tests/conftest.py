"""
Shared fixtures: isolated data directory, configured credentials, API client.
"""
# Configure the environment BEFORE importing the app (settings are read at import time)
import os

os.environ["API_USERNAME"] = "admin"
os.environ["API_PASSWORD"] = "test-password"
os.environ["JWT_SECRET"] = "test-secret-for-capibara-session-tokens"
os.environ["AUTH_ENABLED"] = "true"
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from capibara.core import config
from capibara.core.config import reload_settings
from capibara.core.keys import reset_registrar
from capibara.api.rate_limiting import rate_limiter


@pytest.fixture
def data_root(tmp_path, monkeypatch):
    """Point all persisted files at a fresh temporary directory."""
    monkeypatch.setenv("DATA_ROOT", str(tmp_path))
    reload_settings()
    reset_registrar()
    rate_limiter.reset()
    yield tmp_path
    # Next get_settings() re-reads the (restored) environment
    config._settings = None
    reset_registrar()


@pytest.fixture
def keys_file(data_root):
    """Location of authorized_keys under the temporary data root."""
    return data_root / "Files" / "authorized_keys"


@pytest.fixture
def backup_log_file(data_root):
    path = data_root / "Files" / "backup.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def client(data_root):
    """Test client for the full application."""
    from capibara.api.main import app
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Bearer header carrying a freshly issued session token."""
    response = client.post("/auth/token", json={"username": "admin", "password": "test-password"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
