"""
Tests for health check endpoints.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from castops.dependencies import get_db_pool
from castops.main import app

client = TestClient(app)


class FakePool:
    def __init__(self, healthy=True, error=None):
        self.healthy = healthy
        self.error = error

    async def health_check(self):
        if not self.healthy:
            return {"healthy": False, "error": self.error}
        return {"healthy": True, "pool_stats": {"pool_size": 2, "pool_available": 2}}


@pytest.fixture
def override_pool():
    def _apply(pool):
        app.dependency_overrides[get_db_pool] = lambda: pool

    yield _apply
    app.dependency_overrides.clear()


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "castops"}


def test_readyz_endpoint_all_services_healthy(override_pool):
    """Test readiness endpoint when the database and Slack are ready."""
    override_pool(FakePool())
    with (
        patch("castops.routes.health.settings.SLACK_BOT_TOKEN", "xoxb-test"),
        patch("castops.routes.health.settings.SLACK_CHANNEL_INTERNAL", "C0CASTING"),
        patch("castops.routes.health.settings.GOOGLE_SERVICE_ACCOUNT_KEY", None),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    checks = data["checks"]
    assert checks["database"]["ok"] is True
    assert checks["database"]["pool_size"] == 2
    assert isinstance(checks["database"]["latency_ms"], (int, float))
    assert checks["slack"]["ok"] is True
    # optional integrations never gate readiness
    assert checks["calendar"] == {"ok": True, "configured": False}


def test_readyz_endpoint_database_unhealthy(override_pool):
    """Test readiness endpoint when the database is down."""
    override_pool(FakePool(healthy=False, error="Connection failed"))
    with (
        patch("castops.routes.health.settings.SLACK_BOT_TOKEN", "xoxb-test"),
        patch("castops.routes.health.settings.SLACK_CHANNEL_INTERNAL", "C0CASTING"),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_endpoint_slack_not_configured(override_pool):
    """Test readiness endpoint when the Slack token is missing."""
    override_pool(FakePool())
    with patch("castops.routes.health.settings.SLACK_BOT_TOKEN", None):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["slack"] == {"ok": False, "configured": False}
