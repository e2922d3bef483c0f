"""
Tests for the health endpoints.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.shell.http.health import (
    CheckResult,
    DatabaseCheck,
    HealthCheckRegistry,
    HealthStatus,
    StartupTracker,
    create_health_router,
    sqlite_ping,
)

# --- Test Fixtures ---


@pytest.fixture
def registry() -> HealthCheckRegistry:
    return HealthCheckRegistry()


@pytest.fixture
def health_client(registry: HealthCheckRegistry) -> TestClient:
    app = FastAPI()
    app.include_router(create_health_router(registry=registry))
    return TestClient(app)


class StaticCheck:
    def __init__(self, name: str, healthy: bool) -> None:
        self.name = name
        self._healthy = healthy

    def check(self) -> CheckResult:
        status = HealthStatus.HEALTHY if self._healthy else HealthStatus.UNHEALTHY
        return CheckResult(name=self.name, status=status, message="static")


# --- Checks ---


def test_database_check_healthy(test_db_path):
    result = DatabaseCheck(sqlite_ping(test_db_path)).check()
    assert result.status == HealthStatus.HEALTHY
    assert result.name == "database"


def test_database_check_reports_failure():
    def broken() -> None:
        raise RuntimeError("disk on fire")

    result = DatabaseCheck(broken).check()
    assert result.status == HealthStatus.UNHEALTHY
    assert "disk on fire" in result.message


def test_uptime_after_start():
    StartupTracker.mark_started()
    assert StartupTracker.get_uptime_seconds() >= 0.0


# --- Endpoints ---


def test_health(health_client):
    response = health_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready_all_healthy(health_client, registry):
    registry.register(StaticCheck("database", healthy=True))
    response = health_client.get("/health/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"][0]["name"] == "database"


def test_ready_unhealthy_returns_503(health_client, registry):
    registry.register(StaticCheck("database", healthy=True))
    registry.register(StaticCheck("cache", healthy=False))
    response = health_client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_live(health_client):
    response = health_client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["alive"] is True
