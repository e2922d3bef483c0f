"""
Health endpoints.

- /health: static liveness answer for load balancers
- /health/ready: runs the registered dependency checks (database), 503 if any fails
- /health/live: process is up, with uptime
"""

from __future__ import annotations

import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

# --- Types ---


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)


class HealthCheck(Protocol):
    name: str

    def check(self) -> CheckResult: ...


# --- Startup Tracker ---


class StartupTracker:
    """Process start time, for uptime reporting."""

    _start_time: float | None = None

    @classmethod
    def mark_started(cls) -> None:
        cls._start_time = time.time()

    @classmethod
    def get_uptime_seconds(cls) -> float:
        if cls._start_time is None:
            return 0.0
        return time.time() - cls._start_time


# --- Registry ---


class HealthCheckRegistry:
    def __init__(self) -> None:
        self._checks: list[HealthCheck] = []

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    def run_all(self) -> list[CheckResult]:
        return [check.check() for check in self._checks]

    def clear(self) -> None:
        self._checks = []


_registry = HealthCheckRegistry()


def get_health_registry() -> HealthCheckRegistry:
    """Process-wide registry that the API lifespan fills in."""
    return _registry


# --- Checks ---


def sqlite_ping(db_path: str) -> Callable[[], None]:
    """Build a check function that runs `SELECT 1` against the store database."""

    def ping() -> None:
        conn = sqlite3.connect(db_path)
        try:
            conn.execute("SELECT 1").fetchone()
        finally:
            conn.close()

    return ping


class DatabaseCheck:
    name = "database"

    def __init__(self, check_fn: Callable[[], None]) -> None:
        self._check_fn = check_fn

    def check(self) -> CheckResult:
        start = time.time()
        try:
            self._check_fn()
            return CheckResult(
                name=self.name,
                status=HealthStatus.HEALTHY,
                message="Database connected",
                latency_ms=(time.time() - start) * 1000,
            )
        except Exception as e:
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e!s}",
                latency_ms=(time.time() - start) * 1000,
            )


# --- FastAPI Router ---


def create_health_router(registry: HealthCheckRegistry | None = None) -> APIRouter:
    router = APIRouter(tags=["health"])
    reg = registry or get_health_registry()

    @router.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @router.get(
        "/health/ready",
        response_model=None,
        responses={
            200: {"description": "Service is ready to accept traffic"},
            503: {"description": "A dependency check failed"},
        },
    )
    def readiness_check() -> JSONResponse:
        results = reg.run_all()
        healthy = all(r.status == HealthStatus.HEALTHY for r in results)
        overall = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY

        return JSONResponse(
            content={
                "status": overall.value,
                "checks": [
                    {
                        "name": r.name,
                        "status": r.status.value,
                        "message": r.message,
                        "latency_ms": round(r.latency_ms, 2),
                    }
                    for r in results
                ],
            },
            status_code=(
                status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
            ),
        )

    @router.get("/health/live")
    def liveness_check() -> dict[str, Any]:
        return {"alive": True, "uptime_seconds": StartupTracker.get_uptime_seconds()}

    return router
