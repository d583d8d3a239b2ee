"""
Health checks for the newsroom.

A small registry of named checks used by the /health/, /readyz/ endpoints.
Besides infrastructure (database, cache) it watches the publication
backlog: scheduled articles that are overdue by more than two sweep
intervals mean the scheduler driver is not running.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    name: str
    status: HealthStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(dt_timezone.utc))


class HealthChecker:
    """
    Health check registry and executor.
    """

    _instance = None
    _lock = Lock()

    def __new__(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._checks = {}
        return cls._instance

    def register(self, name: str, check_fn: Callable[[], HealthCheckResult]) -> None:
        self._checks[name] = check_fn

    def check(self, name: str) -> HealthCheckResult:
        """Run a specific health check."""
        if name not in self._checks:
            return HealthCheckResult(
                name=name,
                status=HealthStatus.UNHEALTHY,
                message=f"Unknown check: {name}",
            )

        start = time.perf_counter()
        try:
            result = self._checks[name]()
        except Exception as e:
            logger.warning("Health check %s raised: %s", name, e)
            result = HealthCheckResult(
                name=name,
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result

    def check_all(self) -> Dict[str, Any]:
        """Run all health checks; the worst status wins."""
        results = {}
        overall_status = HealthStatus.HEALTHY

        for name in self._checks:
            result = self.check(name)
            results[name] = {
                "status": result.status.value,
                "message": result.message,
                "details": result.details,
                "duration_ms": result.duration_ms,
            }

            if result.status == HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.UNHEALTHY
            elif result.status == HealthStatus.DEGRADED and overall_status != HealthStatus.UNHEALTHY:
                overall_status = HealthStatus.DEGRADED

        return {
            "status": overall_status.value,
            "checks": results,
            "timestamp": datetime.now(dt_timezone.utc).isoformat(),
        }

    def list_checks(self) -> List[str]:
        return list(self._checks.keys())


# Global health checker instance
health_checker = HealthChecker()


# =============================================================================
# Built-in Health Checks
# =============================================================================

def check_database() -> HealthCheckResult:
    """Check database connectivity."""
    from django.db import connection

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        return HealthCheckResult(
            name="database",
            status=HealthStatus.HEALTHY,
            message="Database connection successful",
        )
    except Exception as e:
        return HealthCheckResult(
            name="database",
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {e}",
        )


def check_cache() -> HealthCheckResult:
    """Check the cache backend (Redis in production)."""
    from django.core.cache import cache

    try:
        cache.set("health_check", "ok", 10)
        value = cache.get("health_check")
    except Exception as e:
        return HealthCheckResult(
            name="cache",
            status=HealthStatus.UNHEALTHY,
            message=f"Cache error: {e}",
        )

    if value == "ok":
        return HealthCheckResult(
            name="cache",
            status=HealthStatus.HEALTHY,
            message="Cache connection successful",
        )
    return HealthCheckResult(
        name="cache",
        status=HealthStatus.DEGRADED,
        message="Cache get/set mismatch",
    )


def check_publication_backlog() -> HealthCheckResult:
    """
    Check that scheduled articles are being published.

    DEGRADED when any SCHEDULED article is overdue by more than two sweep
    intervals.
    """
    from django.conf import settings
    from django.utils import timezone
    from apps.articles.models import Article
    from apps.articles.state_machine import ArticleStatus

    interval = getattr(settings, 'PUBLICATION_SWEEP_INTERVAL_SECONDS', 300)
    cutoff = timezone.now() - timedelta(seconds=2 * interval)

    overdue = Article.objects.filter(
        status=ArticleStatus.SCHEDULED.value,
        scheduled_at__lte=cutoff,
    ).count()

    if overdue:
        return HealthCheckResult(
            name="publication_backlog",
            status=HealthStatus.DEGRADED,
            message=f"{overdue} scheduled article(s) overdue",
            details={"overdue": overdue, "cutoff": cutoff.isoformat()},
        )
    return HealthCheckResult(
        name="publication_backlog",
        status=HealthStatus.HEALTHY,
        message="No overdue scheduled articles",
        details={"overdue": 0},
    )


def register_default_checks():
    """Register default health checks."""
    health_checker.register("database", check_database)
    health_checker.register("cache", check_cache)
    health_checker.register("publication_backlog", check_publication_backlog)
