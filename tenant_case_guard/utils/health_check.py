"""
Health check utilities for production monitoring.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from tenant_case_guard.domain.errors import DomainError
from tenant_case_guard.store.base import CaseStore

logger = logging.getLogger(__name__)


class DependencyStatus:
    """Status of a single dependency."""

    def __init__(
        self,
        status: str,
        response_time_ms: float | None = None,
        error: str | None = None,
    ):
        self.status = status  # "up", "down", "degraded"
        self.response_time_ms = response_time_ms
        self.error = error
        self.last_checked = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status,
            "response_time_ms": self.response_time_ms,
            "error": self.error,
            "last_checked": self.last_checked.isoformat(),
        }


async def check_store(store: CaseStore | None) -> DependencyStatus:
    """Round-trip the case store with a trivial query."""
    if store is None:
        return DependencyStatus(status="down", error="Case store not initialized")

    start = time.perf_counter()
    try:
        store.check_connection()
    except DomainError as e:
        response_time_ms = (time.perf_counter() - start) * 1000
        logger.error(f"Case store health check failed: {e}", exc_info=True)
        return DependencyStatus(
            status="down",
            response_time_ms=round(response_time_ms, 2),
            error=str(e),
        )

    response_time_ms = (time.perf_counter() - start) * 1000
    return DependencyStatus(status="up", response_time_ms=round(response_time_ms, 2))


async def check_all_dependencies(store: CaseStore | None) -> dict[str, DependencyStatus]:
    return {"case_store": await check_store(store)}


def calculate_overall_status(dependencies: dict[str, DependencyStatus]) -> str:
    """Calculate overall health status from dependency statuses."""
    statuses = [dep.status for dep in dependencies.values()]

    if "down" in statuses:
        return "unhealthy"
    elif "degraded" in statuses:
        return "degraded"
    else:
        return "healthy"
