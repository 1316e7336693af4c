import os
from datetime import datetime, timedelta, timezone
from itertools import count

# Must be set before the app module reads settings
os.environ.setdefault("API_KEYS", "key-tenant-1:tenant-1,key-tenant-2:tenant-2")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STORE_BACKEND", "memory")

import pytest

from tenant_case_guard.models.issues import (
    CommsDirection,
    CommsLogEntry,
    EvidenceItem,
    EvidenceType,
    Issue,
    IssueStatus,
    Severity,
)
from tenant_case_guard.services.enforcement_service import EnforcementService
from tenant_case_guard.store.memory_store import InMemoryCaseStore

NOW = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)
USER_ID = "tenant-1"

_ids = count(1)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store():
    return InMemoryCaseStore()


@pytest.fixture
def make_issue(store):
    """Factory seeding an issue `age_days` old for USER_ID (or `user_id`)."""

    def _make(
        title: str = "Leaking kitchen tap",
        *,
        status: IssueStatus = IssueStatus.OPEN,
        severity: Severity = Severity.LOW,
        age_days: int = 1,
        user_id: str = USER_ID,
        issue_id: str | None = None,
    ) -> Issue:
        return store.add_issue(
            Issue(
                id=issue_id or f"issue-{next(_ids)}",
                user_id=user_id,
                title=title,
                status=status,
                severity=severity,
                created_at=NOW - timedelta(days=age_days),
            )
        )

    return _make


@pytest.fixture
def add_evidence(store):
    """Attach `n` evidence items of one type to an issue."""

    def _add(
        issue: Issue,
        n: int = 1,
        *,
        evidence_type: EvidenceType = EvidenceType.PHOTO,
        days_ago: int = 1,
    ) -> list[EvidenceItem]:
        return [
            store.add_evidence(
                issue.user_id,
                EvidenceItem(
                    id=f"ev-{next(_ids)}",
                    issue_id=issue.id,
                    type=evidence_type,
                    occurred_at=NOW - timedelta(days=days_ago),
                ),
            )
            for _ in range(n)
        ]

    return _add


@pytest.fixture
def add_comms(store):
    """Log `n` communications of one direction against an issue."""

    def _add(
        issue: Issue,
        n: int = 1,
        *,
        direction: CommsDirection = CommsDirection.OUTBOUND,
        days_ago: int = 1,
    ) -> list[CommsLogEntry]:
        return [
            store.add_comms(
                issue.user_id,
                CommsLogEntry(
                    id=f"cm-{next(_ids)}",
                    issue_id=issue.id,
                    occurred_at=NOW - timedelta(days=days_ago),
                    direction=direction,
                ),
            )
            for _ in range(n)
        ]

    return _add


@pytest.fixture
def service(store, clock):
    return EnforcementService(store, USER_ID, clock=clock)
