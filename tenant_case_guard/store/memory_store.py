"""
In-process store backend for development and tests.

Holds plain lists guarded by a lock. Not durable: production settings reject it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from threading import Lock

from tenant_case_guard.models.enforcement import OverrideLogEntry, PlanId
from tenant_case_guard.models.issues import CommsLogEntry, EvidenceItem, Issue, IssueStatus
from tenant_case_guard.store.base import CaseStore

logger = logging.getLogger(__name__)


class InMemoryCaseStore(CaseStore):
    def __init__(self):
        self._lock = Lock()
        self.issues: dict[str, Issue] = {}
        self.evidence: dict[str, list[EvidenceItem]] = {}
        self.comms: dict[str, list[CommsLogEntry]] = {}
        self.plans: dict[str, PlanId] = {}
        self.override_logs: list[OverrideLogEntry] = []

    # Seeding helpers

    def add_issue(self, issue: Issue) -> Issue:
        if not issue.user_id:
            raise ValueError("Issue must belong to a user")
        with self._lock:
            self.issues[issue.id] = issue
        return issue

    def add_evidence(self, user_id: str, item: EvidenceItem) -> EvidenceItem:
        with self._lock:
            self.evidence.setdefault(user_id, []).append(item)
        return item

    def add_comms(self, user_id: str, entry: CommsLogEntry) -> CommsLogEntry:
        with self._lock:
            self.comms.setdefault(user_id, []).append(entry)
        return entry

    def set_plan(self, user_id: str, plan_id: PlanId | str) -> None:
        with self._lock:
            self.plans[user_id] = PlanId(plan_id)

    def remove_evidence(self, user_id: str, evidence_id: str) -> bool:
        with self._lock:
            items = self.evidence.get(user_id, [])
            kept = [e for e in items if e.id != evidence_id]
            self.evidence[user_id] = kept
            return len(kept) != len(items)

    # CaseStore

    def fetch_issue(self, issue_id: str, user_id: str) -> Issue | None:
        with self._lock:
            issue = self.issues.get(issue_id)
        if issue is None or issue.user_id != user_id:
            return None
        return issue

    def fetch_issues(
        self, user_id: str, statuses: Iterable[IssueStatus] | None = None
    ) -> list[Issue]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            issues = list(self.issues.values())
        return [
            i
            for i in issues
            if i.user_id == user_id and (wanted is None or i.status in wanted)
        ]

    def fetch_evidence(self, user_id: str, issue_id: str | None = None) -> list[EvidenceItem]:
        with self._lock:
            items = list(self.evidence.get(user_id, []))
        if issue_id is not None:
            items = [e for e in items if e.issue_id == issue_id]
        return items

    def fetch_comms(self, user_id: str, issue_id: str | None = None) -> list[CommsLogEntry]:
        with self._lock:
            items = list(self.comms.get(user_id, []))
        if issue_id is not None:
            items = [c for c in items if c.issue_id == issue_id]
        return items

    def fetch_plan(self, user_id: str) -> PlanId:
        with self._lock:
            return self.plans.get(user_id, PlanId.FREE)

    def insert_override_log(self, entry: OverrideLogEntry) -> OverrideLogEntry:
        stored = entry.model_copy(update={"id": entry.id or uuid.uuid4().hex})
        with self._lock:
            self.override_logs.append(stored)
        return stored

    def fetch_override_logs(self, user_id: str, limit: int) -> list[OverrideLogEntry]:
        with self._lock:
            own = [e for e in self.override_logs if e.user_id == user_id]
        # Stable sort keeps insertion order for equal timestamps; reverse gives newest first
        own.sort(key=lambda e: e.created_at)
        own.reverse()
        return own[:limit]
