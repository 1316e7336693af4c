"""
Persistence contract consumed by the enforcement core.

Backends only fetch already-structured facts and append override records;
scoring and policy never touch a backend directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from tenant_case_guard.models.enforcement import OverrideLogEntry, PlanId
from tenant_case_guard.models.issues import CommsLogEntry, EvidenceItem, Issue, IssueStatus


class CaseStore(ABC):
    """Read facts about a user's case and append override records."""

    @abstractmethod
    def fetch_issue(self, issue_id: str, user_id: str) -> Issue | None:
        """Return the issue if it exists and belongs to the user."""

    @abstractmethod
    def fetch_issues(
        self, user_id: str, statuses: Iterable[IssueStatus] | None = None
    ) -> list[Issue]:
        """Return the user's issues, optionally restricted to some statuses."""

    @abstractmethod
    def fetch_evidence(self, user_id: str, issue_id: str | None = None) -> list[EvidenceItem]:
        ...

    @abstractmethod
    def fetch_comms(self, user_id: str, issue_id: str | None = None) -> list[CommsLogEntry]:
        ...

    @abstractmethod
    def fetch_plan(self, user_id: str) -> PlanId:
        ...

    @abstractmethod
    def insert_override_log(self, entry: OverrideLogEntry) -> OverrideLogEntry:
        """Durably append one override record and return it with its id."""

    @abstractmethod
    def fetch_override_logs(self, user_id: str, limit: int) -> list[OverrideLogEntry]:
        """Most recent override records for the user, newest first."""

    def check_connection(self) -> None:
        """Raise if the backend cannot serve requests."""
        return None
