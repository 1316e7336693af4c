"""
Append-only audit log of enforcement overrides.

A record is written only when a user proceeds past a warned or soft-blocked
decision. Allowed actions have no friction to record and hard-blocked actions
cannot be overridden, so both are rejected before anything is written.
"""

from __future__ import annotations

import logging

from tenant_case_guard.config import get_settings
from tenant_case_guard.domain.errors import (
    AuditWriteFailed,
    DomainError,
    OverrideNotPermitted,
    ValidationFailed,
)
from tenant_case_guard.models.enforcement import OverrideLogEntry
from tenant_case_guard.store.base import CaseStore

logger = logging.getLogger(__name__)


class OverrideAuditLog:
    """One durable write per record, one round trip per history read. No caching."""

    def __init__(self, store: CaseStore, max_history: int | None = None):
        self.store = store
        self.max_history = max_history or get_settings().override_history_max_limit

    def record(self, entry: OverrideLogEntry) -> OverrideLogEntry:
        if not entry.enforcement_level.is_overridable:
            raise OverrideNotPermitted(
                f"Cannot log an override for enforcement level '{entry.enforcement_level.value}'"
            )
        try:
            stored = self.store.insert_override_log(entry)
        except (DomainError, OSError) as e:
            logger.error(
                f"Override audit write failed for user {entry.user_id} action {entry.action.value}: {e}",
                exc_info=True,
            )
            raise AuditWriteFailed("Override could not be recorded") from e

        logger.info(
            f"Override recorded: user={entry.user_id} action={entry.action.value} "
            f"level={entry.enforcement_level.value} health={entry.health_status.value}/{entry.health_score}"
        )
        return stored

    def history(self, user_id: str, limit: int) -> list[OverrideLogEntry]:
        """Most recent records for the user, newest first."""
        if limit < 1:
            raise ValidationFailed("History limit must be at least 1")
        return self.store.fetch_override_logs(user_id, min(limit, self.max_history))
