"""
Issue severity classification.

Severity reflects the risk and impact of an issue, not its workflow status:

1. Hazard keywords in the title or description set the initial severity.
2. Age may only escalate severity, never reduce it.
3. Resolved and closed issues keep their stored severity (historical accuracy).

Escalation is a read-time projection. Callers must never write the escalated
value back over the stored baseline.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from tenant_case_guard.constants import (
    AGE_ESCALATION_RULES,
    FROZEN_SEVERITY_STATUSES,
    SEVERITY_KEYWORDS,
    SEVERITY_RANK,
)
from tenant_case_guard.models.issues import IssueStatus, Severity

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


def classify(title: str, description: str | None = None) -> Severity:
    """Classify an issue from its text. Unmatched text is Low, not an error."""
    text = f"{title or ''} {description or ''}".lower()

    for severity, keywords in SEVERITY_KEYWORDS:
        for keyword in keywords:
            if keyword in text:
                logger.debug(f"Classified as {severity.value} on keyword '{keyword}'")
                return severity

    return Severity.LOW


def escalate_by_age(severity: Severity, days_old: int) -> Severity:
    """Escalate one step if the issue has been open past its threshold."""
    severity = Severity(severity)
    rule = AGE_ESCALATION_RULES.get(severity)
    if rule is None:
        # Urgent has nowhere to go
        return severity
    threshold_days, escalated = rule
    if days_old > threshold_days:
        return escalated
    return severity


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end (floor), treating naive datetimes as UTC."""
    delta = _as_utc(end) - _as_utc(start)
    return int(delta.total_seconds() // _SECONDS_PER_DAY)


def get_display_severity(
    stored: Severity,
    created_at: datetime,
    status: IssueStatus | str,
    now: datetime | None = None,
) -> Severity:
    """Severity to show for an issue right now.

    Resolved/closed issues return the stored value unchanged. Active issues are
    escalated by age.
    """
    stored = Severity(stored)
    if IssueStatus(status) in FROZEN_SEVERITY_STATUSES:
        return stored

    now = now or datetime.now(timezone.utc)
    return escalate_by_age(stored, days_between(created_at, now))


def severity_rank(severity: Severity | str) -> int:
    return SEVERITY_RANK[Severity(severity)]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
