"""
Evidence pack readiness.

Scores how well a pack built from the selected issues would hold up if
submitted: how many open issues it leaves out, whether high-severity or
documented issues are left out, and whether the included issues carry evidence
and communications. Separate from case health, which scores the whole case
regardless of what goes into a pack.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from tenant_case_guard.constants import (
    PACK_COVERAGE_MAX_PENALTY,
    PACK_EXCLUDED_HIGH_SEVERITY_PENALTY,
    PACK_EXCLUDED_WITH_EVIDENCE_PENALTY,
    PACK_INCLUDED_NO_COMMS_PENALTY,
    PACK_INCLUDED_NO_EVIDENCE_PENALTY,
    PACK_SCORE_THRESHOLDS,
    PACK_STALE_DAYS,
    PACK_STATUS_COPY,
    PACK_TITLE_PREVIEW_CHARS,
)
from tenant_case_guard.models.issues import CommsLogEntry, EvidenceItem, Issue, Severity
from tenant_case_guard.models.pack import (
    PackCoverage,
    PackReadiness,
    PackReadinessStatus,
    PackWarning,
)
from tenant_case_guard.services.severity import days_between, severity_rank

logger = logging.getLogger(__name__)


def calculate_pack_readiness(
    issues: Iterable[Issue],
    selected_issue_ids: Iterable[str],
    evidence: Iterable[EvidenceItem],
    comms: Iterable[CommsLogEntry],
    now: datetime | None = None,
    severities: Mapping[str, Severity] | None = None,
) -> PackReadiness:
    """Readiness of a pack containing `selected_issue_ids` out of the user's `issues`.

    `severities` maps issue id to the severity to judge it by (normally the
    display severity); issues missing from it use their stored severity. Each
    excluded issue gets at most one warning, the most serious that applies.
    """
    now = now or datetime.now(timezone.utc)
    issues = list(issues)
    selected = set(selected_issue_ids)
    severities = severities or {}
    evidence_counts = Counter(e.issue_id for e in evidence)
    comms_counts = Counter(c.issue_id for c in comms)

    open_issues = [i for i in issues if i.status.is_active]
    included = [i for i in open_issues if i.id in selected]
    excluded = [i for i in open_issues if i.id not in selected]

    coverage = PackCoverage(
        included_issues=len(included),
        excluded_issues=len(excluded),
        total_open_issues=len(open_issues),
    )

    warnings: list[PackWarning] = []
    excluded_high = []
    excluded_with_evidence = []
    for issue in excluded:
        severity = severities.get(issue.id, issue.severity)
        n_evidence = evidence_counts.get(issue.id, 0)
        n_comms = comms_counts.get(issue.id, 0)
        if severity_rank(severity) >= severity_rank(Severity.HIGH):
            excluded_high.append(issue)
            warnings.append(
                _issue_warning(
                    "critical",
                    "High-Severity Issue Excluded",
                    f"is {severity.value} severity and will NOT be included in this pack. "
                    "This may significantly weaken your position.",
                    issue,
                )
            )
        elif n_evidence > 0:
            excluded_with_evidence.append(issue)
            warnings.append(
                _issue_warning(
                    "warning",
                    "Issue with Evidence Excluded",
                    f"has {_plural(n_evidence, 'evidence item')} but will NOT be included.",
                    issue,
                )
            )
        elif n_comms > 0:
            warnings.append(
                _issue_warning(
                    "warning",
                    "Issue with Communications Excluded",
                    f"has {_plural(n_comms, 'logged communication')} but will NOT be included.",
                    issue,
                )
            )

    no_evidence = [i for i in included if evidence_counts.get(i.id, 0) == 0]
    for issue in no_evidence:
        warnings.append(
            _issue_warning(
                "warning",
                "Issue Lacks Evidence",
                "is included but has no supporting evidence.",
                issue,
            )
        )

    no_comms = [
        i for i in included if evidence_counts.get(i.id, 0) > 0 and comms_counts.get(i.id, 0) == 0
    ]
    for issue in no_comms:
        warnings.append(
            _issue_warning(
                "info",
                "No Communications Logged",
                "has no documented communication with landlord/agent.",
                issue,
            )
        )

    stale = [
        i for i in included if days_between(i.updated_at or i.created_at, now) > PACK_STALE_DAYS
    ]
    if stale:
        verb = "have" if len(stale) > 1 else "has"
        warnings.append(
            PackWarning(
                type="info",
                title="Stale Documentation",
                message=(
                    f"{_plural(len(stale), 'issue')} included {verb} not been updated "
                    f"in over {PACK_STALE_DAYS} days."
                ),
            )
        )

    score = 100
    if open_issues:
        ratio = len(included) / len(open_issues)
        # Halves round up
        score -= math.floor((1 - ratio) * PACK_COVERAGE_MAX_PENALTY + 0.5)
    score -= len(excluded_high) * PACK_EXCLUDED_HIGH_SEVERITY_PENALTY
    score -= len(excluded_with_evidence) * PACK_EXCLUDED_WITH_EVIDENCE_PENALTY
    score -= len(no_evidence) * PACK_INCLUDED_NO_EVIDENCE_PENALTY
    score -= len(no_comms) * PACK_INCLUDED_NO_COMMS_PENALTY
    score = max(0, min(100, score))

    status = get_readiness_status(score, warnings)
    label, description = PACK_STATUS_COPY[status]
    requires_confirmation = (
        status in (PackReadinessStatus.WEAK, PackReadinessStatus.HIGH_RISK) or bool(excluded)
    )

    logger.debug(
        f"Pack readiness {status.value}/{score}: {len(included)}/{len(open_issues)} open issues, "
        f"{len(warnings)} warnings"
    )
    return PackReadiness(
        score=score,
        status=status,
        status_label=label,
        status_description=description,
        warnings=warnings,
        coverage=coverage,
        requires_confirmation=requires_confirmation,
    )


def get_readiness_status(score: int, warnings: Iterable[PackWarning]) -> PackReadinessStatus:
    """Band for a readiness score. Any critical warning caps the pack at weak."""
    has_critical = any(w.type == "critical" for w in warnings)
    if not has_critical:
        if score >= PACK_SCORE_THRESHOLDS[PackReadinessStatus.STRONG]:
            return PackReadinessStatus.STRONG
        if score >= PACK_SCORE_THRESHOLDS[PackReadinessStatus.MODERATE]:
            return PackReadinessStatus.MODERATE
        return PackReadinessStatus.WEAK
    if score >= PACK_SCORE_THRESHOLDS[PackReadinessStatus.WEAK]:
        return PackReadinessStatus.WEAK
    return PackReadinessStatus.HIGH_RISK


def _issue_warning(warning_type: str, title: str, detail: str, issue: Issue) -> PackWarning:
    return PackWarning(
        type=warning_type,
        title=title,
        message=f'"{_truncate(issue.title, PACK_TITLE_PREVIEW_CHARS)}" {detail}',
        issue_id=issue.id,
        issue_title=issue.title,
    )


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def _truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1] + "…"
