"""
Case health scoring.

Health measures how well an issue is documented with evidence and with
communications to the landlord. It is a pure function of those two counts:
no dates, no hidden state. A case (all active issues) is only as healthy as its
weakest issue.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tenant_case_guard.constants import (
    COMMS_THRESHOLDS,
    EVIDENCE_THRESHOLDS,
    HEALTH_BASE_SCORE,
    HEALTH_STATUS_COPY,
    HEALTH_STEP_POINTS,
    SCORE_THRESHOLDS,
)
from tenant_case_guard.models.health import (
    CaseHealth,
    CaseHealthFactor,
    CaseHealthStatus,
    FactorStatus,
    IssueHealthInput,
    NextStep,
)
from tenant_case_guard.models.issues import Severity

logger = logging.getLogger(__name__)

_FACTOR_ORDER = {FactorStatus.CRITICAL: 0, FactorStatus.WARNING: 1, FactorStatus.GOOD: 2}


def get_status_from_score(score: int) -> CaseHealthStatus:
    if score >= SCORE_THRESHOLDS[CaseHealthStatus.STRONG]:
        return CaseHealthStatus.STRONG
    if score >= SCORE_THRESHOLDS[CaseHealthStatus.ADEQUATE]:
        return CaseHealthStatus.ADEQUATE
    if score > SCORE_THRESHOLDS[CaseHealthStatus.WEAK]:
        return CaseHealthStatus.WEAK
    return CaseHealthStatus.AT_RISK


def score_issue(evidence_count: int, comms_count: int) -> CaseHealth:
    """Score one issue from its evidence and communication counts."""
    evidence = _evidence_factor(max(0, evidence_count))
    comms = _comms_factor(max(0, comms_count))
    score = _clamp(HEALTH_BASE_SCORE + evidence.score + comms.score)
    return _build_health(score, [evidence, comms])


def score_case(issues: Iterable[IssueHealthInput]) -> CaseHealth:
    """Aggregate health over the active issues of a case.

    No active issues means nothing to strengthen: score 100, strong. Otherwise
    the case takes the minimum per-issue score.
    """
    healths = [score_issue(i.evidence_count, i.comms_count) for i in issues]
    if not healths:
        return CaseHealth(
            score=100,
            status=CaseHealthStatus.STRONG,
            status_label="No Active Issues",
            status_description="You have no unresolved issues at this time.",
            factors=[],
        )

    lowest = min(h.score for h in healths)
    return _build_health(lowest, _top_factors(healths))


def get_weakest_issue(
    issues: Iterable[IssueHealthInput],
) -> tuple[IssueHealthInput, CaseHealth] | None:
    """The active issue most in need of attention, with its health."""
    scored = [(i, score_issue(i.evidence_count, i.comms_count)) for i in issues]
    if not scored:
        return None
    return min(scored, key=lambda pair: pair[1].score)


def get_recommended_next_step(issue: IssueHealthInput, health: CaseHealth) -> NextStep:
    """The single most important next step for an issue."""
    title = _truncate(issue.title or "This issue", 30)
    issue_id = issue.issue_id or ""
    high_severity = issue.severity in (Severity.URGENT, Severity.HIGH)

    if issue.evidence_count == 0 and high_severity:
        return NextStep(
            action="Add Evidence Now",
            description=(
                f'"{title}" is {issue.severity.value} severity with no evidence. '
                "Add photos or documents immediately."
            ),
            href=f"/evidence/upload?issueId={issue_id}",
            urgency="critical",
        )
    if issue.evidence_count == 0:
        return NextStep(
            action="Add Evidence",
            description=(
                f'"{title}" has no supporting evidence. '
                "Upload photos or documents to protect your position."
            ),
            href=f"/evidence/upload?issueId={issue_id}",
            urgency="high",
        )
    if issue.comms_count == 0:
        return NextStep(
            action="Log Communication",
            description=f'Document your communication with the landlord/agent about "{title}".',
            href=f"/comms/new?issueId={issue_id}",
            urgency="high",
        )
    if health.status is CaseHealthStatus.STRONG:
        return NextStep(
            action="Prepare Evidence Pack",
            description=f'"{title}" is well documented. Generate an evidence pack for tribunal.',
            href=f"/packs/new?issueId={issue_id}",
            urgency="low",
        )
    return NextStep(
        action="Strengthen Case",
        description=f'Add more evidence or follow-up communications to "{title}" to improve your position.',
        href=f"/evidence/upload?issueId={issue_id}",
        urgency="medium",
    )


def _evidence_factor(count: int) -> CaseHealthFactor:
    score = HEALTH_STEP_POINTS * sum(1 for t in EVIDENCE_THRESHOLDS if count >= t)
    if count == 0:
        status, rec = FactorStatus.CRITICAL, "Upload photos or documents as evidence immediately"
    elif count < EVIDENCE_THRESHOLDS[-1]:
        status, rec = FactorStatus.WARNING, "Add more evidence to strengthen your position"
    else:
        status, rec = FactorStatus.GOOD, None
    return CaseHealthFactor(
        name="Evidence collected",
        score=score,
        max_score=HEALTH_STEP_POINTS * len(EVIDENCE_THRESHOLDS),
        status=status,
        recommendation=rec,
    )


def _comms_factor(count: int) -> CaseHealthFactor:
    score = HEALTH_STEP_POINTS * sum(1 for t in COMMS_THRESHOLDS if count >= t)
    if count == 0:
        status, rec = FactorStatus.CRITICAL, "Log your communication with the landlord/agent"
    elif count < COMMS_THRESHOLDS[-1]:
        status, rec = FactorStatus.WARNING, "Document any follow-up communications"
    else:
        status, rec = FactorStatus.GOOD, None
    return CaseHealthFactor(
        name="Communication logged",
        score=score,
        max_score=HEALTH_STEP_POINTS * len(COMMS_THRESHOLDS),
        status=status,
        recommendation=rec,
    )


def _top_factors(healths: list[CaseHealth], limit: int = 3) -> list[CaseHealthFactor]:
    """Most severe factor with a recommendation per name, critical first."""
    by_name: dict[str, CaseHealthFactor] = {}
    for health in healths:
        for factor in health.factors:
            if not factor.recommendation:
                continue
            current = by_name.get(factor.name)
            if current is None or _FACTOR_ORDER[factor.status] < _FACTOR_ORDER[current.status]:
                by_name[factor.name] = factor
    return sorted(by_name.values(), key=lambda f: _FACTOR_ORDER[f.status])[:limit]


def _build_health(score: int, factors: list[CaseHealthFactor]) -> CaseHealth:
    status = get_status_from_score(score)
    label, description = HEALTH_STATUS_COPY[status]
    return CaseHealth(
        score=score,
        status=status,
        status_label=label,
        status_description=description,
        factors=factors,
    )


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"
