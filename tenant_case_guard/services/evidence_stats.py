"""
Canonical evidence and communication statistics per issue.

Every count shown to a user or fed into case health goes through these
functions. Callers pass the full candidate list (already scoped to one user);
filtering is by `issue_id` only and an unknown issue simply yields empty stats.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from tenant_case_guard.constants import STALE_EVIDENCE_DAYS
from tenant_case_guard.models.health import (
    CommsStats,
    CountCheck,
    DocumentationGap,
    EvidenceStats,
    GapCode,
    IssueCaseFacts,
)
from tenant_case_guard.models.issues import (
    CommsDirection,
    CommsLogEntry,
    EvidenceItem,
    EvidenceType,
    Issue,
    Severity,
)
from tenant_case_guard.services.severity import days_between

IMAGE_TYPES = frozenset({EvidenceType.PHOTO, EvidenceType.SCREENSHOT})
DOCUMENT_TYPES = frozenset({EvidenceType.PDF, EvidenceType.DOCUMENT})

logger = logging.getLogger(__name__)


def is_image_evidence(evidence_type: EvidenceType | str) -> bool:
    return _coerce_type(evidence_type) in IMAGE_TYPES


def is_document_evidence(evidence_type: EvidenceType | str) -> bool:
    return _coerce_type(evidence_type) in DOCUMENT_TYPES


def get_issue_evidence_stats(issue_id: str, evidence: Iterable[EvidenceItem]) -> EvidenceStats:
    """Evidence counts for one issue: total, images, documents and the latest occurrence."""
    items = [e for e in evidence if e.issue_id == issue_id]
    images = [e for e in items if is_image_evidence(e.type)]
    documents = [e for e in items if is_document_evidence(e.type)]

    return EvidenceStats(
        total_count=len(items),
        image_count=len(images),
        document_count=len(documents),
        last_evidence_date=_latest(e.occurred_at for e in items),
        evidence_ids=[e.id for e in items],
        image_ids=[e.id for e in images],
    )


def get_issue_comms_stats(issue_id: str, comms: Iterable[CommsLogEntry]) -> CommsStats:
    """Communication counts for one issue, split into notices sent and responses received."""
    items = [c for c in comms if c.issue_id == issue_id]
    outbound = [c for c in items if c.direction is not CommsDirection.INBOUND]
    inbound = [c for c in items if c.direction is CommsDirection.INBOUND]

    return CommsStats(
        total_count=len(items),
        outbound_count=len(outbound),
        inbound_count=len(inbound),
        last_outbound_date=_latest(c.occurred_at for c in outbound),
        last_inbound_date=_latest(c.occurred_at for c in inbound),
        has_notice=bool(outbound),
        has_response=bool(inbound),
    )


def get_issue_case_facts(
    issue: Issue,
    evidence: Iterable[EvidenceItem],
    comms: Iterable[CommsLogEntry],
    as_of: datetime | None = None,
) -> IssueCaseFacts:
    """Combine evidence and comms stats with the derived notice/response wording."""
    as_of = as_of or datetime.now(timezone.utc)
    evidence_stats = get_issue_evidence_stats(issue.id, evidence)
    comms_stats = get_issue_comms_stats(issue.id, comms)

    if comms_stats.has_response:
        response_status = "Response recorded"
    else:
        response_status = f"No response recorded as of {_format_date(as_of)}"

    return IssueCaseFacts(
        days_open=max(0, days_between(issue.created_at, as_of)),
        notice_status="Sent" if comms_stats.has_notice else "Not sent",
        response_status=response_status,
        evidence_stats=evidence_stats,
        comms_stats=comms_stats,
    )


def detect_issue_gaps(
    issue: Issue,
    facts: IssueCaseFacts,
    stale_days: int = STALE_EVIDENCE_DAYS,
    now: datetime | None = None,
) -> list[DocumentationGap]:
    """List the documentation gaps for one issue, most actionable first."""
    now = now or datetime.now(timezone.utc)
    high_priority = issue.severity in (Severity.URGENT, Severity.HIGH)
    missing_type = "critical" if high_priority else "warning"
    gaps: list[DocumentationGap] = []

    def add(gap_type: str, description: str, code: GapCode) -> None:
        gaps.append(
            DocumentationGap(
                type=gap_type,
                issue_id=issue.id,
                issue_title=issue.title,
                description=description,
                code=code,
            )
        )

    if facts.comms_stats.total_count == 0:
        add(missing_type, "No communications logged", GapCode.NO_COMMS)

    if facts.comms_stats.has_notice and not facts.comms_stats.has_response:
        add("info", "Notice sent, no response recorded", GapCode.NO_RESPONSE)

    if facts.evidence_stats.total_count == 0:
        add(missing_type, "No evidence attached", GapCode.NO_EVIDENCE)
    elif facts.evidence_stats.image_count == 0:
        add("warning", "No photo/screenshot evidence", GapCode.NO_IMAGES)

    last = facts.evidence_stats.last_evidence_date
    if last is not None:
        age = days_between(last, now)
        if age > stale_days:
            add("info", f"Evidence is {age} days old", GapCode.STALE_EVIDENCE)

    return gaps


def validate_evidence_counts(
    issue_id: str,
    first_count: int,
    second_count: int,
    first_name: str = "first",
    second_name: str = "second",
) -> CountCheck:
    """Compare one issue's evidence count from two sources. A mismatch is logged, not raised."""
    if first_count != second_count:
        message = (
            f"Evidence count mismatch for issue {issue_id}: "
            f"{first_name}={first_count}, {second_name}={second_count}"
        )
        logger.warning(message)
        return CountCheck(valid=False, message=message)
    return CountCheck(valid=True, message="Counts match")


def _coerce_type(evidence_type: EvidenceType | str) -> EvidenceType | None:
    if isinstance(evidence_type, EvidenceType):
        return evidence_type
    try:
        return EvidenceType(str(evidence_type).lower())
    except ValueError:
        return None


def _latest(dates: Iterable[datetime | None]) -> datetime | None:
    present = [d for d in dates if d is not None]
    return max(present, key=_sort_key) if present else None


def _sort_key(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _format_date(value: datetime) -> str:
    # e.g. "5 Mar 2025"
    return f"{value.day} {value.strftime('%b %Y')}"
