from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from tenant_case_guard.models.issues import Severity


class CaseHealthStatus(str, Enum):
    """Documentation-completeness bracket of an issue or a whole case."""

    STRONG = "strong"
    ADEQUATE = "adequate"
    WEAK = "weak"
    AT_RISK = "at-risk"


class FactorStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class CaseHealthFactor(BaseModel):
    """One scored component of case health."""

    name: str
    score: int
    max_score: int
    status: FactorStatus
    recommendation: str | None = None


class CaseHealth(BaseModel):
    """Derived health of an issue or case. Computed on every evaluation, never stored."""

    score: int = Field(..., ge=0, le=100)
    status: CaseHealthStatus
    status_label: str
    status_description: str
    factors: list[CaseHealthFactor] = Field(default_factory=list)


class IssueHealthInput(BaseModel):
    """Counts the scorer needs for one issue."""

    issue_id: str | None = None
    title: str | None = None
    severity: Severity | None = None
    evidence_count: int = 0
    comms_count: int = 0


class EvidenceStats(BaseModel):
    total_count: int = 0
    image_count: int = 0
    document_count: int = 0
    last_evidence_date: datetime | None = None
    evidence_ids: list[str] = Field(default_factory=list)
    image_ids: list[str] = Field(default_factory=list)


class CommsStats(BaseModel):
    total_count: int = 0
    outbound_count: int = 0
    inbound_count: int = 0
    last_outbound_date: datetime | None = None
    last_inbound_date: datetime | None = None
    has_notice: bool = False  # At least one outbound
    has_response: bool = False  # At least one inbound


class IssueCaseFacts(BaseModel):
    days_open: int
    notice_status: Literal["Sent", "Not sent"]
    response_status: str
    evidence_stats: EvidenceStats
    comms_stats: CommsStats


class GapCode(str, Enum):
    NO_COMMS = "no_comms"
    NO_RESPONSE = "no_response"
    NO_EVIDENCE = "no_evidence"
    NO_IMAGES = "no_images"
    STALE_EVIDENCE = "stale_evidence"


class DocumentationGap(BaseModel):
    type: Literal["critical", "warning", "info"]
    issue_id: str
    issue_title: str
    description: str
    code: GapCode


class NextStep(BaseModel):
    """The single most useful thing a tenant can do next for an issue."""

    action: str
    description: str
    href: str
    urgency: Literal["critical", "high", "medium", "low"]


class CountCheck(BaseModel):
    """Result of comparing one issue's evidence count from two sources."""

    valid: bool
    message: str
