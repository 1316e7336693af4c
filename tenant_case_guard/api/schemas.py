"""
API request/response schemas for Tenant Case Guard.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from tenant_case_guard.models.enforcement import (
    EnforcementAction,
    EnforcementLevel,
    LogOverrideParams,
    OverrideLogEntry,
    PlanId,
    PlanMode,
)
from tenant_case_guard.models.health import CaseHealthStatus, DocumentationGap, IssueCaseFacts
from tenant_case_guard.models.issues import IssueStatus, Severity


class ClassifyRequest(BaseModel):
    """Request model for keyword severity classification."""

    title: str = Field(..., max_length=500)
    description: str | None = Field(default=None, max_length=10000)


class ClassifyResponse(BaseModel):
    severity: Severity


class SeverityResponse(BaseModel):
    """Stored severity next to the age-escalated one shown to the user."""

    issue_id: str
    status: IssueStatus
    created_at: datetime
    stored_severity: Severity
    display_severity: Severity


class OverrideRequest(BaseModel):
    """Request model for confirming an override of a warning or soft-block."""

    action: EnforcementAction
    enforcement_level: EnforcementLevel
    health_status: CaseHealthStatus
    health_score: int = Field(..., ge=0, le=100)
    issue_id: str | None = None
    evidence_id: str | None = None
    comms_id: str | None = None
    pack_id: str | None = None
    reason: str | None = Field(default=None, max_length=2000)

    def to_params(self) -> LogOverrideParams:
        return LogOverrideParams(**self.model_dump())


class OverrideResponse(BaseModel):
    success: bool


class OverrideHistoryResponse(BaseModel):
    overrides: list[OverrideLogEntry]
    count: int


class IssueFactsResponse(BaseModel):
    """Derived evidence and communication facts for one issue, with its gaps."""

    issue_id: str
    facts: IssueCaseFacts
    gaps: list[DocumentationGap]


class EnforcementSummaryResponse(BaseModel):
    health_status: CaseHealthStatus
    health_score: int
    plan_id: PlanId
    plan_name: str
    plan_mode: PlanMode
    explanation: str
    levels: dict[EnforcementAction, EnforcementLevel]


class PackReadinessRequest(BaseModel):
    """Issues the user intends to include in an evidence pack."""

    issue_ids: list[str] = Field(default_factory=list, max_length=500)
