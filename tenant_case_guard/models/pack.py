from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class PackReadinessStatus(str, Enum):
    """How safe an evidence pack is to submit as selected."""

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    HIGH_RISK = "high-risk"


class PackWarning(BaseModel):
    type: Literal["critical", "warning", "info"]
    title: str
    message: str
    issue_id: str | None = None
    issue_title: str | None = None


class PackCoverage(BaseModel):
    """Open issues in and out of the pack. Resolved/closed selections are not counted."""

    included_issues: int = 0
    excluded_issues: int = 0
    total_open_issues: int = 0


class PackReadiness(BaseModel):
    """Readiness of a pack for the issues a user selected. Computed, never stored."""

    score: int = Field(..., ge=0, le=100)
    status: PackReadinessStatus
    status_label: str
    status_description: str
    warnings: list[PackWarning] = Field(default_factory=list)
    coverage: PackCoverage
    requires_confirmation: bool

