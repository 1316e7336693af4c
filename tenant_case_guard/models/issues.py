from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Risk/impact classification of an issue, independent of its workflow status."""

    URGENT = "Urgent"  # Immediate danger to life or property
    HIGH = "High"  # Significant risk or impact
    MEDIUM = "Medium"  # Functional problem, not dangerous
    LOW = "Low"  # Cosmetic or minor


class IssueStatus(str, Enum):
    """Lifecycle status of an issue."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @property
    def is_active(self) -> bool:
        return self in (IssueStatus.OPEN, IssueStatus.IN_PROGRESS)


class EvidenceType(str, Enum):
    """Kinds of evidence a tenant can attach to an issue."""

    PHOTO = "photo"
    PDF = "pdf"
    SCREENSHOT = "screenshot"
    DOCUMENT = "document"
    OTHER = "other"


class CommsDirection(str, Enum):
    """Direction of a logged communication."""

    OUTBOUND = "outbound"  # Tenant to landlord/agent ("notice sent")
    INBOUND = "inbound"  # Landlord/agent to tenant ("response received")


class Issue(BaseModel):
    """A tenancy issue as stored. `severity` is the stored baseline, never the escalated view."""

    id: str
    user_id: str | None = None
    title: str
    description: str | None = None
    status: IssueStatus = IssueStatus.OPEN
    severity: Severity = Severity.LOW
    created_at: datetime
    updated_at: datetime | None = None


class EvidenceItem(BaseModel):
    """Evidence metadata. File bytes are out of scope."""

    id: str
    issue_id: str | None = None
    type: EvidenceType = EvidenceType.OTHER
    occurred_at: datetime = Field(..., description="Date the evidence represents")
    uploaded_at: datetime | None = Field(None, description="Ingestion time")


class CommsLogEntry(BaseModel):
    """A logged communication with the landlord or agent."""

    id: str | None = None
    issue_id: str | None = None
    occurred_at: datetime
    direction: CommsDirection = CommsDirection.OUTBOUND
