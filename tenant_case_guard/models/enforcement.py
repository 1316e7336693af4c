from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tenant_case_guard.models.health import CaseHealthStatus


class EnforcementLevel(str, Enum):
    """How much friction an action meets."""

    ALLOWED = "allowed"  # No friction
    WARNED = "warned"  # Dismissible confirmation
    SOFT_BLOCKED = "soft-blocked"  # Confirmation plus optional justification, logged
    HARD_BLOCKED = "hard-blocked"  # Cannot proceed

    @property
    def is_overridable(self) -> bool:
        return self in (EnforcementLevel.WARNED, EnforcementLevel.SOFT_BLOCKED)


class EnforcementAction(str, Enum):
    """Consequential actions gated by case health."""

    CLOSE_ISSUE = "close_issue"
    RESOLVE_ISSUE = "resolve_issue"
    DELETE_EVIDENCE = "delete_evidence"
    DELETE_COMMS = "delete_comms"
    GENERATE_PACK = "generate_pack"  # Evaluated against aggregate case health

    @property
    def is_case_wide(self) -> bool:
        return self is EnforcementAction.GENERATE_PACK


class PlanId(str, Enum):
    FREE = "free"
    PLUS = "plus"
    PRO = "pro"


class PlanMode(str, Enum):
    GUIDED = "guided"  # Full enforcement (free, plus)
    ADVISOR = "advisor"  # Never above soft-blocked (pro)


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    description: str


class AllowedMessage(_Message):
    kind: Literal["allowed"] = "allowed"


class WarnedMessage(_Message):
    kind: Literal["warned"] = "warned"
    warning_text: str | None = None
    confirm_label: str = "Proceed"
    cancel_label: str = "Cancel"


class SoftBlockedMessage(_Message):
    kind: Literal["soft-blocked"] = "soft-blocked"
    warning_text: str | None = None
    confirm_label: str = "Proceed Anyway"
    cancel_label: str = "Cancel"


class HardBlockedMessage(_Message):
    """No confirm action: a hard block offers only a way back."""

    kind: Literal["hard-blocked"] = "hard-blocked"
    warning_text: str | None = None
    cancel_label: str = "Go Back"


EnforcementMessage = Annotated[
    Union[AllowedMessage, WarnedMessage, SoftBlockedMessage, HardBlockedMessage],
    Field(discriminator="kind"),
]


class EnforcementContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: EnforcementAction
    health_status: CaseHealthStatus
    health_score: int = Field(..., ge=0, le=100)
    plan_id: PlanId
    plan_mode: PlanMode


class EnforcementResult(BaseModel):
    """Decision for one action. `allowed` is False exactly when the level is hard-blocked."""

    level: EnforcementLevel
    allowed: bool
    requires_confirmation: bool
    message: EnforcementMessage
    context: EnforcementContext
    issue_id: str | None = None
    user_id: str | None = None

    @model_validator(mode="after")
    def check_level_consistency(self) -> "EnforcementResult":
        if self.allowed != (self.level is not EnforcementLevel.HARD_BLOCKED):
            raise ValueError("allowed must be False iff level is hard-blocked")
        if self.requires_confirmation != self.level.is_overridable:
            raise ValueError("requires_confirmation must be True iff level is warned or soft-blocked")
        if self.message.kind != self.level.value:
            raise ValueError(f"message kind {self.message.kind!r} does not match level {self.level.value!r}")
        return self


class OverrideLogEntry(BaseModel):
    """Audit record of a user proceeding past a warning or soft-block."""

    id: str | None = None
    user_id: str
    action: EnforcementAction
    enforcement_level: EnforcementLevel
    health_status: CaseHealthStatus
    health_score: int = Field(..., ge=0, le=100)
    issue_id: str | None = None
    evidence_id: str | None = None
    comms_id: str | None = None
    pack_id: str | None = None
    reason: str | None = None
    plan_id: PlanId
    plan_mode: PlanMode
    created_at: datetime


class LogOverrideParams(BaseModel):
    """What a caller supplies when confirming an override; user and plan are filled in server-side."""

    action: EnforcementAction
    enforcement_level: EnforcementLevel
    health_status: CaseHealthStatus
    health_score: int = Field(..., ge=0, le=100)
    issue_id: str | None = None
    evidence_id: str | None = None
    comms_id: str | None = None
    pack_id: str | None = None
    reason: str | None = None
