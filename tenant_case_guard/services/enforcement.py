"""
Case health enforcement policy.

Maps (action, health status, health score, plan) to a decision:

- allowed: proceed with no friction
- warned: dismissible confirmation
- soft-blocked: confirmation with an optional justification, recorded in the audit log
- hard-blocked: cannot proceed

Guided mode (free, plus) applies the full ladder. Advisor mode (pro) computes
the same ladder but downgrades hard-blocked to soft-blocked.

Everything here is pure and total over valid inputs. Invalid inputs raise
InvalidPolicyInput instead of falling back to a default decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tenant_case_guard.billing.plans import parse_plan_id, plan_mode_for
from tenant_case_guard.domain.errors import InvalidPolicyInput
from tenant_case_guard.models.enforcement import (
    AllowedMessage,
    EnforcementAction,
    EnforcementContext,
    EnforcementLevel,
    EnforcementResult,
    HardBlockedMessage,
    PlanId,
    PlanMode,
    SoftBlockedMessage,
    WarnedMessage,
)
from tenant_case_guard.models.health import CaseHealthStatus

logger = logging.getLogger(__name__)

# Single source of truth for the decision ladder
ENFORCEMENT_LADDER: dict[CaseHealthStatus, EnforcementLevel] = {
    CaseHealthStatus.STRONG: EnforcementLevel.ALLOWED,
    CaseHealthStatus.ADEQUATE: EnforcementLevel.WARNED,
    CaseHealthStatus.WEAK: EnforcementLevel.SOFT_BLOCKED,
    CaseHealthStatus.AT_RISK: EnforcementLevel.HARD_BLOCKED,
}

ADVISOR_DOWNGRADES: dict[EnforcementLevel, EnforcementLevel] = {
    EnforcementLevel.HARD_BLOCKED: EnforcementLevel.SOFT_BLOCKED,
}

ACTION_LABELS: dict[EnforcementAction, str] = {
    EnforcementAction.GENERATE_PACK: "Generate Evidence Pack",
    EnforcementAction.CLOSE_ISSUE: "Close Issue",
    EnforcementAction.RESOLVE_ISSUE: "Mark as Resolved",
    EnforcementAction.DELETE_EVIDENCE: "Delete Evidence",
    EnforcementAction.DELETE_COMMS: "Delete Communication Log",
}

ACTION_RISK_DESCRIPTIONS: dict[EnforcementAction, str] = {
    EnforcementAction.GENERATE_PACK: (
        "Generating a pack with incomplete documentation may weaken your position if used in a dispute."
    ),
    EnforcementAction.CLOSE_ISSUE: (
        "Closing an issue without sufficient evidence or communication records may limit your "
        "options if the problem recurs."
    ),
    EnforcementAction.RESOLVE_ISSUE: (
        "Marking this as resolved will move it out of your active case. Ensure you have "
        "documented the resolution."
    ),
    EnforcementAction.DELETE_EVIDENCE: (
        "Deleting evidence permanently removes it from your case. This cannot be undone and may "
        "weaken your position."
    ),
    EnforcementAction.DELETE_COMMS: (
        "Deleting communication logs removes your documentation of landlord/agent contact. "
        "This cannot be undone."
    ),
}

_MESSAGE_TYPES = {
    EnforcementLevel.ALLOWED: AllowedMessage,
    EnforcementLevel.WARNED: WarnedMessage,
    EnforcementLevel.SOFT_BLOCKED: SoftBlockedMessage,
    EnforcementLevel.HARD_BLOCKED: HardBlockedMessage,
}


@dataclass(frozen=True)
class MessageTemplate:
    """Copy for one (action, level) pair. `{status}` and `{score}` are filled in at render time."""

    level: EnforcementLevel
    title: str
    description: str
    warning_text: str | None = None

    def render(self, status: CaseHealthStatus, score: int):
        fields = {
            "title": self.title,
            "description": self.description.format(status=status.value, score=score),
        }
        if self.level is not EnforcementLevel.ALLOWED:
            fields["warning_text"] = self.warning_text
        return _MESSAGE_TYPES[self.level](**fields)


def _build_templates() -> dict[tuple[EnforcementAction, EnforcementLevel], MessageTemplate]:
    templates: dict[tuple[EnforcementAction, EnforcementLevel], MessageTemplate] = {}
    for action in EnforcementAction:
        label = ACTION_LABELS[action]
        risk = ACTION_RISK_DESCRIPTIONS[action]
        templates[(action, EnforcementLevel.ALLOWED)] = MessageTemplate(
            level=EnforcementLevel.ALLOWED,
            title=label,
            description="Your case health is {status} ({score}/100). Proceed when ready.",
        )
        templates[(action, EnforcementLevel.WARNED)] = MessageTemplate(
            level=EnforcementLevel.WARNED,
            title="Consider Before Proceeding",
            description='Your case health is "{status}" ({score}/100). ' + risk,
            warning_text="We recommend addressing the gaps in your documentation first.",
        )
        templates[(action, EnforcementLevel.SOFT_BLOCKED)] = MessageTemplate(
            level=EnforcementLevel.SOFT_BLOCKED,
            title="Are You Sure? Your Case Has Gaps",
            description=(
                'Your case health is "{status}" ({score}/100), indicating significant '
                "documentation gaps. " + risk
            ),
            warning_text=(
                "This action will be logged. You may add a reason for proceeding; "
                "consider improving your case documentation first."
            ),
        )
        templates[(action, EnforcementLevel.HARD_BLOCKED)] = MessageTemplate(
            level=EnforcementLevel.HARD_BLOCKED,
            title=f"Cannot {label} - Case Not Ready",
            description=(
                'Your case health is "{status}" ({score}/100), which means your documentation '
                "is insufficient to proceed safely. " + risk
            ),
            warning_text=(
                "Build your case by adding evidence and logging communications before "
                "attempting this action."
            ),
        )
    return templates


MESSAGE_TEMPLATES = _build_templates()


def parse_action(value: EnforcementAction | str) -> EnforcementAction:
    try:
        return EnforcementAction(value)
    except ValueError as e:
        raise InvalidPolicyInput(f"Unknown enforcement action: {value!r}") from e


def parse_health_status(value: CaseHealthStatus | str) -> CaseHealthStatus:
    try:
        return CaseHealthStatus(value)
    except ValueError as e:
        raise InvalidPolicyInput(f"Unknown health status: {value!r}") from e


def _validate_score(score: int) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidPolicyInput(f"Health score must be an integer, got {score!r}")
    if not 0 <= score <= 100:
        raise InvalidPolicyInput(f"Health score must be within [0, 100], got {score}")
    return score


def check_enforcement(
    action: EnforcementAction | str,
    health_status: CaseHealthStatus | str,
    health_score: int,
    plan_id: PlanId | str,
) -> EnforcementResult:
    """Decide whether `action` may proceed for the given health and plan."""
    action = parse_action(action)
    status = parse_health_status(health_status)
    score = _validate_score(health_score)
    plan = parse_plan_id(plan_id)
    mode = plan_mode_for(plan)

    level = ENFORCEMENT_LADDER[status]
    if mode is PlanMode.ADVISOR:
        level = ADVISOR_DOWNGRADES.get(level, level)

    message = MESSAGE_TEMPLATES[(action, level)].render(status, score)
    logger.debug(
        f"Enforcement {action.value}: status={status.value} score={score} "
        f"plan={plan.value} mode={mode.value} -> {level.value}"
    )

    return EnforcementResult(
        level=level,
        allowed=level is not EnforcementLevel.HARD_BLOCKED,
        requires_confirmation=level.is_overridable,
        message=message,
        context=EnforcementContext(
            action=action,
            health_status=status,
            health_score=score,
            plan_id=plan,
            plan_mode=mode,
        ),
    )


def is_action_blocked(
    action: EnforcementAction | str, health_status: CaseHealthStatus | str, plan_id: PlanId | str
) -> bool:
    return not check_enforcement(action, health_status, 0, plan_id).allowed


def action_requires_confirmation(
    action: EnforcementAction | str, health_status: CaseHealthStatus | str, plan_id: PlanId | str
) -> bool:
    return check_enforcement(action, health_status, 0, plan_id).requires_confirmation


def get_enforcement_summary(
    health_status: CaseHealthStatus | str, plan_id: PlanId | str
) -> dict[EnforcementAction, EnforcementLevel]:
    """Current level of every action for a health status and plan."""
    return {
        action: check_enforcement(action, health_status, 0, plan_id).level
        for action in EnforcementAction
    }


def get_enforcement_explanation(plan_mode: PlanMode | str) -> str:
    """User-facing explanation of what the plan mode means."""
    if PlanMode(plan_mode) is PlanMode.GUIDED:
        return (
            "Guided Mode protects your case by requiring confirmation for risky actions when "
            "your documentation has gaps, and blocks them when your case is at risk."
        )
    return (
        "Advisor Mode gives you more flexibility while still logging important actions. "
        "You'll see recommendations and confirmations, but nothing is blocked outright."
    )
