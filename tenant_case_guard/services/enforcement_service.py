"""
Enforcement orchestration for one authenticated user.

Fetches facts from the store, scores health, evaluates policy, and writes the
audit record before a caller executes an overridden action. Nothing is cached:
every check re-reads the store, so a decision reflects the case at the moment
it is computed.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from tenant_case_guard.billing.plans import plan_mode_for
from tenant_case_guard.config import get_settings
from tenant_case_guard.constants import ACTIVE_ISSUE_STATUSES
from tenant_case_guard.domain.errors import (
    ActionBlocked,
    OverrideNotPermitted,
    ResourceNotFound,
    Unauthenticated,
)
from tenant_case_guard.models.enforcement import (
    EnforcementAction,
    EnforcementLevel,
    EnforcementResult,
    LogOverrideParams,
    OverrideLogEntry,
    PlanId,
)
from tenant_case_guard.models.health import (
    CaseHealth,
    DocumentationGap,
    IssueCaseFacts,
    IssueHealthInput,
    NextStep,
)
from tenant_case_guard.models.issues import Issue, Severity
from tenant_case_guard.models.pack import PackReadiness
from tenant_case_guard.services.case_health import (
    get_recommended_next_step,
    get_weakest_issue,
    score_case,
    score_issue,
)
from tenant_case_guard.services.enforcement import (
    check_enforcement,
    get_enforcement_summary,
    parse_action,
)
from tenant_case_guard.services.evidence_stats import (
    detect_issue_gaps,
    get_issue_case_facts,
    get_issue_comms_stats,
    get_issue_evidence_stats,
    validate_evidence_counts,
)
from tenant_case_guard.services.override_log import OverrideAuditLog
from tenant_case_guard.services.pack_readiness import calculate_pack_readiness
from tenant_case_guard.services.security import sanitize_reason
from tenant_case_guard.services.severity import get_display_severity
from tenant_case_guard.store.base import CaseStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnforcementService:
    """Per-request enforcement entry point. `user_id=None` means unauthenticated."""

    def __init__(
        self,
        store: CaseStore,
        user_id: str | None,
        clock: Callable[[], datetime] = _utcnow,
        audit_log: OverrideAuditLog | None = None,
    ):
        self.store = store
        self.user_id = user_id
        self.clock = clock
        self.audit_log = audit_log or OverrideAuditLog(store)

    # Health

    def get_issue_health(self, issue_id: str) -> CaseHealth | None:
        if not self.user_id:
            return None
        issue = self.store.fetch_issue(issue_id, self.user_id)
        if issue is None:
            return None
        return self._score_issue(issue)

    def get_case_health(self) -> CaseHealth | None:
        if not self.user_id:
            return None
        return score_case(self._active_issue_inputs())

    def get_issue_display_severity(self, issue_id: str) -> tuple[Issue, Severity] | None:
        """The stored issue and the severity to show for it now."""
        if not self.user_id:
            return None
        issue = self.store.fetch_issue(issue_id, self.user_id)
        if issue is None:
            return None
        return issue, get_display_severity(issue.severity, issue.created_at, issue.status, self.clock())

    def get_active_issue_inputs(self) -> list[IssueHealthInput]:
        if not self.user_id:
            return []
        return self._active_issue_inputs()

    def get_issue_facts(self, issue_id: str) -> tuple[IssueCaseFacts, list[DocumentationGap]] | None:
        """Evidence/comms facts for one issue and the documentation gaps they reveal."""
        if not self.user_id:
            return None
        issue = self.store.fetch_issue(issue_id, self.user_id)
        if issue is None:
            return None
        now = self.clock()
        facts = get_issue_case_facts(
            issue,
            self.store.fetch_evidence(self.user_id, issue_id),
            self.store.fetch_comms(self.user_id, issue_id),
            as_of=now,
        )
        return facts, detect_issue_gaps(issue, facts, now=now)

    def get_next_step(self) -> NextStep | None:
        """Most important next step on the weakest active issue, if any."""
        if not self.user_id:
            return None
        weakest = get_weakest_issue(self._active_issue_inputs())
        if weakest is None:
            return None
        return get_recommended_next_step(*weakest)

    def get_enforcement_summary(
        self,
    ) -> tuple[CaseHealth, PlanId, dict[EnforcementAction, EnforcementLevel]] | None:
        """Case health, plan and the level of every action under them."""
        if not self.user_id:
            return None
        health = score_case(self._active_issue_inputs())
        plan_id = self.store.fetch_plan(self.user_id)
        return health, plan_id, get_enforcement_summary(health.status, plan_id)

    def get_pack_readiness(self, issue_ids: list[str]) -> PackReadiness | None:
        """Readiness of a pack built from `issue_ids`. Ids the user does not own are ignored."""
        if not self.user_id:
            return None
        issues = self.store.fetch_issues(self.user_id)
        owned = {i.id for i in issues}
        unknown = [i for i in issue_ids if i not in owned]
        if unknown:
            logger.info(
                f"Ignoring {len(unknown)} unknown issue ids in pack selection for user {self.user_id}"
            )

        evidence = self.store.fetch_evidence(self.user_id)
        now = self.clock()
        for issue_id in set(issue_ids) & owned:
            validate_evidence_counts(
                issue_id,
                get_issue_evidence_stats(issue_id, evidence).total_count,
                len(self.store.fetch_evidence(self.user_id, issue_id)),
                first_name="case",
                second_name="issue",
            )
        return calculate_pack_readiness(
            issues,
            issue_ids,
            evidence,
            self.store.fetch_comms(self.user_id),
            now=now,
            severities={
                i.id: get_display_severity(i.severity, i.created_at, i.status, now) for i in issues
            },
        )

    # Checks

    def check_enforcement_for_issue(
        self, issue_id: str, action: EnforcementAction | str
    ) -> EnforcementResult | None:
        """Decision for an action on one issue. None means the caller cannot proceed."""
        action = parse_action(action)
        if not self.user_id:
            logger.info(f"Enforcement check for {action.value} without a user; blocking")
            return None

        issue = self.store.fetch_issue(issue_id, self.user_id)
        if issue is None:
            logger.info(f"Issue {issue_id} not found for user {self.user_id}")
            return None

        health = self._score_issue(issue)
        result = self._evaluate(action, health)
        return result.model_copy(update={"issue_id": issue_id, "user_id": self.user_id})

    def check_enforcement_for_case(self, action: EnforcementAction | str) -> EnforcementResult | None:
        """Decision for a case-wide action, against the weakest active issue."""
        action = parse_action(action)
        if not self.user_id:
            logger.info(f"Enforcement check for {action.value} without a user; blocking")
            return None

        health = score_case(self._active_issue_inputs())
        result = self._evaluate(action, health)
        return result.model_copy(update={"user_id": self.user_id})

    def can_close_issue(self, issue_id: str) -> EnforcementResult | None:
        return self.check_enforcement_for_issue(issue_id, EnforcementAction.CLOSE_ISSUE)

    def can_resolve_issue(self, issue_id: str) -> EnforcementResult | None:
        return self.check_enforcement_for_issue(issue_id, EnforcementAction.RESOLVE_ISSUE)

    def can_delete_evidence(self, issue_id: str) -> EnforcementResult | None:
        return self.check_enforcement_for_issue(issue_id, EnforcementAction.DELETE_EVIDENCE)

    def can_delete_comms(self, issue_id: str) -> EnforcementResult | None:
        return self.check_enforcement_for_issue(issue_id, EnforcementAction.DELETE_COMMS)

    def can_generate_pack(self) -> EnforcementResult | None:
        return self.check_enforcement_for_case(EnforcementAction.GENERATE_PACK)

    # Overrides

    def log_override(self, params: LogOverrideParams) -> bool:
        """Record that the user is proceeding past a warning or soft-block.

        Returns False without a user. Raises OverrideNotPermitted for levels that
        cannot be overridden and AuditWriteFailed if the record is not written;
        in both cases the caller must not run the mutation.
        """
        if not self.user_id:
            return False
        if not params.enforcement_level.is_overridable:
            raise OverrideNotPermitted(
                f"Cannot log an override for enforcement level '{params.enforcement_level.value}'"
            )

        plan_id = self.store.fetch_plan(self.user_id)
        entry = OverrideLogEntry(
            user_id=self.user_id,
            action=params.action,
            enforcement_level=params.enforcement_level,
            health_status=params.health_status,
            health_score=params.health_score,
            issue_id=params.issue_id,
            evidence_id=params.evidence_id,
            comms_id=params.comms_id,
            pack_id=params.pack_id,
            reason=sanitize_reason(params.reason, get_settings().override_reason_max_chars),
            plan_id=plan_id,
            plan_mode=plan_mode_for(plan_id),
            created_at=self.clock(),
        )
        self.audit_log.record(entry)
        return True

    def get_override_history(self, limit: int | None = None) -> list[OverrideLogEntry]:
        if not self.user_id:
            return []
        if limit is None:
            limit = get_settings().override_history_default_limit
        return self.audit_log.history(self.user_id, limit)

    def confirm_and_execute(
        self,
        action: EnforcementAction | str,
        execute: Callable[[], T],
        *,
        issue_id: str | None = None,
        evidence_id: str | None = None,
        comms_id: str | None = None,
        pack_id: str | None = None,
        reason: str | None = None,
    ) -> T:
        """Re-check the action, audit any override, then run `execute`.

        The decision is recomputed here rather than trusted from an earlier
        check, so a case that weakened in between is caught. The audit record
        is written before `execute` runs; if the write fails, `execute` is not
        called.
        """
        action = parse_action(action)
        if not self.user_id:
            raise Unauthenticated("Sign in to continue")

        if action.is_case_wide:
            result = self.check_enforcement_for_case(action)
        else:
            if not issue_id:
                raise ResourceNotFound(f"Action {action.value} requires an issue")
            result = self.check_enforcement_for_issue(issue_id, action)
            if result is None:
                raise ResourceNotFound(f"Issue {issue_id} not found")

        if result.level is EnforcementLevel.HARD_BLOCKED:
            logger.info(
                f"Blocked {action.value} for user {self.user_id}: "
                f"case health {result.context.health_status.value}"
            )
            raise ActionBlocked(result.message.description)

        if result.requires_confirmation:
            self.log_override(
                LogOverrideParams(
                    action=action,
                    enforcement_level=result.level,
                    health_status=result.context.health_status,
                    health_score=result.context.health_score,
                    issue_id=issue_id,
                    evidence_id=evidence_id,
                    comms_id=comms_id,
                    pack_id=pack_id,
                    reason=reason,
                )
            )

        return execute()

    # Internals

    def _evaluate(self, action: EnforcementAction, health: CaseHealth) -> EnforcementResult:
        plan_id = self.store.fetch_plan(self.user_id)
        result = check_enforcement(action, health.status, health.score, plan_id)
        if not result.allowed:
            logger.info(
                f"Action {action.value} hard-blocked for user {self.user_id} "
                f"(health {health.status.value}/{health.score}, plan {plan_id.value})"
            )
        return result

    def _score_issue(self, issue: Issue) -> CaseHealth:
        evidence = self.store.fetch_evidence(self.user_id, issue.id)
        comms = self.store.fetch_comms(self.user_id, issue.id)
        evidence_count = get_issue_evidence_stats(issue.id, evidence).total_count
        comms_count = get_issue_comms_stats(issue.id, comms).total_count
        return score_issue(evidence_count, comms_count)

    def _active_issue_inputs(self) -> list[IssueHealthInput]:
        issues = self.store.fetch_issues(self.user_id, ACTIVE_ISSUE_STATUSES)
        if not issues:
            return []
        evidence_counts = Counter(e.issue_id for e in self.store.fetch_evidence(self.user_id))
        comms_counts = Counter(c.issue_id for c in self.store.fetch_comms(self.user_id))
        now = self.clock()
        return [
            IssueHealthInput(
                issue_id=issue.id,
                title=issue.title,
                severity=get_display_severity(issue.severity, issue.created_at, issue.status, now),
                evidence_count=evidence_counts.get(issue.id, 0),
                comms_count=comms_counts.get(issue.id, 0),
            )
            for issue in issues
        ]
