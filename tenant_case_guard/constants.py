"""
Business logic constants for Tenant Case Guard.

This module contains constants that define the behavior and rules of the system,
as opposed to runtime configuration (which lives in config.py).
"""

from tenant_case_guard.models.health import CaseHealthStatus
from tenant_case_guard.models.issues import IssueStatus, Severity
from tenant_case_guard.models.pack import PackReadinessStatus

# Keyword sets for severity classification, checked in order URGENT -> HIGH -> MEDIUM.
# Matching is by substring of the lower-cased "title description" text.
URGENT_KEYWORDS: tuple[str, ...] = (
    # Fire/smoke hazards
    "fire", "smoke", "burning", "flames",
    # Gas hazards
    "gas leak", "gas smell", "carbon monoxide",
    # Electrical hazards
    "electrical fire", "sparking", "electrocution", "shock",
    # Flooding/major water
    "flood", "flooding", "burst pipe", "burst tap", "sewage",
    # Security emergencies
    "break-in", "intruder", "assault",
)

HIGH_KEYWORDS: tuple[str, ...] = (
    # Water issues (non-flooding)
    "burst", "leak", "leaking", "water damage", "water",
    # Electrical issues
    "electrical", "power outage", "no power", "wiring", "outlet",
    # Security issues
    "door", "lock", "broken lock", "window", "security",
    # Plumbing emergencies
    "toilet", "overflow", "blocked drain", "no hot water", "sewage smell",
    # Health hazards
    "mould", "mold", "asbestos", "pest", "rodent", "cockroach", "infestation",
    # Structural issues
    "ceiling collapse", "wall crack", "structural",
    # Heating/cooling failures
    "no heating", "no cooling", "heater broken", "ac broken",
)

MEDIUM_KEYWORDS: tuple[str, ...] = (
    # Functional but non-dangerous
    "appliance", "dishwasher", "washing machine", "dryer", "fridge", "oven", "stove",
    # Minor plumbing
    "dripping", "tap", "faucet", "slow drain",
    # Minor electrical
    "light", "switch", "bulb",
    # Minor structural
    "crack", "paint", "peeling", "stain",
    # Fixtures
    "handle", "hinge", "cabinet", "drawer",
    # Outdoor
    "fence", "gate", "garden", "gutter",
)

SEVERITY_KEYWORDS: tuple[tuple[Severity, tuple[str, ...]], ...] = (
    (Severity.URGENT, URGENT_KEYWORDS),
    (Severity.HIGH, HIGH_KEYWORDS),
    (Severity.MEDIUM, MEDIUM_KEYWORDS),
)

SEVERITY_RANK: dict[Severity, int] = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.URGENT: 3,
}

# severity -> (days after which it escalates, escalated severity); strictly greater-than
AGE_ESCALATION_RULES: dict[Severity, tuple[int, Severity]] = {
    Severity.HIGH: (14, Severity.URGENT),
    Severity.MEDIUM: (21, Severity.HIGH),
    Severity.LOW: (30, Severity.MEDIUM),
}

# Statuses whose severity is frozen at the stored value
FROZEN_SEVERITY_STATUSES: frozenset[IssueStatus] = frozenset(
    {IssueStatus.RESOLVED, IssueStatus.CLOSED}
)

ACTIVE_ISSUE_STATUSES: tuple[IssueStatus, ...] = (IssueStatus.OPEN, IssueStatus.IN_PROGRESS)

# Case health scoring
HEALTH_BASE_SCORE = 40
HEALTH_STEP_POINTS = 15
EVIDENCE_THRESHOLDS: tuple[int, ...] = (1, 3)
COMMS_THRESHOLDS: tuple[int, ...] = (1, 2)

# Lower bounds of each status band. WEAK is exclusive: the no-data base score is at-risk.
SCORE_THRESHOLDS: dict[CaseHealthStatus, int] = {
    CaseHealthStatus.STRONG: 80,
    CaseHealthStatus.ADEQUATE: 60,
    CaseHealthStatus.WEAK: 40,
}

HEALTH_STATUS_COPY: dict[CaseHealthStatus, tuple[str, str]] = {
    CaseHealthStatus.STRONG: (
        "Strong",
        "Your documentation is solid. Continue maintaining records.",
    ),
    CaseHealthStatus.ADEQUATE: (
        "Adequate",
        "Your case has some gaps. Address the recommendations below.",
    ),
    CaseHealthStatus.WEAK: (
        "Weak",
        "Your position is vulnerable. Take action to strengthen your case.",
    ),
    CaseHealthStatus.AT_RISK: (
        "At Risk",
        "Your case is unprotected. Immediate action required.",
    ),
}

# Evidence older than this many days is flagged as stale
STALE_EVIDENCE_DAYS = 90

# Subscription statuses that count as an active paid plan
ACTIVE_SUBSCRIPTION_STATUSES: frozenset[str] = frozenset({"active", "trialing"})

# Evidence pack readiness scoring (deductions from 100)
PACK_COVERAGE_MAX_PENALTY = 30  # Scaled by the share of open issues left out
PACK_EXCLUDED_HIGH_SEVERITY_PENALTY = 25
PACK_EXCLUDED_WITH_EVIDENCE_PENALTY = 10
PACK_INCLUDED_NO_EVIDENCE_PENALTY = 15
PACK_INCLUDED_NO_COMMS_PENALTY = 5
PACK_STALE_DAYS = 14  # Included issues not updated for longer than this are stale
PACK_TITLE_PREVIEW_CHARS = 40

# Lower bounds of each readiness band; strong and moderate also need zero critical warnings
PACK_SCORE_THRESHOLDS: dict[PackReadinessStatus, int] = {
    PackReadinessStatus.STRONG: 80,
    PackReadinessStatus.MODERATE: 60,
    PackReadinessStatus.WEAK: 40,
}

PACK_STATUS_COPY: dict[PackReadinessStatus, tuple[str, str]] = {
    PackReadinessStatus.STRONG: (
        "Strong",
        "This pack comprehensively covers your open issues with supporting evidence.",
    ),
    PackReadinessStatus.MODERATE: (
        "Moderate",
        "This pack covers most issues but has some gaps. Review warnings before submission.",
    ),
    PackReadinessStatus.WEAK: (
        "Weak",
        "This pack has significant gaps that may weaken your position. Address issues before submitting.",
    ),
    PackReadinessStatus.HIGH_RISK: (
        "High Risk",
        "Critical issues are excluded or lack documentation. This pack may harm your position if submitted as-is.",
    ),
}
