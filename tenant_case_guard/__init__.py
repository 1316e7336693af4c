"""
Tenant Case Guard
Scores how well a tenant has documented their housing issues and gates
consequential actions (closing issues, deleting evidence, generating an
evidence pack) on that case health.
"""

__version__ = "0.1.0"

from tenant_case_guard.models.enforcement import (
    EnforcementAction,
    EnforcementLevel,
    EnforcementResult,
    PlanId,
    PlanMode,
)
from tenant_case_guard.models.health import CaseHealth, CaseHealthStatus
from tenant_case_guard.models.issues import Severity
from tenant_case_guard.models.pack import PackReadiness, PackReadinessStatus
from tenant_case_guard.services.case_health import score_case, score_issue
from tenant_case_guard.services.enforcement import check_enforcement
from tenant_case_guard.services.enforcement_service import EnforcementService
from tenant_case_guard.services.pack_readiness import calculate_pack_readiness
from tenant_case_guard.services.severity import classify, get_display_severity
from tenant_case_guard.store.memory_store import InMemoryCaseStore
from tenant_case_guard.utils.logging import setup_logging

__all__ = [
    'EnforcementAction',
    'EnforcementLevel',
    'EnforcementResult',
    'PlanId',
    'PlanMode',
    'CaseHealth',
    'CaseHealthStatus',
    'Severity',
    'PackReadiness',
    'PackReadinessStatus',
    'score_case',
    'score_issue',
    'check_enforcement',
    'EnforcementService',
    'calculate_pack_readiness',
    'classify',
    'get_display_severity',
    'InMemoryCaseStore',
    'setup_logging',
]
