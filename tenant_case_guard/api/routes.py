"""
API routes for Tenant Case Guard.
"""

import logging

from fastapi import APIRouter, Depends, Header, Query, Request, status

from tenant_case_guard.api.schemas import (
    ClassifyRequest,
    ClassifyResponse,
    EnforcementSummaryResponse,
    IssueFactsResponse,
    OverrideHistoryResponse,
    OverrideRequest,
    OverrideResponse,
    PackReadinessRequest,
    SeverityResponse,
)
from tenant_case_guard.billing.plans import get_plan_definition, plan_mode_for
from tenant_case_guard.config import get_settings
from tenant_case_guard.domain.errors import ResourceNotFound, Unauthenticated
from tenant_case_guard.models.enforcement import EnforcementResult
from tenant_case_guard.models.health import CaseHealth
from tenant_case_guard.models.pack import PackReadiness
from tenant_case_guard.observability.rate_limiter import rate_limit
from tenant_case_guard.services.enforcement import get_enforcement_explanation
from tenant_case_guard.services.enforcement_service import EnforcementService
from tenant_case_guard.services.severity import classify
from tenant_case_guard.store.base import CaseStore
from tenant_case_guard.utils.health_check import calculate_overall_status, check_all_dependencies

# Initialize router
router = APIRouter()

# Initialize logger
logger = logging.getLogger(__name__)


def get_store(request: Request) -> CaseStore:
    return request.app.state.store


def get_current_user_id(
    request: Request, x_api_key: str | None = Header(default=None, alias="X-API-Key")
) -> str:
    """Resolve the caller from the X-API-Key header; no key means no user."""
    user_id = get_settings().api_keys.get(x_api_key) if x_api_key else None
    if not user_id:
        raise Unauthenticated("A valid API key is required")
    request.state.user_id = user_id
    return user_id


def get_enforcement_service(
    store: CaseStore = Depends(get_store), user_id: str = Depends(get_current_user_id)
) -> EnforcementService:
    return EnforcementService(store, user_id)


@router.get("/api/issues/{issue_id}/enforcement", response_model=EnforcementResult)
@rate_limit()
async def issue_enforcement(
    request: Request,
    issue_id: str,
    action: str = Query(..., description="Action to check, e.g. close_issue"),
    service: EnforcementService = Depends(get_enforcement_service),
) -> EnforcementResult:
    result = service.check_enforcement_for_issue(issue_id, action)
    if result is None:
        raise ResourceNotFound(f"Issue {issue_id} not found")
    return result


@router.get("/api/case/enforcement", response_model=EnforcementResult)
@rate_limit()
async def case_enforcement(
    request: Request,
    action: str = Query(default="generate_pack"),
    service: EnforcementService = Depends(get_enforcement_service),
) -> EnforcementResult:
    result = service.check_enforcement_for_case(action)
    if result is None:
        raise Unauthenticated("A valid API key is required")
    return result


@router.get("/api/issues/{issue_id}/health", response_model=CaseHealth)
@rate_limit()
async def issue_health(
    request: Request,
    issue_id: str,
    service: EnforcementService = Depends(get_enforcement_service),
) -> CaseHealth:
    health = service.get_issue_health(issue_id)
    if health is None:
        raise ResourceNotFound(f"Issue {issue_id} not found")
    return health


@router.get("/api/case/health", response_model=CaseHealth)
@rate_limit()
async def case_health(
    request: Request, service: EnforcementService = Depends(get_enforcement_service)
) -> CaseHealth:
    health = service.get_case_health()
    if health is None:
        raise Unauthenticated("A valid API key is required")
    return health


@router.get("/api/issues/{issue_id}/severity", response_model=SeverityResponse)
@rate_limit()
async def issue_severity(
    request: Request,
    issue_id: str,
    service: EnforcementService = Depends(get_enforcement_service),
) -> SeverityResponse:
    found = service.get_issue_display_severity(issue_id)
    if found is None:
        raise ResourceNotFound(f"Issue {issue_id} not found")
    issue, display = found
    return SeverityResponse(
        issue_id=issue.id,
        status=issue.status,
        created_at=issue.created_at,
        stored_severity=issue.severity,
        display_severity=display,
    )


@router.post("/api/severity/classify", response_model=ClassifyResponse)
@rate_limit()
async def classify_severity(
    request: Request, req: ClassifyRequest, user_id: str = Depends(get_current_user_id)
) -> ClassifyResponse:
    return ClassifyResponse(severity=classify(req.title, req.description))


@router.post(
    "/api/overrides", response_model=OverrideResponse, status_code=status.HTTP_201_CREATED
)
@rate_limit()
async def create_override(
    request: Request,
    req: OverrideRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> OverrideResponse:
    if not service.log_override(req.to_params()):
        raise Unauthenticated("A valid API key is required")
    return OverrideResponse(success=True)


@router.get("/api/overrides", response_model=OverrideHistoryResponse)
@rate_limit()
async def list_overrides(
    request: Request,
    limit: int | None = Query(default=None, ge=1),
    service: EnforcementService = Depends(get_enforcement_service),
) -> OverrideHistoryResponse:
    overrides = service.get_override_history(limit)
    return OverrideHistoryResponse(overrides=overrides, count=len(overrides))


@router.get("/api/health")
async def health(request: Request) -> dict:
    dependencies = await check_all_dependencies(getattr(request.app.state, "store", None))
    return {
        "status": calculate_overall_status(dependencies),
        "dependencies": {name: dep.to_dict() for name, dep in dependencies.items()},
    }


@router.get("/api/issues/{issue_id}/facts", response_model=IssueFactsResponse)
@rate_limit()
async def issue_facts(
    request: Request,
    issue_id: str,
    service: EnforcementService = Depends(get_enforcement_service),
) -> IssueFactsResponse:
    found = service.get_issue_facts(issue_id)
    if found is None:
        raise ResourceNotFound(f"Issue {issue_id} not found")
    facts, gaps = found
    return IssueFactsResponse(issue_id=issue_id, facts=facts, gaps=gaps)


@router.get("/api/case/next-step")
@rate_limit()
async def case_next_step(
    request: Request, service: EnforcementService = Depends(get_enforcement_service)
) -> dict:
    """Recommended next step on the weakest active issue; null when nothing is open."""
    step = service.get_next_step()
    return {"next_step": step.model_dump() if step else None}


@router.get("/api/case/enforcement/summary", response_model=EnforcementSummaryResponse)
@rate_limit()
async def case_enforcement_summary(
    request: Request, service: EnforcementService = Depends(get_enforcement_service)
) -> EnforcementSummaryResponse:
    summary = service.get_enforcement_summary()
    if summary is None:
        raise Unauthenticated("A valid API key is required")
    health, plan_id, levels = summary
    plan_mode = plan_mode_for(plan_id)
    return EnforcementSummaryResponse(
        health_status=health.status,
        health_score=health.score,
        plan_id=plan_id,
        plan_name=get_plan_definition(plan_id).plan_name,
        plan_mode=plan_mode,
        explanation=get_enforcement_explanation(plan_mode),
        levels=levels,
    )


@router.post("/api/case/pack-readiness", response_model=PackReadiness)
@rate_limit()
async def case_pack_readiness(
    request: Request,
    req: PackReadinessRequest,
    service: EnforcementService = Depends(get_enforcement_service),
) -> PackReadiness:
    """Coverage and warnings for a pack built from the selected issues."""
    readiness = service.get_pack_readiness(req.issue_ids)
    if readiness is None:
        raise Unauthenticated("A valid API key is required")
    return readiness
