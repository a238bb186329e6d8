"""
FILE: reallocation_planner/api/main.py
"""

import logging
from typing import Annotated, Optional

from fastapi import FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from reallocation_planner.api.config import live_reads_enabled, max_sourcing_vaults
from reallocation_planner.api.http_status import (
    HTTP_422_UNPROCESSABLE,
    raise_planning_http_exception,
)
from reallocation_planner.api.observability import (
    annotate_request,
    record_plan_outcome,
    setup_observability,
)
from reallocation_planner.api.request_models import (
    CapacityRequest,
    PlanRequest,
    PlanResponse,
    RankedVaultSummary,
    SourcingRequest,
    SourcingResponse,
    ValidateRequest,
    ValidateResponse,
)
from reallocation_planner.core.capacity import capacity_source_for
from reallocation_planner.core.capacity.index import vault_candidate_from_index
from reallocation_planner.core.models import (
    CapacityReport,
    PlanningPreconditionError,
    VaultCandidate,
)
from reallocation_planner.core.planner import (
    plan_from_ranked,
    plan_reallocation,
    plan_status,
    rank_vaults_by_pullable,
    total_available_liquidity,
)
from reallocation_planner.core.pullable import capacity_report
from reallocation_planner.core.validation import validate_manual_withdrawals

app = FastAPI(
    title="Liquidity Reallocation Planner API",
    version="0.1.0",
    description=(
        "Deterministic planner for pulling vault liquidity into a target market.\n\n"
        "Plan outcomes for valid payloads are returned in response body status: "
        "`PLANNED`, `PARTIAL`, or `NO_CAPACITY`."
    ),
    openapi_tags=[
        {
            "name": "Reallocation Planning",
            "description": "Single-vault capacity, plan and validation endpoints.",
        },
        {
            "name": "Liquidity Sourcing",
            "description": "Vault selection across several allocator-enabled vaults.",
        },
        {"name": "Health", "description": "Liveness and readiness probes."},
    ],
)
setup_observability(app)

logger = logging.getLogger(__name__)


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )


@app.get("/health", tags=["Health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live", tags=["Health"])
def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready", tags=["Health"])
def health_ready() -> dict[str, str]:
    return {"status": "ready"}


def _effective_live_reads(live_reads):
    if live_reads is None:
        return None
    if not live_reads_enabled():
        logger.debug("Ignoring live reads; REALLOCATION_LIVE_READS_ENABLED is off.")
        return None
    return live_reads


@app.post(
    "/reallocation/capacity",
    response_model=CapacityReport,
    tags=["Reallocation Planning"],
    summary="Size Pullable Liquidity",
    description=(
        "Returns per-source pullable amounts, the destination's absorbable bound and the "
        "total pullable amount (sum of sources clamped by the destination bound)."
    ),
)
def get_capacity(request: CapacityRequest) -> CapacityReport:
    source = capacity_source_for(request.snapshot, _effective_live_reads(request.live_reads))
    report = capacity_report(source, request.destination_market_id)
    annotate_request(
        destination=report.destination_market_id,
        total_pullable=str(report.total_pullable),
    )
    return report


@app.post(
    "/reallocation/plan",
    response_model=PlanResponse,
    tags=["Reallocation Planning"],
    summary="Plan A Single-Vault Reallocation",
    description=(
        "Clamps the request by pullable capacity, allocates greedily across source markets, "
        "sorts withdrawals by market id and returns bundler and allocator calldata.\n\n"
        "Insufficient capacity is reported as `PARTIAL` or `NO_CAPACITY`, not as an error."
    ),
)
def plan(
    request: PlanRequest,
    correlation_id: Annotated[Optional[str], Header(alias="X-Correlation-Id")] = None,
) -> PlanResponse:
    logger.info(
        "Planning reallocation. CID=%s vault=%s destination=%s requested=%s",
        correlation_id,
        request.snapshot.vault_address,
        request.destination_market_id,
        request.requested_amount,
    )
    candidate = VaultCandidate(
        vault_address=request.snapshot.vault_address,
        name=request.vault_name,
        fee=request.fee,
        snapshot=request.snapshot,
        live_reads=_effective_live_reads(request.live_reads),
    )
    try:
        result = plan_reallocation(
            candidate,
            request.destination_market_id,
            request.requested_amount,
            request.allocator_address,
            destination_params=request.destination_market_params,
        )
    except PlanningPreconditionError as exc:
        raise_planning_http_exception(exc)

    response = PlanResponse(status=plan_status(result), plan=result)
    record_plan_outcome(
        "plan",
        response.status,
        destination=request.destination_market_id,
        vault=request.snapshot.vault_address,
        planned_amount=str(result.planned_amount if result else 0),
    )
    if response.status != "PLANNED":
        logger.warning(
            "Reallocation not fully covered. CID=%s status=%s planned=%s",
            correlation_id,
            response.status,
            result.planned_amount if result else 0,
        )
    return response


@app.post(
    "/reallocation/validate",
    response_model=ValidateResponse,
    tags=["Reallocation Planning"],
    summary="Validate Manual Withdrawals",
)
def validate(request: ValidateRequest) -> ValidateResponse:
    source = capacity_source_for(request.snapshot, _effective_live_reads(request.live_reads))
    violations = validate_manual_withdrawals(
        source, request.destination_market_id, request.withdrawals
    )
    annotate_request(
        destination=request.destination_market_id,
        violation_count=len(violations),
    )
    return ValidateResponse(valid=not violations, violations=violations)


@app.post(
    "/liquidity-sourcing/plan",
    response_model=SourcingResponse,
    tags=["Liquidity Sourcing"],
    summary="Source Liquidity Across Vaults",
    description=(
        "Ranks allocator-enabled vaults by pullable amount for the destination, picks the "
        "first vault able to cover the request alone (else the largest) and plans it."
    ),
)
def source_liquidity(
    request: SourcingRequest,
    correlation_id: Annotated[Optional[str], Header(alias="X-Correlation-Id")] = None,
) -> SourcingResponse:
    limit = max_sourcing_vaults()
    if len(request.vaults) > limit:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail=f"TOO_MANY_VAULTS: at most {limit} vault payloads are accepted",
        )
    try:
        candidates = [vault_candidate_from_index(payload) for payload in request.vaults]
    except ValidationError as exc:
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail=f"INVALID_VAULT_PAYLOAD: {exc.error_count()} validation error(s)",
        ) from exc

    logger.info(
        "Sourcing liquidity. CID=%s destination=%s needed=%s vaults=%s",
        correlation_id,
        request.destination_market_id,
        request.extra_amount_needed,
        len(candidates),
    )
    ranked = rank_vaults_by_pullable(candidates, request.destination_market_id)
    try:
        result = plan_from_ranked(
            ranked,
            request.destination_market_id,
            request.extra_amount_needed,
            request.allocator_address,
            destination_params=request.destination_market_params,
        )
    except PlanningPreconditionError as exc:
        raise_planning_http_exception(exc)

    total = total_available_liquidity(ranked)
    outcome = plan_status(result)
    record_plan_outcome(
        "liquidity-sourcing",
        outcome,
        destination=request.destination_market_id,
        vault=result.vault_address if result else None,
        vault_count=len(candidates),
    )
    return SourcingResponse(
        status=outcome,
        total_available_liquidity=total,
        can_source_liquidity=total > 0,
        vaults=[
            RankedVaultSummary(
                vault_address=item.candidate.vault_address,
                name=item.candidate.name,
                pullable=item.pullable,
            )
            for item in ranked
        ],
        plan=result,
    )
