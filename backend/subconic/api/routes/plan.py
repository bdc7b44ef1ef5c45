"""Plan generation endpoint."""
from __future__ import annotations

import logging
from time import perf_counter

from fastapi import APIRouter, Depends, Request

from subconic.api.schemas.plan import PlanErrorResponse, PlanSuccessResponse, StatusResponse, UserProfile
from subconic.core.config import settings
from subconic.core.errors import PlanGenerationError
from subconic.observability.metrics import log_metric
from subconic.observability.tracing import trace
from subconic.services.model_client import GenerationOptions, ModelClient, get_model_client
from subconic.services.plan_generator import generate_plan
from subconic.services.prompt_builder import PromptTemplate, get_prompt_template

logger = logging.getLogger(__name__)

router = APIRouter()


def get_plan_template() -> PromptTemplate:
    return get_prompt_template(settings.prompt_template, settings.plan_required_fields)


def get_generation_options() -> GenerationOptions:
    return GenerationOptions.from_settings()


@router.get("/", response_model=StatusResponse, tags=["health"])
async def root_status() -> StatusResponse:
    return StatusResponse(status="SUBCONIC API running")


@router.post(
    "/api/generate-plan",
    response_model=PlanSuccessResponse,
    responses={400: {"model": PlanErrorResponse}, 500: {"model": PlanErrorResponse}, 504: {"model": PlanErrorResponse}},
    response_model_exclude_none=True,
    tags=["plans"],
)
async def generate_plan_endpoint(
    http_request: Request,
    profile: UserProfile,
    client: ModelClient = Depends(get_model_client),
    template: PromptTemplate = Depends(get_plan_template),
    options: GenerationOptions = Depends(get_generation_options),
) -> PlanSuccessResponse:
    """Generate a goal plan from the caller's profile."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {
        "route": "/api/generate-plan",
        "template": template.name,
        "policy": settings.plan_failure_policy,
        "goal": profile.goal[:200],
    }
    logger.info("Plan requested goal=%r template=%s", profile.goal[:200], template.name)
    start = perf_counter()

    try:
        with trace("plan.request", metadata=metadata, request_id=request_id):
            outcome = await generate_plan(
                profile,
                client,
                template,
                options,
                failure_policy=settings.plan_failure_policy,
                request_id=request_id,
            )
    except PlanGenerationError as exc:
        logger.error("Plan generation failed goal=%r reason=%s", profile.goal[:200], exc.error_code)
        log_metric("plan.request.latency_ms", (perf_counter() - start) * 1000, {"success": False})
        raise

    latency_ms = (perf_counter() - start) * 1000
    log_metric("plan.request.latency_ms", latency_ms, {"success": True, "fallback_used": outcome.fallback_used})
    if outcome.fallback_used:
        logger.info("Plan served from fallback goal=%r reason=%s", profile.goal[:200], outcome.failure_reason)
    else:
        logger.info("Plan generated goal=%r in %.0fms", profile.goal[:200], latency_ms)

    return PlanSuccessResponse(
        plan=outcome.plan,
        fallback_used=outcome.fallback_used,
        request_id=request_id or "",
    )
