"""Prompt -> model -> normalizer pipeline with the deployment's failure policy."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional

from subconic.api.schemas.plan import GeneratedPlan, UserProfile
from subconic.core.errors import ModelTimeoutError, NormalizationError, PlanGenerationError, UpstreamError
from subconic.observability.metrics import log_metric
from subconic.observability.tracing import trace
from subconic.services.model_client import GenerationOptions, ModelClient
from subconic.services.plan_fallback import build_fallback_plan
from subconic.services.plan_normalizer import normalize
from subconic.services.prompt_builder import PromptTemplate, build_prompt

logger = logging.getLogger(__name__)

POLICY_ERROR = "error"
POLICY_FALLBACK = "fallback"
FAILURE_POLICIES = {POLICY_ERROR, POLICY_FALLBACK}


@dataclass
class PlanOutcome:
    plan: GeneratedPlan
    fallback_used: bool = False
    failure_reason: Optional[str] = None


async def generate_plan(
    profile: UserProfile,
    client: ModelClient,
    template: PromptTemplate,
    options: GenerationOptions,
    failure_policy: str = POLICY_ERROR,
    request_id: str | None = None,
) -> PlanOutcome:
    """Generate a plan for one profile; raise or fall back according to failure_policy."""
    policy = failure_policy.lower()
    if policy not in FAILURE_POLICIES:
        raise ValueError(f"Unknown failure policy '{failure_policy}'")

    trace_metadata: Dict[str, Any] = {
        "template": template.name,
        "client": client.name,
        "timeout_ms": options.timeout_ms,
        "language": profile.language,
    }
    prompt = build_prompt(profile, template)
    start = perf_counter()

    try:
        with trace("plan.generate", metadata=trace_metadata, request_id=request_id):
            raw_text = await client.generate(prompt, options)
        log_metric("plan.model.latency_ms", (perf_counter() - start) * 1000, {"template": template.name})
        plan = normalize(raw_text, profile, template)
    except (ModelTimeoutError, UpstreamError, NormalizationError) as exc:
        _log_failure(exc)
        log_metric("plan.generate.failure", 1, {"error_code": exc.error_code, "template": template.name})
        if policy != POLICY_FALLBACK:
            raise
        log_metric("plan.fallback.used", 1, {"error_code": exc.error_code})
        return PlanOutcome(
            plan=build_fallback_plan(profile, template),
            fallback_used=True,
            failure_reason=exc.error_code,
        )

    log_metric("plan.generate.success", 1, {"template": template.name})
    return PlanOutcome(plan=plan)


def _log_failure(exc: PlanGenerationError) -> None:
    if isinstance(exc, NormalizationError):
        logger.warning("Model output could not be normalized: %s | raw=%r", exc, (exc.raw_text or "")[:2000])
    elif isinstance(exc, ModelTimeoutError):
        logger.warning("Model call timed out after %sms", exc.timeout_ms)
    else:
        logger.warning("Model call failed: %s (upstream_status=%s)", exc, getattr(exc, "upstream_status", None))
