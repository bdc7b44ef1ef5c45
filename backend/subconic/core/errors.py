"""Error taxonomy for the plan generation pipeline."""
from __future__ import annotations

from fastapi import status


class PlanGenerationError(Exception):
    """Base class for failures surfaced through the plan endpoint."""

    error_code = "plan_generation_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Plan generation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class InputError(PlanGenerationError):
    """The profile is missing a required field or it has the wrong type."""

    error_code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "A non-empty text 'goal' is required"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        # Input problems are safe to echo back; upstream problems are not.
        self.public_message = message or type(self).public_message


class ModelTimeoutError(PlanGenerationError, TimeoutError):
    """The upstream call did not complete within the configured bound."""

    error_code = "upstream_timeout"
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    public_message = "Plan generation timed out"

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Model call exceeded {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class UpstreamError(PlanGenerationError):
    """The upstream service answered with a failure status or empty content."""

    error_code = "upstream_error"

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class NormalizationError(PlanGenerationError):
    """Model output could not be turned into a valid plan."""

    error_code = "normalization_error"

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text
