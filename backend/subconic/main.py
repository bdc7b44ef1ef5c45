"""Main FastAPI application for the SUBCONIC backend."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subconic.api.routes.plan import router as plan_router
from subconic.core.config import settings
from subconic.core.errors import InputError, PlanGenerationError
from subconic.core.logging import configure_logging
from subconic.core.middleware import RequestIDMiddleware
from subconic.observability.client import init_opik
from subconic.observability.tracing import trace

configure_logging(log_level=settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)
app.include_router(plan_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report profile validation problems as a 400 failure envelope."""
    logger.warning("Rejected request to %s: %s", request.url.path, exc.errors())
    return _error_response(request, InputError(_describe_validation_error(exc)))


@app.exception_handler(PlanGenerationError)
async def plan_generation_exception_handler(request: Request, exc: PlanGenerationError) -> JSONResponse:
    return _error_response(request, exc)


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can check the API is up."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}


def _error_response(request: Request, exc: PlanGenerationError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or ""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.public_message, "requestId": request_id},
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        if not location or "goal" in location:
            return "A non-empty text 'goal' is required"
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request body")
    return f"{field}: {message}" if field else message
