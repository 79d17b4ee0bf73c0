"""
FSA Feedback API

FastAPI-based REST API for the structural validation engine.
Provides endpoints for validation, remote-style preview, DOT export and
health checks.

Security features:
  - Rate limiting via slowapi
  - Optional API key authentication (set API_KEY env var to enable)
"""

import traceback
import uuid
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import Response

from . import __version__
from .core.config import ServiceSettings
from .core.logging_config import get_logger, setup_logging
from .core.models import Automaton, EvaluationConfig, ExpectedType
from .core.remote import PreviewRequest
from .core.render import to_dot
from .core.schemas import FeedbackReport
from .main import FSAFeedbackSystem

logger = get_logger(__name__)

settings = ServiceSettings.from_env()

# --- Rate Limiter ---
limiter = Limiter(key_func=get_remote_address)

# --- API Key Auth (optional) ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(request: Request, api_key: Optional[str] = Security(api_key_header)):
    """Validate API key if one is configured. No-op when unset."""
    expected = request.app.state.settings.api_key
    if expected is None:
        return  # Auth disabled
    if api_key != expected:
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Invalid or missing API key",
                "error_type": "AuthenticationError",
                "hint": "Provide a valid X-API-Key header."
            }
        )


# --- Lifespan Management ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.
    Uses app.state for singleton management instead of global variables.
    """
    s = app.state.settings
    setup_logging(log_dir=s.log_dir, log_level=s.log_level, file_output=s.log_dir is not None)
    logger.info("system_starting", environment=s.environment)
    try:
        app.state.system = FSAFeedbackSystem()
        app.state.system_error = None
    except Exception as e:
        logger.error("system_init_failed", error=str(e))
        app.state.system = None
        app.state.system_error = str(e)

    yield

    logger.info("system_stopping")
    app.state.system = None


app = FastAPI(
    title="FSA Feedback API",
    version=__version__,
    description="Structural feedback for finite-state automata",
    lifespan=lifespan
)

app.state.settings = settings
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request/Response Models ---

class ValidateRequest(BaseModel):
    automaton: Automaton
    config: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    system_initialized: bool
    message: str
    version: str = __version__


# --- Helper Functions ---

def get_system(request: Request) -> FSAFeedbackSystem:
    """
    Get the system instance from app.state.
    Raises 503 if the system did not start.
    """
    system = getattr(request.app.state, "system", None)
    if system is None:
        error_msg = getattr(request.app.state, "system_error", "Unknown initialization error")
        raise HTTPException(
            status_code=503,
            detail={
                "error": "System not initialized",
                "error_type": "ServiceUnavailable",
                "hint": f"Check the evaluation config. Init error: {error_msg}"
            }
        )
    return system


def resolve_config(system: FSAFeedbackSystem, overrides: Optional[Dict[str, Any]]) -> EvaluationConfig:
    if not overrides:
        return system.config
    try:
        return system.config.with_overrides(**overrides)
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": f"Invalid evaluation config: {e.error_count()} invalid field(s)",
                "error_type": "ValidationError",
                "hint": "Check expected_type (DFA, NFA, any) and evaluation_mode (strict, lenient, partial)."
            }
        )


def preview_payload(report: FeedbackReport, show_warnings: bool) -> Dict[str, Any]:
    """Shape a report the way the remote evaluator answers a preview."""
    structural = report.structural.model_dump(mode="json") if report.structural else {}
    sympy = {
        "errors": [f.model_dump(mode="json") for f in report.errors],
        "warnings": [f.model_dump(mode="json") for f in report.warnings] if show_warnings else [],
        **structural,
    }
    return {
        "feedback": report.summary,
        "preview": {"feedback": report.summary, "sympy": sympy},
    }


# --- API Endpoints ---

@app.get("/health", response_model=HealthResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint to verify API is running."""
    system_initialized = getattr(request.app.state, "system", None) is not None

    return HealthResponse(
        status="healthy" if system_initialized else "degraded",
        system_initialized=system_initialized,
        message="FSA Feedback API is running" if system_initialized else "System not fully initialized"
    )


@app.post("/validate", dependencies=[Depends(verify_api_key)])
@limiter.limit("120/minute")
async def validate_automaton(request: Request, body: ValidateRequest):
    """
    Validate an automaton and return the full feedback report.

    Returns:
        - 200: Report produced (the report itself may contain errors)
        - 400: Invalid evaluation config
        - 401: Unauthorized (invalid API key)
        - 429: Too many requests
        - 503: Service unavailable
    """
    request_id = str(uuid.uuid4())[:8]
    t_start = time.time()
    system = get_system(request)
    config = resolve_config(system, body.config)

    try:
        report = system.evaluate(body.automaton, config)
    except Exception as e:
        logger.error("validation_failed", request_id=request_id, error=str(e))
        logger.error(traceback.format_exc())
        raise HTTPException(
            status_code=500,
            detail={
                "error": f"Internal server error: {str(e)}",
                "error_type": "RuntimeError",
                "hint": "An unexpected error occurred. Check server logs for details."
            }
        )

    logger.info(
        "validate_request",
        request_id=request_id,
        errors=len(report.errors),
        warnings=len(report.warnings),
        elapsed_ms=round((time.time() - t_start) * 1000, 1),
    )
    return report.to_dict()


@app.post("/preview", dependencies=[Depends(verify_api_key)])
@limiter.limit("120/minute")
async def preview(request: Request, body: PreviewRequest):
    """
    Answer a preview request in the remote evaluator's shape, so editors
    can point their live preview at this service.
    """
    system = get_system(request)
    params = body.additional_params
    config = system.config.with_overrides(
        expected_type=ExpectedType.DFA if params.require_deterministic else None
    )
    report = system.evaluate(body.submission, config)
    return preview_payload(report, params.show_warnings)


@app.post("/export/dot", dependencies=[Depends(verify_api_key)])
@limiter.limit("30/minute")
async def export_dot(request: Request, body: ValidateRequest):
    """Validate and return the automaton as Graphviz DOT with findings highlighted."""
    system = get_system(request)
    config = resolve_config(system, body.config)
    report = system.evaluate(body.automaton, config)

    return Response(
        content=to_dot(body.automaton, report),
        media_type="text/vnd.graphviz",
        headers={"Content-Disposition": "attachment; filename=fsa_export.dot"}
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "FSA Feedback API",
        "version": __version__,
        "description": "Structural feedback for finite-state automata",
        "endpoints": {
            "/health": "Health check (GET)",
            "/validate": "Validate an automaton (POST)",
            "/preview": "Preview feedback in remote evaluator shape (POST)",
            "/export/dot": "Export automaton as Graphviz DOT file (POST)"
        }
    }


def run() -> None:
    import uvicorn

    uvicorn.run("fsa_feedback.api:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
