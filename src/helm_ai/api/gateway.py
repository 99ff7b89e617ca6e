"""API Gateway - FastAPI application for governed strategic decisions."""

import logging
import os
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helm_ai.api.schemas import (
    ErrorResponse,
    OverrideRequest,
    OverrideResponse,
    StatusResponse,
    StrategicDecisionRequest,
    StrategicDecisionResponse,
)
from helm_ai.api.service import GovernanceService
from helm_ai.common.exceptions import (
    ConfigurationError,
    HelmAIException,
    InvalidRequestContract,
    ReasoningMalformed,
    ReasoningUnavailable,
)
from helm_ai.common.logging import LOG_FORMAT

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger("helm_api")


class ServiceManager:
    """Thread-safe service singleton manager."""

    _instance: Optional[GovernanceService] = None
    _lock = threading.Lock()
    _initialized = False

    @classmethod
    def get_service(cls) -> GovernanceService:
        """Get or create the governance service instance (thread-safe)."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = GovernanceService()
                    cls._initialized = True
                    logger.info("GovernanceService initialized")
        return cls._instance

    @classmethod
    def set_service(cls, service: GovernanceService) -> None:
        """Install a pre-built service (used by tests and embedders)."""
        with cls._lock:
            cls._instance = service
            cls._initialized = True

    @classmethod
    def shutdown(cls) -> None:
        """Shutdown the service and release resources."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None
                cls._initialized = False
                logger.info("GovernanceService shutdown complete")


def get_service() -> GovernanceService:
    """Get the governance service instance."""
    return ServiceManager.get_service()


# =============================================================================
# CORS CONFIGURATION
# =============================================================================

def get_cors_origins() -> List[str]:
    """Get allowed CORS origins from environment.

    In production, set HELM_CORS_ORIGINS to a comma-separated list of
    allowed origins.
    """
    origins_env = os.environ.get("HELM_CORS_ORIGINS", "")

    if origins_env:
        return [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    if os.environ.get("HELM_ENVIRONMENT", "development") == "production":
        logger.warning(
            "HELM_CORS_ORIGINS not set in production. "
            "CORS will be disabled. Set HELM_CORS_ORIGINS for cross-origin access."
        )
        return []

    logger.warning("Running in development mode with permissive CORS (allow_origins=['*'])")
    return ["*"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Helm AI API Gateway starting up...")
    get_service()
    logger.info("Helm AI API Gateway ready")

    yield

    logger.info("Helm AI API Gateway shutting down...")
    ServiceManager.shutdown()
    logger.info("Helm AI API Gateway shutdown complete")


environment = os.environ.get("HELM_ENVIRONMENT", "development")
enable_docs_default = "false" if environment == "production" else "true"
enable_docs = os.environ.get("HELM_ENABLE_DOCS", enable_docs_default).lower() == "true"

app = FastAPI(
    title="Helm AI API Gateway",
    description="Strategic decision governance: reasoning, safety policy and signed audit.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if enable_docs else None,
    redoc_url="/redoc" if enable_docs else None,
)


cors_origins = get_cors_origins()
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["POST", "GET"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _error_response(request: Request, status_code: int, exc: HelmAIException) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.code,
            message=exc.message,
            details=exc.details,
            request_id=request_id,
        ).model_dump(),
    )


@app.exception_handler(InvalidRequestContract)
async def contract_error_handler(request: Request, exc: InvalidRequestContract) -> JSONResponse:
    """Caller input failed the decision contract."""
    logger.warning(
        "Invalid request contract",
        extra={"request_id": getattr(request.state, "request_id", None), "errors": exc.errors},
    )
    return _error_response(request, 400, exc)


@app.exception_handler(ReasoningUnavailable)
async def reasoning_unavailable_handler(request: Request, exc: ReasoningUnavailable) -> JSONResponse:
    """Reasoning Service unreachable, timed out or returned non-2xx."""
    logger.error(
        "Reasoning service unavailable",
        extra={"request_id": getattr(request.state, "request_id", None), "code": exc.code},
    )
    return _error_response(request, 502, exc)


@app.exception_handler(ReasoningMalformed)
async def reasoning_malformed_handler(request: Request, exc: ReasoningMalformed) -> JSONResponse:
    """Reasoning Service replied with something unusable."""
    logger.error(
        "Reasoning service reply rejected",
        extra={"request_id": getattr(request.state, "request_id", None), "code": exc.code},
    )
    return _error_response(request, 502, exc)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(
        "Configuration error",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )
    return _error_response(request, 500, exc)


# =============================================================================
# MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag every request and response with an X-Request-ID."""
    request_id = request.headers.get("X-Request-ID") or f"req_{uuid4().hex[:12]}"
    request.state.request_id = request_id

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.exception(
            "Unexpected error",
            extra={"request_id": request_id, "error_type": type(exc).__name__},
        )
        response = JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="internal_error",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.post(
    "/strategic-decision",
    response_model=StrategicDecisionResponse,
    responses={
        400: {"description": "Invalid decision request", "model": ErrorResponse},
        502: {"description": "Reasoning service failure", "model": ErrorResponse},
    },
    summary="Request a governed strategic decision",
)
def strategic_decision(body: StrategicDecisionRequest) -> StrategicDecisionResponse:
    """Validate, reason, apply safety policy and record a signed audit entry.

    Runs in the worker thread pool so an abandoned client connection
    does not cancel an in-flight decision.
    """
    service = get_service()
    result = service.execute_strategic_decision(body.model_dump(exclude_none=True))
    logger.info(
        "Strategic decision complete",
        extra={
            "request_id": result["request_id"],
            "status": result["audit_record"]["status"],
            "audit_id": result["audit_record"]["id"],
        },
    )
    return StrategicDecisionResponse(**result)


@app.post(
    "/override",
    response_model=OverrideResponse,
    responses={400: {"description": "Missing fields", "model": ErrorResponse}},
    summary="Issue a human override token",
)
def issue_override(body: OverrideRequest) -> OverrideResponse:
    """Grant a one-hour override token. The grant itself is audited."""
    service = get_service()
    result = service.issue_override_token(
        actor=body.actor,
        reason=body.override_reason,
        signature=body.approver_signature,
        request_id=body.request_id,
    )
    return OverrideResponse(**result)


@app.get("/status", response_model=StatusResponse)
def status() -> StatusResponse:
    """Telemetry snapshot."""
    return StatusResponse(**get_service().get_status())


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "helm-ai-gateway"}


@app.get("/ready")
async def readiness_check() -> dict:
    """Readiness check endpoint.

    Returns 503 until the service singleton is initialized.
    """
    if not ServiceManager._initialized:
        raise HTTPException(status_code=503, detail="not_ready")
    return {"status": "ready", "service": "helm-ai-gateway"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helm_ai.api.gateway:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
