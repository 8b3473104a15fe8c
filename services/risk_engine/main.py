"""
Risk Engine Service - Main Application
======================================

FastAPI application for compliance risk scoring and classification.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.risk_engine.dependencies import get_aggregator, get_orchestrator
from services.risk_engine.exceptions import (
    AggregationError,
    EvidenceNotFoundError,
    InvalidTransitionError,
    InvalidWeightsError,
    RiskEngineError,
    RunNotFoundError,
)
from services.risk_engine.routes import assessments, scoring
from shared.config import settings
from shared.logging import get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name=settings.service_name,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "risk_engine_starting",
        environment=settings.environment.value,
        port=settings.port,
    )

    # Startup: load category rules and build the run store
    try:
        get_aggregator()
        get_orchestrator()
        logger.info("risk_engine_ready")
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("risk_engine_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="Compliance Risk Engine",
    description="Compliance risk scoring and classification",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Reports the loaded category rules and the number of runs in memory.
    """
    aggregator = get_aggregator()
    orchestrator = get_orchestrator()

    components: dict[str, dict[str, Any]] = {
        "category_rules": {
            "status": "healthy",
            "version": aggregator.category_mapper.rule_set.version,
            "rules": len(aggregator.category_mapper.rule_set.rules),
        },
        "run_store": {
            "status": "healthy",
            "runs": len(orchestrator.list_runs()),
        },
    }

    return HealthResponse(
        status="healthy",
        service=settings.service_name,
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Compliance Risk Engine",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    scoring.router,
    prefix="/api/v1/scoring",
    tags=["Scoring"],
)

app.include_router(
    assessments.router,
    prefix="/api/v1/assessments",
    tags=["Assessments"],
)


# ============================================================================
# Error Handlers
# ============================================================================

_ERROR_STATUS: dict[type[RiskEngineError], int] = {
    InvalidWeightsError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RunNotFoundError: status.HTTP_404_NOT_FOUND,
    EvidenceNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    AggregationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _status_for(exc: RiskEngineError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(RiskEngineError)
async def risk_engine_exception_handler(request: Request, exc: RiskEngineError) -> JSONResponse:
    """Handle risk engine errors."""
    status_code = _status_for(exc)

    if isinstance(exc, AggregationError):
        # Internal detail stays in the logs
        body = ErrorResponse(error=exc.public_message, error_code=exc.code)
    else:
        body = ErrorResponse(error=exc.message, error_code=exc.code, details=exc.details or None)

    logger.warning(
        "risk_engine_error",
        status_code=status_code,
        code=exc.code,
        error=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.risk_engine.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
