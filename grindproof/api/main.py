"""
GrindProof API - FastAPI Application

Entry point for the REST API: tasks, goals, evidence, weekly scores,
patterns, integrations, daily check-ins and the AI coach.

Usage:
    uvicorn grindproof.api.main:app --host 127.0.0.1 --port 8080 --reload
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from grindproof import __version__
from grindproof.ai.client import CoachClient
from grindproof.api.models import HealthCheck
from grindproof.api.routes import api_router
from grindproof.config import get_section
from grindproof.database import get_connection
from grindproof.errors import GrindProofError, LLMError
from grindproof.integrations import DEFAULT_TIMEOUT
from grindproof.logging_config import setup_logging
from grindproof.timeutils import utcnow


logger = logging.getLogger(__name__)

LLM_ERROR_TYPES = {"quota": "quota_exceeded", "configuration": "service_unavailable"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info("Starting GrindProof API...")

    app.state.coach = CoachClient.from_config()
    app.state.http = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    yield

    logger.info("Shutting down GrindProof API...")
    await app.state.http.aclose()


app = FastAPI(
    title="GrindProof API",
    description="Accountability backend: tasks, goals, evidence, patterns and weekly roasts",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_section("dashboard").get("cors_origins", ["http://localhost:3000"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error Handlers
# =============================================================================


@app.exception_handler(LLMError)
async def llm_error_handler(request: Request, exc: LLMError):
    logger.warning(f"LLM error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "code": exc.code,
            "errorType": LLM_ERROR_TYPES.get(exc.kind, "unknown"),
        },
    )


@app.exception_handler(GrindProofError)
async def grindproof_error_handler(request: Request, exc: GrindProofError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code, content={"error": exc.message, "code": exc.code}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Invalid request", "code": "VALIDATION_ERROR", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "code": f"HTTP_{exc.status_code}"},
        headers=getattr(exc, "headers", None),
    )


# =============================================================================
# Health Check Endpoint
# =============================================================================


@app.get("/api/health", response_model=HealthCheck, tags=["health"])
async def health_check(request: Request):
    """Database reachability and whether the AI coach is configured."""
    services = {}

    try:
        conn = get_connection()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
        services["database"] = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        services["database"] = "unhealthy"

    coach = getattr(request.app.state, "coach", None)
    services["ai"] = "healthy" if coach is not None and coach.available else "unavailable"

    overall = "healthy" if services["database"] == "healthy" else "degraded"
    return HealthCheck(status=overall, version=__version__, timestamp=utcnow(), services=services)


app.include_router(api_router)
