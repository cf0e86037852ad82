"""GrindProof API Routes Package

This module aggregates all route handlers into a single router
that can be included in the main FastAPI application.
"""

from fastapi import APIRouter

from .accountability_scores import router as scores_router
from .ai import router as ai_router
from .auth import router as auth_router
from .daily_check import router as daily_check_router
from .evidence import router as evidence_router
from .goals import router as goals_router
from .integrations import router as integrations_router
from .patterns import router as patterns_router
from .tasks import router as tasks_router


# Create main API router
api_router = APIRouter(prefix="/api")

# Include all sub-routers
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
api_router.include_router(goals_router, prefix="/goals", tags=["goals"])
api_router.include_router(evidence_router, prefix="/evidence", tags=["evidence"])
api_router.include_router(
    scores_router, prefix="/accountability-scores", tags=["accountability-scores"]
)
api_router.include_router(patterns_router, prefix="/patterns", tags=["patterns"])
api_router.include_router(integrations_router, prefix="/integrations", tags=["integrations"])
api_router.include_router(daily_check_router, prefix="/daily-check", tags=["daily-check"])
api_router.include_router(ai_router, prefix="/ai", tags=["ai"])

__all__ = ["api_router"]
