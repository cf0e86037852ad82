"""
Integrations Route - Connected services and their recent activity

Provides:
- CRUD over the stored GitHub / Google Calendar credentials
- GET /api/integrations/github-activity          - commits, PRs, issues
- GET /api/integrations/google-calendar-activity - recent calendar events

Activity endpoints report ``connected: false`` instead of failing when the
service was never connected.
"""

import sqlite3

import httpx
from fastapi import APIRouter, Depends, Query, status

from grindproof.api.deps import get_current_user, get_db, get_http
from grindproof.api.models import IntegrationCreate, IntegrationUpdate
from grindproof.integrations import github, google_calendar
from grindproof.store import integrations


router = APIRouter()


@router.get("")
async def list_integrations(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return integrations.list_integrations(conn, user["user_id"])


# =============================================================================
# Activity (must be before /{integration_id})
# =============================================================================


@router.get("/github-activity")
async def github_activity(
    hours: int = Query(24),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    """GitHub events in the last ``hours`` (1-720)."""
    activity = await github.get_github_activity(conn, user["user_id"], hours=hours, http=http)
    return {"connected": activity is not None, "activity": activity}


@router.get("/google-calendar-activity")
async def google_calendar_activity(
    hours: int = Query(24, ge=1),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    """Calendar event counts for the last ``hours``."""
    activity = await google_calendar.get_calendar_activity(
        conn, user["user_id"], hours=hours, http=http
    )
    return {"connected": activity is not None, "activity": activity}


@router.get("/by-service/{service_type}")
async def get_by_service(
    service_type: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """The user's integration for a service, or null."""
    return integrations.get_by_service(conn, user["user_id"], service_type)


# =============================================================================
# CRUD
# =============================================================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_integration(
    body: IntegrationCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Connect a service; reconnecting replaces the stored credentials."""
    return integrations.create_integration(conn, user["user_id"], **body.model_dump())


@router.patch("/{integration_id}")
async def update_integration(
    integration_id: str,
    body: IntegrationUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return integrations.update_integration(
        conn, user["user_id"], integration_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{integration_id}")
async def delete_integration(
    integration_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return integrations.delete_integration(conn, user["user_id"], integration_id)
