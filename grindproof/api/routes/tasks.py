"""
Tasks Route - Task CRUD, Search and Calendar Sync

Writes go through ``integrations.calendar_sync`` so tasks mirrored to
Google Calendar keep their event in step; a failed calendar call never
blocks the database write.
"""

import logging
import sqlite3

import httpx
from fastapi import APIRouter, Depends, Query, status

from grindproof.api.deps import get_current_user, get_db, get_http
from grindproof.api.models import TaskComplete, TaskCreate, TaskReschedule, TaskUpdate
from grindproof.integrations import calendar_sync
from grindproof.store import tasks


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_tasks(
    status_filter: str | None = Query(None, alias="status"),
    goal_id: str | None = None,
    tags: list[str] | None = Query(None),
    start_date: str | None = None,
    end_date: str | None = None,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """List tasks by due date (undated last), with optional filters."""
    return tasks.list_tasks(
        conn,
        user["user_id"],
        status=status_filter,
        goal_id=goal_id,
        tags=tags,
        start_date=start_date,
        end_date=end_date,
    )


# =============================================================================
# Static paths (must be before /{task_id} to avoid route conflict)
# =============================================================================


@router.get("/search")
async def search_tasks(
    q: str = "",
    status_filter: str | None = Query(None, alias="status"),
    date_filter: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Keyword search over title and description; date_filter is today, tomorrow, this_week or overdue."""
    return tasks.search_tasks(
        conn, user["user_id"], query=q, status=status_filter, date_filter=date_filter, limit=limit
    )


@router.post("/sync-from-calendar")
async def sync_from_calendar(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    """Pull Google Calendar events into tasks."""
    return await calendar_sync.sync_from_calendar(conn, user["user_id"], http=http)


# =============================================================================
# Single task
# =============================================================================


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return tasks.get_task(conn, user["user_id"], task_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    fields = body.model_dump(exclude={"sync_with_calendar"})
    return await calendar_sync.create_task(
        conn, user["user_id"], fields, sync_with_calendar=body.sync_with_calendar, http=http
    )


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    return await calendar_sync.update_task(
        conn, user["user_id"], task_id, body.model_dump(exclude_unset=True), http=http
    )


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    return await calendar_sync.delete_task(conn, user["user_id"], task_id, http=http)


# =============================================================================
# Task actions
# =============================================================================


@router.post("/{task_id}/complete")
async def complete_task(
    task_id: str,
    body: TaskComplete | None = None,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    proof = body.proof if body else None
    return tasks.complete_task(conn, user["user_id"], task_id, proof=proof)


@router.post("/{task_id}/skip")
async def skip_task(
    task_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return tasks.skip_task(conn, user["user_id"], task_id)


@router.post("/{task_id}/reschedule")
async def reschedule_task(
    task_id: str,
    body: TaskReschedule,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    """Move the due date (and calendar event) and reset the task to pending."""
    return await calendar_sync.reschedule_task(
        conn, user["user_id"], task_id, body.new_date, http=http
    )
