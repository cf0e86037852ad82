"""
Tool: Calendar Sync
Purpose: Mirror task changes to Google Calendar and pull calendar events in as tasks

Task writes always reach the database. The calendar side is best effort:
if the integration is missing or a calendar call fails, the failure is
logged and the task operation carries on.

Usage:
    from grindproof.integrations import calendar_sync

    task = await calendar_sync.create_task(conn, "alice", {"title": "Gym", "due_date": "2025-01-10T18:00:00Z"})
    result = await calendar_sync.sync_from_calendar(conn, "alice")
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any

import httpx

from grindproof import GOOGLE_CALENDAR_SERVICE
from grindproof.config import get_section
from grindproof.errors import GrindProofError, IntegrationNotConnectedError, NotFoundError
from grindproof.integrations import access_token_of, google_calendar
from grindproof.store import integrations, tasks
from grindproof.timeutils import utcnow


logger = logging.getLogger(__name__)

CALENDAR_ERRORS = (GrindProofError, httpx.HTTPError, ValueError)


async def _calendar_token(
    conn: sqlite3.Connection, user_id: str, http: httpx.AsyncClient | None
) -> str | None:
    """Access token if Google Calendar is connected, else None."""
    integration = integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
    if integration is None or not access_token_of(integration):
        return None
    return await google_calendar.ensure_fresh_token(conn, user_id, integration, http)


def _owned_task(conn: sqlite3.Connection, user_id: str, task_id: str) -> dict[str, Any]:
    try:
        return tasks.get_task(conn, user_id, task_id)
    except NotFoundError:
        raise NotFoundError(tasks.NOT_FOUND) from None


def _is_mirrored(task: dict[str, Any]) -> bool:
    return bool(task.get("is_synced_with_calendar") and task.get("google_calendar_event_id"))


# =============================================================================
# Task writes with calendar mirroring
# =============================================================================


async def create_task(
    conn: sqlite3.Connection,
    user_id: str,
    fields: dict[str, Any],
    sync_with_calendar: bool = True,
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Create a task, first creating its calendar event when requested and possible."""
    event_id = None
    if sync_with_calendar:
        try:
            access_token = await _calendar_token(conn, user_id, http)
            if access_token:
                event = google_calendar.build_event(
                    fields["title"],
                    fields.get("description"),
                    fields.get("due_date"),
                    fields.get("recurrence_pattern"),
                )
                created = await google_calendar.create_event(access_token, event, http)
                event_id = created.get("id")
        except CALENDAR_ERRORS as e:
            logger.warning(f"Failed to create calendar event for {user_id}: {e}")

    return tasks.create_task(
        conn,
        user_id,
        google_calendar_event_id=event_id,
        is_synced_with_calendar=bool(event_id),
        **fields,
    )


async def _patch_event(
    conn: sqlite3.Connection,
    user_id: str,
    task: dict[str, Any],
    updates: dict[str, Any],
    http: httpx.AsyncClient | None,
) -> None:
    patch = google_calendar.build_event_patch(updates)
    if not patch or not _is_mirrored(task):
        return
    try:
        access_token = await _calendar_token(conn, user_id, http)
        if access_token:
            await google_calendar.update_event(
                access_token, task["google_calendar_event_id"], patch, http
            )
    except CALENDAR_ERRORS as e:
        logger.warning(f"Failed to update calendar event for task {task['id']}: {e}")


async def update_task(
    conn: sqlite3.Connection,
    user_id: str,
    task_id: str,
    updates: dict[str, Any],
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    task = _owned_task(conn, user_id, task_id)
    await _patch_event(conn, user_id, task, updates, http)
    return tasks.update_task(conn, user_id, task_id, updates)


async def reschedule_task(
    conn: sqlite3.Connection,
    user_id: str,
    task_id: str,
    new_date: Any,
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    task = _owned_task(conn, user_id, task_id)
    await _patch_event(conn, user_id, task, {"due_date": new_date}, http)
    return tasks.reschedule_task(conn, user_id, task_id, new_date)


async def delete_task(
    conn: sqlite3.Connection,
    user_id: str,
    task_id: str,
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    task = _owned_task(conn, user_id, task_id)
    if _is_mirrored(task):
        try:
            access_token = await _calendar_token(conn, user_id, http)
            if access_token:
                await google_calendar.delete_event(
                    access_token, task["google_calendar_event_id"], http
                )
        except CALENDAR_ERRORS as e:
            logger.warning(f"Failed to delete calendar event for task {task_id}: {e}")
    return tasks.delete_task(conn, user_id, task_id)


# =============================================================================
# Calendar -> tasks
# =============================================================================


def _event_start(event: dict[str, Any]) -> str | None:
    start = event.get("start") or {}
    return start.get("dateTime") or start.get("date")


async def sync_from_calendar(
    conn: sqlite3.Connection,
    user_id: str,
    http: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Pull events from ``sync_days_back`` days ago to ``sync_days_forward`` days ahead.

    Cancelled events mark their task skipped; other events update the task
    holding their id or create a new task tagged "calendar".

    Raises:
        IntegrationNotConnectedError: calendar not connected or no access token
        UpstreamError: token refresh or event listing failed
    """
    integration = integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
    if integration is None:
        raise IntegrationNotConnectedError("Google Calendar not connected")

    now = now or utcnow()
    config = get_section("integrations").get("google_calendar", {})
    access_token = await google_calendar.ensure_fresh_token(conn, user_id, integration, http, now)
    events = await google_calendar.list_events(
        access_token,
        now - timedelta(days=config.get("sync_days_back", 7)),
        now + timedelta(days=config.get("sync_days_forward", 30)),
        http,
    )

    created = updated = 0
    for event in events:
        existing = tasks.find_by_calendar_event(conn, user_id, event["id"])

        if event.get("status") == "cancelled":
            if existing:
                tasks.skip_task(conn, user_id, existing["id"])
            continue

        values = {
            "title": event.get("summary") or "Untitled Event",
            "description": event.get("description") or None,
            "due_date": _event_start(event),
        }
        if existing:
            tasks.update_task(conn, user_id, existing["id"], values)
            updated += 1
        else:
            tasks.create_task(
                conn,
                user_id,
                tags=["calendar"],
                google_calendar_event_id=event["id"],
                is_synced_with_calendar=True,
                **values,
            )
            created += 1

    logger.info(f"Calendar sync for {user_id}: {created} created, {updated} updated")
    return {"success": True, "created": created, "updated": updated, "total": len(events)}
