"""
Tool: Daily Check
Purpose: Morning planning and evening reflection check-ins

Morning:
    get_morning_schedule   today's tasks and whether a calendar is connected
    refine_plan            local parse, LLM refinement when the parse is weak
    save_morning_plan      batch-create the day's tasks (one transaction)

Evening:
    get_evening_comparison planned vs actual for today, with evidence
    save_evening_reflection per-task reflections stored on the day's score

Evening check-ins share the accountability_scores table with weekly
roasts: the row is keyed by the check-in date instead of a week start,
and the reflections live in roast_metadata.

Usage:
    from grindproof import daily_check

    comparison = daily_check.get_evening_comparison(conn, "alice")
    print(comparison["stats"]["alignment_score"])
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any

import httpx

from grindproof import GITHUB_SERVICE, GOOGLE_CALENDAR_SERVICE
from grindproof.ai import coach
from grindproof.ai.client import CoachClient
from grindproof.ai.task_parser import is_confident_parse, parse_tasks
from grindproof.analysis.weekly_metrics import daily_alignment
from grindproof.errors import GrindProofError, ValidationError
from grindproof.integrations import access_token_of, google_calendar
from grindproof.store import accountability_scores, evidence, integrations, tasks
from grindproof.timeutils import day_bounds, to_iso, utcnow


logger = logging.getLogger(__name__)

PLAN_FIELDS = ("title", "description", "due_date", "start_time", "end_time", "goal_id", "priority")


def _todays_tasks(conn: sqlite3.Connection, user_id: str, now: datetime) -> list[dict[str, Any]]:
    """Tasks due today, by start time (untimed tasks last)."""
    start, end = day_bounds(now)
    due_today = tasks.list_tasks_due_between(conn, user_id, start, end)
    return sorted(due_today, key=lambda t: (t.get("start_time") is None, t.get("start_time") or ""))


# =============================================================================
# Morning
# =============================================================================


def get_morning_schedule(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> dict[str, Any]:
    now = now or utcnow()
    connected = integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
    return {
        "tasks": _todays_tasks(conn, user_id, now),
        "calendar_events": [],
        "has_calendar_integration": connected is not None,
    }


async def refine_plan(
    client: CoachClient,
    text: str,
    locally_parsed: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Structured tasks for a free-text plan.

    Without a caller-supplied parse the text is parsed here first; a
    confident local parse skips the LLM entirely.
    """
    if not (text or "").strip():
        raise ValidationError("Plan text is required")
    if locally_parsed is None:
        local = parse_tasks(text)
        if is_confident_parse(local):
            return {"tasks": local, "source": "local"}
        locally_parsed = local
    return await coach.refine_tasks(client, text, locally_parsed)


async def _mirror_to_calendar(
    conn: sqlite3.Connection,
    user_id: str,
    created: list[dict[str, Any]],
    http: httpx.AsyncClient | None,
) -> list[dict[str, Any]]:
    integration = integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
    if integration is None or not access_token_of(integration):
        return created

    mirrored = []
    for task in created:
        try:
            access_token = await google_calendar.ensure_fresh_token(conn, user_id, integration, http)
            event = await google_calendar.create_event(
                access_token,
                google_calendar.build_event(task["title"], task.get("description"), task.get("due_date")),
                http,
            )
            task = tasks.update_task(
                conn,
                user_id,
                task["id"],
                {"google_calendar_event_id": event.get("id"), "is_synced_with_calendar": True},
            )
        except (GrindProofError, httpx.HTTPError) as e:
            logger.warning(f"Failed to create calendar event for planned task {task['id']}: {e}")
        mirrored.append(task)
    return mirrored


async def save_morning_plan(
    conn: sqlite3.Connection,
    user_id: str,
    items: list[dict[str, Any]],
    now: datetime | None = None,
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    Create the day's tasks in one transaction.

    Tasks default to due now (today) with medium priority. Items flagged
    ``sync_to_calendar`` are mirrored to Google Calendar afterwards, best effort.
    """
    if not items:
        raise ValidationError("At least one task is required")
    now = now or utcnow()

    rows = []
    for item in items:
        row = {key: item.get(key) for key in PLAN_FIELDS}
        row["due_date"] = row["due_date"] or to_iso(now)
        row["priority"] = row["priority"] or "medium"
        rows.append(row)

    created = tasks.create_tasks(conn, user_id, rows)

    to_sync = [task for task, item in zip(created, items) if item.get("sync_to_calendar")]
    if to_sync:
        synced = {t["id"]: t for t in await _mirror_to_calendar(conn, user_id, to_sync, http)}
        created = [synced.get(t["id"], t) for t in created]

    return {"success": True, "tasks": created, "count": len(created)}


# =============================================================================
# Evening
# =============================================================================


def get_evening_comparison(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> dict[str, Any]:
    now = now or utcnow()
    today = _todays_tasks(conn, user_id, now)

    proof = evidence.list_evidence_for_tasks(conn, [t["id"] for t in today])
    by_task: dict[str, list[dict[str, Any]]] = {}
    for item in proof:
        by_task.setdefault(item["task_id"], []).append(item)
    with_evidence = [{**task, "evidence": by_task.get(task["id"], [])} for task in today]

    existing = accountability_scores.get_score_by_week(conn, user_id, now)
    existing_reflection = None
    if existing:
        metadata = existing.get("roast_metadata") or {}
        existing_reflection = {
            "reflections": metadata.get("reflections") or {},
            "evidence_urls": metadata.get("evidenceUrls") or {},
        }

    return {
        "tasks": with_evidence,
        "stats": daily_alignment(today),
        "integrations": {
            "has_github": integrations.get_connected(conn, user_id, GITHUB_SERVICE) is not None,
            "has_calendar": integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
            is not None,
        },
        "existing_reflection": existing_reflection,
    }


def save_evening_reflection(
    conn: sqlite3.Connection,
    user_id: str,
    date: Any,
    alignment_score: float,
    reflections: dict[str, str],
    completed_tasks: int,
    total_tasks: int,
    evidence_urls: dict[str, list[str]] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Upsert the day's score row; a second check-in the same day replaces the first."""
    score = accountability_scores.upsert_for_week(
        conn,
        user_id,
        date,
        {
            "alignment_score": alignment_score,
            "completed_tasks": completed_tasks,
            "total_tasks": total_tasks,
            "roast_metadata": {
                "reflections": reflections,
                "evidenceUrls": evidence_urls or {},
                "checkInType": "evening",
                "completedAt": to_iso(now or utcnow()),
            },
        },
    )
    return {"success": True, "score": score}
