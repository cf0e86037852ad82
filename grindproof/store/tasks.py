"""
Tool: Task Store
Purpose: CRUD, lifecycle transitions and search for user tasks

Tasks are scoped to one user. Status moves pending -> completed | skipped
and a reschedule puts the task back to pending with a new due date.
Calendar mirroring lives in grindproof.integrations.calendar_sync; this
module only records the resulting event id.

Usage:
    from grindproof.store import tasks

    task = tasks.create_task(conn, "alice", "Ship the release", priority="high")
    tasks.complete_task(conn, "alice", task["id"], proof="https://github.com/...")
"""

import re
import sqlite3
from datetime import datetime, timedelta
from typing import Any

from grindproof import PRIORITIES, RECURRENCE_TYPES, TASK_STATUSES
from grindproof.database import build_update, decode_row, encode_json, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors, require_choice
from grindproof.timeutils import (
    day_bounds,
    normalize_timestamp,
    to_iso,
    utcnow,
    week_bounds,
)


JSON_FIELDS = ("tags", "recurrence_pattern")
BOOL_FIELDS = ("is_synced_with_calendar",)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "due_date",
    "goal_id",
    "status",
    "priority",
    "start_time",
    "end_time",
    "completion_proof",
    "tags",
    "google_calendar_event_id",
    "is_synced_with_calendar",
    "recurrence_pattern",
    "parent_task_id",
)

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_FILTERS = ("today", "tomorrow", "this_week", "overdue")

NOT_FOUND = "Task not found or access denied"


# =============================================================================
# Validation
# =============================================================================


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Check enums and formats, normalizing dates. Returns a new dict."""
    clean = dict(fields)

    if "title" in clean and not (clean["title"] or "").strip():
        raise ValidationError("Title is required")
    require_choice(clean.get("status"), TASK_STATUSES, "status")
    require_choice(clean.get("priority"), PRIORITIES, "priority")

    for key in ("start_time", "end_time"):
        value = clean.get(key)
        if value is not None and not TIME_RE.match(value):
            raise ValidationError(f"Invalid {key}. Use HH:MM (24-hour)")

    if "due_date" in clean:
        try:
            clean["due_date"] = normalize_timestamp(clean["due_date"])
        except ValueError as e:
            raise ValidationError(f"Invalid due_date: {clean['due_date']}") from e

    recurrence = clean.get("recurrence_pattern")
    if recurrence is not None:
        require_choice(recurrence.get("type"), RECURRENCE_TYPES, "recurrence type")
        if int(recurrence.get("interval", 1)) < 1:
            raise ValidationError("Recurrence interval must be at least 1")
        days = recurrence.get("daysOfWeek") or []
        if any(not 0 <= int(d) <= 6 for d in days):
            raise ValidationError("daysOfWeek values must be 0-6")

    return clean


def _parse_filter_date(value: Any, name: str) -> str:
    try:
        return normalize_timestamp(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value}") from e


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return decode_row(row, JSON_FIELDS, BOOL_FIELDS)


# =============================================================================
# Reads
# =============================================================================


def list_tasks(
    conn: sqlite3.Connection,
    user_id: str,
    status: str | None = None,
    goal_id: str | None = None,
    tags: list[str] | None = None,
    start_date: Any = None,
    end_date: Any = None,
) -> list[dict[str, Any]]:
    """
    List tasks ordered by due date (tasks without one last).

    Args:
        status: Only tasks in this status
        goal_id: Only tasks linked to this goal
        tags: Tasks carrying at least one of these tags
        start_date: due_date >= start_date
        end_date: due_date <= end_date
    """
    require_choice(status, TASK_STATUSES, "status")

    clauses = ["user_id = ?"]
    params: list[Any] = [user_id]

    if status:
        clauses.append("status = ?")
        params.append(status)
    if goal_id:
        clauses.append("goal_id = ?")
        params.append(goal_id)
    if tags:
        placeholders = ", ".join("?" for _ in tags)
        clauses.append(
            f"EXISTS (SELECT 1 FROM json_each(tasks.tags) WHERE json_each.value IN ({placeholders}))"
        )
        params.extend(tags)
    if start_date:
        clauses.append("due_date >= ?")
        params.append(_parse_filter_date(start_date, "start_date"))
    if end_date:
        clauses.append("due_date <= ?")
        params.append(_parse_filter_date(end_date, "end_date"))

    with db_errors("fetch tasks"):
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE {' AND '.join(clauses)} "
            "ORDER BY due_date IS NULL, due_date ASC",
            params,
        ).fetchall()
    return [_decode(row) for row in rows]


def list_tasks_created_between(
    conn: sqlite3.Connection, user_id: str, start: datetime, end: datetime
) -> list[dict[str, Any]]:
    with db_errors("fetch tasks"):
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND created_at >= ? AND created_at < ? "
            "ORDER BY created_at",
            (user_id, to_iso(start), to_iso(end)),
        ).fetchall()
    return [_decode(row) for row in rows]


def list_tasks_due_between(
    conn: sqlite3.Connection, user_id: str, start: datetime, end: datetime
) -> list[dict[str, Any]]:
    """Tasks with start <= due_date < end, ordered by due date."""
    with db_errors("fetch tasks"):
        rows = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND due_date >= ? AND due_date < ? "
            "ORDER BY due_date ASC",
            (user_id, to_iso(start), to_iso(end)),
        ).fetchall()
    return [_decode(row) for row in rows]


def get_task(conn: sqlite3.Connection, user_id: str, task_id: str) -> dict[str, Any]:
    with db_errors("fetch task"):
        row = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        ).fetchone()
    if row is None:
        raise NotFoundError("Task not found")
    return _decode(row)


def find_by_calendar_event(
    conn: sqlite3.Connection, user_id: str, event_id: str
) -> dict[str, Any] | None:
    with db_errors("fetch task"):
        row = conn.execute(
            "SELECT * FROM tasks WHERE user_id = ? AND google_calendar_event_id = ?",
            (user_id, event_id),
        ).fetchone()
    return _decode(row)


def search_tasks(
    conn: sqlite3.Connection,
    user_id: str,
    query: str = "",
    status: str | None = None,
    date_filter: str | None = None,
    now: datetime | None = None,
    limit: int = 20,
) -> list[dict[str, Any]]:
    """
    Keyword search over title and description.

    Args:
        query: Case-insensitive substring; empty matches everything
        status: pending/completed/skipped, or "all"/None for any
        date_filter: today, tomorrow, this_week or overdue
    """
    now = now or utcnow()
    if status == "all":
        status = None
    require_choice(status, TASK_STATUSES, "status")
    require_choice(date_filter, DATE_FILTERS, "date filter")

    clauses = ["user_id = ?"]
    params: list[Any] = [user_id]

    if query and query.strip():
        like = f"%{query.strip().lower()}%"
        clauses.append("(LOWER(title) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ?)")
        params.extend([like, like])
    if status:
        clauses.append("status = ?")
        params.append(status)

    if date_filter == "overdue":
        clauses.append("status = 'pending' AND due_date < ?")
        params.append(to_iso(now))
    elif date_filter:
        if date_filter == "today":
            start, end = day_bounds(now)
        elif date_filter == "tomorrow":
            start, end = day_bounds(now + timedelta(days=1))
        else:
            start, end = week_bounds(now)
        clauses.append("due_date >= ? AND due_date < ?")
        params.extend([to_iso(start), to_iso(end)])

    params.append(limit)
    with db_errors("search tasks"):
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE {' AND '.join(clauses)} "
            "ORDER BY due_date IS NULL, due_date ASC, created_at DESC LIMIT ?",
            params,
        ).fetchall()
    return [_decode(row) for row in rows]


# =============================================================================
# Writes
# =============================================================================


def create_task(
    conn: sqlite3.Connection,
    user_id: str,
    title: str,
    description: str | None = None,
    due_date: Any = None,
    goal_id: str | None = None,
    priority: str = "medium",
    status: str = "pending",
    start_time: str | None = None,
    end_time: str | None = None,
    tags: list[str] | None = None,
    recurrence_pattern: dict | None = None,
    parent_task_id: str | None = None,
    google_calendar_event_id: str | None = None,
    is_synced_with_calendar: bool = False,
    commit: bool = True,
) -> dict[str, Any]:
    """Create a task and return the stored row."""
    fields = _validate_fields(
        {
            "title": title,
            "description": description,
            "due_date": due_date,
            "goal_id": goal_id,
            "priority": priority or "medium",
            "status": status or "pending",
            "start_time": start_time,
            "end_time": end_time,
            "tags": tags,
            "recurrence_pattern": recurrence_pattern,
            "parent_task_id": parent_task_id,
            "google_calendar_event_id": google_calendar_event_id,
            "is_synced_with_calendar": is_synced_with_calendar,
        }
    )
    task_id = generate_id()
    now = to_iso(utcnow())

    with db_errors("create task"):
        conn.execute(
            """
            INSERT INTO tasks (
                id, user_id, goal_id, title, description, due_date, start_time, end_time,
                status, priority, tags, google_calendar_event_id, is_synced_with_calendar,
                recurrence_pattern, parent_task_id, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task_id,
                user_id,
                fields["goal_id"],
                fields["title"].strip(),
                fields["description"],
                fields["due_date"],
                fields["start_time"],
                fields["end_time"],
                fields["status"],
                fields["priority"],
                encode_json(fields["tags"]),
                fields["google_calendar_event_id"],
                1 if fields["is_synced_with_calendar"] else 0,
                encode_json(fields["recurrence_pattern"]),
                fields["parent_task_id"],
                now,
                now,
            ),
        )
        if commit:
            conn.commit()

    return get_task(conn, user_id, task_id)


def create_tasks(
    conn: sqlite3.Connection, user_id: str, items: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Insert several tasks in one transaction. Rolls back on the first failure."""
    created = []
    try:
        for item in items:
            created.append(create_task(conn, user_id, commit=False, **item))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return created


def update_task(
    conn: sqlite3.Connection, user_id: str, task_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    """Apply a partial update. Unknown keys are rejected."""
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    with db_errors("update task"):
        owned = conn.execute(
            "SELECT id FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        ).fetchone()
    if owned is None:
        raise NotFoundError(NOT_FOUND)

    if not updates:
        return get_task(conn, user_id, task_id)

    fields = _validate_fields(updates)
    clauses, params = build_update(fields, JSON_FIELDS, BOOL_FIELDS)
    clauses.append("updated_at = ?")
    params.extend([to_iso(utcnow()), task_id, user_id])

    with db_errors("update task"):
        conn.execute(
            f"UPDATE tasks SET {', '.join(clauses)} WHERE id = ? AND user_id = ?", params
        )
        conn.commit()

    return get_task(conn, user_id, task_id)


def delete_task(conn: sqlite3.Connection, user_id: str, task_id: str) -> dict[str, Any]:
    with db_errors("delete task"):
        cursor = conn.execute(
            "DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
        )
        conn.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(NOT_FOUND)
    return {"success": True, "id": task_id}


def complete_task(
    conn: sqlite3.Connection, user_id: str, task_id: str, proof: str | None = None
) -> dict[str, Any]:
    updates: dict[str, Any] = {"status": "completed"}
    if proof is not None:
        updates["completion_proof"] = proof
    return update_task(conn, user_id, task_id, updates)


def skip_task(conn: sqlite3.Connection, user_id: str, task_id: str) -> dict[str, Any]:
    return update_task(conn, user_id, task_id, {"status": "skipped"})


def reschedule_task(
    conn: sqlite3.Connection, user_id: str, task_id: str, new_date: Any
) -> dict[str, Any]:
    """Move the due date and put the task back to pending."""
    return update_task(conn, user_id, task_id, {"due_date": new_date, "status": "pending"})
