"""
Tool: Goal Store
Purpose: CRUD and keyword search for user goals

Usage:
    from grindproof.store import goals

    goal = goals.create_goal(conn, "alice", "Launch side project", time_horizon="monthly")
"""

import sqlite3
from typing import Any

from grindproof import GOAL_STATUSES, PRIORITIES, TIME_HORIZONS
from grindproof.database import build_update, decode_row, encode_json, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors, require_choice
from grindproof.timeutils import normalize_timestamp, to_iso, utcnow


JSON_FIELDS = ("github_repos",)

UPDATABLE_FIELDS = (
    "title",
    "description",
    "target_date",
    "status",
    "priority",
    "time_horizon",
    "github_repos",
)

NOT_FOUND = "Goal not found or access denied"


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    clean = dict(fields)
    if "title" in clean and not (clean["title"] or "").strip():
        raise ValidationError("Title is required")
    require_choice(clean.get("status"), GOAL_STATUSES, "status")
    require_choice(clean.get("priority"), PRIORITIES, "priority")
    require_choice(clean.get("time_horizon"), TIME_HORIZONS, "time horizon")
    if "target_date" in clean:
        try:
            clean["target_date"] = normalize_timestamp(clean["target_date"])
        except ValueError as e:
            raise ValidationError(f"Invalid target_date: {clean['target_date']}") from e
    repos = clean.get("github_repos")
    if repos is not None and any("/" not in repo for repo in repos):
        raise ValidationError("github_repos entries must look like owner/repo")
    return clean


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return decode_row(row, JSON_FIELDS)


def list_goals(
    conn: sqlite3.Connection, user_id: str, status: str | None = None
) -> list[dict[str, Any]]:
    """List goals, newest first."""
    require_choice(status, GOAL_STATUSES, "status")
    query = "SELECT * FROM goals WHERE user_id = ?"
    params: list[Any] = [user_id]
    if status:
        query += " AND status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC"

    with db_errors("fetch goals"):
        rows = conn.execute(query, params).fetchall()
    return [_decode(row) for row in rows]


def get_goal(conn: sqlite3.Connection, user_id: str, goal_id: str) -> dict[str, Any]:
    with db_errors("fetch goal"):
        row = conn.execute(
            "SELECT * FROM goals WHERE id = ? AND user_id = ?", (goal_id, user_id)
        ).fetchone()
    if row is None:
        raise NotFoundError("Goal not found")
    return _decode(row)


def search_goals(
    conn: sqlite3.Connection,
    user_id: str,
    query: str = "",
    status: str | None = None,
    limit: int = 20,
) -> list[dict[str, Any]]:
    """Keyword search. "archived" is accepted as an alias for paused."""
    if status == "archived":
        status = "paused"
    require_choice(status, GOAL_STATUSES, "status")

    clauses = ["user_id = ?"]
    params: list[Any] = [user_id]
    if query and query.strip():
        like = f"%{query.strip().lower()}%"
        clauses.append("(LOWER(title) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ?)")
        params.extend([like, like])
    if status:
        clauses.append("status = ?")
        params.append(status)
    params.append(limit)

    with db_errors("search goals"):
        rows = conn.execute(
            f"SELECT * FROM goals WHERE {' AND '.join(clauses)} ORDER BY created_at DESC LIMIT ?",
            params,
        ).fetchall()
    return [_decode(row) for row in rows]


def create_goal(
    conn: sqlite3.Connection,
    user_id: str,
    title: str,
    description: str | None = None,
    target_date: Any = None,
    status: str = "active",
    priority: str = "medium",
    time_horizon: str | None = None,
    github_repos: list[str] | None = None,
) -> dict[str, Any]:
    fields = _validate_fields(
        {
            "title": title,
            "description": description,
            "target_date": target_date,
            "status": status or "active",
            "priority": priority or "medium",
            "time_horizon": time_horizon,
            "github_repos": github_repos,
        }
    )
    goal_id = generate_id()
    now = to_iso(utcnow())

    with db_errors("create goal"):
        conn.execute(
            """
            INSERT INTO goals (
                id, user_id, title, description, target_date, status, priority,
                time_horizon, github_repos, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                goal_id,
                user_id,
                fields["title"].strip(),
                fields["description"],
                fields["target_date"],
                fields["status"],
                fields["priority"],
                fields["time_horizon"],
                encode_json(fields["github_repos"]),
                now,
                now,
            ),
        )
        conn.commit()

    return get_goal(conn, user_id, goal_id)


def update_goal(
    conn: sqlite3.Connection, user_id: str, goal_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    with db_errors("update goal"):
        owned = conn.execute(
            "SELECT id FROM goals WHERE id = ? AND user_id = ?", (goal_id, user_id)
        ).fetchone()
    if owned is None:
        raise NotFoundError(NOT_FOUND)
    if not updates:
        return get_goal(conn, user_id, goal_id)

    clauses, params = build_update(_validate_fields(updates), JSON_FIELDS)
    clauses.append("updated_at = ?")
    params.extend([to_iso(utcnow()), goal_id, user_id])

    with db_errors("update goal"):
        conn.execute(
            f"UPDATE goals SET {', '.join(clauses)} WHERE id = ? AND user_id = ?", params
        )
        conn.commit()
    return get_goal(conn, user_id, goal_id)


def delete_goal(conn: sqlite3.Connection, user_id: str, goal_id: str) -> dict[str, Any]:
    with db_errors("delete goal"):
        cursor = conn.execute(
            "DELETE FROM goals WHERE id = ? AND user_id = ?", (goal_id, user_id)
        )
        conn.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(NOT_FOUND)
    return {"success": True, "id": goal_id}
