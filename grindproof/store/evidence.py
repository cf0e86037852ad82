"""
Tool: Evidence Store
Purpose: Proof-of-completion records attached to tasks

Evidence has no user column; ownership is inherited from the task it
points at. Evidence without a task reference is readable by id without
an ownership check.

Usage:
    from grindproof.store import evidence

    evidence.create_evidence(conn, "alice", task_id, "link", "https://github.com/...")
"""

import sqlite3
from datetime import datetime
from typing import Any

from grindproof import EVIDENCE_TYPES
from grindproof.database import build_update, decode_row, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors, require_choice
from grindproof.timeutils import normalize_timestamp, to_iso, utcnow


BOOL_FIELDS = ("ai_validated",)
UPDATABLE_FIELDS = ("task_id", "type", "content", "ai_validated", "validation_notes")

TASK_DENIED = "Task not found or access denied"
EVIDENCE_DENIED = "Evidence not found or access denied"


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return decode_row(row, bool_fields=BOOL_FIELDS)


def _user_owns_task(conn: sqlite3.Connection, user_id: str, task_id: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
    ).fetchone()
    return row is not None


def _fetch_owned(conn: sqlite3.Connection, user_id: str, evidence_id: str, action: str) -> dict:
    """Load evidence for a write, enforcing ownership through its task."""
    with db_errors(action):
        row = conn.execute("SELECT * FROM evidence WHERE id = ?", (evidence_id,)).fetchone()
        if row is None:
            raise NotFoundError("Evidence not found")
        if row["task_id"] and not _user_owns_task(conn, user_id, row["task_id"]):
            raise NotFoundError(EVIDENCE_DENIED)
    return _decode(row)


def list_user_task_ids(conn: sqlite3.Connection, user_id: str) -> list[str]:
    with db_errors("fetch tasks"):
        rows = conn.execute("SELECT id FROM tasks WHERE user_id = ?", (user_id,)).fetchall()
    return [row["id"] for row in rows]


def list_evidence(
    conn: sqlite3.Connection,
    user_id: str,
    task_id: str | None = None,
    evidence_type: str | None = None,
) -> list[dict[str, Any]]:
    """Evidence attached to the user's tasks, newest submission first."""
    require_choice(evidence_type, EVIDENCE_TYPES, "evidence type")

    task_ids = list_user_task_ids(conn, user_id)
    if task_id:
        if task_id not in task_ids:
            return []
        task_ids = [task_id]
    if not task_ids:
        return []

    placeholders = ", ".join("?" for _ in task_ids)
    query = f"SELECT * FROM evidence WHERE task_id IN ({placeholders})"
    params: list[Any] = list(task_ids)
    if evidence_type:
        query += " AND type = ?"
        params.append(evidence_type)
    query += " ORDER BY submitted_at DESC"

    with db_errors("fetch evidence"):
        rows = conn.execute(query, params).fetchall()
    return [_decode(row) for row in rows]


def list_evidence_for_tasks(
    conn: sqlite3.Connection,
    task_ids: list[str],
    submitted_from: datetime | None = None,
    submitted_to: datetime | None = None,
) -> list[dict[str, Any]]:
    """Evidence for an already-authorized set of task ids."""
    if not task_ids:
        return []
    placeholders = ", ".join("?" for _ in task_ids)
    query = f"SELECT * FROM evidence WHERE task_id IN ({placeholders})"
    params: list[Any] = list(task_ids)
    if submitted_from:
        query += " AND submitted_at >= ?"
        params.append(to_iso(submitted_from))
    if submitted_to:
        query += " AND submitted_at < ?"
        params.append(to_iso(submitted_to))

    with db_errors("fetch evidence"):
        rows = conn.execute(query, params).fetchall()
    return [_decode(row) for row in rows]


def get_evidence(conn: sqlite3.Connection, user_id: str, evidence_id: str) -> dict[str, Any]:
    with db_errors("fetch evidence"):
        row = conn.execute("SELECT * FROM evidence WHERE id = ?", (evidence_id,)).fetchone()
        if row is None:
            raise NotFoundError("Evidence not found")
        # Orphan evidence (no task) is returned as-is
        if row["task_id"] and not _user_owns_task(conn, user_id, row["task_id"]):
            raise NotFoundError("Evidence not found")
    return _decode(row)


def get_evidence_by_task(
    conn: sqlite3.Connection, user_id: str, task_id: str
) -> list[dict[str, Any]]:
    with db_errors("fetch evidence"):
        if not _user_owns_task(conn, user_id, task_id):
            raise NotFoundError(TASK_DENIED)
        rows = conn.execute(
            "SELECT * FROM evidence WHERE task_id = ? ORDER BY submitted_at DESC", (task_id,)
        ).fetchall()
    return [_decode(row) for row in rows]


def create_evidence(
    conn: sqlite3.Connection,
    user_id: str,
    task_id: str | None,
    evidence_type: str,
    content: str,
    ai_validated: bool = False,
    validation_notes: str | None = None,
    submitted_at: Any = None,
) -> dict[str, Any]:
    require_choice(evidence_type, EVIDENCE_TYPES, "evidence type")
    if not content:
        raise ValidationError("Content is required")

    evidence_id = generate_id()
    now = to_iso(utcnow())
    try:
        submitted = normalize_timestamp(submitted_at) or now
    except ValueError as e:
        raise ValidationError(f"Invalid submitted_at: {submitted_at}") from e

    with db_errors("create evidence"):
        if task_id and not _user_owns_task(conn, user_id, task_id):
            raise NotFoundError(TASK_DENIED)
        conn.execute(
            """
            INSERT INTO evidence (
                id, task_id, type, content, submitted_at, ai_validated,
                validation_notes, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                evidence_id,
                task_id,
                evidence_type,
                content,
                submitted,
                1 if ai_validated else 0,
                validation_notes,
                now,
                now,
            ),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM evidence WHERE id = ?", (evidence_id,)).fetchone()
    return _decode(row)


def update_evidence(
    conn: sqlite3.Connection, user_id: str, evidence_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    require_choice(updates.get("type"), EVIDENCE_TYPES, "evidence type")

    _fetch_owned(conn, user_id, evidence_id, "update evidence")

    new_task = updates.get("task_id")
    if new_task and not _user_owns_task(conn, user_id, new_task):
        raise NotFoundError(TASK_DENIED)

    if not updates:
        return get_evidence(conn, user_id, evidence_id)

    clauses, params = build_update(updates, bool_fields=BOOL_FIELDS)
    clauses.append("updated_at = ?")
    params.extend([to_iso(utcnow()), evidence_id])

    with db_errors("update evidence"):
        conn.execute(f"UPDATE evidence SET {', '.join(clauses)} WHERE id = ?", params)
        conn.commit()
        row = conn.execute("SELECT * FROM evidence WHERE id = ?", (evidence_id,)).fetchone()
    return _decode(row)


def delete_evidence(conn: sqlite3.Connection, user_id: str, evidence_id: str) -> dict[str, Any]:
    _fetch_owned(conn, user_id, evidence_id, "delete evidence")
    with db_errors("delete evidence"):
        conn.execute("DELETE FROM evidence WHERE id = ?", (evidence_id,))
        conn.commit()
    return {"success": True, "id": evidence_id}
