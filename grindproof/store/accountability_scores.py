"""
Tool: Accountability Score Store
Purpose: One weekly accountability record per user

Each row is keyed by (user_id, week_start) where week_start is a
YYYY-MM-DD string. The database constraint is the single source of truth
for uniqueness: ``create_score`` rejects a second record for the same week,
while ``upsert_for_week`` (weekly roast, evening reflection) merges into it.

Score fields (alignment, honesty, completion_rate) are fractions in [0, 1]
or null; counts are non-negative integers.

Usage:
    from grindproof.store import accountability_scores as scores

    scores.create_score(conn, "alice", "2026-10-18", alignment_score=0.8)
    scores.get_score_by_week(conn, "alice", "2026-10-18")
"""

import sqlite3
from datetime import date, datetime
from typing import Any

from grindproof.database import build_update, decode_row, encode_json, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors
from grindproof.timeutils import parse_timestamp, to_iso, utcnow


JSON_FIELDS = ("insights", "recommendations", "roast_metadata")
FRACTION_FIELDS = ("alignment_score", "honesty_score", "completion_rate")
COUNT_FIELDS = ("new_projects_started", "evidence_submissions", "completed_tasks", "total_tasks")

UPDATABLE_FIELDS = (
    *FRACTION_FIELDS,
    *COUNT_FIELDS,
    "insights",
    "recommendations",
    "week_summary",
    "roast_metadata",
)

NOT_FOUND = "Accountability score not found or access denied"
DUPLICATE_WEEK = "Accountability score already exists for this week"


def week_key(value: Any) -> str:
    """Normalize a date, datetime or date string to the YYYY-MM-DD week key."""
    if isinstance(value, datetime):
        return parse_timestamp(value).strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    try:
        return parse_timestamp(value).strftime("%Y-%m-%d")
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid week_start: {value}") from e


def _validate(fields: dict[str, Any]) -> None:
    for name in FRACTION_FIELDS:
        value = fields.get(name)
        if value is not None and not 0 <= value <= 1:
            raise ValidationError(f"{name} must be between 0 and 1")
    for name in COUNT_FIELDS:
        value = fields.get(name)
        if value is not None and (int(value) != value or value < 0):
            raise ValidationError(f"{name} must be a non-negative integer")
    for name in ("insights", "recommendations"):
        value = fields.get(name)
        if value is not None and not isinstance(value, list):
            raise ValidationError(f"{name} must be a list")


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    score = decode_row(row, JSON_FIELDS)
    if score is None:
        return None
    if score["insights"] is None:
        score["insights"] = []
    if score["recommendations"] is None:
        score["recommendations"] = []
    return score


# =============================================================================
# Reads
# =============================================================================


def list_scores(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    """All scores, most recent week first."""
    with db_errors("fetch accountability scores"):
        rows = conn.execute(
            "SELECT * FROM accountability_scores WHERE user_id = ? ORDER BY week_start DESC",
            (user_id,),
        ).fetchall()
    return [_decode(row) for row in rows]


def get_score(conn: sqlite3.Connection, user_id: str, score_id: str) -> dict[str, Any]:
    with db_errors("fetch accountability score"):
        row = conn.execute(
            "SELECT * FROM accountability_scores WHERE id = ? AND user_id = ?",
            (score_id, user_id),
        ).fetchone()
    if row is None:
        raise NotFoundError(NOT_FOUND)
    return _decode(row)


def get_score_by_week(
    conn: sqlite3.Connection, user_id: str, week_start: Any
) -> dict[str, Any] | None:
    """Score for the given week, or None when the week has no record."""
    with db_errors("fetch accountability score"):
        row = conn.execute(
            "SELECT * FROM accountability_scores WHERE user_id = ? AND week_start = ?",
            (user_id, week_key(week_start)),
        ).fetchone()
    return _decode(row)


# =============================================================================
# Writes
# =============================================================================


def create_score(
    conn: sqlite3.Connection,
    user_id: str,
    week_start: Any,
    alignment_score: float | None = None,
    honesty_score: float | None = None,
    completion_rate: float | None = None,
    new_projects_started: int = 0,
    evidence_submissions: int = 0,
    insights: list | None = None,
    recommendations: list | None = None,
    week_summary: str | None = None,
    roast_metadata: dict | None = None,
    completed_tasks: int | None = None,
    total_tasks: int | None = None,
) -> dict[str, Any]:
    """
    Create the score for one week.

    Raises:
        ConflictError: the user already has a score for this week
    """
    fields = {
        "alignment_score": alignment_score,
        "honesty_score": honesty_score,
        "completion_rate": completion_rate,
        "new_projects_started": new_projects_started or 0,
        "evidence_submissions": evidence_submissions or 0,
        "completed_tasks": completed_tasks,
        "total_tasks": total_tasks,
        "insights": insights if insights is not None else [],
        "recommendations": recommendations if recommendations is not None else [],
    }
    _validate(fields)

    score_id = generate_id()
    now = to_iso(utcnow())

    with db_errors("create accountability score", conflict_message=DUPLICATE_WEEK):
        conn.execute(
            """
            INSERT INTO accountability_scores (
                id, user_id, week_start, alignment_score, honesty_score, completion_rate,
                new_projects_started, evidence_submissions, completed_tasks, total_tasks,
                insights, recommendations, week_summary, roast_metadata, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                score_id,
                user_id,
                week_key(week_start),
                fields["alignment_score"],
                fields["honesty_score"],
                fields["completion_rate"],
                fields["new_projects_started"],
                fields["evidence_submissions"],
                fields["completed_tasks"],
                fields["total_tasks"],
                encode_json(fields["insights"]),
                encode_json(fields["recommendations"]),
                week_summary,
                encode_json(roast_metadata),
                now,
                now,
            ),
        )
        conn.commit()

    return get_score(conn, user_id, score_id)


def upsert_for_week(
    conn: sqlite3.Connection, user_id: str, week_start: Any, values: dict[str, Any]
) -> dict[str, Any]:
    """
    Insert or merge the record for (user, week) in one statement.

    Only the columns present in ``values`` are written on conflict; the rest
    of an existing row is left alone.
    """
    unknown = set(values) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot set fields: {', '.join(sorted(unknown))}")
    _validate(values)

    key = week_key(week_start)
    now = to_iso(utcnow())
    columns = list(values)
    encoded = [encode_json(values[c]) if c in JSON_FIELDS else values[c] for c in columns]

    insert_columns = ["id", "user_id", "week_start", *columns, "created_at", "updated_at"]
    placeholders = ", ".join("?" for _ in insert_columns)
    assignments = ", ".join(f"{c} = excluded.{c}" for c in [*columns, "updated_at"])

    with db_errors("save accountability score"):
        conn.execute(
            f"""
            INSERT INTO accountability_scores ({', '.join(insert_columns)})
            VALUES ({placeholders})
            ON CONFLICT(user_id, week_start) DO UPDATE SET {assignments}
            """,
            [generate_id(), user_id, key, *encoded, now, now],
        )
        conn.commit()

    return get_score_by_week(conn, user_id, key)


def update_score(
    conn: sqlite3.Connection, user_id: str, score_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    _validate(updates)

    with db_errors("update accountability score"):
        owned = conn.execute(
            "SELECT id FROM accountability_scores WHERE id = ? AND user_id = ?",
            (score_id, user_id),
        ).fetchone()
    if owned is None:
        raise NotFoundError(NOT_FOUND)
    if not updates:
        return get_score(conn, user_id, score_id)

    clauses, params = build_update(updates, JSON_FIELDS)
    clauses.append("updated_at = ?")
    params.extend([to_iso(utcnow()), score_id, user_id])

    with db_errors("update accountability score"):
        conn.execute(
            f"UPDATE accountability_scores SET {', '.join(clauses)} WHERE id = ? AND user_id = ?",
            params,
        )
        conn.commit()
    return get_score(conn, user_id, score_id)


def delete_score(conn: sqlite3.Connection, user_id: str, score_id: str) -> dict[str, Any]:
    with db_errors("delete accountability score"):
        cursor = conn.execute(
            "DELETE FROM accountability_scores WHERE id = ? AND user_id = ?",
            (score_id, user_id),
        )
        conn.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(NOT_FOUND)
    return {"success": True, "id": score_id}
