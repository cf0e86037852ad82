"""
Tool: Pattern Store
Purpose: Persist detected behavioral patterns per user

Patterns are free-form by type at this layer (the detection flow restricts
them to the known enum). ``record_detection`` is what the analysis flow
uses: a repeat detection of the same type updates the existing record and
bumps its occurrence count instead of inserting a duplicate.

Usage:
    from grindproof.store import patterns

    patterns.record_detection(conn, "alice", "procrastination", "...", 0.8)
"""

import sqlite3
from datetime import datetime
from typing import Any

from grindproof.database import build_update, decode_row, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors
from grindproof.timeutils import normalize_timestamp, to_iso, utcnow


UPDATABLE_FIELDS = ("pattern_type", "description", "confidence", "occurrences", "last_occurred")

NOT_FOUND = "Pattern not found or access denied"


def _validate(fields: dict[str, Any]) -> dict[str, Any]:
    clean = dict(fields)
    if "pattern_type" in clean and not (clean["pattern_type"] or "").strip():
        raise ValidationError("Pattern type is required")
    confidence = clean.get("confidence")
    if confidence is not None and not 0 <= confidence <= 1:
        raise ValidationError("confidence must be between 0 and 1")
    occurrences = clean.get("occurrences")
    if occurrences is not None and (int(occurrences) != occurrences or occurrences < 0):
        raise ValidationError("occurrences must be a non-negative integer")
    for key in ("first_detected", "last_occurred"):
        if clean.get(key) is not None:
            try:
                clean[key] = normalize_timestamp(clean[key])
            except ValueError as e:
                raise ValidationError(f"Invalid {key}: {clean[key]}") from e
    if "description" in clean:
        clean["description"] = clean["description"] or None
    return clean


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return decode_row(row)


def list_patterns(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    """All patterns, most recently seen first."""
    with db_errors("fetch patterns"):
        rows = conn.execute(
            "SELECT * FROM patterns WHERE user_id = ? ORDER BY last_occurred DESC",
            (user_id,),
        ).fetchall()
    return [_decode(row) for row in rows]


def get_pattern(conn: sqlite3.Connection, user_id: str, pattern_id: str) -> dict[str, Any]:
    with db_errors("fetch pattern"):
        row = conn.execute(
            "SELECT * FROM patterns WHERE id = ? AND user_id = ?", (pattern_id, user_id)
        ).fetchone()
    if row is None:
        raise NotFoundError("Pattern not found")
    return _decode(row)


def get_patterns_by_type(
    conn: sqlite3.Connection, user_id: str, pattern_type: str
) -> list[dict[str, Any]]:
    with db_errors("fetch patterns"):
        rows = conn.execute(
            "SELECT * FROM patterns WHERE user_id = ? AND pattern_type = ? "
            "ORDER BY last_occurred DESC",
            (user_id, pattern_type),
        ).fetchall()
    return [_decode(row) for row in rows]


def create_pattern(
    conn: sqlite3.Connection,
    user_id: str,
    pattern_type: str,
    description: str | None = None,
    confidence: float = 0.0,
    occurrences: int = 1,
    first_detected: Any = None,
    last_occurred: Any = None,
) -> dict[str, Any]:
    fields = _validate(
        {
            "pattern_type": pattern_type,
            "description": description,
            "confidence": confidence,
            "occurrences": occurrences,
            "first_detected": first_detected,
            "last_occurred": last_occurred,
        }
    )
    pattern_id = generate_id()
    now = to_iso(utcnow())

    with db_errors("create pattern"):
        conn.execute(
            """
            INSERT INTO patterns (
                id, user_id, pattern_type, description, confidence, occurrences,
                first_detected, last_occurred, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                pattern_id,
                user_id,
                fields["pattern_type"].strip(),
                fields["description"],
                fields["confidence"],
                fields["occurrences"],
                fields["first_detected"] or now,
                fields["last_occurred"] or now,
                now,
                now,
            ),
        )
        conn.commit()

    return get_pattern(conn, user_id, pattern_id)


def update_pattern(
    conn: sqlite3.Connection, user_id: str, pattern_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    with db_errors("update pattern"):
        owned = conn.execute(
            "SELECT id FROM patterns WHERE id = ? AND user_id = ?", (pattern_id, user_id)
        ).fetchone()
    if owned is None:
        raise NotFoundError(NOT_FOUND)
    if not updates:
        return get_pattern(conn, user_id, pattern_id)

    clauses, params = build_update(_validate(updates))
    clauses.append("updated_at = ?")
    params.extend([to_iso(utcnow()), pattern_id, user_id])

    with db_errors("update pattern"):
        conn.execute(
            f"UPDATE patterns SET {', '.join(clauses)} WHERE id = ? AND user_id = ?", params
        )
        conn.commit()
    return get_pattern(conn, user_id, pattern_id)


def delete_pattern(conn: sqlite3.Connection, user_id: str, pattern_id: str) -> dict[str, Any]:
    with db_errors("delete pattern"):
        cursor = conn.execute(
            "DELETE FROM patterns WHERE id = ? AND user_id = ?", (pattern_id, user_id)
        )
        conn.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(NOT_FOUND)
    return {"success": True, "id": pattern_id}


def record_detection(
    conn: sqlite3.Connection,
    user_id: str,
    pattern_type: str,
    description: str,
    confidence: float,
    now: datetime | None = None,
) -> tuple[dict[str, Any], str]:
    """
    Save a detected pattern, merging with an existing record of the same type.

    Returns:
        (pattern, action) where action is "created" or "updated"
    """
    seen_at = to_iso(now or utcnow())
    existing = get_patterns_by_type(conn, user_id, pattern_type)

    if existing:
        current = existing[0]
        pattern = update_pattern(
            conn,
            user_id,
            current["id"],
            {
                "description": description,
                "confidence": confidence,
                "occurrences": current["occurrences"] + 1,
                "last_occurred": seen_at,
            },
        )
        return pattern, "updated"

    pattern = create_pattern(
        conn,
        user_id,
        pattern_type,
        description=description,
        confidence=confidence,
        occurrences=1,
        first_detected=seen_at,
        last_occurred=seen_at,
    )
    return pattern, "created"
