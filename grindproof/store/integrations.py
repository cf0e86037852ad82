"""
Tool: Integration Store
Purpose: Stored credentials for third-party services (GitHub, Google Calendar)

One record per (user, service_type). ``create_integration`` behaves as an
upsert so reconnecting a service replaces the old credentials.

Credentials are JSON objects:
    github:          {"accessToken": "..."}
    google_calendar: {"accessToken": "...", "refreshToken": "...", "expiresAt": "ISO"}
"""

import sqlite3
from typing import Any

from grindproof import INTEGRATION_STATUSES
from grindproof.database import build_update, decode_row, encode_json, generate_id
from grindproof.errors import NotFoundError, ValidationError
from grindproof.store import db_errors, require_choice
from grindproof.timeutils import to_iso, utcnow


JSON_FIELDS = ("credentials", "metadata")
UPDATABLE_FIELDS = ("credentials", "status", "metadata")

NOT_FOUND = "Integration not found or access denied"


def _decode(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return decode_row(row, JSON_FIELDS)


def list_integrations(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    with db_errors("fetch integrations"):
        rows = conn.execute(
            "SELECT * FROM integrations WHERE user_id = ? ORDER BY created_at DESC", (user_id,)
        ).fetchall()
    return [_decode(row) for row in rows]


def get_by_service(
    conn: sqlite3.Connection, user_id: str, service_type: str
) -> dict[str, Any] | None:
    with db_errors("fetch integration"):
        row = conn.execute(
            "SELECT * FROM integrations WHERE user_id = ? AND service_type = ?",
            (user_id, service_type),
        ).fetchone()
    return _decode(row)


def get_connected(
    conn: sqlite3.Connection, user_id: str, service_type: str
) -> dict[str, Any] | None:
    """The integration for a service only if its status is connected."""
    integration = get_by_service(conn, user_id, service_type)
    if integration and integration["status"] == "connected":
        return integration
    return None


def create_integration(
    conn: sqlite3.Connection,
    user_id: str,
    service_type: str,
    credentials: dict[str, Any],
    status: str = "connected",
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create or replace the user's integration for ``service_type``."""
    if not service_type:
        raise ValidationError("Service type is required")
    require_choice(status, INTEGRATION_STATUSES, "status")

    now = to_iso(utcnow())
    with db_errors("create integration"):
        conn.execute(
            """
            INSERT INTO integrations (
                id, user_id, service_type, credentials, status, metadata, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, service_type) DO UPDATE SET
                credentials = excluded.credentials,
                status = excluded.status,
                metadata = excluded.metadata,
                updated_at = excluded.updated_at
            """,
            (
                generate_id(),
                user_id,
                service_type,
                encode_json(credentials or {}),
                status,
                encode_json(metadata),
                now,
                now,
            ),
        )
        conn.commit()
    return get_by_service(conn, user_id, service_type)


def update_integration(
    conn: sqlite3.Connection, user_id: str, integration_id: str, updates: dict[str, Any]
) -> dict[str, Any]:
    unknown = set(updates) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    require_choice(updates.get("status"), INTEGRATION_STATUSES, "status")

    with db_errors("update integration"):
        owned = conn.execute(
            "SELECT id FROM integrations WHERE id = ? AND user_id = ?", (integration_id, user_id)
        ).fetchone()
    if owned is None:
        raise NotFoundError(NOT_FOUND)

    if updates:
        clauses, params = build_update(updates, JSON_FIELDS)
        clauses.append("updated_at = ?")
        params.extend([to_iso(utcnow()), integration_id, user_id])
        with db_errors("update integration"):
            conn.execute(
                f"UPDATE integrations SET {', '.join(clauses)} WHERE id = ? AND user_id = ?",
                params,
            )
            conn.commit()

    with db_errors("fetch integration"):
        row = conn.execute("SELECT * FROM integrations WHERE id = ?", (integration_id,)).fetchone()
    return _decode(row)


def save_credentials(
    conn: sqlite3.Connection, user_id: str, service_type: str, credentials: dict[str, Any]
) -> None:
    """Replace stored credentials after a token refresh."""
    with db_errors("update integration"):
        conn.execute(
            "UPDATE integrations SET credentials = ?, updated_at = ? "
            "WHERE user_id = ? AND service_type = ?",
            (encode_json(credentials), to_iso(utcnow()), user_id, service_type),
        )
        conn.commit()


def delete_integration(
    conn: sqlite3.Connection, user_id: str, integration_id: str
) -> dict[str, Any]:
    with db_errors("delete integration"):
        cursor = conn.execute(
            "DELETE FROM integrations WHERE id = ? AND user_id = ?", (integration_id, user_id)
        )
        conn.commit()
    if cursor.rowcount == 0:
        raise NotFoundError(NOT_FOUND)
    return {"success": True, "id": integration_id}
