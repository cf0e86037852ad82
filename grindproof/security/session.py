"""
Tool: Session Manager
Purpose: Bearer-token sessions for the HTTP API

Features:
- 256-bit random session tokens
- Configurable TTL (default 24h, max 7d)
- Activity tracking
- Revoke one session or all of a user's sessions

Sessions live in the main GrindProof database (``sessions`` table).

Usage:
    from grindproof.security import session

    created = session.create_session(conn, "alice")
    result = session.validate_session(conn, created["token"])
    if result["valid"]:
        user_id = result["user_id"]

Security Notes:
    - Only the SHA-256 hash of a token is stored, never the raw token
    - The raw token is returned only by create_session
    - Expiry is checked on every validation
"""

import hashlib
import hmac
import logging
import secrets
import sqlite3
from datetime import datetime, timedelta
from typing import Any

from grindproof.config import get_secret, get_section
from grindproof.timeutils import parse_timestamp, to_iso, utcnow


logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24
MAX_TTL_HOURS = 168  # 7 days
TOKEN_BYTES = 32  # 256 bits


def generate_token() -> str:
    """Generate a secure random session token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token for storage."""
    return hashlib.sha256(token.encode()).hexdigest()


def check_master_key(candidate: str | None) -> bool:
    """Constant-time comparison against GRINDPROOF_MASTER_KEY. False when unset."""
    master_key = get_secret("GRINDPROOF_MASTER_KEY")
    if not master_key or not candidate:
        return False
    return hmac.compare_digest(master_key.encode(), candidate.encode())


def create_session(
    conn: sqlite3.Connection,
    user_id: str,
    ttl_hours: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Create a session for ``user_id``.

    Returns:
        dict with session info and the RAW TOKEN (only time it's returned)
    """
    if ttl_hours is None:
        ttl_hours = get_section("security").get("session_ttl_hours", DEFAULT_TTL_HOURS)
    ttl_hours = min(ttl_hours, MAX_TTL_HOURS)

    now = now or utcnow()
    token = generate_token()
    expires_at = to_iso(now + timedelta(hours=ttl_hours))

    cursor = conn.execute(
        """
        INSERT INTO sessions (token_hash, user_id, created_at, expires_at, last_activity)
        VALUES (?, ?, ?, ?, ?)
        """,
        (hash_token(token), user_id, to_iso(now), expires_at, to_iso(now)),
    )
    conn.commit()
    logger.info(f"Session {cursor.lastrowid} created for {user_id}")

    return {
        "success": True,
        "token": token,
        "session_id": cursor.lastrowid,
        "user_id": user_id,
        "expires_at": expires_at,
    }


def validate_session(
    conn: sqlite3.Connection,
    token: str,
    update_activity: bool = True,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Check a token.

    Returns:
        {"valid": True, "user_id": ..., ...} or {"valid": False, "reason": ...}
    """
    now = now or utcnow()
    row = conn.execute(
        "SELECT * FROM sessions WHERE token_hash = ?", (hash_token(token),)
    ).fetchone()

    if not row:
        return {"valid": False, "reason": "token_not_found"}
    if not row["is_active"]:
        return {"valid": False, "reason": "session_revoked"}

    if now > parse_timestamp(row["expires_at"]):
        conn.execute("UPDATE sessions SET is_active = 0 WHERE id = ?", (row["id"],))
        conn.commit()
        return {"valid": False, "reason": "session_expired"}

    if update_activity:
        conn.execute(
            "UPDATE sessions SET last_activity = ? WHERE id = ?", (to_iso(now), row["id"])
        )
        conn.commit()

    return {
        "valid": True,
        "session_id": row["id"],
        "user_id": row["user_id"],
        "created_at": row["created_at"],
        "expires_at": row["expires_at"],
    }


def revoke_session(conn: sqlite3.Connection, token: str) -> dict[str, Any]:
    """Revoke a single session."""
    token_hash = hash_token(token)
    row = conn.execute(
        "SELECT id, user_id FROM sessions WHERE token_hash = ?", (token_hash,)
    ).fetchone()
    if not row:
        return {"success": False, "error": "Session not found"}

    conn.execute("UPDATE sessions SET is_active = 0 WHERE token_hash = ?", (token_hash,))
    conn.commit()
    logger.info(f"Session {row['id']} revoked for {row['user_id']}")
    return {"success": True, "session_id": row["id"], "message": "Session revoked"}


def revoke_all_sessions(conn: sqlite3.Connection, user_id: str) -> dict[str, Any]:
    cursor = conn.execute(
        "UPDATE sessions SET is_active = 0 WHERE user_id = ? AND is_active = 1", (user_id,)
    )
    conn.commit()
    return {
        "success": True,
        "user_id": user_id,
        "revoked_count": cursor.rowcount,
        "message": f"Revoked {cursor.rowcount} sessions",
    }


def cleanup_expired(conn: sqlite3.Connection, now: datetime | None = None) -> int:
    """Delete expired and revoked sessions. Returns the number removed."""
    cursor = conn.execute(
        "DELETE FROM sessions WHERE is_active = 0 OR expires_at < ?", (to_iso(now or utcnow()),)
    )
    conn.commit()
    return cursor.rowcount
