"""
Request dependencies for the GrindProof API.

Every route gets its own SQLite connection and the caller's user id from
``get_current_user``; the coach client and the shared HTTP client are built
once in the application lifespan and read from ``app.state``.
"""

import logging
import sqlite3
from collections.abc import Iterator
from typing import Any

import httpx
from fastapi import Depends, Request

from grindproof.ai.client import CoachClient
from grindproof.config import get_section
from grindproof.database import get_connection
from grindproof.errors import AuthenticationError
from grindproof.logging_config import bind_request_context
from grindproof.security.session import validate_session


logger = logging.getLogger(__name__)

SESSION_COOKIE = "grindproof_session"


def get_db() -> Iterator[sqlite3.Connection]:
    """One connection per request, closed afterwards."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


def session_token(request: Request) -> str | None:
    """Session token from the Authorization header or the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


async def get_current_user(
    request: Request, conn: sqlite3.Connection = Depends(get_db)
) -> dict[str, Any]:
    """
    Validate the session and return the caller.

    Raises:
        AuthenticationError: no token, or the token is unknown, revoked or expired
    """
    if not get_section("security").get("require_auth", True):
        return {"user_id": "anonymous", "session_id": None}

    token = session_token(request)
    if not token:
        raise AuthenticationError("Authentication required")

    result = validate_session(conn, token)
    if not result["valid"]:
        logger.info(f"Rejected session: {result['reason']}")
        raise AuthenticationError("Authentication required")

    bind_request_context(user_id=result["user_id"], path=request.url.path)
    return {"user_id": result["user_id"], "session_id": result["session_id"]}


def get_coach(request: Request) -> CoachClient:
    return request.app.state.coach


def get_http(request: Request) -> httpx.AsyncClient | None:
    """Shared outbound client; None lets the integrations open their own."""
    return getattr(request.app.state, "http", None)
