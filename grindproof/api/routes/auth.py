"""
Authentication Routes

Session-based authentication:
- POST /api/auth/login  - Exchange the master key for a user session
- POST /api/auth/logout - Revoke the current session
- GET  /api/auth/check  - Validate the current session
"""

import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from grindproof.api.deps import SESSION_COOKIE, get_db, session_token
from grindproof.api.models import AuthStatus, LoginRequest
from grindproof.config import get_secret
from grindproof.errors import AuthenticationError
from grindproof.security.session import (
    check_master_key,
    create_session,
    revoke_session,
    validate_session,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
async def login(body: LoginRequest, response: Response, conn: sqlite3.Connection = Depends(get_db)):
    """
    Authenticate using the master key.

    Returns the session token and also sets it as an HTTP-only cookie.
    """
    if not get_secret("GRINDPROOF_MASTER_KEY"):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication not configured. Set GRINDPROOF_MASTER_KEY.",
        )

    if not check_master_key(body.password):
        logger.warning(f"Failed login attempt for {body.user_id}")
        raise AuthenticationError("Invalid credentials")

    session = create_session(conn, body.user_id, ttl_hours=body.ttl_hours)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session["token"],
        httponly=True,
        samesite="lax",
        secure=False,  # Set True when behind HTTPS proxy
    )
    return {
        "success": True,
        "token": session["token"],
        "user_id": session["user_id"],
        "expires_at": session["expires_at"],
    }


@router.post("/logout")
async def logout(request: Request, response: Response, conn: sqlite3.Connection = Depends(get_db)):
    """Revoke the session and clear the cookie."""
    token = session_token(request)
    if token:
        revoke_session(conn, token)
    response.delete_cookie(key=SESSION_COOKIE)
    return {"success": True}


@router.get("/check", response_model=AuthStatus)
async def check_auth(request: Request, conn: sqlite3.Connection = Depends(get_db)):
    """Check if the current session is valid."""
    token = session_token(request)
    if not token:
        return AuthStatus(authenticated=False)

    result = validate_session(conn, token, update_activity=False)
    if not result["valid"]:
        return AuthStatus(authenticated=False)
    return AuthStatus(authenticated=True, user_id=result["user_id"], expires_at=result["expires_at"])
