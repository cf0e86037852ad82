"""
Patterns Route - Detected behavioral patterns
"""

import sqlite3

from fastapi import APIRouter, Depends, status

from grindproof.api.deps import get_current_user, get_db
from grindproof.api.models import PatternCreate, PatternUpdate
from grindproof.store import patterns


router = APIRouter()


@router.get("")
async def list_patterns(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.list_patterns(conn, user["user_id"])


@router.get("/by-type/{pattern_type}")
async def get_patterns_by_type(
    pattern_type: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.get_patterns_by_type(conn, user["user_id"], pattern_type)


@router.get("/{pattern_id}")
async def get_pattern(
    pattern_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.get_pattern(conn, user["user_id"], pattern_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_pattern(
    body: PatternCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.create_pattern(conn, user["user_id"], **body.model_dump())


@router.patch("/{pattern_id}")
async def update_pattern(
    pattern_id: str,
    body: PatternUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.update_pattern(
        conn, user["user_id"], pattern_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{pattern_id}")
async def delete_pattern(
    pattern_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return patterns.delete_pattern(conn, user["user_id"], pattern_id)
