"""
Accountability Scores Route - One weekly score per user

Creating a second score for the same week returns 409; the roast and
evening-reflection flows upsert instead.
"""

import sqlite3

from fastapi import APIRouter, Depends, status

from grindproof.api.deps import get_current_user, get_db
from grindproof.api.models import ScoreCreate, ScoreUpdate
from grindproof.store import accountability_scores as scores


router = APIRouter()


@router.get("")
async def list_scores(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """All scores, most recent week first."""
    return scores.list_scores(conn, user["user_id"])


@router.get("/by-week/{week_start}")
async def get_score_by_week(
    week_start: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """The score for a week (YYYY-MM-DD), or null when none exists."""
    return scores.get_score_by_week(conn, user["user_id"], week_start)


@router.get("/{score_id}")
async def get_score(
    score_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return scores.get_score(conn, user["user_id"], score_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_score(
    body: ScoreCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return scores.create_score(conn, user["user_id"], **body.model_dump())


@router.patch("/{score_id}")
async def update_score(
    score_id: str,
    body: ScoreUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return scores.update_score(conn, user["user_id"], score_id, body.model_dump(exclude_unset=True))


@router.delete("/{score_id}")
async def delete_score(
    score_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return scores.delete_score(conn, user["user_id"], score_id)
