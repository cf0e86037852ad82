"""
Goals Route - Goal CRUD and Search
"""

import sqlite3

from fastapi import APIRouter, Depends, Query, status

from grindproof.api.deps import get_current_user, get_db
from grindproof.api.models import GoalCreate, GoalUpdate
from grindproof.store import goals


router = APIRouter()


@router.get("")
async def list_goals(
    status_filter: str | None = Query(None, alias="status"),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.list_goals(conn, user["user_id"], status=status_filter)


@router.get("/search")
async def search_goals(
    q: str = "",
    status_filter: str | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.search_goals(conn, user["user_id"], query=q, status=status_filter, limit=limit)


@router.get("/{goal_id}")
async def get_goal(
    goal_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.get_goal(conn, user["user_id"], goal_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_goal(
    body: GoalCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.create_goal(conn, user["user_id"], **body.model_dump())


@router.patch("/{goal_id}")
async def update_goal(
    goal_id: str,
    body: GoalUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.update_goal(conn, user["user_id"], goal_id, body.model_dump(exclude_unset=True))


@router.delete("/{goal_id}")
async def delete_goal(
    goal_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return goals.delete_goal(conn, user["user_id"], goal_id)
