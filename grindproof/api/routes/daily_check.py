"""
Daily Check Route - Morning planning and evening reflection

Morning:
- GET  /api/daily-check/morning-schedule
- POST /api/daily-check/refine-tasks
- POST /api/daily-check/morning-plan

Evening:
- GET  /api/daily-check/evening-comparison
- POST /api/daily-check/evening-reflection
"""

import sqlite3

import httpx
from fastapi import APIRouter, Depends, status

from grindproof import daily_check
from grindproof.ai.client import CoachClient
from grindproof.api.deps import get_coach, get_current_user, get_db, get_http
from grindproof.api.models import EveningReflection, MorningPlan, RefineRequest


router = APIRouter()


@router.get("/morning-schedule")
async def morning_schedule(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return daily_check.get_morning_schedule(conn, user["user_id"])


@router.post("/refine-tasks")
async def refine_tasks(
    body: RefineRequest,
    user: dict = Depends(get_current_user),
    coach: CoachClient = Depends(get_coach),
):
    """Turn free text into structured tasks; never fails because the LLM did."""
    return await daily_check.refine_plan(coach, body.text, body.locally_parsed)


@router.post("/morning-plan", status_code=status.HTTP_201_CREATED)
async def save_morning_plan(
    body: MorningPlan,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    items = [item.model_dump() for item in body.tasks]
    return await daily_check.save_morning_plan(conn, user["user_id"], items, http=http)


@router.get("/evening-comparison")
async def evening_comparison(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return daily_check.get_evening_comparison(conn, user["user_id"])


@router.post("/evening-reflection")
async def save_evening_reflection(
    body: EveningReflection,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return daily_check.save_evening_reflection(conn, user["user_id"], **body.model_dump())
