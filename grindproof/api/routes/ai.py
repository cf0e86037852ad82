"""
AI Route - Behavioral analysis and the coach

- GET  /api/ai/analyze           - rule-based analysis only, no LLM call
- POST /api/ai/analyze-patterns  - analysis + LLM, detected patterns saved
- POST /api/ai/generate-roast    - weekly metrics + LLM roast, score saved
- POST /api/ai/chat              - coach conversation with task tools

LLM failures surface as ``{"error", "code", "errorType"}`` with 429 for
quota and 503 for a missing API key.
"""

import sqlite3

import httpx
from fastapi import APIRouter, Depends

from grindproof.ai import coach
from grindproof.ai.client import CoachClient
from grindproof.analysis.data_analyzer import analyze_user_data
from grindproof.api.deps import get_coach, get_current_user, get_db, get_http
from grindproof.api.models import ChatRequest, RoastRequest


router = APIRouter()


@router.get("/analyze")
async def analyze(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return analyze_user_data(conn, user["user_id"]).to_dict()


@router.post("/analyze-patterns")
async def analyze_patterns(
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    client: CoachClient = Depends(get_coach),
):
    return await coach.analyze_patterns(conn, user["user_id"], client)


@router.post("/generate-roast")
async def generate_roast(
    body: RoastRequest | None = None,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    client: CoachClient = Depends(get_coach),
):
    """Roast for the week starting ``week_start`` (default: the current Sunday-based week)."""
    week_start = body.week_start if body else None
    return await coach.generate_roast(conn, user["user_id"], client, week_start=week_start)


@router.post("/chat")
async def chat(
    body: ChatRequest,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
    client: CoachClient = Depends(get_coach),
    http: httpx.AsyncClient | None = Depends(get_http),
):
    return await coach.chat(conn, user["user_id"], client, body.messages, http=http)
