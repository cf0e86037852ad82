"""
Evidence Route - Proof of completion attached to tasks
"""

import sqlite3

from fastapi import APIRouter, Depends, Query, status

from grindproof.api.deps import get_current_user, get_db
from grindproof.api.models import EvidenceCreate, EvidenceUpdate
from grindproof.store import evidence


router = APIRouter()


@router.get("")
async def list_evidence(
    task_id: str | None = None,
    evidence_type: str | None = Query(None, alias="type"),
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.list_evidence(conn, user["user_id"], task_id=task_id, evidence_type=evidence_type)


@router.get("/by-task/{task_id}")
async def get_evidence_by_task(
    task_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.get_evidence_by_task(conn, user["user_id"], task_id)


@router.get("/{evidence_id}")
async def get_evidence(
    evidence_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.get_evidence(conn, user["user_id"], evidence_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_evidence(
    body: EvidenceCreate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.create_evidence(
        conn,
        user["user_id"],
        task_id=body.task_id,
        evidence_type=body.type,
        content=body.content,
        ai_validated=body.ai_validated,
        validation_notes=body.validation_notes,
        submitted_at=body.submitted_at,
    )


@router.patch("/{evidence_id}")
async def update_evidence(
    evidence_id: str,
    body: EvidenceUpdate,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.update_evidence(
        conn, user["user_id"], evidence_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{evidence_id}")
async def delete_evidence(
    evidence_id: str,
    user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    return evidence.delete_evidence(conn, user["user_id"], evidence_id)
