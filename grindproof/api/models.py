"""
Pydantic models for GrindProof API request/response types.

Request bodies only check shapes and types; enum and range rules are
enforced by the store so every entry point reports them the same way.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# Common
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error message")
    code: str = Field(default="INTERNAL_ERROR", description="Error code")
    details: list[dict[str, Any]] | None = Field(None, description="Field-level problems")


class HealthCheck(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy", description="Overall system status")
    version: str = Field(default="0.1.0", description="API version")
    timestamp: datetime = Field(..., description="Check timestamp (UTC)")
    services: dict[str, str] = Field(default_factory=dict, description="Individual service statuses")


# =============================================================================
# Auth
# =============================================================================


class LoginRequest(BaseModel):
    """Login with the master key on behalf of a user."""

    password: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    ttl_hours: int | None = Field(None, gt=0)


class AuthStatus(BaseModel):
    authenticated: bool
    user_id: str | None = None
    expires_at: str | None = None


# =============================================================================
# Tasks
# =============================================================================


class TaskCreate(BaseModel):
    title: str
    description: str | None = None
    due_date: str | None = None
    goal_id: str | None = None
    priority: str = "medium"
    status: str = "pending"
    start_time: str | None = None
    end_time: str | None = None
    tags: list[str] | None = None
    recurrence_pattern: dict[str, Any] | None = None
    parent_task_id: str | None = None
    sync_with_calendar: bool = Field(True, description="Mirror to Google Calendar when connected")


class TaskUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    due_date: str | None = None
    goal_id: str | None = None
    priority: str | None = None
    status: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    tags: list[str] | None = None
    recurrence_pattern: dict[str, Any] | None = None
    completion_proof: str | None = None


class TaskComplete(BaseModel):
    proof: str | None = None


class TaskReschedule(BaseModel):
    new_date: str


# =============================================================================
# Goals
# =============================================================================


class GoalCreate(BaseModel):
    title: str
    description: str | None = None
    target_date: str | None = None
    status: str = "active"
    priority: str = "medium"
    time_horizon: str | None = None
    github_repos: list[str] | None = None


class GoalUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    target_date: str | None = None
    status: str | None = None
    priority: str | None = None
    time_horizon: str | None = None
    github_repos: list[str] | None = None


# =============================================================================
# Evidence
# =============================================================================


class EvidenceCreate(BaseModel):
    task_id: str | None = None
    type: str
    content: str
    ai_validated: bool = False
    validation_notes: str | None = None
    submitted_at: str | None = None


class EvidenceUpdate(BaseModel):
    task_id: str | None = None
    type: str | None = None
    content: str | None = None
    ai_validated: bool | None = None
    validation_notes: str | None = None


# =============================================================================
# Accountability scores
# =============================================================================


class ScoreFields(BaseModel):
    alignment_score: float | None = None
    honesty_score: float | None = None
    completion_rate: float | None = None
    insights: list[Any] | None = None
    recommendations: list[Any] | None = None
    week_summary: str | None = None
    roast_metadata: dict[str, Any] | None = None
    completed_tasks: int | None = None
    total_tasks: int | None = None


class ScoreCreate(ScoreFields):
    week_start: str
    new_projects_started: int = 0
    evidence_submissions: int = 0


class ScoreUpdate(ScoreFields):
    new_projects_started: int | None = None
    evidence_submissions: int | None = None


# =============================================================================
# Patterns
# =============================================================================


class PatternCreate(BaseModel):
    pattern_type: str
    description: str | None = None
    confidence: float = 0.0
    occurrences: int = 1
    first_detected: str | None = None
    last_occurred: str | None = None


class PatternUpdate(BaseModel):
    pattern_type: str | None = None
    description: str | None = None
    confidence: float | None = None
    occurrences: int | None = None
    last_occurred: str | None = None


# =============================================================================
# Integrations
# =============================================================================


class IntegrationCreate(BaseModel):
    service_type: str
    credentials: dict[str, Any] = Field(default_factory=dict)
    status: str = "connected"
    metadata: dict[str, Any] | None = None


class IntegrationUpdate(BaseModel):
    credentials: dict[str, Any] | None = None
    status: str | None = None
    metadata: dict[str, Any] | None = None


# =============================================================================
# Daily check
# =============================================================================


class PlannedTask(BaseModel):
    title: str
    description: str | None = None
    due_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    goal_id: str | None = None
    priority: str | None = None
    sync_to_calendar: bool = False


class MorningPlan(BaseModel):
    tasks: list[PlannedTask]


class RefineRequest(BaseModel):
    text: str
    locally_parsed: list[dict[str, Any]] | None = Field(
        None, description="Tasks already parsed on the client; returned as-is if the LLM fails"
    )


class EveningReflection(BaseModel):
    date: str
    alignment_score: float
    reflections: dict[str, str] = Field(default_factory=dict)
    completed_tasks: int
    total_tasks: int
    evidence_urls: dict[str, list[str]] | None = None


# =============================================================================
# AI
# =============================================================================


class RoastRequest(BaseModel):
    week_start: str | None = None


class ChatRequest(BaseModel):
    # Message shape is checked by the coach so errors match the other endpoints
    messages: list[Any] = Field(default_factory=list)
