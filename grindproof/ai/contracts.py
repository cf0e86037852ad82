"""
Validation of LLM output.

The model is asked for JSON in fixed shapes (see grindproof.ai.prompts).
Everything it returns passes through here before touching the database.
Entries that violate a contract are dropped, never repaired.

Contracts:
    Task refinement  {"tasks": [{title, start_time?, end_time?, estimated_duration?, priority?}]}
    Pattern report   {"patterns": [{type, description (50-100 chars), confidence (0.5-1.0), shouldSave: true}]}
    Weekly roast     {"insights": [{emoji, text, severity}], "recommendations": [...], "weekSummary": "..."}
"""

import json
import logging
import re
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from grindproof import PATTERN_TYPES


logger = logging.getLogger(__name__)

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

PatternType = Literal[
    "procrastination",
    "task_skipping",
    "new_project_addiction",
    "goal_abandonment",
    "evidence_avoidance",
    "overcommitment",
    "vague_planning",
    "planning_without_execution",
]

DEFAULT_ROAST = {
    "insights": [],
    "recommendations": [],
    "weekSummary": "Week complete. Keep pushing forward.",
}


class MalformedResponse(ValueError):
    """JSON object present but unparseable, or not an object."""


# =============================================================================
# JSON extraction
# =============================================================================


def extract_json_object(text: str) -> dict[str, Any] | None:
    """
    Pull the first {...} span out of a model response.

    Returns None when the text contains no braces at all.

    Raises:
        MalformedResponse: braces found but the span is not a JSON object
    """
    if not text:
        return None
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]

    match = JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON in model response: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedResponse("Model response is not a JSON object")
    return parsed


# =============================================================================
# Pattern contract
# =============================================================================


class PatternEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: PatternType
    description: str = Field(min_length=50, max_length=100)
    confidence: float = Field(ge=0.5, le=1.0)
    should_save: bool = Field(alias="shouldSave")

    @field_validator("description", mode="before")
    @classmethod
    def description_is_text(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("description must be a string")
        return value

    @field_validator("confidence", mode="before")
    @classmethod
    def confidence_is_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("confidence must be a number")
        return value

    @field_validator("should_save", mode="before")
    @classmethod
    def should_save_is_true(cls, value: Any) -> Any:
        if value is not True:
            raise ValueError("shouldSave must be literally true")
        return value


def validate_pattern_entries(entries: Any) -> list[dict[str, Any]]:
    """Keep only entries meeting the pattern contract."""
    if not isinstance(entries, list):
        return []
    valid = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            pattern = PatternEntry.model_validate(entry)
        except ValidationError as e:
            logger.debug(f"Dropping pattern entry {entry!r}: {e.error_count()} errors")
            continue
        valid.append(
            {
                "type": pattern.type,
                "description": pattern.description,
                "confidence": pattern.confidence,
                "shouldSave": True,
            }
        )
    return valid


def parse_pattern_response(text: str) -> list[dict[str, Any]]:
    """Valid pattern entries from a model response; [] if nothing usable."""
    try:
        data = extract_json_object(text)
    except MalformedResponse as e:
        logger.warning(f"Pattern response unparseable: {e}")
        return []
    if not data:
        return []
    return validate_pattern_entries(data.get("patterns"))


# =============================================================================
# Task refinement contract
# =============================================================================


class RefinedTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    start_time: str | None = Field(None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: str | None = Field(None, validation_alias=AliasChoices("end_time", "endTime"))
    estimated_duration: float | None = Field(
        None, gt=0, validation_alias=AliasChoices("estimated_duration", "estimatedDuration")
    )
    priority: Literal["high", "medium", "low"] | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("title must be a string")
        return value.strip()

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time(cls, value: str | None) -> str | None:
        if value is not None and not TIME_RE.match(value):
            raise ValueError("time must be HH:MM (24-hour)")
        return value


def validate_refined_tasks(entries: Any) -> list[dict[str, Any]]:
    """Keep only entries meeting the task contract, dropping unset optional fields."""
    if not isinstance(entries, list):
        return []
    valid = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            task = RefinedTask.model_validate(entry)
        except ValidationError:
            continue
        data = task.model_dump(exclude_none=True)
        if "estimated_duration" in data and float(data["estimated_duration"]).is_integer():
            data["estimated_duration"] = int(data["estimated_duration"])
        valid.append(data)
    return valid


def parse_task_refinement(text: str) -> list[dict[str, Any]]:
    """
    Parse a task-refinement response.

    Raises:
        MalformedResponse: no JSON object, invalid JSON, or no "tasks" list
    """
    data = extract_json_object(text)
    if data is None or not isinstance(data.get("tasks"), list):
        raise MalformedResponse("Model response has no tasks list")
    return validate_refined_tasks(data["tasks"])


# =============================================================================
# Weekly roast contract
# =============================================================================


class Insight(BaseModel):
    model_config = ConfigDict(extra="ignore")

    emoji: str = ""
    text: str = Field(min_length=1)
    severity: Literal["high", "medium", "positive"]


def fallback_roast(tasks_completed: int, tasks_planned: int, completion_rate: float) -> dict[str, Any]:
    """Metric-only report used when the model's JSON cannot be read."""
    return {
        "insights": [
            {
                "emoji": "📊",
                "text": f"{tasks_completed}/{tasks_planned} tasks completed this week",
                "severity": "positive" if completion_rate >= 0.7 else "medium",
            }
        ],
        "recommendations": ["Focus on completing pending tasks before adding new ones"],
        "weekSummary": "Week analyzed. Review your metrics above.",
    }


def parse_roast_response(
    text: str, tasks_completed: int, tasks_planned: int, completion_rate: float
) -> dict[str, Any]:
    """
    Read the weekly roast JSON.

    No JSON at all gives the neutral default; JSON that cannot be parsed
    gives the metric-based fallback. Invalid insights are dropped.
    """
    try:
        data = extract_json_object(text)
    except MalformedResponse as e:
        logger.warning(f"Roast response unparseable, using fallback: {e}")
        return fallback_roast(tasks_completed, tasks_planned, completion_rate)
    if data is None:
        return dict(DEFAULT_ROAST)

    raw_insights = data.get("insights")
    raw_recommendations = data.get("recommendations")
    if not isinstance(raw_insights, list):
        raw_insights = []
    if not isinstance(raw_recommendations, list):
        raw_recommendations = []

    insights = []
    for entry in raw_insights:
        if not isinstance(entry, dict):
            continue
        try:
            insights.append(Insight.model_validate(entry).model_dump())
        except ValidationError:
            continue

    recommendations = [r for r in raw_recommendations if isinstance(r, str) and r]
    summary = data.get("weekSummary")

    return {
        "insights": insights,
        "recommendations": recommendations,
        "weekSummary": summary if isinstance(summary, str) and summary else None,
    }


__all__ = [
    "DEFAULT_ROAST",
    "MalformedResponse",
    "PATTERN_TYPES",
    "extract_json_object",
    "fallback_roast",
    "parse_pattern_response",
    "parse_roast_response",
    "parse_task_refinement",
    "validate_pattern_entries",
    "validate_refined_tasks",
]
