"""
Tool: Weekly Metrics
Purpose: Numbers behind the weekly roast and the evening check-in

Weekly scores (all rounded to 2 decimals):
    alignment   planned tasks (due this week) completed / planned,
                falling back to completed / created-this-week
    honesty     weighted evidence / completed tasks, capped at 1.0
                (validated evidence weighs 1.0, unvalidated 0.5)
    completion  completed / created-this-week

Reflections from evening check-ins are scanned for recurring excuses.

Usage:
    from grindproof.analysis.weekly_metrics import calculate_weekly_metrics, get_week_boundaries

    start, end = get_week_boundaries()
    metrics = calculate_weekly_metrics(conn, "alice", start, end)
"""

import re
import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from grindproof.analysis.data_analyzer import goal_under_half
from grindproof.config import get_section
from grindproof.errors import ValidationError
from grindproof.store import accountability_scores, evidence, goals, tasks
from grindproof.timeutils import date_key, parse_timestamp, start_of_day, start_of_week, utcnow


EXCUSE_PATTERNS = {
    "distracted": re.compile(r"distract|interrupt", re.IGNORECASE),
    "time_underestimated": re.compile(r"underestimate|took longer|more time", re.IGNORECASE),
    "tired": re.compile(r"tired|exhausted|energy|sleep", re.IGNORECASE),
    "procrastination": re.compile(r"procrastinat|put off|delay", re.IGNORECASE),
    "forgot": re.compile(r"forgot|remember", re.IGNORECASE),
    "unexpected": re.compile(r"unexpected|came up|emergency", re.IGNORECASE),
    "priority_change": re.compile(r"priority|changed|urgent", re.IGNORECASE),
}


@dataclass
class WeeklyMetrics:
    week_start: datetime
    week_end: datetime
    alignment_score: float = 0.0
    honesty_score: float = 0.0
    completion_rate: float = 0.0
    new_projects_started: int = 0
    evidence_submissions: int = 0
    tasks_planned: int = 0
    tasks_completed: int = 0
    tasks_skipped: int = 0
    tasks_overdue: int = 0
    tasks_created: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": date_key(self.week_start),
            "week_end": date_key(self.week_end),
            "alignment_score": self.alignment_score,
            "honesty_score": self.honesty_score,
            "completion_rate": self.completion_rate,
            "new_projects_started": self.new_projects_started,
            "evidence_submissions": self.evidence_submissions,
            "tasks_planned": self.tasks_planned,
            "tasks_completed": self.tasks_completed,
            "tasks_skipped": self.tasks_skipped,
            "tasks_overdue": self.tasks_overdue,
            "tasks_created": self.tasks_created,
        }


@dataclass
class ReflectionSummary:
    reflections: list[str] = field(default_factory=list)
    excuse_counts: dict[str, int] = field(default_factory=dict)

    def top_excuses(self, limit: int = 3) -> list[dict[str, Any]]:
        ranked = Counter(self.excuse_counts).most_common(limit)
        return [{"pattern": name.replace("_", " "), "count": count} for name, count in ranked]


def get_week_boundaries(
    week_start: Any = None, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Start (00:00) and exclusive end of a week. Defaults to the current Sunday-based week."""
    if week_start:
        try:
            start = start_of_day(parse_timestamp(week_start))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid week_start: {week_start}") from e
    else:
        start = start_of_week(now or utcnow())
    return start, start + timedelta(days=7)


def daily_alignment(day_tasks: list[dict[str, Any]]) -> dict[str, Any]:
    """Completed / total for one day's tasks; 0 when there are none."""
    total = len(day_tasks)
    completed = sum(1 for t in day_tasks if t["status"] == "completed")
    return {
        "total": total,
        "completed": completed,
        "pending": sum(1 for t in day_tasks if t["status"] == "pending"),
        "skipped": sum(1 for t in day_tasks if t["status"] == "skipped"),
        "alignment_score": completed / total if total else 0,
    }


def calculate_weekly_metrics(
    conn: sqlite3.Connection,
    user_id: str,
    week_start: datetime,
    week_end: datetime,
    now: datetime | None = None,
) -> WeeklyMetrics:
    now = now or utcnow()
    validation = get_section("validation")
    weights = validation.get("evidence_weights", {})
    validated_weight = weights.get("validated", 1.0)
    unvalidated_weight = weights.get("unvalidated", 0.5)
    goal_threshold = get_section("analysis").get("new_project_goal_threshold", 3)

    week_tasks = tasks.list_tasks_created_between(conn, user_id, week_start, week_end)
    planned = tasks.list_tasks_due_between(conn, user_id, week_start, week_end)

    # A goal created this week counts as a new project if the user was already
    # sitting on enough unfinished ones
    all_goals = goals.list_goals(conn, user_id)
    week_goals = [
        g for g in all_goals if week_start <= parse_timestamp(g["created_at"]) < week_end
    ]
    new_projects = 0
    if week_goals:
        all_tasks = tasks.list_tasks(conn, user_id)
        active_under_half = [
            g for g in all_goals if g["status"] == "active" and goal_under_half(g["id"], all_tasks)
        ]
        if len(active_under_half) >= goal_threshold:
            new_projects = len(week_goals)

    task_ids = evidence.list_user_task_ids(conn, user_id)
    week_evidence = evidence.list_evidence_for_tasks(conn, task_ids, week_start, week_end)
    validated = sum(1 for e in week_evidence if e["ai_validated"])
    unvalidated = len(week_evidence) - validated

    completed = [t for t in week_tasks if t["status"] == "completed"]
    skipped = [t for t in week_tasks if t["status"] == "skipped"]
    overdue = [
        t
        for t in week_tasks
        if t["status"] == "pending" and t.get("due_date") and parse_timestamp(t["due_date"]) < now
    ]
    planned_completed = [t for t in planned if t["status"] == "completed"]

    if planned:
        alignment = len(planned_completed) / len(planned)
    elif week_tasks:
        alignment = len(completed) / len(week_tasks)
    else:
        alignment = 0.0

    if completed:
        weighted = validated * validated_weight + unvalidated * unvalidated_weight
        honesty = min(weighted / len(completed), 1.0)
    else:
        honesty = 0.0

    completion = len(completed) / len(week_tasks) if week_tasks else 0.0

    return WeeklyMetrics(
        week_start=week_start,
        week_end=week_end,
        alignment_score=round(alignment, 2),
        honesty_score=round(honesty, 2),
        completion_rate=round(completion, 2),
        new_projects_started=new_projects,
        evidence_submissions=len(week_evidence),
        tasks_planned=len(planned),
        tasks_completed=len(completed),
        tasks_skipped=len(skipped),
        tasks_overdue=len(overdue),
        tasks_created=len(week_tasks),
    )


def summarize_reflections(
    conn: sqlite3.Connection, user_id: str, week_start: datetime, week_end: datetime
) -> ReflectionSummary:
    """Collect evening reflections saved during the week and count excuse categories."""
    summary = ReflectionSummary()
    counts: Counter = Counter()
    start_key, end_key = date_key(week_start), date_key(week_end)

    for score in reversed(accountability_scores.list_scores(conn, user_id)):
        if not start_key <= score["week_start"] < end_key:
            continue
        metadata = score.get("roast_metadata") or {}
        reflections = metadata.get("reflections") if isinstance(metadata, dict) else None
        if isinstance(reflections, dict):
            reflections = list(reflections.values())
        elif not isinstance(reflections, list):
            continue
        for reflection in reflections:
            if not isinstance(reflection, str) or not reflection:
                continue
            summary.reflections.append(reflection.lower())
            for name, pattern in EXCUSE_PATTERNS.items():
                if pattern.search(reflection):
                    counts[name] += 1

    summary.excuse_counts = dict(counts)
    return summary
