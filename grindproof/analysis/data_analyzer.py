"""
Tool: Data Analyzer
Purpose: Descriptive statistics and rule-based behavior patterns for one user

Reads the user's tasks, goals and evidence and reduces them to numbers the
coach can quote back: completion rates, overdue counts, late completions,
goals stalling under 50%. The detectors are pure functions over in-memory
lists with fixed thresholds:

Task patterns:
    procrastination     > 50% of due-dated completions finished late
    task_skipping       > 20% of all tasks skipped
    overcommitment      >= 5 pending tasks past their due date
    vague_planning      > 50% of pending tasks have no due date

Goal patterns:
    new_project_addiction       >= 3 active goals under 50% complete
    goal_abandonment            active goals with no task touched in 30 days
    planning_without_execution  > 30% of active goals have zero tasks

A goal with no tasks counts as 0% complete. Weeks start Sunday 00:00 UTC.

Usage:
    from grindproof.analysis.data_analyzer import analyze_user_data

    analysis = analyze_user_data(conn, "alice")
    for pattern in analysis.task_patterns:
        print(pattern.type, pattern.confidence)
"""

import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from grindproof.config import get_section
from grindproof.errors import UpstreamError
from grindproof.timeutils import parse_timestamp, start_of_week, utcnow


DEFAULT_EVIDENCE_SAMPLES = 3


# =============================================================================
# Value objects
# =============================================================================


@dataclass
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    skipped: int = 0
    overdue: int = 0
    completion_rate: float = 0.0
    pending_this_week: int = 0
    pending_next_week: int = 0
    completed_late: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "skipped": self.skipped,
            "overdue": self.overdue,
            "completion_rate": self.completion_rate,
            "pending_this_week": self.pending_this_week,
            "pending_next_week": self.pending_next_week,
            "completed_late": self.completed_late,
        }


@dataclass
class GoalStats:
    total: int = 0
    active: int = 0
    completed: int = 0
    paused: int = 0
    active_under_50_percent: int = 0
    completion_rate: float = 0.0
    new_goals_this_week: int = 0
    high_priority_active: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "active": self.active,
            "completed": self.completed,
            "paused": self.paused,
            "active_under_50_percent": self.active_under_50_percent,
            "completion_rate": self.completion_rate,
            "new_goals_this_week": self.new_goals_this_week,
            "high_priority_active": self.high_priority_active,
        }


@dataclass
class TaskPattern:
    type: str
    description: str
    confidence: float
    occurrences: int
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "confidence": self.confidence,
            "occurrences": self.occurrences,
            "evidence": self.evidence,
        }


@dataclass
class GoalPattern:
    type: str
    description: str
    confidence: float
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "confidence": self.confidence,
            "evidence": self.evidence,
        }


@dataclass
class EvidenceStats:
    total: int = 0
    this_week: int = 0
    by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "this_week": self.this_week, "by_type": dict(self.by_type)}


@dataclass
class UserAnalysis:
    task_stats: TaskStats
    goal_stats: GoalStats
    task_patterns: list[TaskPattern]
    goal_patterns: list[GoalPattern]
    evidence_stats: EvidenceStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_stats": self.task_stats.to_dict(),
            "goal_stats": self.goal_stats.to_dict(),
            "task_patterns": [p.to_dict() for p in self.task_patterns],
            "goal_patterns": [p.to_dict() for p in self.goal_patterns],
            "evidence_stats": self.evidence_stats.to_dict(),
        }


# =============================================================================
# Helpers
# =============================================================================


def _clamp(value: float) -> float:
    return max(0.0, min(value, 1.0))


def _titles(items: list[dict[str, Any]]) -> list[str]:
    limit = get_section("analysis").get("max_evidence_samples", DEFAULT_EVIDENCE_SAMPLES)
    return [item["title"] for item in items[:limit]]


def _is_overdue(task: dict[str, Any], now: datetime) -> bool:
    due = parse_timestamp(task.get("due_date"))
    return task["status"] == "pending" and due is not None and due < now


def _is_completed_late(task: dict[str, Any]) -> bool:
    if task["status"] != "completed" or not task.get("due_date"):
        return False
    updated = parse_timestamp(task.get("updated_at"))
    return updated is not None and parse_timestamp(task["due_date"]) < updated


def goal_under_half(goal_id: str, tasks: list[dict[str, Any]]) -> bool:
    goal_tasks = [t for t in tasks if t.get("goal_id") == goal_id]
    if not goal_tasks:
        return True
    done = sum(1 for t in goal_tasks if t["status"] == "completed")
    return done / len(goal_tasks) < 0.5


def _fetch_all(conn: sqlite3.Connection, query: str, params: tuple, entity: str) -> list[dict]:
    try:
        return [dict(row) for row in conn.execute(query, params).fetchall()]
    except sqlite3.Error as e:
        raise UpstreamError(f"Failed to fetch {entity}: {e}") from e


def _fetch_tasks(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    return _fetch_all(
        conn,
        "SELECT * FROM tasks WHERE user_id = ? ORDER BY created_at DESC",
        (user_id,),
        "tasks",
    )


# =============================================================================
# Statistics
# =============================================================================


def compute_task_stats(tasks: list[dict[str, Any]], now: datetime | None = None) -> TaskStats:
    """Reduce a task list to TaskStats. Pure."""
    now = now or utcnow()
    week_start = start_of_week(now)
    week_end = week_start + timedelta(days=7)
    next_week_end = week_end + timedelta(days=7)

    completed = [t for t in tasks if t["status"] == "completed"]
    pending = [t for t in tasks if t["status"] == "pending"]
    skipped = [t for t in tasks if t["status"] == "skipped"]

    pending_this_week = 0
    pending_next_week = 0
    for task in pending:
        due = parse_timestamp(task.get("due_date"))
        if due is None:
            continue
        if week_start <= due < week_end:
            pending_this_week += 1
        elif week_end <= due < next_week_end:
            pending_next_week += 1

    total = len(tasks)
    return TaskStats(
        total=total,
        completed=len(completed),
        pending=len(pending),
        skipped=len(skipped),
        overdue=sum(1 for t in tasks if _is_overdue(t, now)),
        completion_rate=len(completed) / total if total else 0.0,
        pending_this_week=pending_this_week,
        pending_next_week=pending_next_week,
        completed_late=sum(1 for t in completed if _is_completed_late(t)),
    )


def compute_goal_stats(
    goals: list[dict[str, Any]], tasks: list[dict[str, Any]], now: datetime | None = None
) -> GoalStats:
    """Reduce goals (plus their tasks) to GoalStats. Pure."""
    now = now or utcnow()
    week_start = start_of_week(now)

    active = [g for g in goals if g["status"] == "active"]
    completed = [g for g in goals if g["status"] == "completed"]
    paused = [g for g in goals if g["status"] == "paused"]

    new_this_week = 0
    for goal in goals:
        created = parse_timestamp(goal.get("created_at"))
        if created is not None and created >= week_start:
            new_this_week += 1

    total = len(goals)
    return GoalStats(
        total=total,
        active=len(active),
        completed=len(completed),
        paused=len(paused),
        active_under_50_percent=sum(1 for g in active if goal_under_half(g["id"], tasks)),
        completion_rate=len(completed) / total if total else 0.0,
        new_goals_this_week=new_this_week,
        high_priority_active=sum(1 for g in active if g.get("priority") == "high"),
    )


def fetch_user_tasks_analysis(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> tuple[list[dict[str, Any]], TaskStats]:
    """
    Fetch the user's tasks (newest first) and compute their statistics.

    Raises:
        UpstreamError: "Failed to fetch tasks: ..."
    """
    tasks = _fetch_tasks(conn, user_id)
    return tasks, compute_task_stats(tasks, now)


def fetch_user_goals_analysis(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> tuple[list[dict[str, Any]], GoalStats]:
    """
    Fetch the user's goals and compute their statistics.

    Tasks are re-read so goal progress reflects the current state.

    Raises:
        UpstreamError: "Failed to fetch goals: ..." or "Failed to fetch tasks: ..."
    """
    goals = _fetch_all(
        conn,
        "SELECT * FROM goals WHERE user_id = ? ORDER BY created_at DESC",
        (user_id,),
        "goals",
    )
    tasks = _fetch_tasks(conn, user_id)
    return goals, compute_goal_stats(goals, tasks, now)


def fetch_evidence_stats(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> EvidenceStats:
    """Count evidence attached to the user's tasks. No tasks means no evidence query."""
    now = now or utcnow()
    task_ids = [
        row["id"]
        for row in _fetch_all(conn, "SELECT id FROM tasks WHERE user_id = ?", (user_id,), "tasks")
    ]
    if not task_ids:
        return EvidenceStats()

    placeholders = ", ".join("?" for _ in task_ids)
    evidence = _fetch_all(
        conn,
        f"SELECT type, submitted_at FROM evidence WHERE task_id IN ({placeholders})",
        tuple(task_ids),
        "evidence",
    )

    week_start = start_of_week(now)
    this_week = 0
    for item in evidence:
        submitted = parse_timestamp(item.get("submitted_at"))
        if submitted is not None and submitted >= week_start:
            this_week += 1

    return EvidenceStats(
        total=len(evidence),
        this_week=this_week,
        by_type=dict(Counter(item["type"] for item in evidence)),
    )


# =============================================================================
# Pattern detection
# =============================================================================


def analyze_task_patterns(
    tasks: list[dict[str, Any]], now: datetime | None = None
) -> list[TaskPattern]:
    """Apply the task rules. Each rule fires independently."""
    if not tasks:
        return []
    now = now or utcnow()
    patterns: list[TaskPattern] = []

    late = [t for t in tasks if _is_completed_late(t)]
    if late:
        with_due = sum(1 for t in tasks if t["status"] == "completed" and t.get("due_date"))
        rate = len(late) / with_due if with_due else 0.0
        if rate > 0.5:
            patterns.append(
                TaskPattern(
                    type="procrastination",
                    description=f"{len(late)} tasks completed after due date",
                    confidence=_clamp(rate),
                    occurrences=len(late),
                    evidence=_titles(late),
                )
            )

    skipped = [t for t in tasks if t["status"] == "skipped"]
    if skipped:
        rate = len(skipped) / len(tasks)
        if rate > 0.2:
            patterns.append(
                TaskPattern(
                    type="task_skipping",
                    description=f"{len(skipped)} tasks skipped ({round(rate * 100)}% of all tasks)",
                    confidence=_clamp(rate * 2),
                    occurrences=len(skipped),
                    evidence=_titles(skipped),
                )
            )

    overdue = [t for t in tasks if _is_overdue(t, now)]
    if len(overdue) >= 5:
        patterns.append(
            TaskPattern(
                type="overcommitment",
                description=f"{len(overdue)} overdue tasks piling up",
                confidence=_clamp(len(overdue) / 10),
                occurrences=len(overdue),
                evidence=_titles(overdue),
            )
        )

    pending = [t for t in tasks if t["status"] == "pending"]
    undated = [t for t in pending if not t.get("due_date")]
    if undated:
        rate = len(undated) / len(pending)
        if rate > 0.5:
            patterns.append(
                TaskPattern(
                    type="vague_planning",
                    description=f"{len(undated)} pending tasks without due dates",
                    confidence=_clamp(rate),
                    occurrences=len(undated),
                    evidence=_titles(undated),
                )
            )

    return patterns


def analyze_goal_patterns(
    goals: list[dict[str, Any]], tasks: list[dict[str, Any]], now: datetime | None = None
) -> list[GoalPattern]:
    """Apply the goal rules against goals and the tasks linked to them."""
    if not goals:
        return []
    now = now or utcnow()
    abandonment_days = get_section("analysis").get("abandonment_days", 30)
    cutoff = now - timedelta(days=abandonment_days)
    patterns: list[GoalPattern] = []

    active = [g for g in goals if g["status"] == "active"]
    tasks_by_goal: dict[str, list[dict[str, Any]]] = {}
    for task in tasks:
        if task.get("goal_id"):
            tasks_by_goal.setdefault(task["goal_id"], []).append(task)

    under_half = [g for g in active if goal_under_half(g["id"], tasks)]
    if len(under_half) >= 3:
        patterns.append(
            GoalPattern(
                type="new_project_addiction",
                description=f"{len(under_half)} active goals under 50% complete",
                confidence=_clamp(len(under_half) / 5),
                evidence=_titles(under_half),
            )
        )

    def has_recent_activity(goal: dict[str, Any]) -> bool:
        for task in tasks_by_goal.get(goal["id"], []):
            updated = parse_timestamp(task.get("updated_at"))
            if updated is not None and updated > cutoff:
                return True
        return False

    abandoned = [g for g in active if not has_recent_activity(g)]
    if abandoned:
        patterns.append(
            GoalPattern(
                type="goal_abandonment",
                description=f"{len(abandoned)} active goals with no activity in {abandonment_days}+ days",
                confidence=_clamp(len(abandoned) / 3),
                evidence=_titles(abandoned),
            )
        )

    taskless = [g for g in active if not tasks_by_goal.get(g["id"])]
    if taskless:
        rate = len(taskless) / len(active)
        if rate > 0.3:
            patterns.append(
                GoalPattern(
                    type="planning_without_execution",
                    description=f"{len(taskless)} active goals with no tasks created",
                    confidence=_clamp(rate * 1.5),
                    evidence=_titles(taskless),
                )
            )

    return patterns


# =============================================================================
# Aggregation
# =============================================================================


def analyze_user_data(
    conn: sqlite3.Connection, user_id: str, now: datetime | None = None
) -> UserAnalysis:
    """
    Run every statistic and detector for one user.

    Any fetch failure aborts the whole analysis with UpstreamError.
    """
    now = now or utcnow()
    tasks, task_stats = fetch_user_tasks_analysis(conn, user_id, now)
    goals, goal_stats = fetch_user_goals_analysis(conn, user_id, now)
    task_patterns = analyze_task_patterns(tasks, now)
    goal_patterns = analyze_goal_patterns(goals, tasks, now)
    evidence_stats = fetch_evidence_stats(conn, user_id, now)

    return UserAnalysis(
        task_stats=task_stats,
        goal_stats=goal_stats,
        task_patterns=task_patterns,
        goal_patterns=goal_patterns,
        evidence_stats=evidence_stats,
    )
