"""GrindProof - Accountability backend

Philosophy:
    Plans are cheap. What you actually did is the only honest signal.
    Every task, goal and piece of evidence is a data point, and the
    coach reads the data before it reads your excuses.

Components:
    database.py: SQLite schema and row helpers
    store/: Per-entity persistence (tasks, goals, evidence, scores,
        patterns, integrations), always scoped to one user
    analysis/: Descriptive statistics and rule-based pattern detection
    ai/: Prompts, function declarations, LLM output contracts, coach flows
    integrations/: GitHub and Google Calendar clients
    daily_check.py: Morning plan / evening reflection flows
    api/: FastAPI application

Usage:
    from grindproof.database import get_connection
    from grindproof.analysis.data_analyzer import analyze_user_data

    conn = get_connection()
    analysis = analyze_user_data(conn, user_id="alice")
    print(analysis.task_stats.completion_rate)
"""

import os
from pathlib import Path

__version__ = "0.1.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = PROJECT_ROOT / "args" / "grindproof.yaml"
DB_PATH = Path(os.environ.get("GRINDPROOF_DB_PATH", PROJECT_ROOT / "data" / "grindproof.db"))

# Valid values
TASK_STATUSES = ("pending", "completed", "skipped")
GOAL_STATUSES = ("active", "completed", "paused")
PRIORITIES = ("high", "medium", "low")
TIME_HORIZONS = ("daily", "weekly", "monthly", "annual")
EVIDENCE_TYPES = ("photo", "screenshot", "text", "link")
INTEGRATION_STATUSES = ("connected", "disconnected", "error")
RECURRENCE_TYPES = ("daily", "weekly", "monthly", "custom")
INSIGHT_SEVERITIES = ("high", "medium", "positive")

# Pattern types the LLM may report; rule-based detectors use a subset
PATTERN_TYPES = (
    "procrastination",
    "task_skipping",
    "new_project_addiction",
    "goal_abandonment",
    "evidence_avoidance",
    "overcommitment",
    "vague_planning",
    "planning_without_execution",
)

# Integration service identifiers
GITHUB_SERVICE = "github"
GOOGLE_CALENDAR_SERVICE = "google_calendar"
