"""
GrindProof database.

One SQLite file holds every table. ``get_connection`` creates the schema
on first use, so callers never run a separate migration step.

Usage:
    from grindproof.database import get_connection

    conn = get_connection()
    try:
        ...
    finally:
        conn.close()
"""

import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Iterable

from grindproof import DB_PATH


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS goals (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        target_date TEXT,
        status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'completed', 'paused')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK(priority IN ('high', 'medium', 'low')),
        time_horizon TEXT CHECK(time_horizon IN ('daily', 'weekly', 'monthly', 'annual') OR time_horizon IS NULL),
        github_repos TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        goal_id TEXT REFERENCES goals(id) ON DELETE SET NULL,
        title TEXT NOT NULL,
        description TEXT,
        due_date TEXT,
        start_time TEXT,
        end_time TEXT,
        status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending', 'completed', 'skipped')),
        priority TEXT NOT NULL DEFAULT 'medium' CHECK(priority IN ('high', 'medium', 'low')),
        completion_proof TEXT,
        tags TEXT,
        google_calendar_event_id TEXT,
        is_synced_with_calendar INTEGER NOT NULL DEFAULT 0,
        recurrence_pattern TEXT,
        parent_task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS evidence (
        id TEXT PRIMARY KEY,
        task_id TEXT REFERENCES tasks(id) ON DELETE CASCADE,
        type TEXT NOT NULL CHECK(type IN ('photo', 'screenshot', 'text', 'link')),
        content TEXT NOT NULL,
        submitted_at TEXT NOT NULL,
        ai_validated INTEGER NOT NULL DEFAULT 0,
        validation_notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accountability_scores (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        week_start TEXT NOT NULL,
        alignment_score REAL CHECK(alignment_score IS NULL OR (alignment_score >= 0 AND alignment_score <= 1)),
        honesty_score REAL CHECK(honesty_score IS NULL OR (honesty_score >= 0 AND honesty_score <= 1)),
        completion_rate REAL CHECK(completion_rate IS NULL OR (completion_rate >= 0 AND completion_rate <= 1)),
        new_projects_started INTEGER NOT NULL DEFAULT 0 CHECK(new_projects_started >= 0),
        evidence_submissions INTEGER NOT NULL DEFAULT 0 CHECK(evidence_submissions >= 0),
        completed_tasks INTEGER,
        total_tasks INTEGER,
        insights TEXT,
        recommendations TEXT,
        week_summary TEXT,
        roast_metadata TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(user_id, week_start)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS patterns (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        pattern_type TEXT NOT NULL,
        description TEXT,
        confidence REAL NOT NULL DEFAULT 0.0 CHECK(confidence >= 0 AND confidence <= 1),
        occurrences INTEGER NOT NULL DEFAULT 1 CHECK(occurrences >= 0),
        first_detected TEXT NOT NULL,
        last_occurred TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS integrations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        service_type TEXT NOT NULL,
        credentials TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'connected' CHECK(status IN ('connected', 'disconnected', 'error')),
        metadata TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(user_id, service_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        token_hash TEXT UNIQUE NOT NULL,
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        last_activity TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(user_id, due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_calendar ON tasks(user_id, google_calendar_event_id)",
    "CREATE INDEX IF NOT EXISTS idx_goals_user ON goals(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_evidence_task ON evidence(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_scores_user_week ON accountability_scores(user_id, week_start)",
    "CREATE INDEX IF NOT EXISTS idx_patterns_user_type ON patterns(user_id, pattern_type)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_token ON sessions(token_hash)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id)",
]


def init_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they do not exist."""
    cursor = conn.cursor()
    for statement in SCHEMA:
        cursor.execute(statement)
    for statement in INDEXES:
        cursor.execute(statement)
    conn.commit()


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    path = Path(db_path) if db_path else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    # FastAPI may open the connection in a worker thread and use it in the event loop
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    init_schema(conn)
    return conn


def generate_id() -> str:
    """Generate a unique ID."""
    return uuid.uuid4().hex


def decode_row(
    row: sqlite3.Row | None,
    json_fields: Iterable[str] = (),
    bool_fields: Iterable[str] = (),
) -> dict[str, Any] | None:
    """Convert a row to a dict, decoding JSON text and integer booleans."""
    if row is None:
        return None
    data = dict(row)
    for field in json_fields:
        raw = data.get(field)
        data[field] = json.loads(raw) if raw else None
    for field in bool_fields:
        if field in data:
            data[field] = bool(data[field])
    return data


def encode_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str)


def build_update(
    fields: dict[str, Any],
    json_fields: Iterable[str] = (),
    bool_fields: Iterable[str] = (),
) -> tuple[list[str], list[Any]]:
    """Build ``SET`` clauses and parameters from a partial update dict."""
    json_fields = set(json_fields)
    bool_fields = set(bool_fields)
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in fields.items():
        clauses.append(f"{column} = ?")
        if column in json_fields:
            params.append(encode_json(value))
        elif column in bool_fields:
            params.append(1 if value else 0)
        else:
            params.append(value)
    return clauses, params
