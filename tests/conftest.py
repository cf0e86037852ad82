"""Shared test fixtures for GrindProof tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A fixed clock ("now") and helpers to backdate rows
- Standard test users and task/goal factories
- A fake coach client standing in for the Anthropic API

Usage:
    def test_something(conn, user_id, make_task):
        task = make_task(title="Write report")
        ...
"""

import os
import sqlite3
import tempfile
from collections.abc import Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

# Keep any code path that opens the default database away from data/
os.environ.setdefault(
    "GRINDPROOF_DB_PATH", str(Path(tempfile.gettempdir()) / "grindproof-test-default.db")
)

from grindproof.ai.client import CoachReply, ToolCall  # noqa: E402
from grindproof.database import get_connection  # noqa: E402
from grindproof.store import goals, tasks  # noqa: E402
from grindproof.timeutils import to_iso  # noqa: E402


# ─────────────────────────────────────────────────────────────────────────────
# Clock
# ─────────────────────────────────────────────────────────────────────────────

# Wednesday; the Sunday-based week runs 2026-10-11 .. 2026-10-18
NOW = datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)
WEEK_START = datetime(2026, 10, 11, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def week_start() -> datetime:
    return WEEK_START


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    if db_path.exists():
        os.unlink(db_path)


@pytest.fixture
def conn(temp_db: Path) -> Generator[sqlite3.Connection, None, None]:
    """Connection to a fresh GrindProof schema."""
    connection = get_connection(temp_db)
    yield connection
    connection.close()


@pytest.fixture
def user_id() -> str:
    return "alice"


@pytest.fixture
def other_user_id() -> str:
    return "bob"


def set_columns(conn: sqlite3.Connection, table: str, row_id: str, **values: Any) -> None:
    assignments = ", ".join(f"{name} = ?" for name in values)
    params = [to_iso(v) if isinstance(v, datetime) else v for v in values.values()]
    conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", [*params, row_id])
    conn.commit()


@pytest.fixture
def backdate(conn: sqlite3.Connection):
    """Overwrite columns directly, e.g. to backdate created_at / updated_at."""

    def _set(table: str, row_id: str, **values: Any) -> None:
        set_columns(conn, table, row_id, **values)

    return _set


@pytest.fixture
def make_task(conn: sqlite3.Connection, user_id: str):
    """Factory creating a task for ``user_id``; timestamps may be backdated."""

    def _make(
        title: str = "Test task",
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        owner: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        if isinstance(fields.get("due_date"), datetime):
            fields["due_date"] = to_iso(fields["due_date"])
        task = tasks.create_task(conn, owner or user_id, title, **fields)
        stamps = {}
        if created_at is not None:
            stamps["created_at"] = created_at
        if updated_at is not None:
            stamps["updated_at"] = updated_at
        if stamps:
            set_columns(conn, "tasks", task["id"], **stamps)
            task = tasks.get_task(conn, owner or user_id, task["id"])
        return task

    return _make


@pytest.fixture
def make_goal(conn: sqlite3.Connection, user_id: str):
    """Factory creating a goal for ``user_id``."""

    def _make(
        title: str = "Test goal",
        created_at: datetime | None = None,
        owner: str | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        goal = goals.create_goal(conn, owner or user_id, title, **fields)
        if created_at is not None:
            set_columns(conn, "goals", goal["id"], created_at=created_at)
            goal = goals.get_goal(conn, owner or user_id, goal["id"])
        return goal

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# LLM Fixtures
# ─────────────────────────────────────────────────────────────────────────────


class FakeCoach:
    """Stand-in for CoachClient returning queued responses and recording calls.

    ``generate`` pops from ``texts``; ``respond`` pops from ``replies``. An
    exception placed in either queue is raised instead of returned.
    """

    available = True

    def __init__(self, texts: list | None = None, replies: list | None = None):
        self.texts = list(texts or [])
        self.replies = list(replies or [])
        self.generate_calls: list[dict[str, Any]] = []
        self.respond_calls: list[dict[str, Any]] = []

    async def generate(self, system, prompt, temperature=None, max_tokens=None):
        self.generate_calls.append({"system": system, "prompt": prompt, "temperature": temperature})
        item = self.texts.pop(0) if self.texts else ""
        if isinstance(item, Exception):
            raise item
        return item

    async def respond(self, system, messages, tools=None):
        # Copy: the caller keeps appending to the same conversation list
        self.respond_calls.append({"system": system, "messages": list(messages), "tools": tools})
        item = self.replies.pop(0) if self.replies else CoachReply(text="")
        if isinstance(item, Exception):
            raise item
        return item


def _tool_reply(name: str, arguments: dict[str, Any], call_id: str = "toolu_1") -> CoachReply:
    """A model turn that asks for one tool call."""
    return CoachReply(
        text="",
        tool_calls=[ToolCall(id=call_id, name=name, input=arguments)],
        content=[{"type": "tool_use", "id": call_id, "name": name, "input": arguments}],
        stop_reason="tool_use",
    )


def _text_reply(text: str) -> CoachReply:
    return CoachReply(
        text=text, content=[{"type": "text", "text": text}], stop_reason="end_turn"
    )


@pytest.fixture
def fake_coach() -> FakeCoach:
    return FakeCoach()


@pytest.fixture
def tool_reply():
    return _tool_reply


@pytest.fixture
def text_reply():
    return _text_reply
