"""
Tool: Task Parser
Purpose: Turn a free-text morning plan into task dicts without calling the LLM

Recognizes one task per line (bullets, numbered lists or plain lines) and
extracts:
    "(high priority)"   -> priority
    "at 10am", "at 14:30" -> start_time
    "for 2 hours", "for 30 minutes" -> estimated_duration (+ end_time)

When the parse looks confident the caller can skip LLM refinement.

Usage:
    from grindproof.ai.task_parser import parse_tasks, is_confident_parse

    tasks = parse_tasks("- Gym at 6pm (high priority)\\n- Write report for 2 hours")
    if not is_confident_parse(tasks):
        ...  # ask the coach to refine
"""

import re
from typing import Any


MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 200

SKIP_PREFIXES = ("#", "Here", "I've", "Based on")

BULLET_RE = re.compile(r"^(?:[-*•]|\d+\.)\s+(.+)$")
PRIORITY_RE = re.compile(r"\((high|medium|low)\s*priority\)", re.IGNORECASE)
TIME_RE = re.compile(r"\s+at\s+(\d{1,2}(?::\d{2})?(?:\s*(?:am|pm))?)\b", re.IGNORECASE)
DURATION_RE = re.compile(r"\s+for\s+(\d+)\s*(hour|minute)s?", re.IGNORECASE)
AMPM_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)$")
CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
HHMM_RE = re.compile(r"^\d{2}:\d{2}$")


def normalize_time(value: str) -> str:
    """'6pm' -> '18:00', '9:05' -> '09:05'. Unrecognized input is returned lowercased."""
    cleaned = value.strip().lower()

    match = AMPM_RE.match(cleaned)
    if match:
        hours = int(match.group(1))
        minutes = match.group(2) or "00"
        period = match.group(3)
        if period == "pm" and hours != 12:
            hours += 12
        if period == "am" and hours == 12:
            hours = 0
        return f"{hours:02d}:{minutes}"

    match = CLOCK_RE.match(cleaned)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    return cleaned


def calculate_end_time(start_time: str, duration_minutes: int) -> str:
    """Add minutes to an HH:MM time, wrapping past midnight."""
    hours, minutes = (int(part) for part in start_time.split(":"))
    total = (hours * 60 + minutes + duration_minutes) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def parse_task_text(text: str) -> dict[str, Any] | None:
    """Parse one task line. Returns None when no usable title remains."""
    if not text or len(text) < MIN_TITLE_LENGTH:
        return None

    task: dict[str, Any] = {"title": text, "priority": "medium"}

    match = PRIORITY_RE.search(text)
    if match:
        task["priority"] = match.group(1).lower()
        task["title"] = text.replace(match.group(0), "").strip()

    match = TIME_RE.search(task["title"])
    if match:
        task["start_time"] = normalize_time(match.group(1))
        task["title"] = task["title"].replace(match.group(0), "").strip()

    match = DURATION_RE.search(task["title"])
    if match:
        amount = int(match.group(1))
        duration = amount * 60 if match.group(2).lower() == "hour" else amount
        task["estimated_duration"] = duration
        task["title"] = task["title"].replace(match.group(0), "").strip()
        if task.get("start_time") and duration and HHMM_RE.match(task["start_time"]):
            task["end_time"] = calculate_end_time(task["start_time"], duration)

    title = re.sub(r"^[-*•]\s*", "", task["title"])
    title = re.sub(r"^\d+\.\s*", "", title)
    title = re.sub(r"\s+", " ", title).strip()
    if len(title) < MIN_TITLE_LENGTH:
        return None
    task["title"] = title
    return task


def parse_tasks(text: str) -> list[dict[str, Any]]:
    """Parse every task-looking line of a plan."""
    tasks = []
    for line in text.splitlines():
        stripped = line.strip()
        if len(stripped) < 5 or stripped.startswith(SKIP_PREFIXES):
            continue

        match = BULLET_RE.match(stripped)
        task_text = match.group(1) if match else stripped
        if len(task_text) > MAX_TITLE_LENGTH:
            continue

        task = parse_task_text(task_text)
        if task:
            tasks.append(task)
    return tasks


def validate_task(task: dict[str, Any]) -> bool:
    title = task.get("title") or ""
    if not MIN_TITLE_LENGTH <= len(title) <= MAX_TITLE_LENGTH:
        return False
    for key in ("start_time", "end_time"):
        if task.get(key) and not HHMM_RE.match(task[key]):
            return False
    return True


def is_confident_parse(tasks: list[dict[str, Any]]) -> bool:
    """
    True when the local parse is good enough to skip LLM refinement.

    Every task must be valid and at least half must carry a start time,
    a non-default priority or a duration.
    """
    if not tasks or not all(validate_task(t) for t in tasks):
        return False
    detailed = [
        t
        for t in tasks
        if t.get("start_time")
        or (t.get("priority") and t["priority"] != "medium")
        or t.get("estimated_duration")
    ]
    return len(detailed) / len(tasks) >= 0.5
