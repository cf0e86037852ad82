"""
Tool: Coach
Purpose: LLM-backed flows - pattern analysis, weekly roast, task refinement, chat

Every flow takes the CoachClient as a parameter; nothing here builds its
own client. Model output is always passed through grindproof.ai.contracts
before it is stored.

Flows:
    analyze_patterns  rule-based + LLM patterns, persisted with record_detection
    generate_roast    weekly metrics + LLM insights, upserted as the week's score
    refine_tasks      LLM task parsing with fallback to the local parse
    chat              tool-use loop over the seven coach tools

Usage:
    from grindproof.ai import coach

    result = await coach.generate_roast(conn, "alice", client)
    print(result["week_summary"])
"""

import json
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

import httpx

from grindproof.ai.client import CoachClient
from grindproof.ai.contracts import (
    MalformedResponse,
    parse_pattern_response,
    parse_roast_response,
    parse_task_refinement,
)
from grindproof.ai.function_tools import build_tools
from grindproof.ai.prompts import (
    GRINDPROOF_SYSTEM_PROMPT,
    PATTERN_DETECTION_PROMPT,
    TASK_REFINEMENT_PROMPT,
    WEEKLY_ROAST_PROMPT,
)
from grindproof.analysis.data_analyzer import analyze_user_data
from grindproof.analysis.weekly_metrics import (
    calculate_weekly_metrics,
    get_week_boundaries,
    summarize_reflections,
)
from grindproof.config import get_section
from grindproof.errors import GrindProofError, LLMError, ValidationError
from grindproof.integrations import calendar_sync
from grindproof.store import accountability_scores, goals, patterns, tasks
from grindproof.timeutils import date_key, utcnow


logger = logging.getLogger(__name__)

CHAT_ROLES = ("user", "assistant")
MAX_SAMPLE_REFLECTIONS = 5
MAX_ROAST_PATTERNS = 5
MAX_AMBIGUOUS_TITLES = 5


def _percent(value: float) -> int:
    return round(value * 100)


# =============================================================================
# Pattern analysis
# =============================================================================


async def analyze_patterns(
    conn: sqlite3.Connection,
    user_id: str,
    client: CoachClient,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Detect and persist behavioral patterns.

    Rule-based detections and valid LLM detections are merged; anything
    under ``validation.min_confidence`` is discarded, the rest recorded.
    """
    now = now or utcnow()
    analysis = analyze_user_data(conn, user_id, now)
    task_stats, goal_stats = analysis.task_stats, analysis.goal_stats

    data_summary = {
        "tasks": {
            "total": task_stats.total,
            "completed": task_stats.completed,
            "pending": task_stats.pending,
            "skipped": task_stats.skipped,
            "overdue": task_stats.overdue,
            "completionRate": _percent(task_stats.completion_rate),
            "completedLate": task_stats.completed_late,
        },
        "goals": {
            "total": goal_stats.total,
            "active": goal_stats.active,
            "completed": goal_stats.completed,
            "activeUnder50Percent": goal_stats.active_under_50_percent,
            "newGoalsThisWeek": goal_stats.new_goals_this_week,
            "completionRate": _percent(goal_stats.completion_rate),
        },
        "evidence": {
            "total": analysis.evidence_stats.total,
            "thisWeek": analysis.evidence_stats.this_week,
        },
        "detectedPatterns": {
            "task": [p.to_dict() for p in analysis.task_patterns],
            "goal": [p.to_dict() for p in analysis.goal_patterns],
        },
    }

    text = await client.generate(
        PATTERN_DETECTION_PROMPT,
        "Analyze this user's behavior data and detect patterns:\n\n"
        + json.dumps(data_summary, indent=2),
    )
    ai_patterns = parse_pattern_response(text)

    # One entry per type; the highest confidence wins
    by_type: dict[str, dict[str, Any]] = {}
    rule_patterns = [
        {"type": p.type, "description": p.description, "confidence": p.confidence}
        for p in [*analysis.task_patterns, *analysis.goal_patterns]
    ]
    for pattern in [*rule_patterns, *ai_patterns]:
        current = by_type.get(pattern["type"])
        if current is None or pattern["confidence"] > current["confidence"]:
            by_type[pattern["type"]] = pattern
    detected = list(by_type.values())

    min_confidence = get_section("validation").get("min_confidence", 0.5)
    saved = []
    for pattern in detected:
        if pattern["confidence"] < min_confidence:
            continue
        record, action = patterns.record_detection(
            conn, user_id, pattern["type"], pattern["description"], pattern["confidence"], now
        )
        saved.append(
            {
                "id": record["id"],
                "type": record["pattern_type"],
                "description": record["description"],
                "confidence": record["confidence"],
                "action": action,
            }
        )

    logger.info(f"Pattern analysis for {user_id}: {len(detected)} detected, {len(saved)} saved")
    return {
        "success": True,
        "analysis": data_summary,
        "patterns_detected": len(detected),
        "patterns_saved": len(saved),
        "patterns": saved,
    }


# =============================================================================
# Weekly roast
# =============================================================================


async def generate_roast(
    conn: sqlite3.Connection,
    user_id: str,
    client: CoachClient,
    week_start: Any = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Weekly report for the week starting ``week_start`` (default: current week)."""
    now = now or utcnow()
    start, end = get_week_boundaries(week_start, now)
    metrics = calculate_weekly_metrics(conn, user_id, start, end, now)
    analysis = analyze_user_data(conn, user_id, now)
    reflections = summarize_reflections(conn, user_id, start, end)

    top_patterns = sorted(
        patterns.list_patterns(conn, user_id), key=lambda p: p["confidence"], reverse=True
    )[:MAX_ROAST_PATTERNS]

    roast_data = {
        "week": {"start": date_key(start), "end": date_key(end)},
        "metrics": {
            "alignmentScore": _percent(metrics.alignment_score),
            "honestyScore": _percent(metrics.honesty_score),
            "completionRate": _percent(metrics.completion_rate),
            "tasksPlanned": metrics.tasks_planned,
            "tasksCompleted": metrics.tasks_completed,
            "tasksSkipped": metrics.tasks_skipped,
            "tasksOverdue": metrics.tasks_overdue,
            "newProjectsStarted": metrics.new_projects_started,
            "evidenceSubmissions": metrics.evidence_submissions,
        },
        "patterns": [
            {
                "type": p["pattern_type"],
                "description": p["description"],
                "confidence": _percent(p["confidence"]),
            }
            for p in top_patterns
        ],
        "reflections": {
            "totalReflections": len(reflections.reflections),
            "topExcuses": reflections.top_excuses(),
            "sampleReflections": reflections.reflections[:MAX_SAMPLE_REFLECTIONS],
        },
        "overall": {
            "totalGoals": analysis.goal_stats.total,
            "activeGoals": analysis.goal_stats.active,
            "goalsUnder50Percent": analysis.goal_stats.active_under_50_percent,
            "totalTasks": analysis.task_stats.total,
            "overdueTasksTotal": analysis.task_stats.overdue,
        },
    }

    text = await client.generate(
        WEEKLY_ROAST_PROMPT,
        "Generate a Weekly Roast Report based on this data:\n\n" + json.dumps(roast_data, indent=2),
    )
    roast = parse_roast_response(
        text, metrics.tasks_completed, metrics.tasks_planned, metrics.completion_rate
    )

    week = date_key(start)
    accountability_scores.upsert_for_week(
        conn,
        user_id,
        week,
        {
            "alignment_score": metrics.alignment_score,
            "honesty_score": metrics.honesty_score,
            "completion_rate": metrics.completion_rate,
            "new_projects_started": metrics.new_projects_started,
            "evidence_submissions": metrics.evidence_submissions,
            "insights": roast["insights"],
            "recommendations": roast["recommendations"],
            "week_summary": roast["weekSummary"],
        },
    )

    return {
        "success": True,
        "week_start": week,
        "alignment_score": metrics.alignment_score,
        "honesty_score": metrics.honesty_score,
        "completion_rate": metrics.completion_rate,
        "new_projects_started": metrics.new_projects_started,
        "evidence_submissions": metrics.evidence_submissions,
        "metrics": {
            "tasks_planned": metrics.tasks_planned,
            "tasks_completed": metrics.tasks_completed,
            "tasks_skipped": metrics.tasks_skipped,
            "tasks_overdue": metrics.tasks_overdue,
        },
        "insights": roast["insights"],
        "recommendations": roast["recommendations"],
        "week_summary": roast["weekSummary"],
    }


# =============================================================================
# Task refinement
# =============================================================================


async def refine_tasks(
    client: CoachClient,
    text: str,
    locally_parsed: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Structure a free-text plan with the LLM.

    Any LLM or parse failure (or an empty result) returns ``locally_parsed``
    unchanged. With nothing to fall back on the result is empty and carries
    an explanatory message.
    """
    temperature = get_section("ai").get("refine_temperature", 0.2)
    try:
        response = await client.generate(
            TASK_REFINEMENT_PROMPT, f"Parse these priorities:\n\n{text}", temperature=temperature
        )
        refined = parse_task_refinement(response)
        if refined:
            return {"tasks": refined, "source": "ai"}
        logger.warning("Task refinement returned no valid tasks")
    except (LLMError, MalformedResponse) as e:
        logger.warning(f"Task refinement failed, falling back: {e}")

    if locally_parsed:
        return {"tasks": locally_parsed, "source": "local"}
    return {
        "tasks": [],
        "source": "none",
        "message": "Could not parse tasks automatically. Add them one per line and try again.",
    }


# =============================================================================
# Chat tools
# =============================================================================


@dataclass
class ToolContext:
    conn: sqlite3.Connection
    user_id: str
    client: CoachClient
    now: datetime
    http: httpx.AsyncClient | None = None


def _task_summary(task: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": task["id"],
        "title": task["title"],
        "status": task["status"],
        "priority": task["priority"],
        "due_date": task.get("due_date"),
        "start_time": task.get("start_time"),
    }


def _goal_summary(goal: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": goal["id"],
        "title": goal["title"],
        "status": goal["status"],
        "priority": goal["priority"],
        "target_date": goal.get("target_date"),
    }


def _find_task(ctx: ToolContext, query: str) -> dict[str, Any]:
    """
    The single task a search query refers to.

    An exact (case-insensitive) title match wins among several results.

    Raises:
        ValidationError: empty query, no match, or an ambiguous match
    """
    query = (query or "").strip()
    if not query:
        raise ValidationError("searchQuery is required")

    matches = tasks.search_tasks(ctx.conn, ctx.user_id, query=query, now=ctx.now)
    if not matches:
        raise ValidationError(f'No task found matching "{query}"')
    if len(matches) == 1:
        return matches[0]

    exact = [t for t in matches if t["title"].lower() == query.lower()]
    if len(exact) == 1:
        return exact[0]

    titles = ", ".join(t["title"] for t in matches[:MAX_AMBIGUOUS_TITLES])
    raise ValidationError(f'Several tasks match "{query}": {titles}. Ask which one.')


async def _tool_create_task(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    fields = {
        "title": args.get("title") or "",
        "description": args.get("description"),
        "due_date": args.get("dueDate"),
        "start_time": args.get("startTime"),
        "end_time": args.get("endTime"),
        "priority": args.get("priority") or "medium",
        "tags": args.get("tags"),
    }
    task = await calendar_sync.create_task(ctx.conn, ctx.user_id, fields, http=ctx.http)
    return {"success": True, "task": _task_summary(task)}


async def _tool_update_task(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    target = _find_task(ctx, args.get("searchQuery", ""))
    raw = args.get("updates") or {}
    updates = {
        key: raw[source]
        for key, source in (
            ("title", "title"),
            ("description", "description"),
            ("due_date", "dueDate"),
            ("priority", "priority"),
            ("status", "status"),
        )
        if raw.get(source) is not None
    }
    if not updates:
        raise ValidationError("No updates provided")
    task = await calendar_sync.update_task(ctx.conn, ctx.user_id, target["id"], updates, http=ctx.http)
    return {"success": True, "task": _task_summary(task)}


async def _tool_delete_task(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    target = _find_task(ctx, args.get("searchQuery", ""))
    await calendar_sync.delete_task(ctx.conn, ctx.user_id, target["id"], http=ctx.http)
    return {"success": True, "deleted": _task_summary(target)}


async def _tool_search_tasks(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    found = tasks.search_tasks(
        ctx.conn,
        ctx.user_id,
        query=args.get("query", ""),
        status=args.get("status"),
        date_filter=args.get("dateFilter"),
        now=ctx.now,
    )
    return {"success": True, "count": len(found), "tasks": [_task_summary(t) for t in found]}


async def _tool_search_goals(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    found = goals.search_goals(
        ctx.conn, ctx.user_id, query=args.get("query", ""), status=args.get("status")
    )
    return {"success": True, "count": len(found), "goals": [_goal_summary(g) for g in found]}


async def _tool_generate_roast(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    return await generate_roast(ctx.conn, ctx.user_id, ctx.client, now=ctx.now)


async def _tool_analyze_patterns(ctx: ToolContext, args: dict[str, Any]) -> dict[str, Any]:
    return await analyze_patterns(ctx.conn, ctx.user_id, ctx.client, now=ctx.now)


CHAT_TOOLS: dict[str, Callable[[ToolContext, dict[str, Any]], Awaitable[dict[str, Any]]]] = {
    "create_task": _tool_create_task,
    "update_task": _tool_update_task,
    "delete_task": _tool_delete_task,
    "search_tasks": _tool_search_tasks,
    "search_goals": _tool_search_goals,
    "generate_roast": _tool_generate_roast,
    "analyze_patterns": _tool_analyze_patterns,
}


async def dispatch_tool(ctx: ToolContext, name: str, args: dict[str, Any]) -> dict[str, Any]:
    """Run one tool call. Domain errors become a failed result the model can read."""
    handler = CHAT_TOOLS.get(name)
    if handler is None:
        return {"success": False, "error": f"Unknown tool: {name}"}
    try:
        return await handler(ctx, args or {})
    except GrindProofError as e:
        logger.info(f"Tool {name} failed for {ctx.user_id}: {e.message}")
        return {"success": False, "error": e.message}


def _validate_messages(messages: Any) -> list[dict[str, Any]]:
    if not isinstance(messages, list) or not messages:
        raise ValidationError("Messages array is required")
    clean = []
    for message in messages:
        if (
            not isinstance(message, dict)
            or message.get("role") not in CHAT_ROLES
            or not isinstance(message.get("content"), str)
        ):
            raise ValidationError("Each message needs a role (user/assistant) and text content")
        clean.append({"role": message["role"], "content": message["content"]})
    if clean[-1]["role"] != "user":
        raise ValidationError("The last message must come from the user")
    return clean


async def chat(
    conn: sqlite3.Connection,
    user_id: str,
    client: CoachClient,
    messages: list[dict[str, Any]],
    now: datetime | None = None,
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """
    One coach reply to a conversation.

    The model may call tools for up to ``ai.max_tool_rounds`` rounds; each
    call runs against the caller's data and is reported in ``actions``.
    """
    now = now or utcnow()
    conversation = _validate_messages(messages)
    tools = build_tools(now.date())
    ctx = ToolContext(conn=conn, user_id=user_id, client=client, now=now, http=http)
    max_rounds = get_section("ai").get("max_tool_rounds", 5)

    actions: list[dict[str, Any]] = []
    text = ""
    for _ in range(max_rounds):
        reply = await client.respond(GRINDPROOF_SYSTEM_PROMPT, conversation, tools=tools)
        text = reply.text
        if not reply.tool_calls:
            return {"text": text, "actions": actions}

        conversation.append({"role": "assistant", "content": reply.content})
        results = []
        for call in reply.tool_calls:
            result = await dispatch_tool(ctx, call.name, call.input)
            actions.append({"tool": call.name, "input": call.input, "result": result})
            results.append(
                {
                    "type": "tool_result",
                    "tool_use_id": call.id,
                    "content": json.dumps(result, default=str),
                    "is_error": result.get("success") is False,
                }
            )
        conversation.append({"role": "user", "content": results})

    logger.warning(f"Chat for {user_id} hit the tool round limit ({max_rounds})")
    return {
        "text": text or "I ran out of steps on that request. Check your tasks and ask again.",
        "actions": actions,
    }
