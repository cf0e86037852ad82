"""
Tool declarations for the coach chat.

The model creates, edits and searches the user's data only through these
declarations (Anthropic tool-use format). Relative dates in the
descriptions are rendered for the day the conversation happens, so the
model can resolve "tomorrow" without guessing.

Usage:
    from grindproof.ai.function_tools import build_tools

    tools = build_tools(date.today())
    reply = await client.respond(system, messages, tools=tools)
"""

from datetime import date, timedelta
from typing import Any


TOOL_NAMES = (
    "create_task",
    "update_task",
    "delete_task",
    "search_tasks",
    "search_goals",
    "generate_roast",
    "analyze_patterns",
)


def _date_hints(today: date, include_next_week: bool = False) -> str:
    tomorrow = today + timedelta(days=1)
    lines = [
        "Parse relative dates:",
        f'- "tomorrow" = {tomorrow.isoformat()}',
        f'- "today" = {today.isoformat()}',
    ]
    if include_next_week:
        lines.append(f'- "next week" = {(today + timedelta(days=7)).isoformat()}')
    else:
        lines.append('- "next monday" = calculate next Monday\'s date')
        lines.append("- If no date mentioned, leave null")
    return "\n".join(lines)


def build_tools(today: date) -> list[dict[str, Any]]:
    """All seven tool declarations with date hints for ``today``."""
    return [
        {
            "name": "create_task",
            "description": (
                "Create a new task for the user with specified details.\n\n"
                "Use this when the user wants to add a task, todo item or reminder, "
                "or schedule something.\n\n"
                'Examples: "add task to workout tomorrow", "remind me to call mom next monday", '
                '"create task: finish report by friday", "new task workout at 6am"'
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": "Clear, specific task title. Concise and actionable.",
                    },
                    "description": {
                        "type": "string",
                        "description": "Optional details or notes for the task.",
                    },
                    "dueDate": {
                        "type": "string",
                        "description": "Due date in YYYY-MM-DD format. " + _date_hints(today),
                    },
                    "startTime": {
                        "type": "string",
                        "description": (
                            'Start time in HH:MM (24-hour), e.g. "06:00" for 6am, "14:30" for 2:30pm. '
                            "Only include if specifically mentioned."
                        ),
                    },
                    "endTime": {
                        "type": "string",
                        "description": "End time in HH:MM (24-hour). Only include if specifically mentioned.",
                    },
                    "priority": {
                        "type": "string",
                        "enum": ["high", "medium", "low"],
                        "description": (
                            'Default "medium" unless specified or implied. '
                            '"high": urgent, important, asap, deadline. '
                            '"low": nice-to-have, someday, maybe.'
                        ),
                    },
                    "tags": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": 'Optional tags from context, e.g. "workout", "work", "personal".',
                    },
                },
                "required": ["title", "priority"],
            },
        },
        {
            "name": "update_task",
            "description": (
                "Update an existing task by searching for it and applying changes.\n\n"
                "Use this to modify, reschedule, or mark a task completed or skipped.\n\n"
                'Examples: "change workout to tomorrow", "update gym task to high priority", '
                '"mark the report task as completed"'
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "searchQuery": {
                        "type": "string",
                        "description": (
                            "Keywords identifying the task, e.g. "
                            '"change workout to tomorrow" -> "workout".'
                        ),
                    },
                    "updates": {
                        "type": "object",
                        "description": "Only the fields that should change.",
                        "properties": {
                            "title": {"type": "string", "description": "New task title"},
                            "description": {"type": "string", "description": "New task description"},
                            "dueDate": {
                                "type": "string",
                                "description": "New due date in YYYY-MM-DD format. "
                                + _date_hints(today, include_next_week=True),
                            },
                            "priority": {"type": "string", "enum": ["high", "medium", "low"]},
                            "status": {"type": "string", "enum": ["pending", "completed", "skipped"]},
                        },
                    },
                },
                "required": ["searchQuery", "updates"],
            },
        },
        {
            "name": "delete_task",
            "description": (
                "Delete an existing task by searching for it.\n\n"
                'Examples: "delete workout task", "remove the meeting", "cancel gym task"'
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "searchQuery": {
                        "type": "string",
                        "description": 'Keywords identifying the task, e.g. "remove meeting" -> "meeting".',
                    },
                },
                "required": ["searchQuery"],
            },
        },
        {
            "name": "search_tasks",
            "description": (
                "Search tasks by keywords, status or date filter.\n\n"
                'Examples: "show me my tasks today", "what do I have tomorrow", '
                '"find workout tasks", "show overdue tasks"'
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search keywords. Can be empty for broad searches.",
                    },
                    "status": {"type": "string", "enum": ["pending", "completed", "skipped", "all"]},
                    "dateFilter": {
                        "type": "string",
                        "enum": ["today", "tomorrow", "this_week", "overdue"],
                    },
                },
                "required": ["query"],
            },
        },
        {
            "name": "search_goals",
            "description": (
                "Search goals by keywords or status.\n\n"
                'Examples: "show my active goals", "find fitness goals", "what are my goals"'
            ),
            "input_schema": {
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search keywords for finding goals"},
                    "status": {"type": "string", "enum": ["active", "completed", "archived"]},
                },
                "required": ["query"],
            },
        },
        {
            "name": "generate_roast",
            "description": (
                "Generate the weekly accountability report with insights and recommendations.\n\n"
                'Examples: "roast me", "how did I do this week", "weekly report"'
            ),
            "input_schema": {"type": "object", "properties": {}},
        },
        {
            "name": "analyze_patterns",
            "description": (
                "Analyze behavioral patterns from the user's task and goal data.\n\n"
                'Examples: "analyze my patterns", "what patterns do you see"'
            ),
            "input_schema": {"type": "object", "properties": {}},
        },
    ]
