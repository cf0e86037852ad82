"""Tests for grindproof/ai/coach.py

The coach client is replaced by the FakeCoach fixture, which returns queued
responses and records every call.
"""

import json
from datetime import timedelta

import pytest

from grindproof.ai import coach
from grindproof.ai.contracts import DEFAULT_ROAST
from grindproof.errors import LLMError, ValidationError
from grindproof.store import accountability_scores, patterns, tasks


AI_PATTERN = {
    "type": "evidence_avoidance",
    "description": "Marks tasks done without attaching any proof, three weeks running now.",
    "confidence": 0.7,
    "shouldSave": True,
}


# ─────────────────────────────────────────────────────────────────────────────
# Task refinement
# ─────────────────────────────────────────────────────────────────────────────


class TestRefineTasks:
    @pytest.mark.asyncio
    async def test_ai_result_used(self, fake_coach):
        fake_coach.texts = ['{"tasks": [{"title": "Gym", "startTime": "06:00"}]}']

        result = await coach.refine_tasks(fake_coach, "gym at 6")

        assert result == {"tasks": [{"title": "Gym", "start_time": "06:00"}], "source": "ai"}
        assert fake_coach.generate_calls[0]["temperature"] == 0.2
        assert "gym at 6" in fake_coach.generate_calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_local(self, fake_coach):
        fake_coach.texts = [LLMError("quota", kind="quota")]
        local = [{"title": "Gym", "priority": "medium"}]

        result = await coach.refine_tasks(fake_coach, "gym", locally_parsed=local)

        assert result == {"tasks": local, "source": "local"}

    @pytest.mark.asyncio
    async def test_malformed_json_falls_back_to_local(self, fake_coach):
        fake_coach.texts = ["{tasks: nope}"]
        local = [{"title": "Read", "priority": "low"}]

        result = await coach.refine_tasks(fake_coach, "read", locally_parsed=local)

        assert result["source"] == "local"

    @pytest.mark.asyncio
    async def test_nothing_usable(self, fake_coach):
        fake_coach.texts = ['{"tasks": []}']

        result = await coach.refine_tasks(fake_coach, "???")

        assert result["tasks"] == []
        assert result["source"] == "none"
        assert result["message"]


# ─────────────────────────────────────────────────────────────────────────────
# Pattern analysis
# ─────────────────────────────────────────────────────────────────────────────


class TestAnalyzePatterns:
    @pytest.mark.asyncio
    async def test_rule_and_ai_patterns_saved(self, conn, user_id, fake_coach, make_task, now):
        for i in range(6):
            make_task(f"overdue {i}", due_date=now - timedelta(days=2))
        fake_coach.texts = [json.dumps({"patterns": [AI_PATTERN, {**AI_PATTERN, "confidence": 0.3}]})]

        result = await coach.analyze_patterns(conn, user_id, fake_coach, now=now)

        saved = {p["type"]: p for p in result["patterns"]}
        assert set(saved) == {"overcommitment", "evidence_avoidance"}
        assert saved["overcommitment"]["confidence"] == pytest.approx(0.6)
        assert all(p["action"] == "created" for p in result["patterns"])
        assert result["analysis"]["tasks"]["overdue"] == 6
        assert "Analyze this user's behavior data" in fake_coach.generate_calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_repeat_run_updates(self, conn, user_id, fake_coach, now):
        fake_coach.texts = [json.dumps({"patterns": [AI_PATTERN]}), json.dumps({"patterns": [AI_PATTERN]})]

        await coach.analyze_patterns(conn, user_id, fake_coach, now=now)
        result = await coach.analyze_patterns(conn, user_id, fake_coach, now=now)

        assert result["patterns"][0]["action"] == "updated"
        stored = patterns.get_patterns_by_type(conn, user_id, "evidence_avoidance")
        assert stored[0]["occurrences"] == 2

    @pytest.mark.asyncio
    async def test_type_reported_by_rule_and_model_recorded_once(self, conn, user_id, fake_coach, make_task, now):
        for i in range(6):
            make_task(f"overdue {i}", due_date=now - timedelta(days=2))
        repeated = {
            **AI_PATTERN,
            "type": "overcommitment",
            "description": "Six tasks sit overdue while new ones keep getting added to the list.",
            "confidence": 0.8,
        }
        fake_coach.texts = [json.dumps({"patterns": [repeated]})]

        result = await coach.analyze_patterns(conn, user_id, fake_coach, now=now)

        assert result["patterns_saved"] == 1
        assert [(p["type"], p["action"]) for p in result["patterns"]] == [("overcommitment", "created")]
        stored = patterns.get_patterns_by_type(conn, user_id, "overcommitment")
        assert stored[0]["occurrences"] == 1
        assert stored[0]["confidence"] == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_garbage_response_saves_only_rules(self, conn, user_id, fake_coach, now):
        fake_coach.texts = ["I think the user is fine."]

        result = await coach.analyze_patterns(conn, user_id, fake_coach, now=now)

        assert result["patterns_saved"] == 0
        assert result["success"] is True


# ─────────────────────────────────────────────────────────────────────────────
# Weekly roast
# ─────────────────────────────────────────────────────────────────────────────


class TestGenerateRoast:
    @pytest.mark.asyncio
    async def test_roast_is_stored_for_the_week(self, conn, user_id, fake_coach, make_task, now, week_start):
        make_task("done", status="completed", due_date=now - timedelta(days=1), created_at=week_start)
        fake_coach.texts = [
            json.dumps(
                {
                    "insights": [{"emoji": "🔥", "text": "1/1 done", "severity": "positive"}],
                    "recommendations": ["Keep going"],
                    "weekSummary": "Clean week.",
                }
            )
        ]

        result = await coach.generate_roast(conn, user_id, fake_coach, now=now)

        assert result["week_start"] == "2026-10-11"
        assert result["completion_rate"] == 1.0
        assert result["metrics"]["tasks_completed"] == 1
        stored = accountability_scores.get_score_by_week(conn, user_id, "2026-10-11")
        assert stored["week_summary"] == "Clean week."
        assert stored["recommendations"] == ["Keep going"]

    @pytest.mark.asyncio
    async def test_explicit_week_and_plain_text_reply(self, conn, user_id, fake_coach, now):
        fake_coach.texts = ["Nothing to report."]

        result = await coach.generate_roast(conn, user_id, fake_coach, week_start="2026-10-04", now=now)

        assert result["week_start"] == "2026-10-04"
        assert result["week_summary"] == DEFAULT_ROAST["weekSummary"]

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self, conn, user_id, fake_coach, now):
        fake_coach.texts = [LLMError("down")]

        with pytest.raises(LLMError):
            await coach.generate_roast(conn, user_id, fake_coach, now=now)
        assert accountability_scores.list_scores(conn, user_id) == []


# ─────────────────────────────────────────────────────────────────────────────
# Chat
# ─────────────────────────────────────────────────────────────────────────────


class TestChat:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "messages",
        [
            [],
            [{"role": "system", "content": "hi"}],
            [{"role": "user", "content": 42}],
            [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
        ],
    )
    async def test_invalid_messages(self, conn, user_id, fake_coach, messages):
        with pytest.raises(ValidationError):
            await coach.chat(conn, user_id, fake_coach, messages)
        assert fake_coach.respond_calls == []

    @pytest.mark.asyncio
    async def test_plain_answer(self, conn, user_id, fake_coach, text_reply, now):
        fake_coach.replies = [text_reply("Do the report first.")]

        result = await coach.chat(conn, user_id, fake_coach, [{"role": "user", "content": "what now?"}], now=now)

        assert result == {"text": "Do the report first.", "actions": []}
        assert len(fake_coach.respond_calls[0]["tools"]) == 7

    @pytest.mark.asyncio
    async def test_tool_call_creates_task(self, conn, user_id, fake_coach, tool_reply, text_reply, now):
        fake_coach.replies = [
            tool_reply("create_task", {"title": "Workout", "dueDate": "2026-10-15", "priority": "high"}),
            text_reply("Added it."),
        ]

        result = await coach.chat(
            conn, user_id, fake_coach, [{"role": "user", "content": "add workout tomorrow"}], now=now
        )

        assert result["text"] == "Added it."
        assert result["actions"][0]["tool"] == "create_task"
        assert result["actions"][0]["result"]["success"] is True
        created = tasks.list_tasks(conn, user_id)
        assert [(t["title"], t["priority"]) for t in created] == [("Workout", "high")]
        assert created[0]["due_date"] == "2026-10-15T00:00:00.000+00:00"

        follow_up = fake_coach.respond_calls[1]["messages"]
        assert follow_up[1]["role"] == "assistant"
        assert follow_up[2]["content"][0]["tool_use_id"] == "toolu_1"
        assert follow_up[2]["content"][0]["is_error"] is False

    @pytest.mark.asyncio
    async def test_tool_error_reported_to_model(self, conn, user_id, fake_coach, tool_reply, text_reply, make_task, now):
        make_task("Gym morning")
        make_task("Gym evening")
        fake_coach.replies = [
            tool_reply("delete_task", {"searchQuery": "gym"}),
            text_reply("Which one?"),
        ]

        result = await coach.chat(conn, user_id, fake_coach, [{"role": "user", "content": "delete gym"}], now=now)

        assert result["actions"][0]["result"]["success"] is False
        assert "Several tasks match" in result["actions"][0]["result"]["error"]
        assert fake_coach.respond_calls[1]["messages"][2]["content"][0]["is_error"] is True
        assert len(tasks.list_tasks(conn, user_id)) == 2

    @pytest.mark.asyncio
    async def test_round_limit(self, conn, user_id, fake_coach, tool_reply, now):
        fake_coach.replies = [tool_reply("search_tasks", {"query": ""}, call_id=f"t{i}") for i in range(5)]

        result = await coach.chat(conn, user_id, fake_coach, [{"role": "user", "content": "loop"}], now=now)

        assert len(result["actions"]) == 5
        assert result["text"].startswith("I ran out of steps")


class TestDispatchTool:
    def context(self, conn, user_id, fake_coach, now):
        return coach.ToolContext(conn=conn, user_id=user_id, client=fake_coach, now=now)

    @pytest.mark.asyncio
    async def test_unknown_tool(self, conn, user_id, fake_coach, now):
        result = await coach.dispatch_tool(self.context(conn, user_id, fake_coach, now), "fly", {})

        assert result == {"success": False, "error": "Unknown tool: fly"}

    @pytest.mark.asyncio
    async def test_exact_title_wins(self, conn, user_id, fake_coach, make_task, now):
        make_task("Gym")
        make_task("Gym evening")

        result = await coach.dispatch_tool(
            self.context(conn, user_id, fake_coach, now),
            "update_task",
            {"searchQuery": "gym", "updates": {"status": "completed"}},
        )

        assert result["success"] is True
        assert result["task"]["title"] == "Gym"
        assert result["task"]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_update_without_changes(self, conn, user_id, fake_coach, make_task, now):
        make_task("Read")

        result = await coach.dispatch_tool(
            self.context(conn, user_id, fake_coach, now), "update_task", {"searchQuery": "read", "updates": {}}
        )

        assert result == {"success": False, "error": "No updates provided"}

    @pytest.mark.asyncio
    async def test_search_goals_archived_alias(self, conn, user_id, fake_coach, make_goal, now):
        make_goal("Old hobby", status="paused")
        make_goal("Current")

        result = await coach.dispatch_tool(
            self.context(conn, user_id, fake_coach, now), "search_goals", {"query": "", "status": "archived"}
        )

        assert [g["title"] for g in result["goals"]] == ["Old hobby"]
