"""
Integration tests for /api/daily-check and /api/ai.

The LLM is the FakeCoach fixture; queue its responses before each request.
These routes read the real clock, so assertions avoid fixed dates.
"""

from datetime import datetime, timezone

from grindproof.errors import LLMError


ROAST_JSON = (
    '{"insights": [{"emoji": "📉", "text": "Planned a lot", "severity": "high"}],'
    ' "recommendations": ["Plan less"], "weekSummary": "Rough week."}'
)


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


# ─────────────────────────────────────────────────────────────────────────────
# Daily check
# ─────────────────────────────────────────────────────────────────────────────


class TestMorningFlow:
    def test_confident_plan_skips_llm(self, test_client, auth_headers, fake_coach):
        response = test_client.post(
            "/api/daily-check/refine-tasks",
            json={"text": "Write report at 9:30 for 2 hours (high priority)"},
            headers=auth_headers,
        )

        assert response.json()["source"] == "local"
        assert response.json()["tasks"][0]["start_time"] == "09:30"
        assert fake_coach.generate_calls == []

    def test_vague_plan_refined_by_llm(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = ['{"tasks": [{"title": "Clean garage", "priority": "low"}]}']

        response = test_client.post(
            "/api/daily-check/refine-tasks", json={"text": "sort out the garage"}, headers=auth_headers
        )

        assert response.json()["source"] == "ai"
        assert response.json()["tasks"][0]["title"] == "Clean garage"

    def test_refine_survives_llm_quota(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = [LLMError("Rate limit reached", kind="quota")]

        response = test_client.post(
            "/api/daily-check/refine-tasks",
            json={"text": "sort out the garage", "locally_parsed": [{"title": "sort out the garage"}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"tasks": [{"title": "sort out the garage"}], "source": "local"}

    def test_save_plan_then_schedule(self, test_client, auth_headers):
        saved = test_client.post(
            "/api/daily-check/morning-plan",
            json={"tasks": [{"title": "Deep work", "start_time": "10:00"}, {"title": "Inbox zero"}]},
            headers=auth_headers,
        )
        assert saved.status_code == 201
        assert saved.json()["count"] == 2
        assert all(t["priority"] == "medium" for t in saved.json()["tasks"])

        schedule = test_client.get("/api/daily-check/morning-schedule", headers=auth_headers).json()

        assert [t["title"] for t in schedule["tasks"]] == ["Deep work", "Inbox zero"]
        assert schedule["has_calendar_integration"] is False

    def test_empty_plan_rejected(self, test_client, auth_headers):
        response = test_client.post("/api/daily-check/morning-plan", json={"tasks": []}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"] == "At least one task is required"


class TestEveningFlow:
    def test_comparison_and_reflection(self, test_client, auth_headers):
        plan = test_client.post(
            "/api/daily-check/morning-plan",
            json={"tasks": [{"title": "Deep work"}, {"title": "Gym"}]},
            headers=auth_headers,
        ).json()
        done = plan["tasks"][0]
        test_client.post(f"/api/tasks/{done['id']}/complete", headers=auth_headers)

        comparison = test_client.get("/api/daily-check/evening-comparison", headers=auth_headers).json()
        assert len(comparison["tasks"]) == 2
        assert comparison["existing_reflection"] is None

        saved = test_client.post(
            "/api/daily-check/evening-reflection",
            json={
                "date": _today(),
                "alignment_score": 0.5,
                "reflections": {plan["tasks"][1]["id"]: "Skipped the gym, too tired"},
                "completed_tasks": 1,
                "total_tasks": 2,
            },
            headers=auth_headers,
        )
        assert saved.json()["success"] is True
        assert saved.json()["score"]["roast_metadata"]["checkInType"] == "evening"

        again = test_client.get("/api/daily-check/evening-comparison", headers=auth_headers).json()
        assert again["existing_reflection"]["reflections"] == {
            plan["tasks"][1]["id"]: "Skipped the gym, too tired"
        }

    def test_reflection_requires_fields(self, test_client, auth_headers):
        response = test_client.post(
            "/api/daily-check/evening-reflection", json={"date": _today()}, headers=auth_headers
        )

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["details"]}
        assert "body.alignment_score" in fields


# ─────────────────────────────────────────────────────────────────────────────
# AI
# ─────────────────────────────────────────────────────────────────────────────


class TestAnalysisApi:
    def test_analyze_needs_no_llm(self, test_client, auth_headers, fake_coach):
        test_client.post("/api/tasks", json={"title": "One"}, headers=auth_headers)

        response = test_client.get("/api/ai/analyze", headers=auth_headers)

        assert response.json()["task_stats"]["total"] == 1
        assert fake_coach.generate_calls == []

    def test_analyze_patterns_with_unusable_reply(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = ["no patterns here"]

        response = test_client.post("/api/ai/analyze-patterns", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["patterns_saved"] == 0


class TestRoastApi:
    def test_roast_saved_for_week(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = [ROAST_JSON]

        response = test_client.post(
            "/api/ai/generate-roast", json={"week_start": "2026-10-04"}, headers=auth_headers
        )

        assert response.json()["week_start"] == "2026-10-04"
        assert response.json()["recommendations"] == ["Plan less"]
        stored = test_client.get("/api/accountability-scores/by-week/2026-10-04", headers=auth_headers)
        assert stored.json()["week_summary"] == "Rough week."

    def test_roast_without_body(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = [ROAST_JSON]

        response = test_client.post("/api/ai/generate-roast", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_quota_error(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = [LLMError("Rate limit reached", kind="quota")]

        response = test_client.post("/api/ai/generate-roast", headers=auth_headers)

        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit reached",
            "code": "LLM_ERROR",
            "errorType": "quota_exceeded",
        }

    def test_missing_api_key(self, test_client, auth_headers, fake_coach):
        fake_coach.texts = [LLMError("AI service not configured", kind="configuration")]

        response = test_client.post("/api/ai/generate-roast", headers=auth_headers)

        assert response.status_code == 503
        assert response.json()["errorType"] == "service_unavailable"


class TestChatApi:
    def test_tool_call_creates_task(self, test_client, auth_headers, fake_coach, tool_reply, text_reply):
        fake_coach.replies = [
            tool_reply("create_task", {"title": "Call mom", "priority": "high"}),
            text_reply("Added it."),
        ]

        response = test_client.post(
            "/api/ai/chat",
            json={"messages": [{"role": "user", "content": "remind me to call mom"}]},
            headers=auth_headers,
        )

        body = response.json()
        assert body["text"] == "Added it."
        assert body["actions"][0]["tool"] == "create_task"
        titles = [t["title"] for t in test_client.get("/api/tasks", headers=auth_headers).json()]
        assert titles == ["Call mom"]

    def test_empty_conversation(self, test_client, auth_headers, fake_coach):
        response = test_client.post("/api/ai/chat", json={"messages": []}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["error"] == "Messages array is required"
        assert fake_coach.respond_calls == []

    def test_requires_auth(self, test_client):
        response = test_client.post("/api/ai/chat", json={"messages": []})

        assert response.status_code == 401
