"""Tests for grindproof/integrations/google_calendar.py"""

from datetime import timedelta
from urllib.parse import parse_qs

import httpx
import pytest

from grindproof import GOOGLE_CALENDAR_SERVICE
from grindproof.errors import UpstreamError
from grindproof.integrations import google_calendar
from grindproof.store import integrations
from grindproof.timeutils import to_iso


@pytest.fixture
def connect_calendar(conn, user_id):
    def _connect(**credentials):
        values = {"accessToken": "old-token", "refreshToken": "refresh-me", "expiresAt": "2099-01-01T00:00:00Z"}
        values.update(credentials)
        return integrations.create_integration(
            conn, user_id, GOOGLE_CALENDAR_SERVICE, values, metadata={"email": "alice@example.com"}
        )

    return _connect


# ─────────────────────────────────────────────────────────────────────────────
# Event bodies
# ─────────────────────────────────────────────────────────────────────────────


class TestEventBodies:
    def test_midnight_is_all_day(self):
        assert google_calendar.event_times("2026-10-20") == {
            "start": {"date": "2026-10-20"},
            "end": {"date": "2026-10-20"},
        }

    def test_timed_event_lasts_an_hour(self):
        times = google_calendar.event_times("2026-10-20T18:30:00Z")

        assert times["start"] == {"dateTime": "2026-10-20T18:30:00.000+00:00"}
        assert times["end"] == {"dateTime": "2026-10-20T19:30:00.000+00:00"}

    def test_build_event_with_recurrence(self):
        event = google_calendar.build_event(
            "Gym", None, "2026-10-20T06:00:00Z", {"type": "weekly", "rrule": "RRULE:FREQ=WEEKLY;BYDAY=MO"}
        )

        assert event["summary"] == "Gym"
        assert event["description"] == ""
        assert event["recurrence"] == ["RRULE:FREQ=WEEKLY;BYDAY=MO"]

    def test_patch_only_touched_fields(self):
        assert google_calendar.build_event_patch({"status": "completed"}) == {}
        assert google_calendar.build_event_patch({"title": "New", "description": None}) == {
            "summary": "New",
            "description": "",
        }


# ─────────────────────────────────────────────────────────────────────────────
# Tokens
# ─────────────────────────────────────────────────────────────────────────────


class TestTokens:
    def test_needs_refresh_within_threshold(self, now):
        assert google_calendar.token_needs_refresh({"expiresAt": to_iso(now + timedelta(minutes=2))}, now)
        assert not google_calendar.token_needs_refresh({"expiresAt": to_iso(now + timedelta(hours=1))}, now)
        assert not google_calendar.token_needs_refresh({}, now)

    @pytest.mark.asyncio
    async def test_refresh_stores_new_token(self, conn, user_id, connect_calendar, now):
        integration = connect_calendar(expiresAt=to_iso(now - timedelta(minutes=1)))
        forms = []

        def handler(request):
            forms.append(parse_qs(request.content.decode()))
            return httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            token = await google_calendar.ensure_fresh_token(conn, user_id, integration, http, now)

        assert token == "new-token"
        assert forms[0]["grant_type"] == ["refresh_token"]
        assert forms[0]["refresh_token"] == ["refresh-me"]
        stored = integrations.get_by_service(conn, user_id, GOOGLE_CALENDAR_SERVICE)["credentials"]
        assert stored == {
            "accessToken": "new-token",
            "refreshToken": "refresh-me",
            "expiresAt": "2026-10-14T16:00:00.000+00:00",
        }

    @pytest.mark.asyncio
    async def test_refresh_rejected(self, conn, user_id, connect_calendar, now):
        integration = connect_calendar(expiresAt=to_iso(now))

        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(UpstreamError, match="Failed to refresh Google Calendar token"):
                await google_calendar.ensure_fresh_token(conn, user_id, integration, http, now)

    @pytest.mark.asyncio
    async def test_no_refresh_token(self, conn, user_id):
        with pytest.raises(UpstreamError, match="No refresh token available"):
            await google_calendar.refresh_access_token(conn, user_id, {"accessToken": "x"})


# ─────────────────────────────────────────────────────────────────────────────
# Activity
# ─────────────────────────────────────────────────────────────────────────────


EVENTS = [
    {"start": {"dateTime": "2026-10-14T09:00:00Z"}, "end": {"dateTime": "2026-10-14T10:00:00Z"}},
    {
        "start": {"dateTime": "2026-10-14T18:00:00Z"},
        "end": {"dateTime": "2026-10-14T19:00:00Z"},
        "attendees": [{"email": "alice@example.com", "self": True, "responseStatus": "declined"}],
    },
    {
        "start": {"date": "2026-10-14"},
        "end": {"date": "2026-10-15"},
        "attendees": [{"email": "bob@example.com", "responseStatus": "accepted"}],
    },
]


class TestCalendarActivity:
    def test_summarize_events(self, now):
        assert google_calendar.summarize_events(EVENTS, now) == {
            "total_events": 3,
            "past_events": 1,
            "upcoming_events": 1,
            "accepted_events": 2,
            "declined_events": 1,
        }

    @pytest.mark.asyncio
    async def test_not_connected_is_none(self, conn, user_id):
        assert await google_calendar.get_calendar_activity(conn, user_id) is None

    @pytest.mark.asyncio
    async def test_activity_window(self, conn, user_id, connect_calendar, now):
        connect_calendar()
        params = []

        def handler(request):
            params.append(dict(request.url.params))
            return httpx.Response(200, json={"items": EVENTS})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            activity = await google_calendar.get_calendar_activity(conn, user_id, hours=48, http=http, now=now)

        assert activity["total_events"] == 3
        assert activity["email"] == "alice@example.com"
        assert activity["needs_reconnect"] is False
        assert params[0]["timeMin"] == "2026-10-12T15:00:00.000+00:00"
        assert params[0]["singleEvents"] == "true"

    @pytest.mark.asyncio
    async def test_failed_refresh_flags_reconnect(self, conn, user_id, connect_calendar, now):
        connect_calendar(expiresAt=to_iso(now - timedelta(hours=1)))

        def handler(request):
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(401)
            assert request.headers["Authorization"] == "Bearer old-token"
            return httpx.Response(200, json={"items": []})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            activity = await google_calendar.get_calendar_activity(conn, user_id, http=http, now=now)

        assert activity["needs_reconnect"] is True
        assert activity["total_events"] == 0

    @pytest.mark.asyncio
    async def test_listing_failure(self, conn, user_id, connect_calendar, now):
        connect_calendar()

        def handler(request):
            return httpx.Response(500)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(UpstreamError, match="Failed to fetch Google Calendar activity"):
                await google_calendar.get_calendar_activity(conn, user_id, http=http, now=now)
