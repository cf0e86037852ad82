"""
Tool: Google Calendar Client
Purpose: Calendar v3 REST calls and OAuth token refresh for one user

Credentials are stored on the user's google_calendar integration as
{"accessToken", "refreshToken", "expiresAt"}. A token expiring within
``refresh_threshold_minutes`` is refreshed before use and the new token
is written back to the integration record.

Usage:
    from grindproof.integrations import google_calendar

    activity = await google_calendar.get_calendar_activity(conn, "alice", hours=48)
    if activity and activity["needs_reconnect"]:
        ...
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any

import httpx

from grindproof import GOOGLE_CALENDAR_SERVICE
from grindproof.config import get_section, get_secret
from grindproof.errors import GrindProofError, IntegrationNotConnectedError, UpstreamError
from grindproof.integrations import access_token_of, http_client
from grindproof.store import integrations
from grindproof.timeutils import date_key, parse_timestamp, to_iso, utcnow


logger = logging.getLogger(__name__)


def _config() -> dict[str, Any]:
    return get_section("integrations").get("google_calendar", {})


def _events_url() -> str:
    api_url = _config().get("api_url", "https://www.googleapis.com/calendar/v3")
    return f"{api_url}/calendars/primary/events"


# =============================================================================
# Event bodies
# =============================================================================


def event_times(due_date: Any) -> dict[str, Any]:
    """
    start/end for a task due date.

    Midnight means an all-day event; any other time becomes a one-hour slot.
    """
    due = parse_timestamp(due_date)
    if due.hour == 0 and due.minute == 0:
        day = date_key(due)
        return {"start": {"date": day}, "end": {"date": day}}
    return {
        "start": {"dateTime": to_iso(due)},
        "end": {"dateTime": to_iso(due + timedelta(hours=1))},
    }


def build_event(
    title: str,
    description: str | None = None,
    due_date: Any = None,
    recurrence_pattern: dict | None = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {"summary": title, "description": description or ""}
    if due_date:
        event.update(event_times(due_date))
    rrule = (recurrence_pattern or {}).get("rrule")
    if rrule:
        event["recurrence"] = [rrule]
    return event


def build_event_patch(updates: dict[str, Any]) -> dict[str, Any]:
    """Only the event fields touched by a task update."""
    patch: dict[str, Any] = {}
    if updates.get("title"):
        patch["summary"] = updates["title"]
    if "description" in updates:
        patch["description"] = updates["description"] or ""
    if updates.get("due_date"):
        patch.update(event_times(updates["due_date"]))
    return patch


# =============================================================================
# Event calls
# =============================================================================


def _auth_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}


async def create_event(
    access_token: str, event: dict[str, Any], http: httpx.AsyncClient | None = None
) -> dict[str, Any]:
    async with http_client(http) as client:
        response = await client.post(_events_url(), headers=_auth_headers(access_token), json=event)
    if not response.is_success:
        raise UpstreamError(
            f"Failed to create calendar event: {response.status_code} {response.text}"
        )
    return response.json()


async def update_event(
    access_token: str,
    event_id: str,
    patch: dict[str, Any],
    http: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    async with http_client(http) as client:
        response = await client.patch(
            f"{_events_url()}/{event_id}", headers=_auth_headers(access_token), json=patch
        )
    if not response.is_success:
        raise UpstreamError(
            f"Failed to update calendar event: {response.status_code} {response.text}"
        )
    return response.json()


async def delete_event(
    access_token: str, event_id: str, http: httpx.AsyncClient | None = None
) -> None:
    """Delete an event. An event that is already gone is not an error."""
    async with http_client(http) as client:
        response = await client.delete(
            f"{_events_url()}/{event_id}", headers=_auth_headers(access_token)
        )
    if not response.is_success and response.status_code != 404:
        raise UpstreamError(
            f"Failed to delete calendar event: {response.status_code} {response.text}"
        )


async def list_events(
    access_token: str,
    time_min: datetime,
    time_max: datetime,
    http: httpx.AsyncClient | None = None,
) -> list[dict[str, Any]]:
    """Expanded single events between two instants, ordered by start time."""
    params = {
        "timeMin": to_iso(time_min),
        "timeMax": to_iso(time_max),
        "singleEvents": "true",
        "orderBy": "startTime",
        "maxResults": "250",
    }
    async with http_client(http) as client:
        response = await client.get(_events_url(), headers=_auth_headers(access_token), params=params)
    if not response.is_success:
        raise UpstreamError(
            f"Google Calendar API error: {response.status_code} {response.reason_phrase}"
        )
    return response.json().get("items") or []


# =============================================================================
# Tokens
# =============================================================================


def token_needs_refresh(credentials: dict[str, Any], now: datetime | None = None) -> bool:
    expires_at = parse_timestamp(credentials.get("expiresAt"))
    if expires_at is None:
        return False
    threshold = timedelta(minutes=_config().get("refresh_threshold_minutes", 5))
    return expires_at - (now or utcnow()) < threshold


async def refresh_access_token(
    conn: sqlite3.Connection,
    user_id: str,
    credentials: dict[str, Any],
    http: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> str:
    """
    Exchange the refresh token for a new access token and store it.

    Raises:
        UpstreamError: "No refresh token available" or
            "Failed to refresh Google Calendar token"
    """
    refresh_token = credentials.get("refreshToken")
    if not refresh_token:
        raise UpstreamError("No refresh token available")

    token_url = _config().get("token_url", "https://oauth2.googleapis.com/token")
    form = {
        "client_id": get_secret("GOOGLE_CALENDAR_CLIENT_ID", ""),
        "client_secret": get_secret("GOOGLE_CALENDAR_CLIENT_SECRET", ""),
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }
    try:
        async with http_client(http) as client:
            response = await client.post(token_url, data=form)
    except httpx.HTTPError as e:
        logger.error(f"Token refresh request failed for {user_id}: {e}")
        raise UpstreamError("Failed to refresh Google Calendar token") from e

    if not response.is_success:
        logger.warning(f"Token refresh rejected for {user_id}: {response.status_code}")
        raise UpstreamError("Failed to refresh Google Calendar token")

    data = response.json()
    access_token = data["access_token"]
    expires_at = (now or utcnow()) + timedelta(seconds=int(data.get("expires_in", 3600)))
    integrations.save_credentials(
        conn,
        user_id,
        GOOGLE_CALENDAR_SERVICE,
        {"accessToken": access_token, "refreshToken": refresh_token, "expiresAt": to_iso(expires_at)},
    )
    logger.info(f"Refreshed Google Calendar token for {user_id}")
    return access_token


async def ensure_fresh_token(
    conn: sqlite3.Connection,
    user_id: str,
    integration: dict[str, Any],
    http: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> str:
    """
    A usable access token for the integration, refreshing it if needed.

    Raises:
        IntegrationNotConnectedError: no access token stored
        UpstreamError: the refresh failed
    """
    credentials = integration.get("credentials") or {}
    access_token = access_token_of(integration)
    if not access_token:
        raise IntegrationNotConnectedError("Google Calendar access token not found")
    if token_needs_refresh(credentials, now):
        return await refresh_access_token(conn, user_id, credentials, http, now)
    return access_token


# =============================================================================
# Activity
# =============================================================================


def _event_time(part: dict[str, Any] | None) -> datetime | None:
    part = part or {}
    try:
        return parse_timestamp(part.get("dateTime") or part.get("date"))
    except ValueError:
        return None


def _self_attendee(event: dict[str, Any]) -> dict[str, Any] | None:
    for attendee in event.get("attendees") or []:
        if attendee.get("self"):
            return attendee
    return None


def summarize_events(events: list[dict[str, Any]], now: datetime) -> dict[str, int]:
    past = upcoming = accepted = declined = 0
    for event in events:
        end = _event_time(event.get("end"))
        start = _event_time(event.get("start"))
        if end is not None and end < now:
            past += 1
        if start is not None and start > now:
            upcoming += 1

        me = _self_attendee(event)
        if not event.get("attendees") or me is None or me.get("responseStatus") == "accepted":
            accepted += 1
        if me is not None and me.get("responseStatus") == "declined":
            declined += 1

    return {
        "total_events": len(events),
        "past_events": past,
        "upcoming_events": upcoming,
        "accepted_events": accepted,
        "declined_events": declined,
    }


async def get_calendar_activity(
    conn: sqlite3.Connection,
    user_id: str,
    hours: int = 24,
    http: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> dict[str, Any] | None:
    """
    Event counts for the last ``hours`` hours.

    Returns None when Google Calendar is not connected. A token that cannot
    be refreshed sets needs_reconnect instead of failing.
    """
    integration = integrations.get_connected(conn, user_id, GOOGLE_CALENDAR_SERVICE)
    if integration is None:
        return None
    now = now or utcnow()

    access_token = access_token_of(integration)
    if not access_token:
        raise IntegrationNotConnectedError("Google Calendar access token not found")

    needs_reconnect = False
    try:
        access_token = await ensure_fresh_token(conn, user_id, integration, http, now)
    except UpstreamError as e:
        logger.warning(f"Google Calendar needs reconnect for {user_id}: {e}")
        needs_reconnect = True

    try:
        events = await list_events(access_token, now - timedelta(hours=hours), now, http)
    except (GrindProofError, httpx.HTTPError) as e:
        logger.error(f"Failed to fetch Google Calendar activity for {user_id}: {e}")
        raise UpstreamError(f"Failed to fetch Google Calendar activity: {e}") from e

    summary = summarize_events(events, now)
    summary["email"] = (integration.get("metadata") or {}).get("email")
    summary["needs_reconnect"] = needs_reconnect
    return summary
