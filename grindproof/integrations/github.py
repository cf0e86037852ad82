"""
Tool: GitHub Activity
Purpose: Summarize a user's recent GitHub activity as accountability evidence

Reads the authenticated user's event feed. When /user/events is not
available (404) it falls back to listing the user's repositories and
reading recent commits from the first few of them.

Usage:
    from grindproof.integrations.github import get_github_activity

    activity = await get_github_activity(conn, "alice", hours=48)
    # {"commits": 12, "pull_requests": 1, "issues": 0, "repositories": [...], ...}
"""

import asyncio
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Any

import httpx

from grindproof import GITHUB_SERVICE
from grindproof.config import get_section
from grindproof.errors import GrindProofError, IntegrationNotConnectedError, UpstreamError, ValidationError
from grindproof.integrations import access_token_of, http_client
from grindproof.store import integrations
from grindproof.timeutils import parse_timestamp, to_iso, utcnow


logger = logging.getLogger(__name__)

MIN_HOURS = 1
MAX_HOURS = 720
REPO_AFFILIATION = "owner,collaborator,organization_member"


def _config() -> dict[str, Any]:
    return get_section("integrations").get("github", {})


def _headers(access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github.v3+json",
    }


async def _repo_commit_events(
    client: httpx.AsyncClient, api_url: str, access_token: str, repo_name: str, since: datetime
) -> list[dict[str, Any]]:
    """Recent commits of one repository as PushEvent-shaped dicts. Failures give []."""
    try:
        response = await client.get(
            f"{api_url}/repos/{repo_name}/commits",
            headers=_headers(access_token),
            params={"since": to_iso(since), "per_page": 100},
        )
        if not response.is_success:
            return []
        return [
            {
                "type": "PushEvent",
                "created_at": commit["commit"]["author"]["date"],
                "repo": {"name": repo_name},
                "payload": {"commits": [{"sha": commit["sha"]}]},
            }
            for commit in response.json()
        ]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        logger.debug(f"Skipping commits for {repo_name}: {e}")
        return []


async def _fallback_repo_events(
    client: httpx.AsyncClient, api_url: str, access_token: str, since: datetime
) -> list[dict[str, Any]]:
    response = await client.get(
        f"{api_url}/user/repos",
        headers=_headers(access_token),
        params={"per_page": 100, "sort": "updated", "affiliation": REPO_AFFILIATION},
    )
    if not response.is_success:
        raise UpstreamError(
            "GitHub API: Unable to fetch repositories. "
            f"Status: {response.status_code} {response.reason_phrase}. {response.text}"
        )

    max_repos = _config().get("max_repos_fallback", 10)
    repos = response.json()[:max_repos]
    results = await asyncio.gather(
        *(
            _repo_commit_events(client, api_url, access_token, repo["full_name"], since)
            for repo in repos
        )
    )
    return [event for repo_events in results for event in repo_events]


def summarize_events(events: list[dict[str, Any]], since: datetime) -> dict[str, Any]:
    """Count events created at or after ``since`` by type."""
    recent = []
    for event in events:
        created = parse_timestamp(event.get("created_at"))
        if created is not None and created >= since:
            recent.append(event)

    repositories: list[str] = []
    for event in recent:
        name = (event.get("repo") or {}).get("name")
        if name and name not in repositories:
            repositories.append(name)

    return {
        "commits": sum(
            len((e.get("payload") or {}).get("commits") or [])
            for e in recent
            if e.get("type") == "PushEvent"
        ),
        "pull_requests": sum(1 for e in recent if e.get("type") == "PullRequestEvent"),
        "issues": sum(1 for e in recent if e.get("type") == "IssuesEvent"),
        "repositories": repositories,
        "total_events": len(recent),
    }


async def get_github_activity(
    conn: sqlite3.Connection,
    user_id: str,
    hours: int = 24,
    http: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> dict[str, Any] | None:
    """
    Activity over the last ``hours`` hours (1-720).

    Returns None when GitHub is not connected. ``needs_reconnect`` is set when
    the token's scopes are known and lack ``repo``.

    Raises:
        IntegrationNotConnectedError: integration has no access token
        UpstreamError: "Failed to fetch GitHub activity: ..."
    """
    if not MIN_HOURS <= hours <= MAX_HOURS:
        raise ValidationError(f"hours must be between {MIN_HOURS} and {MAX_HOURS}")

    integration = integrations.get_connected(conn, user_id, GITHUB_SERVICE)
    if integration is None:
        return None

    access_token = access_token_of(integration)
    if not access_token:
        raise IntegrationNotConnectedError("GitHub access token not found")

    since = (now or utcnow()) - timedelta(hours=hours)
    api_url = _config().get("api_url", "https://api.github.com")

    try:
        async with http_client(http) as client:
            user_response = await client.get(f"{api_url}/user", headers=_headers(access_token))
            if not user_response.is_success:
                raise UpstreamError(
                    f"GitHub API authentication failed: {user_response.status_code} "
                    f"{user_response.reason_phrase}. {user_response.text}"
                )

            scopes = user_response.headers.get("X-OAuth-Scopes")
            if scopes and "repo" not in scopes:
                logger.warning(f"GitHub token for {user_id} lacks repo scope; private repos hidden")

            github_user = user_response.json()
            username = github_user.get("login") or (integration.get("metadata") or {}).get(
                "githubUsername"
            )
            if not username:
                raise UpstreamError("GitHub username not found")

            events_response = await client.get(
                f"{api_url}/user/events", headers=_headers(access_token), params={"per_page": 100}
            )
            if events_response.is_success:
                events = events_response.json()
            elif events_response.status_code == 404:
                events = await _fallback_repo_events(client, api_url, access_token, since)
            else:
                raise UpstreamError(
                    f"GitHub API error: {events_response.status_code} "
                    f"{events_response.reason_phrase}. {events_response.text}"
                )
    except (GrindProofError, httpx.HTTPError) as e:
        logger.error(f"Failed to fetch GitHub activity for {user_id}: {e}")
        raise UpstreamError(f"Failed to fetch GitHub activity: {e}") from e

    summary = summarize_events(events, since)
    summary["github_username"] = username
    summary["needs_reconnect"] = bool(scopes) and "repo" not in scopes
    return summary
