"""Third-party integrations

github.py: recent GitHub activity (commits, pull requests, issues)
google_calendar.py: Google Calendar REST calls and OAuth token refresh
calendar_sync.py: keeps tasks and calendar events in step

Every public coroutine takes an optional ``http`` argument. Pass an
``httpx.AsyncClient`` to reuse a connection pool (or a MockTransport in
tests); leave it out to open a short-lived client per call.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx


DEFAULT_TIMEOUT = 30.0


@asynccontextmanager
async def http_client(http: httpx.AsyncClient | None = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``http`` untouched, or a fresh client closed on exit."""
    if http is not None:
        yield http
        return
    async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
        yield client


def access_token_of(integration: dict) -> str | None:
    return (integration.get("credentials") or {}).get("accessToken")
