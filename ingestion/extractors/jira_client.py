"""
Jira REST v2 client for the search, single-issue and comment endpoints.

All requests go through ``RetryingTransport`` so rate limiting, server errors
and network failures are retried with backoff before anything surfaces to
the caller.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from core.config import settings
from ingestion.transport import RetryCallback, RetryingTransport

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = settings.JIRA_FIELDS
DEFAULT_MAX_RESULTS = settings.JIRA_PAGE_SIZE


def build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Default request headers plus configured pass-through headers (e.g. auth)."""
    headers = {
        "Accept": "application/json",
        "User-Agent": settings.USER_AGENT,
    }
    headers.update(settings.EXTRA_HEADERS)
    if extra:
        headers.update(extra)
    return headers


class JiraClient:
    """
    Thin async client over the Jira REST API.

    Use as an async context manager; a client created here is closed on exit,
    an injected ``http_client`` is left open for its owner.

    Example:
        async with JiraClient() as jira:
            page = await jira.search_issues("project=SPARK ORDER BY created DESC")
    """

    def __init__(
        self,
        base_url: str = settings.JIRA_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = settings.REQUEST_TIMEOUT,
        max_attempts: int = settings.MAX_RETRY_ATTEMPTS,
        on_retry: Optional[RetryCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        transport: Optional[RetryingTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None and transport is None
        if transport is not None:
            self.transport = transport
            return
        client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers=build_headers(headers),
            follow_redirects=True
        )
        self.transport = RetryingTransport(
            client,
            max_attempts=max_attempts,
            on_retry=on_retry,
            cancel_event=cancel_event
        )

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.transport.client.aclose()

    async def search_issues(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = DEFAULT_MAX_RESULTS,
        fields: str = DEFAULT_FIELDS
    ) -> Any:
        """
        Fetch one search page.

        Args:
            jql: Query selecting the issues, required
            start_at: Zero-based offset of the first result
            max_results: Page size
            fields: Comma-separated field list

        Returns:
            Decoded JSON body (normally ``{startAt, maxResults, total, issues}``)
        """
        if not jql:
            raise ValueError("search_issues requires jql")
        params = {
            "jql": jql,
            "startAt": start_at,
            "maxResults": max_results,
            "fields": fields,
        }
        return await self.transport.get_json(f"{self.base_url}/search", params)

    async def get_issue(self, issue_key: str, fields: str = DEFAULT_FIELDS) -> Any:
        """Fetch a single issue by key."""
        if not issue_key:
            raise ValueError("get_issue requires issue_key")
        url = f"{self.base_url}/issue/{quote(issue_key, safe='')}"
        return await self.transport.get_json(url, {"fields": fields})

    async def get_issue_comments(
        self,
        issue_key: str,
        start_at: int = 0,
        max_results: int = 50
    ) -> Any:
        """Fetch one page of comments for an issue."""
        if not issue_key:
            raise ValueError("get_issue_comments requires issue_key")
        url = f"{self.base_url}/issue/{quote(issue_key, safe='')}/comment"
        return await self.transport.get_json(url, {"startAt": start_at, "maxResults": max_results})
