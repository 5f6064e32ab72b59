"""
HTTP transport with classification-driven retry and exponential backoff.

This module issues one logical GET request and absorbs transient failures:
- HTTP 429: wait for the server's Retry-After hint, else backoff + jitter
- HTTP 5xx: backoff + jitter
- Timeouts / connection errors (no status): backoff + jitter
- Any other 4xx: fail immediately, no retry

Backoff follows ``base * 2 ** (attempt - 1) + uniform(0, jitter)``. When the
attempt budget runs out the last classified error is raised with the final
status and the attempt count.
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.config import settings
from core.exceptions import (
    ClientError,
    ErrorKind,
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    ServerError,
    TransportError,
)
from ingestion.waits import cancellable_sleep, raise_if_cancelled

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, float, ErrorKind], None]
SleepFunc = Callable[[float], Awaitable[None]]


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header value into seconds.

    Accepts delta-seconds or an HTTP date. Returns None when the header is
    absent or unparseable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class RetryingTransport:
    """
    Single-request GET with retry classification.

    Attributes:
        max_attempts: Total attempts per logical request (default: 5)
        base_backoff: Backoff base in seconds (default: 0.5)
        jitter: Upper bound of the uniform jitter in seconds (default: 0.3)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: int = settings.MAX_RETRY_ATTEMPTS,
        base_backoff: float = settings.BASE_BACKOFF_SECONDS,
        jitter: float = settings.JITTER_SECONDS,
        on_retry: Optional[RetryCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self.base_backoff = base_backoff
        self.jitter = jitter
        self.on_retry = on_retry
        self.cancel_event = cancel_event
        self._sleep = sleep or (lambda seconds: cancellable_sleep(seconds, self.cancel_event))
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with uniform jitter for a 1-based attempt number."""
        return self.base_backoff * (2 ** (attempt - 1)) + self._rng.uniform(0, self.jitter)

    def _classify(self, response: httpx.Response, url: str, attempt: int) -> TransportError:
        status = response.status_code
        context = {"url": url}

        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            return RateLimitError(
                f"Rate limited by {url}",
                retry_after=retry_after,
                status=status,
                attempts=attempt,
                context=context
            )

        if 500 <= status < 600:
            context["response_body"] = response.text[:500]
            return ServerError(
                f"Server error {status} from {url}",
                status=status,
                attempts=attempt,
                context=context
            )

        context["response_body"] = response.text[:500]
        return ClientError(
            f"Request failed with status {status}",
            status=status,
            attempts=attempt,
            context=context
        )

    def _wait_for(self, error: TransportError, attempt: int) -> float:
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return error.retry_after
        return self.backoff_delay(attempt)

    async def request(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        Perform the GET with retries.

        Returns:
            The first 2xx response

        Raises:
            ClientError: Non-retryable response, after exactly one attempt
            TransportError: Last retryable failure once attempts are exhausted
            OperationCancelled: Cancellation observed before a request or during a wait
        """
        for attempt in range(1, self.max_attempts + 1):
            raise_if_cancelled(self.cancel_event, url=url, attempt=attempt)
            logger.debug(f"Request attempt {attempt}/{self.max_attempts} to {url}")

            try:
                response = await self.client.get(url, params=params)
            except httpx.RequestError as e:
                error: TransportError = NetworkError(
                    f"Network error for {url}: {e}",
                    status=None,
                    attempts=attempt,
                    context={"url": url},
                    original_exception=e
                )
            else:
                if response.is_success:
                    return response
                error = self._classify(response, url, attempt)
                if not error.retryable:
                    raise error

            if attempt >= self.max_attempts:
                error.message = f"Max attempts reached ({self.max_attempts}) for URL: {url}"
                raise error

            wait = self._wait_for(error, attempt)
            logger.warning(
                f"{error.kind.value} (status={error.status}) on attempt "
                f"{attempt}/{self.max_attempts}. Waiting {wait:.2f}s before retry."
            )
            if self.on_retry is not None:
                self.on_retry(attempt, wait, error.kind)

            await self._sleep(wait)

        # Unreachable: the final attempt always returns or raises
        raise NetworkError("Unexpected retry loop exit", attempts=self.max_attempts, context={"url": url})

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET ``url`` and decode the JSON body.

        Raises:
            MalformedResponseError: The successful response is not JSON
        """
        response = await self.request(url, params)
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response from {url} is not valid JSON",
                body=response.text,
                context={"url": url},
                original_exception=e
            )
