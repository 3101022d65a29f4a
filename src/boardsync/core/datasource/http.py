"""
HTTP helpers shared by the REST and GraphQL data sources.

Provides retry with exponential backoff for idempotent requests and the
mapping from httpx failures to ``ApiError`` values. Data sources must not
raise for transport failures, so everything that can go wrong on the wire
ends up here as data.

Retry configuration:
    - Default retries: 3 attempts
    - Default base delay: 0.5 seconds
    - Default multiplier: 2.0x per retry
    - Default delay cap: 8 seconds
    - Jitter: ±20% of the delay
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

from boardsync.core.datasource.models import ApiError, ErrorCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy for idempotent requests.

    The delay before retry ``n`` (0-indexed) is
    ``min(max_delay, base_delay * multiplier**n)``, spread by up to
    ``jitter_ratio`` in either direction when ``jitter`` is on.
    """

    max_retries: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 8.0
    jitter: bool = True
    jitter_ratio: float = 0.2

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0.0 <= self.jitter_ratio <= 1.0:
            raise ValueError("jitter_ratio must be between 0.0 and 1.0")

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt``."""
        delay = min(self.max_delay, self.base_delay * self.multiplier**attempt)
        if not self.jitter:
            return delay
        spread = delay * self.jitter_ratio
        return max(0.0, random.uniform(delay - spread, delay + spread))


NO_RETRY = RetryConfig(max_retries=0)


def is_retryable_error(exception: Exception) -> bool:
    """True for failures worth another attempt.

    5xx responses and every transport-level httpx error qualify. 4xx
    responses and non-httpx exceptions do not.
    """
    match exception:
        case httpx.HTTPStatusError(response=response):
            return response.status_code >= 500
        case httpx.HTTPError():
            return True
        case _:
            return False


async def send_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retry: RetryConfig = NO_RETRY,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request, retrying transient failures.

    A 5xx response is retried while attempts remain and returned as-is
    afterwards; non-5xx responses are returned immediately. Only pass a
    retrying config for idempotent requests.

    Args:
        client: Client to send with
        method: HTTP method
        url: URL or path relative to the client's base URL
        retry: Retry policy (no retries by default)
        **kwargs: Passed to ``client.request``

    Returns:
        The final response

    Raises:
        httpx.HTTPError: Transport failure after the last attempt
    """
    for attempt in range(retry.max_retries + 1):
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            if not is_retryable_error(e) or attempt >= retry.max_retries:
                raise
            delay = retry.calculate_delay(attempt)
            logger.info(
                "%s %s: retry %d/%d after %.2fs due to: %s",
                method, url, attempt + 1, retry.max_retries, delay, e,
            )
            await asyncio.sleep(delay)
            continue

        if response.status_code >= 500 and attempt < retry.max_retries:
            delay = retry.calculate_delay(attempt)
            logger.info(
                "%s %s: retry %d/%d after %.2fs due to status %d",
                method, url, attempt + 1, retry.max_retries, delay, response.status_code,
            )
            await asyncio.sleep(delay)
            continue

        return response

    # Unreachable: the last attempt either returns or raises
    raise RuntimeError("Retry loop completed without a response")


def error_from_exception(exc: Exception) -> ApiError:
    """
    Map a transport exception to an ``ApiError``.

    Args:
        exc: Exception raised while sending a request

    Returns:
        TIMEOUT for timeouts, NETWORK_ERROR for other request errors,
        UNKNOWN_ERROR otherwise
    """
    if isinstance(exc, httpx.TimeoutException):
        return ApiError(message="Request timed out", code=ErrorCode.TIMEOUT.value, status=408)
    if isinstance(exc, httpx.RequestError):
        return ApiError(
            message=f"Network error: {exc}. Check your internet connection.",
            code=ErrorCode.NETWORK_ERROR.value,
            status=503,
        )
    return ApiError(
        message=str(exc) or "Unknown error occurred",
        code=ErrorCode.UNKNOWN_ERROR.value,
        status=500,
    )


def error_from_response(response: httpx.Response) -> ApiError:
    """
    Build an ``ApiError`` from a non-success response.

    Uses the ``message`` and ``code`` fields of a JSON body when the server
    sends them.
    """
    message = f"HTTP error! status: {response.status_code}"
    code = ErrorCode.API_ERROR.value
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = str(body.get("message") or message)
        code = str(body.get("code") or code)
    return ApiError(message=message, code=code, status=response.status_code)
