"""Shared async HTTP client utilities for registry sources.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, retries and error mapping. Registry sources
use this module so that HTTP behaviour is consistent and testable.

Failures are mapped onto the source error hierarchy:

- HTTP 404 -> ``CookbookNotFoundError``
- timeouts, transport errors, other HTTP errors -> ``SourceUnavailableError``
- a body that is not JSON -> ``InvalidMetadataError``
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from cookshelf import __version__
from cookshelf.exceptions import (
    CookbookNotFoundError,
    InvalidMetadataError,
    SourceUnavailableError,
)

logger = logging.getLogger(__name__)

# Timeout for all registry HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

DEFAULT_RETRY_COUNT: int = 3
DEFAULT_RETRY_DELAY: float = 1.0

# User-Agent sent with every request.
USER_AGENT: str = f"cookshelf/{__version__}"


def _retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500 or exc.response.status_code == 429
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


async def fetch_json(
    url: str,
    *,
    source: str,
    name: str = "",
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retry_count: int = DEFAULT_RETRY_COUNT,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Fetch a URL and parse the response as JSON.

    Transient failures (timeouts, transport errors, 5xx and 429 answers)
    are retried up to ``retry_count`` extra times, sleeping
    ``retry_delay * attempt`` seconds in between.

    Args:
        url: The URL to fetch.
        source: Name of the source on whose behalf the request is made.
        name: Cookbook the request is about (for error attribution).
        headers: Extra request headers.
        timeout: Request timeout in seconds.
        retry_count: Number of retries after the first attempt.
        retry_delay: Base delay between retries in seconds.
        verify: Whether to verify TLS certificates.
        transport: Optional transport (used by tests).

    Returns:
        Parsed JSON response.

    Raises:
        CookbookNotFoundError: On HTTP 404.
        SourceUnavailableError: On any other HTTP or network failure.
        InvalidMetadataError: If the body is not valid JSON.
    """
    request_headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    request_headers.update(headers or {})

    attempt = 0
    while True:
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                headers=request_headers,
                follow_redirects=True,
                verify=verify,
                transport=transport,
            ) as client:
                logger.debug("GET %s", url)
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                raise CookbookNotFoundError(name or url, source=source) from exc
            if attempt < retry_count and _retryable(exc):
                attempt += 1
                logger.debug("HTTP %d from %s, retry %d/%d", status, url, attempt, retry_count)
                await asyncio.sleep(retry_delay * attempt)
                continue
            logger.warning("HTTP %d from %s", status, url)
            raise SourceUnavailableError(source, f"HTTP {status} from {url}", name) from exc
        except httpx.TimeoutException as exc:
            if attempt < retry_count:
                attempt += 1
                logger.debug("Timeout fetching %s, retry %d/%d", url, attempt, retry_count)
                await asyncio.sleep(retry_delay * attempt)
                continue
            logger.warning("Timeout fetching %s", url)
            raise SourceUnavailableError(source, f"timeout fetching {url}", name) from exc
        except httpx.RequestError as exc:
            if attempt < retry_count and _retryable(exc):
                attempt += 1
                logger.debug("Request error for %s (%s), retry %d/%d", url, exc, attempt, retry_count)
                await asyncio.sleep(retry_delay * attempt)
                continue
            logger.warning("Request error for %s: %s", url, exc)
            raise SourceUnavailableError(source, f"request to {url} failed: {exc}", name) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise InvalidMetadataError(name or url, f"response from {url} is not valid JSON") from exc
