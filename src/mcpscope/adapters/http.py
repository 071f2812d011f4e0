"""
HTTP adapter for mcpscope.

Handles the plain-HTTP side of an audit: fetching well-known OAuth
metadata documents and checking that the endpoint answers at all.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class HttpAdapter:
    """
    Adapter for HTTP operations.

    Uses httpx for async-first HTTP. Every request is bounded by a timeout;
    failures are reported as "nothing found" rather than raised, since the
    callers treat an unreachable document the same as a missing one.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the HTTP adapter.

        Args:
            timeout: Default request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._transport = transport

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            verify=self.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )

    async def fetch_metadata(self, url: str, timeout: float | None = None) -> dict[str, Any] | None:
        """
        Fetch a JSON metadata document.

        Only an HTTP 200 response with an ``application/json`` content type
        and a JSON object body counts as found.

        Args:
            url: URL to fetch.
            timeout: Per-request timeout in seconds (defaults to the adapter's).

        Returns:
            The parsed document, or None if it could not be obtained.
        """
        try:
            async with self._client(timeout) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("GET %s failed: %s", url, e)
            return None

        if response.status_code != 200:
            logger.debug("GET %s returned HTTP %s", url, response.status_code)
            return None

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.debug("GET %s returned non-JSON content type %r", url, content_type)
            return None

        try:
            data = response.json()
        except ValueError:
            logger.debug("GET %s returned an unparseable JSON body", url)
            return None

        if not isinstance(data, dict):
            return None

        return data

    async def is_reachable(self, url: str, timeout: float | None = None) -> bool:
        """
        Check that a URL answers at all.

        Any HTTP response, including 4xx/5xx, counts as reachable.

        Args:
            url: URL to check with a HEAD request.
            timeout: Per-request timeout in seconds.

        Returns:
            True if the server responded.
        """
        try:
            async with self._client(timeout) as client:
                await client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("HEAD %s failed: %s", url, e)
            return False

        return True
