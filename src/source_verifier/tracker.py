"""
Tracker API client.

Talks to a Gazelle-style ``ajax.php`` API: torrent and torrent group lookups
for building sources, and torrent file downloads for the hash check. Requests
are rate limited (one request per two seconds by default, as the tracker
requires for scripts).
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from source_verifier.errors import TrackerApiError

logger = logging.getLogger(__name__)


class TrackerClient:
    """
    Async tracker API client.

    The client is passed explicitly to whatever needs it. Its only mutable
    state, the time of the last request, is guarded by an asyncio lock for
    the duration of each request.
    """

    USER_AGENT = "source-verifier/0.1.0"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        rate_limit_seconds: float = 2.0,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize tracker client.

        Args:
            base_url: Tracker root URL (e.g. https://tracker.example)
            api_key: API key sent in the Authorization header
            rate_limit_seconds: Minimum interval between requests
            timeout_s: Request timeout
            transport: Optional transport override
        """
        self.base_url = base_url.rstrip("/")
        self.rate_limit_seconds = rate_limit_seconds
        self._last_request_time: float | None = None
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            headers={"Authorization": api_key, "User-Agent": self.USER_AGENT},
            transport=transport,
        )
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> TrackerClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _rate_limit(self) -> None:
        """Wait until the minimum interval since the last request has passed."""
        if self.rate_limit_seconds <= 0 or self._last_request_time is None:
            return
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self.rate_limit_seconds:
            await asyncio.sleep(self.rate_limit_seconds - elapsed)

    async def _get(self, params: dict[str, str]) -> httpx.Response:
        """Make a rate-limited request to ajax.php."""
        url = f"{self.base_url}/ajax.php"
        async with self._lock:
            await self._rate_limit()
            try:
                response = await self._client.get(url, params=params)
            except httpx.HTTPError as e:
                raise TrackerApiError(f"Request to {url} failed: {e}") from e
            finally:
                self._last_request_time = time.monotonic()

        logger.debug(f"GET {url} action={params.get('action')} -> {response.status_code}")
        if response.status_code != 200:
            raise TrackerApiError(
                f"Tracker returned HTTP {response.status_code} for action={params.get('action')}",
                status_code=response.status_code,
            )
        return response

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        """Make a JSON API request and unwrap its response payload."""
        response = await self._get(params)
        try:
            data = response.json()
        except ValueError as e:
            raise TrackerApiError(f"Tracker returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or data.get("status") != "success":
            error = (data.get("error") if isinstance(data, dict) else None) or "unknown error"
            raise TrackerApiError(f"Tracker API error for action={params['action']}: {error}")
        return data.get("response", {})

    async def get_torrent(self, torrent_id: int) -> dict[str, Any]:
        """
        Get a torrent and its group.

        Returns:
            Dict with ``group`` and ``torrent`` entries
        """
        return await self._request({"action": "torrent", "id": str(torrent_id)})

    async def get_torrent_group(self, group_id: int) -> dict[str, Any]:
        """
        Get a torrent group with all its torrents.

        Returns:
            Dict with ``group`` and ``torrents`` entries
        """
        return await self._request({"action": "torrentgroup", "id": str(group_id)})

    async def get_torrent_file_as_buffer(self, torrent_id: int) -> bytes:
        """Download the .torrent file of a torrent."""
        response = await self._get({"action": "download", "id": str(torrent_id)})
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            # Failures are reported as JSON with a 200 status
            try:
                data = response.json()
            except ValueError as e:
                raise TrackerApiError(f"Tracker returned invalid JSON: {e}") from e
            error = (data.get("error") if isinstance(data, dict) else None) or "unknown error"
            raise TrackerApiError(f"Failed to download torrent {torrent_id}: {error}")
        return response.content
