"""Minimal async Strava API client for activity import.

Only the read endpoints the importer needs are covered. Token exchange and
refresh happen elsewhere; callers pass a valid access token.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
import structlog

from kinnect_server.core.config import settings

logger = structlog.get_logger()

# Strava resets its short-term limit every 15 minutes
DEFAULT_RETRY_AFTER_SECONDS = 900


def parse_retry_after(value: str | None) -> int:
    """Seconds to wait from a Retry-After header (delay-seconds or HTTP-date).

    Falls back to DEFAULT_RETRY_AFTER_SECONDS when the header is missing or
    unreadable.
    """
    if not value:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(0, int(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=UTC)
    return max(0, int((retry_at - datetime.now(UTC)).total_seconds()))


class StravaError(Exception):
    """Strava API request failed."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.response_body = response_body


class StravaAuthError(StravaError):
    """Access token missing, expired or revoked (401/403)."""


class StravaRateLimitError(StravaError):
    """Strava rate limit hit (429)."""

    def __init__(self, message: str, endpoint: str, retry_after: int) -> None:
        super().__init__(message, endpoint=endpoint, status_code=429)
        self.retry_after = retry_after


class StravaClient:
    """Async Strava client.

    Usage:
        async with StravaClient(access_token=token) as client:
            activities = await client.fetch_all_activities()
    """

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.strava_api_base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout or settings.strava_timeout_seconds,
            transport=transport,
        )
        self.logger = logger.bind(service="strava")

    async def __aenter__(self) -> StravaClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._client.get(endpoint, params=params)

        if response.status_code in (401, 403):
            raise StravaAuthError(
                f"API error {response.status_code}: not authorized",
                endpoint=endpoint,
                status_code=response.status_code,
                response_body=response.text,
            )
        if response.status_code == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise StravaRateLimitError(
                "API error 429: rate limit exceeded",
                endpoint=endpoint,
                retry_after=retry_after,
            )
        if response.is_error:
            raise StravaError(
                f"API error {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
                response_body=response.text,
            )

        return response.json()

    async def list_activities(self, page: int = 1, per_page: int = 30) -> list[dict[str, Any]]:
        """Fetch one page of the athlete's activities (most recent first)."""
        return await self._get("/athlete/activities", params={"page": page, "per_page": per_page})

    async def get_activity(self, activity_id: int | str) -> dict[str, Any]:
        """Fetch a single activity by Strava ID."""
        return await self._get(f"/activities/{activity_id}")

    async def fetch_all_activities(
        self,
        max_pages: int | None = None,
        per_page: int | None = None,
    ) -> list[dict[str, Any]]:
        """Page through the athlete's activities.

        Stops at the first short or empty page, or after max_pages. An error
        on the first page propagates; an error on a later page ends paging
        and keeps what was already fetched.

        Args:
            max_pages: Page cap (default from config)
            per_page: Page size (default from config)

        Returns:
            Raw Strava activity payloads in fetch order
        """
        max_pages = max_pages or settings.import_max_pages
        per_page = per_page or settings.import_page_size

        activities: list[dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            try:
                batch = await self.list_activities(page=page, per_page=per_page)
            except (StravaError, httpx.HTTPError) as e:
                if page == 1:
                    raise
                self.logger.warning("Stopped paging after error", page=page, error=str(e))
                break

            activities.extend(batch)
            if len(batch) < per_page:
                break

        self.logger.info("Fetched Strava activities", count=len(activities))
        return activities
