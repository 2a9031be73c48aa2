"""
Strava API client used by the activity sync.

Only two endpoints are needed: the OAuth token refresh and the athlete
activity list. Requests are retried on timeouts, transport errors and rate
limiting with exponential backoff.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

STRAVA_MAX_PER_PAGE = 200


class StravaAPIError(Exception):
    """Strava request failed or returned an error status."""

    def __init__(self, message: str, status_code: int = None, response_body: dict = None):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(self.message)


class StravaRateLimitError(StravaAPIError):
    """Strava kept answering 429 after all retries."""

    def __init__(self, retry_after: int = 900):
        self.retry_after = retry_after
        super().__init__(
            f"Strava API rate limit exceeded. Retry after {retry_after} seconds.",
            status_code=429,
        )


def _error_from_response(response: httpx.Response) -> StravaAPIError:
    try:
        body = response.json()
    except ValueError:
        body = {"raw": response.text}
    message = body.get("message", f"HTTP {response.status_code}") if isinstance(body, dict) else str(body)
    return StravaAPIError(message=message, status_code=response.status_code, response_body=body)


class StravaService:
    """Thin async client for the Strava v3 API.

    Args:
        transport: Optional httpx transport, used to stub Strava in tests
    """

    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds
    MAX_BACKOFF = 30.0

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client_id = settings.STRAVA_CLIENT_ID
        self.client_secret = settings.STRAVA_CLIENT_SECRET
        self.token_url = settings.STRAVA_TOKEN_URL
        self.api_base_url = settings.STRAVA_API_BASE_URL
        self.transport = transport

    def _backoff(self, attempt: int) -> float:
        return min(self.RETRY_DELAY * (2 ** attempt), self.MAX_BACKOFF)

    async def _request(self, method: str, url: str, timeout: float = 30.0, **kwargs) -> Any:
        """
        Send a request, retrying transient failures.

        Raises:
            StravaRateLimitError: Still rate limited on the last attempt
            StravaAPIError: Error status, or timeouts/transport errors on every attempt
        """
        last_attempt = self.MAX_RETRIES - 1

        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            for attempt in range(self.MAX_RETRIES):
                try:
                    response = await client.request(method, url, **kwargs)
                except httpx.TimeoutException:
                    logger.warning(f"Strava timeout on {method} {url} ({attempt + 1}/{self.MAX_RETRIES})")
                    if attempt == last_attempt:
                        raise StravaAPIError("Request timed out", status_code=408)
                    await asyncio.sleep(self.RETRY_DELAY)
                    continue
                except httpx.RequestError as e:
                    logger.error(f"Strava request error on {method} {url}: {e}")
                    if attempt == last_attempt:
                        raise StravaAPIError(f"Request failed: {e}")
                    await asyncio.sleep(self.RETRY_DELAY)
                    continue

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 900))
                    logger.warning(f"Strava rate limit hit ({attempt + 1}/{self.MAX_RETRIES})")
                    if attempt == last_attempt:
                        raise StravaRateLimitError(retry_after=retry_after)
                    await asyncio.sleep(self._backoff(attempt))
                    continue

                if response.status_code >= 400:
                    error = _error_from_response(response)
                    logger.error(f"Strava API error: {error.status_code} - {error.message}")
                    raise error

                return response.json()

    async def refresh_tokens(self, refresh_token: str) -> dict:
        """
        Exchange a refresh token for a new access token.

        Returns:
            dict with access_token, refresh_token and expires_at (Unix timestamp)
        """
        logger.info("Refreshing Strava access token")
        return await self._request(
            "POST",
            self.token_url,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
        )

    async def get_activities(
        self,
        access_token: str,
        after: Optional[int] = None,
        before: Optional[int] = None,
        page: int = 1,
        per_page: int = 30,
    ) -> list:
        """
        Fetch one page of the athlete's activities, newest first.

        Args:
            access_token: Valid Strava access token
            after: Only activities starting after this Unix timestamp
            before: Only activities starting before this Unix timestamp
            page: 1-indexed page number
            per_page: Page size, capped at 200

        Returns:
            list of activity summaries (distance in meters, moving_time in seconds)
        """
        params = {"page": page, "per_page": min(per_page, STRAVA_MAX_PER_PAGE)}
        if after:
            params["after"] = after
        if before:
            params["before"] = before

        activities = await self._request(
            "GET",
            f"{self.api_base_url}/athlete/activities",
            headers={"Authorization": f"Bearer {access_token}"},
            params=params,
        )
        logger.debug(f"Fetched {len(activities)} Strava activities (page={page})")
        return activities


strava_service = StravaService()
