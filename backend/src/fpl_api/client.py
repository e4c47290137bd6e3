"""
FPL API Client with rate limiting, retry logic, and error handling.

Handles all communication with the Fantasy Premier League API: the
bootstrap feed, classic league standings, manager histories, live
gameweek stats and manager picks.
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional

import httpx
from asyncio_throttle import Throttler

from config import Config

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://fantasy.premierleague.com/",
}

# Retryable: 429 (rate limit), 500, 502, 503, 504
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class FPLAPIError(Exception):
    """Base exception for FPL API errors."""
    pass


class FPLAPIRateLimitError(FPLAPIError):
    """Raised when rate limit is exceeded."""
    pass


class FPLAPINonRetryableError(FPLAPIError):
    """Raised for non-retryable errors (4xx except 429)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FPLAPIClient:
    """Client for interacting with the FPL API."""

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.base_url = config.fpl_api_base_url.rstrip("/")
        self.max_retries = config.max_retries
        self.retry_backoff_base = config.retry_backoff_base
        self.max_retry_delay = config.max_retry_delay

        self.throttler = Throttler(
            rate_limit=config.max_requests_per_minute,
            period=60.0
        )
        self.min_interval = config.min_request_interval
        self.last_request_time = 0.0

        # No base_url on the client: absolute URLs are built in _build_url
        self.client = httpx.AsyncClient(
            timeout=config.request_timeout,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
            transport=transport,
        )

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _wait_for_rate_limit(self):
        """Wait to respect rate limiting."""
        await self.throttler.acquire()

        if self.min_interval > 0:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.min_interval:
                wait_time = self.min_interval - time_since_last
                # Add jitter (±25%)
                jitter = wait_time * 0.25 * (random.random() * 2 - 1)
                await asyncio.sleep(max(0.0, wait_time + jitter))

        self.last_request_time = time.time()

    def _backoff(self, attempt: int) -> float:
        """Exponential backoff with ±25% jitter, capped at max_retry_delay."""
        backoff = min(
            self.retry_backoff_base * (2 ** attempt),
            self.max_retry_delay
        )
        jitter = backoff * 0.25 * (random.random() * 2 - 1)
        return max(0.0, backoff + jitter)

    async def _request_with_retry(self, endpoint: str) -> httpx.Response:
        """
        GET an endpoint with retry logic.

        Args:
            endpoint: API endpoint path (relative to the base URL) or absolute URL

        Returns:
            httpx.Response object

        Raises:
            FPLAPIRateLimitError: If still rate limited after all retries
            FPLAPINonRetryableError: If upstream answers with a 4xx other than 429
            FPLAPIError: For other errors after retries exhausted
        """
        url = self._build_url(endpoint)

        for attempt in range(self.max_retries + 1):
            retries_left = attempt < self.max_retries
            try:
                await self._wait_for_rate_limit()
                response = await self.client.get(url)
            except httpx.TimeoutException as e:
                if not retries_left:
                    raise FPLAPIError(f"Request timeout after {self.max_retries} retries") from e
                wait_time = self._backoff(attempt)
                logger.warning("Timeout from FPL API, retrying", extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "wait_time": wait_time
                })
                await asyncio.sleep(wait_time)
                continue
            except httpx.TransportError as e:
                if not retries_left:
                    raise FPLAPIError(f"Network error after {self.max_retries} retries: {e}") from e
                wait_time = self._backoff(attempt)
                logger.warning("Network error from FPL API, retrying", extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "wait_time": wait_time,
                    "error": str(e)
                })
                await asyncio.sleep(wait_time)
                continue

            if response.is_success:
                return response

            status_code = response.status_code

            if status_code == 429:
                try:
                    retry_after = float(response.headers.get("Retry-After", self.max_retry_delay))
                except ValueError:
                    retry_after = float(self.max_retry_delay)
                logger.warning("Rate limited by FPL API", extra={
                    "endpoint": endpoint,
                    "retry_after": retry_after,
                    "attempt": attempt + 1
                })
                if not retries_left:
                    raise FPLAPIRateLimitError(
                        f"Rate limited after {self.max_retries} retries"
                    )
                await asyncio.sleep(min(retry_after, self.max_retry_delay))
                continue

            if status_code not in RETRYABLE_STATUS_CODES:
                error_text = response.text[:500]
                logger.error("Non-retryable error from FPL API", extra={
                    "endpoint": endpoint,
                    "status_code": status_code,
                    "error": error_text
                })
                raise FPLAPINonRetryableError(
                    f"Non-retryable error {status_code}: {error_text}",
                    status_code=status_code,
                )

            if not retries_left:
                raise FPLAPIError(
                    f"Request failed after {self.max_retries} retries: "
                    f"{status_code} - {response.text[:500]}"
                )

            wait_time = self._backoff(attempt)
            logger.warning("Retryable error from FPL API, retrying", extra={
                "endpoint": endpoint,
                "status_code": status_code,
                "attempt": attempt + 1,
                "wait_time": wait_time
            })
            await asyncio.sleep(wait_time)

        # Loop always returns or raises; kept for type checkers
        raise FPLAPIError("Request failed")

    async def get_json(self, endpoint: str) -> Any:
        """
        GET an upstream endpoint and decode its JSON body.

        Raises:
            FPLAPIError: On transport failure, empty body, HTML body or invalid JSON
        """
        response = await self._request_with_retry(endpoint)

        if not response.content:
            logger.error("Empty response from FPL API", extra={
                "endpoint": endpoint,
                "status_code": response.status_code
            })
            raise FPLAPIError(f"Empty response from {endpoint}")

        # HTML instead of JSON usually means a block page or maintenance screen
        content_type = response.headers.get("content-type", "").lower()
        if "text/html" in content_type:
            logger.error("API returned HTML (blocking?)", extra={
                "url": str(response.url),
                "status_code": response.status_code,
                "content_type": content_type
            })
            raise FPLAPIError("FPL API returned HTML instead of JSON - request may be blocked")

        try:
            return response.json()
        except ValueError as e:
            logger.error("JSON parse failed", extra={
                "endpoint": endpoint,
                "status_code": response.status_code,
                "content_length": len(response.content),
                "response_preview": response.text[:500],
                "error": str(e)
            })
            raise FPLAPIError(f"Failed to parse JSON: {e}") from e

    async def get_bootstrap_static(self) -> Dict[str, Any]:
        """
        Get bootstrap-static data (players, teams, gameweeks).

        Returns:
            Bootstrap static data dictionary
        """
        data = await self.get_json("/bootstrap-static/")

        logger.info("Bootstrap-static fetched", extra={
            "gameweeks_count": len(data.get("events", [])) if isinstance(data, dict) else 0
        })

        return data

    async def get_league_standings(self, league_id: int) -> Dict[str, Any]:
        """
        Get classic league standings (first page).

        Args:
            league_id: FPL league ID

        Returns:
            League standings data dictionary
        """
        return await self.get_json(f"/leagues-classic/{league_id}/standings/")

    async def get_entry_history(self, team_id: int) -> Dict[str, Any]:
        """
        Get manager history data.

        Args:
            team_id: FPL manager (entry) ID

        Returns:
            Manager history data dictionary
        """
        return await self.get_json(f"/entry/{team_id}/history/")

    async def get_event_live(self, event_id: int) -> Dict[str, Any]:
        """
        Get live event data for a gameweek.

        Args:
            event_id: Gameweek number

        Returns:
            Live event data dictionary
        """
        data = await self.get_json(f"/event/{event_id}/live/")

        logger.debug("Fetched live event data", extra={
            "gameweek": event_id,
            "players_count": len(data.get("elements", [])) if isinstance(data, dict) else 0
        })

        return data

    async def get_entry_picks(self, team_id: int, event_id: int) -> Dict[str, Any]:
        """
        Get manager picks for a gameweek.

        Args:
            team_id: FPL manager (entry) ID
            event_id: Gameweek number

        Returns:
            Manager picks data dictionary
        """
        return await self.get_json(f"/entry/{team_id}/event/{event_id}/picks/")

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
