"""WakaTime API client that classifies every call into a stat status."""

import asyncio
import base64
import math
from typing import Any

import aiohttp

from app.core.logging import get_logger
from app.shared.exceptions import ProviderError
from app.shared.models import ProviderResult
from app.wakatime.payload import as_number, get_data, get_path

logger = get_logger(__name__)


def _to_seconds(value: float | None) -> int:
    if value is None or value < 0:
        return 0
    return int(math.floor(value + 0.5))


def _auth_header(api_key: str) -> str:
    token = base64.b64encode(api_key.encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def parse_today(payload: Any) -> ProviderResult:
    """Parse a status_bar/today body.

    Raises:
        ProviderError: If the grand total is missing or not a number
    """
    data = get_data(payload)
    if data is None:
        raise ProviderError("Response has no data object")
    total = as_number(get_path(data, "grand_total", "total_seconds"))
    if total is None:
        raise ProviderError("Response has no grand_total.total_seconds")

    date_key = get_path(data, "range", "date")
    time_zone = get_path(data, "range", "timezone")
    return ProviderResult(
        status="ok",
        total_seconds=_to_seconds(total),
        http_status=200,
        payload=payload,
        date_key=date_key if isinstance(date_key, str) and date_key else None,
        time_zone=time_zone if isinstance(time_zone, str) and time_zone else None,
    )


def parse_range(payload: Any) -> ProviderResult:
    """Parse a stats/{range} body.

    The daily average falls back to total / 7 when the provider omits it.

    Raises:
        ProviderError: If the total is missing or not a number
    """
    data = get_data(payload)
    if data is None:
        raise ProviderError("Response has no data object")
    total = as_number(data.get("total_seconds"))
    if total is None:
        raise ProviderError("Response has no total_seconds")
    average = as_number(data.get("daily_average"))
    if average is None:
        average = total / 7
    return ProviderResult(
        status="ok",
        total_seconds=_to_seconds(total),
        daily_average_seconds=_to_seconds(average),
        http_status=200,
        payload=payload,
    )


class WakaTimeClient:
    """Async WakaTime client.

    One session is shared by all users; each request carries the user's own
    API key. Calls never raise: every outcome is returned as a ProviderResult.
    Retries are left to the caller (the next sync tick).

    Attributes:
        DEFAULT_BASE_URL: WakaTime API v1 base URL
    """

    DEFAULT_BASE_URL = "https://wakatime.com/api/v1"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout_seconds: float = 15) -> None:
        """Initialize WakaTime client.

        Args:
            base_url: API base URL without trailing slash
            timeout_seconds: Total timeout per request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "WakaTimeClient":
        """Context manager entry: create aiohttp session.

        Returns:
            Self for use in async with statement
        """
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"Accept": "application/json", "User-Agent": "wakawars"},
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit: close aiohttp session."""
        if self.session:
            await self.session.close()

    async def fetch_today(self, api_key: str) -> ProviderResult:
        """Fetch today's coding time in the user's WakaTime time zone.

        Args:
            api_key: The user's WakaTime API key

        Returns:
            Classified result; date_key and time_zone are set when ok
        """
        url = f"{self.base_url}/users/current/status_bar/today"
        return await self._request(url, api_key, parse_today, endpoint="today")

    async def fetch_range(self, api_key: str, range_key: str) -> ProviderResult:
        """Fetch stats for a rolling range such as last_7_days.

        Args:
            api_key: The user's WakaTime API key
            range_key: WakaTime range identifier

        Returns:
            Classified result with total and daily average when ok
        """
        url = f"{self.base_url}/users/current/stats/{range_key}"
        return await self._request(url, api_key, parse_range, endpoint="stats")

    async def _request(
        self,
        url: str,
        api_key: str,
        parse: Any,
        endpoint: str,
    ) -> ProviderResult:
        if not self.session:
            return ProviderResult(status="error", error="Session not initialized")

        try:
            async with self.session.get(
                url, headers={"Authorization": _auth_header(api_key)}
            ) as response:
                if response.status == 200:
                    try:
                        body = await response.json(content_type=None)
                        result: ProviderResult = parse(body)
                        return result
                    except (ProviderError, ValueError, aiohttp.ContentTypeError) as e:
                        logger.warning(
                            "wakatime.response.malformed", endpoint=endpoint, error=str(e)
                        )
                        return ProviderResult(
                            status="error", error="Malformed response", http_status=200
                        )
                elif response.status in (401, 403):
                    return ProviderResult(
                        status="private",
                        error="Stats are private",
                        http_status=response.status,
                    )
                elif response.status == 404:
                    return ProviderResult(
                        status="not_found",
                        error="User not found",
                        http_status=404,
                    )
                elif response.status == 429:
                    logger.warning(
                        "wakatime.ratelimit",
                        endpoint=endpoint,
                        retry_after=response.headers.get("Retry-After"),
                        remaining=response.headers.get("X-RateLimit-Remaining"),
                    )
                    return ProviderResult(status="error", error="Rate limited", http_status=429)
                else:
                    logger.warning(
                        "wakatime.api.error", endpoint=endpoint, status=response.status
                    )
                    return ProviderResult(
                        status="error",
                        error=f"WakaTime API error: {response.status}",
                        http_status=response.status,
                    )
        except asyncio.TimeoutError:
            logger.warning("wakatime.request.timeout", endpoint=endpoint)
            return ProviderResult(status="error", error="WakaTime request timed out")
        except aiohttp.ClientError as e:
            logger.warning("wakatime.request.failed", endpoint=endpoint, error=str(e))
            return ProviderResult(status="error", error=f"Network error: {e}")
