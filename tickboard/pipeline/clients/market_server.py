"""REST client for the market-data server.

The server fronts the upstream market-data vendor. Besides the websocket
stream it exposes a health endpoint, a previous-close endpoint used to seed
gap calculations and cache statistics.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import aiohttp

from ..core.exceptions import ServerUnavailableError
from ..utils.http import HTTPClient

logger = logging.getLogger(__name__)

HEALTH_PATH = "/health"
API_PREFIX = "/api/v1"


class MarketServerClient:
    """Health check, previous close and generic API access."""

    def __init__(
        self,
        server_url: str,
        *,
        timeout: float = 5.0,
        http: HTTPClient | None = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self._http = http or HTTPClient(base_url=self.server_url, timeout=timeout)

    async def health_check(self) -> dict[str, Any]:
        """Return the server's health document.

        Raises:
            ServerUnavailableError: If the server is unreachable or unhealthy
        """
        try:
            health = await self._http.get(HEALTH_PATH)
        except aiohttp.ClientResponseError as e:
            raise ServerUnavailableError(
                f"Server health check failed: {e.status}", status_code=e.status
            ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise ServerUnavailableError(
                f"Cannot connect to market server at {self.server_url}: {e}"
            ) from e
        logger.info(f"Server health check passed: {health}")
        return health

    async def request(self, endpoint: str, **params: Any) -> Any:
        """GET ``/api/v1{endpoint}`` with query params."""
        try:
            return await self._http.get(f"{API_PREFIX}{endpoint}", params=params or None)
        except aiohttp.ClientResponseError as e:
            raise ServerUnavailableError(
                f"API request failed: {e.status} - {e.message}", status_code=e.status
            ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise ServerUnavailableError(f"API request to {endpoint} failed: {e}") from e

    async def fetch_previous_close(self, symbols: Iterable[str] | None = None) -> dict[str, float]:
        """Previous session close per symbol.

        The endpoint returns ``{"results": [{"T": ticker, "c": close}, ...]}``;
        rows without a ticker or a close are skipped.
        """
        params: dict[str, Any] = {}
        if symbols is not None:
            params["symbols"] = ",".join(symbols)
        data = await self.request("/previous-close", **params)
        return parse_previous_close(data)

    async def fetch_cache_stats(self) -> dict[str, Any]:
        return await self.request("/cache/stats")

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> MarketServerClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def parse_previous_close(data: Any) -> dict[str, float]:
    """Extract ``{ticker: close}`` from a previous-close response.

    Examples:
        >>> parse_previous_close({"results": [{"T": "AAPL", "c": 189.5}, {"T": "X"}]})
        {'AAPL': 189.5}
    """
    if not isinstance(data, dict):
        return {}
    closes: dict[str, float] = {}
    for row in data.get("results") or []:
        ticker = row.get("T")
        close = row.get("c")
        if ticker and close:
            closes[ticker] = float(close)
    return closes
