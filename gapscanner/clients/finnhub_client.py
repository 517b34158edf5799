"""
Finnhub API Client for quotes and reference data.

Endpoints used:
- /quote          current price (c), previous close (pc), volume (v)
- /stock/symbol   listed symbols per exchange (universe build)
- /stock/profile2 company profile incl. market cap in millions (universe build)

Free-tier keys are limited to ~60 calls/minute. This client does NOT pace
requests itself; callers go through RateLimitedQuoteFetcher or a RequestThrottle.
"""

import asyncio
from typing import Optional, List, Dict, Any
import aiohttp
from loguru import logger

from gapscanner.config import Settings
from gapscanner.exceptions import QuoteRequestError


class FinnhubClient:
    """Client for the Finnhub REST API."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.api_key = settings.finnhub_api_key or ""
        self.base_url = settings.finnhub_base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop_id: Optional[int] = None  # Track which event loop owns the session

    @property
    def api_key_present(self) -> bool:
        return bool(self.api_key)

    @property
    def api_key_length(self) -> int:
        return len(self.api_key)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session, recreating it if the event loop changed."""
        try:
            current_loop_id = id(asyncio.get_running_loop())
        except RuntimeError:
            current_loop_id = None

        needs_new = (
            self._session is None
            or self._session.closed
            or self._session_loop_id != current_loop_id
        )

        if needs_new:
            if self._session is not None and not self._session.closed:
                try:
                    await self._session.close()
                except Exception as e:
                    logger.debug(f"Finnhub: error closing stale session: {e}")
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._session_loop_id = current_loop_id

        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop_id = None

    def _params(self, params: Optional[Dict] = None) -> Dict[str, Any]:
        query = dict(params or {})
        query["token"] = self.api_key
        return query

    async def _request(self, endpoint: str, params: Optional[Dict] = None) -> Any:
        """GET a reference-data endpoint; errors are logged and yield None."""
        session = await self._get_session()
        try:
            async with session.get(f"{self.base_url}{endpoint}", params=self._params(params)) as response:
                if response.status == 200:
                    return await response.json()
                if response.status == 429:
                    logger.warning(f"Finnhub rate limit hit on {endpoint}")
                elif response.status in (401, 403):
                    logger.error("Finnhub API key invalid or endpoint not in plan")
                else:
                    error_text = await response.text()
                    logger.error(f"Finnhub API error {response.status} on {endpoint}: {error_text[:200]}")
        except asyncio.TimeoutError:
            logger.warning(f"Finnhub request timeout on {endpoint}")
        except aiohttp.ClientError as e:
            logger.error(f"Finnhub request failed on {endpoint}: {e}")
        return None

    # ==================== Quotes ====================

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        """
        Get the latest quote for a symbol.

        Returns:
            Raw payload with 'c' (current), 'pc' (previous close), 'v' (volume)

        Raises:
            QuoteRequestError: provider answered with a non-200 status
        """
        session = await self._get_session()
        async with session.get(f"{self.base_url}/quote", params=self._params({"symbol": symbol})) as response:
            if response.status != 200:
                detail = await response.text()
                raise QuoteRequestError(symbol, response.status, detail[:200] or None)
            return await response.json()

    # ==================== Reference Data ====================

    async def get_symbols(self, exchange: str = "US") -> List[Dict[str, Any]]:
        """Get all listed symbols for an exchange code."""
        result = await self._request("/stock/symbol", {"exchange": exchange})
        return result if isinstance(result, list) else []

    async def get_company_profile(self, symbol: str) -> Dict[str, Any]:
        """Get company profile (name, exchange, marketCapitalization in millions)."""
        result = await self._request("/stock/profile2", {"symbol": symbol})
        return result if isinstance(result, dict) else {}
