"""
Rate-limited quote fetching.

One request per symbol, strictly sequential, with a fixed delay between
consecutive requests. At delay_ms=1000 this is ~60 requests/minute, the
Finnhub free-tier ceiling. No fan-out: the delay IS the rate limit.

A failing symbol (HTTP error, timeout, malformed payload) is logged and
skipped. It never aborts the rest of the list.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol
from loguru import logger

from gapscanner.exceptions import QuoteRequestError
from gapscanner.models import Quote

# Keep only the first few error messages per fetch
MAX_ERROR_MESSAGES = 5


class QuoteClient(Protocol):
    """Anything that can return a raw {c, pc, v} quote payload for a symbol."""

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        ...


class RequestThrottle:
    """
    Enforces a minimum interval between consecutive requests.

    The first wait() returns immediately; later calls sleep only for
    whatever part of the interval has not already elapsed.
    """

    def __init__(
        self,
        delay_ms: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = max(delay_ms, 0) / 1000.0
        self._sleep = sleep
        self._clock = clock
        self._last_request: Optional[float] = None

    async def wait(self) -> None:
        """Wait until the next request may be sent."""
        if self._last_request is not None and self.interval > 0:
            elapsed = self._clock() - self._last_request
            if elapsed < self.interval:
                await self._sleep(self.interval - elapsed)
        self._last_request = self._clock()

    def reset(self) -> None:
        self._last_request = None


@dataclass
class FetchStats:
    """Outcome counters for one fetch_quotes() call."""
    requested: int = 0
    fetched: int = 0
    failures: int = 0
    no_data: int = 0
    errors: List[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.failures += 1
        if len(self.errors) < MAX_ERROR_MESSAGES:
            self.errors.append(message)


def parse_quote(symbol: str, payload: Dict[str, Any]) -> Quote:
    """Build a Quote from a raw provider payload; raises on malformed data."""
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected quote payload type {type(payload).__name__}")
    return Quote(
        symbol=symbol,
        current=float(payload.get("c") or 0),
        previous=float(payload.get("pc") or 0),
        volume=int(payload.get("v") or 0),
    )


class RateLimitedQuoteFetcher:
    """Sequential, delay-throttled quote fetcher."""

    def __init__(
        self,
        client: QuoteClient,
        delay_ms: int = 1000,
        throttle: Optional[RequestThrottle] = None,
    ):
        self.client = client
        self.throttle = throttle or RequestThrottle(delay_ms)
        self.last_stats = FetchStats()

    async def fetch_quotes(self, symbols: List[str]) -> Dict[str, Quote]:
        """
        Fetch one quote per symbol, in order.

        Returns:
            Mapping of symbol -> Quote, containing only symbols with valid data
        """
        stats = FetchStats(requested=len(symbols))
        quotes: Dict[str, Quote] = {}

        for symbol in symbols:
            await self.throttle.wait()
            try:
                payload = await self.client.get_quote(symbol)
                quote = parse_quote(symbol, payload)
            except QuoteRequestError as e:
                logger.warning(f"Quote fetch: {e}")
                stats.record_error(str(e))
                continue
            except Exception as e:
                logger.debug(f"Quote fetch: error for {symbol}: {e}")
                stats.record_error(f"{symbol}: {e}")
                continue

            if not quote.is_valid:
                stats.no_data += 1
                logger.debug(f"Quote fetch: no data for {symbol}")
                continue

            quotes[symbol] = quote

        stats.fetched = len(quotes)
        self.last_stats = stats
        return quotes
