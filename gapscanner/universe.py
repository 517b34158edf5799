"""
Stock Universe Management

Maintains the list of symbols the gap scanner covers (top 5000 US listings by
market cap, each > $100M) plus their static name / market cap info.

BUILD (refresh_universe, slow - run weekly or on demand):
1. Pull listed symbols for US, NYSE and NASDAQ from Finnhub (deduplicated,
   ETFs/warrants/units/preferreds dropped)
2. Look up market cap for each via company profile (rate limited)
3. Keep caps >= $100M, sort by cap desc, take the top 5000
4. Store as JSON under stock_universe:top5000 with a 7 day expiry

READ (every scan): from the durable store, or FALLBACK_UNIVERSE if absent.
"""

import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol
from loguru import logger

from gapscanner.clients.finnhub_client import FinnhubClient
from gapscanner.config import Settings
from gapscanner.exceptions import ConfigurationError, UniverseError
from gapscanner.models import TickerInfo
from gapscanner.quote_fetcher import RequestThrottle
from gapscanner.store import KeyValueStore
from gapscanner.symbol_filter import is_excluded_derivative

STOCK_UNIVERSE_KEY = "stock_universe:top5000"
STOCK_UNIVERSE_UPDATED_KEY = "stock_universe:last_updated"

SYMBOL_EXCHANGES = ["US", "NYSE", "NASDAQ"]
MAX_SYMBOLS_TO_PROFILE = 10000

# Top liquid names, used when no built universe is stored
FALLBACK_UNIVERSE = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "BRK.B", "UNH", "JNJ",
    "XOM", "JPM", "V", "PG", "HD", "CVX", "MA", "LLY", "BAC", "ABBV",
    "PFE", "KO", "AVGO", "PEP", "TMO", "WMT", "MRK", "COST", "DIS", "ABT",
    "ADBE", "CRM", "ACN", "VZ", "DHR", "WFC", "NKE", "TXN", "NEE", "PM",
    "LIN", "RTX", "BMY", "UPS", "T", "MS", "ORCL", "HON", "QCOM", "AMD",
    "INTC", "LOW", "IBM", "CAT", "GS", "SBUX", "INTU", "AMGN", "BA", "DE",
    "GE", "PLD", "MDT", "BLK", "ISRG", "AMAT", "GILD", "ADP", "SYK", "BKNG",
    "NFLX", "C", "MMM", "TJX", "CVS", "MO", "SCHW", "PYPL", "ZTS", "CI",
    "PLTR", "COIN", "UBER", "SHOP", "SQ", "HOOD", "SOFI", "RIVN", "LCID", "NIO",
    "MARA", "RIOT", "CVNA", "GME", "AMC", "F", "GM", "MU", "SNOW", "CRWD",
]


class UniverseProvider(Protocol):
    """Source of the symbol universe and its static info."""

    async def get_universe(self) -> List[str]:
        ...

    async def get_info_map(self) -> Dict[str, TickerInfo]:
        ...

    async def refresh_universe(self) -> Dict[str, Any]:
        ...


class StockUniverse:
    """Universe stored in the durable key-value store, built from Finnhub."""

    def __init__(
        self,
        store: KeyValueStore,
        client: FinnhubClient,
        settings: Settings,
        throttle: Optional[RequestThrottle] = None,
    ):
        self.store = store
        self.client = client
        self.settings = settings
        self.throttle = throttle or RequestThrottle(settings.scan_delay_ms)

    async def _load(self) -> Optional[List[TickerInfo]]:
        raw = await self.store.get(STOCK_UNIVERSE_KEY)
        if raw is None:
            return None
        try:
            return [TickerInfo.from_dict(item) for item in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Universe: stored universe unreadable: {e}")
            return None

    async def get_universe(self) -> List[str]:
        """Symbols to scan, in market cap order."""
        stocks = await self._load()
        if stocks:
            logger.info(f"Universe: loaded {len(stocks)} symbols from store")
            return [s.symbol for s in stocks]

        logger.warning(f"Universe: no stored universe, using fallback ({len(FALLBACK_UNIVERSE)} symbols)")
        return list(FALLBACK_UNIVERSE)

    async def get_info_map(self) -> Dict[str, TickerInfo]:
        """Static info per symbol; empty when no universe has been built."""
        stocks = await self._load() or []
        return {s.symbol: s for s in stocks}

    async def get_last_updated(self) -> Optional[str]:
        return await self.store.get(STOCK_UNIVERSE_UPDATED_KEY)

    async def refresh_universe(self) -> Dict[str, Any]:
        """
        Rebuild and store the universe.

        Returns:
            {success, message, details: {count, filteredCount, finalCount, timeMs}}
        """
        start = time.monotonic()
        counts = {"count": 0, "filteredCount": 0, "finalCount": 0}

        try:
            if not self.client.api_key_present:
                raise ConfigurationError("FINNHUB_API_KEY is not configured")

            listings = await self._fetch_listings()
            counts["count"] = len(listings)
            if not listings:
                raise UniverseError("No stocks fetched from Finnhub")

            stocks = await self._fetch_market_caps(listings[:MAX_SYMBOLS_TO_PROFILE])
            counts["filteredCount"] = len(stocks)

            stocks.sort(key=lambda s: s.market_cap, reverse=True)
            top = stocks[:self.settings.universe_size]
            counts["finalCount"] = len(top)

            await self.store.set_with_expiry(
                STOCK_UNIVERSE_KEY,
                json.dumps([s.to_dict() for s in top]),
                self.settings.universe_cache_ttl,
            )
            await self.store.set_with_expiry(
                STOCK_UNIVERSE_UPDATED_KEY,
                datetime.now().isoformat(),
                self.settings.universe_cache_ttl,
            )
        except Exception as e:
            elapsed = int((time.monotonic() - start) * 1000)
            logger.error(f"Universe: build failed: {e}")
            return {
                "success": False,
                "message": f"Failed to refresh: {e}",
                "details": {**counts, "timeMs": elapsed},
            }

        elapsed = int((time.monotonic() - start) * 1000)
        logger.info(f"Universe: build completed in {elapsed}ms - {counts['finalCount']} stocks")
        return {
            "success": True,
            "message": f"Stock universe refreshed: {counts['finalCount']} stocks",
            "details": {**counts, "timeMs": elapsed},
        }

    async def _fetch_listings(self) -> List[Dict[str, Any]]:
        """All unique, non-derivative listings across the US exchanges."""
        seen: Dict[str, Dict[str, Any]] = {}
        for exchange in SYMBOL_EXCHANGES:
            await self.throttle.wait()
            listings = await self.client.get_symbols(exchange)
            logger.info(f"Universe: fetched {len(listings)} symbols from {exchange}")
            for item in listings:
                symbol = item.get("symbol")
                if symbol and symbol not in seen and not is_excluded_derivative(symbol):
                    seen[symbol] = item
        return list(seen.values())

    async def _fetch_market_caps(self, listings: List[Dict[str, Any]]) -> List[TickerInfo]:
        """Profile each listing; keep those at or above the minimum market cap."""
        min_cap = self.settings.universe_min_market_cap
        batch = self.settings.profile_batch_size
        stocks: List[TickerInfo] = []

        for i, item in enumerate(listings, 1):
            symbol = item["symbol"]
            await self.throttle.wait()
            profile = await self.client.get_company_profile(symbol)

            # Finnhub reports market cap in millions
            cap = float(profile.get("marketCapitalization") or 0) * 1_000_000
            if cap >= min_cap:
                stocks.append(TickerInfo(
                    symbol=symbol,
                    name=item.get("description") or profile.get("name") or symbol,
                    market_cap=cap,
                    exchange=item.get("mic") or profile.get("exchange") or "",
                ))

            if i % batch == 0:
                logger.info(f"Universe: profiled {i}/{len(listings)} symbols, {len(stocks)} above cap")

        return stocks
