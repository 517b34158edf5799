"""
Scan Orchestrator - one gap scan invocation, end to end.

Flow:
1. Credential check (missing key -> configuration error, no fetch attempted)
2. Universe + static info (optional forced refresh first)
3. Optional limit: first N symbols, reported in debug.scanLimit
4. Cache lookup for today's trading date (skipped on dry run / no cache / refresh;
   a cached result is served only if it was scanned with the same limit)
5. Market session for the response
6. GapScanEngine over the symbols
7. ScanResult payload (source=live)
8. Cache write (skipped on dry run and on limited scans)

Every call returns a JSON-serializable dict. Failures come back as
{success: False, error, message, timestamp, durationMs} instead of raising.
"""

import time
from typing import Any, Callable, Dict, List, Optional
from loguru import logger

from gapscanner.clients.finnhub_client import FinnhubClient
from gapscanner.config import Settings, get_settings
from gapscanner.exceptions import ConfigurationError
from gapscanner.gap_scanner import GapScanEngine
from gapscanner.models import ResultSource, ScanDebug, ScanRequest, ScanResult
from gapscanner.quote_fetcher import QuoteClient, RateLimitedQuoteFetcher
from gapscanner.result_cache import ResultCache
from gapscanner.store import create_store
from gapscanner.trading_calendar import TradingCalendar
from gapscanner.universe import StockUniverse, UniverseProvider

FetcherFactory = Callable[[QuoteClient, int], RateLimitedQuoteFetcher]

ACTION_REFRESH_UNIVERSE = "refresh-universe"


class ScanOrchestrator:
    """Ties universe, calendar, engine and cache into one scan call."""

    def __init__(
        self,
        settings: Settings,
        universe: UniverseProvider,
        quote_client: QuoteClient,
        result_cache: ResultCache,
        calendar: Optional[TradingCalendar] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
    ):
        self.settings = settings
        self.universe = universe
        self.quote_client = quote_client
        self.result_cache = result_cache
        self.calendar = calendar or TradingCalendar(extra_holidays=settings.extra_holidays)
        self._fetcher_factory = fetcher_factory or RateLimitedQuoteFetcher
        self._owned: List[Any] = []

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScanOrchestrator":
        """Build the production wiring: Finnhub client, Redis store, stored universe."""
        settings = settings or get_settings()
        client = FinnhubClient(settings)
        store = create_store(settings)
        orchestrator = cls(
            settings=settings,
            universe=StockUniverse(store, client, settings),
            quote_client=client,
            result_cache=ResultCache.create(store, settings.result_cache_ttl),
        )
        orchestrator._owned = [client, store]
        return orchestrator

    async def close(self):
        """Close the connections this orchestrator created."""
        for resource in self._owned:
            await resource.close()
        self._owned = []

    @property
    def api_key_present(self) -> bool:
        return bool(getattr(self.quote_client, "api_key_present", False))

    @property
    def api_key_length(self) -> int:
        return int(getattr(self.quote_client, "api_key_length", 0))

    async def run_scan(self, request: Optional[ScanRequest] = None) -> Dict[str, Any]:
        """
        Run one gap scan.

        Args:
            request: Scan options; defaults to a cached, full-universe scan

        Returns:
            Response payload dict (success or structured error)
        """
        request = request or ScanRequest()
        start = time.monotonic()

        try:
            if not self.api_key_present:
                raise ConfigurationError("FINNHUB_API_KEY is not configured")

            if request.force_refresh:
                logger.info("Gap Scanner: forced universe refresh")
                refresh = await self.universe.refresh_universe()
                logger.info(f"Gap Scanner: refresh result - {refresh.get('message')}")

            symbols = await self.universe.get_universe()
            info_map = await self.universe.get_info_map()
            universe_size = len(symbols)

            scan_limit = None
            if 0 <= request.limit < universe_size:
                symbols = symbols[:request.limit]
                scan_limit = request.limit
                logger.info(f"Gap Scanner: limited to first {request.limit} of {universe_size} symbols")

            now = self.calendar.now()
            trading_date = self.calendar.trading_date(now)
            previous_date = self.calendar.last_trading_date(trading_date)

            if request.use_cache and not request.dry_run and not request.force_refresh:
                cached = await self.result_cache.get(trading_date)
                if cached is not None and cached.get("debug", {}).get("scanLimit") == scan_limit:
                    logger.info(f"Gap Scanner: serving cached result for {trading_date.isoformat()}")
                    cached["source"] = ResultSource.CACHE.value
                    return cached
                if cached is not None:
                    logger.info("Gap Scanner: cached result covers a different symbol limit, rescanning")

            session = self.calendar.market_session(now)
            filters = self.settings.default_filters(request.min_gap_percent)
            debug = ScanDebug(
                api_key_present=self.api_key_present,
                api_key_length=self.api_key_length,
                universe_size=universe_size,
                scan_limit=scan_limit,
            )

            logger.info(
                f"Gap Scanner: starting live scan of {len(symbols)} symbols "
                f"(trading date {trading_date.isoformat()}, session {session.session.value}, "
                f"dry_run={request.dry_run})"
            )
            engine = GapScanEngine(self._fetcher_factory(self.quote_client, filters.delay_ms), filters)
            outcome = await engine.scan(symbols, info_map, debug)

            result = ScanResult(
                gainers=outcome.gainers,
                losers=outcome.losers,
                timestamp=now,
                trading_date=trading_date,
                previous_date=previous_date,
                scanned=outcome.scanned,
                found=outcome.found,
                duration_ms=self._elapsed_ms(start),
                debug=outcome.debug,
                filters=filters,
                market_session=session,
                is_weekend=self.calendar.is_weekend(now.date()),
                source=ResultSource.LIVE,
            )
            payload = result.to_dict()

            # Only full-universe scans are cached
            if not request.dry_run and scan_limit is None:
                await self.result_cache.set(trading_date, payload)

            return payload

        except ConfigurationError as e:
            logger.error(f"Gap Scanner: configuration error - {e}")
            return self._error_response("Configuration error", e, start)
        except Exception as e:
            logger.exception(f"Gap Scanner: scan failed - {e}")
            return self._error_response("Gap scanner failed", e, start)

    async def handle_action(self, action: Dict[str, Any]) -> Dict[str, Any]:
        """Administrative actions; currently only universe refresh."""
        start = time.monotonic()
        name = action.get("action")
        if name == ACTION_REFRESH_UNIVERSE:
            try:
                return await self.universe.refresh_universe()
            except Exception as e:
                logger.exception(f"Gap Scanner: universe refresh failed - {e}")
                return self._error_response("Universe refresh failed", e, start)
        return self._error_response("Unknown action", ValueError(f"unsupported action: {name!r}"), start)

    def _error_response(self, error: str, exc: Exception, start: float) -> Dict[str, Any]:
        return {
            "success": False,
            "error": error,
            "message": str(exc),
            "timestamp": self.calendar.now().isoformat(),
            "durationMs": self._elapsed_ms(start),
        }

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
