"""
Gap Scan Engine

PURPOSE: Find the stocks that moved hardest versus the prior close.

PIPELINE (per scan):
1. Drop ETFs / warrants / units / rights / preferreds (no quote spent on them)
2. Split the universe into batches of batch_size
3. Fetch quotes batch by batch (sequential, rate limited)
4. Filter cascade, in order:
   - market cap known and < min_market_cap   -> skippedMarketCap (not counted as scanned)
   - |gap| < min_gap_percent                 -> skippedGap
   - volume < min_volume                     -> skippedVolume
   - price > max_price                       -> skippedPrice
5. Survivors are gainers (gap > 0) or losers
6. Gainers sorted desc, losers asc (most negative first), top 20 each

A full 5000-symbol universe at 1000ms per request runs for well over an hour.
Treat a scan as a batch job.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from loguru import logger

from gapscanner.models import GapStatus, GapStock, Quote, ScanDebug, ScanFilters, TickerInfo
from gapscanner.quote_fetcher import MAX_ERROR_MESSAGES, RateLimitedQuoteFetcher
from gapscanner.symbol_filter import is_excluded_derivative


@dataclass
class GapScanOutcome:
    """Aggregated result of one engine run."""
    gainers: List[GapStock] = field(default_factory=list)
    losers: List[GapStock] = field(default_factory=list)
    scanned: int = 0
    found: int = 0
    debug: ScanDebug = field(default_factory=ScanDebug)


def make_batches(symbols: List[str], batch_size: int) -> List[List[str]]:
    """Split symbols into consecutive batches, preserving order."""
    size = max(batch_size, 1)
    return [symbols[i:i + size] for i in range(0, len(symbols), size)]


class GapScanEngine:
    """
    Batches the universe, drives the quote fetcher and applies the gap filters.

    Holds no state between scans; every scan() builds its own accumulators.
    """

    def __init__(self, fetcher: RateLimitedQuoteFetcher, filters: ScanFilters):
        self.fetcher = fetcher
        self.filters = filters

    async def scan(
        self,
        symbols: List[str],
        info_map: Dict[str, TickerInfo],
        debug: Optional[ScanDebug] = None,
    ) -> GapScanOutcome:
        """
        Run the gap scan over ``symbols``.

        Args:
            symbols: Ordered universe to scan
            info_map: Static name / market cap lookup (may be incomplete)
            debug: Counter object to fill; a new one is created if omitted

        Returns:
            GapScanOutcome with sorted, truncated gainers/losers and counters
        """
        outcome = GapScanOutcome(debug=debug or ScanDebug())
        counters = outcome.debug

        eligible = []
        for symbol in symbols:
            if is_excluded_derivative(symbol):
                counters.skipped_etf += 1
            else:
                eligible.append(symbol)

        batches = make_batches(eligible, self.filters.batch_size)
        logger.info(
            f"Gap Scanner: {len(eligible)} symbols in {len(batches)} batches "
            f"({counters.skipped_etf} ETFs/derivatives skipped, "
            f"~{len(eligible) * self.filters.delay_ms / 1000:.0f}s at {self.filters.delay_ms}ms/request)"
        )

        for index, batch in enumerate(batches, 1):
            quotes = await self.fetcher.fetch_quotes(batch)
            self._absorb_fetch_stats(counters)

            # Iterate in batch order so ties keep universe order after the sort
            for symbol in batch:
                quote = quotes.get(symbol)
                if quote is not None:
                    self._evaluate(quote, info_map.get(symbol), outcome)

            logger.info(
                f"Gap Scanner: batch {index}/{len(batches)} done - "
                f"{len(quotes)}/{len(batch)} quotes, "
                f"{outcome.scanned} scanned, {len(outcome.gainers)} gainers, {len(outcome.losers)} losers"
            )

        outcome.found = len(outcome.gainers) + len(outcome.losers)
        outcome.gainers.sort(key=lambda s: s.gap_percent, reverse=True)
        outcome.losers.sort(key=lambda s: s.gap_percent)
        outcome.gainers = outcome.gainers[:self.filters.max_results]
        outcome.losers = outcome.losers[:self.filters.max_results]

        logger.info(
            f"Gap Scanner: Completed - {outcome.scanned} scanned, {outcome.found} gaps found "
            f"(gap {counters.skipped_gap}, volume {counters.skipped_volume}, "
            f"price {counters.skipped_price}, cap {counters.skipped_market_cap} skipped; "
            f"{counters.quote_failures} quote failures)"
        )
        return outcome

    def _evaluate(self, quote: Quote, info: Optional[TickerInfo], outcome: GapScanOutcome) -> None:
        """Run one quote through the filter cascade."""
        filters = self.filters
        counters = outcome.debug

        # Unknown (missing or zero) market cap passes this filter
        if info is not None and 0 < info.market_cap < filters.min_market_cap:
            counters.skipped_market_cap += 1
            logger.debug(f"Gap Scanner: skip {quote.symbol} - market cap {info.market_cap:,.0f}")
            return

        outcome.scanned += 1

        gap = quote.gap_percent
        if abs(gap) < filters.min_gap_percent:
            counters.skipped_gap += 1
            logger.debug(f"Gap Scanner: skip {quote.symbol} - gap {gap:+.2f}%")
            return
        if quote.volume < filters.min_volume:
            counters.skipped_volume += 1
            logger.debug(f"Gap Scanner: skip {quote.symbol} - volume {quote.volume:,}")
            return
        if quote.current > filters.max_price:
            counters.skipped_price += 1
            logger.debug(f"Gap Scanner: skip {quote.symbol} - price ${quote.current:.2f}")
            return

        stock = GapStock.from_quote(quote, info)
        if stock.status is GapStatus.GAINER:
            outcome.gainers.append(stock)
        else:
            outcome.losers.append(stock)
        logger.debug(f"Gap Scanner: {stock.status.value.upper()} - {stock.symbol} gap {gap:+.2f}%")

    def _absorb_fetch_stats(self, counters: ScanDebug) -> None:
        stats = self.fetcher.last_stats
        counters.quote_failures += stats.failures
        counters.no_data += stats.no_data
        for message in stats.errors:
            if len(counters.errors) >= MAX_ERROR_MESSAGES:
                break
            counters.errors.append(message)
