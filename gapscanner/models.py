"""
Data models for the gap scanner.
Defines the data structures passed between the fetcher, engine, cache and orchestrator.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from enum import Enum
from typing import Optional, List, Dict, Any


class GapStatus(Enum):
    """Direction of a gap versus the previous close."""
    GAINER = "gainer"
    LOSER = "loser"


class MarketSession(Enum):
    """US equity session, by Eastern time of day."""
    PRE_MARKET = "pre-market"      # 4:00 AM - 9:30 AM
    MARKET_OPEN = "market-open"    # 9:30 AM - 4:00 PM
    POST_MARKET = "post-market"    # 4:00 PM - 8:00 PM
    CLOSED = "closed"              # 8:00 PM - 4:00 AM


class ResultSource(Enum):
    """Where a scan payload came from."""
    LIVE = "live"
    CACHE = "cache"


@dataclass(frozen=True)
class TickerInfo:
    """Static reference data for one symbol, supplied by the universe provider."""
    symbol: str
    name: str
    market_cap: float = 0.0
    exchange: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "marketCap": self.market_cap,
            "exchange": self.exchange,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TickerInfo":
        symbol = data["symbol"]
        return cls(
            symbol=symbol,
            name=data.get("name") or symbol,
            market_cap=float(data.get("marketCap") or 0),
            exchange=data.get("exchange") or "",
        )


@dataclass
class Quote:
    """One quote from the provider: current price, previous close, volume."""
    symbol: str
    current: float
    previous: float
    volume: int = 0

    @property
    def is_valid(self) -> bool:
        """Zero price or zero previous close is the provider's no-data sentinel."""
        return self.current != 0 and self.previous != 0

    @property
    def gap_percent(self) -> float:
        """Percent move from previous close, rounded to 2 places."""
        return round((self.current - self.previous) / self.previous * 100, 2)


@dataclass
class GapStock:
    """A symbol that passed every filter of the scan."""
    symbol: str
    name: str
    price: float
    previous_close: float
    gap_percent: float
    volume: int
    market_cap: float
    status: GapStatus

    @classmethod
    def from_quote(cls, quote: Quote, info: Optional[TickerInfo] = None) -> "GapStock":
        gap = quote.gap_percent
        return cls(
            symbol=quote.symbol,
            name=info.name if info else quote.symbol,
            price=quote.current,
            previous_close=quote.previous,
            gap_percent=gap,
            volume=quote.volume,
            market_cap=info.market_cap if info else 0.0,
            status=GapStatus.GAINER if gap > 0 else GapStatus.LOSER,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": self.price,
            "previousClose": self.previous_close,
            "gapPercent": self.gap_percent,
            "volume": self.volume,
            "marketCap": self.market_cap,
            "status": self.status.value,
        }


@dataclass
class MarketSessionInfo:
    """Session classification for a point in time."""
    session: MarketSession
    is_pre_market: bool
    market_status: str  # 'open' or 'closed'


@dataclass
class ScanFilters:
    """Thresholds and pacing used by one scan."""
    batch_size: int = 50
    delay_ms: int = 1000
    min_gap_percent: float = 5.0
    min_volume: int = 100_000
    max_price: float = 500.0
    min_market_cap: float = 100_000_000
    max_results: int = 20

    def to_dict(self) -> Dict[str, Any]:
        """Thresholds as reported in the response payload."""
        return {
            "minGapPercent": self.min_gap_percent,
            "minVolume": self.min_volume,
            "maxPrice": self.max_price,
            "minMarketCap": self.min_market_cap,
            "excludeETFs": True,
            "excludeWarrants": True,
        }


@dataclass
class ScanDebug:
    """Diagnostic counters reported with every scan."""
    api_key_present: bool = False
    api_key_length: int = 0
    universe_size: int = 0
    scan_limit: Optional[int] = None
    skipped_etf: int = 0
    skipped_gap: int = 0
    skipped_volume: int = 0
    skipped_price: int = 0
    skipped_market_cap: int = 0
    quote_failures: int = 0
    no_data: int = 0
    profile_failures: int = 0  # reserved: scans do no profile lookups
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiKeyPresent": self.api_key_present,
            "apiKeyLength": self.api_key_length,
            "universeSize": self.universe_size,
            "scanLimit": self.scan_limit,
            "skippedETF": self.skipped_etf,
            "skippedGap": self.skipped_gap,
            "skippedVolume": self.skipped_volume,
            "skippedPrice": self.skipped_price,
            "skippedMarketCap": self.skipped_market_cap,
            "quoteFailures": self.quote_failures,
            "noData": self.no_data,
            "profileFailures": self.profile_failures,
            "errors": list(self.errors),
        }


@dataclass
class ScanResult:
    """Complete result of one gap scan."""
    gainers: List[GapStock]
    losers: List[GapStock]
    timestamp: datetime
    trading_date: date
    previous_date: date
    scanned: int
    found: int
    duration_ms: int
    debug: ScanDebug
    filters: ScanFilters
    market_session: MarketSessionInfo
    is_weekend: bool = False
    source: ResultSource = ResultSource.LIVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON response payload."""
        return {
            "success": True,
            "data": {
                "gainers": [s.to_dict() for s in self.gainers],
                "losers": [s.to_dict() for s in self.losers],
            },
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
            "scanned": self.scanned,
            "found": self.found,
            "isWeekend": self.is_weekend,
            "tradingDate": self.trading_date.isoformat(),
            "previousDate": self.previous_date.isoformat(),
            "marketSession": self.market_session.session.value,
            "marketStatus": self.market_session.market_status,
            "isPreMarket": self.market_session.is_pre_market,
            "durationMs": self.duration_ms,
            "debug": self.debug.to_dict(),
            "filters": self.filters.to_dict(),
        }


@dataclass
class ScanRequest:
    """Parameters of one scan invocation."""
    dry_run: bool = False
    limit: int = 5000
    force_refresh: bool = False
    use_cache: bool = True
    min_gap_percent: Optional[float] = None  # None -> configured default (5%)
