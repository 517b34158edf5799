"""
Trading calendar and market session resolver.

Trading day: a weekday that is not an NYSE full-day holiday.

Sessions (US/Eastern, half-open intervals):
- 04:00 - 09:30: pre-market   (market status: open)
- 09:30 - 16:00: market-open  (market status: open)
- 16:00 - 20:00: post-market  (market status: open)
- otherwise:     closed

HOLIDAY COVERAGE:
Only the years listed in MARKET_HOLIDAYS are known. Dates in any other year
are treated as non-holidays and a warning is logged once per year. Add the
next year's table (or pass extra_holidays) before it starts.
"""

from datetime import datetime, date, timedelta
from typing import Dict, FrozenSet, Iterable, Optional, Set
import pytz
from loguru import logger

from gapscanner.models import MarketSession, MarketSessionInfo

EST = pytz.timezone('US/Eastern')

# NYSE full-day closures
MARKET_HOLIDAYS: Dict[int, FrozenSet[date]] = {
    2026: frozenset({
        date(2026, 1, 1),    # New Year's Day
        date(2026, 1, 19),   # Martin Luther King Jr. Day
        date(2026, 2, 16),   # Washington's Birthday
        date(2026, 4, 3),    # Good Friday
        date(2026, 5, 25),   # Memorial Day
        date(2026, 6, 19),   # Juneteenth
        date(2026, 7, 3),    # Independence Day (observed)
        date(2026, 9, 7),    # Labor Day
        date(2026, 11, 26),  # Thanksgiving Day
        date(2026, 12, 25),  # Christmas Day
    }),
}

# Session boundaries in minutes since midnight ET
PRE_MARKET_START = 4 * 60          # 04:00
MARKET_OPEN = 9 * 60 + 30          # 09:30
MARKET_CLOSE = 16 * 60             # 16:00
POST_MARKET_END = 20 * 60          # 20:00


class TradingCalendar:
    """Holiday/weekend-aware date and session resolver."""

    def __init__(
        self,
        holidays: Optional[Dict[int, Iterable[date]]] = None,
        extra_holidays: Iterable[date] = (),
    ):
        table = MARKET_HOLIDAYS if holidays is None else holidays
        self._holidays: Dict[int, Set[date]] = {year: set(days) for year, days in table.items()}
        for day in extra_holidays:
            self._holidays.setdefault(day.year, set()).add(day)
        self._warned_years: Set[int] = set()

    @property
    def covered_years(self) -> Set[int]:
        return set(self._holidays)

    def now(self) -> datetime:
        """Current time in US/Eastern."""
        return datetime.now(EST)

    def is_holiday(self, day: date) -> bool:
        """Check membership in the configured holiday table."""
        days = self._holidays.get(day.year)
        if days is None:
            if day.year not in self._warned_years:
                self._warned_years.add(day.year)
                logger.warning(
                    f"Trading calendar: no holiday table for {day.year}, "
                    f"treating every weekday as a trading day"
                )
            return False
        return day in days

    @staticmethod
    def is_weekend(day: date) -> bool:
        return day.weekday() >= 5  # Saturday=5, Sunday=6

    def is_trading_day(self, day: date) -> bool:
        return not self.is_weekend(day) and not self.is_holiday(day)

    def last_trading_date(self, day: date) -> date:
        """Most recent trading day strictly before ``day``."""
        candidate = day - timedelta(days=1)
        while not self.is_trading_day(candidate):
            candidate -= timedelta(days=1)
        return candidate

    def trading_date(self, now: Optional[datetime] = None) -> date:
        """
        Session date a scan at ``now`` refers to.

        On a trading day this is the Eastern calendar date; on weekends and
        holidays it is the last trading day before it.
        """
        today = self._to_eastern(now or self.now()).date()
        if self.is_trading_day(today):
            return today
        return self.last_trading_date(today)

    def market_session(self, now: Optional[datetime] = None) -> MarketSessionInfo:
        """Classify ``now`` into a market session by Eastern time of day."""
        now_et = self._to_eastern(now or self.now())
        minutes = now_et.hour * 60 + now_et.minute

        if PRE_MARKET_START <= minutes < MARKET_OPEN:
            return MarketSessionInfo(MarketSession.PRE_MARKET, is_pre_market=True, market_status="open")
        if MARKET_OPEN <= minutes < MARKET_CLOSE:
            return MarketSessionInfo(MarketSession.MARKET_OPEN, is_pre_market=False, market_status="open")
        if MARKET_CLOSE <= minutes < POST_MARKET_END:
            return MarketSessionInfo(MarketSession.POST_MARKET, is_pre_market=False, market_status="open")
        return MarketSessionInfo(MarketSession.CLOSED, is_pre_market=False, market_status="closed")

    @staticmethod
    def _to_eastern(moment: datetime) -> datetime:
        # Naive datetimes are taken as already Eastern
        if moment.tzinfo is None:
            return EST.localize(moment)
        return moment.astimezone(EST)
