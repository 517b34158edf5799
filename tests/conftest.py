"""
Shared fixtures and fakes for gap scanner tests. No network access.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest

from gapscanner.config import Settings
from gapscanner.models import TickerInfo
from gapscanner.result_cache import ResultCache
from gapscanner.store import InMemoryStore
from gapscanner.trading_calendar import EST, TradingCalendar


def quote(c: float, pc: float, v: int = 1_000_000) -> Dict[str, Any]:
    """Raw provider quote payload."""
    return {"c": c, "pc": pc, "v": v, "d": c - pc, "h": c, "l": c, "o": c, "t": 0}


class FakeQuoteClient:
    """Serves canned payloads; an Exception value is raised instead of returned."""

    def __init__(self, payloads: Dict[str, Any], api_key: str = "test-key"):
        self.payloads = payloads
        self.api_key = api_key
        self.calls: List[str] = []

    @property
    def api_key_present(self) -> bool:
        return bool(self.api_key)

    @property
    def api_key_length(self) -> int:
        return len(self.api_key)

    async def get_quote(self, symbol: str) -> Dict[str, Any]:
        self.calls.append(symbol)
        value = self.payloads.get(symbol, {"c": 0, "pc": 0, "v": 0})
        if isinstance(value, Exception):
            raise value
        return value


class FakeUniverse:
    """In-memory universe provider."""

    def __init__(self, symbols: List[str], info: Optional[Dict[str, TickerInfo]] = None,
                 error: Optional[Exception] = None):
        self.symbols = symbols
        self.info = info or {}
        self.error = error
        self.refresh_calls = 0

    async def get_universe(self) -> List[str]:
        if self.error:
            raise self.error
        return list(self.symbols)

    async def get_info_map(self) -> Dict[str, TickerInfo]:
        return dict(self.info)

    async def refresh_universe(self) -> Dict[str, Any]:
        self.refresh_calls += 1
        return {"success": True, "message": f"Stock universe refreshed: {len(self.symbols)} stocks"}


class FixedCalendar(TradingCalendar):
    """TradingCalendar whose clock is pinned."""

    def __init__(self, now: datetime, **kwargs):
        super().__init__(**kwargs)
        self._now = now

    def now(self) -> datetime:
        return self._now


class FakeClock:
    """Manually advanced monotonic clock with a matching async sleep."""

    def __init__(self, start: float = 0.0):
        self.t = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float):
        self.t += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.t += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        finnhub_api_key="test-key",
        scan_delay_ms=0,
        use_redis=False,
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def result_cache(store) -> ResultCache:
    return ResultCache.create(store)


@pytest.fixture
def monday_premarket() -> FixedCalendar:
    # Monday Oct 19 2026, 09:00 ET
    return FixedCalendar(EST.localize(datetime(2026, 10, 19, 9, 0)))
