"""
Two-tier scan result cache.

Tier 1: MemoryCache in this process (fast, lost on restart)
Tier 2: durable KeyValueStore, normally Redis (shared, survives restarts)

Read:  tier 1 -> tier 2 -> (hit) back-fill tier 1
Write: tier 1, then tier 2; tier-2 failures are logged and swallowed

Scan results are keyed by trading date: gap_scanner:YYYY-MM-DD, 24h expiry.
"""

import copy
import json
from datetime import date
from typing import Any, Dict, Optional
from loguru import logger

from gapscanner.store import KeyValueStore
from gapscanner.utils.cache import MemoryCache

RESULT_KEY_PREFIX = "gap_scanner"
RESULT_TTL_SECONDS = 24 * 60 * 60


class TieredCache:
    """Read-through / write-through cache over a MemoryCache and a KeyValueStore."""

    def __init__(self, local: MemoryCache, store: KeyValueStore, default_ttl: int = RESULT_TTL_SECONDS):
        self.local = local
        self.store = store
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the cached value, or None on a miss in both tiers."""
        value = self.local.get(key)
        if value is not None:
            logger.debug(f"Cache hit (memory): {key}")
            return copy.deepcopy(value)

        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache: durable read failed for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            value = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Cache: discarding unreadable entry {key}: {e}")
            return None

        logger.debug(f"Cache hit (durable): {key}")
        self.local.set(key, value, self.default_ttl)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """Store a copy of ``value`` in both tiers, dropping expired memory entries first."""
        ttl = self.default_ttl if ttl is None else ttl
        snapshot = copy.deepcopy(value)
        purged = self.local.cleanup()
        if purged:
            logger.debug(f"Cache: purged {purged} expired memory entries")
        self.local.set(key, snapshot, ttl)

        try:
            await self.store.set_with_expiry(key, json.dumps(snapshot, default=str), ttl)
        except Exception as e:
            logger.error(f"Cache: durable write failed for {key}: {e}")


class ResultCache:
    """Scan payloads keyed by trading date."""

    def __init__(self, tiered: TieredCache, ttl_seconds: int = RESULT_TTL_SECONDS):
        self.tiered = tiered
        self.ttl_seconds = ttl_seconds

    @classmethod
    def create(cls, store: KeyValueStore, ttl_seconds: int = RESULT_TTL_SECONDS) -> "ResultCache":
        """Result cache with a single-slot, day-long memory tier in front of ``store``."""
        local = MemoryCache(default_ttl=ttl_seconds, max_entries=1)
        return cls(TieredCache(local, store, ttl_seconds), ttl_seconds)

    @staticmethod
    def key_for(trading_date: date) -> str:
        return f"{RESULT_KEY_PREFIX}:{trading_date.isoformat()}"

    async def get(self, trading_date: date) -> Optional[Dict[str, Any]]:
        return await self.tiered.get(self.key_for(trading_date))

    async def set(self, trading_date: date, payload: Dict[str, Any]) -> None:
        await self.tiered.set(self.key_for(trading_date), payload, self.ttl_seconds)
        logger.info(f"Cache: stored scan result for {trading_date.isoformat()}")
