"""
Gap Scanner - pre-market and intraday gap detection across a large equity universe.

Scans thousands of US tickers against their previous close under a strict
provider rate limit, and caches each trading day's result.
"""

__version__ = "1.0.0"

from gapscanner.config import Settings
from gapscanner.orchestrator import ScanOrchestrator

__all__ = ["ScanOrchestrator", "Settings", "__version__"]
