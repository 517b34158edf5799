"""
Utility modules for the gap scanner.
"""

from gapscanner.utils.logging import setup_logging
from gapscanner.utils.cache import MemoryCache

__all__ = ["setup_logging", "MemoryCache"]
