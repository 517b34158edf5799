"""
Error types raised by the gap scanner.
"""

from typing import Optional


class GapScannerError(Exception):
    """Base class for gap scanner errors."""


class ConfigurationError(GapScannerError):
    """Required configuration (e.g. the quote provider credential) is missing."""


class QuoteRequestError(GapScannerError):
    """The quote provider answered with a non-success HTTP status."""

    def __init__(self, symbol: str, status: int, detail: Optional[str] = None):
        self.symbol = symbol
        self.status = status
        self.detail = detail
        message = f"{symbol}: HTTP {status}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UniverseError(GapScannerError):
    """The stock universe could not be built."""
