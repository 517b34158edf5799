"""
API Clients for the gap scanner.
"""

from gapscanner.clients.finnhub_client import FinnhubClient

__all__ = ["FinnhubClient"]
