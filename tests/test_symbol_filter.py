"""
Tests for ETF / derivative symbol classification.
"""

import pytest

from gapscanner.symbol_filter import is_excluded_derivative


@pytest.mark.parametrize("symbol", [
    "SPY", "spy", "QQQ", "TQQQ", "UVXY", "GLD",     # ETFs
    "ABC.WS", "ABC.WSA", "ABC.WT", "ABC/WS",        # warrants
    "ABC.U", "ABC.UN",                              # units
    "ABC.R", "ABC.RT",                              # rights
    "ABC+", "ABC^A", "ABC=",                        # special characters
    "BAC.PRA", "BAC.PR", "BAC-PB", "BAC-P",         # preferred
    "BF.B", "MOG.C",                                # dual-class suffix
])
def test_excluded(symbol):
    assert is_excluded_derivative(symbol)


@pytest.mark.parametrize("symbol", [
    "AAPL", "MSFT", "NVDA", "BRK.B", "brk.b", "XOM", "APP", "CARR", "BRK.A", "T",
])
def test_not_excluded(symbol):
    assert not is_excluded_derivative(symbol)
