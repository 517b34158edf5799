"""
ETF / derivative symbol classification.

Gap scans target operating companies. Index and leveraged ETFs, warrants,
units, rights and preferred shares move for different reasons and are
excluded before any quote is requested.
"""

import re

# Index / leveraged / commodity ETFs
EXCLUDED_ETFS = frozenset({
    "SPY", "QQQ", "IWM", "VTI", "VOO", "IVV", "VEA", "VWO", "BND", "AGG",
    "GLD", "SLV", "USO", "UNG", "TLT", "IEF", "SHY", "LQD", "HYG", "EMB",
    "VIX", "UVXY", "SVXY", "SQQQ", "TQQQ", "UPRO", "SPXU", "FAZ", "FAS",
})

# Warrant / unit / right suffixes
EXCLUDED_SUFFIXES = (
    ".WS", ".WSA", ".WSB", ".WT", "+", "^", "=", "/WS", "/WT",
    ".U", ".UN", ".R", ".RT",
)

_SPECIAL_CHARS = re.compile(r"[/^+=]")
_PREFERRED = re.compile(r"\.PR[A-Z]?$|-P[A-F]?$")
_DUAL_CLASS = re.compile(r"\.[BC]$")

# Genuine dual-class common stock, not a derivative
DUAL_CLASS_ALLOWED = frozenset({"BRK.B"})


def is_excluded_derivative(symbol: str) -> bool:
    """Return True if the symbol is an ETF, warrant, unit, right or preferred share."""
    upper = symbol.upper()

    if upper in EXCLUDED_ETFS:
        return True
    if upper.endswith(EXCLUDED_SUFFIXES):
        return True
    if _SPECIAL_CHARS.search(upper):
        return True
    if _PREFERRED.search(upper):
        return True
    if _DUAL_CLASS.search(upper) and upper not in DUAL_CLASS_ALLOWED:
        return True
    return False
