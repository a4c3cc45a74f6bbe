"""
Ticker symbol normalization.

Users type symbols loosely ("btc", " ethusd "). Tracking keys are always
the canonical form: trimmed, upper case, with a quote-asset suffix.
A bare base asset gets the default quote asset appended.

    >>> normalize_symbol(" btc ")
    'BTCUSDT'
    >>> normalize_symbol("ethusd")
    'ETHUSD'
"""
import re
from typing import Tuple

from tickerstream.core.exceptions import InvalidSymbolError

DEFAULT_QUOTE_ASSET = "USDT"
# Longest suffix first so "BTCUSDT" splits as BTC + USDT
QUOTE_ASSET_SUFFIXES = ("USDT", "USD")

# Whole canonical symbol; the alternation backtracks, so "OPUSDT" and "BUSD" pass
_SYMBOL_RE = re.compile(r"[A-Z0-9]{3,15}(USDT|USD)?")


def split_symbol(symbol: str) -> Tuple[str, str]:
    """Split a canonical symbol into (base asset, quote suffix)."""
    for suffix in QUOTE_ASSET_SUFFIXES:
        if symbol.endswith(suffix):
            return symbol[: -len(suffix)], suffix
    return symbol, ""


def normalize_symbol(raw: str) -> str:
    """Return the canonical tracking key for ``raw``."""
    symbol = (raw or "").strip().upper()
    if not symbol:
        return symbol
    _, suffix = split_symbol(symbol)
    if suffix:
        return symbol
    return f"{symbol}{DEFAULT_QUOTE_ASSET}"


def is_valid_symbol(symbol: str) -> bool:
    """Lexical shape check on a canonical symbol.

    3-15 letters or digits, optionally followed by a recognized quote
    suffix. Case-insensitive; no I/O.
    """
    return _SYMBOL_RE.fullmatch((symbol or "").strip().upper()) is not None


def ensure_valid_symbol(symbol: str) -> str:
    """Return ``symbol`` unchanged, or raise InvalidSymbolError."""
    if not is_valid_symbol(symbol):
        raise InvalidSymbolError(symbol)
    return symbol
