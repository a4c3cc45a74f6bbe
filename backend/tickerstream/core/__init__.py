"""
Core primitives: exceptions, enums, symbol rules, source-site knowledge.
"""
from tickerstream.core.enums import ContainerState, ContainerLossKind
from tickerstream.core.exceptions import (
    TickerStreamError,
    InvalidSymbolError,
    TransientSessionLossError,
    ContainerFailureError,
    ContainerUnavailableError,
)
from tickerstream.core.symbols import normalize_symbol, is_valid_symbol, ensure_valid_symbol

__all__ = [
    "ContainerState",
    "ContainerLossKind",
    "TickerStreamError",
    "InvalidSymbolError",
    "TransientSessionLossError",
    "ContainerFailureError",
    "ContainerUnavailableError",
    "normalize_symbol",
    "is_valid_symbol",
    "ensure_valid_symbol",
]
