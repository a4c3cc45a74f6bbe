"""
Custom exceptions for the ticker streaming backend.

All custom exceptions are defined here for easy discovery and consistent
error handling throughout the application.

Per-symbol failures (invalid input, rejected validation, lost sessions)
are normally converted into results by the session supervisor and never
reach API callers. Container failures affect every tracked symbol at once
and are reported separately.
"""


class TickerStreamError(Exception):
    """Base exception for all ticker streaming errors."""
    pass


class InvalidSymbolError(TickerStreamError):
    """Raised when a symbol fails the lexical shape check (no I/O performed)."""

    def __init__(self, symbol: str, message: str = "Invalid ticker"):
        super().__init__(f"{message}: {symbol!r}")
        self.symbol = symbol
        self.message = message


class TransientSessionLossError(TickerStreamError):
    """A validated session closed unexpectedly and is being recovered."""
    pass


class ContainerFailureError(TickerStreamError):
    """The browser or its window became unusable."""
    pass


class ContainerUnavailableError(ContainerFailureError):
    """The browser could not be launched at all."""
    pass
