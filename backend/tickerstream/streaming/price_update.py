"""
PriceUpdate event and reading arithmetic.

Deltas are always relative to the session's own previous reading. The
first reading of a session (no previous value) is its own baseline and
yields a zero delta, so a fresh or reconnected tab never flashes a large
change.
"""
import re
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

_NON_NUMERIC_RE = re.compile(r"[^\d.,-]")


@dataclass(frozen=True)
class PriceUpdate:
    symbol: str
    price: str
    change: str
    change_percent: str
    timestamp: int  # epoch milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def clean_reading(text: str) -> str:
    """Keep only digits, dots, commas and minus signs."""
    return _NON_NUMERIC_RE.sub("", text or "")


def parse_reading(text: str) -> Optional[float]:
    """Parse a raw price reading such as "43,000.12 USD".

    Returns None when the text holds no number.
    """
    cleaned = clean_reading(text).replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def format_signed(value: float, suffix: str = "") -> str:
    # Normalise -0.0 so an unchanged price renders as "+0.00"
    if value == 0:
        value = 0.0
    return f"{value:+.2f}{suffix}"


def compute_change(previous: float, current: float) -> tuple:
    """Return (absolute change, percent change).

    Percent change is zero when the previous value is exactly zero.
    """
    diff = current - previous
    pct = (diff / previous) * 100 if previous != 0 else 0.0
    return diff, pct


def build_price_update(
    symbol: str,
    raw_text: str,
    current: float,
    previous: Optional[float],
    timestamp_ms: Optional[int] = None,
) -> PriceUpdate:
    """Create the event for one reading.

    Args:
        symbol: Canonical symbol
        raw_text: Reading as reported by the page
        current: Parsed value of ``raw_text``
        previous: Session's last value, or None for the first reading
        timestamp_ms: Event time; defaults to now
    """
    baseline = current if previous is None else previous
    diff, pct = compute_change(baseline, current)
    return PriceUpdate(
        symbol=symbol,
        price=clean_reading(raw_text) or raw_text,
        change=format_signed(diff),
        change_percent=format_signed(pct, "%"),
        timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
    )
