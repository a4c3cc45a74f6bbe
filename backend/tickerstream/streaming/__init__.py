"""
Update distribution: PriceUpdate events, per-subscriber fan-out, reading ingestion.
"""
from tickerstream.streaming.price_update import PriceUpdate, build_price_update, parse_reading
from tickerstream.streaming.broadcaster import PriceBroadcaster, PriceSubscription
from tickerstream.streaming.pipeline import UpdatePipeline

__all__ = [
    "PriceUpdate",
    "build_price_update",
    "parse_reading",
    "PriceBroadcaster",
    "PriceSubscription",
    "UpdatePipeline",
]
