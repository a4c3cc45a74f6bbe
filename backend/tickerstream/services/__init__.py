"""Application services."""
from tickerstream.services.price_service import (
    AddSourceResult,
    PriceService,
    RemoveSourceResult,
    build_price_service,
)

__all__ = ["AddSourceResult", "PriceService", "RemoveSourceResult", "build_price_service"]
