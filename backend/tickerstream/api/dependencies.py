"""
Shared route dependencies.
"""
from fastapi import HTTPException, Request, status

from tickerstream.services.price_service import PriceService


def get_price_service(request: Request) -> PriceService:
    """Return the PriceService created by the application lifespan."""
    service = getattr(request.app.state, "price_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Price service not initialized",
        )
    return service
