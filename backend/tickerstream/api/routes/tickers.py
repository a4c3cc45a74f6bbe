"""
Ticker API Routes
Endpoints for adding, removing and listing tracked tickers
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tickerstream.api.dependencies import get_price_service
from tickerstream.logger import logger
from tickerstream.services.price_service import PriceService

router = APIRouter(prefix="/api/tickers", tags=["Tickers"])


class AddTickerRequest(BaseModel):
    """Ticker to start tracking"""
    symbol: str = Field(..., description="Ticker such as BTCUSDT or btc")


class AddTickerResponse(BaseModel):
    success: bool
    message: str = ""


class RemoveTickerResponse(BaseModel):
    success: bool = True


class TickerInfo(BaseModel):
    """Tracked ticker state"""
    symbol: str
    phase: str
    validated: bool
    last_value: Optional[float] = None
    has_live_handle: bool
    stalled: bool = False
    recovery_attempts: int = 0
    created_at: float
    last_update_at: Optional[float] = None
    last_error: Optional[str] = None


@router.post("", response_model=AddTickerResponse)
async def add_ticker(
    request: AddTickerRequest,
    service: PriceService = Depends(get_price_service),
):
    """
    Start streaming a ticker

    Per-ticker failures are reported in the body, never as HTTP errors.
    """
    logger.info(f"Add ticker requested: {request.symbol!r}")
    result = await service.add_source(request.symbol)
    return AddTickerResponse(success=result.success, message=result.message)


@router.delete("/{symbol}", response_model=RemoveTickerResponse)
async def remove_ticker(symbol: str, service: PriceService = Depends(get_price_service)):
    """Stop streaming a ticker. Always succeeds."""
    logger.info(f"Remove ticker requested: {symbol!r}")
    result = await service.remove_source(symbol)
    return RemoveTickerResponse(success=result.success)


@router.get("", response_model=List[TickerInfo])
async def list_tickers(service: PriceService = Depends(get_price_service)) -> List[Dict[str, Any]]:
    return service.list_sources()
