"""
Price stream route (Server-Sent Events)
"""
import json
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from tickerstream.api.dependencies import get_price_service
from tickerstream.logger import logger
from tickerstream.services.price_service import PriceService

router = APIRouter(prefix="/api/prices", tags=["Prices"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def price_events(service: PriceService) -> AsyncIterator[str]:
    """One SSE frame per update until the client goes away."""
    updates = service.subscribe()
    try:
        async for update in updates:
            yield format_sse(update.to_dict())
    finally:
        await updates.aclose()
        logger.debug("Price stream client disconnected")


@router.get("/stream")
async def stream_prices(service: PriceService = Depends(get_price_service)):
    """
    Live price updates for every tracked ticker

    Each event is ``data: {"symbol", "price", "change", "change_percent", "timestamp"}``.
    """
    logger.info("Price stream client connected")
    return StreamingResponse(price_events(service), media_type="text/event-stream", headers=SSE_HEADERS)
