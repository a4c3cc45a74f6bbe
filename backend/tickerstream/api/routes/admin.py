"""
Admin API routes for runtime management
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from tickerstream.api.dependencies import get_price_service
from tickerstream.config import settings
from tickerstream.logger import logger, logger_manager
from tickerstream.services.price_service import PriceService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


class LogLevelRequest(BaseModel):
    """Request model for changing log level"""
    level: str = Field(..., description="Log level: TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL")


class LogLevelResponse(BaseModel):
    """Response model for log level operations"""
    success: bool
    level: str
    available_levels: list[str]
    message: str


class SystemStatusResponse(BaseModel):
    """Backend and browser status"""
    app_name: str
    version: str
    status: str
    uptime_seconds: float
    log_level: str
    container_state: str
    last_fatal_error: Optional[str] = None
    tracked: int
    healing: List[str]
    subscribers: int
    published: int
    sessions: List[Dict[str, Any]]
    timestamp: datetime


_app_start_time = datetime.now()


@router.post("/log-level", response_model=LogLevelResponse)
async def set_log_level(request: LogLevelRequest):
    """
    Change application log level at runtime

    Raises:
        HTTPException: If invalid log level provided
    """
    try:
        new_level = logger_manager.set_level(request.level)
    except ValueError as e:
        logger.error(f"Invalid log level requested: {request.level}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.success(f"Log level changed to: {new_level} via API")
    return LogLevelResponse(
        success=True,
        level=new_level,
        available_levels=logger_manager.get_available_levels(),
        message=f"Log level successfully changed to {new_level}"
    )


@router.get("/log-level", response_model=LogLevelResponse)
async def get_log_level():
    current_level = logger_manager.get_level()
    logger.debug("Log level queried via API")
    return LogLevelResponse(
        success=True,
        level=current_level,
        available_levels=logger_manager.get_available_levels(),
        message=f"Current log level is {current_level}"
    )


@router.get("/status", response_model=SystemStatusResponse)
async def get_system_status(service: PriceService = Depends(get_price_service)):
    """
    Supervisor, browser and subscriber status
    """
    uptime = (datetime.now() - _app_start_time).total_seconds()
    status = service.status()
    logger.debug("System status queried via API")

    return SystemStatusResponse(
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        status="running" if service.healthy else "degraded",
        uptime_seconds=uptime,
        log_level=logger_manager.get_level(),
        container_state=status["container_state"],
        last_fatal_error=status["last_fatal_error"],
        tracked=status["tracked"],
        healing=status["healing"],
        subscribers=status["subscribers"],
        published=status["published"],
        sessions=status["sessions"],
        timestamp=datetime.now()
    )
