"""
Price Service

Facade used by the HTTP routes and the CLI. Maps supervisor results to the
small response shapes the frontend expects and exposes the update stream.
"""
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from tickerstream.config import Settings
from tickerstream.drivers.base import BrowserLauncher
from tickerstream.logger import logger
from tickerstream.managers.session_manager import SessionSupervisor
from tickerstream.managers.session_manager.api import BROWSER_UNAVAILABLE
from tickerstream.streaming import PriceBroadcaster, PriceUpdate, UpdatePipeline


@dataclass
class AddSourceResult:
    success: bool
    message: str = ""


@dataclass
class RemoveSourceResult:
    success: bool = True


class PriceService:
    """Add/remove price sources and subscribe to their updates."""

    def __init__(self, supervisor: SessionSupervisor, broadcaster: PriceBroadcaster):
        self.supervisor = supervisor
        self.broadcaster = broadcaster

    async def start(self) -> bool:
        return await self.supervisor.start()

    async def stop(self) -> None:
        await self.supervisor.stop()
        self.broadcaster.close_all()

    async def add_source(self, symbol: str) -> AddSourceResult:
        """Track ``symbol``.

        A symbol that already has a live session is a success with an empty
        message. A rejection carries the supervisor's reason.
        """
        result = await self.supervisor.add(symbol)
        if result.success:
            return AddSourceResult(success=True, message="")
        if result.fatal:
            return AddSourceResult(success=False, message=BROWSER_UNAVAILABLE)
        return AddSourceResult(success=False, message=result.reason or "")

    async def remove_source(self, symbol: str) -> RemoveSourceResult:
        await self.supervisor.remove(symbol)
        return RemoveSourceResult(success=True)

    async def subscribe(self) -> AsyncIterator[PriceUpdate]:
        """Yield every update published after the call, in order.

        The subscription lives exactly as long as the iteration: closing
        or cancelling the generator releases it.
        """
        subscription = self.broadcaster.subscribe()
        try:
            async for update in subscription:
                yield update
        finally:
            subscription.close()

    def list_sources(self) -> List[Dict[str, Any]]:
        return self.supervisor.snapshot()

    def status(self) -> Dict[str, Any]:
        status = self.supervisor.status()
        status["subscribers"] = self.broadcaster.subscriber_count
        status["published"] = self.broadcaster.published
        return status

    @property
    def healthy(self) -> bool:
        """False once the browser could not be relaunched."""
        return self.supervisor.last_fatal_error is None


def build_price_service(settings: Settings, launcher: Optional[BrowserLauncher] = None) -> PriceService:
    """Wire broadcaster, pipeline and supervisor from settings.

    Args:
        settings: Application settings
        launcher: Browser launcher; defaults to Playwright/Chromium
    """
    if launcher is None:
        from tickerstream.drivers.playwright_driver import PlaywrightLauncher
        launcher = PlaywrightLauncher(settings.BROWSER)

    broadcaster = PriceBroadcaster()
    supervisor = SessionSupervisor(
        launcher=launcher,
        pipeline=UpdatePipeline(broadcaster),
        validation=settings.VALIDATION,
        recovery=settings.RECOVERY,
        source=settings.SOURCE,
        browser=settings.BROWSER,
    )
    logger.debug("PriceService wired")
    return PriceService(supervisor, broadcaster)
