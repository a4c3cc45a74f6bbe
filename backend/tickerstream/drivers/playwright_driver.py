"""
Playwright (Chromium) implementation of the page-driving contract.

One PlaywrightContainer owns the playwright driver process, one browser
and one browser context (the window). Every ticker page is a tab in that
window.
"""
from contextlib import suppress
from typing import Any, Callable, List, Optional, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from tickerstream.config import BrowserConfig
from tickerstream.core.exceptions import ContainerUnavailableError
from tickerstream.drivers.base import BrowserContainer, BrowserLauncher, PageDriver
from tickerstream.logger import logger


class PlaywrightPage(PageDriver):
    """PageDriver backed by a playwright ``Page``."""

    def __init__(self, page: Page, label: str = "page"):
        self._page = page
        self.label = label
        # Mirror page console to the debug log
        page.on("console", self._on_console)

    def _on_console(self, message: ConsoleMessage) -> None:
        logger.debug(f"[{self.label}] PAGE {message.type.upper()}: {message.text}")

    async def navigate(self, url: str, timeout_ms: Optional[int] = None) -> None:
        if timeout_ms is None:
            await self._page.goto(url, wait_until="domcontentloaded")
        else:
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    async def query_selector_present(self, selector: str) -> bool:
        return await self._page.query_selector(selector) is not None

    async def wait_for_selector(self, selectors: Sequence[str], timeout_ms: int) -> bool:
        if timeout_ms <= 0:
            return False
        try:
            await self._page.wait_for_selector(",".join(selectors), timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def evaluate(self, script: str) -> Any:
        return await self._page.evaluate(script)

    async def expose_callback(self, name: str, handler: Callable[..., Any]) -> None:
        await self._page.expose_function(name, handler)

    async def add_init_script(self, script: str) -> None:
        await self._page.add_init_script(script=script)

    def on_close(self, handler: Callable[[], None]) -> None:
        self._page.on("close", lambda _page: handler())

    @property
    def is_closed(self) -> bool:
        return self._page.is_closed()

    async def close(self) -> None:
        if not self._page.is_closed():
            await self._page.close()


class PlaywrightContainer(BrowserContainer):
    """Browser + single context (window)."""

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        navigation_timeout_ms: Optional[int] = None,
    ):
        self._playwright = playwright
        self._navigation_timeout_ms = navigation_timeout_ms
        self._browser = browser
        self._context = context
        self._window_close_handlers: List[Callable[[], None]] = []
        self._page_count = 0
        self._attach_window(context)

    def _attach_window(self, context: BrowserContext) -> None:
        if self._navigation_timeout_ms:
            context.set_default_navigation_timeout(self._navigation_timeout_ms)
        context.on("close", lambda _ctx: self._fire_window_close(context))

    def _fire_window_close(self, context: BrowserContext) -> None:
        # A replaced context closing late is not a window loss
        if context is not self._context:
            return
        for handler in list(self._window_close_handlers):
            handler()

    async def new_page(self) -> PageDriver:
        page = await self._context.new_page()
        self._page_count += 1
        return PlaywrightPage(page, label=f"tab-{self._page_count}")

    def on_disconnected(self, handler: Callable[[], None]) -> None:
        self._browser.on("disconnected", lambda _browser: handler())

    def on_window_close(self, handler: Callable[[], None]) -> None:
        self._window_close_handlers.append(handler)

    async def recreate_window(self) -> None:
        logger.info("Recreating browser window (context)")
        context = await self._browser.new_context()
        self._context = context
        self._attach_window(context)

    @property
    def is_connected(self) -> bool:
        return self._browser.is_connected()

    async def close(self) -> None:
        # Stop window-close signals from firing during our own teardown
        self._window_close_handlers.clear()
        with suppress(Exception):
            await self._context.close()
        with suppress(Exception):
            await self._browser.close()
        with suppress(Exception):
            await self._playwright.stop()
        logger.info("Browser closed")


class PlaywrightLauncher(BrowserLauncher):
    """Launches Chromium through playwright."""

    def __init__(self, config: BrowserConfig):
        self.config = config

    async def launch(self) -> BrowserContainer:
        logger.info(f"Launching Chromium (headless={self.config.headless})")
        try:
            playwright = await async_playwright().start()
        except Exception as exc:
            raise ContainerUnavailableError(f"Unable to start playwright: {exc}") from exc

        try:
            browser = await playwright.chromium.launch(headless=self.config.headless)
            context = await browser.new_context()
        except Exception as exc:
            with suppress(Exception):
                await playwright.stop()
            raise ContainerUnavailableError(f"Unable to launch Chromium: {exc}") from exc

        logger.success("Browser and window ready")
        return PlaywrightContainer(
            playwright, browser, context, navigation_timeout_ms=self.config.navigation_timeout_ms
        )
