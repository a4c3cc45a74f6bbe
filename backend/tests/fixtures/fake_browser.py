"""In-memory browser for tests

Implements the page-driving contract without a real browser. Each symbol's
page is described by a FakeSite: which markers and price elements exist and
when they appear relative to navigation.

Tests drive readings and failures by hand:
    page.emit_reading("43,000.12")
    page.simulate_external_close()
    container.simulate_disconnect()
    container.simulate_window_close()
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from tickerstream.core.exceptions import ContainerUnavailableError
from tickerstream.core.source import INVALID_MARKERS, JSON_LD_PRICE_SCRIPT, PRICE_SELECTORS, REPORT_CALLBACK_NAME
from tickerstream.drivers.base import BrowserContainer, BrowserLauncher, PageDriver


@dataclass
class FakeSite:
    """What a symbol page looks like.

    Times are milliseconds after navigation; None means never.
    """
    price_after_ms: Optional[int] = 0
    invalid_after_ms: Optional[int] = None
    json_ld_price: Optional[str] = None
    navigate_error: Optional[str] = None
    # Visit number (1-based) from which navigation fails
    fail_from_visit: Optional[int] = None
    # Visit number (1-based) from which the invalid marker is shown at load
    invalid_from_visit: Optional[int] = None
    visits: int = 0


def unknown_site() -> FakeSite:
    """Page shown for a symbol the site does not list."""
    return FakeSite(price_after_ms=None, invalid_after_ms=0)


class FakePage(PageDriver):
    def __init__(self, container: "FakeContainer", page_id: int):
        self.container = container
        self.page_id = page_id
        self.url: Optional[str] = None
        self.site: Optional[FakeSite] = None
        self.visit = 0
        self.callbacks: Dict[str, Callable[..., Any]] = {}
        self.init_scripts: List[str] = []
        self._close_handlers: List[Callable[[], None]] = []
        self._closed = False
        self._loaded_at: Optional[float] = None

    # ---- contract ----

    async def navigate(self, url: str, timeout_ms: Optional[int] = None) -> None:
        if self._closed:
            raise RuntimeError("Target page has been closed")
        self.url = url
        site = self.container.launcher.site_for(url)
        site.visits += 1
        if site.navigate_error:
            raise RuntimeError(site.navigate_error)
        if site.fail_from_visit is not None and site.visits >= site.fail_from_visit:
            raise RuntimeError("net::ERR_CONNECTION_RESET")
        self.site = site
        self.visit = site.visits
        self._loaded_at = asyncio.get_running_loop().time()
        await asyncio.sleep(0)

    async def query_selector_present(self, selector: str) -> bool:
        self._check_open()
        if selector in INVALID_MARKERS:
            return self._visible_now(self._invalid_at())
        if selector in PRICE_SELECTORS:
            return self._visible_now(self._price_at())
        return False

    async def wait_for_selector(self, selectors: Sequence[str], timeout_ms: int) -> bool:
        self._check_open()
        if timeout_ms <= 0:
            return False
        if any(s in INVALID_MARKERS for s in selectors):
            appears_at = self._invalid_at()
        else:
            appears_at = self._price_at()
        wait = self._visible_after(appears_at)
        if wait is None or wait > timeout_ms:
            return False
        await asyncio.sleep(wait / 1000)
        return True

    async def evaluate(self, script: str) -> Any:
        self._check_open()
        if script == JSON_LD_PRICE_SCRIPT and self.site is not None:
            return self.site.json_ld_price
        return None

    async def expose_callback(self, name: str, handler: Callable[..., Any]) -> None:
        self.callbacks[name] = handler

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def on_close(self, handler: Callable[[], None]) -> None:
        self._close_handlers.append(handler)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self._mark_closed()

    # ---- test controls ----

    def emit_reading(self, raw: str) -> None:
        """Deliver a reading as the page observer would."""
        self.callbacks[REPORT_CALLBACK_NAME](raw)

    def simulate_external_close(self) -> None:
        """The tab was closed by something other than the supervisor."""
        self._mark_closed()

    # ---- internals ----

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        for handler in list(self._close_handlers):
            handler()

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Target page has been closed")

    def _invalid_at(self) -> Optional[int]:
        if self.site is None:
            return None
        if self.site.invalid_from_visit is not None and self.visit >= self.site.invalid_from_visit:
            return 0
        return self.site.invalid_after_ms

    def _price_at(self) -> Optional[int]:
        return None if self.site is None else self.site.price_after_ms

    def _elapsed_ms(self) -> float:
        if self._loaded_at is None:
            return 0.0
        return (asyncio.get_running_loop().time() - self._loaded_at) * 1000

    def _visible_after(self, appears_at: Optional[int]) -> Optional[float]:
        """Milliseconds until the element appears, 0 if already there, None if never."""
        if appears_at is None:
            return None
        return max(0.0, appears_at - self._elapsed_ms())

    def _visible_now(self, appears_at: Optional[int]) -> bool:
        return self._visible_after(appears_at) == 0


class FakeContainer(BrowserContainer):
    def __init__(self, launcher: "FakeLauncher"):
        self.launcher = launcher
        self.pages: List[FakePage] = []
        self.connected = True
        self.window_open = True
        self.closed = False
        self.recreate_count = 0
        self._disconnect_handlers: List[Callable[[], None]] = []
        self._window_handlers: List[Callable[[], None]] = []

    async def new_page(self) -> PageDriver:
        if not self.connected or not self.window_open:
            raise RuntimeError("Browser window is not available")
        self.launcher.pages_created += 1
        page = FakePage(self, self.launcher.pages_created)
        self.pages.append(page)
        return page

    def on_disconnected(self, handler: Callable[[], None]) -> None:
        self._disconnect_handlers.append(handler)

    def on_window_close(self, handler: Callable[[], None]) -> None:
        self._window_handlers.append(handler)

    async def recreate_window(self) -> None:
        if not self.connected or self.launcher.fail_recreate:
            raise RuntimeError("Cannot recreate window")
        self.recreate_count += 1
        self.window_open = True

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def close(self) -> None:
        self._window_handlers.clear()
        self.closed = True
        self._close_pages()
        if self.connected:
            self.connected = False
            for handler in list(self._disconnect_handlers):
                handler()

    @property
    def open_pages(self) -> List[FakePage]:
        return [page for page in self.pages if not page.is_closed]

    def simulate_disconnect(self) -> None:
        self.connected = False
        self.window_open = False
        self._close_pages()
        for handler in list(self._disconnect_handlers):
            handler()

    def simulate_window_close(self) -> None:
        self.window_open = False
        self._close_pages()
        for handler in list(self._window_handlers):
            handler()

    def _close_pages(self) -> None:
        for page in list(self.pages):
            page.simulate_external_close()


class FakeLauncher(BrowserLauncher):
    """Hands out FakeContainers; sites are keyed by canonical symbol."""

    def __init__(self, sites: Optional[Dict[str, FakeSite]] = None):
        self.sites: Dict[str, FakeSite] = dict(sites or {})
        self.containers: List[FakeContainer] = []
        self.launch_count = 0
        self.pages_created = 0
        self.fail_launch = False
        self.fail_recreate = False

    async def launch(self) -> BrowserContainer:
        self.launch_count += 1
        if self.fail_launch:
            raise ContainerUnavailableError("Chromium failed to start")
        container = FakeContainer(self)
        self.containers.append(container)
        return container

    def site_for(self, url: str) -> FakeSite:
        for symbol, site in self.sites.items():
            if f"/symbols/{symbol}/" in url:
                return site
        return unknown_site()

    @property
    def container(self) -> FakeContainer:
        """Most recently launched container."""
        return self.containers[-1]

    @property
    def all_pages(self) -> List[FakePage]:
        return [page for container in self.containers for page in container.pages]

    @property
    def open_pages(self) -> List[FakePage]:
        return [page for page in self.all_pages if not page.is_closed]

    def pages_for(self, symbol: str) -> List[FakePage]:
        return [page for page in self.all_pages if page.url and f"/symbols/{symbol}/" in page.url]

    def live_page(self, symbol: str) -> FakePage:
        pages = [page for page in self.pages_for(symbol) if not page.is_closed]
        assert len(pages) == 1, f"expected one open page for {symbol}, found {len(pages)}"
        return pages[0]


@pytest.fixture
def fake_launcher():
    """Launcher with BTCUSDT and ETHUSDT live; anything else is an unknown-symbol page."""
    return FakeLauncher({"BTCUSDT": FakeSite(), "ETHUSDT": FakeSite()})
