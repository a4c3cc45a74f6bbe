"""
Page-driving contract.

The session supervisor and the validator depend only on these interfaces.
``drivers.playwright_driver`` implements them on top of a real Chromium
instance; tests use an in-memory fake.

Lifecycle:
    container = await launcher.launch()
    container.on_disconnected(handle_browser_loss)
    container.on_window_close(handle_window_loss)

    page = await container.new_page()
    page.on_close(handle_page_closed)
    await page.expose_callback("__reportPrice", handle_reading)
    await page.navigate(url, timeout_ms=2000)
    ...
    await page.close()
    await container.close()

Signal handlers are plain callables invoked on the event loop thread;
they must not block. Handlers that need to await schedule a task.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence


class PageDriver(ABC):
    """One browser tab."""

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: Optional[int] = None) -> None:
        """Load ``url`` until DOMContentLoaded. Raises on timeout or network error."""

    @abstractmethod
    async def query_selector_present(self, selector: str) -> bool:
        """Return True if ``selector`` matches an element right now."""

    @abstractmethod
    async def wait_for_selector(self, selectors: Sequence[str], timeout_ms: int) -> bool:
        """Wait until any of ``selectors`` matches.

        Returns False when ``timeout_ms`` elapses first.
        """

    @abstractmethod
    async def evaluate(self, script: str) -> Any:
        """Evaluate a script (expression or function source) in page context."""

    @abstractmethod
    async def expose_callback(self, name: str, handler: Callable[..., Any]) -> None:
        """Make ``handler`` callable from page scripts as ``window[name]``."""

    @abstractmethod
    async def add_init_script(self, script: str) -> None:
        """Run ``script`` in every document loaded by this page, before page scripts."""

    @abstractmethod
    def on_close(self, handler: Callable[[], None]) -> None:
        """Register ``handler`` for when the page closes, for whatever reason."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once the page has closed."""

    @abstractmethod
    async def close(self) -> None:
        """Close the page. Closing an already closed page is a no-op."""


class BrowserContainer(ABC):
    """The shared browser instance and its single window."""

    @abstractmethod
    async def new_page(self) -> PageDriver:
        """Open a new tab in the window."""

    @abstractmethod
    def on_disconnected(self, handler: Callable[[], None]) -> None:
        """Register ``handler`` for when the browser process goes away."""

    @abstractmethod
    def on_window_close(self, handler: Callable[[], None]) -> None:
        """Register ``handler`` for when the window (browser context) closes."""

    @abstractmethod
    async def recreate_window(self) -> None:
        """Replace a closed window with a new one in the same browser.

        Window-close handlers registered earlier stay registered.
        Raises if the browser itself is gone.
        """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True while the browser process is reachable."""

    @abstractmethod
    async def close(self) -> None:
        """Close the window and the browser."""


class BrowserLauncher(ABC):
    """Factory for BrowserContainer instances."""

    @abstractmethod
    async def launch(self) -> BrowserContainer:
        """Start a browser and open its window."""
