"""SessionSupervisor Public API

Owns the shared browser container and the per-symbol tracking map.
The service facade and the CLI must go through this interface.

Concurrency:
    Everything runs on one event loop. Each symbol has its own asyncio.Lock,
    so add/remove/reopen are atomic per symbol while different symbols
    proceed in parallel. A separate container lock serializes launching and
    relaunching the browser.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Coroutine, Dict, List, Optional, Set

from tickerstream.config import BrowserConfig, RecoveryConfig, SourceConfig, ValidationConfig
from tickerstream.core.enums import ContainerLossKind, ContainerState
from tickerstream.core.exceptions import (
    ContainerFailureError,
    ContainerUnavailableError,
    InvalidSymbolError,
    TransientSessionLossError,
)
from tickerstream.core.retry import retry_with_backoff
from tickerstream.core.source import (
    INVALID_MARKERS,
    REPORT_CALLBACK_NAME,
    build_observer_script,
    build_title_script,
    source_url,
)
from tickerstream.core.symbols import ensure_valid_symbol, normalize_symbol
from tickerstream.drivers.base import BrowserContainer, BrowserLauncher, PageDriver
from tickerstream.logger import logger
from tickerstream.managers.session_manager.session_state import SessionPhase, SessionState
from tickerstream.managers.session_manager.validator import (
    INVALID_TICKER,
    TickerValidator,
    any_selector_present,
)
from tickerstream.streaming.pipeline import UpdatePipeline

OPEN_FAILED = "Unable to open price stream"
BROWSER_UNAVAILABLE = "Browser not available"


@dataclass
class AddResult:
    """Outcome of ``SessionSupervisor.add``."""
    symbol: str
    success: bool
    reason: Optional[str] = None
    already_tracked: bool = False
    fatal: bool = False  # container failure, not a per-symbol problem


class SessionSupervisor:
    """
    🧭 SessionSupervisor - one persistent page per tracked symbol

    Provides:
    - Add: validate, then open a streaming page (idempotent per symbol)
    - Remove: close and forget a symbol (never fails)
    - Healing: reopen a validated page that closed unexpectedly
    - Container recovery: recreate the window/browser and reopen sessions
    - Status snapshots for the API and CLI
    """

    def __init__(
        self,
        launcher: BrowserLauncher,
        pipeline: UpdatePipeline,
        validation: ValidationConfig,
        recovery: RecoveryConfig,
        source: SourceConfig,
        browser: Optional[BrowserConfig] = None,
    ):
        self._launcher = launcher
        self.pipeline = pipeline
        self.recovery = recovery
        self.source = source
        self.browser = browser or BrowserConfig()
        self.validator = TickerValidator(self._new_page, validation, source)

        self._sessions: Dict[str, SessionState] = {}
        self._symbol_locks: Dict[str, asyncio.Lock] = {}

        self._container: Optional[BrowserContainer] = None
        self._container_lock = asyncio.Lock()
        self.container_state = ContainerState.STOPPED
        self.last_fatal_error: Optional[str] = None
        self._recovering = False

        self._heal_tasks: Dict[str, asyncio.Task] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._stop_lock = asyncio.Lock()
        self._stopped = False

    # ==================== LIFECYCLE ====================

    async def start(self) -> bool:
        """Launch the browser container if it is not running yet.

        Returns:
            True if the container is usable. Launch failures are recorded
            in ``last_fatal_error`` rather than raised.
        """
        self._stopped = False
        try:
            await self._ensure_container()
            return True
        except ContainerFailureError:
            return False

    async def stop(self) -> None:
        """Close every session and the container. Safe to call repeatedly."""
        async with self._stop_lock:
            if self._stopped:
                logger.debug("SessionSupervisor already stopped")
                return
            self._stopped = True

            logger.info(f"Stopping SessionSupervisor ({len(self._sessions)} sessions)")
            for state in self._sessions.values():
                state.intentional_close = True

            tasks = [task for task in self._tasks if not task.done()]
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            self._heal_tasks.clear()

            for state in list(self._sessions.values()):
                handle, state.driver_handle = state.driver_handle, None
                state.transition_to(SessionPhase.CLOSED_INTENTIONAL)
                await self._close_page(handle, state.symbol)
            self._sessions.clear()

            async with self._container_lock:
                container, self._container = self._container, None
                if container is not None:
                    await container.close()
                self.container_state = ContainerState.STOPPED

            logger.success("SessionSupervisor stopped")

    # ==================== PUBLIC OPERATIONS ====================

    async def add(self, raw_symbol: str) -> AddResult:
        """Start tracking a symbol.

        Lexically invalid input is rejected before any I/O. A symbol that
        already has a live page is reported as an idempotent success.
        """
        symbol = normalize_symbol(raw_symbol)
        try:
            ensure_valid_symbol(symbol)
        except InvalidSymbolError as exc:
            logger.warning(f"Add rejected (basic format failed): {exc}")
            return AddResult(symbol=symbol, success=False, reason=INVALID_TICKER)

        async with self._lock_for(symbol):
            state = self._sessions.get(symbol)
            if state is not None and state.has_live_handle:
                logger.info(f"{symbol} already tracked")
                return AddResult(symbol=symbol, success=True, already_tracked=True)

            try:
                result = await self.validator.validate(symbol)
            except ContainerFailureError as exc:
                logger.error(f"Cannot validate {symbol}: {exc}")
                return AddResult(symbol=symbol, success=False, reason=BROWSER_UNAVAILABLE, fatal=True)

            if not result.accepted:
                return AddResult(symbol=symbol, success=False, reason=result.reason)

            # A healing loop for an earlier page must not race the new one
            await self._cancel_heal(symbol)

            state = self._sessions.get(symbol)
            if state is None:
                state = SessionState(symbol=symbol)
                self._sessions[symbol] = state
            state.reset_for_open()
            state.transition_to(SessionPhase.OPENING)

            try:
                await self._open_session(state)
            except ContainerFailureError as exc:
                self._forget(state)
                logger.error(f"Cannot open {symbol}: {exc}")
                return AddResult(symbol=symbol, success=False, reason=BROWSER_UNAVAILABLE, fatal=True)
            except Exception as exc:
                self._forget(state)
                logger.error(f"Failed to open price stream for {symbol}: {exc}")
                return AddResult(symbol=symbol, success=False, reason=OPEN_FAILED)

        # Success even if the page turned out invalid after navigation and
        # the entry is already gone
        return AddResult(symbol=symbol, success=True)

    async def remove(self, raw_symbol: str) -> bool:
        """Stop tracking a symbol.

        Returns:
            True if the symbol was tracked. Removing an unknown symbol is a
            no-op, never an error.
        """
        symbol = normalize_symbol(raw_symbol)
        state = self._sessions.get(symbol)
        if state is None:
            logger.debug(f"Remove {symbol}: not tracked")
            return False

        state.intentional_close = True
        await self._cancel_heal(symbol)

        async with self._lock_for(symbol):
            state = self._sessions.pop(symbol, None)
            if state is None:
                return False
            state.intentional_close = True
            handle, state.driver_handle = state.driver_handle, None
            state.transition_to(SessionPhase.CLOSED_INTENTIONAL)
            await self._close_page(handle, symbol)

        logger.info(f"Removed {symbol}")
        return True

    def has_live_session(self, raw_symbol: str) -> bool:
        state = self._sessions.get(normalize_symbol(raw_symbol))
        return state is not None and state.has_live_handle

    def get_state(self, raw_symbol: str) -> Optional[SessionState]:
        return self._sessions.get(normalize_symbol(raw_symbol))

    @property
    def symbols(self) -> List[str]:
        return sorted(self._sessions)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Per-symbol view for the API and CLI."""
        return [self._sessions[symbol].to_dict() for symbol in sorted(self._sessions)]

    def status(self) -> Dict[str, Any]:
        return {
            "container_state": self.container_state.value,
            "container_connected": bool(self._container and self._container.is_connected),
            "recovering": self._recovering,
            "last_fatal_error": self.last_fatal_error,
            "tracked": len(self._sessions),
            "healing": sorted(s for s, t in self._heal_tasks.items() if not t.done()),
            "sessions": self.snapshot(),
        }

    # ==================== CONTAINER ====================

    async def _ensure_container(self) -> BrowserContainer:
        async with self._container_lock:
            if self._container is not None and self._container.is_connected:
                return self._container
            return await self._launch_locked()

    async def _launch_locked(self) -> BrowserContainer:
        """Launch a new container. Caller holds the container lock."""
        try:
            container = await self._launcher.launch()
        except ContainerFailureError as exc:
            self._mark_failed(exc)
            raise
        except Exception as exc:
            error = ContainerUnavailableError(f"Browser launch failed: {exc}")
            self._mark_failed(error)
            raise error from exc

        container.on_disconnected(
            lambda: self._on_container_lost(ContainerLossKind.BROWSER_DISCONNECTED, container)
        )
        container.on_window_close(
            lambda: self._on_container_lost(ContainerLossKind.WINDOW_CLOSED, container)
        )
        self._container = container
        self.container_state = ContainerState.RUNNING
        self.last_fatal_error = None
        logger.info("Browser container running")
        return container

    def _mark_failed(self, error: Exception) -> None:
        self.container_state = ContainerState.FAILED
        self.last_fatal_error = str(error)
        logger.critical(f"Browser container unavailable: {error}")

    async def _new_page(self) -> PageDriver:
        container = await self._ensure_container()
        try:
            return await container.new_page()
        except ContainerFailureError:
            raise
        except Exception as exc:
            # Connected browser whose window is gone or being replaced
            raise ContainerFailureError(f"Cannot open a page: {exc}") from exc

    def _on_container_lost(self, kind: ContainerLossKind, container: BrowserContainer) -> None:
        if self._stopped or container is not self._container:
            return
        if self._recovering:
            logger.warning(f"Container loss ({kind.value}) ignored: recovery already in progress")
            return
        self._recovering = True
        self.container_state = ContainerState.RECOVERING
        logger.error(f"Browser container lost ({kind.value}); recovering")
        self._spawn(self._recover_container(kind), name=f"container-recovery-{kind.value}")

    async def _recover_container(self, kind: ContainerLossKind) -> None:
        try:
            # Every eligible session is reopened below; per-symbol healing would race it
            heal_tasks = list(self._heal_tasks.values())
            self._heal_tasks.clear()
            for task in heal_tasks:
                task.cancel()
            if heal_tasks:
                await asyncio.gather(*heal_tasks, return_exceptions=True)

            for state in self._sessions.values():
                state.driver_handle = None
                if not state.validated and state.phase is SessionPhase.STREAMING:
                    state.transition_to(SessionPhase.UNVALIDATED)

            try:
                async with self._container_lock:
                    await self._replace_container(kind)
            except ContainerFailureError as exc:
                for state in self._sessions.values():
                    if self._restorable(state):
                        state.transition_to(SessionPhase.ABANDONED)
                        state.last_error = str(exc)
                return

            eligible = [state.symbol for state in self._sessions.values() if self._restorable(state)]
            logger.info(f"Container recovered; reopening {len(eligible)} sessions")
            await asyncio.gather(*(self._restore_symbol(symbol) for symbol in eligible))
        finally:
            self._recovering = False

    async def _replace_container(self, kind: ContainerLossKind) -> None:
        """Recreate the window, or relaunch the browser. Caller holds the container lock."""
        old = self._container
        if kind is ContainerLossKind.WINDOW_CLOSED and old is not None and old.is_connected:
            try:
                await old.recreate_window()
                self.container_state = ContainerState.RUNNING
                logger.info("Browser window recreated")
                return
            except Exception as exc:
                logger.warning(f"Window recreation failed, relaunching browser: {exc}")

        self._container = None
        if old is not None:
            try:
                await old.close()
            except Exception as exc:
                logger.debug(f"Closing lost container failed: {exc}")
        await self._launch_locked()

    async def _restore_symbol(self, symbol: str) -> bool:
        async with self._lock_for(symbol):
            state = self._sessions.get(symbol)
            if state is None or state.intentional_close:
                return False
            if state.has_live_handle:
                return True
            state.transition_to(SessionPhase.OPENING)
            try:
                return await self._open_session(state)
            except Exception as exc:
                logger.error(f"Reopening {symbol} after container recovery failed: {exc}")
                self._start_healing(state, str(exc))
                return False

    # ==================== SESSIONS ====================

    async def _open_session(self, state: SessionState) -> bool:
        """Open, wire and navigate a persistent page for ``state``.

        Caller holds the symbol lock. Raises if the page cannot be opened;
        no page is left behind in that case.

        Returns:
            True when streaming; False if the page showed an invalid marker
            after navigation and the entry was deleted.
        """
        symbol = state.symbol
        page = await self._new_page()
        try:
            page.on_close(lambda: self._on_page_closed(symbol, page))
            await page.expose_callback(
                REPORT_CALLBACK_NAME, lambda raw: self._on_reading(symbol, page, raw)
            )
            await page.add_init_script(build_title_script(symbol))
            await page.add_init_script(build_observer_script())

            state.driver_handle = page
            await page.navigate(source_url(symbol, self.source), timeout_ms=self.browser.navigation_timeout_ms)

            marker = await any_selector_present(page, INVALID_MARKERS)
        except BaseException:
            if state.driver_handle is page:
                state.driver_handle = None
            await self._close_page(page, symbol)
            raise

        if marker:
            logger.warning(f"{symbol}: invalid marker after navigation ({marker}); dropping session")
            state.intentional_close = True
            state.driver_handle = None
            state.transition_to(SessionPhase.CLOSED_INTENTIONAL)
            self._forget(state)
            await self._close_page(page, symbol)
            return False

        state.transition_to(SessionPhase.STREAMING)
        state.last_error = None
        logger.success(f"Streaming {symbol}")
        return True

    def _on_reading(self, symbol: str, page: PageDriver, raw: Any) -> None:
        state = self._sessions.get(symbol)
        if state is None or state.intentional_close or state.driver_handle is not page:
            return
        update = self.pipeline.ingest(state, str(raw))
        if update is None:
            return
        state.last_update_at = time.time()
        if not state.validated:
            state.validated = True
            logger.info(f"{symbol}: first reading {update.price}; session validated")

    def _on_page_closed(self, symbol: str, page: PageDriver) -> None:
        if self._stopped:
            return
        state = self._sessions.get(symbol)
        if state is None or state.intentional_close:
            return
        if state.driver_handle is not page:
            logger.debug(f"{symbol}: close of a stale page ignored")
            return
        if self._recovering:
            return

        state.driver_handle = None
        if not state.validated:
            logger.info(f"{symbol}: page closed before first reading; not recovering")
            state.transition_to(SessionPhase.UNVALIDATED)
            return
        self._start_healing(state, "page closed unexpectedly")

    def _start_healing(self, state: SessionState, reason: str) -> None:
        symbol = state.symbol
        existing = self._heal_tasks.get(symbol)
        if existing is not None and not existing.done():
            return
        state.transition_to(SessionPhase.HEALING)
        state.recovery_attempts = 0
        state.last_error = reason
        logger.warning(f"{symbol}: {reason}; healing")

        task = self._spawn(self._heal(state), name=f"heal-{symbol}")
        self._heal_tasks[symbol] = task

        def _clear(done: asyncio.Task) -> None:
            if self._heal_tasks.get(symbol) is done:
                del self._heal_tasks[symbol]

        task.add_done_callback(_clear)

    async def _heal(self, state: SessionState) -> None:
        symbol = state.symbol

        def should_continue() -> bool:
            return (
                not self._stopped
                and not self._recovering
                and not state.intentional_close
                and self._sessions.get(symbol) is state
            )

        def on_attempt(attempt: int) -> None:
            state.recovery_attempts = attempt

        async def attempt() -> bool:
            async with self._lock_for(symbol):
                if not should_continue():
                    return False
                if state.has_live_handle:
                    return True
                state.transition_to(SessionPhase.OPENING)
                try:
                    return await self._open_session(state)
                except Exception as exc:
                    state.transition_to(SessionPhase.HEALING)
                    state.last_error = f"reopen failed: {exc}"
                    raise TransientSessionLossError(f"{symbol}: reopen failed: {exc}") from exc

        healed = await retry_with_backoff(
            attempt,
            self.recovery.backoff_delays_seconds,
            label=f"Heal {symbol}",
            should_continue=should_continue,
            on_attempt=on_attempt,
        )
        if healed or not should_continue():
            return

        async with self._lock_for(symbol):
            if not should_continue():
                return
            handle, state.driver_handle = state.driver_handle, None
            state.transition_to(SessionPhase.ABANDONED)
            state.last_error = f"gave up after {len(self.recovery.backoff_delays_ms)} attempts"
            logger.error(f"{symbol}: {state.last_error}; session abandoned")
            await self._close_page(handle, symbol)

    async def _cancel_heal(self, symbol: str) -> None:
        task = self._heal_tasks.pop(symbol, None)
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    # ==================== HELPERS ====================

    def _lock_for(self, symbol: str) -> asyncio.Lock:
        lock = self._symbol_locks.get(symbol)
        if lock is None:
            lock = asyncio.Lock()
            self._symbol_locks[symbol] = lock
        return lock

    @staticmethod
    def _restorable(state: SessionState) -> bool:
        return (
            state.validated
            and not state.intentional_close
            and state.phase != SessionPhase.ABANDONED
        )

    def _forget(self, state: SessionState) -> None:
        if self._sessions.get(state.symbol) is state:
            del self._sessions[state.symbol]

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _close_page(self, page: Optional[PageDriver], symbol: str) -> None:
        if page is None:
            return
        try:
            await page.close()
        except Exception as exc:
            logger.debug(f"{symbol}: closing page failed: {exc}")

