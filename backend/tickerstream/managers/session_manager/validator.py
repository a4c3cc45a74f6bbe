"""
Fast ticker validation.

A throwaway probe page decides, within a small time budget, whether a
symbol page shows a live price. Nothing persistent is allocated here: the
probe is closed on every exit path.

Steps (first decisive one wins):
    1. lexical shape check (no I/O)
    2. navigate the probe (failure -> reject)
    3. invalid marker present now -> reject
    4. invalid marker appears within a short window -> reject
    5. price selector present now -> accept
    6. price selector appears within the sprint window -> accept
    7. JSON-LD price on the page -> accept
    8. otherwise reject
"""
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from tickerstream.config import SourceConfig, ValidationConfig
from tickerstream.core.exceptions import ContainerFailureError, InvalidSymbolError
from tickerstream.core.source import INVALID_MARKERS, JSON_LD_PRICE_SCRIPT, PRICE_SELECTORS, source_url
from tickerstream.core.symbols import ensure_valid_symbol, normalize_symbol
from tickerstream.drivers.base import PageDriver
from tickerstream.logger import logger

INVALID_TICKER = "Invalid ticker"

PageFactory = Callable[[], Awaitable[PageDriver]]


@dataclass
class ValidationResult:
    """Outcome of a probe."""
    symbol: str
    accepted: bool
    reason: Optional[str] = None
    evidence: Optional[str] = None
    elapsed_ms: int = 0

    @classmethod
    def accept(cls, symbol: str, evidence: str, elapsed_ms: int = 0) -> "ValidationResult":
        return cls(symbol=symbol, accepted=True, evidence=evidence, elapsed_ms=elapsed_ms)

    @classmethod
    def reject(
        cls, symbol: str, evidence: str, elapsed_ms: int = 0, reason: str = INVALID_TICKER
    ) -> "ValidationResult":
        return cls(symbol=symbol, accepted=False, reason=reason, evidence=evidence, elapsed_ms=elapsed_ms)


async def any_selector_present(page: PageDriver, selectors: Sequence[str]) -> Optional[str]:
    """Return the first selector that matches right now, or None."""
    for selector in selectors:
        if await page.query_selector_present(selector):
            return selector
    return None


class TickerValidator:
    """Bounded-time probe of a symbol's source page."""

    def __init__(
        self,
        page_factory: PageFactory,
        config: ValidationConfig,
        source: SourceConfig,
    ):
        """
        Args:
            page_factory: Opens a fresh probe page. May raise
                ContainerFailureError, which is not a rejection and propagates.
            config: Time budget knobs
            source: Source site settings for URL construction
        """
        self._page_factory = page_factory
        self.config = config
        self.source = source

    async def validate(self, raw_symbol: str) -> ValidationResult:
        symbol = normalize_symbol(raw_symbol)
        try:
            ensure_valid_symbol(symbol)
        except InvalidSymbolError as exc:
            logger.warning(f"Rejecting ticker (basic format failed): {exc}")
            return ValidationResult.reject(symbol, evidence="shape")

        url = source_url(symbol, self.source)
        started = time.monotonic()
        elapsed_ms = lambda: int((time.monotonic() - started) * 1000)  # noqa: E731

        logger.info(f"Fast validate {symbol}: {url}")
        page: Optional[PageDriver] = None
        try:
            page = await self._page_factory()
            result = await self._probe(page, symbol, url, elapsed_ms)
        except ContainerFailureError:
            raise
        except Exception as exc:
            logger.warning(f"Fast validate {symbol}: probe failed: {exc}")
            result = ValidationResult.reject(symbol, evidence="navigation", elapsed_ms=elapsed_ms())
        finally:
            if page is not None:
                try:
                    await page.close()
                except Exception as exc:
                    logger.debug(f"Closing probe for {symbol} failed: {exc}")
                logger.debug(f"Closed validation probe for {symbol}")

        if result.accepted:
            logger.info(f"Fast validate {symbol}: accepted via {result.evidence} in {result.elapsed_ms} ms")
        else:
            logger.warning(f"Fast validate {symbol}: rejected ({result.evidence}) in {result.elapsed_ms} ms")
        return result

    async def _probe(
        self,
        page: PageDriver,
        symbol: str,
        url: str,
        elapsed_ms: Callable[[], int],
    ) -> ValidationResult:
        cfg = self.config

        await page.navigate(url, timeout_ms=cfg.validation_goto_timeout_ms)

        marker = await any_selector_present(page, INVALID_MARKERS)
        if marker:
            logger.debug(f"{symbol}: invalid marker present: {marker}")
            return ValidationResult.reject(symbol, evidence="invalid-marker", elapsed_ms=elapsed_ms())

        if await page.wait_for_selector(INVALID_MARKERS, timeout_ms=cfg.invalid_marker_wait_ms):
            logger.debug(f"{symbol}: invalid marker appeared shortly after load")
            return ValidationResult.reject(symbol, evidence="invalid-marker-late", elapsed_ms=elapsed_ms())

        selector = await any_selector_present(page, PRICE_SELECTORS)
        if selector:
            return ValidationResult.accept(symbol, evidence=f"selector {selector}", elapsed_ms=elapsed_ms())

        remaining = cfg.validation_total_budget_ms - elapsed_ms()
        sprint = min(max(0, remaining), cfg.selector_sprint_wait_ms)
        if sprint > 0 and await page.wait_for_selector(PRICE_SELECTORS, timeout_ms=sprint):
            return ValidationResult.accept(symbol, evidence="selector sprint", elapsed_ms=elapsed_ms())

        price = await page.evaluate(JSON_LD_PRICE_SCRIPT)
        if price is not None:
            return ValidationResult.accept(symbol, evidence="json-ld", elapsed_ms=elapsed_ms())

        return ValidationResult.reject(symbol, evidence="no-price", elapsed_ms=elapsed_ms())
