"""
Update distribution pipeline: raw page reading -> PriceUpdate -> subscribers.
"""
import math
from typing import TYPE_CHECKING, Optional

from tickerstream.logger import logger
from tickerstream.streaming.broadcaster import PriceBroadcaster
from tickerstream.streaming.price_update import PriceUpdate, build_price_update, parse_reading

if TYPE_CHECKING:
    from tickerstream.managers.session_manager.session_state import SessionState


class UpdatePipeline:
    """Turns numeric readings from sessions into broadcast PriceUpdates."""

    def __init__(self, broadcaster: PriceBroadcaster):
        self.broadcaster = broadcaster

    def ingest(self, state: "SessionState", raw_text: str) -> Optional[PriceUpdate]:
        """Process one reading for ``state.symbol``.

        Non-numeric readings are dropped. For numeric ones the delta is
        computed against ``state.last_value``, ``last_value`` is advanced
        and the update is published to every subscriber.

        Returns:
            The published update, or None if the reading was not numeric
        """
        current = parse_reading(raw_text)
        if current is None or not math.isfinite(current):
            logger.debug(f"[{state.symbol}] ignoring non-numeric reading {raw_text!r}")
            return None

        update = build_price_update(state.symbol, raw_text, current, state.last_value)
        state.last_value = current
        delivered = self.broadcaster.publish(update)
        logger.debug(
            f"[{state.symbol}] {update.price} {update.change} ({update.change_percent}) "
            f"-> {delivered} subscribers"
        )
        return update
