"""
PriceBroadcaster - fan-out of price updates to independent subscribers.

Each subscription owns an unbounded FIFO queue. ``publish`` appends the
event to every queue currently registered and returns immediately, so a
slow or idle subscriber never holds back the producer or other
subscribers.

Usage Pattern:
    Producer (session supervisor):
        broadcaster.publish(update)

    Consumer (one per client connection):
        async with broadcaster.subscribe() as subscription:
            async for update in subscription:
                await send(update)

Key Features:
1. Independent ordered view per subscriber (no shared queue)
2. No history: a new subscription only sees events published after it joined
3. Idempotent close: safe from finally blocks and error paths
4. Single event loop: publish and consume run on the same loop
"""

import asyncio
import itertools
from typing import Optional, Set

from tickerstream.logger import logger
from tickerstream.streaming.price_update import PriceUpdate

# Queued on close so a consumer blocked in get() wakes up and stops
_CLOSED = object()


class PriceSubscription:
    """One subscriber's ordered view of the update stream.

    Async iterator over PriceUpdate; iteration never ends on its own
    while the subscription is open. ``close()`` deregisters the
    subscription exactly once; later calls are no-ops.
    """

    def __init__(self, broadcaster: "PriceBroadcaster", subscription_id: int):
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue = asyncio.Queue()
        self.subscription_id = subscription_id
        self._closed = False
        self.delivered = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of queued, not yet consumed updates."""
        return self._queue.qsize()

    def _deliver(self, update: PriceUpdate) -> None:
        if not self._closed:
            self._queue.put_nowait(update)

    async def get(self) -> Optional[PriceUpdate]:
        """Wait for the next update.

        Returns None once the subscription has been closed.
        """
        if self._closed:
            return None
        update = await self._queue.get()
        if update is _CLOSED:
            return None
        self.delivered += 1
        return update

    def get_nowait(self) -> Optional[PriceUpdate]:
        """Return the next queued update, or None if nothing is queued."""
        if self._closed:
            return None
        try:
            update = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if update is _CLOSED:
            return None
        self.delivered += 1
        return update

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._broadcaster._remove(self)

    def __aiter__(self) -> "PriceSubscription":
        return self

    async def __anext__(self) -> PriceUpdate:
        update = await self.get()
        if update is None:
            raise StopAsyncIteration
        return update

    async def __aenter__(self) -> "PriceSubscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"PriceSubscription("
            f"id={self.subscription_id}, "
            f"pending={self.pending}, "
            f"delivered={self.delivered}, "
            f"closed={self._closed}"
            f")"
        )


class PriceBroadcaster:
    """Delivers every published update to every open subscription."""

    def __init__(self):
        self._subscriptions: Set[PriceSubscription] = set()
        self._ids = itertools.count(1)
        self.published = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self) -> PriceSubscription:
        subscription = PriceSubscription(self, next(self._ids))
        self._subscriptions.add(subscription)
        logger.info(
            f"Subscription {subscription.subscription_id} opened "
            f"({self.subscriber_count} active)"
        )
        return subscription

    def _remove(self, subscription: PriceSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.discard(subscription)
            logger.info(
                f"Subscription {subscription.subscription_id} closed "
                f"({self.subscriber_count} active)"
            )

    def publish(self, update: PriceUpdate) -> int:
        """Queue ``update`` for every open subscription.

        Returns:
            Number of subscriptions the update was queued for
        """
        self.published += 1
        # Snapshot: a subscriber closing mid-publish must not break iteration
        targets = list(self._subscriptions)
        for subscription in targets:
            subscription._deliver(update)
        return len(targets)

    def close_all(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()
