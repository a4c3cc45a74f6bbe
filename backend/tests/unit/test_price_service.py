"""Unit Tests for PriceService facade mapping"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tickerstream.managers.session_manager.api import AddResult, BROWSER_UNAVAILABLE
from tickerstream.services.price_service import PriceService, build_price_service
from tickerstream.config import settings
from tickerstream.streaming import PriceBroadcaster
from tickerstream.streaming.price_update import PriceUpdate
from tests.fixtures.fake_browser import FakeLauncher, FakeSite


def make_service(add_result=None):
    supervisor = MagicMock()
    supervisor.add = AsyncMock(return_value=add_result)
    supervisor.remove = AsyncMock(return_value=False)
    supervisor.start = AsyncMock(return_value=True)
    supervisor.stop = AsyncMock()
    supervisor.last_fatal_error = None
    return PriceService(supervisor, PriceBroadcaster())


class TestAddSource:

    @pytest.mark.asyncio
    async def test_success_has_empty_message(self):
        service = make_service(AddResult(symbol="BTCUSDT", success=True))
        result = await service.add_source("btc")
        assert result.success is True
        assert result.message == ""

    @pytest.mark.asyncio
    async def test_duplicate_is_success(self):
        service = make_service(AddResult(symbol="BTCUSDT", success=True, already_tracked=True))
        result = await service.add_source("BTCUSDT")
        assert (result.success, result.message) == (True, "")

    @pytest.mark.asyncio
    async def test_rejection_maps_reason(self):
        service = make_service(AddResult(symbol="XYZUSDT", success=False, reason="Invalid ticker"))
        result = await service.add_source("xyz")
        assert (result.success, result.message) == (False, "Invalid ticker")

    @pytest.mark.asyncio
    async def test_container_failure(self):
        service = make_service(AddResult(symbol="BTCUSDT", success=False, reason="boom", fatal=True))
        result = await service.add_source("BTCUSDT")
        assert (result.success, result.message) == (False, BROWSER_UNAVAILABLE)


class TestRemoveSource:

    @pytest.mark.asyncio
    async def test_always_succeeds(self):
        service = make_service()
        result = await service.remove_source("NOPEUSDT")
        assert result.success is True
        service.supervisor.remove.assert_awaited_once_with("NOPEUSDT")


class TestSubscribe:

    @pytest.mark.asyncio
    async def test_stream_yields_updates_and_releases_on_close(self):
        service = make_service()
        stream = service.subscribe()
        async def first():
            return await stream.__anext__()

        next_update = asyncio.create_task(first())
        await asyncio.sleep(0)
        assert service.broadcaster.subscriber_count == 1

        service.broadcaster.publish(PriceUpdate("BTCUSDT", "1", "+0.00", "+0.00%", 1))
        update = await asyncio.wait_for(next_update, timeout=1)
        assert update.symbol == "BTCUSDT"

        await stream.aclose()
        assert service.broadcaster.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_cancelled_consumer_releases_subscription(self):
        service = make_service()

        async def consume():
            async for _ in service.subscribe():
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        assert service.broadcaster.subscriber_count == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert service.broadcaster.subscriber_count == 0


class TestWiring:

    @pytest.mark.asyncio
    async def test_build_with_fake_launcher(self):
        launcher = FakeLauncher({"BTCUSDT": FakeSite()})
        service = build_price_service(settings, launcher=launcher)
        try:
            assert await service.start() is True
            assert service.healthy
            status = service.status()
            assert status["container_state"] == "running"
            assert status["subscribers"] == 0
        finally:
            await service.stop()
        assert launcher.container.closed
