"""Tests for in-flight request draining on shutdown."""

import asyncio
import contextlib

import pytest

from src.orchestrator.core.shutdown import RequestTracker

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


class TestRequestTracker:
    async def test_request_tracking(self):
        tracker = RequestTracker()

        async with tracker.track_request():
            assert tracker.in_flight_count == 1

        assert tracker.in_flight_count == 0
        assert not tracker.is_shutting_down

    async def test_shutdown_with_no_requests_drains_immediately(self):
        tracker = RequestTracker()

        await tracker.start_shutdown()

        assert tracker.is_shutting_down
        assert await tracker.wait_for_drain(timeout=1.0) is True

    async def test_shutdown_waits_for_in_flight_callback(self):
        """A callback mid-transaction is allowed to finish before the pool closes."""
        tracker = RequestTracker()
        started = asyncio.Event()
        release = asyncio.Event()

        async def callback_request():
            async with tracker.track_request():
                started.set()
                await release.wait()

        task = asyncio.create_task(callback_request())
        await started.wait()

        await tracker.start_shutdown()
        drain = asyncio.create_task(tracker.wait_for_drain(timeout=1.0))
        await asyncio.sleep(0)
        assert not drain.done()

        release.set()
        assert await drain is True
        assert tracker.in_flight_count == 0
        await task

    async def test_shutdown_timeout(self):
        tracker = RequestTracker()
        started = asyncio.Event()

        async def stuck_request():
            async with tracker.track_request():
                started.set()
                await asyncio.sleep(5.0)

        task = asyncio.create_task(stuck_request())
        await started.wait()

        await tracker.start_shutdown()
        assert await tracker.wait_for_drain(timeout=0.1) is False
        assert tracker.in_flight_count == 1

        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def test_reset(self):
        tracker = RequestTracker()
        await tracker.start_shutdown()

        tracker.reset()

        assert not tracker.is_shutting_down
        assert tracker.in_flight_count == 0
