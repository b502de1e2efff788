"""In-flight request tracking so callbacks are not cut off mid-transaction on shutdown."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.orchestrator.core.logging import get_logger

logger = get_logger(__name__)

# Probe and scrape endpoints are never tracked
UNTRACKED_PATHS = frozenset({"/health", "/metrics"})


class RequestTracker:
    def __init__(self) -> None:
        self._in_flight = 0
        self._shutting_down = False
        self._lock = asyncio.Lock()
        self._drained = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def track_request(self) -> AsyncGenerator[None]:
        async with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            async with self._lock:
                self._in_flight -= 1
                if self._in_flight == 0 and self._shutting_down:
                    self._drained.set()

    async def start_shutdown(self) -> None:
        self._shutting_down = True
        async with self._lock:
            logger.info("shutdown_started", in_flight=self._in_flight)
            if self._in_flight == 0:
                self._drained.set()

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait for in-flight requests to finish.

        Returns:
            True if all requests completed within timeout
        """
        try:
            await asyncio.wait_for(self._drained.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "shutdown_drain_timeout", timeout_seconds=timeout, in_flight=self._in_flight
            )
            return False
        logger.info("shutdown_drained")
        return True

    def reset(self) -> None:
        """Reset tracker state. For testing only."""
        self._in_flight = 0
        self._shutting_down = False
        self._drained = asyncio.Event()


request_tracker = RequestTracker()
