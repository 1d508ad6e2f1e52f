"""Graceful shutdown coordination.

The coordinator counts in-flight requests and, once draining starts, refuses
to admit new ones. Admission and the state check happen under the same lock,
so no request is counted after ``begin_drain`` returns.
"""
import asyncio
import enum
import logging
import threading
import time
from typing import Callable, Optional

from .errors import ShutdownTimeoutError


logger = logging.getLogger(__name__)

DRAIN_POLL_SECONDS = 0.1


class ShutdownState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"


class ShutdownCoordinator:
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._state = ShutdownState.RUNNING
        self._in_flight = 0

    @property
    def state(self) -> ShutdownState:
        with self._cond:
            return self._state

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight

    @property
    def draining(self) -> bool:
        return self.state is ShutdownState.DRAINING

    def try_enter(self) -> bool:
        """Admit a request. Returns False once draining has started."""
        with self._cond:
            if self._state is ShutdownState.DRAINING:
                return False
            self._in_flight += 1
            return True

    def leave(self) -> None:
        with self._cond:
            if self._in_flight <= 0:
                raise RuntimeError("leave() called without a matching try_enter()")
            self._in_flight -= 1
            if self._in_flight == 0:
                self._cond.notify_all()

    def begin_drain(self) -> None:
        with self._cond:
            if self._state is ShutdownState.DRAINING:
                return
            self._state = ShutdownState.DRAINING
            in_flight = self._in_flight
        logger.warning(f"Draining started with {in_flight} request(s) in flight")

    def wait_for_drain(self, timeout: Optional[float] = None) -> bool:
        """Block until no requests are in flight. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def drain(self, timeout: float) -> None:
        self.begin_drain()
        if not self.wait_for_drain(timeout):
            raise ShutdownTimeoutError(
                f"{self.in_flight} request(s) still in flight after {timeout:.0f}s"
            )
        logger.warning("All in-flight requests drained")

    async def drain_async(
        self,
        timeout: float,
        abandon: Optional[Callable[[], bool]] = None,
        poll_interval: float = DRAIN_POLL_SECONDS,
    ) -> bool:
        """Drain without blocking the event loop.

        Waits in short slices so no worker thread outlives the call, and
        gives up as soon as ``abandon()`` returns True. Returns False when
        abandoned; raises ``ShutdownTimeoutError`` like ``drain``.
        """
        self.begin_drain()
        deadline = time.monotonic() + timeout
        while True:
            if abandon is not None and abandon():
                logger.warning(f"Drain abandoned with {self.in_flight} request(s) in flight")
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ShutdownTimeoutError(
                    f"{self.in_flight} request(s) still in flight after {timeout:.0f}s"
                )
            if await asyncio.to_thread(self.wait_for_drain, min(poll_interval, remaining)):
                logger.warning("All in-flight requests drained")
                return True
