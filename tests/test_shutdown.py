from __future__ import annotations

import asyncio
import threading
import time

import pytest

from company_registry.core.errors import ShutdownTimeoutError
from company_registry.core.shutdown import ShutdownCoordinator, ShutdownState


def test_running_admits_and_counts():
    coordinator = ShutdownCoordinator()
    assert coordinator.state is ShutdownState.RUNNING
    assert coordinator.try_enter()
    assert coordinator.try_enter()
    assert coordinator.in_flight == 2
    coordinator.leave()
    coordinator.leave()
    assert coordinator.in_flight == 0


def test_draining_rejects_without_counting():
    coordinator = ShutdownCoordinator()
    coordinator.begin_drain()
    assert coordinator.draining
    assert not coordinator.try_enter()
    assert coordinator.in_flight == 0


def test_draining_is_terminal():
    coordinator = ShutdownCoordinator()
    coordinator.begin_drain()
    coordinator.begin_drain()
    assert coordinator.state is ShutdownState.DRAINING
    assert not coordinator.try_enter()


def test_leave_without_enter_is_an_error():
    with pytest.raises(RuntimeError):
        ShutdownCoordinator().leave()


def test_drain_returns_immediately_when_idle():
    coordinator = ShutdownCoordinator()
    start = time.monotonic()
    coordinator.drain(timeout=5)
    assert time.monotonic() - start < 1


def test_drain_waits_for_in_flight_requests():
    coordinator = ShutdownCoordinator()
    assert coordinator.try_enter()

    def finish_later():
        time.sleep(0.2)
        coordinator.leave()

    worker = threading.Thread(target=finish_later)
    worker.start()
    coordinator.drain(timeout=5)
    worker.join()
    assert coordinator.in_flight == 0


def test_drain_times_out():
    coordinator = ShutdownCoordinator()
    assert coordinator.try_enter()
    with pytest.raises(ShutdownTimeoutError):
        coordinator.drain(timeout=0.1)
    coordinator.leave()


def test_drain_async_waits_for_in_flight_requests():
    coordinator = ShutdownCoordinator()
    assert coordinator.try_enter()
    threading.Timer(0.2, coordinator.leave).start()
    assert asyncio.run(coordinator.drain_async(timeout=5)) is True
    assert coordinator.in_flight == 0


def test_drain_async_times_out():
    coordinator = ShutdownCoordinator()
    assert coordinator.try_enter()
    with pytest.raises(ShutdownTimeoutError):
        asyncio.run(coordinator.drain_async(timeout=0.2))
    coordinator.leave()


def test_drain_async_can_be_abandoned():
    coordinator = ShutdownCoordinator()
    assert coordinator.try_enter()
    abandoned = threading.Event()
    threading.Timer(0.2, abandoned.set).start()
    start = time.monotonic()
    assert asyncio.run(coordinator.drain_async(timeout=30, abandon=abandoned.is_set)) is False
    assert time.monotonic() - start < 5
    assert coordinator.draining
    coordinator.leave()


def test_no_request_admitted_after_drain_begins():
    coordinator = ShutdownCoordinator()
    admitted_before = []
    admitted_after = []
    lock = threading.Lock()
    drain_started = threading.Event()
    stop = threading.Event()

    def worker():
        while not stop.is_set():
            started_after_drain = drain_started.is_set()
            if coordinator.try_enter():
                with lock:
                    (admitted_after if started_after_drain else admitted_before).append(1)
                coordinator.leave()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    time.sleep(0.05)
    coordinator.begin_drain()
    drain_started.set()
    assert coordinator.wait_for_drain(timeout=5)
    time.sleep(0.05)
    stop.set()
    for thread in threads:
        thread.join()

    assert admitted_before
    assert not admitted_after
    assert coordinator.in_flight == 0
