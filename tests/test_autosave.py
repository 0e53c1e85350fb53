"""Tests for autosave timers."""

from __future__ import annotations

import asyncio
import logging

import pytest

from state.autosave import AutosaveScheduler


class _Counter:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_without_loop_saves_immediately() -> None:
    save = _Counter()
    scheduler = AutosaveScheduler(save, interval=30, debounce=1)

    assert scheduler.start() is False
    scheduler.request_save()

    assert save.calls == 1
    assert not scheduler.running


def test_debounce_coalesces_requests() -> None:
    save = _Counter()

    async def scenario() -> None:
        scheduler = AutosaveScheduler(save, interval=10, debounce=0.02)
        assert scheduler.start() is True
        scheduler.request_save()
        scheduler.request_save()
        scheduler.request_save()
        assert scheduler.has_pending_save
        await asyncio.sleep(0.08)
        assert not scheduler.has_pending_save
        scheduler.stop(flush=False)

    asyncio.run(scenario())

    assert save.calls == 1


def test_interval_saves_repeatedly() -> None:
    save = _Counter()

    async def scenario() -> None:
        scheduler = AutosaveScheduler(save, interval=0.02, debounce=1)
        scheduler.start()
        await asyncio.sleep(0.11)
        scheduler.stop(flush=False)

    asyncio.run(scenario())

    assert save.calls >= 2


def test_stop_flushes_and_cancels_timers() -> None:
    save = _Counter()

    async def scenario() -> None:
        scheduler = AutosaveScheduler(save, interval=0.05, debounce=0.05)
        scheduler.start()
        scheduler.request_save()
        scheduler.stop()
        await asyncio.sleep(0.12)
        assert not scheduler.running

    asyncio.run(scenario())

    assert save.calls == 1


def test_flush_drops_pending_save() -> None:
    save = _Counter()

    async def scenario() -> None:
        scheduler = AutosaveScheduler(save, interval=10, debounce=0.03)
        scheduler.start()
        scheduler.request_save()
        scheduler.flush()
        await asyncio.sleep(0.06)
        scheduler.stop(flush=False)

    asyncio.run(scenario())

    assert save.calls == 1


def test_failing_save_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    def broken() -> None:
        raise RuntimeError("disk full")

    scheduler = AutosaveScheduler(broken, interval=30, debounce=1)

    with caplog.at_level(logging.WARNING):
        scheduler.request_save()

    assert "Autosave (change) failed" in caplog.text
