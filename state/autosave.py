"""Autosave timers for in-progress forms."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import config

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """Run ``save`` on a recurring interval and after debounced changes.

    Timers live on the asyncio loop that is running when :meth:`start` is
    called. Without a running loop nothing is armed and :meth:`request_save`
    saves immediately, which suits hosts that rerun a script per interaction.
    """

    def __init__(
        self,
        save: Callable[[], object],
        *,
        interval: float = config.AUTOSAVE_INTERVAL_SECONDS,
        debounce: float = config.SAVE_DEBOUNCE_SECONDS,
    ) -> None:
        self._save = save
        self.interval = interval
        self.debounce = debounce
        self._loop: asyncio.AbstractEventLoop | None = None
        self._interval_handle: asyncio.TimerHandle | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._loop is not None

    @property
    def has_pending_save(self) -> bool:
        return self._debounce_handle is not None

    def start(self) -> bool:
        """Arm the recurring timer; return ``False`` when no loop is running."""

        if self._loop is not None:
            return True
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; autosave timers stay disarmed")
            return False
        self._arm_interval()
        return True

    def stop(self, *, flush: bool = True) -> None:
        """Cancel all timers and optionally run a final save."""

        self._cancel_interval()
        self._cancel_debounce()
        self._loop = None
        if flush:
            self._run_save("stop")

    def request_save(self) -> None:
        """Schedule a debounced save, restarting the recurring timer."""

        if self._loop is None:
            self._run_save("change")
            return
        self._cancel_debounce()
        self._debounce_handle = self._loop.call_later(self.debounce, self._on_debounce)
        self._arm_interval()

    def flush(self) -> None:
        """Save right away and drop any pending debounced save."""

        self._cancel_debounce()
        self._run_save("flush")

    def _arm_interval(self) -> None:
        self._cancel_interval()
        if self._loop is not None:
            self._interval_handle = self._loop.call_later(self.interval, self._on_interval)

    def _cancel_interval(self) -> None:
        if self._interval_handle is not None:
            self._interval_handle.cancel()
            self._interval_handle = None

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _on_interval(self) -> None:
        self._interval_handle = None
        self._run_save("interval")
        self._arm_interval()

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        self._run_save("debounce")

    def _run_save(self, reason: str) -> None:
        logger.debug("Autosave triggered by %s", reason)
        try:
            self._save()
        except Exception:
            logger.warning("Autosave (%s) failed", reason, exc_info=True)


__all__ = ["AutosaveScheduler"]
