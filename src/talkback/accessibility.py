"""Screen-reader detection and change notifications."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from typing import Callable, Sequence

KNOWN_SCREEN_READERS: tuple[str, ...] = ("orca", "nvda", "Narrator", "VoiceOver", "jfw")


class ScreenReaderMonitor:
    """Holds the last known screen-reader state and notifies subscribers on change."""

    def __init__(self, *, running: bool = False, logger: logging.Logger | None = None) -> None:
        self._running = running
        self._callbacks: list[Callable[[bool], None]] = []
        self._logger = logger or logging.getLogger("talkback.accessibility")

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def update(self, running: bool) -> None:
        if running == self._running:
            return
        self._running = running
        self._logger.info("screen_reader_changed", extra={"running": running})
        for callback in list(self._callbacks):
            try:
                callback(running)
            except Exception:  # noqa: BLE001 - one bad subscriber must not starve the others.
                self._logger.exception("screen_reader_callback_failed")


class ProcessScreenReaderProbe:
    """Reports whether any known screen-reader process is running, via ``pgrep``."""

    def __init__(self, names: Sequence[str] = KNOWN_SCREEN_READERS) -> None:
        self._names = tuple(names)

    def __call__(self) -> bool:
        for name in self._names:
            try:
                result = subprocess.run(["pgrep", "-x", name], check=False, text=True, capture_output=True)
            except FileNotFoundError:
                return False
            if result.returncode == 0:
                return True
        return False


async def watch_screen_reader(
    monitor: ScreenReaderMonitor,
    probe: Callable[[], bool],
    *,
    interval: float = 2.0,
) -> None:
    """Poll ``probe`` forever, feeding results into ``monitor``. Cancel to stop."""
    while True:
        monitor.update(await asyncio.to_thread(probe))
        await asyncio.sleep(interval)
