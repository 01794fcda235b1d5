"""In-memory speech collaborators for dry runs and tests."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Iterable

from talkback.dialogue.script import VoiceTag

from .input import CaptureWindow


class ScriptedSpeaker:
    """Pretends to speak: each line completes after a fixed delay."""

    def __init__(self, *, duration: float = 0.0, logger: logging.Logger | None = None) -> None:
        self.duration = duration
        self.spoken: list[tuple[str, VoiceTag | None]] = []
        self.stopped = 0
        self._pending: dict[asyncio.Future[None], asyncio.TimerHandle] = {}
        self._logger = logger or logging.getLogger("talkback.voice.mock")

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.spoken]

    @property
    def pending(self) -> int:
        return len(self._pending)

    def speak(self, text: str, voice_tag: VoiceTag | None = None) -> asyncio.Future[None]:
        loop = asyncio.get_running_loop()
        completion: asyncio.Future[None] = loop.create_future()
        self.spoken.append((text, voice_tag))
        self._logger.info("mock_speech", extra={"text": text, "voice_tag": voice_tag.value if voice_tag else None})
        self._pending[completion] = loop.call_later(self.duration, _resolve, completion)
        completion.add_done_callback(self._forget)
        return completion

    def stop(self) -> None:
        self.stopped += 1
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()

    def _forget(self, completion: asyncio.Future[None]) -> None:
        self._pending.pop(completion, None)


class ScriptedListener:
    """Hands out windows that "hear" pre-recorded transcripts, one per window.

    ``None`` entries (or running out of entries) produce windows that hear
    nothing.
    """

    def __init__(
        self,
        transcripts: Iterable[str | None] = (),
        *,
        delay: float = 0.0,
        available: bool = True,
    ) -> None:
        self._transcripts: deque[str | None] = deque(transcripts)
        self.delay = delay
        self.available = available
        self.windows: list[CaptureWindow] = []

    def is_available(self) -> bool:
        return self.available

    def open(self) -> CaptureWindow:
        window = CaptureWindow()
        self.windows.append(window)
        transcript = self._transcripts.popleft() if self._transcripts else None
        if transcript is not None:
            handle = asyncio.get_running_loop().call_later(self.delay, window.update, transcript)
            window.on_close(handle.cancel)
        return window


def _resolve(completion: asyncio.Future[None]) -> None:
    if not completion.done():
        completion.set_result(None)
