"""Microphone capture into listen windows."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from array import array
from typing import Callable, Protocol

from .interfaces import SpeechRecognizer

_WAV_HEADER_SIZE = 44


class MicrophoneSource(Protocol):
    """Represents a microphone-backed audio source."""

    def read_chunk(self) -> bytes:
        """Read the next short audio slice (empty when nothing was captured)."""


class CaptureWindow:
    """Transcript buffer for one listen window.

    The capture side calls ``update`` with the latest best-effort transcript
    and ``end`` when input stops early; the consumer reads it with
    ``partial_transcript`` and finishes it with ``close``.
    """

    def __init__(self) -> None:
        self._partial = ""
        self._closed = False
        self._ended = False
        self._close_callbacks: list[Callable[[], None]] = []
        self.error: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ended(self) -> bool:
        return self._ended

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def update(self, transcript: str) -> None:
        if self._closed or self._ended:
            return
        self._partial = transcript.strip()

    def end(self, error: BaseException | None = None) -> None:
        """Mark input finished; the buffered transcript is kept as is."""
        self._ended = True
        if error is not None:
            self.error = error

    def partial_transcript(self) -> str:
        return self._partial

    def close(self, commit: bool) -> str | None:
        if not self._closed:
            self._closed = True
            callbacks, self._close_callbacks = self._close_callbacks, []
            for callback in callbacks:
                callback()
        return self._partial if commit else None


class RecognizerListener:
    """Opens windows that stream microphone slices through a speech recognizer.

    Each window runs two tasks: one records short slices from the microphone,
    the other transcribes them in order and publishes the running transcript.
    Slices must be short (about a second) so that partial results land in the
    window while it is still open.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        microphone: MicrophoneSource,
        *,
        sensitivity_threshold: float = 0.0,
        availability: Callable[[], bool] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._microphone = microphone
        self._sensitivity_threshold = max(0.0, min(1.0, sensitivity_threshold))
        self._availability = availability
        self._logger = logger or logging.getLogger("talkback.voice.input")
        self._read_lock = threading.Lock()

    def is_available(self) -> bool:
        if self._availability is None:
            return True
        try:
            return bool(self._availability())
        except Exception:  # noqa: BLE001 - a failing probe means input is unavailable.
            self._logger.exception("listener_availability_probe_failed")
            return False

    def open(self) -> CaptureWindow:
        window = CaptureWindow()
        loop = asyncio.get_running_loop()
        slices: asyncio.Queue[bytes | None] = asyncio.Queue()
        for task in (
            loop.create_task(self._record(window, slices), name="listen-window-record"),
            loop.create_task(self._transcribe(window, slices), name="listen-window-transcribe"),
        ):
            window.on_close(task.cancel)
        self._logger.info("listen_window_opened")
        return window

    async def _record(self, window: CaptureWindow, slices: asyncio.Queue[bytes | None]) -> None:
        try:
            while not window.closed and not window.ended:
                chunk = await asyncio.to_thread(self._read_chunk)
                if window.closed:
                    return
                if not chunk or self._estimate_signal_level(chunk) < self._sensitivity_threshold:
                    continue
                slices.put_nowait(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - capture errors end the window; the buffer is still committed.
            self._logger.warning("listen_window_input_failed", extra={"error": f"{type(exc).__name__}: {exc}"})
            window.error = exc
            # Slices already queued are still transcribed before the window ends.
            slices.put_nowait(None)

    async def _transcribe(self, window: CaptureWindow, slices: asyncio.Queue[bytes | None]) -> None:
        heard: list[str] = []
        try:
            while not window.closed:
                chunk = await slices.get()
                if chunk is None:
                    window.end(window.error)
                    return
                text = (await asyncio.to_thread(self._recognizer.transcribe, chunk)).strip()
                if text:
                    heard.append(text)
                    window.update(" ".join(heard))
                    self._logger.debug("listen_window_partial", extra={"transcript": window.partial_transcript()})
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - recognizer errors end the window; the buffer is still committed.
            self._logger.warning("listen_window_recognition_failed", extra={"error": f"{type(exc).__name__}: {exc}"})
            window.end(exc)

    def _read_chunk(self) -> bytes:
        # A read cut short by close() finishes in its thread and keeps the lock for at most one slice.
        with self._read_lock:
            return self._microphone.read_chunk()

    @staticmethod
    def _estimate_signal_level(audio_bytes: bytes) -> float:
        """Estimate normalized mean amplitude of 16-bit little-endian PCM.

        A leading WAV header is skipped, so ``sensitivity_threshold`` compares
        against actual sample magnitudes for microphone WAV slices.
        """
        if audio_bytes[:4] == b"RIFF":
            audio_bytes = audio_bytes[_WAV_HEADER_SIZE:]
        usable = len(audio_bytes) - len(audio_bytes) % 2
        if not usable:
            return 0.0

        samples = array("h", audio_bytes[:usable])
        if sys.byteorder == "big":
            samples.byteswap()
        return sum(abs(sample) for sample in samples) / (len(samples) * 32768)
