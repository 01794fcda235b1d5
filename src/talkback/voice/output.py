"""Text-to-speech output with a single-shot completion future per line."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial

from talkback.audio import SessionOptions
from talkback.dialogue.script import VoiceTag

from .interfaces import ScreenReaderEvents, SpeechEngine


@dataclass(slots=True)
class SpeechOutputConfig:
    """Configurable controls for spoken lines and how they share the audio channel."""

    enabled: bool = True
    max_chars: int = 500
    mix_with_others: bool = False
    duck_others: bool = True
    voice_ids: dict[VoiceTag, str | None] = field(default_factory=dict)

    def voice_for(self, voice_tag: VoiceTag | None) -> str | None:
        if voice_tag is None:
            return None
        return self.voice_ids.get(voice_tag)

    def session_options(self) -> SessionOptions:
        return SessionOptions(mix_with_others=self.mix_with_others, duck_others=self.duck_others)


class SynthesizerSpeaker:
    """Speaks lines on a blocking engine without blocking the event loop.

    Each ``speak`` call returns a future that resolves exactly once. Engine
    failures are logged and reported as completion so a dialogue never hangs
    on a broken line. Lines are skipped while a screen reader is running.
    """

    def __init__(
        self,
        engine: SpeechEngine,
        config: SpeechOutputConfig | None = None,
        *,
        screen_reader: ScreenReaderEvents | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or SpeechOutputConfig()
        self._screen_reader = screen_reader
        self._logger = logger or logging.getLogger("talkback.voice.output")

    @property
    def config(self) -> SpeechOutputConfig:
        return self._config

    def speak(self, text: str, voice_tag: VoiceTag | None = None) -> asyncio.Future[None]:
        loop = asyncio.get_running_loop()
        completion: asyncio.Future[None] = loop.create_future()

        normalized = " ".join(text.split())[: self._config.max_chars]
        if not self._config.enabled or not normalized:
            completion.set_result(None)
            return completion

        if self._screen_reader is not None and self._screen_reader.is_running:
            self._logger.info("speech_skipped_screen_reader", extra={"text": normalized})
            completion.set_result(None)
            return completion

        voice_id = self._config.voice_for(voice_tag)
        self._logger.info("speech_started", extra={"text": normalized, "voice_id": voice_id})
        playback = loop.run_in_executor(None, self._engine.say, normalized, voice_id)
        playback.add_done_callback(partial(self._complete, completion, normalized))
        return completion

    def stop(self) -> None:
        try:
            self._engine.stop()
        except Exception:  # noqa: BLE001 - stopping must never raise during teardown.
            self._logger.exception("speech_stop_failed")

    def _complete(self, completion: asyncio.Future[None], text: str, playback: asyncio.Future[None]) -> None:
        if completion.done():
            return
        if not playback.cancelled() and playback.exception() is not None:
            self._logger.error("speech_failed", exc_info=playback.exception(), extra={"text": text})
        else:
            self._logger.info("speech_finished", extra={"text": text})
        completion.set_result(None)
