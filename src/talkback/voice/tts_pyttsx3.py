"""Text-to-speech engine powered by ``pyttsx3``."""

from __future__ import annotations

import threading


class Pyttsx3SpeechEngine:
    """Blocking speech engine on a local pyttsx3 driver."""

    def __init__(self, *, rate: int | None = None, volume: float | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Voice TTS backend unavailable. Install extras with: pip install 'talkback[voice]'"
            ) from exc

        self._engine = pyttsx3.init()
        self._default_voice = self._engine.getProperty("voice")
        self._lock = threading.Lock()
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            self._engine.setProperty("volume", max(0.0, min(1.0, volume)))

    def available_voices(self) -> list[str]:
        return [voice.id for voice in self._engine.getProperty("voices")]

    def say(self, text: str, voice_id: str | None = None) -> None:
        text = text.strip()
        if not text:
            return
        with self._lock:
            self._engine.setProperty("voice", voice_id or self._default_voice)
            self._engine.say(text)
            self._engine.runAndWait()

    def stop(self) -> None:
        self._engine.stop()
