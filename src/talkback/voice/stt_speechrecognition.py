"""Speech-to-text backend powered by ``speech_recognition``."""

from __future__ import annotations

import io
import re
from dataclasses import dataclass

from talkback.errors import TransientCollaboratorError

_LOCALE_RE = re.compile(r"^[a-zA-Z]{2,3}(?:-[a-zA-Z0-9]{2,8})*$")


def _import_speech_recognition():
    try:
        import speech_recognition as sr
    except ImportError as exc:  # pragma: no cover - import guard
        raise RuntimeError(
            "Voice STT backend unavailable. Install extras with: pip install 'talkback[voice]'"
        ) from exc
    return sr


@dataclass
class SpeechRecognitionRecognizer:
    """Turn captured WAV audio into text with the Google web recognizer."""

    language: str = "en-US"

    def __post_init__(self) -> None:
        self._sr = _import_speech_recognition()
        self._recognizer = self._sr.Recognizer()

    def supports_locale(self) -> bool:
        return bool(_LOCALE_RE.match(self.language))

    def transcribe(self, audio_bytes: bytes) -> str:
        if not audio_bytes:
            return ""
        audio = self._sr.AudioFile(io.BytesIO(audio_bytes))
        with audio as source:
            recorded = self._recognizer.record(source)
        try:
            return self._recognizer.recognize_google(recorded, language=self.language)
        except self._sr.UnknownValueError:
            return ""
        except self._sr.RequestError as exc:
            raise TransientCollaboratorError(
                "Speech recognition service request failed. Check internet access."
            ) from exc


class SpeechRecognitionMicrophoneSource:
    """Capture fixed-length microphone slices as WAV bytes via speech_recognition.

    Every read blocks for ``slice_seconds`` at most, so a listen window that
    closes mid-read frees the microphone within one slice.
    """

    def __init__(
        self,
        *,
        slice_seconds: float = 1.0,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
    ) -> None:
        self._sr = _import_speech_recognition()
        self._recognizer = self._sr.Recognizer()
        self._microphone = self._sr.Microphone(sample_rate=sample_rate, chunk_size=chunk_size)
        self._slice_seconds = slice_seconds
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)
        self._calibrated = False

    @staticmethod
    def has_devices() -> bool:
        sr = _import_speech_recognition()
        try:
            return bool(sr.Microphone.list_microphone_names())
        except (AttributeError, OSError):
            return False

    def read_chunk(self) -> bytes:
        with self._microphone as source:
            if not self._calibrated and self._adjust_noise_seconds > 0:
                self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
                self._calibrated = True
            audio = self._recognizer.record(source, duration=self._slice_seconds)
        return audio.get_wav_data()
