"""Contracts for the speech collaborators a dialogue run consumes."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Protocol

from talkback.dialogue.script import VoiceTag


class Capability(str, Enum):
    """Access rights checked before a run starts."""

    SPEECH_OUTPUT = "speech_output"
    SPEECH_INPUT = "speech_input"


class SpeechRecognizer(Protocol):
    """Converts live or buffered audio into text."""

    def transcribe(self, audio_bytes: bytes) -> str:
        """Return recognized text from raw audio input."""


class SpeechEngine(Protocol):
    """Blocking text-to-speech engine."""

    def say(self, text: str, voice_id: str | None = None) -> None:
        """Speak ``text`` and return once playback has finished."""

    def stop(self) -> None:
        """Interrupt playback immediately."""


class Speaker(Protocol):
    """Speaks one line at a time and reports completion through a future."""

    def speak(self, text: str, voice_tag: VoiceTag | None = None) -> asyncio.Future[None]:
        """Start speaking; the returned future resolves exactly once when speech ends."""

    def stop(self) -> None:
        """Halt in-flight speech. Pending futures are not guaranteed to resolve."""


class ListenWindow(Protocol):
    """An open capture interval with a best-effort running transcript."""

    def partial_transcript(self) -> str:
        """Latest best-effort transcript; may change until the window closes."""

    def close(self, commit: bool) -> str | None:
        """Release capture resources, returning the final transcript when ``commit`` is set."""


class Listener(Protocol):
    """Opens listen windows over the speech input backend."""

    def is_available(self) -> bool:
        """Whether input can be captured for the active configuration."""

    def open(self) -> ListenWindow:
        """Start capturing and return the new window."""


class PermissionGate(Protocol):
    """Asks for access to speech output and input."""

    async def request_access(self, capability: Capability) -> bool:
        """Return whether the capability is granted."""


class ScreenReaderEvents(Protocol):
    """Source of screen-reader on/off notifications."""

    @property
    def is_running(self) -> bool:
        """Whether a screen reader is currently active."""

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Register ``callback`` for state changes; returns an unsubscribe function."""
