"""Speech input and output collaborators."""

from .input import CaptureWindow, MicrophoneSource, RecognizerListener
from .interfaces import (
    Capability,
    Listener,
    ListenWindow,
    PermissionGate,
    ScreenReaderEvents,
    Speaker,
    SpeechEngine,
    SpeechRecognizer,
)
from .mock import ScriptedListener, ScriptedSpeaker
from .output import SpeechOutputConfig, SynthesizerSpeaker
from .permissions import PromptPermissionGate, StaticPermissionGate

__all__ = [
    "Capability",
    "CaptureWindow",
    "ListenWindow",
    "Listener",
    "MicrophoneSource",
    "PermissionGate",
    "PromptPermissionGate",
    "RecognizerListener",
    "ScreenReaderEvents",
    "ScriptedListener",
    "ScriptedSpeaker",
    "Speaker",
    "SpeechEngine",
    "SpeechOutputConfig",
    "SpeechRecognizer",
    "StaticPermissionGate",
    "SynthesizerSpeaker",
]
