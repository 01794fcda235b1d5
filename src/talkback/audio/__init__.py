"""Shared audio channel management."""

from .channel import AudioChannel, AudioSessionBackend, ChannelMode, LoggingAudioSessionBackend, SessionOptions

__all__ = [
    "AudioChannel",
    "AudioSessionBackend",
    "ChannelMode",
    "LoggingAudioSessionBackend",
    "SessionOptions",
]
