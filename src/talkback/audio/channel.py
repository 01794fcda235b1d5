"""Shared audio channel with single-owner, scoped acquisition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from talkback.errors import ChannelConfigurationError


class ChannelMode(str, Enum):
    """Configurations the device audio channel can be put in."""

    INACTIVE = "inactive"
    PLAYBACK = "playback"
    DUPLEX = "duplex"


@dataclass(frozen=True, slots=True)
class SessionOptions:
    """How our audio coexists with other consumers while the channel is held."""

    mix_with_others: bool = False
    duck_others: bool = True
    default_to_speaker: bool = True


class AudioSessionBackend(Protocol):
    """Platform hook that applies a channel mode."""

    def apply(self, mode: ChannelMode, options: SessionOptions) -> None:
        """Configure the device; raise on failure."""


class LoggingAudioSessionBackend:
    """Backend for platforms without session categories; records every change."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("talkback.audio")
        self.history: list[tuple[ChannelMode, SessionOptions]] = []

    def apply(self, mode: ChannelMode, options: SessionOptions) -> None:
        self.history.append((mode, options))
        self._logger.debug(
            "audio_session_applied",
            extra={
                "mode": mode.value,
                "mix_with_others": options.mix_with_others,
                "duck_others": options.duck_others,
            },
        )


class AudioChannel:
    """The device's combined input/output channel.

    Exactly one owner may hold it at a time. ``release`` always returns the
    channel to the neutral mode, even if the backend fails while doing so.
    """

    def __init__(
        self,
        backend: AudioSessionBackend | None = None,
        *,
        neutral_mode: ChannelMode = ChannelMode.PLAYBACK,
        logger: logging.Logger | None = None,
    ) -> None:
        self._backend = backend or LoggingAudioSessionBackend()
        self._neutral_mode = neutral_mode
        self._logger = logger or logging.getLogger("talkback.audio")
        self._owner: str | None = None
        self._mode = neutral_mode

    @property
    def owner(self) -> str | None:
        return self._owner

    @property
    def mode(self) -> ChannelMode:
        return self._mode

    @property
    def held(self) -> bool:
        return self._owner is not None

    def acquire(
        self,
        owner: str,
        *,
        mode: ChannelMode = ChannelMode.DUPLEX,
        options: SessionOptions | None = None,
    ) -> None:
        """Take the channel for ``owner`` and configure it."""
        if self._owner is not None and self._owner != owner:
            raise ChannelConfigurationError(f"Audio channel is held by {self._owner!r}")

        try:
            self._backend.apply(mode, options or SessionOptions())
        except Exception as exc:  # noqa: BLE001 - any backend failure means the channel is unusable.
            self._logger.exception("audio_channel_acquire_failed", extra={"owner": owner, "mode": mode.value})
            raise ChannelConfigurationError(f"Could not configure audio channel for {mode.value}: {exc}") from exc

        self._owner = owner
        self._mode = mode
        self._logger.info("audio_channel_acquired", extra={"owner": owner, "mode": mode.value})

    def release(self, owner: str) -> None:
        """Give the channel back. No-op unless ``owner`` holds it."""
        if self._owner != owner:
            return

        try:
            self._backend.apply(self._neutral_mode, SessionOptions())
        except Exception:  # noqa: BLE001 - release must always complete.
            self._logger.exception("audio_channel_restore_failed", extra={"owner": owner})
        finally:
            self._owner = None
            self._mode = self._neutral_mode

        self._logger.info("audio_channel_released", extra={"owner": owner})
