"""Permission gates for speech output and input."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable

import typer

from .interfaces import Capability

_PROMPTS: dict[Capability, str] = {
    Capability.SPEECH_OUTPUT: "Allow talkback to speak through your speakers?",
    Capability.SPEECH_INPUT: "Allow talkback to use the microphone and speech recognition?",
}


class StaticPermissionGate:
    """Grants a fixed set of capabilities."""

    def __init__(self, granted: Iterable[Capability] = tuple(Capability)) -> None:
        self._granted = frozenset(granted)
        self.requests: list[Capability] = []

    async def request_access(self, capability: Capability) -> bool:
        self.requests.append(capability)
        return capability in self._granted


class PromptPermissionGate:
    """Asks on the terminal before the microphone is used.

    Speech output needs no grant on desktop platforms and is always allowed.
    """

    def __init__(
        self,
        *,
        confirm: Callable[[str], bool] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._confirm = confirm or (lambda prompt: typer.confirm(prompt, default=True))
        self._logger = logger or logging.getLogger("talkback.voice.permissions")

    async def request_access(self, capability: Capability) -> bool:
        if capability == Capability.SPEECH_OUTPUT:
            return True

        granted = await asyncio.to_thread(self._confirm, _PROMPTS[capability])
        self._logger.info("permission_answered", extra={"capability": capability.value, "granted": granted})
        return bool(granted)
