"""Dialogue scripts: ordered speak/listen steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

NOTHING_HEARD = "—"
"""Transcript placeholder committed when a listen window captured nothing."""


class ScriptError(ValueError):
    """Raised when a script violates its construction invariants."""


class VoiceTag(str, Enum):
    """Selects one of two synthetic voices for a line."""

    A = "a"
    B = "b"


@dataclass(frozen=True, slots=True)
class Step:
    """One spoken line, optionally captured by a concurrent listen window."""

    text: str
    voice_tag: VoiceTag | None = None
    listen_target: str | None = None

    @property
    def listens(self) -> bool:
        return self.listen_target is not None


@dataclass(frozen=True, slots=True)
class Script:
    """Immutable, non-empty sequence of steps plus the transcript slots they fill."""

    steps: tuple[Step, ...]
    slots: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        steps = tuple(self.steps)
        if not steps:
            raise ScriptError("A dialogue script needs at least one step.")

        targets = [step.listen_target for step in steps if step.listen_target is not None]
        slots = tuple(self.slots) or tuple(dict.fromkeys(targets))
        if len(set(slots)) != len(slots):
            raise ScriptError(f"Duplicate transcript slots declared: {slots}")

        undeclared = sorted({target for target in targets if target not in slots})
        if undeclared:
            raise ScriptError(f"Listen targets reference undeclared slots: {', '.join(undeclared)}")

        object.__setattr__(self, "steps", steps)
        object.__setattr__(self, "slots", slots)

    @classmethod
    def of(cls, steps: Iterable[Step], *, slots: Iterable[str] = ()) -> "Script":
        return cls(steps=tuple(steps), slots=tuple(slots))

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def has_listen_steps(self) -> bool:
        return any(step.listens for step in self.steps)


def knock_knock_script(name: str, punchline: str) -> Script:
    """Build the five-line knock-knock exchange.

    The phone reads its own lines with voice A and the listener's replies with
    voice B, capturing each reply into ``who_is_there`` and ``name_who``.
    """
    name = " ".join(name.split()).rstrip(".")
    if not name:
        raise ScriptError("A knock-knock joke needs a name.")

    return Script.of(
        [
            Step("Knock knock.", VoiceTag.A),
            Step("Who's there?", VoiceTag.B, listen_target="who_is_there"),
            Step(f"{name}.", VoiceTag.A),
            Step(f"{name} who?", VoiceTag.B, listen_target="name_who"),
            Step(punchline, VoiceTag.A),
        ]
    )


def self_talk_script(text: str) -> Script:
    """One line spoken while listening to it, committed into ``transcript``."""
    normalized = " ".join(text.split())
    if not normalized:
        raise ScriptError("Nothing to say.")
    return Script.of([Step(normalized, listen_target="transcript")])
