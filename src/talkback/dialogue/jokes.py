"""Built-in knock-knock jokes."""

from __future__ import annotations

import random
from dataclasses import dataclass

from .script import Script, knock_knock_script


@dataclass(frozen=True, slots=True)
class KnockKnockJoke:
    name: str
    punchline: str

    @property
    def key(self) -> str:
        return self.name.lower().replace(" ", "-")

    def script(self) -> Script:
        return knock_knock_script(self.name, self.punchline)


JOKES: tuple[KnockKnockJoke, ...] = (
    KnockKnockJoke("Lettuce", "Lettuce in, it's cold out here!"),
    KnockKnockJoke("Boo", "Don't cry. It's just a joke!"),
    KnockKnockJoke("Cow says", "No, silly, cow says moooo!"),
    KnockKnockJoke("Nobel", "No bell, that's why I knocked."),
)


def find_joke(name: str) -> KnockKnockJoke:
    """Look up a joke by name or key, case-insensitively."""
    wanted = name.strip().lower().replace(" ", "-")
    for joke in JOKES:
        if joke.key == wanted:
            return joke
    raise KeyError(f"Unknown joke: {name!r}. Available: {', '.join(joke.key for joke in JOKES)}")


def random_joke(rng: random.Random | None = None) -> KnockKnockJoke:
    return (rng or random).choice(JOKES)
