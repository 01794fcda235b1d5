"""Dialogue scripts and the built-in joke catalogue.

The sequencer lives in :mod:`talkback.dialogue.sequencer`.
"""

from .jokes import JOKES, KnockKnockJoke, find_joke, random_joke
from .script import NOTHING_HEARD, Script, ScriptError, Step, VoiceTag, knock_knock_script, self_talk_script

__all__ = [
    "JOKES",
    "KnockKnockJoke",
    "NOTHING_HEARD",
    "Script",
    "ScriptError",
    "Step",
    "VoiceTag",
    "find_joke",
    "knock_knock_script",
    "random_joke",
    "self_talk_script",
]
