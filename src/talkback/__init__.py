"""Scripted turn-taking speech dialogues."""

__version__ = "0.1.0"
