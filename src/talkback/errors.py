"""Error taxonomy for dialogue runs."""

from __future__ import annotations


class DialogueError(RuntimeError):
    """Base class for failures surfaced by a dialogue run."""


class PermissionDenied(DialogueError):
    """Raised when speech output or input access was not granted."""


class CapabilityUnavailable(DialogueError):
    """Raised when a speech backend cannot serve the active configuration (e.g. locale)."""


class ChannelConfigurationError(DialogueError):
    """Raised when the shared audio channel could not be acquired."""


class TransientCollaboratorError(DialogueError):
    """Raised when a speak/listen backend fails in the middle of a run."""
