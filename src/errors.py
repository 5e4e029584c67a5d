"""Exceptions raised by the episode studio services and workflow."""

from typing import Optional


class StudioError(Exception):
    """Base class for episode studio errors."""


class ValidationError(StudioError):
    """User input failed validation and the operation was not attempted."""


class EpisodeNotFoundError(StudioError):
    """No workflow row exists for the requested episode."""

    def __init__(self, episode_name: Optional[str] = None):
        self.episode_name = episode_name
        super().__init__("Episode not found" if not episode_name else f"Episode not found: {episode_name}")


class ActionNotAllowedError(StudioError):
    """The requested transition is disabled in the episode's current state."""


class StoreWriteError(StudioError):
    """A write to the workflow store failed; nothing was changed."""


class TriggerError(StudioError):
    """An automation webhook could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class StorageError(StudioError):
    """An object storage upload failed."""
