"""Exception types shared across the bot service."""

from __future__ import annotations


class CoucouError(Exception):
    """Base class for bot errors."""


class ExternalAPIError(CoucouError):
    """A token, Helix or webhook hub call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PipelineClosed(CoucouError):
    """The notification stream ended while the bot was still running."""


class BackgroundTaskExited(CoucouError):
    """A long-lived background task returned instead of running forever."""
