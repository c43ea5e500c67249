"""Exception types shared by the lookup core, the clients and the service."""

from __future__ import annotations


class MalformedInputError(ValueError):
    """A lookup was called with a misconfigured shape (negative index, no rows)."""


class ConfigurationError(RuntimeError):
    """A required setting is missing or still holds a placeholder value."""


class UpstreamError(RuntimeError):
    """An external HTTP collaborator answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int, details: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class SheetsAPIError(UpstreamError):
    pass


class WebhookError(UpstreamError):
    pass


class FileNotFoundInStore(KeyError):
    def __init__(self, file_id: str) -> None:
        super().__init__(file_id)
        self.file_id = file_id

    def __str__(self) -> str:
        return f"File with ID {self.file_id} not found."


class ReviewConflictError(RuntimeError):
    """The file already carries a review decision."""
