"""Custom exception hierarchy for pytracks."""

from __future__ import annotations

from pathlib import Path


class TracksError(Exception):
    """Base exception for all pytracks errors."""


class TracksConfigError(TracksError):
    """Invalid or missing configuration."""


class InvalidStorageRootError(TracksError):
    """The storage base path exists but is not a directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Base path '{path}' does not point to a directory")


class FilesystemFailureError(TracksError):
    """I/O failure while scanning or reading the storage tree."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class MalformedRecordError(TracksError):
    """A location record failed to decode.

    ``field`` is the wire key that violated its type, range or
    requiredness, or ``None`` when the payload is not a JSON object at all.
    ``path`` and ``line_number`` are filled in by the ingester.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        path: Path | None = None,
        line_number: int | None = None,
    ) -> None:
        self.field = field
        self.path = path
        self.line_number = line_number
        super().__init__(message)


class LockUnavailableError(TracksError):
    """The index guard could not be acquired in time.

    Request-scoped and retriable; it never affects other queries.
    """


class UnknownEntityError(TracksError):
    """A query named a user (or device) that is not indexed."""

    def __init__(self, user: str, *, device: str | None = None) -> None:
        self.user = user
        self.device = device
        name = user if device is None else f"{user}/{device}"
        super().__init__(f"Unknown user or device '{name}'")
