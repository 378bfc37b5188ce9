"""Error kinds and exceptions shared by the indexing and playback paths."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced in scan reports and raised errors."""

    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"  # directory or file vanished mid-walk
    IO_ERROR = "io_error"
    MALFORMED_CONTAINER = "malformed_container"
    RESOURCE_OPEN = "resource_open"


class SimpleAudioPlayerError(Exception):
    """Base class for errors raised by this package."""

    kind: ErrorKind = ErrorKind.IO_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class MalformedContainerError(SimpleAudioPlayerError):
    """A RIFF container did not match the expected layout."""

    kind = ErrorKind.MALFORMED_CONTAINER


class ResourceOpenError(SimpleAudioPlayerError):
    """A file could not be opened or decoded for playback."""

    kind = ErrorKind.RESOURCE_OPEN

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"Cannot open {path}: {message}")
        self.path = path


def classify_os_error(exc: OSError) -> ErrorKind:
    """Map an OSError onto the matching ErrorKind."""
    if isinstance(exc, PermissionError):
        return ErrorKind.ACCESS_DENIED
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return ErrorKind.NOT_FOUND
    return ErrorKind.IO_ERROR
