"""Exceptions raised by the filesystem service."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for every error the filesystem service reports itself.

    Plain operating-system failures (missing files, existing targets and the
    like) are raised as the usual ``OSError`` subclasses instead.
    """


class NoWriteAccessError(ServiceError):
    """A write operation was requested while the service is read-only."""

    def __init__(self) -> None:
        super().__init__(
            "Service is running in read-only mode. To enable write access, "
            "please run with the --allow-write flag."
        )


class AccessDeniedError(ServiceError):
    """A path lies outside the allowed directories, or none are allowed."""


class EditError(ServiceError):
    """An edit could not be applied to a file's content."""


class FileTooLargeError(ServiceError):
    """A file is larger than the permitted maximum."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"File size exceeds the maximum allowed limit of {limit} bytes"
        )


class FileTooSmallError(ServiceError):
    """A file is smaller than the required minimum."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(
            f"File size is below the minimum required limit of {limit} bytes"
        )


class InvalidMediaFileError(ServiceError):
    """A file is not a supported image or audio file."""

    def __init__(self, mime: str) -> None:
        self.mime = mime
        super().__init__(
            "The file is either not an image/audio type or is unsupported "
            f"(mime:{mime})."
        )