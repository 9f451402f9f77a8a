"""Typed exceptions for result retrieval and archive extraction failures."""

from __future__ import annotations


class ResultRetrievalError(RuntimeError):
    """Base exception for failures after a job completed."""


class MalformedResultError(ResultRetrievalError, ValueError):
    """Result set is empty or an item lacks a usable download URL."""


class DownloadError(ResultRetrievalError):
    """Result archive download failed.

    Attributes:
        status_code: Observed HTTP status code when the server answered.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ArchiveCorruptError(ResultRetrievalError):
    """Compressed tar stream could not be decoded."""


class UnsafeArchiveEntryError(ArchiveCorruptError):
    """Archive entry would be written outside the extraction destination.

    Attributes:
        entry_name: Offending archive entry name.
    """

    def __init__(self, message: str, entry_name: str):
        super().__init__(message)
        self.entry_name = entry_name


class OutputWriteError(ResultRetrievalError):
    """Local output directory, archive or extracted entry could not be written."""
