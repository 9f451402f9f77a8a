"""Project-native typed exceptions for orchestration service client failures."""

from __future__ import annotations


class OrchestrationClientError(Exception):
    """Base exception for orchestration client failures.

    Attributes:
        status_code: HTTP status code when the service answered.
        retryable: Whether repeating the same call may succeed.
    """

    def __init__(self, message: str, status_code: int | None = None, retryable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class SubmissionError(OrchestrationClientError, ValueError):
    """Service rejected the job submission or the submit exchange failed."""


class QueryError(OrchestrationClientError, ConnectionError):
    """Job status query failed on transport or returned a non-success response."""


class ResultsError(OrchestrationClientError, ConnectionError):
    """Job result listing failed on transport or returned a non-success response."""
