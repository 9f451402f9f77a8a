"""Project-native exceptions for local environment and workflow deadline faults."""

from __future__ import annotations


class LocalEnvironmentError(OSError):
    """Local filesystem or process environment cannot support the workflow."""


class WorkflowTimedOutError(TimeoutError):
    """Workflow deadline elapsed while the job was still non-terminal.

    Attributes:
        deadline_seconds: Configured workflow deadline.
        job_id: Job identifier when submission already happened.
    """

    def __init__(self, message: str, deadline_seconds: float, job_id: str | None = None):
        super().__init__(message)
        self.deadline_seconds = deadline_seconds
        self.job_id = job_id
