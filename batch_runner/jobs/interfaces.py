"""Typed interfaces for job-layer lifecycle responsibilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from batch_runner.domain import JobDescriptor, JobHandle, JobStatus, WorkflowDeadline


class PollerState(Enum):
    """Client-side lifecycle states driven by the status poller."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"
    TIMED_OUT = "timed_out"

    def poller_state_is_terminal(self) -> bool:
        return self in (PollerState.COMPLETED, PollerState.FAILED, PollerState.STOPPED, PollerState.TIMED_OUT)


class JobOutcome(Enum):
    """Job-reported terminal outcome of one workflow run."""

    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PollOutcome:
    """Result contract of one poll loop ending in a job-reported terminal state.

    Attributes:
        final_state: Terminal poller state.
        status: Last status snapshot observed.
        poll_count: Number of status snapshots fetched.
    """

    final_state: PollerState
    status: JobStatus
    poll_count: int


@dataclass(frozen=True)
class RetrievalResult:
    """Result contract of downloading and extracting job results.

    Attributes:
        output_path: Extraction destination directory.
        archive_paths: Downloaded archive paths in result-item order.
        file_count: Regular files extracted across all archives.
    """

    output_path: str
    archive_paths: tuple[str, ...]
    file_count: int


@dataclass(frozen=True)
class WorkflowResult:
    """Final outcome of one submit, poll and retrieve workflow.

    Attributes:
        job_id: Submitted job identifier.
        outcome: Job-reported terminal outcome.
        message: Job state message from the last snapshot.
        poll_count: Number of status snapshots fetched.
        output_path: Extraction destination when results were retrieved.
        retrieval_error: Retrieval failure captured after completion.
        timeline: Structured lifecycle events for diagnostics.
    """

    job_id: str
    outcome: JobOutcome
    message: str
    poll_count: int
    output_path: str | None = None
    retrieval_error: Exception | None = None
    timeline: list[dict[str, object]] = field(default_factory=list)

    def workflow_is_success(self) -> bool:
        return self.outcome is JobOutcome.COMPLETED and self.retrieval_error is None


class WorkflowOrchestratorPort(Protocol):
    """Port definition for running one batch job end to end."""

    def job_execute(
        self,
        descriptor: JobDescriptor,
        deadline: WorkflowDeadline | None = None,
        on_submitted: Callable[[JobHandle], None] | None = None,
    ) -> WorkflowResult:
        """Submit one job, wait for a terminal state and retrieve results.

        Args:
            descriptor: Job descriptor to submit.
            deadline: Optional deadline started at workflow start.
            on_submitted: Optional callback invoked with the handle right after submission.

        Returns:
            WorkflowResult: Final workflow outcome.

        Raises:
            SubmissionError: Raised when the service rejects the job.
            QueryError: Raised when a status poll fails.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """
