"""Typed interfaces for adapter-layer responsibilities."""

from typing import Protocol

from batch_runner.domain import JobDescriptor, JobHandle, JobStatus, ResultSet, WorkflowDeadline


class OrchestrationClientPort(Protocol):
    """Port definition for the orchestration service job API."""

    def client_source_name(self) -> str:
        """Return client source identifier for diagnostics.

        Returns:
            str: Human-readable upstream source identifier.

        Raises:
            RuntimeError: Raised when source metadata is unavailable.
        """

    def client_submit_job(self, descriptor: JobDescriptor, deadline: WorkflowDeadline) -> JobHandle:
        """Submit one job descriptor.

        Args:
            descriptor: Job descriptor to submit.
            deadline: Workflow deadline bounding the call.

        Returns:
            JobHandle: Handle identifying the submitted job.

        Raises:
            SubmissionError: Raised when the service rejects the job.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

    def client_get_job(
        self,
        handle: JobHandle,
        deadline: WorkflowDeadline,
        include_executions: bool = True,
    ) -> JobStatus:
        """Fetch one independent job status snapshot.

        Args:
            handle: Submitted job handle.
            deadline: Workflow deadline bounding the call.
            include_executions: Whether to request execution details.

        Returns:
            JobStatus: Current job status snapshot.

        Raises:
            QueryError: Raised on transport or non-success response.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

    def client_list_results(self, handle: JobHandle, deadline: WorkflowDeadline) -> ResultSet:
        """List results of a completed job.

        Args:
            handle: Completed job handle.
            deadline: Workflow deadline bounding the call.

        Returns:
            ResultSet: Result items in service order.

        Raises:
            ResultsError: Raised on transport or non-success response.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """
