"""Job-layer workflow orchestrator: submit, poll, then retrieve results."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable

import structlog

from batch_runner.adapters import OrchestrationClientPort, ResultsError, SubmissionError
from batch_runner.domain import (
    JobDescriptor,
    JobHandle,
    WorkflowDeadline,
    WorkflowTimedOutError,
    domain_build_lifecycle_event,
)

from .interfaces import JobOutcome, PollerState, WorkflowOrchestratorPort, WorkflowResult
from .lifecycle_poller import JobLifecyclePoller
from .result_retriever import JobResultRetriever
from .retrieval_errors import ResultRetrievalError

logger = structlog.get_logger(__name__)

_POLLER_STATE_OUTCOMES: dict[PollerState, JobOutcome] = {
    PollerState.COMPLETED: JobOutcome.COMPLETED,
    PollerState.FAILED: JobOutcome.FAILED,
    PollerState.STOPPED: JobOutcome.STOPPED,
}


@dataclass(frozen=True)
class WorkflowConfig:
    """Configuration values for one workflow run.

    Attributes:
        deadline_seconds: Wall-clock budget measured from workflow start.
    """

    deadline_seconds: float = 300.0


class BatchJobWorkflowOrchestrator(WorkflowOrchestratorPort):
    """Concrete orchestrator running exactly one job sequentially."""

    def __init__(
        self,
        client: OrchestrationClientPort,
        poller: JobLifecyclePoller,
        retriever: JobResultRetriever,
        config: WorkflowConfig | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize workflow orchestrator dependencies.

        Args:
            client: Orchestration client for submit and results calls.
            poller: Lifecycle poller bound to the same client.
            retriever: Result retriever for completed jobs.
            config: Workflow configuration.
            clock: Optional monotonic clock used when the caller passes no deadline.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        resolved_config = config or WorkflowConfig()
        if client is None:
            raise ValueError("client must not be None")
        if poller is None:
            raise ValueError("poller must not be None")
        if retriever is None:
            raise ValueError("retriever must not be None")
        if resolved_config.deadline_seconds <= 0:
            raise ValueError("config.deadline_seconds must be > 0")

        self._client = client
        self._poller = poller
        self._retriever = retriever
        self._config = resolved_config
        self._clock = clock or time.monotonic

    def job_start_deadline(self) -> WorkflowDeadline:
        return WorkflowDeadline.deadline_start(self._config.deadline_seconds, clock=self._clock)

    def job_execute(
        self,
        descriptor: JobDescriptor,
        deadline: WorkflowDeadline | None = None,
        on_submitted: Callable[[JobHandle], None] | None = None,
    ) -> WorkflowResult:
        """Run submit, poll and retrieval for one job descriptor.

        Job-reported Failed and Stopped states end the workflow as outcomes.
        Retrieval failures after completion, including the deadline elapsing
        while results are listed or downloaded, are captured on the result and
        never mask the completed outcome.

        Args:
            descriptor: Job descriptor to submit.
            deadline: Optional deadline started at workflow start.
            on_submitted: Optional callback invoked with the handle right after submission.

        Returns:
            WorkflowResult: Final workflow outcome and lifecycle timeline.

        Raises:
            SubmissionError: Raised when the service rejects the job.
            QueryError: Raised when a status poll fails.
            WorkflowTimedOutError: Raised when the deadline elapsed before a terminal state.
        """

        workflow_deadline = deadline or self.job_start_deadline()
        timeline: list[dict[str, object]] = [domain_build_lifecycle_event(stage="run", status="started")]

        handle = self._job_submit(descriptor=descriptor, deadline=workflow_deadline, timeline=timeline)
        if on_submitted is not None:
            on_submitted(handle)
        poll_outcome = self._poller.job_poll_until_terminal(handle=handle, deadline=workflow_deadline, timeline=timeline)
        outcome = _POLLER_STATE_OUTCOMES[poll_outcome.final_state]
        message = poll_outcome.status.message

        if outcome is JobOutcome.FAILED:
            logger.warning("job_failed", job_id=handle.job_id, message=message)
        elif outcome is JobOutcome.STOPPED:
            logger.warning("job_stopped", job_id=handle.job_id, message=message)
        else:
            logger.info("job_completed", job_id=handle.job_id, poll_count=poll_outcome.poll_count)

        output_path: str | None = None
        retrieval_error: Exception | None = None
        if outcome is JobOutcome.COMPLETED:
            try:
                retrieval_result = self._retriever.job_retrieve_results(
                    client=self._client,
                    handle=handle,
                    deadline=workflow_deadline,
                    timeline=timeline,
                )
                output_path = retrieval_result.output_path
                logger.info("results_available", job_id=handle.job_id, output_path=output_path)
            except (ResultsError, ResultRetrievalError, WorkflowTimedOutError) as error:
                retrieval_error = error
                timeline.append(
                    domain_build_lifecycle_event(
                        stage="retrieve",
                        status="failed",
                        job_id=handle.job_id,
                        details={"error_type": type(error).__name__, "error_message": str(error)},
                    )
                )
                logger.error(
                    "results_retrieval_failed",
                    job_id=handle.job_id,
                    error_type=type(error).__name__,
                    error=str(error),
                )

        timeline.append(
            domain_build_lifecycle_event(
                stage="run",
                status=outcome.value,
                job_id=handle.job_id,
                details={"retrieval_failed": retrieval_error is not None},
            )
        )
        return WorkflowResult(
            job_id=handle.job_id,
            outcome=outcome,
            message=message,
            poll_count=poll_outcome.poll_count,
            output_path=output_path,
            retrieval_error=retrieval_error,
            timeline=timeline,
        )

    def _job_submit(
        self,
        descriptor: JobDescriptor,
        deadline: WorkflowDeadline,
        timeline: list[dict[str, object]],
    ) -> JobHandle:
        """Submit the descriptor once; submission failures are never retried.

        Args:
            descriptor: Job descriptor to submit.
            deadline: Workflow deadline.
            timeline: Mutable lifecycle timeline.

        Returns:
            JobHandle: Submitted job handle.

        Raises:
            SubmissionError: Raised when the service rejects the job.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        timeline.append(domain_build_lifecycle_event(stage="submit", status="started"))
        try:
            handle = self._client.client_submit_job(descriptor=descriptor, deadline=deadline)
        except (SubmissionError, WorkflowTimedOutError) as error:
            timeline.append(
                domain_build_lifecycle_event(
                    stage="submit",
                    status="failed",
                    details={"error_type": type(error).__name__, "error_message": str(error)},
                )
            )
            raise

        timeline.append(
            domain_build_lifecycle_event(
                stage="submit",
                status="completed",
                job_id=handle.job_id,
                details={"warnings": list(handle.warnings)},
            )
        )
        logger.info(
            "job_submitted",
            job_id=handle.job_id,
            evaluation_id=handle.evaluation_id,
            source=self._client.client_source_name(),
        )
        for warning in handle.warnings:
            logger.warning("job_submit_warning", job_id=handle.job_id, warning=warning)
        return handle
