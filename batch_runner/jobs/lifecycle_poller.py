"""Job lifecycle poller driving status snapshots to a terminal state."""

from __future__ import annotations

from dataclasses import dataclass
import random
import time
from typing import Callable

import structlog

from batch_runner.adapters import OrchestrationClientPort, QueryError
from batch_runner.domain import (
    JobHandle,
    JobStateType,
    JobStatus,
    WorkflowDeadline,
    WorkflowTimedOutError,
    domain_build_lifecycle_event,
)

from .interfaces import PollerState, PollOutcome

logger = structlog.get_logger(__name__)

_JOB_STATE_TRANSITIONS: dict[JobStateType, PollerState] = {
    JobStateType.PENDING: PollerState.PENDING,
    JobStateType.QUEUED: PollerState.PENDING,
    JobStateType.RUNNING: PollerState.RUNNING,
    JobStateType.COMPLETED: PollerState.COMPLETED,
    JobStateType.FAILED: PollerState.FAILED,
    JobStateType.STOPPED: PollerState.STOPPED,
}


@dataclass(frozen=True)
class LifecyclePollerConfig:
    """Configuration values for status polling.

    Attributes:
        poll_interval_seconds: Fixed delay between status polls.
        status_retry_attempts: Extra attempts for retryable status-query failures.
        retry_backoff_base_seconds: Base delay for exponential retry backoff.
        retry_backoff_max_seconds: Retry delay cap before jitter.
        jitter_min_multiplier: Minimum retry jitter multiplier.
        jitter_max_multiplier: Maximum retry jitter multiplier.
    """

    poll_interval_seconds: float = 1.0
    status_retry_attempts: int = 0
    retry_backoff_base_seconds: float = 1.0
    retry_backoff_max_seconds: float = 10.0
    jitter_min_multiplier: float = 0.5
    jitter_max_multiplier: float = 1.5


@dataclass(frozen=True)
class _StatusRetryStrategy:
    """Immutable retry strategy for transient status-query failures.

    Attributes:
        backoff_base_seconds: Base delay for exponential backoff.
        max_backoff_seconds: Exponential delay cap before jitter.
        jitter_min_multiplier: Minimum jitter multiplier.
        jitter_max_multiplier: Maximum jitter multiplier.
        random_unit_interval_provider: Provider returning value in [0.0, 1.0].
    """

    backoff_base_seconds: float
    max_backoff_seconds: float
    jitter_min_multiplier: float
    jitter_max_multiplier: float
    random_unit_interval_provider: Callable[[], float]

    def strategy_calculate_retry_wait_seconds(self, retry_index: int) -> float:
        """Calculate exponential retry wait with cap and jitter.

        Args:
            retry_index: Zero-based retry attempt index.

        Returns:
            float: Computed wait seconds before the retry.

        Raises:
            ValueError: Raised when retry index is negative.
            RuntimeError: Raised when jitter provider returns out-of-range value.
        """

        if retry_index < 0:
            raise ValueError("retry_index must be >= 0")

        backoff_seconds = self.backoff_base_seconds * (2**retry_index)
        capped_backoff_seconds = min(backoff_seconds, self.max_backoff_seconds)
        random_ratio = float(self.random_unit_interval_provider())
        if random_ratio < 0.0 or random_ratio > 1.0:
            raise RuntimeError("random_unit_interval_provider must return a value in [0.0, 1.0]")

        jitter_span = self.jitter_max_multiplier - self.jitter_min_multiplier
        return capped_backoff_seconds * (self.jitter_min_multiplier + (random_ratio * jitter_span))


class JobLifecyclePoller:
    """Poll job status until the service reports a terminal state or the deadline elapses."""

    def __init__(
        self,
        client: OrchestrationClientPort,
        config: LifecyclePollerConfig | None = None,
        sleep_provider: Callable[[float], None] | None = None,
        random_unit_interval_provider: Callable[[], float] | None = None,
    ):
        """Initialize lifecycle poller.

        Args:
            client: Orchestration client used for status snapshots.
            config: Polling configuration.
            sleep_provider: Optional blocking sleep function.
            random_unit_interval_provider: Optional provider returning random values in [0.0, 1.0].

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        resolved_config = config or LifecyclePollerConfig()
        if client is None:
            raise ValueError("client must not be None")
        if resolved_config.poll_interval_seconds < 0:
            raise ValueError("config.poll_interval_seconds must be >= 0")
        if resolved_config.status_retry_attempts < 0:
            raise ValueError("config.status_retry_attempts must be >= 0")
        if resolved_config.retry_backoff_base_seconds < 0:
            raise ValueError("config.retry_backoff_base_seconds must be >= 0")
        if resolved_config.retry_backoff_max_seconds <= 0:
            raise ValueError("config.retry_backoff_max_seconds must be > 0")
        if resolved_config.jitter_min_multiplier <= 0:
            raise ValueError("config.jitter_min_multiplier must be > 0")
        if resolved_config.jitter_max_multiplier < resolved_config.jitter_min_multiplier:
            raise ValueError("config.jitter_max_multiplier must be >= config.jitter_min_multiplier")

        self._client = client
        self._config = resolved_config
        self._sleep = sleep_provider or time.sleep
        self._retry_strategy = _StatusRetryStrategy(
            backoff_base_seconds=resolved_config.retry_backoff_base_seconds,
            max_backoff_seconds=resolved_config.retry_backoff_max_seconds,
            jitter_min_multiplier=resolved_config.jitter_min_multiplier,
            jitter_max_multiplier=resolved_config.jitter_max_multiplier,
            random_unit_interval_provider=random_unit_interval_provider or random.random,
        )

    def job_poll_until_terminal(
        self,
        handle: JobHandle,
        deadline: WorkflowDeadline,
        timeline: list[dict[str, object]] | None = None,
    ) -> PollOutcome:
        """Poll status snapshots until Completed, Failed or Stopped.

        Args:
            handle: Submitted job handle.
            deadline: Workflow deadline started at workflow start.
            timeline: Optional mutable lifecycle timeline.

        Returns:
            PollOutcome: Terminal state, last snapshot and poll count.

        Raises:
            QueryError: Raised when a status query fails and is not retried.
            WorkflowTimedOutError: Raised when the deadline elapses while non-terminal.
        """

        stage_timeline = timeline if timeline is not None else []
        state = PollerState.PENDING
        poll_count = 0
        stage_timeline.append(domain_build_lifecycle_event(stage="poll", status="started", job_id=handle.job_id))

        try:
            while True:
                deadline.deadline_raise_if_expired(job_id=handle.job_id)
                logger.info("job_status_checking", job_id=handle.job_id, poll_attempt=poll_count + 1)
                status = self._job_fetch_status(handle=handle, deadline=deadline)
                poll_count += 1
                state = self.job_next_state(current_state=state, reported_state=status.state)
                logger.info(
                    "job_status_checked",
                    job_id=handle.job_id,
                    reported_state=status.state.value,
                    poller_state=state.value,
                    executions=[
                        {"execution_id": execution.execution_id, "compute_state": execution.compute_state}
                        for execution in status.executions
                    ],
                )

                if state.poller_state_is_terminal():
                    stage_timeline.append(
                        domain_build_lifecycle_event(
                            stage="poll",
                            status="completed",
                            job_id=handle.job_id,
                            details={"final_state": state.value, "poll_count": poll_count, "message": status.message},
                        )
                    )
                    return PollOutcome(final_state=state, status=status, poll_count=poll_count)

                logger.debug("job_snapshot", job_id=handle.job_id, job=status.job_payload)
                self._job_sleep_within_deadline(
                    seconds=self._config.poll_interval_seconds,
                    deadline=deadline,
                    job_id=handle.job_id,
                )
        except WorkflowTimedOutError:
            stage_timeline.append(
                domain_build_lifecycle_event(
                    stage="poll",
                    status=PollerState.TIMED_OUT.value,
                    job_id=handle.job_id,
                    details={"last_state": state.value, "poll_count": poll_count},
                )
            )
            logger.warning("job_poll_timed_out", job_id=handle.job_id, last_state=state.value, poll_count=poll_count)
            raise

    @staticmethod
    def job_next_state(current_state: PollerState, reported_state: JobStateType) -> PollerState:
        """Return the next poller state for one reported job state.

        Unrecognized tags keep the current state so new service states never abort polling.

        Args:
            current_state: Current poller state.
            reported_state: State tag from the latest snapshot.

        Returns:
            PollerState: Next poller state.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if current_state.poller_state_is_terminal():
            return current_state
        return _JOB_STATE_TRANSITIONS.get(reported_state, current_state)

    def job_calculate_retry_wait_seconds(self, retry_index: int) -> float:
        return self._retry_strategy.strategy_calculate_retry_wait_seconds(retry_index=retry_index)

    def _job_fetch_status(self, handle: JobHandle, deadline: WorkflowDeadline) -> JobStatus:
        """Fetch one status snapshot, retrying retryable failures within budget.

        Args:
            handle: Submitted job handle.
            deadline: Workflow deadline.

        Returns:
            JobStatus: Latest status snapshot.

        Raises:
            QueryError: Raised for non-retryable failures or when retries are exhausted.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        retry_attempts = self._config.status_retry_attempts
        for retry_index in range(retry_attempts + 1):
            try:
                return self._client.client_get_job(handle=handle, deadline=deadline, include_executions=True)
            except QueryError as error:
                if not error.retryable or retry_index >= retry_attempts:
                    raise
                wait_seconds = self.job_calculate_retry_wait_seconds(retry_index=retry_index)
                logger.warning(
                    "job_status_query_retrying",
                    job_id=handle.job_id,
                    retry_attempt=retry_index + 1,
                    retry_after_seconds=wait_seconds,
                    error=str(error),
                )
                self._job_sleep_within_deadline(seconds=wait_seconds, deadline=deadline, job_id=handle.job_id)

        raise RuntimeError("status retry loop exited without result")

    def _job_sleep_within_deadline(self, seconds: float, deadline: WorkflowDeadline, job_id: str) -> None:
        """Sleep for at most the remaining budget, then re-check the deadline.

        Args:
            seconds: Requested delay.
            deadline: Workflow deadline.
            job_id: Job identifier for diagnostics.

        Returns:
            None: Blocks as side effect.

        Raises:
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        deadline.deadline_raise_if_expired(job_id=job_id)
        bounded_seconds = min(float(seconds), deadline.deadline_remaining_seconds())
        if bounded_seconds > 0:
            self._sleep(bounded_seconds)
        deadline.deadline_raise_if_expired(job_id=job_id)
