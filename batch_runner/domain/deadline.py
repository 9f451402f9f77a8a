"""Wall-clock deadline shared by every blocking step of one workflow run."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable

from .errors import WorkflowTimedOutError


@dataclass(frozen=True)
class WorkflowDeadline:
    """Immutable deadline measured from workflow start.

    Attributes:
        deadline_seconds: Total wall-clock budget.
        started_at: Monotonic clock reading at workflow start.
        clock: Monotonic clock provider.
    """

    deadline_seconds: float
    started_at: float
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def deadline_start(
        cls,
        deadline_seconds: float,
        clock: Callable[[], float] | None = None,
    ) -> "WorkflowDeadline":
        """Start a new deadline at the current clock reading.

        Args:
            deadline_seconds: Total wall-clock budget.
            clock: Optional monotonic clock provider.

        Returns:
            WorkflowDeadline: Started deadline.

        Raises:
            ValueError: Raised when deadline is not positive.
        """

        if deadline_seconds <= 0:
            raise ValueError("deadline_seconds must be > 0")
        resolved_clock = clock or time.monotonic
        return cls(deadline_seconds=float(deadline_seconds), started_at=resolved_clock(), clock=resolved_clock)

    def deadline_remaining_seconds(self) -> float:
        elapsed_seconds = self.clock() - self.started_at
        return max(0.0, self.deadline_seconds - elapsed_seconds)

    def deadline_is_expired(self) -> bool:
        return self.deadline_remaining_seconds() <= 0

    def deadline_raise_if_expired(self, job_id: str | None = None) -> None:
        """Raise timeout when no budget is left.

        Args:
            job_id: Optional job identifier for diagnostics.

        Returns:
            None: Returns silently while budget remains.

        Raises:
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        if self.deadline_is_expired():
            raise WorkflowTimedOutError(
                f"workflow deadline of {self.deadline_seconds:g}s elapsed",
                deadline_seconds=self.deadline_seconds,
                job_id=job_id,
            )

    def deadline_request_timeout(self, request_timeout_seconds: float, job_id: str | None = None) -> float:
        """Return per-request timeout capped by the remaining budget.

        Args:
            request_timeout_seconds: Configured per-request timeout.
            job_id: Optional job identifier for diagnostics.

        Returns:
            float: Timeout to apply to the next blocking call.

        Raises:
            WorkflowTimedOutError: Raised when the deadline already elapsed.
        """

        self.deadline_raise_if_expired(job_id=job_id)
        return min(float(request_timeout_seconds), self.deadline_remaining_seconds())
