"""In-memory orchestration client used for workflow tests and dry runs."""

from __future__ import annotations

from typing import Sequence

from batch_runner.domain import (
    JobDescriptor,
    JobHandle,
    JobStateType,
    JobStatus,
    ResultSet,
    WorkflowDeadline,
)

from .interfaces import OrchestrationClientPort


class InMemoryOrchestrationClient(OrchestrationClientPort):
    """Scripted fake replaying a fixed status sequence and result set.

    Each status poll consumes the next scripted entry; the last entry repeats
    once the script is exhausted. Scripted exceptions are raised in place of a
    response.
    """

    def __init__(
        self,
        job_id: str = "job-1",
        status_sequence: Sequence[JobStateType | JobStatus | Exception] = (JobStateType.COMPLETED,),
        result_set: ResultSet | Exception | None = None,
        submit_error: Exception | None = None,
    ):
        if not job_id.strip():
            raise ValueError("job_id must not be blank")
        if not status_sequence:
            raise ValueError("status_sequence must not be empty")

        self._job_id = job_id.strip()
        self._status_sequence = list(status_sequence)
        self._result_set = result_set if result_set is not None else ResultSet()
        self._submit_error = submit_error
        self.submitted_descriptors: list[JobDescriptor] = []
        self.get_job_calls: list[bool] = []
        self.list_results_calls = 0

    def client_source_name(self) -> str:
        return "orchestrator_in_memory"

    def client_submit_job(self, descriptor: JobDescriptor, deadline: WorkflowDeadline) -> JobHandle:
        deadline.deadline_raise_if_expired()
        if self._submit_error is not None:
            raise self._submit_error
        self.submitted_descriptors.append(descriptor)
        return JobHandle(job_id=self._job_id)

    def client_get_job(
        self,
        handle: JobHandle,
        deadline: WorkflowDeadline,
        include_executions: bool = True,
    ) -> JobStatus:
        deadline.deadline_raise_if_expired(job_id=handle.job_id)
        self.get_job_calls.append(include_executions)
        call_index = min(len(self.get_job_calls), len(self._status_sequence)) - 1
        scripted_status = self._status_sequence[call_index]
        if isinstance(scripted_status, Exception):
            raise scripted_status
        if isinstance(scripted_status, JobStateType):
            return JobStatus(job_id=handle.job_id, state=scripted_status)
        return scripted_status

    def client_list_results(self, handle: JobHandle, deadline: WorkflowDeadline) -> ResultSet:
        deadline.deadline_raise_if_expired(job_id=handle.job_id)
        self.list_results_calls += 1
        if isinstance(self._result_set, Exception):
            raise self._result_set
        return self._result_set
