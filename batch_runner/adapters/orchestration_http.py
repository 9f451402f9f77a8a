"""HTTP adapter for the orchestration service job API."""

from __future__ import annotations

from typing import Any, Final
from urllib.parse import quote

import httpx

from batch_runner.domain import (
    ExecutionSummary,
    JobDescriptor,
    JobHandle,
    JobStateType,
    JobStatus,
    ResultItem,
    ResultSet,
    WorkflowDeadline,
    WorkflowTimedOutError,
)

from .interfaces import OrchestrationClientPort
from .orchestration_errors import OrchestrationClientError, QueryError, ResultsError, SubmissionError


class OrchestrationHttpClient(OrchestrationClientPort):
    """Adapter implementation for the job submit, get and results endpoints."""

    _JOBS_PATH: Final[str] = "/api/v1/orchestrator/jobs"
    _RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({429})

    def __init__(
        self,
        http_client: httpx.Client,
        base_url: str = "http://localhost:1234",
        request_timeout_seconds: float = 30.0,
    ):
        """Initialize orchestration HTTP client.

        Args:
            http_client: Pooled HTTP client shared with the result retriever.
            base_url: Base endpoint URL of the orchestration service.
            request_timeout_seconds: Upper bound for one HTTP request.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when required config values are invalid.
        """

        if http_client is None:
            raise ValueError("http_client must not be None")
        normalized_base_url = base_url.strip()
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._base_url = normalized_base_url.rstrip("/")
        self._request_timeout_seconds = float(request_timeout_seconds)
        self._http_client = http_client

    def client_source_name(self) -> str:
        """Return stable client source label.

        Returns:
            str: Source identifier including the base URL.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return f"orchestrator_http:{self._base_url}"

    def client_submit_job(self, descriptor: JobDescriptor, deadline: WorkflowDeadline) -> JobHandle:
        """Submit one job descriptor through `PUT /jobs`.

        Args:
            descriptor: Job descriptor to submit.
            deadline: Workflow deadline bounding the call.

        Returns:
            JobHandle: Handle carrying the service job identifier.

        Raises:
            SubmissionError: Raised when the service rejects the job or the response is invalid.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        response_payload = self._client_request_json(
            method="PUT",
            path=self._JOBS_PATH,
            error_type=SubmissionError,
            context_label="job submission",
            deadline=deadline,
            json_body={"Job": descriptor.descriptor_to_payload()},
        )

        job_id = response_payload.get("JobID")
        if not isinstance(job_id, str) or not job_id.strip():
            raise SubmissionError("job submission response missing JobID")

        evaluation_id = response_payload.get("EvaluationID")
        warnings = response_payload.get("Warnings")
        if not isinstance(warnings, list):
            warnings = []
        return JobHandle(
            job_id=job_id.strip(),
            evaluation_id=evaluation_id if isinstance(evaluation_id, str) and evaluation_id else None,
            warnings=tuple(str(warning) for warning in warnings),
        )

    def client_get_job(
        self,
        handle: JobHandle,
        deadline: WorkflowDeadline,
        include_executions: bool = True,
    ) -> JobStatus:
        """Fetch one job status snapshot through `GET /jobs/{id}`.

        Args:
            handle: Submitted job handle.
            deadline: Workflow deadline bounding the call.
            include_executions: Whether to request execution details.

        Returns:
            JobStatus: Parsed job status snapshot.

        Raises:
            QueryError: Raised on transport failure, non-success status or malformed payload.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        query_parameters = {"include": "executions"} if include_executions else None
        response_payload = self._client_request_json(
            method="GET",
            path=f"{self._JOBS_PATH}/{quote(handle.job_id, safe='')}",
            error_type=QueryError,
            context_label="job status query",
            deadline=deadline,
            job_id=handle.job_id,
            query_parameters=query_parameters,
        )

        job_payload = response_payload.get("Job")
        if not isinstance(job_payload, dict):
            raise QueryError("job status response missing Job object")
        state_payload = job_payload.get("State")
        if not isinstance(state_payload, dict):
            raise QueryError("job status response missing Job.State object")

        return JobStatus(
            job_id=handle.job_id,
            state=JobStateType.state_from_wire(state_payload.get("StateType")),
            message=str(state_payload.get("Message") or ""),
            executions=self._client_parse_executions(response_payload.get("Executions")),
            job_payload=job_payload,
        )

    def client_list_results(self, handle: JobHandle, deadline: WorkflowDeadline) -> ResultSet:
        """List job results through `GET /jobs/{id}/results`.

        Args:
            handle: Completed job handle.
            deadline: Workflow deadline bounding the call.

        Returns:
            ResultSet: Result items in service order.

        Raises:
            ResultsError: Raised on transport failure, non-success status or malformed payload.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        response_payload = self._client_request_json(
            method="GET",
            path=f"{self._JOBS_PATH}/{quote(handle.job_id, safe='')}/results",
            error_type=ResultsError,
            context_label="job results listing",
            deadline=deadline,
            job_id=handle.job_id,
        )

        items_payload = response_payload.get("Items") or []
        if not isinstance(items_payload, list):
            raise ResultsError("job results response Items is not a list")

        result_items: list[ResultItem] = []
        for item_payload in items_payload:
            if not isinstance(item_payload, dict):
                raise ResultsError("job results response contains a non-object item")
            params_payload = item_payload.get("Params")
            result_items.append(
                ResultItem(
                    item_type=str(item_payload.get("Type") or ""),
                    params=dict(params_payload) if isinstance(params_payload, dict) else {},
                )
            )
        return ResultSet(items=tuple(result_items))

    def _client_request_json(
        self,
        method: str,
        path: str,
        error_type: type[OrchestrationClientError],
        context_label: str,
        deadline: WorkflowDeadline,
        job_id: str | None = None,
        query_parameters: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute one deadline-bounded request and return the JSON object body.

        Args:
            method: HTTP method.
            path: Endpoint path below the base URL.
            error_type: Operation-specific exception type.
            context_label: Context label for error messages.
            deadline: Workflow deadline bounding the call.
            job_id: Job identifier for timeout diagnostics.
            query_parameters: Optional query string parameters.
            json_body: Optional JSON request body.

        Returns:
            dict[str, Any]: Decoded JSON object.

        Raises:
            OrchestrationClientError: Raised as `error_type` for transport, status and decode failures.
            WorkflowTimedOutError: Raised when the deadline elapsed before or during the call.
        """

        timeout_seconds = deadline.deadline_request_timeout(self._request_timeout_seconds, job_id=job_id)
        try:
            response = self._http_client.request(
                method,
                f"{self._base_url}{path}",
                params=query_parameters,
                json=json_body,
                timeout=timeout_seconds,
            )
        except httpx.TimeoutException as error:
            if deadline.deadline_is_expired():
                raise WorkflowTimedOutError(
                    f"workflow deadline of {deadline.deadline_seconds:g}s elapsed during {context_label}",
                    deadline_seconds=deadline.deadline_seconds,
                    job_id=job_id,
                ) from error
            raise error_type(f"{context_label} timed out", retryable=True) from error
        except httpx.TransportError as error:
            raise error_type(f"{context_label} transport request failed: {error}", retryable=True) from error

        if response.status_code >= 400:
            raise error_type(
                f"{context_label} failed: HTTP {response.status_code}: {self._client_extract_error_message(response)}",
                status_code=response.status_code,
                retryable=response.status_code >= 500 or response.status_code in self._RETRYABLE_STATUS_CODES,
            )

        try:
            response_payload = response.json()
        except ValueError as error:
            raise error_type(f"{context_label} returned a non-JSON payload") from error
        if not isinstance(response_payload, dict):
            raise error_type(f"{context_label} returned a non-object JSON payload")
        return response_payload

    def _client_extract_error_message(self, response: httpx.Response) -> str:
        """Extract a human-readable error message from an error response.

        Args:
            response: Non-success HTTP response.

        Returns:
            str: Service message, raw body text, or reason phrase.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        try:
            error_payload = response.json()
        except ValueError:
            error_payload = None
        if isinstance(error_payload, dict):
            for message_key in ("message", "Message", "error", "Error"):
                message_value = error_payload.get(message_key)
                if isinstance(message_value, str) and message_value.strip():
                    return message_value.strip()

        body_text = response.text.strip()
        return body_text or response.reason_phrase or "unexpected upstream response"

    def _client_parse_executions(self, executions_payload: object) -> tuple[ExecutionSummary, ...]:
        """Parse optional execution details from a job status response.

        Args:
            executions_payload: `Executions` value, either `{"Items": [...]}` or a plain list.

        Returns:
            tuple[ExecutionSummary, ...]: Parsed execution summaries.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if isinstance(executions_payload, dict):
            executions_payload = executions_payload.get("Items")
        if not isinstance(executions_payload, list):
            return ()

        executions: list[ExecutionSummary] = []
        for execution_payload in executions_payload:
            if not isinstance(execution_payload, dict):
                continue
            compute_state = execution_payload.get("ComputeState")
            if not isinstance(compute_state, dict):
                compute_state = {}
            executions.append(
                ExecutionSummary(
                    execution_id=str(execution_payload.get("ID") or ""),
                    node_id=str(execution_payload.get("NodeID") or ""),
                    compute_state=str(compute_state.get("StateType") or ""),
                    message=str(compute_state.get("Message") or ""),
                )
            )
        return tuple(executions)
