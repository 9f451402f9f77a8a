"""Regression tests for the orchestration HTTP adapter wire mapping and error handling."""

from __future__ import annotations

import json
from typing import Callable

import httpx
import pytest

from batch_runner.adapters import OrchestrationHttpClient, QueryError, ResultsError, SubmissionError
from batch_runner.domain import (
    JobHandle,
    JobStateType,
    WorkflowDeadline,
    WorkflowTimedOutError,
    domain_build_job_descriptor,
)


def _build_client(
    handler: Callable[[httpx.Request], httpx.Response],
    request_timeout_seconds: float = 30.0,
) -> OrchestrationHttpClient:
    http_client = httpx.Client(transport=httpx.MockTransport(handler))
    return OrchestrationHttpClient(
        base_url="http://orchestrator.test/",
        request_timeout_seconds=request_timeout_seconds,
        http_client=http_client,
    )


def _open_deadline() -> WorkflowDeadline:
    return WorkflowDeadline.deadline_start(300.0)


def test_adapters_orchestration_submit_puts_job_payload(tmp_path) -> None:
    """Submit descriptor with PUT and map JobID into a handle.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate request shape and handle mapping.

    Raises:
        AssertionError: Raised when wire mapping is incorrect.
    """

    captured_requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured_requests.append(request)
        return httpx.Response(
            200,
            json={"JobID": "j-123", "EvaluationID": "e-9", "Warnings": ["namespace defaulted"]},
        )

    client = _build_client(_handler)
    descriptor = domain_build_job_descriptor(inputs_dir=str(tmp_path))

    handle = client.client_submit_job(descriptor=descriptor, deadline=_open_deadline())

    assert handle == JobHandle(job_id="j-123", evaluation_id="e-9", warnings=("namespace defaulted",))
    request = captured_requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/api/v1/orchestrator/jobs"
    body = json.loads(request.content)
    assert body["Job"]["Name"] == "copy-file-contents"
    assert body["Job"]["Tasks"][0]["InputSources"][0]["Source"]["Params"]["SourcePath"] == str(tmp_path)


def test_adapters_orchestration_submit_rejection_raises_submission_error(tmp_path) -> None:
    """Raise non-retryable submission error carrying service message and status.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate typed rejection mapping.

    Raises:
        AssertionError: Raised when rejection is not typed.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(400, json={"code": 400, "message": "task resources exceed quota"})

    client = _build_client(_handler)

    with pytest.raises(SubmissionError, match="HTTP 400: task resources exceed quota") as raised:
        client.client_submit_job(descriptor=domain_build_job_descriptor(inputs_dir=str(tmp_path)), deadline=_open_deadline())

    assert raised.value.status_code == 400
    assert raised.value.retryable is False


def test_adapters_orchestration_submit_missing_job_id_raises_submission_error(tmp_path) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, json={"EvaluationID": "e-1"})

    client = _build_client(_handler)

    with pytest.raises(SubmissionError, match="missing JobID"):
        client.client_submit_job(descriptor=domain_build_job_descriptor(inputs_dir=str(tmp_path)), deadline=_open_deadline())


def test_adapters_orchestration_get_job_parses_state_and_executions() -> None:
    """Request execution details and parse state, message and executions.

    Returns:
        None: Assertions validate status snapshot mapping.

    Raises:
        AssertionError: Raised when parsing is incorrect.
    """

    captured_requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured_requests.append(request)
        return httpx.Response(
            200,
            json={
                "Job": {"ID": "j-1", "State": {"StateType": "Failed", "Message": "engine error"}},
                "Executions": {
                    "Items": [
                        {"ID": "x-1", "NodeID": "n-1", "ComputeState": {"StateType": "Failed", "Message": "exit 1"}},
                    ]
                },
            },
        )

    client = _build_client(_handler)

    status = client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert captured_requests[0].url.path == "/api/v1/orchestrator/jobs/j-1"
    assert captured_requests[0].url.params["include"] == "executions"
    assert status.state is JobStateType.FAILED
    assert status.message == "engine error"
    assert status.executions[0].execution_id == "x-1"
    assert status.executions[0].compute_state == "Failed"
    assert status.job_payload["ID"] == "j-1"


def test_adapters_orchestration_get_job_unknown_state_maps_to_unknown() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, json={"Job": {"State": {"StateType": "Rescheduling"}}})

    client = _build_client(_handler)

    status = client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert status.state is JobStateType.UNKNOWN
    assert not status.state.state_is_terminal()


def test_adapters_orchestration_get_job_server_error_is_retryable_query_error() -> None:
    """Map 5xx status responses to retryable query errors.

    Returns:
        None: Assertions validate retryable classification.

    Raises:
        AssertionError: Raised when classification is incorrect.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(503, text="service unavailable")

    client = _build_client(_handler)

    with pytest.raises(QueryError, match="HTTP 503: service unavailable") as raised:
        client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert raised.value.retryable is True


def test_adapters_orchestration_get_job_transport_failure_raises_query_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _build_client(_handler)

    with pytest.raises(QueryError, match="transport request failed") as raised:
        client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert raised.value.retryable is True


def test_adapters_orchestration_timeout_after_deadline_raises_workflow_timed_out(fake_clock) -> None:
    """Surface transport timeout as workflow timeout when the deadline elapsed mid-call.

    Args:
        fake_clock: Deterministic clock fixture.

    Returns:
        None: Assertions validate timeout mapping.

    Raises:
        AssertionError: Raised when the timeout is reported as a query error.
    """

    deadline = WorkflowDeadline.deadline_start(5.0, clock=fake_clock.clock)

    def _handler(request: httpx.Request) -> httpx.Response:
        fake_clock.sleep(6.0)
        raise httpx.ReadTimeout("timed out", request=request)

    client = _build_client(_handler)

    with pytest.raises(WorkflowTimedOutError):
        client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=deadline)


def test_adapters_orchestration_timeout_within_budget_raises_query_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = _build_client(_handler)

    with pytest.raises(QueryError, match="timed out"):
        client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())


def test_adapters_orchestration_expired_deadline_skips_request(fake_clock) -> None:
    """Fail fast without issuing a request once the deadline elapsed.

    Args:
        fake_clock: Deterministic clock fixture.

    Returns:
        None: Assertions validate no request was sent.

    Raises:
        AssertionError: Raised when a request is sent after expiry.
    """

    deadline = WorkflowDeadline.deadline_start(1.0, clock=fake_clock.clock)
    fake_clock.sleep(2.0)
    request_count = 0

    def _handler(request: httpx.Request) -> httpx.Response:
        nonlocal request_count
        _ = request
        request_count += 1
        return httpx.Response(200, json={})

    client = _build_client(_handler)

    with pytest.raises(WorkflowTimedOutError):
        client.client_list_results(handle=JobHandle(job_id="j-1"), deadline=deadline)
    assert request_count == 0


def test_adapters_orchestration_request_timeout_capped_by_deadline(fake_clock) -> None:
    """Apply the remaining workflow budget as request timeout when it is shorter.

    Args:
        fake_clock: Deterministic clock fixture.

    Returns:
        None: Assertions validate timeout extension on the outgoing request.

    Raises:
        AssertionError: Raised when the request timeout ignores the deadline.
    """

    deadline = WorkflowDeadline.deadline_start(10.0, clock=fake_clock.clock)
    fake_clock.sleep(6.0)
    captured_timeouts: list[dict[str, float]] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured_timeouts.append(request.extensions["timeout"])
        return httpx.Response(200, json={"Job": {"State": {"StateType": "Running"}}})

    client = _build_client(_handler, request_timeout_seconds=30.0)

    client.client_get_job(handle=JobHandle(job_id="j-1"), deadline=deadline)

    assert captured_timeouts[0]["read"] == pytest.approx(4.0)


def test_adapters_orchestration_list_results_parses_items() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/orchestrator/jobs/j-1/results"
        return httpx.Response(
            200,
            json={"Items": [{"Type": "urlDownload", "Params": {"URL": "http://store.test/j-1.tar.gz"}}]},
        )

    client = _build_client(_handler)

    result_set = client.client_list_results(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert len(result_set.items) == 1
    assert result_set.items[0].item_type == "urlDownload"
    assert result_set.items[0].params["URL"] == "http://store.test/j-1.tar.gz"


def test_adapters_orchestration_list_results_not_found_raises_results_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(404, json={"Message": "job not found"})

    client = _build_client(_handler)

    with pytest.raises(ResultsError, match="HTTP 404: job not found") as raised:
        client.client_list_results(handle=JobHandle(job_id="j-1"), deadline=_open_deadline())

    assert raised.value.status_code == 404
    assert raised.value.retryable is False


def test_adapters_orchestration_requires_injected_http_client() -> None:
    with pytest.raises(ValueError, match="http_client must not be None"):
        OrchestrationHttpClient(http_client=None)
