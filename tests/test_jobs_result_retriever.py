"""Regression tests for result listing, archive download and extraction."""

from __future__ import annotations

import os
import socket

import httpx
import pytest

from batch_runner.adapters import InMemoryOrchestrationClient, ResultsError
from batch_runner.domain import JobHandle, ResultItem, ResultSet, WorkflowDeadline, WorkflowTimedOutError
from batch_runner.jobs import DownloadError, JobResultRetriever, MalformedResultError, OutputWriteError
from batch_runner.jobs.result_retriever import job_start_deadline_watchdog


def _url_item(url: str) -> ResultItem:
    return ResultItem(item_type="urlDownload", params={"URL": url})


def _archive_transport(archives_by_path: dict[str, bytes]) -> httpx.MockTransport:
    def _handler(request: httpx.Request) -> httpx.Response:
        archive_bytes = archives_by_path.get(request.url.path)
        if archive_bytes is None:
            return httpx.Response(404, text="missing")
        return httpx.Response(200, content=archive_bytes)

    return httpx.MockTransport(_handler)


def test_jobs_result_retriever_downloads_and_extracts_archive(tmp_path, tar_gz_builder) -> None:
    """Stream the result archive to disk and extract it below the job directory.

    Args:
        tmp_path: Pytest temporary directory fixture.
        tar_gz_builder: Archive builder fixture.

    Returns:
        None: Assertions validate archive and extracted file placement.

    Raises:
        AssertionError: Raised when files are missing or misplaced.
    """

    http_client = httpx.Client(
        transport=_archive_transport({"/job-1.tar.gz": tar_gz_builder([("output.txt", b"hello", 0o644)])})
    )
    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(http_client=http_client, outputs_dir=str(outputs_dir), chunk_size_bytes=16)
    client = InMemoryOrchestrationClient(result_set=ResultSet(items=(_url_item("http://store.test/job-1.tar.gz"),)))
    timeline: list[dict[str, object]] = []

    result = retriever.job_retrieve_results(
        client=client,
        handle=JobHandle(job_id="job-1"),
        deadline=WorkflowDeadline.deadline_start(300.0),
        timeline=timeline,
    )

    assert result.output_path == str(outputs_dir / "job-1")
    assert result.archive_paths == (str(outputs_dir / "job-1.tar.gz"),)
    assert result.file_count == 1
    assert (outputs_dir / "job-1" / "output.txt").read_bytes() == b"hello"
    assert os.path.isfile(outputs_dir / "job-1.tar.gz")
    assert [(event["stage"], event["status"]) for event in timeline] == [
        ("retrieve", "started"),
        ("download", "completed"),
        ("extract", "completed"),
        ("retrieve", "completed"),
    ]


def test_jobs_result_retriever_extracts_every_result_item(tmp_path, tar_gz_builder) -> None:
    http_client = httpx.Client(
        transport=_archive_transport(
            {
                "/first.tar.gz": tar_gz_builder([("a.txt", b"first", 0o644)]),
                "/second.tar.gz": tar_gz_builder([("b.txt", b"second", 0o644)]),
            }
        )
    )
    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(http_client=http_client, outputs_dir=str(outputs_dir))
    client = InMemoryOrchestrationClient(
        result_set=ResultSet(
            items=(
                _url_item("http://store.test/first.tar.gz"),
                _url_item("http://store.test/second.tar.gz"),
            )
        )
    )

    result = retriever.job_retrieve_results(
        client=client,
        handle=JobHandle(job_id="job-1"),
        deadline=WorkflowDeadline.deadline_start(300.0),
    )

    assert result.archive_paths == (str(outputs_dir / "job-1.tar.gz"), str(outputs_dir / "job-1-1.tar.gz"))
    assert (outputs_dir / "job-1" / "a.txt").read_bytes() == b"first"
    assert (outputs_dir / "job-1" / "b.txt").read_bytes() == b"second"


def test_jobs_result_retriever_missing_url_creates_no_files(tmp_path) -> None:
    """Reject an item without a URL before creating any directory or file.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate error type and untouched filesystem.

    Raises:
        AssertionError: Raised when files are created for malformed results.
    """

    http_client = httpx.Client(transport=_archive_transport({}))
    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(http_client=http_client, outputs_dir=str(outputs_dir))
    client = InMemoryOrchestrationClient(
        result_set=ResultSet(items=(ResultItem(item_type="urlDownload", params={"Path": "/outputs"}),))
    )

    with pytest.raises(MalformedResultError, match="has no string URL parameter"):
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )

    assert not outputs_dir.exists()


def test_jobs_result_retriever_non_string_url_is_malformed() -> None:
    retriever = JobResultRetriever(http_client=httpx.Client(transport=_archive_transport({})))

    with pytest.raises(MalformedResultError):
        retriever.job_extract_download_url(ResultItem(item_type="urlDownload", params={"URL": 42}))


def test_jobs_result_retriever_empty_result_set_is_malformed(tmp_path) -> None:
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=_archive_transport({})),
        outputs_dir=str(tmp_path / "outputs"),
    )

    with pytest.raises(MalformedResultError, match="without result items"):
        retriever.job_retrieve_results(
            client=InMemoryOrchestrationClient(result_set=ResultSet()),
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )

    assert not (tmp_path / "outputs").exists()


def test_jobs_result_retriever_bad_status_removes_partial_archive(tmp_path) -> None:
    """Raise download error with status and leave no archive behind.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        None: Assertions validate error payload and cleanup.

    Raises:
        AssertionError: Raised when the partial archive survives.
    """

    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=_archive_transport({})),
        outputs_dir=str(outputs_dir),
    )
    client = InMemoryOrchestrationClient(result_set=ResultSet(items=(_url_item("http://store.test/gone.tar.gz"),)))

    with pytest.raises(DownloadError, match="bad status: 404") as raised:
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )

    assert raised.value.status_code == 404
    assert not (outputs_dir / "job-1.tar.gz").exists()


def test_jobs_result_retriever_transport_failure_raises_download_error(tmp_path) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=httpx.MockTransport(_handler)),
        outputs_dir=str(outputs_dir),
    )
    client = InMemoryOrchestrationClient(result_set=ResultSet(items=(_url_item("http://store.test/job-1.tar.gz"),)))

    with pytest.raises(DownloadError, match="error making GET request"):
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )

    assert not (outputs_dir / "job-1.tar.gz").exists()


def test_jobs_result_retriever_listing_failure_propagates(tmp_path) -> None:
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=_archive_transport({})),
        outputs_dir=str(tmp_path / "outputs"),
    )
    client = InMemoryOrchestrationClient(result_set=ResultsError("HTTP 500", status_code=500, retryable=True))

    with pytest.raises(ResultsError, match="HTTP 500"):
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )


def test_jobs_result_retriever_outputs_path_clash_raises_output_write_error(tmp_path, tar_gz_builder) -> None:
    outputs_path = tmp_path / "outputs"
    outputs_path.write_bytes(b"not a directory")
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=_archive_transport({"/job-1.tar.gz": tar_gz_builder([])})),
        outputs_dir=str(outputs_path),
    )
    client = InMemoryOrchestrationClient(result_set=ResultSet(items=(_url_item("http://store.test/job-1.tar.gz"),)))

    with pytest.raises(OutputWriteError, match="error creating outputs directory"):
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(300.0),
        )


class _StallingByteStream(httpx.SyncByteStream):
    """Response body that stalls past the deadline before the connection drops."""

    def __init__(self, fake_clock, stall_seconds: float):
        self._fake_clock = fake_clock
        self._stall_seconds = stall_seconds

    def __iter__(self):
        yield b"partial"
        self._fake_clock.sleep(self._stall_seconds)
        raise httpx.RemoteProtocolError("peer closed connection without sending complete message body")


def test_jobs_result_retriever_connection_drop_after_deadline_raises_timed_out(tmp_path, fake_clock) -> None:
    """Report a body cut off after the deadline as workflow timeout.

    Args:
        tmp_path: Pytest temporary directory fixture.
        fake_clock: Deterministic clock fixture.

    Returns:
        None: Assertions validate timeout mapping and partial file cleanup.

    Raises:
        AssertionError: Raised when the drop is reported as a plain download error.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, stream=_StallingByteStream(fake_clock, stall_seconds=10.0))

    outputs_dir = tmp_path / "outputs"
    retriever = JobResultRetriever(
        http_client=httpx.Client(transport=httpx.MockTransport(_handler)),
        outputs_dir=str(outputs_dir),
        chunk_size_bytes=4,
    )
    client = InMemoryOrchestrationClient(result_set=ResultSet(items=(_url_item("http://store.test/job-1.tar.gz"),)))

    with pytest.raises(WorkflowTimedOutError, match="during result download") as raised:
        retriever.job_retrieve_results(
            client=client,
            handle=JobHandle(job_id="job-1"),
            deadline=WorkflowDeadline.deadline_start(5.0, clock=fake_clock.clock),
        )

    assert raised.value.job_id == "job-1"
    assert not (outputs_dir / "job-1.tar.gz").exists()


def test_jobs_result_retriever_deadline_watchdog_unblocks_stalled_read() -> None:
    """Shut down a connection whose body stalls once the remaining budget is spent.

    Returns:
        None: Assertions validate that the blocked read returns end-of-stream.

    Raises:
        AssertionError: Raised when the read stays blocked.
    """

    reader_socket, writer_socket = socket.socketpair()
    try:
        reader_socket.settimeout(5.0)
        watchdog = job_start_deadline_watchdog(connection_socket=reader_socket, remaining_seconds=0.05)

        assert watchdog is not None
        assert reader_socket.recv(1) == b""
        watchdog.join(timeout=1.0)
        assert not watchdog.is_alive()
    finally:
        reader_socket.close()
        writer_socket.close()


def test_jobs_result_retriever_deadline_watchdog_skipped_without_socket() -> None:
    assert job_start_deadline_watchdog(connection_socket=None, remaining_seconds=1.0) is None
