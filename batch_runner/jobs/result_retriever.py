"""Result retriever downloading and unpacking completed job archives."""

from __future__ import annotations

import os
import socket
import threading
from typing import Final

import httpx
import structlog

from batch_runner.adapters import OrchestrationClientPort
from batch_runner.domain import (
    JobHandle,
    ResultItem,
    WorkflowDeadline,
    WorkflowTimedOutError,
    domain_build_lifecycle_event,
)

from .archive_extraction import DIRECTORY_MODE, job_extract_tar_gz
from .interfaces import RetrievalResult
from .retrieval_errors import DownloadError, MalformedResultError, OutputWriteError

logger = structlog.get_logger(__name__)


class JobResultRetriever:
    """Download every result archive of a completed job and extract it locally.

    Archives land at `<outputs>/<job_id>.tar.gz` (then `<job_id>-1.tar.gz`, ...)
    and all of them are extracted into `<outputs>/<job_id>`.
    """

    _DOWNLOAD_URL_PARAM: Final[str] = "URL"

    def __init__(
        self,
        http_client: httpx.Client,
        outputs_dir: str = "outputs",
        request_timeout_seconds: float = 30.0,
        chunk_size_bytes: int = 64 * 1024,
    ):
        """Initialize result retriever.

        Args:
            http_client: Pooled HTTP client used for archive downloads.
            outputs_dir: Directory receiving archives and extracted trees.
            request_timeout_seconds: Upper bound for one blocking network operation.
            chunk_size_bytes: Streaming chunk size.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        if http_client is None:
            raise ValueError("http_client must not be None")
        if not outputs_dir.strip():
            raise ValueError("outputs_dir must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if chunk_size_bytes < 1:
            raise ValueError("chunk_size_bytes must be >= 1")

        self._http_client = http_client
        self._outputs_dir = outputs_dir.strip()
        self._request_timeout_seconds = float(request_timeout_seconds)
        self._chunk_size_bytes = chunk_size_bytes

    def job_retrieve_results(
        self,
        client: OrchestrationClientPort,
        handle: JobHandle,
        deadline: WorkflowDeadline,
        timeline: list[dict[str, object]] | None = None,
    ) -> RetrievalResult:
        """List, download and extract all result archives of a completed job.

        Args:
            client: Orchestration client used to list results.
            handle: Completed job handle.
            deadline: Workflow deadline.
            timeline: Optional mutable lifecycle timeline.

        Returns:
            RetrievalResult: Extraction destination and downloaded archive paths.

        Raises:
            ResultsError: Raised when listing results fails.
            MalformedResultError: Raised when the result set is empty or an item lacks a URL.
            DownloadError: Raised when an archive download fails.
            ArchiveCorruptError: Raised when an archive cannot be extracted.
            OutputWriteError: Raised when local output files cannot be written.
            WorkflowTimedOutError: Raised when the deadline elapsed.
        """

        stage_timeline = timeline if timeline is not None else []
        stage_timeline.append(domain_build_lifecycle_event(stage="retrieve", status="started", job_id=handle.job_id))

        result_set = client.client_list_results(handle=handle, deadline=deadline)
        if not result_set.items:
            raise MalformedResultError(f"job {handle.job_id} completed without result items")
        download_urls = [
            self.job_extract_download_url(item=item, item_index=item_index)
            for item_index, item in enumerate(result_set.items)
        ]

        outputs_root = os.path.abspath(self._outputs_dir)
        try:
            os.makedirs(outputs_root, mode=DIRECTORY_MODE, exist_ok=True)
        except OSError as error:
            raise OutputWriteError(f"error creating outputs directory {outputs_root}: {error}") from error
        file_stem = _job_safe_file_stem(handle.job_id)
        output_path = os.path.join(outputs_root, file_stem)

        archive_paths: list[str] = []
        file_count = 0
        for item_index, download_url in enumerate(download_urls):
            archive_name = f"{file_stem}.tar.gz" if item_index == 0 else f"{file_stem}-{item_index}.tar.gz"
            archive_path = os.path.join(outputs_root, archive_name)
            byte_count = self._job_download_archive(
                download_url=download_url,
                archive_path=archive_path,
                deadline=deadline,
                job_id=handle.job_id,
            )
            stage_timeline.append(
                domain_build_lifecycle_event(
                    stage="download",
                    status="completed",
                    job_id=handle.job_id,
                    details={"archive_path": archive_path, "byte_count": byte_count, "item_index": item_index},
                )
            )
            logger.info("results_downloaded", job_id=handle.job_id, archive_path=archive_path, byte_count=byte_count)

            extraction_result = job_extract_tar_gz(source_path=archive_path, destination_path=output_path)
            file_count += extraction_result.file_count
            archive_paths.append(archive_path)
            stage_timeline.append(
                domain_build_lifecycle_event(
                    stage="extract",
                    status="completed",
                    job_id=handle.job_id,
                    details={
                        "destination_path": extraction_result.destination_path,
                        "file_count": extraction_result.file_count,
                        "directory_count": extraction_result.directory_count,
                        "skipped_entries": list(extraction_result.skipped_entries),
                    },
                )
            )
            if extraction_result.skipped_entries:
                logger.warning(
                    "archive_entries_skipped",
                    job_id=handle.job_id,
                    skipped_entries=list(extraction_result.skipped_entries),
                )

        stage_timeline.append(domain_build_lifecycle_event(stage="retrieve", status="completed", job_id=handle.job_id))
        return RetrievalResult(output_path=output_path, archive_paths=tuple(archive_paths), file_count=file_count)

    def job_extract_download_url(self, item: ResultItem, item_index: int = 0) -> str:
        """Return the download URL parameter of one result item.

        Args:
            item: Result item.
            item_index: Item position for error messages.

        Returns:
            str: Non-blank download URL.

        Raises:
            MalformedResultError: Raised when the URL parameter is absent or not a string.
        """

        download_url = item.params.get(self._DOWNLOAD_URL_PARAM)
        if not isinstance(download_url, str) or not download_url.strip():
            raise MalformedResultError(
                f"result item {item_index} (type={item.item_type or 'UNKNOWN'}) has no string URL parameter"
            )
        return download_url.strip()

    def _job_download_archive(
        self,
        download_url: str,
        archive_path: str,
        deadline: WorkflowDeadline,
        job_id: str,
    ) -> int:
        """Stream one archive to disk, removing the partial file on failure.

        Args:
            download_url: Archive download URL.
            archive_path: Destination archive path.
            deadline: Workflow deadline.
            job_id: Job identifier for diagnostics.

        Returns:
            int: Number of bytes written.

        Raises:
            DownloadError: Raised for non-200 status or transport failures.
            OutputWriteError: Raised when the archive file cannot be written.
            WorkflowTimedOutError: Raised when the deadline elapsed mid-download.
        """

        timeout_seconds = deadline.deadline_request_timeout(self._request_timeout_seconds, job_id=job_id)
        try:
            return self._job_stream_to_file(
                download_url=download_url,
                archive_path=archive_path,
                timeout_seconds=timeout_seconds,
                deadline=deadline,
                job_id=job_id,
            )
        except httpx.TimeoutException as error:
            _job_remove_partial_file(archive_path)
            if deadline.deadline_is_expired():
                raise WorkflowTimedOutError(
                    f"workflow deadline of {deadline.deadline_seconds:g}s elapsed during result download",
                    deadline_seconds=deadline.deadline_seconds,
                    job_id=job_id,
                ) from error
            raise DownloadError("result download timed out") from error
        except httpx.TransportError as error:
            _job_remove_partial_file(archive_path)
            if deadline.deadline_is_expired():
                raise WorkflowTimedOutError(
                    f"workflow deadline of {deadline.deadline_seconds:g}s elapsed during result download",
                    deadline_seconds=deadline.deadline_seconds,
                    job_id=job_id,
                ) from error
            raise DownloadError(f"error making GET request: {error}") from error
        except (DownloadError, WorkflowTimedOutError):
            _job_remove_partial_file(archive_path)
            raise
        except OSError as error:
            _job_remove_partial_file(archive_path)
            raise OutputWriteError(f"error writing to file {archive_path}: {error}") from error

    def _job_stream_to_file(
        self,
        download_url: str,
        archive_path: str,
        timeout_seconds: float,
        deadline: WorkflowDeadline,
        job_id: str,
    ) -> int:
        byte_count = 0
        with open(archive_path, "wb") as archive_stream:
            with self._http_client.stream("GET", download_url, timeout=timeout_seconds) as response:
                if response.status_code != httpx.codes.OK:
                    raise DownloadError(
                        f"bad status: {response.status_code} {response.reason_phrase}".rstrip(),
                        status_code=response.status_code,
                    )
                watchdog = job_start_deadline_watchdog(
                    connection_socket=_job_response_socket(response),
                    remaining_seconds=deadline.deadline_remaining_seconds(),
                )
                try:
                    for chunk in response.iter_bytes(chunk_size=self._chunk_size_bytes):
                        archive_stream.write(chunk)
                        byte_count += len(chunk)
                        deadline.deadline_raise_if_expired(job_id=job_id)
                finally:
                    if watchdog is not None:
                        watchdog.cancel()
                # body may end early after a watchdog shutdown
                deadline.deadline_raise_if_expired(job_id=job_id)
        return byte_count


def _job_safe_file_stem(job_id: str) -> str:
    """Return a single path component derived from the job identifier."""

    file_stem = job_id.strip().replace("/", "_").replace("\\", "_")
    if file_stem in ("", ".", ".."):
        raise MalformedResultError(f"job identifier cannot be used as a file name: {job_id!r}")
    return file_stem


def _job_remove_partial_file(archive_path: str) -> None:
    try:
        os.remove(archive_path)
    except FileNotFoundError:
        pass


def job_start_deadline_watchdog(
    connection_socket: socket.socket | None,
    remaining_seconds: float,
) -> threading.Timer | None:
    """Shut down a streaming connection once the workflow budget is spent.

    A blocked body read returns as soon as the socket is shut down, which
    bounds a slowly trickling download by the deadline rather than by the
    read timeout fixed at request start.

    Args:
        connection_socket: Socket carrying the response body, when exposed by the transport.
        remaining_seconds: Budget left when the body starts streaming.

    Returns:
        threading.Timer | None: Started watchdog to cancel after the body is read, or `None`
        when the transport exposes no socket.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if connection_socket is None:
        return None
    watchdog = threading.Timer(max(0.0, remaining_seconds), _job_shutdown_socket, args=(connection_socket,))
    watchdog.daemon = True
    watchdog.start()
    return watchdog


def _job_response_socket(response: httpx.Response) -> socket.socket | None:
    network_stream = response.extensions.get("network_stream")
    if network_stream is None:
        return None
    connection_socket = network_stream.get_extra_info("socket")
    return connection_socket if isinstance(connection_socket, socket.socket) else None


def _job_shutdown_socket(connection_socket: socket.socket) -> None:
    try:
        connection_socket.shutdown(socket.SHUT_RDWR)
    except OSError:
        # reader already closed the connection
        pass
