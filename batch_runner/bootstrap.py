"""Application bootstrap wiring for startup validation and dependency assembly."""

import httpx

from batch_runner.adapters import OrchestrationHttpClient
from batch_runner.config import AppSettings
from batch_runner.jobs import (
    BatchJobWorkflowOrchestrator,
    JobLifecyclePoller,
    JobResultRetriever,
    LifecyclePollerConfig,
    WorkflowConfig,
)

_USER_AGENT = "batch-runner/1.0 (Python/httpx)"


def bootstrap_create_http_client(settings: AppSettings) -> httpx.Client:
    """Create the pooled HTTP client shared by API calls and result downloads.

    Args:
        settings: Validated runtime settings.

    Returns:
        httpx.Client: Pooled client; the caller owns closing it.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return httpx.Client(
        headers={"User-Agent": _USER_AGENT},
        timeout=settings.orchestrator_request_timeout_seconds,
    )


def bootstrap_create_workflow_orchestrator(
    settings: AppSettings,
    http_client: httpx.Client,
) -> BatchJobWorkflowOrchestrator:
    """Build the workflow orchestrator for one CLI run.

    Args:
        settings: Validated runtime settings.
        http_client: Pooled HTTP client owned by the caller.

    Returns:
        BatchJobWorkflowOrchestrator: Fully wired workflow orchestrator instance.

    Raises:
        ValueError: Raised when settings values are rejected by components.
    """

    orchestration_client = OrchestrationHttpClient(
        base_url=settings.orchestrator_base_url,
        request_timeout_seconds=settings.orchestrator_request_timeout_seconds,
        http_client=http_client,
    )
    poller = JobLifecyclePoller(
        client=orchestration_client,
        config=LifecyclePollerConfig(
            poll_interval_seconds=settings.workflow_poll_interval_seconds,
            status_retry_attempts=settings.workflow_status_retry_attempts,
            retry_backoff_base_seconds=settings.workflow_status_retry_backoff_base_seconds,
            retry_backoff_max_seconds=settings.workflow_status_retry_backoff_max_seconds,
        ),
    )
    retriever = JobResultRetriever(
        http_client=http_client,
        outputs_dir=settings.workflow_outputs_dir,
        request_timeout_seconds=settings.orchestrator_request_timeout_seconds,
    )
    return BatchJobWorkflowOrchestrator(
        client=orchestration_client,
        poller=poller,
        retriever=retriever,
        config=WorkflowConfig(deadline_seconds=settings.workflow_deadline_seconds),
    )
