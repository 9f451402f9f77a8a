"""Job layer package for batch job lifecycle orchestration."""

from .archive_extraction import ArchiveExtractionResult, job_extract_tar_gz
from .interfaces import (
	JobOutcome,
	PollerState,
	PollOutcome,
	RetrievalResult,
	WorkflowOrchestratorPort,
	WorkflowResult,
)
from .lifecycle_poller import JobLifecyclePoller, LifecyclePollerConfig
from .result_retriever import JobResultRetriever
from .retrieval_errors import (
	ArchiveCorruptError,
	DownloadError,
	MalformedResultError,
	OutputWriteError,
	ResultRetrievalError,
	UnsafeArchiveEntryError,
)
from .workflow_orchestrator import BatchJobWorkflowOrchestrator, WorkflowConfig

__all__ = [
	"ArchiveCorruptError",
	"ArchiveExtractionResult",
	"BatchJobWorkflowOrchestrator",
	"DownloadError",
	"JobLifecyclePoller",
	"JobOutcome",
	"JobResultRetriever",
	"LifecyclePollerConfig",
	"MalformedResultError",
	"OutputWriteError",
	"PollOutcome",
	"PollerState",
	"ResultRetrievalError",
	"RetrievalResult",
	"UnsafeArchiveEntryError",
	"WorkflowConfig",
	"WorkflowOrchestratorPort",
	"WorkflowResult",
	"job_extract_tar_gz",
]
