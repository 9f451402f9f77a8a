"""Adapter layer package for orchestration service integration boundaries."""

from .in_memory import InMemoryOrchestrationClient
from .interfaces import OrchestrationClientPort
from .orchestration_errors import (
	OrchestrationClientError,
	QueryError,
	ResultsError,
	SubmissionError,
)
from .orchestration_http import OrchestrationHttpClient

__all__ = [
	"InMemoryOrchestrationClient",
	"OrchestrationClientError",
	"OrchestrationClientPort",
	"OrchestrationHttpClient",
	"QueryError",
	"ResultsError",
	"SubmissionError",
]
