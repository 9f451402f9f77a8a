"""Domain models used across application layer boundaries."""

from .deadline import WorkflowDeadline
from .descriptor_builder import domain_build_job_descriptor, domain_resolve_inputs_path
from .errors import LocalEnvironmentError, WorkflowTimedOutError
from .models import (
	ExecutionSummary,
	InputSource,
	JobDescriptor,
	JobHandle,
	JobStateType,
	JobStatus,
	ResourcesConfig,
	ResultItem,
	ResultPath,
	ResultSet,
	SpecConfig,
	TaskDescriptor,
)
from .timeline import domain_build_lifecycle_event

__all__ = [
	"ExecutionSummary",
	"InputSource",
	"JobDescriptor",
	"JobHandle",
	"JobStateType",
	"JobStatus",
	"LocalEnvironmentError",
	"ResourcesConfig",
	"ResultItem",
	"ResultPath",
	"ResultSet",
	"SpecConfig",
	"TaskDescriptor",
	"WorkflowDeadline",
	"WorkflowTimedOutError",
	"domain_build_job_descriptor",
	"domain_build_lifecycle_event",
	"domain_resolve_inputs_path",
]
