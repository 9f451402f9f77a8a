"""Typed domain models for batch job descriptors, status snapshots and results.

The descriptor types mirror the orchestration service job schema. Each type
knows how to render itself to the wire payload so the HTTP client stays a thin
transport layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


@dataclass(frozen=True)
class SpecConfig:
    """Typed plug-in configuration shared by engines, sources and publishers.

    Attributes:
        spec_type: Plug-in type name, for example `docker` or `localDirectory`.
        params: Plug-in specific parameter mapping.
    """

    spec_type: str
    params: dict[str, Any] = field(default_factory=dict)

    def spec_to_payload(self) -> dict[str, Any]:
        """Render spec config into service wire payload.

        Returns:
            dict[str, Any]: Wire payload with `Type` and `Params` keys.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {"Type": self.spec_type, "Params": dict(self.params)}


@dataclass(frozen=True)
class InputSource:
    """One input mount declared on a task.

    Attributes:
        source: Source plug-in configuration.
        target: Mount path inside the task execution environment.
    """

    source: SpecConfig
    target: str

    def input_to_payload(self) -> dict[str, Any]:
        return {"Source": self.source.spec_to_payload(), "Target": self.target}


@dataclass(frozen=True)
class ResultPath:
    """Logical output name and in-container directory advertised to the publisher.

    Attributes:
        name: Logical result name.
        path: Absolute path inside the task execution environment.
    """

    name: str
    path: str

    def result_path_to_payload(self) -> dict[str, str]:
        return {"Name": self.name, "Path": self.path}


@dataclass(frozen=True)
class ResourcesConfig:
    """Task resource limits expressed as service quantity strings.

    Attributes:
        cpu: CPU quantity, for example `0.5`.
        memory: Memory quantity, for example `100m`.
        gpu: GPU count quantity.
    """

    cpu: str
    memory: str
    gpu: str

    def resources_to_payload(self) -> dict[str, str]:
        return {"CPU": self.cpu, "Memory": self.memory, "GPU": self.gpu}


@dataclass(frozen=True)
class TaskDescriptor:
    """One execution unit within a job.

    Attributes:
        name: Task name.
        engine: Execution engine configuration (image, entrypoint).
        input_sources: Ordered input mounts.
        publisher: Output publishing configuration.
        result_paths: Ordered result paths collected by the publisher.
        resources: Resource limits.
    """

    name: str
    engine: SpecConfig
    input_sources: tuple[InputSource, ...]
    publisher: SpecConfig
    result_paths: tuple[ResultPath, ...]
    resources: ResourcesConfig

    def task_to_payload(self) -> dict[str, Any]:
        """Render task descriptor into service wire payload.

        Returns:
            dict[str, Any]: Task wire payload.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "Name": self.name,
            "Engine": self.engine.spec_to_payload(),
            "InputSources": [input_source.input_to_payload() for input_source in self.input_sources],
            "Publisher": self.publisher.spec_to_payload(),
            "ResultPaths": [result_path.result_path_to_payload() for result_path in self.result_paths],
            "Resources": self.resources.resources_to_payload(),
        }


@dataclass(frozen=True)
class JobDescriptor:
    """Complete description of one batch job submitted to the orchestration service.

    Attributes:
        name: Job name.
        namespace: Service namespace.
        job_type: Job type, `batch` for run-to-completion jobs.
        count: Desired instance count.
        priority: Scheduling priority.
        meta: Free-form metadata mapping.
        labels: Label mapping used for selection.
        tasks: Ordered task descriptors.
    """

    name: str
    namespace: str
    job_type: str
    count: int
    priority: int
    meta: dict[str, str]
    labels: dict[str, str]
    tasks: tuple[TaskDescriptor, ...]

    def descriptor_to_payload(self) -> dict[str, Any]:
        """Render job descriptor into service wire payload.

        Returns:
            dict[str, Any]: Job wire payload suitable for the submit request body.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "Name": self.name,
            "Namespace": self.namespace,
            "Type": self.job_type,
            "Count": self.count,
            "Priority": self.priority,
            "Meta": dict(self.meta),
            "Labels": dict(self.labels),
            "Tasks": [task.task_to_payload() for task in self.tasks],
        }


class JobStateType(Enum):
    """Job state tags reported by the orchestration service."""

    PENDING = "Pending"
    QUEUED = "Queued"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    STOPPED = "Stopped"
    UNDEFINED = "Undefined"
    UNKNOWN = "Unknown"

    @classmethod
    def state_from_wire(cls, value: object) -> "JobStateType":
        """Map one wire state tag to a known state, falling back to `UNKNOWN`.

        Args:
            value: Raw `StateType` value from the service payload.

        Returns:
            JobStateType: Matching state, or `UNKNOWN` for unrecognized tags.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized_value = value.strip().lower()
        for state in cls:
            if state.value.lower() == normalized_value:
                return state
        return cls.UNKNOWN

    def state_is_terminal(self) -> bool:
        return self in _TERMINAL_JOB_STATES


_TERMINAL_JOB_STATES = frozenset({JobStateType.COMPLETED, JobStateType.FAILED, JobStateType.STOPPED})


@dataclass(frozen=True)
class JobHandle:
    """Opaque identifier returned by job submission.

    Attributes:
        job_id: Service job identifier used for all later queries.
        evaluation_id: Optional scheduler evaluation identifier.
        warnings: Warnings reported by the service at submit time.
    """

    job_id: str
    evaluation_id: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExecutionSummary:
    """Execution detail attached to one job status snapshot.

    Attributes:
        execution_id: Execution identifier.
        node_id: Compute node running the execution.
        compute_state: Compute-side state tag as reported.
        message: Optional compute-side message.
    """

    execution_id: str
    node_id: str
    compute_state: str
    message: str = ""


@dataclass(frozen=True)
class JobStatus:
    """Independent snapshot of one job's state.

    Attributes:
        job_id: Job identifier.
        state: Mapped job state.
        message: Human-readable state message.
        executions: Execution details when requested.
        job_payload: Raw job payload as returned by the service.
    """

    job_id: str
    state: JobStateType
    message: str = ""
    executions: tuple[ExecutionSummary, ...] = ()
    job_payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultItem:
    """One entry in a completed job's result set.

    Attributes:
        item_type: Result item type, for example `urlDownload`.
        params: Parameter mapping carrying the `URL` download link.
    """

    item_type: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResultSet:
    """Ordered result items produced once a job completed.

    Attributes:
        items: Result items in service order.
    """

    items: tuple[ResultItem, ...] = ()
