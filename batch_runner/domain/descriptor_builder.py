"""Job descriptor builder for the copy-file-contents job."""

from __future__ import annotations

import os
from typing import Callable, Final

from .errors import LocalEnvironmentError
from .models import (
    InputSource,
    JobDescriptor,
    ResourcesConfig,
    ResultPath,
    SpecConfig,
    TaskDescriptor,
)

JOB_NAME: Final[str] = "copy-file-contents"
JOB_NAMESPACE: Final[str] = "default"
JOB_TYPE: Final[str] = "batch"
JOB_COUNT: Final[int] = 1
JOB_PRIORITY: Final[int] = 50

ENGINE_TYPE: Final[str] = "docker"
ENGINE_IMAGE: Final[str] = "ubuntu:latest"
ENGINE_ENTRYPOINT: Final[tuple[str, ...]] = (
    "/bin/sh",
    "-c",
    "cat /tmp/input.txt > /outputs/output.txt",
)

INPUT_SOURCE_TYPE: Final[str] = "localDirectory"
INPUT_TARGET_PATH: Final[str] = "/tmp"
PUBLISHER_TYPE: Final[str] = "local"
RESULT_PATH_NAME: Final[str] = "outputs"
RESULT_PATH_TARGET: Final[str] = "/outputs"

RESOURCES: Final[ResourcesConfig] = ResourcesConfig(cpu="0.5", memory="100m", gpu="0")


def domain_resolve_inputs_path(
    inputs_dir: str = "inputs",
    cwd_provider: Callable[[], str] | None = None,
) -> str:
    """Resolve the input directory to an absolute path.

    Args:
        inputs_dir: Input directory, absolute or relative to the working directory.
        cwd_provider: Optional working directory provider.

    Returns:
        str: Normalized absolute input directory path.

    Raises:
        ValueError: Raised when inputs_dir is blank.
        LocalEnvironmentError: Raised when the working directory cannot be resolved.
    """

    normalized_inputs_dir = inputs_dir.strip()
    if not normalized_inputs_dir:
        raise ValueError("inputs_dir must not be blank")
    if os.path.isabs(normalized_inputs_dir):
        return os.path.normpath(normalized_inputs_dir)

    try:
        working_directory = (cwd_provider or os.getcwd)()
    except OSError as error:
        raise LocalEnvironmentError(f"Failed to get current working directory: {error}") from error

    if not os.path.isabs(working_directory):
        raise LocalEnvironmentError(f"Working directory is not absolute: {working_directory}")
    return os.path.normpath(os.path.join(working_directory, normalized_inputs_dir))


def domain_build_job_descriptor(
    inputs_dir: str = "inputs",
    cwd_provider: Callable[[], str] | None = None,
) -> JobDescriptor:
    """Build the job descriptor mounting a local directory into the container.

    Args:
        inputs_dir: Local directory exposed read-write at `/tmp` inside the task.
        cwd_provider: Optional working directory provider.

    Returns:
        JobDescriptor: Complete single-task batch job descriptor.

    Raises:
        LocalEnvironmentError: Raised when the input path cannot be resolved.
    """

    inputs_path = domain_resolve_inputs_path(inputs_dir=inputs_dir, cwd_provider=cwd_provider)
    task = TaskDescriptor(
        name=JOB_NAME,
        engine=SpecConfig(
            spec_type=ENGINE_TYPE,
            params={"Image": ENGINE_IMAGE, "Entrypoint": list(ENGINE_ENTRYPOINT)},
        ),
        input_sources=(
            InputSource(
                source=SpecConfig(
                    spec_type=INPUT_SOURCE_TYPE,
                    params={"SourcePath": inputs_path, "ReadWrite": True},
                ),
                target=INPUT_TARGET_PATH,
            ),
        ),
        publisher=SpecConfig(spec_type=PUBLISHER_TYPE),
        result_paths=(ResultPath(name=RESULT_PATH_NAME, path=RESULT_PATH_TARGET),),
        resources=RESOURCES,
    )
    return JobDescriptor(
        name=JOB_NAME,
        namespace=JOB_NAMESPACE,
        job_type=JOB_TYPE,
        count=JOB_COUNT,
        priority=JOB_PRIORITY,
        meta={},
        labels={},
        tasks=(task,),
    )
