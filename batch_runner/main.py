"""Main module entrypoint for local runtime execution.

This module validates startup configuration, then either prints the job
descriptor or runs one submit, poll and retrieve workflow.
"""

import argparse
import json
import sys
from typing import Final, Sequence

from batch_runner.adapters import QueryError, SubmissionError
from batch_runner.bootstrap import bootstrap_create_http_client, bootstrap_create_workflow_orchestrator
from batch_runner.config import AppSettings, SettingsLoadError, config_load_settings
from batch_runner.domain import JobHandle, LocalEnvironmentError, WorkflowTimedOutError, domain_build_job_descriptor
from batch_runner.jobs import JobOutcome, WorkflowResult
from batch_runner.observability import observability_configure_logging

EXIT_SUCCESS: Final[int] = 0
EXIT_FATAL: Final[int] = 1
EXIT_JOB_UNSUCCESSFUL: Final[int] = 2
EXIT_RESULTS_UNAVAILABLE: Final[int] = 3


def main(argv: Sequence[str] | None = None) -> None:
    """Run selected runtime command with validated startup configuration.

    Args:
        argv: Optional argument list; defaults to process arguments.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SystemExit: Raised with the command exit status.
    """

    argument_parser = argparse.ArgumentParser(description="Batch job submission workflow runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=("run", "describe"),
        help="Runtime command: `run` submits the job, waits for it and downloads results, "
        "`describe` prints the job submission payload without contacting the service",
        type=str,
    )
    argument_parser.add_argument("--base-url", dest="base_url", type=str, help="Orchestration service base URL override")
    argument_parser.add_argument("--inputs-dir", dest="inputs_dir", type=str, help="Local input directory override")
    argument_parser.add_argument("--outputs-dir", dest="outputs_dir", type=str, help="Local output directory override")
    argument_parser.add_argument(
        "--deadline-seconds",
        dest="deadline_seconds",
        type=float,
        help="Workflow deadline override in seconds",
    )
    argument_parser.add_argument("--log-level", dest="log_level", type=str, help="Log level override")
    parsed_arguments = argument_parser.parse_args(argv)

    try:
        settings = config_load_settings(
            orchestrator_base_url=parsed_arguments.base_url,
            workflow_inputs_dir=parsed_arguments.inputs_dir,
            workflow_outputs_dir=parsed_arguments.outputs_dir,
            workflow_deadline_seconds=parsed_arguments.deadline_seconds,
            log_level=parsed_arguments.log_level,
        )
    except SettingsLoadError as error:
        print(str(error), file=sys.stderr)
        raise SystemExit(EXIT_FATAL) from error

    observability_configure_logging(log_level=settings.log_level, log_format=settings.log_format)

    if parsed_arguments.command == "describe":
        raise SystemExit(main_describe_job(settings))
    raise SystemExit(main_run_workflow(settings))


def main_describe_job(settings: AppSettings) -> int:
    """Print the job submission payload as indented JSON.

    Args:
        settings: Validated runtime settings.

    Returns:
        int: Process exit status.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    try:
        descriptor = domain_build_job_descriptor(inputs_dir=settings.workflow_inputs_dir)
    except LocalEnvironmentError as error:
        print(str(error), file=sys.stderr)
        return EXIT_FATAL

    print(json.dumps({"Job": descriptor.descriptor_to_payload()}, indent=2))
    return EXIT_SUCCESS


def main_run_workflow(settings: AppSettings) -> int:
    """Run one workflow and translate its outcome into an exit status.

    Args:
        settings: Validated runtime settings.

    Returns:
        int: Process exit status.

    Raises:
        RuntimeError: Raised for unexpected failures outside the error taxonomy.
    """

    with bootstrap_create_http_client(settings) as http_client:
        orchestrator = bootstrap_create_workflow_orchestrator(settings=settings, http_client=http_client)
        deadline = orchestrator.job_start_deadline()
        try:
            descriptor = domain_build_job_descriptor(inputs_dir=settings.workflow_inputs_dir)
            workflow_result = orchestrator.job_execute(
                descriptor=descriptor,
                deadline=deadline,
                on_submitted=main_report_submitted,
            )
        except LocalEnvironmentError as error:
            print(str(error), file=sys.stderr)
            return EXIT_FATAL
        except SubmissionError as error:
            print(f"Failed to submit job: {error}", file=sys.stderr)
            return EXIT_FATAL
        except QueryError as error:
            print(f"Failed to get job status: {error}", file=sys.stderr)
            return EXIT_FATAL
        except WorkflowTimedOutError as error:
            job_label = f" for job {error.job_id}" if error.job_id else ""
            print(f"Timed out waiting{job_label}: {error}", file=sys.stderr)
            return EXIT_FATAL

    return main_report_result(workflow_result)


def main_report_submitted(handle: JobHandle) -> None:
    print(f"Job submitted successfully! ID: {handle.job_id}", flush=True)


def main_report_result(workflow_result: WorkflowResult) -> int:
    """Print the final status lines for one workflow result.

    Args:
        workflow_result: Completed workflow result.

    Returns:
        int: Process exit status.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if workflow_result.outcome is JobOutcome.FAILED:
        print(f"Job failed: {workflow_result.message}")
        return EXIT_JOB_UNSUCCESSFUL
    if workflow_result.outcome is JobOutcome.STOPPED:
        print("Job was stopped")
        return EXIT_JOB_UNSUCCESSFUL

    print("Job completed successfully!")
    if workflow_result.retrieval_error is not None:
        print(f"unable to retrieve results: {workflow_result.retrieval_error}")
        return EXIT_RESULTS_UNAVAILABLE
    print(f"Results available in: {workflow_result.output_path}")
    return EXIT_SUCCESS


if __name__ == "__main__":
    main()
