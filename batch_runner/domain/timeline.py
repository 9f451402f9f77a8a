"""Lifecycle timeline event helper shared by workflow stages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_lifecycle_event(
    stage: str,
    status: str,
    job_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Build one structured lifecycle event payload.

    Args:
        stage: Workflow stage name (`submit`, `poll`, `download`, ...).
        status: Stage status marker.
        job_id: Job identifier once known.
        details: Optional structured details object.

    Returns:
        dict[str, object]: Structured timeline event.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    event_payload: dict[str, object] = {
        "stage": stage,
        "status": status,
        "at_utc": datetime.now(timezone.utc).isoformat(),
    }
    if job_id is not None:
        event_payload["job_id"] = job_id
    if details is not None:
        event_payload["details"] = details
    return event_payload
