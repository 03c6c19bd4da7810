"""Job domain schemas for the submit/poll state machine.

JobHandle and JobOutcome are runtime records owned by JobPoller. The
per-flavor result models (TaskRunResult, DeepResearchResult, FindAllResult)
are what the pipeline hands back to callers.

State machine:
    SUBMITTED -> POLLING -> COMPLETED | TIMED_OUT | FAILED | CANCELLED

A submit response without a usable id goes straight to COMPLETED.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from claimcheck.errors import UpstreamError


class JobState(str, Enum):
    """Lifecycle of a remote job as seen by the poller."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    CANCELLED = "cancelled"


def status_of_payload(payload: Any) -> Optional[str]:
    """Lower-cased status string from a job payload, if one is present.

    Accepts a top-level ``status`` (string or ``{"status": ...}`` object) or
    a nested ``run.status``.
    """
    if not isinstance(payload, dict):
        return None
    status = payload.get("status")
    if isinstance(status, dict):
        status = status.get("status")
    if status is None and isinstance(payload.get("run"), dict):
        status = payload["run"].get("status")
    if status is None:
        return None
    return str(status).lower()


@dataclass(frozen=True)
class JobHandle:
    """Identifier returned by a submission plus the time it was made."""

    id: Optional[str]
    status: Optional[str]
    payload: dict[str, Any]
    submitted_at: float


@dataclass
class JobOutcome:
    """Terminal result of one submit/poll run."""

    state: JobState
    job_id: Optional[str]
    status: str
    payload: dict[str, Any] = field(default_factory=dict)
    error: Optional[BaseException] = None
    polls: int = 0

    @property
    def ok(self) -> bool:
        return self.state == JobState.COMPLETED

    def raise_for_failure(self) -> None:
        """Re-raise the failure that ended polling, if any."""
        if self.state != JobState.FAILED:
            return
        if self.error is not None:
            raise self.error
        raise UpstreamError(f"Job {self.job_id} failed with status {self.status}")


class TaskRunResult(BaseModel):
    """Structured task run (processor base/core/...)."""

    status: str = Field(..., description="Remote status, or 'timeout'")
    run_id: Optional[str] = Field(default=None, description="Task run identifier")
    output: Any = Field(default=None, description="Run output payload")


class DeepResearchResult(BaseModel):
    """Multi-hop research run (task run on the ultra processor)."""

    status: str = Field(..., description="Remote status, or 'timeout'")
    run_id: Optional[str] = Field(default=None, description="Task run identifier")
    content: Any = Field(default=None, description="Research report content")
    basis: list[Any] = Field(
        default_factory=list,
        description="Citations and reasoning backing the content",
    )


class FindAllResult(BaseModel):
    """Entity discovery run."""

    status: str = Field(..., description="Remote status, or 'timeout'")
    findall_id: Optional[str] = Field(default=None, description="FindAll run identifier")
    results: list[Any] = Field(default_factory=list, description="Matched entities")
