"""Remote job orchestration: generic poller plus task and FindAll flavors."""

from claimcheck.jobs.findall_client import FindAllClient, FindAllFlavor
from claimcheck.jobs.poller import JobFlavor, JobPoller
from claimcheck.jobs.schemas import (
    DeepResearchResult,
    FindAllResult,
    JobHandle,
    JobOutcome,
    JobState,
    TaskRunResult,
)
from claimcheck.jobs.task_client import TaskClient, TaskRunFlavor

__all__ = [
    "DeepResearchResult",
    "FindAllClient",
    "FindAllFlavor",
    "FindAllResult",
    "JobFlavor",
    "JobHandle",
    "JobOutcome",
    "JobPoller",
    "JobState",
    "TaskClient",
    "TaskRunFlavor",
    "TaskRunResult",
]
