"""Task run client: structured tasks and deep research.

A task run is created with ``POST /v1/tasks/runs`` and its result fetched
from ``GET /v1/tasks/runs/{run_id}/result`` until the run reports
``completed``. Deep research is the same flow on the ``ultra`` processor.

Usage:
    client = TaskClient(http, config)
    result = await client.run_task("Summarise ...", output_schema=schema)
    report = await client.run_deep_research("Investigate ...")
"""

import asyncio
import json
from typing import Any, Optional, Union

import structlog

from claimcheck.client.bounded_http import BoundedHttpClient
from claimcheck.client.parallel_api import (
    ParallelEndpoints,
    api_headers,
    request_limits_for,
    require_api_key,
    retry_policy_for,
)
from claimcheck.config.settings import ServiceConfig
from claimcheck.jobs.poller import JobFlavor, JobPoller
from claimcheck.jobs.schemas import (
    DeepResearchResult,
    JobOutcome,
    TaskRunResult,
    status_of_payload,
)

TASK_INPUT_LIMIT = 4000
DEEP_RESEARCH_PROCESSOR = "ultra"

_FAILED_STATUSES = {"failed", "cancelled", "error"}

OutputSchema = Union[str, dict[str, Any], None]


def coerce_output_schema(output_schema: OutputSchema) -> OutputSchema:
    """Parse a JSON-object string into a dict; leave prose schemas as text."""
    if isinstance(output_schema, str):
        text = output_schema.strip()
        if not text:
            return None
        if text.startswith("{"):
            try:
                parsed = json.loads(text)
            except ValueError:
                return text
            if isinstance(parsed, dict):
                return parsed
        return text
    return output_schema or None


class TaskRunFlavor(JobFlavor):
    """Task run submit/poll wiring for one processor and output schema."""

    name = "task"

    def __init__(
        self,
        http: BoundedHttpClient,
        config: ServiceConfig,
        *,
        processor: str = "base",
        output_schema: OutputSchema = None,
    ) -> None:
        self.http = http
        self.config = config
        self.processor = processor
        self.output_schema = coerce_output_schema(output_schema)
        self.poll_ms = config.task_poll_ms
        self._endpoints = ParallelEndpoints(config.api_root)
        self._limits = request_limits_for(config)

    async def submit(self, job_input: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "input": str(job_input or "")[:TASK_INPUT_LIMIT],
            "processor": self.processor,
        }
        if self.output_schema:
            body["task_spec"] = {"output_schema": self.output_schema}
        return await self.http.request_json(
            "POST",
            self._endpoints.task_runs,
            headers=api_headers(self.config),
            json=body,
            limits=self._limits,
            error_label="Task create",
        )

    async def fetch(self, job_id: str) -> dict[str, Any]:
        return await self.http.request_json(
            "GET",
            self._endpoints.task_result(job_id),
            headers=api_headers(self.config),
            limits=self._limits,
            error_label="Task result",
        )

    def extract_id(self, payload: dict[str, Any]) -> Optional[str]:
        for key in ("run_id", "id", "runId"):
            if payload.get(key):
                return str(payload[key])
        return None

    def is_terminal(self, payload: dict[str, Any]) -> bool:
        return status_of_payload(payload) == "completed"

    def is_failed(self, payload: dict[str, Any]) -> bool:
        return status_of_payload(payload) in _FAILED_STATUSES

    def timeout_payload(self) -> dict[str, Any]:
        return {"status": "timeout", "output": None}


class TaskClient:
    """Runs task and deep-research jobs through the shared JobPoller."""

    def __init__(
        self,
        http: BoundedHttpClient,
        config: ServiceConfig,
        poller: Optional[JobPoller] = None,
    ) -> None:
        """Initialize TaskClient.

        Args:
            http: Bounded HTTP client shared with the rest of the request.
            config: Service configuration (API root, key, polling defaults).
            poller: Pre-built poller. Built from config if not provided.
        """
        self.http = http
        self.config = config
        self.poller = poller or JobPoller(
            retry_policy_for(config),
            poll_ms=config.task_poll_ms,
            max_wait_ms=config.max_wait_ms,
        )
        self._logger = structlog.get_logger().bind(component="TaskClient")

    async def run_outcome(
        self,
        job_input: str,
        *,
        output_schema: OutputSchema = None,
        processor: str = "base",
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> JobOutcome:
        """Submit and poll one task run; returns the raw outcome.

        Raises:
            InternalError: No API key configured.
            Submission failures once retries are exhausted.
        """
        require_api_key(self.config)
        flavor = TaskRunFlavor(
            self.http,
            self.config,
            processor=processor,
            output_schema=output_schema,
        )
        self._logger.info(
            "task_run_started",
            processor=processor,
            input_chars=len(job_input or ""),
            structured=bool(flavor.output_schema),
        )
        return await self.poller.run(
            flavor,
            job_input,
            poll_ms=poll_ms,
            max_wait_ms=max_wait_ms,
            cancel_event=cancel_event,
        )

    async def run_task(
        self,
        job_input: str,
        output_schema: OutputSchema = None,
        processor: str = "base",
        *,
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
    ) -> TaskRunResult:
        """Run a structured task to completion or timeout.

        Raises:
            The poll failure when the run could not be tracked to an end.
        """
        outcome = await self.run_outcome(
            job_input,
            output_schema=output_schema,
            processor=processor,
            poll_ms=poll_ms,
            max_wait_ms=max_wait_ms,
        )
        outcome.raise_for_failure()
        return TaskRunResult(
            status=outcome.status,
            run_id=outcome.job_id,
            output=outcome.payload.get("output"),
        )

    async def run_deep_research(
        self,
        job_input: str,
        *,
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
    ) -> DeepResearchResult:
        """Multi-hop research run on the ultra processor."""
        outcome = await self.run_outcome(
            job_input,
            processor=DEEP_RESEARCH_PROCESSOR,
            poll_ms=poll_ms,
            max_wait_ms=max_wait_ms,
        )
        outcome.raise_for_failure()
        output = outcome.payload.get("output")
        content: Any = output
        basis: list[Any] = []
        if isinstance(output, dict):
            content = output.get("content", output)
            raw_basis = output.get("basis")
            basis = raw_basis if isinstance(raw_basis, list) else []
        return DeepResearchResult(
            status=outcome.status,
            run_id=outcome.job_id,
            content=content,
            basis=basis,
        )
