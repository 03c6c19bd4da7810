"""FindAll (entity discovery) client: ingest -> run -> poll.

Submission is two calls: the natural-language query is ingested into a
findall spec, then a run is started from that spec. The run is finished once
neither the search nor its enrichments are active.

Usage:
    client = FindAllClient(http, config)
    result = await client.run_findall("Dermatology clinics in Austin, TX")
"""

from typing import Any, Optional

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
from claimcheck.jobs.schemas import FindAllResult

FINDALL_QUERY_LIMIT = 2000
DEFAULT_RESULT_LIMIT = 20


class FindAllFlavor(JobFlavor):
    """FindAll submit/poll wiring."""

    name = "findall"

    def __init__(
        self,
        http: BoundedHttpClient,
        config: ServiceConfig,
        *,
        processor: str = "base",
        result_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self.http = http
        self.config = config
        self.processor = processor
        self.result_limit = result_limit
        self.poll_ms = config.findall_poll_ms
        self._endpoints = ParallelEndpoints(config.api_root)
        self._limits = request_limits_for(config)

    async def _ingest(self, query: str) -> Any:
        return await self.http.request_json(
            "POST",
            self._endpoints.findall_ingest,
            headers=api_headers(self.config),
            json={"query": str(query or "")[:FINDALL_QUERY_LIMIT]},
            limits=self._limits,
            error_label="FindAll ingest",
        )

    async def _start_run(self, findall_spec: Any) -> dict[str, Any]:
        return await self.http.request_json(
            "POST",
            self._endpoints.findall_runs,
            headers=api_headers(self.config),
            json={
                "findall_spec": findall_spec,
                "processor": self.processor,
                "result_limit": self.result_limit,
            },
            limits=self._limits,
            error_label="FindAll run",
        )

    async def submit(self, job_input: Any) -> dict[str, Any]:
        spec = await self._ingest(job_input)
        return await self._start_run(spec)

    async def fetch(self, job_id: str) -> dict[str, Any]:
        return await self.http.request_json(
            "GET",
            self._endpoints.findall_run(job_id),
            headers=api_headers(self.config),
            limits=self._limits,
            error_label="FindAll poll",
        )

    def extract_id(self, payload: dict[str, Any]) -> Optional[str]:
        findall_id = payload.get("findall_id")
        return str(findall_id) if findall_id else None

    def is_terminal(self, payload: dict[str, Any]) -> bool:
        return not payload.get("is_active") and not payload.get("are_enrichments_active")

    def timeout_payload(self) -> dict[str, Any]:
        return {"status": "timeout", "results": []}


class FindAllClient:
    """Runs FindAll jobs through the shared JobPoller."""

    def __init__(
        self,
        http: BoundedHttpClient,
        config: ServiceConfig,
        poller: Optional[JobPoller] = None,
    ) -> None:
        self.http = http
        self.config = config
        self.poller = poller or JobPoller(
            retry_policy_for(config),
            poll_ms=config.findall_poll_ms,
            max_wait_ms=config.max_wait_ms,
        )
        self._logger = structlog.get_logger().bind(component="FindAllClient")

    async def run_findall(
        self,
        query: str,
        *,
        processor: str = "base",
        result_limit: int = DEFAULT_RESULT_LIMIT,
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
    ) -> FindAllResult:
        """Ingest ``query``, start a run and wait for it.

        Raises:
            InternalError: No API key configured.
            Submission or poll failures once retries are exhausted.
        """
        require_api_key(self.config)
        flavor = FindAllFlavor(
            self.http,
            self.config,
            processor=processor,
            result_limit=result_limit,
        )
        self._logger.info("findall_started", processor=processor, result_limit=result_limit)
        outcome = await self.poller.run(
            flavor,
            query,
            poll_ms=poll_ms,
            max_wait_ms=max_wait_ms,
        )
        outcome.raise_for_failure()
        results = outcome.payload.get("results")
        return FindAllResult(
            status=outcome.status,
            findall_id=outcome.job_id or outcome.payload.get("findall_id"),
            results=results if isinstance(results, list) else [],
        )
