"""Generic submit-then-poll state machine for remote jobs.

Every job family (task runs, deep research, FindAll, and the query
generator's structured task) shares this contract:

1. submit once (through the retry executor); no usable id means the
   submission already is the result
2. fetch status on a fixed interval (each fetch through the retry executor)
3. stop on the flavor's terminal predicate, its failure predicate, or the
   wall-clock deadline ``submitted_at + max_wait_ms``

Polling is time driven; the remote side never pushes. The sleep before each
fetch is clipped to the time left, and a fetch (with its retries) still
running at the deadline is cancelled, so the deadline governs the loop.

Usage:
    poller = JobPoller(RetryPolicy(max_retries=2, base_backoff_ms=600))
    outcome = await poller.run(flavor, "input text")
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

import structlog

from claimcheck.client.retry import RetryPolicy, execute
from claimcheck.errors import UpstreamError
from claimcheck.jobs.schemas import JobHandle, JobOutcome, JobState, status_of_payload


class JobFlavor(ABC):
    """One remote job family: how to submit, fetch and recognise the end."""

    name: str = "job"
    poll_ms: int = 1500

    @abstractmethod
    async def submit(self, job_input: Any) -> dict[str, Any]:
        """Create the job; returns the raw submission payload."""

    @abstractmethod
    async def fetch(self, job_id: str) -> dict[str, Any]:
        """Fetch the job's current status payload."""

    @abstractmethod
    def extract_id(self, payload: dict[str, Any]) -> Optional[str]:
        """Job identifier from a submission payload, or None."""

    @abstractmethod
    def is_terminal(self, payload: dict[str, Any]) -> bool:
        """True once the job completed and the payload is final."""

    def is_failed(self, payload: dict[str, Any]) -> bool:
        """True if the remote side reports the job as failed."""
        return False

    def timeout_payload(self) -> dict[str, Any]:
        """Payload reported when the deadline passes first."""
        return {"status": "timeout"}


class JobPoller:
    """Bounded-wait submit/poll runner shared by all job flavors.

    Attributes:
        retry_policy: Policy applied to every submit and fetch call
        poll_ms: Default interval between status fetches
        max_wait_ms: Default deadline measured from submission
    """

    def __init__(
        self,
        retry_policy: RetryPolicy,
        *,
        poll_ms: int = 1500,
        max_wait_ms: int = 120_000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize JobPoller.

        Args:
            retry_policy: Retries for each network call.
            poll_ms: Default poll interval.
            max_wait_ms: Default deadline after submission.
            clock: Monotonic clock in seconds (injectable for tests).
            sleep: Awaitable sleep (injectable for tests).
        """
        self.retry_policy = retry_policy
        self.poll_ms = poll_ms
        self.max_wait_ms = max_wait_ms
        self._clock = clock
        self._sleep = sleep
        self._logger = structlog.get_logger().bind(component="JobPoller")

    async def submit(
        self,
        submit_fn: Callable[[], Awaitable[dict[str, Any]]],
        extract_id: Callable[[dict[str, Any]], Optional[str]],
    ) -> JobHandle:
        """Submit a job once (with retries) and capture its handle.

        Raises:
            The submission failure, once retries are exhausted.
        """
        submitted_at = self._clock()
        payload = await execute(submit_fn, self.retry_policy, sleep=self._sleep)
        if not isinstance(payload, dict):
            payload = {}
        job_id = extract_id(payload)
        handle = JobHandle(
            id=str(job_id) if job_id else None,
            status=status_of_payload(payload),
            payload=payload,
            submitted_at=submitted_at,
        )
        self._logger.info("job_submitted", job_id=handle.id, status=handle.status)
        return handle

    async def poll(
        self,
        handle: JobHandle,
        fetch_fn: Callable[[str], Awaitable[dict[str, Any]]],
        is_terminal: Callable[[dict[str, Any]], bool],
        *,
        is_failed: Optional[Callable[[dict[str, Any]], bool]] = None,
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
        timeout_payload: Optional[dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> JobOutcome:
        """Fetch status until terminal, failed, cancelled or past the deadline.

        A failing fetch is retried by the retry executor; only exhausting
        those retries ends polling, with a FAILED outcome carrying the error.
        A fetch still running at the deadline is cancelled and the job times out.
        """
        if handle.id is None:
            raise ValueError("Cannot poll a job without an identifier")

        job_id = handle.id
        interval_s = (poll_ms if poll_ms is not None else self.poll_ms) / 1000.0
        wait_ms = max_wait_ms if max_wait_ms is not None else self.max_wait_ms
        deadline = handle.submitted_at + wait_ms / 1000.0
        polls = 0

        self._logger.debug("polling_started", job_id=job_id, max_wait_ms=wait_ms)

        while self._clock() < deadline:
            if cancel_event is not None and cancel_event.is_set():
                self._logger.info("job_cancelled", job_id=job_id, polls=polls)
                return JobOutcome(
                    state=JobState.CANCELLED,
                    job_id=job_id,
                    status="cancelled",
                    polls=polls,
                )

            # Retries of one fetch share the time left before the deadline
            try:
                payload = await asyncio.wait_for(
                    execute(lambda: fetch_fn(job_id), self.retry_policy, sleep=self._sleep),
                    timeout=deadline - self._clock(),
                )
            except asyncio.TimeoutError:
                self._logger.warning("job_fetch_cut_at_deadline", job_id=job_id, polls=polls)
                break
            except Exception as e:
                self._logger.error("job_poll_failed", job_id=job_id, polls=polls, error=str(e))
                return JobOutcome(
                    state=JobState.FAILED,
                    job_id=job_id,
                    status="failed",
                    error=e,
                    polls=polls,
                )
            polls += 1
            if not isinstance(payload, dict):
                payload = {}

            if is_terminal(payload):
                self._logger.info("job_completed", job_id=job_id, polls=polls)
                return JobOutcome(
                    state=JobState.COMPLETED,
                    job_id=job_id,
                    status=status_of_payload(payload) or "completed",
                    payload=payload,
                    polls=polls,
                )

            if is_failed is not None and is_failed(payload):
                status = status_of_payload(payload) or "failed"
                self._logger.warning("job_failed_remotely", job_id=job_id, status=status)
                return JobOutcome(
                    state=JobState.FAILED,
                    job_id=job_id,
                    status=status,
                    payload=payload,
                    error=UpstreamError(f"Job {job_id} ended with status {status}"),
                    polls=polls,
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(interval_s, remaining))

        self._logger.warning("job_timed_out", job_id=job_id, polls=polls, max_wait_ms=wait_ms)
        timeout = dict(timeout_payload or {"status": "timeout"})
        return JobOutcome(
            state=JobState.TIMED_OUT,
            job_id=job_id,
            status=str(timeout.get("status", "timeout")),
            payload=timeout,
            polls=polls,
        )

    async def run(
        self,
        flavor: JobFlavor,
        job_input: Any,
        *,
        poll_ms: Optional[int] = None,
        max_wait_ms: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> JobOutcome:
        """Submit ``job_input`` to ``flavor`` and poll it to an end state.

        Raises:
            The submission failure, once retries are exhausted.
        """
        handle = await self.submit(lambda: flavor.submit(job_input), flavor.extract_id)

        if handle.id is None:
            # Degenerate synchronous case: the submission is the result
            self._logger.info("job_completed_without_id", flavor=flavor.name, status=handle.status)
            return JobOutcome(
                state=JobState.COMPLETED,
                job_id=None,
                status=handle.status or "unknown",
                payload=handle.payload,
            )

        return await self.poll(
            handle,
            flavor.fetch,
            flavor.is_terminal,
            is_failed=flavor.is_failed,
            poll_ms=poll_ms if poll_ms is not None else flavor.poll_ms,
            max_wait_ms=max_wait_ms,
            timeout_payload=flavor.timeout_payload(),
            cancel_event=cancel_event,
        )
