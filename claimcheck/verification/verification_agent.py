"""Core verification agent orchestrating the claim verification loop.

Verification flow per claim:
1. Generate search queries (QueryGenerator)
2. Run the evidence search (SearchExecutor)
3. Score the hits into a verdict (EvidenceScorer)

Claims are processed sequentially with a fixed delay between them by
default. With ``max_concurrency > 1`` they fan out through aiometer, rate
limited to the same pace. Either way the results line up one-to-one with
the input claims, and one claim failing never affects the others.

Usage:
    from claimcheck.verification import VerificationAgent

    agent = VerificationAgent.from_config(http, config)
    results = await agent.verify_text(document_text)
"""

import asyncio
import functools
from typing import Awaitable, Callable, Optional

import aiometer
import structlog

from claimcheck.client.bounded_http import BoundedHttpClient
from claimcheck.config.settings import ServiceConfig
from claimcheck.jobs.task_client import TaskClient
from claimcheck.verification.claim_segmenter import ClaimSegmenter
from claimcheck.verification.evidence_scorer import EvidenceScorer
from claimcheck.verification.query_generator import QueryGenerator
from claimcheck.verification.schemas import VerificationResult
from claimcheck.verification.search_executor import SearchExecutor

ProgressCallback = Callable[[VerificationResult], Awaitable[None]]


class VerificationAgent:
    """Orchestrates query generation, search and scoring per claim.

    Attributes:
        max_claims: Claims kept from segmentation in verify_text
        inter_claim_delay_ms: Pause between consecutive claims
        max_concurrency: Claims verified at once (1 = sequential)
    """

    def __init__(
        self,
        query_generator: QueryGenerator,
        search_executor: SearchExecutor,
        scorer: Optional[EvidenceScorer] = None,
        segmenter: Optional[ClaimSegmenter] = None,
        *,
        max_claims: int = 50,
        inter_claim_delay_ms: int = 50,
        max_concurrency: int = 1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize VerificationAgent.

        Args:
            query_generator: Per-claim search query generator.
            search_executor: Evidence search client.
            scorer: Evidence scorer (default thresholds if not provided).
            segmenter: Claim segmenter used by verify_text.
            max_claims: Cap applied after segmentation (default 50).
            inter_claim_delay_ms: Delay between claims (default 50 ms).
            max_concurrency: Concurrent claims (default 1, sequential).
            sleep: Awaitable sleep (injectable for tests).
        """
        self.query_generator = query_generator
        self.search_executor = search_executor
        self.scorer = scorer or EvidenceScorer()
        self.segmenter = segmenter or ClaimSegmenter()
        self.max_claims = max_claims
        self.inter_claim_delay_ms = inter_claim_delay_ms
        self.max_concurrency = max(1, max_concurrency)
        self._sleep = sleep
        self._logger = structlog.get_logger().bind(component="VerificationAgent")

    @classmethod
    def from_config(
        cls,
        http: BoundedHttpClient,
        config: ServiceConfig,
        task_client: Optional[TaskClient] = None,
    ) -> "VerificationAgent":
        """Wire the default collaborators from one ServiceConfig."""
        task_client = task_client or TaskClient(http, config)
        return cls(
            query_generator=QueryGenerator(task_client, max_wait_ms=config.query_max_wait_ms),
            search_executor=SearchExecutor(http, config),
            scorer=EvidenceScorer(
                max_results=config.search_max_results,
                threshold=config.confidence_threshold,
            ),
            max_claims=config.max_claims,
            inter_claim_delay_ms=config.inter_claim_delay_ms,
            max_concurrency=config.max_concurrency,
        )

    async def verify_claim(self, claim: str) -> VerificationResult:
        """Verify one claim. Failures become an insufficient verdict."""
        try:
            queries = await self.query_generator.generate_queries(claim)
            hits = await self.search_executor.search(claim, queries)
            return self.scorer.evaluate(claim, hits)
        except Exception as e:
            self._logger.error("claim_verification_failed", claim=claim[:50], error=str(e))
            return VerificationResult.failed(claim, e)

    async def _verify_and_report(
        self,
        claim: str,
        progress_callback: Optional[ProgressCallback],
    ) -> VerificationResult:
        result = await self.verify_claim(claim)
        if progress_callback:
            try:
                await progress_callback(result)
            except Exception as e:
                self._logger.error("progress_callback_failed", claim=claim[:50], error=str(e))
        return result

    async def verify_all(
        self,
        claims: list[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> list[VerificationResult]:
        """Verify ``claims`` in order.

        Args:
            claims: Claims to verify.
            progress_callback: Optional async callback for each verdict.

        Returns:
            One VerificationResult per claim, in input order.
        """
        if not claims:
            return []

        self._logger.info(
            "verification_started",
            claims=len(claims),
            concurrency=self.max_concurrency,
        )

        if self.max_concurrency > 1:
            results = await self._verify_concurrently(claims, progress_callback)
        else:
            results = []
            for index, claim in enumerate(claims):
                if index and self.inter_claim_delay_ms > 0:
                    await self._sleep(self.inter_claim_delay_ms / 1000.0)
                results.append(await self._verify_and_report(claim, progress_callback))

        supported = sum(1 for r in results if r.status == "supported")
        self._logger.info(
            "verification_complete",
            claims=len(results),
            supported=supported,
            insufficient=len(results) - supported,
        )
        return results

    async def _verify_concurrently(
        self,
        claims: list[str],
        progress_callback: Optional[ProgressCallback],
    ) -> list[VerificationResult]:
        max_per_second = None
        if self.inter_claim_delay_ms > 0:
            max_per_second = 1000.0 / self.inter_claim_delay_ms
        # run_all returns results in the order of the given jobs
        return await aiometer.run_all(
            [functools.partial(self._verify_and_report, c, progress_callback) for c in claims],
            max_at_once=self.max_concurrency,
            max_per_second=max_per_second,
        )

    async def verify_text(
        self,
        text: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> list[VerificationResult]:
        """Segment ``text`` into claims, keep the first max_claims, verify."""
        claims = self.segmenter.segment(text)[: self.max_claims]
        self._logger.debug("claims_segmented", claims=len(claims), text_chars=len(text or ""))
        return await self.verify_all(claims, progress_callback)
