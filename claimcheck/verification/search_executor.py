"""Evidence search against the Parallel Search API.

Wraps the search endpoint with the bounded HTTP client and the retry
executor and converts results to SearchHit objects for the scorer.

Handles a missing PWS_API_KEY gracefully by returning empty results, so
every claim comes back insufficient instead of the run failing.

Usage:
    from claimcheck.verification.search_executor import SearchExecutor

    executor = SearchExecutor(http, config)
    hits = await executor.search(claim, queries)
"""

from typing import Any, Optional

import structlog

from claimcheck.client.bounded_http import BoundedHttpClient
from claimcheck.client.parallel_api import (
    ParallelEndpoints,
    api_headers,
    request_limits_for,
    retry_policy_for,
)
from claimcheck.client.retry import RetryPolicy, execute
from claimcheck.config.settings import ServiceConfig
from claimcheck.verification.schemas import SearchHit

OBJECTIVE_LIMIT = 500
FALLBACK_QUERY_LIMIT = 200
MAX_QUERIES = 5


def build_search_body(
    objective: str,
    queries: Optional[list[str]],
    *,
    processor: str,
    max_results: int,
    max_chars_per_result: int,
) -> dict[str, Any]:
    objective = str(objective or "")
    search_queries = list(queries or [])[:MAX_QUERIES] or [objective[:FALLBACK_QUERY_LIMIT]]
    return {
        "objective": objective[:OBJECTIVE_LIMIT],
        "search_queries": search_queries,
        "processor": processor,
        "max_results": max_results,
        "max_chars_per_result": max_chars_per_result,
    }


def parse_hits(payload: Any) -> list[SearchHit]:
    """SearchHit list from a search response; tolerant of missing fields."""
    results = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(results, list):
        return []
    hits: list[SearchHit] = []
    for result in results:
        if not isinstance(result, dict):
            continue
        excerpts = result.get("excerpts")
        hits.append(
            SearchHit(
                url=str(result.get("url") or ""),
                title=result.get("title"),
                excerpts=[str(e) for e in excerpts if e] if isinstance(excerpts, list) else [],
            )
        )
    return hits


class SearchExecutor:
    """Execute evidence searches for claims.

    Network failures propagate once retries are exhausted; the
    verification agent turns them into per-claim insufficient verdicts.
    """

    def __init__(
        self,
        http: BoundedHttpClient,
        config: ServiceConfig,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Initialize SearchExecutor.

        Args:
            http: Bounded HTTP client.
            config: Service configuration; api_key empty means mock mode.
            retry_policy: Override for the configured retry policy.
        """
        self.http = http
        self.config = config
        self.retry_policy = retry_policy or retry_policy_for(config)
        self._endpoints = ParallelEndpoints(config.api_root)
        self._logger = structlog.get_logger().bind(component="SearchExecutor")

        if not config.has_api_key:
            self._logger.warning(
                "pws_api_key_not_set",
                msg="PWS_API_KEY not set, using mock search mode",
            )

    async def search(
        self,
        objective: str,
        queries: Optional[list[str]] = None,
        *,
        processor: Optional[str] = None,
        max_results: Optional[int] = None,
        max_chars_per_result: Optional[int] = None,
    ) -> list[SearchHit]:
        """Run one search call for a claim.

        Args:
            objective: The claim being verified.
            queries: Search queries; the objective is used if empty.
            processor: Search processor (default from config).
            max_results: Result cap (default from config).
            max_chars_per_result: Excerpt character cap per result (default from config).

        Returns:
            Raw hits, best first. Empty in mock mode.
        """
        if not self.config.has_api_key:
            self._logger.debug("mock_search", objective=str(objective or "")[:50])
            return []

        body = build_search_body(
            objective,
            queries,
            processor=processor or self.config.search_processor,
            max_results=max_results or self.config.search_max_results,
            max_chars_per_result=max_chars_per_result or self.config.max_chars_per_result,
        )

        async def _call() -> Any:
            return await self.http.request_json(
                "POST",
                self._endpoints.search,
                headers=api_headers(self.config),
                json=body,
                limits=request_limits_for(self.config),
                error_label="Parallel Search",
            )

        payload = await execute(_call, self.retry_policy)
        hits = parse_hits(payload)
        self._logger.info(
            "search_executed",
            objective=body["objective"][:80],
            queries=len(body["search_queries"]),
            results=len(hits),
        )
        return hits
