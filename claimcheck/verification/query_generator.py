"""Search query generation for claim verification.

Asks a structured task run for 3-5 diversified web search queries per
claim. Generation is best effort: any failure, timeout or malformed output
falls back to searching for the claim itself.

Usage:
    from claimcheck.verification.query_generator import QueryGenerator

    generator = QueryGenerator(task_client)
    queries = await generator.generate_queries(claim)
"""

import json
from typing import Any, Optional

import structlog

from claimcheck.jobs.task_client import TaskClient

QUERY_WAIT_MS = 90_000
MAX_QUERIES = 5
MAX_QUERY_LENGTH = 200

QUERY_OUTPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "queries": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 3,
            "maxItems": 5,
        },
    },
    "required": ["queries"],
    "additionalProperties": False,
}

_INSTRUCTIONS = (
    "Produce 3-5 diversified web search queries that would best verify the following factual claim.",
    "Mix entity, synonym, and context terms; include location or timeframe if implied.",
    "Avoid quotes and avoid overly long queries. Keep each under 120 characters.",
    "Return only JSON matching the output_schema. No prose.",
)


def build_instructions(claim: str) -> str:
    return "\n".join([*_INSTRUCTIONS, "", f"Claim: {claim}"])


def _as_object(value: Any) -> Optional[dict[str, Any]]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def extract_queries(payload: dict[str, Any]) -> list[Any]:
    """Raw ``queries`` list from a task result payload.

    The structured output may sit under ``output``, ``data`` or ``result``,
    and may itself be wrapped in a ``content`` object or JSON string.
    """
    for key in ("output", "data", "result"):
        obj = _as_object(payload.get(key))
        if obj is None:
            continue
        if "queries" not in obj and "content" in obj:
            obj = _as_object(obj["content"]) or {}
        queries = obj.get("queries")
        if isinstance(queries, list):
            return queries
    return []


def clean_queries(raw: list[Any]) -> list[str]:
    cleaned = [str(q if q is not None else "").strip() for q in raw]
    return [q for q in cleaned if q and len(q) <= MAX_QUERY_LENGTH][:MAX_QUERIES]


class QueryGenerator:
    """Generates 1-5 search queries per claim. Never raises."""

    def __init__(self, task_client: TaskClient, max_wait_ms: int = QUERY_WAIT_MS) -> None:
        """Initialize QueryGenerator.

        Args:
            task_client: Client for the structured task run.
            max_wait_ms: Deadline for the query task (default 90 s).
        """
        self.task_client = task_client
        self.max_wait_ms = max_wait_ms
        self._logger = structlog.get_logger().bind(component="QueryGenerator")

    async def generate_queries(self, claim: str) -> list[str]:
        """Generate queries for ``claim``; ``[claim]`` on any failure.

        Args:
            claim: Claim text.

        Returns:
            One to five cleaned queries.
        """
        trimmed = str(claim or "").strip()
        if not trimmed:
            return [str(claim or "")]
        if not self.task_client.config.has_api_key:
            return [trimmed]

        try:
            outcome = await self.task_client.run_outcome(
                build_instructions(trimmed),
                output_schema=QUERY_OUTPUT_SCHEMA,
                processor="base",
                max_wait_ms=self.max_wait_ms,
            )
            outcome.raise_for_failure()
            queries = clean_queries(extract_queries(outcome.payload))
        except Exception as e:
            self._logger.warning("query_generation_failed", claim=trimmed[:50], error=str(e))
            return [trimmed]

        if not queries:
            self._logger.debug("query_generation_empty", claim=trimmed[:50], status=outcome.status)
            return [trimmed]

        self._logger.debug("queries_generated", claim=trimmed[:50], count=len(queries))
        return queries
