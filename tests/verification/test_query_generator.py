"""Tests for QueryGenerator.

Tests cover:
- Structured output parsing (output, data, result, content wrappers)
- Query cleaning (blank, too long, capped at five)
- Fallback to the claim on failure, timeout, empty output or no API key
- Task run parameters (schema, processor, deadline)
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from claimcheck.config.settings import ServiceConfig
from claimcheck.errors import RequestTimeout
from claimcheck.jobs.schemas import JobOutcome, JobState
from claimcheck.verification.query_generator import (
    QUERY_OUTPUT_SCHEMA,
    QueryGenerator,
    build_instructions,
    clean_queries,
    extract_queries,
)

CLAIM = "The Eiffel Tower was completed in 1889."


# ── Fixtures ──────────────────────────────────────────────────────────────


def _completed(payload: dict) -> JobOutcome:
    return JobOutcome(state=JobState.COMPLETED, job_id="run_q", status="completed", payload=payload)


@pytest.fixture
def task_client():
    """Mock TaskClient with a configured API key."""
    client = MagicMock()
    client.config = ServiceConfig(api_key="test-key")
    client.run_outcome = AsyncMock(
        return_value=_completed(
            {"output": {"queries": ["eiffel tower completion date", "eiffel tower 1889", "paris tower history"]}}
        )
    )
    return client


@pytest.fixture
def generator(task_client):
    return QueryGenerator(task_client, max_wait_ms=5000)


# ── Parsing ──────────────────────────────────────────────────────────────


class TestExtractQueries:
    def test_output_object(self):
        assert extract_queries({"output": {"queries": ["a", "b"]}}) == ["a", "b"]

    def test_data_and_result_keys(self):
        assert extract_queries({"data": {"queries": ["a"]}}) == ["a"]
        assert extract_queries({"result": '{"queries": ["b"]}'}) == ["b"]

    def test_content_wrapper(self):
        payload = {"output": {"type": "json", "content": {"queries": ["x", "y"]}}}
        assert extract_queries(payload) == ["x", "y"]

    def test_content_json_string(self):
        payload = {"output": {"content": '{"queries": ["x"]}'}}
        assert extract_queries(payload) == ["x"]

    def test_missing_queries(self):
        assert extract_queries({}) == []
        assert extract_queries({"output": "prose answer"}) == []
        assert extract_queries({"output": {"content": "not json"}}) == []


class TestCleanQueries:
    def test_drops_blank_and_long(self):
        raw = ["  good query  ", "", None, "x" * 201, "another"]
        assert clean_queries(raw) == ["good query", "another"]

    def test_caps_at_five(self):
        assert clean_queries([f"q{i}" for i in range(9)]) == ["q0", "q1", "q2", "q3", "q4"]


def test_instructions_end_with_claim():
    text = build_instructions(CLAIM)
    assert text.endswith(f"Claim: {CLAIM}")
    assert "3-5 diversified web search queries" in text


# ── Generation ───────────────────────────────────────────────────────────


class TestGenerateQueries:
    @pytest.mark.asyncio
    async def test_returns_generated_queries(self, generator, task_client):
        queries = await generator.generate_queries(CLAIM)

        assert queries == ["eiffel tower completion date", "eiffel tower 1889", "paris tower history"]
        call = task_client.run_outcome.call_args
        assert call.kwargs["output_schema"] == QUERY_OUTPUT_SCHEMA
        assert call.kwargs["processor"] == "base"
        assert call.kwargs["max_wait_ms"] == 5000
        assert call.args[0].endswith(f"Claim: {CLAIM}")

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_claim(self, generator, task_client):
        task_client.run_outcome.side_effect = RequestTimeout("slow")
        assert await generator.generate_queries(f"  {CLAIM}  ") == [CLAIM]

    @pytest.mark.asyncio
    async def test_failed_run_falls_back_to_claim(self, generator, task_client):
        task_client.run_outcome.return_value = JobOutcome(
            state=JobState.FAILED, job_id="run_q", status="failed"
        )
        assert await generator.generate_queries(CLAIM) == [CLAIM]

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_claim(self, generator, task_client):
        task_client.run_outcome.return_value = JobOutcome(
            state=JobState.TIMED_OUT,
            job_id="run_q",
            status="timeout",
            payload={"status": "timeout", "output": None},
        )
        assert await generator.generate_queries(CLAIM) == [CLAIM]

    @pytest.mark.asyncio
    async def test_empty_output_falls_back_to_claim(self, generator, task_client):
        task_client.run_outcome.return_value = _completed({"output": {"queries": ["", "  "]}})
        assert await generator.generate_queries(CLAIM) == [CLAIM]

    @pytest.mark.asyncio
    async def test_no_api_key_skips_remote_call(self, task_client):
        task_client.config = ServiceConfig(api_key="")
        generator = QueryGenerator(task_client)

        assert await generator.generate_queries(CLAIM) == [CLAIM]
        task_client.run_outcome.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_claim(self, generator, task_client):
        assert await generator.generate_queries("") == [""]
        assert await generator.generate_queries("   ") == ["   "]
        task_client.run_outcome.assert_not_called()
