"""Tests for VerificationAgent orchestration.

Tests cover:
- One result per claim, in input order
- Per-claim failure isolation
- Sequential pacing (delay between claims, not before the first)
- Concurrent fan-out keeps input order
- Progress callback, including a failing callback
- verify_text segmentation and max_claims truncation
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from claimcheck.config.settings import ServiceConfig
from claimcheck.errors import UpstreamError
from claimcheck.verification.schemas import SearchHit, VerificationStatus
from claimcheck.verification.verification_agent import VerificationAgent

GOV_HIT = SearchHit(
    url="https://www.nps.gov/eiffel",
    title="Eiffel Tower",
    excerpts=["The Eiffel Tower was completed in 1889. It is located in Paris, France."],
)


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def query_generator():
    generator = MagicMock()
    generator.generate_queries = AsyncMock(side_effect=lambda claim: [claim])
    return generator


@pytest.fixture
def search_executor():
    executor = MagicMock()
    executor.search = AsyncMock(return_value=[GOV_HIT])
    return executor


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def agent(query_generator, search_executor, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return VerificationAgent(
        query_generator,
        search_executor,
        inter_claim_delay_ms=50,
        sleep=fake_sleep,
    )


# ── verify_claim ─────────────────────────────────────────────────────────


class TestVerifyClaim:
    @pytest.mark.asyncio
    async def test_supported_claim(self, agent, search_executor):
        result = await agent.verify_claim("The Eiffel Tower was completed in 1889.")

        assert result.status == VerificationStatus.SUPPORTED.value
        assert result.confidence >= 0.3
        search_executor.search.assert_awaited_once_with(
            "The Eiffel Tower was completed in 1889.",
            ["The Eiffel Tower was completed in 1889."],
        )

    @pytest.mark.asyncio
    async def test_search_failure_becomes_insufficient(self, agent, search_executor):
        search_executor.search.side_effect = UpstreamError("Parallel Search error 503", status=503)

        result = await agent.verify_claim("Some claim about the world.")

        assert result.status == "insufficient"
        assert result.confidence == 0.0
        assert result.evidence == []
        assert "503" in result.error


# ── verify_all ───────────────────────────────────────────────────────────


class TestVerifyAll:
    @pytest.mark.asyncio
    async def test_results_match_input_order(self, agent):
        claims = ["The Eiffel Tower was completed in 1889.", "It is located in Paris, France.", "Unrelated claim about cheese."]
        results = await agent.verify_all(claims)
        assert [r.claim for r in results] == claims

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, agent, search_executor):
        async def search(claim, queries):
            if "boom" in claim:
                raise RuntimeError("boom")
            return [GOV_HIT]

        search_executor.search.side_effect = search
        results = await agent.verify_all(
            ["The Eiffel Tower was completed in 1889.", "boom claim", "It is located in Paris, France."]
        )

        assert [r.status for r in results] == ["supported", "insufficient", "supported"]
        assert results[1].error == "boom"
        assert results[0].error is None

    @pytest.mark.asyncio
    async def test_delay_between_claims_only(self, agent, sleeps):
        await agent.verify_all(["first claim", "second claim", "third claim"])
        assert sleeps == [0.05, 0.05]

    @pytest.mark.asyncio
    async def test_empty_claims(self, agent, search_executor):
        assert await agent.verify_all([]) == []
        search_executor.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_progress_callback_per_claim(self, agent):
        seen = []

        async def on_result(result):
            seen.append(result.claim)

        await agent.verify_all(["claim one here", "claim two here"], progress_callback=on_result)
        assert seen == ["claim one here", "claim two here"]

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self, agent):
        callback = AsyncMock(side_effect=RuntimeError("listener gone"))
        results = await agent.verify_all(["claim one here", "claim two here"], progress_callback=callback)
        assert len(results) == 2
        assert callback.await_count == 2


class TestConcurrent:
    @pytest.mark.asyncio
    async def test_concurrent_results_keep_input_order(self, query_generator, search_executor):
        delays = {"slow claim": 0.05, "medium claim": 0.02, "fast claim": 0.0}

        async def search(claim, queries):
            await asyncio.sleep(delays[claim])
            return [GOV_HIT]

        search_executor.search.side_effect = search
        agent = VerificationAgent(
            query_generator,
            search_executor,
            inter_claim_delay_ms=0,
            max_concurrency=3,
        )

        results = await agent.verify_all(["slow claim", "medium claim", "fast claim"])

        assert [r.claim for r in results] == ["slow claim", "medium claim", "fast claim"]

    @pytest.mark.asyncio
    async def test_concurrency_is_capped(self, query_generator, search_executor):
        running = 0
        peak = 0

        async def search(claim, queries):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return []

        search_executor.search.side_effect = search
        agent = VerificationAgent(
            query_generator,
            search_executor,
            inter_claim_delay_ms=0,
            max_concurrency=2,
        )

        results = await agent.verify_all([f"claim number {i}" for i in range(6)])

        assert len(results) == 6
        assert peak <= 2


# ── verify_text ──────────────────────────────────────────────────────────


class TestVerifyText:
    @pytest.mark.asyncio
    async def test_eiffel_end_to_end(self, agent):
        results = await agent.verify_text(
            "The Eiffel Tower was completed in 1889. It is located in Paris, France."
        )

        assert len(results) == 2
        for result in results:
            assert result.status == "supported"
            assert result.confidence >= 0.3

    @pytest.mark.asyncio
    async def test_truncates_to_max_claims(self, query_generator, search_executor):
        agent = VerificationAgent(
            query_generator,
            search_executor,
            max_claims=3,
            inter_claim_delay_ms=0,
        )
        text = " ".join(f"Claim number {i} is a verifiable statement." for i in range(10))

        results = await agent.verify_text(text)

        assert [r.claim for r in results] == [
            "Claim number 0 is a verifiable statement.",
            "Claim number 1 is a verifiable statement.",
            "Claim number 2 is a verifiable statement.",
        ]
        assert search_executor.search.await_count == 3

    @pytest.mark.asyncio
    async def test_text_without_claims(self, agent, search_executor):
        assert await agent.verify_text("short") == []
        search_executor.search.assert_not_called()


def test_from_config_wires_settings():
    http = MagicMock()
    config = ServiceConfig(
        api_key="",
        max_claims=7,
        inter_claim_delay_ms=20,
        max_concurrency=2,
        confidence_threshold=0.4,
        search_max_results=3,
        query_max_wait_ms=1234,
    )

    agent = VerificationAgent.from_config(http, config)

    assert agent.max_claims == 7
    assert agent.inter_claim_delay_ms == 20
    assert agent.max_concurrency == 2
    assert agent.scorer.threshold == 0.4
    assert agent.scorer.max_results == 3
    assert agent.query_generator.max_wait_ms == 1234
