"""Evidence confidence scoring for search-based claim verification.

Turns raw search hits into a confidence in [0, 1] and a binary verdict.
The score blends three signals:

- token overlap: share of the claim's distinctive tokens (lowercase
  alphanumeric, length >= 4) that appear in the evidence snippets
- domain trust: mean host trust over all hits (see
  config/source_credibility.py)
- excerpt density: tanh(total excerpts / 5), saturating toward 1

confidence = clamp01(0.6 * overlap + 0.25 * trust + 0.15 * density)

A claim is SUPPORTED only with at least one evidence item and confidence at
or above the threshold.
"""

import math
import re
from typing import Sequence
from urllib.parse import urlparse

import structlog

from claimcheck.config.source_credibility import (
    DOMAIN_TRUST_WEIGHT,
    EXCERPT_DENSITY_WEIGHT,
    EXCERPT_SATURATION,
    TOKEN_OVERLAP_WEIGHT,
    trust_for_host,
)
from claimcheck.verification.schemas import (
    EvidenceItem,
    ScoredEvidence,
    SearchHit,
    VerificationResult,
    VerificationStatus,
)

SNIPPET_JOINER = " … "
MIN_TOKEN_LENGTH = 4

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def claim_tokens(claim: str) -> list[str]:
    """Unique distinctive tokens of a claim, in first-seen order."""
    seen: dict[str, None] = {}
    for token in _TOKEN_SPLIT.split((claim or "").lower()):
        if len(token) >= MIN_TOKEN_LENGTH:
            seen.setdefault(token, None)
    return list(seen)


def host_of(url: str) -> str:
    """Lowercase hostname of ``url``, or empty string if unparseable."""
    try:
        return (urlparse(url or "").hostname or "").lower()
    except ValueError:
        return ""


class EvidenceScorer:
    """Scores search hits against a claim. Pure; holds configuration only."""

    def __init__(self, max_results: int = 5, threshold: float = 0.3) -> None:
        """Initialize EvidenceScorer.

        Args:
            max_results: Hits kept as evidence items (all hits still count
                toward trust and density).
            threshold: Minimum confidence for a SUPPORTED verdict.
        """
        self.max_results = max_results
        self.threshold = threshold
        self._logger = structlog.get_logger().bind(component="EvidenceScorer")

    def build_evidence(self, hits: Sequence[SearchHit]) -> list[EvidenceItem]:
        return [
            EvidenceItem(
                url=hit.url,
                title=hit.title,
                snippet=SNIPPET_JOINER.join(e for e in hit.excerpts if e),
            )
            for hit in list(hits)[: self.max_results]
        ]

    def token_overlap(self, claim: str, evidence: Sequence[EvidenceItem]) -> float:
        tokens = claim_tokens(claim)
        if not tokens:
            return 0.0
        haystack = " ".join(item.snippet for item in evidence).lower()
        found = sum(1 for token in tokens if token in haystack)
        return found / len(tokens)

    def domain_trust(self, hits: Sequence[SearchHit]) -> float:
        if not hits:
            return 0.0
        total = sum(trust_for_host(host_of(hit.url)) for hit in hits)
        return _clamp01(total / len(hits))

    def excerpt_density(self, hits: Sequence[SearchHit]) -> float:
        excerpt_count = sum(len(hit.excerpts) for hit in hits)
        return math.tanh(excerpt_count / EXCERPT_SATURATION)

    def score(self, claim: str, hits: Sequence[SearchHit]) -> ScoredEvidence:
        """Score ``hits`` for ``claim``.

        Args:
            claim: Claim text.
            hits: Raw search hits, best first.

        Returns:
            ScoredEvidence with the evidence items, each signal and the verdict.
        """
        hits = list(hits or [])
        evidence = self.build_evidence(hits)
        overlap = self.token_overlap(claim, evidence)
        trust = self.domain_trust(hits)
        density = self.excerpt_density(hits)
        confidence = _clamp01(
            TOKEN_OVERLAP_WEIGHT * overlap
            + DOMAIN_TRUST_WEIGHT * trust
            + EXCERPT_DENSITY_WEIGHT * density
        )
        supported = bool(evidence) and confidence >= self.threshold
        status = VerificationStatus.SUPPORTED if supported else VerificationStatus.INSUFFICIENT

        self._logger.debug(
            "evidence_scored",
            claim=claim[:50],
            hits=len(hits),
            overlap=round(overlap, 3),
            trust=round(trust, 3),
            density=round(density, 3),
            confidence=round(confidence, 3),
            status=status.value,
        )
        return ScoredEvidence(
            evidence=evidence,
            confidence=confidence,
            token_overlap=overlap,
            domain_trust=trust,
            excerpt_density=density,
            status=status,
        )

    def verdict(self, claim: str, scored: ScoredEvidence) -> VerificationResult:
        return VerificationResult(
            claim=claim,
            status=scored.status,
            confidence=scored.confidence,
            evidence=scored.evidence,
        )

    def evaluate(self, claim: str, hits: Sequence[SearchHit]) -> VerificationResult:
        """Score and wrap in one step."""
        return self.verdict(claim, self.score(claim, hits))
