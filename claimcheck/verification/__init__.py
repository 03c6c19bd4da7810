"""Claim verification: segmentation, query generation, search and scoring."""

from claimcheck.verification.claim_segmenter import (
    ClaimSegmenter,
    LabelLineTier,
    ParagraphTier,
    SentenceTier,
)
from claimcheck.verification.evidence_scorer import EvidenceScorer
from claimcheck.verification.query_generator import QueryGenerator
from claimcheck.verification.schemas import (
    EvidenceItem,
    ScoredEvidence,
    SearchHit,
    VerificationResult,
    VerificationStatus,
)
from claimcheck.verification.search_executor import SearchExecutor
from claimcheck.verification.verification_agent import VerificationAgent

__all__ = [
    "ClaimSegmenter",
    "EvidenceItem",
    "EvidenceScorer",
    "LabelLineTier",
    "ParagraphTier",
    "QueryGenerator",
    "ScoredEvidence",
    "SearchExecutor",
    "SearchHit",
    "SentenceTier",
    "VerificationAgent",
    "VerificationResult",
    "VerificationStatus",
]
