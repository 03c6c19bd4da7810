"""Verification domain schemas.

Defines the records that flow through the claim verification loop:
raw search hits from the evidence search service, the evidence items kept
on a verdict, the scorer's breakdown, and the per-claim result.

Verdicts are binary:
- SUPPORTED: at least one evidence item and confidence >= threshold
- INSUFFICIENT: anything else, including per-claim failures
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class VerificationStatus(str, Enum):
    """Outcome of verifying one claim."""

    SUPPORTED = "supported"
    INSUFFICIENT = "insufficient"


class SearchHit(BaseModel):
    """One raw result returned by the evidence search service."""

    url: str = Field(default="", description="Result URL (may be empty)")
    title: Optional[str] = Field(default=None, description="Page title")
    excerpts: list[str] = Field(
        default_factory=list,
        description="Relevant excerpts extracted from the page",
    )


class EvidenceItem(BaseModel):
    """Evidence kept on a verdict.

    The snippet is the hit's non-empty excerpts joined with an ellipsis.
    """

    url: str = Field(..., description="URL of the evidence source")
    title: Optional[str] = Field(default=None, description="Source title")
    snippet: str = Field(default="", description="Joined excerpts from the source")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://www.nps.gov/example",
                    "title": "Eiffel Tower history",
                    "snippet": "The tower was completed in 1889 … It is located in Paris.",
                }
            ]
        }
    }


class ScoredEvidence(BaseModel):
    """Full breakdown of one scoring pass."""

    evidence: list[EvidenceItem] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    token_overlap: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Fraction of distinctive claim tokens found in snippets",
    )
    domain_trust: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Mean trust weight of the hits' hosts",
    )
    excerpt_density: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Saturating function of total excerpt count",
    )
    status: VerificationStatus = Field(default=VerificationStatus.INSUFFICIENT)


class VerificationResult(BaseModel):
    """Verdict for one claim."""

    claim: str = Field(..., description="Claim text as segmented")
    status: VerificationStatus = Field(..., description="supported or insufficient")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    error: Optional[str] = Field(
        default=None,
        description="Failure message when verification of this claim errored",
    )

    model_config = {"use_enum_values": True}

    @classmethod
    def failed(cls, claim: str, error: BaseException) -> "VerificationResult":
        """Insufficient verdict recording a per-claim failure."""
        return cls(
            claim=claim,
            status=VerificationStatus.INSUFFICIENT,
            confidence=0.0,
            evidence=[],
            error=str(error) or type(error).__name__,
        )
