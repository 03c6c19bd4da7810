"""Heuristic segmentation of raw text into verifiable claim units.

Inputs range from clean prose to OCR'd PDFs full of label/value lines and
scraped pages with script remnants. Segmentation runs as an ordered list of
tiers sharing one gate: each tier only runs while fewer than
``MIN_SUFFICIENT_CLAIMS`` claims have accumulated.

1. SentenceTier: sentence split on collapsed whitespace
2. LabelLineTier: labeled fields, bullets and URLs from raw lines
3. ParagraphTier: longest blank-line-delimited paragraphs as atomic claims

Usage:
    from claimcheck.verification.claim_segmenter import ClaimSegmenter

    claims = ClaimSegmenter().segment(text)
"""

import re
from typing import Optional

MIN_SUFFICIENT_CLAIMS = 3
MAX_CLAIMS = 200

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9\"'])")
_CODE_LIKE = re.compile(
    r"[{\[\];)(]|function\s|=>|\bvar\b|\bconst\b|\blet\b|window\.|document\.|__NEXT_DATA__",
    re.IGNORECASE,
)
_SYMBOL = re.compile(r"[^\w\s.,:;\-()'\"%$]")
_LETTER_RUN = re.compile(r"[a-zA-Z]{6,}")
_TERMINAL_OR_DIGIT = re.compile(r"[.!?]|\d")
_LINE_BREAK = re.compile(r"\r?\n")
_LABEL = re.compile(
    r"^(address|website|phone|fax|email|hours|specialty|services|clinic|doctor|provider)\s*[:\-]",
    re.IGNORECASE,
)
_BULLET = re.compile(r"^([\-\*\u2022\u25CF])\s+")
_MID_DOT = re.compile(r"\s*\u00B7\s*")
_FRAGMENT_SPLIT = re.compile(r"\s•\s|;\s*")
_URL = re.compile(r"https?://", re.IGNORECASE)
_PARAGRAPH_SPLIT = re.compile(r"(?:\r?\n){2,}")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def looks_like_code(text: str) -> bool:
    """True for script remnants: braces, brackets, semicolons, JS keywords."""
    return bool(_CODE_LIKE.search(text))


def symbol_ratio(text: str) -> float:
    """Share of characters outside word chars, whitespace and common punctuation."""
    return len(_SYMBOL.findall(text)) / max(1, len(text))


class SentenceTier:
    """Sentence-level claims from well-formed prose."""

    name = "sentence"
    min_length = 30
    max_length = 600
    max_symbol_ratio = 0.15

    def accepts(self, sentence: str) -> bool:
        return (
            self.min_length <= len(sentence) <= self.max_length
            and not looks_like_code(sentence)
            and symbol_ratio(sentence) < self.max_symbol_ratio
            and bool(_LETTER_RUN.search(sentence))
            and bool(_TERMINAL_OR_DIGIT.search(sentence))
        )

    def extract(self, text: str, existing: list[str]) -> list[str]:
        normalized = collapse_whitespace(text)
        if not normalized:
            return []
        sentences = (s.strip() for s in _SENTENCE_SPLIT.split(normalized))
        return [s for s in sentences if s and self.accepts(s)]


class LabelLineTier:
    """Label/value lines, bullets and URLs from list-like documents.

    Mid-dot separated runs ("Phone: 555 · Fax: 556") and semicolon lists are
    split into fragments before filtering.
    """

    name = "label_line"
    min_length = 20
    max_length = 300
    max_symbol_ratio = 0.25

    def fragments(self, text: str) -> list[str]:
        fragments: list[str] = []
        for line in _LINE_BREAK.split(text):
            line = line.strip()
            if not line:
                continue
            line = _MID_DOT.sub(" • ", line)
            fragments.extend(f.strip() for f in _FRAGMENT_SPLIT.split(line) if f.strip())
        return fragments

    def accepts(self, fragment: str) -> bool:
        if not self.min_length <= len(fragment) <= self.max_length:
            return False
        if looks_like_code(fragment) or symbol_ratio(fragment) >= self.max_symbol_ratio:
            return False
        return bool(
            _LABEL.search(fragment) or _BULLET.search(fragment) or _URL.search(fragment)
        )

    def extract(self, text: str, existing: list[str]) -> list[str]:
        claims = []
        for fragment in self.fragments(text):
            if not self.accepts(fragment):
                continue
            claim = _BULLET.sub("", fragment).strip()
            if len(claim) >= self.min_length:
                claims.append(claim)
        return claims


class ParagraphTier:
    """Whole paragraphs as atomic claims when nothing finer was found.

    Paragraphs that already contain a claim from an earlier tier are
    skipped so the same fact is not verified twice.
    """

    name = "paragraph"
    min_length = 40
    max_symbol_ratio = 0.15
    max_paragraphs = 10

    def extract(self, text: str, existing: list[str]) -> list[str]:
        paragraphs = [collapse_whitespace(p) for p in _PARAGRAPH_SPLIT.split(text)]
        kept = [
            p
            for p in paragraphs
            if len(p) >= self.min_length
            and not looks_like_code(p)
            and symbol_ratio(p) < self.max_symbol_ratio
        ]
        kept.sort(key=len, reverse=True)
        kept = [p for p in kept if not any(claim in p for claim in existing)]
        return kept[: self.max_paragraphs]


DEFAULT_TIERS = (SentenceTier(), LabelLineTier(), ParagraphTier())


class ClaimSegmenter:
    """Ordered tier pipeline with a shared sufficient-count gate.

    Deterministic and side-effect free; the same text always yields the same
    claims in the same order.
    """

    def __init__(
        self,
        tiers: Optional[tuple] = None,
        min_sufficient: int = MIN_SUFFICIENT_CLAIMS,
        max_claims: int = MAX_CLAIMS,
    ) -> None:
        self.tiers = tuple(tiers) if tiers is not None else DEFAULT_TIERS
        self.min_sufficient = min_sufficient
        self.max_claims = max_claims

    def segment(self, text: Optional[str]) -> list[str]:
        """Split ``text`` into at most ``max_claims`` claim strings."""
        text = str(text or "")
        claims: list[str] = []
        for tier in self.tiers:
            if len(claims) >= self.min_sufficient:
                break
            claims.extend(tier.extract(text, claims))
        return claims[: self.max_claims]
