"""Domain trust weights for evidence scoring.

Source hierarchy (from most to least trusted):
1. Government domains (.gov): 1.0
2. International health/standards bodies: 0.95
3. Educational institutions (.edu): 0.9
4. Wikipedia: 0.6
5. Any other host: 0.4
6. Missing/unparseable host: 0.2
"""

from typing import Dict, Tuple

# Suffix rules, checked in order. First match wins, so ".gov" catches
# nih.gov and cdc.gov before the standards-body list does.
DOMAIN_SUFFIX_TRUST: Tuple[Tuple[str, float], ...] = (
    (".gov", 1.0),
)

# International health and standards bodies
INTERNATIONAL_BODIES: Dict[str, float] = {
    "who.int": 0.95,
    "nih.gov": 0.95,
    "cdc.gov": 0.95,
    "europa.eu": 0.95,
    "un.org": 0.95,
    "iso.org": 0.95,
}

EDUCATIONAL_SUFFIX_TRUST: Tuple[Tuple[str, float], ...] = (
    (".edu", 0.9),
)

REFERENCE_SITES: Dict[str, float] = {
    "wikipedia.org": 0.6,
}

UNKNOWN_HOST_TRUST: float = 0.4
MISSING_HOST_TRUST: float = 0.2

# Confidence blend weights
TOKEN_OVERLAP_WEIGHT: float = 0.6
DOMAIN_TRUST_WEIGHT: float = 0.25
EXCERPT_DENSITY_WEIGHT: float = 0.15

# tanh(total_excerpts / EXCERPT_SATURATION)
EXCERPT_SATURATION: float = 5.0


def _matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def trust_for_host(host: str) -> float:
    """Trust weight for a bare hostname (no scheme, no port)."""
    host = (host or "").lower().strip(".")
    if not host:
        return MISSING_HOST_TRUST
    for suffix, score in DOMAIN_SUFFIX_TRUST:
        if host.endswith(suffix):
            return score
    for domain, score in INTERNATIONAL_BODIES.items():
        if _matches(host, domain):
            return score
    for suffix, score in EDUCATIONAL_SUFFIX_TRUST:
        if host.endswith(suffix):
            return score
    for domain, score in REFERENCE_SITES.items():
        if _matches(host, domain):
            return score
    return UNKNOWN_HOST_TRUST
