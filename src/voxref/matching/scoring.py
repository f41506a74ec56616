"""
Similarity scoring between a spoken token and an artifact name.

A substring and hyphen-boundary heuristic, not edit distance:

    exact (after stripping punctuation)          1.0
    name contains token on hyphen boundaries     0.9
    name contains token elsewhere                0.8
    token contains name (name longer than 3)     0.7
    otherwise                                    0.0

Camel-case boundaries get no special treatment.
"""

from __future__ import annotations

import re

EXACT_SCORE = 1.0
BOUNDARY_SCORE = 0.9
CONTAINS_SCORE = 0.8
CONTAINED_SCORE = 0.7
NO_MATCH = 0.0

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_OR_HYPHEN = re.compile(r"[^a-z0-9-]")


def _on_hyphen_boundary(query: str, candidate: str) -> bool:
    """Check whether ``query`` occurs in ``candidate`` delimited by hyphens."""
    return (
        candidate == query
        or candidate.startswith(query + "-")
        or candidate.endswith("-" + query)
        or f"-{query}-" in candidate
    )


def score(query: str, candidate: str) -> float:
    """
    Score how well ``candidate`` answers ``query``.

    Both inputs are expected lowercase. Containment is decided on the
    alphanumeric-only forms; hyphen boundaries are judged on the forms
    that keep hyphens.
    """
    q = _NON_ALNUM.sub("", query)
    c = _NON_ALNUM.sub("", candidate)

    if q == c:
        return EXACT_SCORE
    if not q:
        return NO_MATCH

    if q in c:
        hq = _NON_ALNUM_OR_HYPHEN.sub("", query).strip("-")
        hc = _NON_ALNUM_OR_HYPHEN.sub("", candidate)
        if hq and _on_hyphen_boundary(hq, hc):
            return BOUNDARY_SCORE
        return CONTAINS_SCORE

    if c in q and len(c) > 3:
        return CONTAINED_SCORE

    return NO_MATCH
