"""
Transcript matching for voxref.

Provides:
- Substring/boundary similarity scoring
- Two-pass phrase and word matching over an index snapshot
"""

from voxref.matching.matcher import TranscriptMatcher, normalize_phrase_name
from voxref.matching.scoring import score

__all__ = [
    "TranscriptMatcher",
    "normalize_phrase_name",
    "score",
]
