"""
Transcript matcher.

Resolves a free-form transcript into artifact references in two passes:

1. Phrase pass: a greedy left-to-right scan over two- and three-word
   phrases, matched against component and file names. The first exact
   name wins, otherwise the first name containing the phrase. No
   backtracking; tokens after the head of a matched span are blanked.
2. Word pass: every token not blanked that is not a stop word and is long
   enough is scored against files, components and (for longer tokens)
   functions; the best candidate must score above the threshold.

Every path is matched at most once per transcript. Tie-breaks depend on
mapping insertion order, i.e. on the order artifacts were indexed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

import structlog

from voxref.config import MatcherConfig
from voxref.matching.scoring import score
from voxref.models import (
    ArtifactKind,
    MatchCandidate,
    TranscriptMatchResult,
    display_name,
)

if TYPE_CHECKING:
    from voxref.indexing.store import IndexSnapshot, IndexStore

logger = structlog.get_logger(__name__)

PHRASE_EXACT_SCORE = 1.0
PHRASE_CONTAINS_SCORE = 0.9

_PUNCTUATION = re.compile(r"[^a-z0-9\s]")


@dataclass
class _Entry:
    name: str
    path: str
    kind: ArtifactKind


def normalize_phrase_name(name: str) -> str:
    """Lowercase a name and turn punctuation into spaces."""
    return _PUNCTUATION.sub(" ", name.lower())


class TranscriptMatcher:
    """
    Matches transcripts against an index store.

    Each call reads one snapshot of the store, so a concurrent tree
    event cannot change the candidates halfway through a transcript.
    """

    def __init__(
        self,
        store: "IndexStore",
        config: MatcherConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or MatcherConfig()
        self._stop_words = frozenset(self.config.stop_words)

    def is_stop_word(self, word: str) -> bool:
        return word in self._stop_words

    def find_in_transcript(self, transcript: str) -> TranscriptMatchResult:
        """
        Annotate a transcript with references to indexed artifacts.

        Args:
            transcript: Raw transcript text.

        Returns:
            The annotated transcript and the matches, best score first.
        """
        snapshot = self.store.snapshot()

        annotated = transcript.split()
        words = [w.lower() for w in annotated]
        blanked = [False] * len(words)
        matches: list[MatchCandidate] = []
        claimed: set[str] = set()

        # Phrase pass
        i = 0
        while i < len(words) - 1:
            for span in (2, 3):
                if i + span > len(words):
                    continue
                phrase = " ".join(words[i : i + span])
                match = self._match_phrase(phrase, snapshot, claimed)
                if match is None:
                    continue
                matches.append(match)
                claimed.add(match.path)
                annotated[i] = match.marker
                # the head token stays eligible for the word pass
                for j in range(i + 1, i + span):
                    blanked[j] = True
                    annotated[j] = ""
                i += span
                break
            else:
                i += 1

        # Word pass
        for i, word in enumerate(words):
            if blanked[i]:
                continue
            if self.is_stop_word(word) or len(word) < self.config.min_token_length:
                continue

            match = self._best_word_match(word, snapshot)
            if match is None or match.path in claimed:
                continue
            matches.append(match)
            claimed.add(match.path)
            annotated[i] = match.marker

        matches.sort(key=lambda m: m.score, reverse=True)
        result = TranscriptMatchResult(
            annotated_transcript=" ".join(w for w in annotated if w),
            matches=matches,
        )
        logger.debug(
            "Matched transcript",
            tokens=len(words),
            matches=len(matches),
        )
        return result

    def _phrase_candidates(self, snapshot: "IndexSnapshot") -> Iterator[_Entry]:
        for name, path in snapshot.components.items():
            yield _Entry(name, path, ArtifactKind.COMPONENT)
        for name, path in snapshot.files.items():
            yield _Entry(name, path, ArtifactKind.FILE)

    def _match_phrase(
        self,
        phrase: str,
        snapshot: "IndexSnapshot",
        claimed: set[str],
    ) -> MatchCandidate | None:
        """First exact, else first containing, unclaimed component or file."""
        normalized = [
            (entry, normalize_phrase_name(entry.name))
            for entry in self._phrase_candidates(snapshot)
            if entry.path not in claimed
        ]

        for entry, name in normalized:
            if name == phrase:
                return self._candidate(entry, PHRASE_EXACT_SCORE)

        for entry, name in normalized:
            if phrase in name:
                return self._candidate(entry, PHRASE_CONTAINS_SCORE)

        return None

    def _word_candidates(self, word: str, snapshot: "IndexSnapshot") -> Iterator[_Entry]:
        for name, path in snapshot.files.items():
            yield _Entry(name, path, ArtifactKind.FILE)
        for name, path in snapshot.components.items():
            yield _Entry(name, path, ArtifactKind.COMPONENT)
        if len(word) > self.config.function_min_length:
            for name, path in snapshot.functions.items():
                yield _Entry(name, path, ArtifactKind.FUNCTION)

    def _best_word_match(
        self,
        word: str,
        snapshot: "IndexSnapshot",
    ) -> MatchCandidate | None:
        """
        Highest-scoring candidate above the acceptance threshold.

        Ties keep the first candidate seen, except that a component or
        function tied with a file candidate for the same path replaces it.
        """
        best: _Entry | None = None
        best_score = self.config.accept_threshold

        for entry in self._word_candidates(word, snapshot):
            entry_score = score(word, entry.name.lower())
            if entry_score > best_score or (
                best is not None
                and entry_score == best_score
                and best.kind is ArtifactKind.FILE
                and entry.kind is not ArtifactKind.FILE
                and entry.path == best.path
            ):
                best = entry
                best_score = entry_score

        if best is None:
            return None
        return self._candidate(best, best_score)

    @staticmethod
    def _candidate(entry: _Entry, entry_score: float) -> MatchCandidate:
        return MatchCandidate(
            name=display_name(entry.name, entry.path, entry.kind),
            path=entry.path,
            kind=entry.kind,
            score=entry_score,
        )
