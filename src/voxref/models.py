"""
Core data types shared by the index store and the transcript matcher.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum


class DeclarationKind(str, Enum):
    """Declaration forms reported by a symbol extractor."""

    CLASS = "class"
    FUNCTION_DECLARATION = "function_declaration"
    FUNCTION_EXPRESSION = "function_expression"


class SymbolKind(str, Enum):
    """Index mapping a symbol is registered under."""

    COMPONENT = "component"
    FUNCTION = "function"


class ArtifactKind(str, Enum):
    """Kinds of artifact a match can refer to."""

    FILE = "file"
    FOLDER = "folder"
    COMPONENT = "component"
    FUNCTION = "function"


@dataclass(frozen=True)
class ExtractedSymbol:
    """A named declaration as returned by an extractor."""

    name: str
    declaration: DeclarationKind


@dataclass(frozen=True)
class Symbol:
    """A declaration bound to the file that defines it."""

    name: str
    kind: SymbolKind
    defining_path: str

    @classmethod
    def from_extracted(cls, extracted: ExtractedSymbol, defining_path: str) -> "Symbol":
        """Classify an extracted declaration: uppercase first letter means component."""
        kind = (
            SymbolKind.COMPONENT
            if extracted.name[:1].isupper()
            else SymbolKind.FUNCTION
        )
        return cls(name=extracted.name, kind=kind, defining_path=defining_path)


@dataclass
class MatchCandidate:
    """An artifact matched against part of a transcript."""

    name: str
    path: str
    kind: ArtifactKind
    score: float

    @property
    def marker(self) -> str:
        """Back-reference marker placed in the annotated transcript."""
        return f"@{self.name}"

    def to_dict(self) -> dict[str, str | float]:
        return {
            "name": self.name,
            "path": self.path,
            "kind": self.kind.value,
            "score": self.score,
        }


@dataclass
class TranscriptMatchResult:
    """Annotated transcript plus the matches found in it."""

    annotated_transcript: str
    matches: list[MatchCandidate] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [m.path for m in self.matches]


def display_name(name: str, path: str, kind: ArtifactKind) -> str:
    """
    Human-readable name for a matched artifact.

    Components and functions show the symbol and its file, e.g.
    ``Button (Button.tsx)``; files and folders show their base name.
    """
    base = os.path.basename(path)
    if kind in (ArtifactKind.COMPONENT, ArtifactKind.FUNCTION):
        return f"{name} ({base})"
    return base
