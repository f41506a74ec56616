"""
Glob matching for tracked-file selection.

Supports the subset of workspace glob syntax used by the index:
- ``{a,b}`` brace alternatives (nested braces are expanded recursively)
- ``**/`` matching zero or more leading directories
- ``*`` and ``?`` via fnmatch (``*`` may cross directory separators)

Paths are compared in POSIX form, relative to the tree root.
"""

from __future__ import annotations

import fnmatch
import os
import re
from functools import lru_cache
from pathlib import Path

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


@lru_cache(maxsize=128)
def expand_braces(pattern: str) -> tuple[str, ...]:
    """
    Expand brace alternatives into plain fnmatch patterns.

    ``**/*.{ts,tsx}`` becomes ``("**/*.ts", "**/*.tsx")``.
    """
    match = _BRACE_RE.search(pattern)
    if not match:
        return (pattern,)

    head = pattern[: match.start()]
    tail = pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return tuple(expanded)


def _match_one(rel_path: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    # "**/" also matches no directory at all
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
    return False


def matches_glob(rel_path: str, pattern: str | None) -> bool:
    """Check a root-relative POSIX path against a glob."""
    if not pattern:
        return False
    return any(_match_one(rel_path, p) for p in expand_braces(pattern))


def relative_posix(path: str | Path, root: str | Path) -> str | None:
    """
    Root-relative POSIX form of ``path``.

    Returns None when ``path`` does not lie under ``root``.
    """
    try:
        rel = os.path.relpath(os.fspath(path), os.fspath(root))
    except ValueError:
        return None
    if rel == os.curdir or rel.startswith(os.pardir + os.sep) or rel == os.pardir:
        return None
    return Path(rel).as_posix()


def is_excluded_dir(rel_dir: str, pattern: str | None) -> bool:
    """Check whether a directory (and so everything under it) is excluded."""
    return matches_glob(rel_dir.rstrip("/") + "/", pattern)
