"""
File tree listing with a short-lived cache.

Lists every file under one or more roots, caches the listing for a
configurable time, and offers name lookups over it.
"""

from __future__ import annotations

import os
import re
import time
from pathlib import Path
from typing import Iterable

import structlog
from pydantic import BaseModel, ValidationError, field_validator

from voxref.indexing.globs import is_excluded_dir, matches_glob, relative_posix

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60


class FileTreeListing(BaseModel):
    """A validated list of file paths."""

    paths: list[str]

    @field_validator("paths")
    @classmethod
    def non_empty_paths(cls, v: list[str]) -> list[str]:
        """Reject empty path strings."""
        for path in v:
            if len(path) == 0:
                raise ValueError("File path cannot be empty")
        return v


def validate_file_tree(paths: Iterable[str]) -> list[str]:
    """
    Validate a file listing.

    Raises:
        pydantic.ValidationError: If any path is empty.
    """
    return FileTreeListing(paths=list(paths)).paths


def is_valid_file_tree(paths: Iterable[str]) -> bool:
    try:
        validate_file_tree(paths)
    except ValidationError:
        return False
    return True


class FileTree:
    """
    Cached listing of the files under a set of roots.

    Features:
    - Recursive listing of every file, not only tracked ones
    - Time-based cache invalidation
    - Exact base-name lookup and regex search
    """

    def __init__(
        self,
        roots: Iterable[str | Path],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        ignore_patterns: list[str] | None = None,
    ) -> None:
        self.roots = [str(Path(r).resolve()) for r in roots]
        self.ttl_seconds = ttl_seconds
        self.ignore_patterns = ignore_patterns or []

        self._paths: list[str] = []
        self._last_update = 0.0

    def is_cache_valid(self) -> bool:
        return self._last_update > 0 and (
            time.monotonic() - self._last_update < self.ttl_seconds
        )

    def clear_cache(self) -> None:
        self._paths = []
        self._last_update = 0.0

    def _ignored(self, rel: str, directory: bool = False) -> bool:
        if directory:
            return any(is_excluded_dir(rel, p) for p in self.ignore_patterns)
        return any(matches_glob(rel, p) for p in self.ignore_patterns)

    def _walk(self, root: str) -> list[str]:
        files: list[str] = []

        def _on_error(error: OSError) -> None:
            logger.warning("Error reading directory", path=error.filename, error=str(error))

        for dirpath, dirs, filenames in os.walk(root, onerror=_on_error):
            dirs[:] = sorted(
                d
                for d in dirs
                if not self._ignored(
                    relative_posix(os.path.join(dirpath, d), root) or d,
                    directory=True,
                )
            )
            for filename in sorted(filenames):
                full_path = os.path.join(dirpath, filename)
                rel = relative_posix(full_path, root)
                if rel is not None and self._ignored(rel):
                    continue
                files.append(full_path)

        return files

    def get_file_tree(self, use_cache: bool = True) -> list[str]:
        """
        List all files under the roots.

        Args:
            use_cache: Return the cached listing when it is still valid.

        Returns:
            Absolute file paths.
        """
        if use_cache and self.is_cache_valid():
            return list(self._paths)

        files: list[str] = []
        for root in self.roots:
            files.extend(self._walk(root))

        self._paths = validate_file_tree(files)
        self._last_update = time.monotonic()
        logger.debug("Listed file tree", roots=len(self.roots), files=len(files))
        return list(self._paths)

    def find_file(self, file_name: str) -> bool:
        """Check whether any file has exactly this base name."""
        return any(os.path.basename(p) == file_name for p in self.get_file_tree())

    def search_files(self, pattern: str | re.Pattern[str]) -> list[str]:
        """
        Files whose base name matches a regular expression.

        Args:
            pattern: Regex string or compiled pattern, searched anywhere
                in the base name.
        """
        regex = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)
        return [p for p in self.get_file_tree() if regex.search(os.path.basename(p))]
