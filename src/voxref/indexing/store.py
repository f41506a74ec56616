"""
Index store for tree artifacts.

Owns four name-to-path mappings and keeps them consistent as the tree
changes:
- files: lowercase base name and extension-stripped base name
- folders: lowercase folder name, for every ancestor below the root
- components: symbol name of uppercase declarations
- functions: symbol name of all other declarations

Each key maps to exactly one path; the most recently registered path
wins. Symbol entries belong to their defining file and are dropped
whenever that file is deleted or changed.

Writers are serialized with a lock and the folder mapping is rebuilt
off to the side and swapped in, so readers going through ``snapshot``
never observe a half-built mapping.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

import structlog

from voxref.config import IndexConfig
from voxref.errors import ExtractionError, InitializationError
from voxref.indexing.extractor import language_for_path, read_source
from voxref.indexing.globs import relative_posix
from voxref.models import Symbol, SymbolKind

if TYPE_CHECKING:
    from voxref.indexing.events import Subscription, TreeEventSource
    from voxref.indexing.extractor import SymbolExtractor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IndexSnapshot:
    """Read-only view of the index mappings at one point in time."""

    files: Mapping[str, str]
    folders: Mapping[str, str]
    components: Mapping[str, str]
    functions: Mapping[str, str]


def canonical_path(path: str | Path) -> str:
    """Absolute, normalized form of a path."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class IndexStore:
    """
    Live index of files, folders, components and functions in a tree.

    The narrow interface (initialize, handle_*, reset, dispose) is the
    only way the mappings change.
    """

    def __init__(
        self,
        root: str | Path,
        event_source: "TreeEventSource",
        extractor: "SymbolExtractor",
        config: IndexConfig | None = None,
    ) -> None:
        """
        Initialize the index store.

        Args:
            root: Tree root; folders are registered up to, not including, it.
            event_source: Enumeration and change notifications.
            extractor: Symbol extractor for source files.
            config: Index configuration.
        """
        self.root = canonical_path(root)
        self.event_source = event_source
        self.extractor = extractor
        self.config = config or IndexConfig()

        self._tracked = set(self.config.tracked_extensions)
        self._source = set(self.config.source_extensions)

        self._files: dict[str, str] = {}
        self._folders: dict[str, str] = {}
        self._components: dict[str, str] = {}
        self._functions: dict[str, str] = {}

        self._lock = threading.RLock()
        self._initialized = False
        self._subscription: Subscription | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def is_tracked(self, path: str) -> bool:
        return os.path.splitext(path)[1].lower() in self._tracked

    def is_source(self, path: str) -> bool:
        return os.path.splitext(path)[1].lower() in self._source

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, bulk_files: Iterable[str | Path] | None = None) -> None:
        """
        Populate the index from a bulk file list.

        A second call while initialized is a no-op. Per-file extraction
        failures are logged and skipped, as are files deleted since they
        were enumerated. On failure the subscription is released.

        Args:
            bulk_files: Files to index. Enumerated from the event source
                when omitted.

        Raises:
            InitializationError: If the file set cannot be enumerated or
                the change subscription cannot be set up.
        """
        if self._initialized:
            return

        logger.info("Initializing index", root=self.root)

        try:
            if self._subscription is None:
                self._subscription = self.event_source.subscribe(
                    self.config.include_glob,
                    self.handle_create,
                    self.handle_delete,
                    self.handle_change,
                )
            if bulk_files is None:
                files = self.event_source.enumerate(
                    self.config.include_glob,
                    self.config.exclude_glob,
                )
            else:
                files = list(bulk_files)
        except Exception as e:
            logger.error("Error initializing index", root=self.root, error=str(e))
            self.dispose()
            raise InitializationError(f"Cannot index {self.root}: {e}") from e

        for path in files:
            self._add_file(canonical_path(path), require_exists=True)

        self._initialized = True
        logger.info("Index initialization complete", **self.stats())

    def reset(self) -> None:
        """Clear all mappings and the initialized flag."""
        with self._lock:
            self._files = {}
            self._folders = {}
            self._components = {}
            self._functions = {}
            self._initialized = False

    def dispose(self) -> None:
        """Stop receiving tree events and release the index."""
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        self.reset()
        logger.debug("Index disposed", root=self.root)

    # ------------------------------------------------------------------
    # Tree events
    # ------------------------------------------------------------------

    def handle_create(self, path: str | Path) -> None:
        """Register a newly created file."""
        try:
            self._add_file(canonical_path(path))
        except Exception as e:
            logger.error("Error handling created file", path=str(path), error=str(e))

    def handle_delete(self, path: str | Path) -> None:
        """
        Drop a deleted file (or directory) and rebuild the folder mapping.

        Folder membership is recomputed from a fresh enumeration rather
        than derived incrementally.
        """
        str_path = canonical_path(path)
        try:
            with self._lock:
                for name in [k for k, v in self._files.items() if self._owned(v, str_path)]:
                    del self._files[name]
                self._drop_symbols(str_path)
            self._rebuild_folders()
            logger.debug("Removed file from index", path=str_path)
        except Exception as e:
            logger.error("Error handling deleted file", path=str_path, error=str(e))

    def handle_change(self, path: str | Path) -> None:
        """Re-extract the symbols of a changed source file."""
        str_path = canonical_path(path)
        if not self.is_source(str_path):
            return
        try:
            symbols = self._scan_symbols(str_path)
            with self._lock:
                self._drop_symbols(str_path)
                self._register_symbols(symbols)
            logger.debug("Rescanned file", path=str_path, symbols=len(symbols))
        except Exception as e:
            logger.error("Error handling changed file", path=str_path, error=str(e))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> IndexSnapshot:
        """Copy the current mappings for a consistent read."""
        with self._lock:
            return IndexSnapshot(
                files=MappingProxyType(dict(self._files)),
                folders=MappingProxyType(dict(self._folders)),
                components=MappingProxyType(dict(self._components)),
                functions=MappingProxyType(dict(self._functions)),
            )

    def symbols_for(self, path: str | Path) -> list[Symbol]:
        """Symbols currently registered for a defining file."""
        str_path = canonical_path(path)
        with self._lock:
            return [
                Symbol(name=name, kind=SymbolKind.COMPONENT, defining_path=p)
                for name, p in self._components.items()
                if p == str_path
            ] + [
                Symbol(name=name, kind=SymbolKind.FUNCTION, defining_path=p)
                for name, p in self._functions.items()
                if p == str_path
            ]

    def stats(self) -> dict[str, Any]:
        """Mapping sizes."""
        with self._lock:
            return {
                "files": len(self._files),
                "folders": len(self._folders),
                "components": len(self._components),
                "functions": len(self._functions),
                "initialized": self._initialized,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_file(self, path: str, require_exists: bool = False) -> None:
        if not self.is_tracked(path):
            return

        symbols = self._scan_symbols(path) if self.is_source(path) else []

        base = os.path.basename(path)
        stem = os.path.splitext(base)[0]
        with self._lock:
            # vanished since enumeration
            if require_exists and not os.path.isfile(path):
                logger.debug("Skipping vanished file", path=path)
                return
            self._files[base.lower()] = path
            self._files[stem.lower()] = path
            for folder in self._ancestor_folders(path):
                self._folders[os.path.basename(folder).lower()] = folder
            self._register_symbols(symbols)

    def _ancestor_folders(self, path: str) -> Iterator[str]:
        """Folders containing ``path``, deepest first, stopping below the root."""
        if relative_posix(path, self.root) is None:
            return
        folder = os.path.dirname(path)
        while folder and folder != self.root:
            yield folder
            folder = os.path.dirname(folder)

    def _scan_symbols(self, path: str) -> list[Symbol]:
        """Extract a file's symbols; failures leave the file without symbols."""
        language = language_for_path(path) or "javascript"
        try:
            text = read_source(path, max_bytes=self.config.max_file_size_kb * 1024)
            extracted = self.extractor.extract(text, language)
        except ExtractionError as e:
            logger.warning("Error scanning file", path=path, error=str(e))
            return []
        except Exception as e:
            logger.error("Extractor failed", path=path, error=str(e))
            return []
        return [Symbol.from_extracted(s, path) for s in extracted]

    def _register_symbols(self, symbols: list[Symbol]) -> None:
        for symbol in symbols:
            if symbol.kind is SymbolKind.COMPONENT:
                self._components[symbol.name] = symbol.defining_path
            else:
                self._functions[symbol.name] = symbol.defining_path

    def _drop_symbols(self, path: str) -> None:
        for mapping in (self._components, self._functions):
            for name in [k for k, v in mapping.items() if self._owned(v, path)]:
                del mapping[name]

    @staticmethod
    def _owned(candidate: str, path: str) -> bool:
        """True when ``candidate`` is ``path`` or lies beneath it."""
        return candidate == path or candidate.startswith(path + os.sep)

    def _rebuild_folders(self) -> None:
        """Recompute folder membership from the current enumerable file set."""
        try:
            files = self.event_source.enumerate(
                self.config.include_glob,
                self.config.exclude_glob,
            )
        except Exception as e:
            logger.error("Error rebuilding folder index", root=self.root, error=str(e))
            return

        folders: dict[str, str] = {}
        for path in files:
            str_path = canonical_path(path)
            if not self.is_tracked(str_path):
                continue
            for folder in self._ancestor_folders(str_path):
                folders[os.path.basename(folder).lower()] = folder

        with self._lock:
            self._folders = folders
        logger.debug("Rebuilt folder index", folders=len(folders))
