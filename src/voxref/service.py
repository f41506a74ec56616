"""
voxref service.

Provides the VoxrefService orchestration class: owns the index store for
one tree root, the transcript matcher reading it, and the file tree
listing, and handles swapping to a different root.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterator

import structlog

from voxref.config import Config
from voxref.errors import InitializationError, NotInitializedError

if TYPE_CHECKING:
    from voxref.indexing.events import TreeEventSource
    from voxref.indexing.extractor import SymbolExtractor
    from voxref.indexing.store import IndexStore
    from voxref.matching.matcher import TranscriptMatcher
    from voxref.models import TranscriptMatchResult
    from voxref.tree import FileTree

logger = structlog.get_logger(__name__)

EventSourceFactory = Callable[[Path], "TreeEventSource"]


class VoxrefService:
    """
    Main voxref service.

    This is the primary interface for resolving transcripts. It manages:
    - Index store lifecycle (initialize, root swap, dispose)
    - Transcript matching against the live index
    - File tree listing for the current root
    """

    def __init__(
        self,
        config: Config | None = None,
        extractor: "SymbolExtractor | None" = None,
        event_source_factory: EventSourceFactory | None = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            config: Configuration instance. Uses default if not provided.
            extractor: Symbol extractor. Tree-sitter based if not provided.
            event_source_factory: Builds the event source for a root.
                Watchdog based if not provided.
        """
        self.config = config or Config()
        self._extractor = extractor
        self._event_source_factory = event_source_factory

        self._store: IndexStore | None = None
        self._matcher: TranscriptMatcher | None = None
        self._file_tree: FileTree | None = None
        self._root: Path | None = None
        self._lock = threading.Lock()

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def initialized(self) -> bool:
        return self._store is not None and self._store.initialized

    @property
    def store(self) -> "IndexStore":
        if self._store is None:
            raise NotInitializedError("Index has not been initialized")
        return self._store

    @property
    def file_tree(self) -> "FileTree":
        if self._file_tree is None:
            raise NotInitializedError("Index has not been initialized")
        return self._file_tree

    def _get_extractor(self) -> "SymbolExtractor":
        if self._extractor is None:
            from voxref.indexing.extractor import TreeSitterExtractor

            self._extractor = TreeSitterExtractor()
        return self._extractor

    def _create_event_source(self, root: Path) -> "TreeEventSource":
        if self._event_source_factory is not None:
            return self._event_source_factory(root)

        from voxref.indexing.events import WatchdogEventSource

        return WatchdogEventSource(root, exclude_glob=self.config.index.exclude_glob)

    def initialize(self, root_path: str | Path | None = None) -> None:
        """
        Build the index for a tree root.

        A no-op when already initialized on the same root. A different
        root is handled as a root swap.

        Raises:
            InitializationError: If the tree cannot be indexed.
        """
        root = Path(root_path or self.config.project_root).resolve()

        with self._lock:
            if self._store is not None:
                if root == self._root and self._store.initialized:
                    return
                self._teardown()
            self._build(root)

    def switch_root(self, root_path: str | Path) -> None:
        """
        Discard the current index and build one for a new root.

        The old store stops receiving events before the new one
        subscribes.
        """
        root = Path(root_path).resolve()
        logger.info("Switching tree root", old=str(self._root), new=str(root))
        with self._lock:
            self._teardown()
            self._build(root)

    def _build(self, root: Path) -> None:
        from voxref.indexing.store import IndexStore
        from voxref.matching.matcher import TranscriptMatcher
        from voxref.tree import FileTree

        if not root.is_dir():
            raise InitializationError(f"Tree root is not a directory: {root}")

        store = IndexStore(
            root=root,
            event_source=self._create_event_source(root),
            extractor=self._get_extractor(),
            config=self.config.index,
        )
        try:
            store.initialize()
        except InitializationError:
            store.dispose()
            raise

        self._store = store
        self._matcher = TranscriptMatcher(store, self.config.matcher)
        self._file_tree = FileTree(
            [root],
            ttl_seconds=self.config.tree.cache_ttl_seconds,
            ignore_patterns=self.config.tree.ignore_patterns,
        )
        self._root = root
        logger.info("voxref service initialized", root=str(root))

    def _teardown(self) -> None:
        if self._store is not None:
            self._store.dispose()
        if self._file_tree is not None:
            self._file_tree.clear_cache()
        self._store = None
        self._matcher = None
        self._file_tree = None
        self._root = None

    def find_in_transcript(self, text: str) -> "TranscriptMatchResult":
        """
        Resolve artifact references in a transcript.

        Raises:
            NotInitializedError: If no index has been built successfully.
        """
        if self._matcher is None or not self.initialized:
            raise NotInitializedError(
                "Index is not available; call initialize() first"
            )
        return self._matcher.find_in_transcript(text)

    def dispose(self) -> None:
        """Stop watching and release the index."""
        with self._lock:
            self._teardown()
        logger.info("voxref service disposed")

    @contextmanager
    def session(self, root_path: str | Path | None = None) -> Iterator["VoxrefService"]:
        """Context manager for service lifecycle."""
        try:
            self.initialize(root_path)
            yield self
        finally:
            self.dispose()

    def get_stats(self) -> dict[str, Any]:
        """Get index statistics."""
        stats: dict[str, Any] = {
            "root": str(self._root) if self._root else None,
            "initialized": self.initialized,
        }
        if self._store is not None:
            stats["index"] = self._store.stats()
        return stats
