"""
Tree event sources.

An event source enumerates the tracked files under a root and delivers
create/delete/change notifications for the same file set. The watchdog
implementation dispatches events from a single observer thread, so
callbacks run one at a time in arrival order.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Protocol

import structlog
from watchdog.events import (
    DirDeletedEvent,
    DirMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from voxref.indexing.globs import is_excluded_dir, matches_glob, relative_posix

logger = structlog.get_logger(__name__)

PathCallback = Callable[[str], None]


class Subscription(Protocol):
    """Handle returned by ``subscribe``; disposing it stops delivery."""

    def dispose(self) -> None:
        ...


class TreeEventSource(Protocol):
    """Bulk enumeration plus change notifications for a file set."""

    def enumerate(self, include_glob: str, exclude_glob: str | None) -> list[str]:
        ...

    def subscribe(
        self,
        include_glob: str,
        on_create: PathCallback,
        on_delete: PathCallback,
        on_change: PathCallback,
    ) -> Subscription:
        ...


def _event_path(raw: str | bytes) -> str:
    return os.fsdecode(raw)


class TreeEventHandler(FileSystemEventHandler):
    """
    Forwards watchdog events for tracked files to index callbacks.

    Moves are delivered as a delete of the source followed by a create
    of the destination. Directory deletions are forwarded as deletes so
    the index can drop everything beneath them.
    """

    def __init__(
        self,
        root: str,
        include_glob: str,
        exclude_glob: str | None,
        on_create: PathCallback,
        on_delete: PathCallback,
        on_change: PathCallback,
    ) -> None:
        super().__init__()
        self.root = root
        self.include_glob = include_glob
        self.exclude_glob = exclude_glob
        self.on_create = on_create
        self.on_delete = on_delete
        self.on_change = on_change

    def _is_tracked(self, path: str) -> bool:
        rel = relative_posix(path, self.root)
        if rel is None:
            return False
        if matches_glob(rel, self.exclude_glob):
            return False
        return matches_glob(rel, self.include_glob)

    def _dispatch(self, callback: PathCallback, path: str, action: str) -> None:
        try:
            callback(path)
        except Exception as e:
            logger.error("Error handling tree event", action=action, path=path, error=str(e))

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle file creation."""
        if event.is_directory:
            return
        path = _event_path(event.src_path)
        if self._is_tracked(path):
            self._dispatch(self.on_create, path, "create")

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle file modification."""
        if event.is_directory:
            return
        path = _event_path(event.src_path)
        if self._is_tracked(path):
            self._dispatch(self.on_change, path, "change")

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Handle file/directory deletion."""
        path = _event_path(event.src_path)
        if isinstance(event, DirDeletedEvent) or self._is_tracked(path):
            self._dispatch(self.on_delete, path, "delete")

    def on_moved(self, event: FileSystemEvent) -> None:
        """Handle file/directory move."""
        src_path = _event_path(event.src_path)
        dest_path = _event_path(event.dest_path)

        if isinstance(event, DirMovedEvent):
            self._dispatch(self.on_delete, src_path, "delete")
            for path in _walk_tracked(dest_path, self.root, self.include_glob, self.exclude_glob):
                self._dispatch(self.on_create, path, "create")
            return

        if self._is_tracked(src_path):
            self._dispatch(self.on_delete, src_path, "delete")
        if self._is_tracked(dest_path):
            self._dispatch(self.on_create, dest_path, "create")


class WatchSubscription:
    """A running watchdog observer bound to one handler."""

    def __init__(self, observer: Observer, handler: TreeEventHandler) -> None:
        self._observer: Observer | None = observer
        self.handler = handler

    @property
    def active(self) -> bool:
        return self._observer is not None

    def dispose(self) -> None:
        """Stop the observer and wait for its thread."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        logger.info("Tree watcher stopped", path=self.handler.root)


def _walk_tracked(
    start: str,
    root: str,
    include_glob: str,
    exclude_glob: str | None,
) -> list[str]:
    """Collect tracked files under ``start``, pruning excluded directories."""
    found: list[str] = []

    def _on_error(error: OSError) -> None:
        logger.warning("Error reading directory", path=error.filename, error=str(error))

    for dirpath, dirs, files in os.walk(start, onerror=_on_error):
        rel_dir = relative_posix(dirpath, root)
        if rel_dir is not None and is_excluded_dir(rel_dir, exclude_glob):
            dirs[:] = []
            continue

        dirs[:] = [
            d
            for d in dirs
            if not is_excluded_dir(
                relative_posix(os.path.join(dirpath, d), root) or d, exclude_glob
            )
        ]
        dirs.sort()

        for filename in sorted(files):
            file_path = os.path.join(dirpath, filename)
            rel = relative_posix(file_path, root)
            if rel is None or matches_glob(rel, exclude_glob):
                continue
            if matches_glob(rel, include_glob):
                found.append(file_path)

    return found


class WatchdogEventSource:
    """
    Event source backed by the local file system.

    Enumeration walks the root with ``os.walk``; subscriptions run a
    recursive watchdog observer on the root and drop events for paths
    matching ``exclude_glob``.
    """

    def __init__(self, root: str | Path, exclude_glob: str | None = None) -> None:
        self.root = str(Path(root).resolve())
        self.exclude_glob = exclude_glob

    def enumerate(self, include_glob: str, exclude_glob: str | None) -> list[str]:
        """
        List tracked files under the root.

        Args:
            include_glob: Glob selecting files, relative to the root.
            exclude_glob: Glob excluding files and directories.

        Returns:
            Absolute paths in a stable (sorted walk) order.
        """
        if not os.path.isdir(self.root):
            raise FileNotFoundError(f"Tree root not found: {self.root}")
        return _walk_tracked(self.root, self.root, include_glob, exclude_glob)

    def subscribe(
        self,
        include_glob: str,
        on_create: PathCallback,
        on_delete: PathCallback,
        on_change: PathCallback,
    ) -> WatchSubscription:
        """Start watching the root for changes to tracked files."""
        handler = TreeEventHandler(
            root=self.root,
            include_glob=include_glob,
            exclude_glob=self.exclude_glob,
            on_create=on_create,
            on_delete=on_delete,
            on_change=on_change,
        )
        observer = Observer()
        observer.schedule(handler, self.root, recursive=True)
        observer.start()
        logger.info("Tree watcher started", path=self.root)
        return WatchSubscription(observer, handler)
