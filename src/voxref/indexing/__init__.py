"""
Indexing modules for voxref.

Provides:
- Symbol extraction with tree-sitter
- Tree enumeration and change notifications with watchdog
- Glob matching for tracked files
- The live index store
"""

from voxref.indexing.events import (
    Subscription,
    TreeEventHandler,
    TreeEventSource,
    WatchdogEventSource,
    WatchSubscription,
)
from voxref.indexing.extractor import (
    SymbolExtractor,
    TreeSitterExtractor,
    language_for_path,
)
from voxref.indexing.globs import expand_braces, matches_glob
from voxref.indexing.store import IndexSnapshot, IndexStore, canonical_path

__all__ = [
    "IndexStore",
    "IndexSnapshot",
    "canonical_path",
    "SymbolExtractor",
    "TreeSitterExtractor",
    "language_for_path",
    "Subscription",
    "TreeEventHandler",
    "TreeEventSource",
    "WatchdogEventSource",
    "WatchSubscription",
    "expand_braces",
    "matches_glob",
]
