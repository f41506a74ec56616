"""
Shared fixtures for the voxref test suite.

Provides common test fixtures including:
- Temporary source trees
- An in-memory tree event source
- A line-based fake symbol extractor
- Pre-built index stores
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import pytest
import structlog

from voxref.config import IndexConfig
from voxref.errors import ExtractionError
from voxref.indexing.events import PathCallback, WatchdogEventSource
from voxref.indexing.store import IndexStore
from voxref.models import DeclarationKind, ExtractedSymbol


# ==============================================================================
# Fakes
# ==============================================================================

@dataclass
class FakeSubscription:
    """Subscription handle recording its callbacks."""

    on_create: PathCallback
    on_delete: PathCallback
    on_change: PathCallback
    log: list[tuple[str, str]]
    root: str
    disposed: bool = False

    def dispose(self) -> None:
        self.disposed = True
        self.log.append(("dispose", self.root))


class FakeEventSource:
    """
    In-memory tree event source.

    Enumerates a fixed file list, or walks the root when no list is
    given. Tests fire events explicitly with create/delete/change.
    """

    def __init__(
        self,
        root: str | Path,
        files: list[str] | None = None,
        log: list[tuple[str, str]] | None = None,
    ) -> None:
        self.root = str(root)
        self.files = files
        self.log = log if log is not None else []
        self.subscriptions: list[FakeSubscription] = []
        self.enumerate_calls = 0
        self.fail_enumerate = False
        self.fail_subscribe = False

    def enumerate(self, include_glob: str, exclude_glob: str | None) -> list[str]:
        self.enumerate_calls += 1
        if self.fail_enumerate:
            raise OSError("enumeration failed")
        if self.files is None:
            return WatchdogEventSource(self.root).enumerate(include_glob, exclude_glob)
        return list(self.files)

    def subscribe(
        self,
        include_glob: str,
        on_create: PathCallback,
        on_delete: PathCallback,
        on_change: PathCallback,
    ) -> FakeSubscription:
        if self.fail_subscribe:
            raise OSError("inotify watch limit reached")
        subscription = FakeSubscription(on_create, on_delete, on_change, self.log, self.root)
        self.subscriptions.append(subscription)
        self.log.append(("subscribe", self.root))
        return subscription

    @property
    def active(self) -> FakeSubscription:
        return self.subscriptions[-1]

    def create(self, path: str | Path) -> None:
        if self.files is not None:
            self.files.append(str(path))
        if not self.active.disposed:
            self.active.on_create(str(path))

    def delete(self, path: str | Path) -> None:
        if self.files is not None:
            prefix = str(path)
            self.files = [
                f for f in self.files if f != prefix and not f.startswith(prefix + "/")
            ]
        if not self.active.disposed:
            self.active.on_delete(str(path))

    def change(self, path: str | Path) -> None:
        if not self.active.disposed:
            self.active.on_change(str(path))


_DECLARATION_RE = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(class|function|const)\s+(\w+)",
    re.MULTILINE,
)

_DECLARATION_KINDS = {
    "class": DeclarationKind.CLASS,
    "function": DeclarationKind.FUNCTION_DECLARATION,
    "const": DeclarationKind.FUNCTION_EXPRESSION,
}


class FakeExtractor:
    """Line-based extractor: ``class X``, ``function y`` and ``const z``."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def extract(self, text: str, language: str) -> list[ExtractedSymbol]:
        self.calls.append(language)
        if "<<syntax error>>" in text:
            raise ExtractionError("Unexpected token")
        return [
            ExtractedSymbol(name=m.group(2), declaration=_DECLARATION_KINDS[m.group(1)])
            for m in _DECLARATION_RE.finditer(text)
        ]


# ==============================================================================
# Logging
# ==============================================================================

@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration applied by CLI tests."""
    yield
    structlog.reset_defaults()


# ==============================================================================
# Tree Fixtures
# ==============================================================================

@pytest.fixture
def tree_root(tmp_path: Path) -> Path:
    """Root directory of a temporary source tree."""
    root = tmp_path.resolve() / "project"
    root.mkdir()
    return root


@pytest.fixture
def write_tree(tree_root: Path) -> Callable[[dict[str, str]], list[str]]:
    """Write files under the tree root, returning their absolute paths in order."""

    def _write(files: dict[str, str]) -> list[str]:
        paths = []
        for rel, content in files.items():
            path = tree_root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
            paths.append(str(path))
        return paths

    return _write


@dataclass
class StoreHarness:
    """An initialized store with its fakes."""

    store: IndexStore
    source: FakeEventSource
    extractor: FakeExtractor
    root: Path
    paths: dict[str, str] = field(default_factory=dict)

    def path(self, rel: str) -> str:
        return str(self.root / rel)


@pytest.fixture
def build_store(
    tree_root: Path,
    write_tree: Callable[[dict[str, str]], list[str]],
) -> Callable[..., StoreHarness]:
    """Write a tree and build an initialized store over it."""

    def _build(files: dict[str, str], initialize: bool = True) -> StoreHarness:
        paths = write_tree(files)
        source = FakeEventSource(tree_root, files=list(paths))
        extractor = FakeExtractor()
        store = IndexStore(tree_root, source, extractor, IndexConfig())
        if initialize:
            store.initialize()
        return StoreHarness(
            store=store,
            source=source,
            extractor=extractor,
            root=tree_root,
            paths=dict(zip(files, paths)),
        )

    return _build


SAMPLE_BUTTON_TSX = '''import React from "react";

export function Button({ label }: { label: string }) {
  return <button className="btn">{label}</button>;
}
'''

SAMPLE_USER_PROFILE_TSX = '''import React from "react";
import { Button } from "./Button";

export const UserProfile = ({ name }: { name: string }) => {
  return (
    <div>
      <h1>{name}</h1>
      <Button label="Edit" />
    </div>
  );
};

export class ProfileErrorBoundary extends React.Component {
  render() {
    return this.props.children;
  }
}
'''

SAMPLE_AUTH_HANDLER_TS = '''import { AuthToken, User } from "../types/shared";
import { validateToken } from "./validator";

export async function handleAuth(token: AuthToken): Promise<User | null> {
  if (!validateToken(token)) {
    return null;
  }
  return fetchUserById(token.userId);
}

export const refreshToken = async (token: AuthToken): Promise<AuthToken | null> => {
  const user = await handleAuth(token);
  return user ? generateNewToken(user) : null;
};

async function fetchUserById(userId: string): Promise<User | null> {
  return null;
}

function generateNewToken(user: User): AuthToken {
  return { userId: user.id, token: "t", expiresAt: Date.now() + 3600000 };
}
'''

SAMPLE_VALIDATOR_TS = '''import { AuthToken } from "../types/shared";

export function validateToken(token: AuthToken): boolean {
  if (!token || !token.token || !token.userId) {
    return false;
  }
  return verifySignature(token);
}

function verifySignature(token: AuthToken): boolean {
  return true;
}
'''


@pytest.fixture
def sample_repo(write_tree: Callable[[dict[str, str]], list[str]], tree_root: Path) -> Path:
    """A small React/TypeScript project."""
    write_tree({
        "src/components/Button.tsx": SAMPLE_BUTTON_TSX,
        "src/components/UserProfile.tsx": SAMPLE_USER_PROFILE_TSX,
        "src/auth/handler.ts": SAMPLE_AUTH_HANDLER_TS,
        "src/auth/validator.ts": SAMPLE_VALIDATOR_TS,
        "src/styles/theme.scss": "$primary: #333;\n",
        "README.md": "# Sample\n",
        "node_modules/react/index.js": "function createElement() {}\n",
        "notes.txt": "not tracked\n",
    })
    return tree_root
