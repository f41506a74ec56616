"""
Symbol extraction with tree-sitter.

Finds the declarations that name UI components and functions in
JavaScript, TypeScript and Vue sources:
- class declarations
- function declarations
- variables initialised with an arrow function or function expression

Declarations are collected at any nesting depth, in source order.
"""

from __future__ import annotations

import os
import re
from typing import Any, Protocol

import structlog

from voxref.errors import ExtractionError
from voxref.models import DeclarationKind, ExtractedSymbol

logger = structlog.get_logger(__name__)


# Extension to language hint
LANGUAGE_HINTS = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".vue": "vue",
}

# Language hint to (tree-sitter module, language function)
LANGUAGE_MODULES = {
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
}

CLASS_NODES = {"class_declaration", "abstract_class_declaration"}
FUNCTION_NODES = {"function_declaration", "generator_function_declaration"}
FUNCTION_VALUE_NODES = {
    "arrow_function",
    "function",
    "function_expression",
    "generator_function",
}

_VUE_SCRIPT_RE = re.compile(
    r"<script\b(?P<attrs>[^>]*)>(?P<body>.*?)</script\s*>",
    re.DOTALL | re.IGNORECASE,
)
_VUE_LANG_RE = re.compile(r"""\blang\s*=\s*["']?(?P<lang>\w+)""", re.IGNORECASE)

# Vue <script lang="..."> to language hint; anything else is parsed as typescript
VUE_SCRIPT_LANGUAGES = {
    "tsx": "tsx",
    "jsx": "tsx",
}


class SymbolExtractor(Protocol):
    """Turns file text into an ordered list of declared symbols."""

    def extract(self, text: str, language: str) -> list[ExtractedSymbol]:
        ...


def language_for_path(path: str) -> str | None:
    """Language hint for a file path, None when it is not source code."""
    return LANGUAGE_HINTS.get(os.path.splitext(path)[1].lower())


def vue_script_language(attrs: str) -> str:
    """Language hint for a Vue script block from its tag attributes."""
    match = _VUE_LANG_RE.search(attrs)
    if match is None:
        return "typescript"
    return VUE_SCRIPT_LANGUAGES.get(match.group("lang").lower(), "typescript")


def read_source(path: str, max_bytes: int | None = None) -> str:
    """
    Read a source file for extraction.

    Raises:
        ExtractionError: If the file is missing, too large or not UTF-8 text.
    """
    try:
        if max_bytes is not None and os.path.getsize(path) > max_bytes:
            raise ExtractionError("File too large to scan", path=path)
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise ExtractionError(f"Not a UTF-8 text file: {e}", path=path) from e
    except OSError as e:
        raise ExtractionError(f"Cannot read file: {e}", path=path) from e


class TreeSitterExtractor:
    """
    Symbol extractor backed by tree-sitter grammars.

    Parsers are created lazily per language and reused.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, Any] = {}

    def _get_parser(self, language: str) -> Any:
        """Get or create a tree-sitter parser for a language."""
        if language in self._parsers:
            return self._parsers[language]

        if language not in LANGUAGE_MODULES:
            raise ExtractionError(f"Unsupported language: {language}")

        import importlib

        import tree_sitter

        module_name, func_name = LANGUAGE_MODULES[language]
        lang_module = importlib.import_module(module_name)
        ts_language = tree_sitter.Language(getattr(lang_module, func_name)())
        parser = tree_sitter.Parser(ts_language)

        self._parsers[language] = parser
        logger.debug("Created parser", language=language)
        return parser

    def extract(self, text: str, language: str) -> list[ExtractedSymbol]:
        """
        Extract declarations from source text.

        Args:
            text: File content.
            language: Language hint (javascript, typescript, tsx or vue).

        Returns:
            Declarations in source order.

        Raises:
            ExtractionError: If the text does not parse cleanly.
        """
        if language == "vue":
            symbols: list[ExtractedSymbol] = []
            for block in _VUE_SCRIPT_RE.finditer(text):
                symbols.extend(
                    self.extract(block.group("body"), vue_script_language(block.group("attrs")))
                )
            return symbols

        parser = self._get_parser(language)
        tree = parser.parse(text.encode("utf-8"))
        root = tree.root_node

        if root.has_error:
            raise ExtractionError(f"Syntax error in {language} source")

        symbols = []
        self._collect(root, symbols)
        return symbols

    def _collect(self, root: Any, symbols: list[ExtractedSymbol]) -> None:
        """Walk the tree in pre-order, recording named declarations."""
        stack = [root]
        while stack:
            node = stack.pop()
            entry = self._declaration_of(node)
            if entry is not None:
                symbols.append(entry)
            stack.extend(reversed(node.children))

    def _declaration_of(self, node: Any) -> ExtractedSymbol | None:
        declaration: DeclarationKind | None = None
        name_node = None

        if node.type in CLASS_NODES:
            declaration = DeclarationKind.CLASS
            name_node = node.child_by_field_name("name")
        elif node.type in FUNCTION_NODES:
            declaration = DeclarationKind.FUNCTION_DECLARATION
            name_node = node.child_by_field_name("name")
        elif node.type == "variable_declarator":
            value = node.child_by_field_name("value")
            candidate = node.child_by_field_name("name")
            if (
                value is not None
                and value.type in FUNCTION_VALUE_NODES
                and candidate is not None
                and candidate.type == "identifier"
            ):
                declaration = DeclarationKind.FUNCTION_EXPRESSION
                name_node = candidate

        if declaration is None or name_node is None:
            return None
        name = name_node.text.decode("utf-8")
        if not name:
            return None
        return ExtractedSymbol(name=name, declaration=declaration)
