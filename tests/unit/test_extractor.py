"""
Unit tests for tree-sitter symbol extraction.

Tests cover:
- Declaration kinds across JavaScript, TypeScript and TSX
- Source order and nested declarations
- Vue single-file components
- Syntax errors and unreadable files
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.conftest import (
    SAMPLE_AUTH_HANDLER_TS,
    SAMPLE_BUTTON_TSX,
    SAMPLE_USER_PROFILE_TSX,
    SAMPLE_VALIDATOR_TS,
)
from voxref.errors import ExtractionError
from voxref.indexing.extractor import (
    TreeSitterExtractor,
    language_for_path,
    read_source,
    vue_script_language,
)
from voxref.models import DeclarationKind, ExtractedSymbol

D = DeclarationKind


@pytest.fixture(scope="module")
def extractor() -> TreeSitterExtractor:
    return TreeSitterExtractor()


def names(symbols: list[ExtractedSymbol]) -> list[tuple[str, DeclarationKind]]:
    return [(s.name, s.declaration) for s in symbols]


class TestDeclarations:
    """Tests for recognized declaration forms."""

    def test_function_component(self, extractor):
        """Function declarations in TSX are found."""
        symbols = extractor.extract(SAMPLE_BUTTON_TSX, "tsx")
        assert names(symbols) == [("Button", D.FUNCTION_DECLARATION)]

    def test_arrow_and_class(self, extractor):
        """Arrow components and classes are found in source order."""
        symbols = extractor.extract(SAMPLE_USER_PROFILE_TSX, "tsx")
        assert names(symbols) == [
            ("UserProfile", D.FUNCTION_EXPRESSION),
            ("ProfileErrorBoundary", D.CLASS),
        ]

    def test_typescript_module(self, extractor):
        """Exported and private functions are all found."""
        symbols = extractor.extract(SAMPLE_AUTH_HANDLER_TS, "typescript")
        assert names(symbols) == [
            ("handleAuth", D.FUNCTION_DECLARATION),
            ("refreshToken", D.FUNCTION_EXPRESSION),
            ("fetchUserById", D.FUNCTION_DECLARATION),
            ("generateNewToken", D.FUNCTION_DECLARATION),
        ]

    def test_validator(self, extractor):
        symbols = extractor.extract(SAMPLE_VALIDATOR_TS, "typescript")
        assert [s.name for s in symbols] == ["validateToken", "verifySignature"]

    def test_function_expression(self, extractor):
        """Variables bound to function expressions count."""
        source = "const formatDate = function (d) { return d; };\n"
        symbols = extractor.extract(source, "javascript")
        assert names(symbols) == [("formatDate", D.FUNCTION_EXPRESSION)]

    def test_nested_declarations(self, extractor):
        """Declarations at any depth are collected, outer first."""
        source = (
            "function outer() {\n"
            "  const inner = () => {\n"
            "    function deepest() {}\n"
            "  };\n"
            "}\n"
            "function after() {}\n"
        )
        symbols = extractor.extract(source, "javascript")
        assert [s.name for s in symbols] == ["outer", "inner", "deepest", "after"]

    def test_jsx_in_javascript(self, extractor):
        """JSX parses with the JavaScript grammar."""
        source = "export const App = () => <div className=\"app\">hi</div>;\n"
        assert [s.name for s in extractor.extract(source, "javascript")] == ["App"]

    def test_non_function_values_ignored(self, extractor):
        """Plain variables and destructuring are not declarations."""
        source = (
            "const limit = 10;\n"
            "const { a, b } = require('x');\n"
            "let handler = makeHandler();\n"
        )
        assert extractor.extract(source, "javascript") == []

    def test_empty_source(self, extractor):
        assert extractor.extract("", "typescript") == []


class TestVue:
    """Tests for Vue single-file components."""

    def test_script_blocks(self, extractor):
        """Declarations inside script blocks are found; markup is ignored."""
        source = (
            "<template>\n"
            "  <div class=\"card\">{{ title }}</div>\n"
            "</template>\n"
            "\n"
            "<script lang=\"ts\">\n"
            "export default { name: 'Card' };\n"
            "function formatTitle(t: string): string { return t; }\n"
            "</script>\n"
            "<script setup>\n"
            "const CardBody = () => null;\n"
            "</script>\n"
        )
        symbols = extractor.extract(source, "vue")
        assert names(symbols) == [
            ("formatTitle", D.FUNCTION_DECLARATION),
            ("CardBody", D.FUNCTION_EXPRESSION),
        ]

    def test_tsx_script_block(self, extractor):
        """JSX inside a lang="tsx" block parses with the TSX grammar."""
        source = (
            "<script setup lang=\"tsx\">\n"
            "const Panel = () => <div>hi</div>;\n"
            "</script>\n"
        )
        assert names(extractor.extract(source, "vue")) == [("Panel", D.FUNCTION_EXPRESSION)]

    def test_jsx_script_block(self, extractor):
        source = (
            "<script lang='jsx'>\n"
            "export function Row() { return <tr />; }\n"
            "</script>\n"
        )
        assert names(extractor.extract(source, "vue")) == [("Row", D.FUNCTION_DECLARATION)]

    @pytest.mark.parametrize(
        "attrs,expected",
        [
            ("", "typescript"),
            (" setup", "typescript"),
            (' lang="ts"', "typescript"),
            (' lang="js"', "typescript"),
            (' setup lang="tsx"', "tsx"),
            (" lang=JSX", "tsx"),
        ],
    )
    def test_script_language(self, attrs: str, expected: str):
        assert vue_script_language(attrs) == expected

    def test_no_script(self, extractor):
        """Template-only components declare nothing."""
        assert extractor.extract("<template><p/></template>", "vue") == []


class TestErrors:
    """Tests for extraction failures."""

    def test_syntax_error(self, extractor):
        """Unparseable source raises ExtractionError."""
        with pytest.raises(ExtractionError):
            extractor.extract("function broken( {\n", "typescript")

    def test_unsupported_language(self, extractor):
        with pytest.raises(ExtractionError):
            extractor.extract("def f(): pass", "python")

    def test_parser_reused(self):
        """One parser is created per language."""
        extractor = TreeSitterExtractor()
        extractor.extract("function a() {}", "javascript")
        extractor.extract("function b() {}", "javascript")
        assert list(extractor._parsers) == ["javascript"]


class TestHelpers:
    """Tests for path and file helpers."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("a/b.js", "javascript"),
            ("a/b.JSX", "javascript"),
            ("a/b.ts", "typescript"),
            ("a/b.tsx", "tsx"),
            ("a/b.vue", "vue"),
            ("a/b.scss", None),
            ("Makefile", None),
        ],
    )
    def test_language_for_path(self, path: str, expected: str | None):
        assert language_for_path(path) == expected

    def test_read_source(self, tmp_path: Path):
        path = tmp_path / "a.ts"
        path.write_text("function a() {}\n")
        assert read_source(str(path)) == "function a() {}\n"

    def test_read_source_too_large(self, tmp_path: Path):
        """Files over the size limit are refused."""
        path = tmp_path / "big.ts"
        path.write_text("x" * 2048)
        with pytest.raises(ExtractionError) as exc_info:
            read_source(str(path), max_bytes=1024)
        assert exc_info.value.path == str(path)

    def test_read_source_binary(self, tmp_path: Path):
        """Non-UTF-8 content is refused."""
        path = tmp_path / "bin.js"
        path.write_bytes(b"\xff\xfe\x00\x81")
        with pytest.raises(ExtractionError):
            read_source(str(path))

    def test_read_source_missing(self, tmp_path: Path):
        with pytest.raises(ExtractionError):
            read_source(str(tmp_path / "missing.ts"))
