"""Tests for the rewriter module."""

import pytest

from typst_pack.errors import ConfigError
from typst_pack.rewriter import (
    entrypoint_file_name,
    package_import_path,
    rewrite_imports,
    strip_schema_lines,
)


def rewrite(content: str, entrypoint: str = "main.typ") -> str:
    return rewrite_imports(content, "mypkg", "1.0.0", entrypoint)


class TestRewriteImports:
    """Tests for self-import rewriting."""

    def test_rewrites_parent_import_with_specifier(self):
        """The specifier after the closing quote is preserved."""
        result = rewrite('#import "../main.typ": foo')

        assert result == '#import "@preview/mypkg:1.0.0": foo'

    def test_rewrites_multiple_ascending_segments(self):
        """Any number of ../ segments qualifies."""
        result = rewrite('#import "../../../main.typ": *')

        assert result == '#import "@preview/mypkg:1.0.0": *'

    def test_rewrites_bare_import(self):
        """Imports without a specifier are rewritten too."""
        assert rewrite('#import "../main.typ"') == '#import "@preview/mypkg:1.0.0"'

    def test_preserves_in_string_specifier(self):
        """A specifier inside the quotes is kept verbatim."""
        result = rewrite('#import "../main.typ: a, b"')

        assert result == '#import "@preview/mypkg:1.0.0: a, b"'

    def test_leaves_other_file_names(self):
        """Imports of a different file are untouched."""
        content = '#import "../../other.typ"'

        assert rewrite(content) == content

    def test_leaves_similar_file_names(self):
        """The entrypoint name must match exactly."""
        content = '#import "../mymain.typ": x\n#import "../main.typst": y'

        assert rewrite(content) == content

    def test_leaves_descending_paths(self):
        """Paths with descending segments are untouched."""
        content = '#import "../lib/main.typ": foo\n#import "./main.typ": bar'

        assert rewrite(content) == content

    def test_leaves_sibling_import(self):
        """A plain relative import without ../ is untouched."""
        content = '#import "main.typ": foo'

        assert rewrite(content) == content

    def test_rewrites_every_occurrence(self):
        """All matching imports in a file are rewritten; other text is kept."""
        content = (
            '#import "../main.typ": a\n'
            "= Heading\n"
            '#import "utils.typ": b\n'
            '#import  "../../main.typ": c\n'
        )

        result = rewrite(content)

        assert result == (
            '#import "@preview/mypkg:1.0.0": a\n'
            "= Heading\n"
            '#import "utils.typ": b\n'
            '#import "@preview/mypkg:1.0.0": c\n'
        )

    def test_uses_entrypoint_file_name_only(self):
        """A nested entrypoint path is matched by its file name."""
        result = rewrite('#import "../lib.typ": x', entrypoint="src/lib.typ")

        assert result == '#import "@preview/mypkg:1.0.0": x'

    def test_idempotent(self):
        """Rewriting already-rewritten content changes nothing."""
        once = rewrite('#import "../main.typ": foo\n#import "../../main.typ"\n')

        assert rewrite(once) == once

    def test_invalid_entrypoint(self):
        """An entrypoint without a file name is a configuration error."""
        with pytest.raises(ConfigError):
            entrypoint_file_name("")


class TestPackageImportPath:
    """Tests for qualified coordinates."""

    def test_format(self):
        """Coordinates use the preview namespace."""
        assert package_import_path("cards", "0.2.1") == "@preview/cards:0.2.1"


class TestStripSchemaLines:
    """Tests for manifest schema stripping."""

    def test_removes_indented_schema_line(self):
        """Schema lines are dropped; blank lines survive in order."""
        content = (
            "\n"
            "  #:schema https://example/schema.json\n"
            "\n"
            "[package]\n"
            'name = "mypkg"\n'
        )

        result = strip_schema_lines(content)

        assert result == '\n\n[package]\nname = "mypkg"'
        assert "#:schema" not in result

    def test_keeps_other_comments(self):
        """Ordinary comments are not schema directives."""
        content = "# comment\n#:schema x\n[package]"

        assert strip_schema_lines(content) == "# comment\n[package]"

    def test_crlf_lines(self):
        """Carriage returns are dropped from line ends."""
        content = "#:schema x\r\n[package]\r\nname = \"a\"\r\n"

        assert strip_schema_lines(content) == '[package]\nname = "a"'

    def test_no_schema_lines(self):
        """Content without directives is re-joined unchanged."""
        content = '[package]\n\nname = "a"'

        assert strip_schema_lines(content) == content
