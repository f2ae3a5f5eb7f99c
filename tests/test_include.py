# tests/test_include.py
"""
Tests for the include preprocessor.
"""

import pytest

from vmgen.errors import IncludeError, VmgenErrorCodes
from vmgen.include import (
    BANNER,
    DIRECTIVE_GRAMMAR,
    parse_directive,
    preprocess,
    preprocess_text,
    resolve_include,
)

BANNER_TEXT = "".join(line + "\n" for line in BANNER)


class TestDirectiveGrammar:

    def test_grammar_rules(self):
        for rule in ("directive", "lead", "opener", "path", "closer"):
            assert rule in DIRECTIVE_GRAMMAR, f"Rule {rule!r} missing"

    @pytest.mark.parametrize("line,expected", [
        ("(**** include: vminstrs.gen.ml ****)", "vminstrs.gen.ml"),
        ("(**** include: vminstrs.gen.ml ****)\n", "vminstrs.gen.ml"),
        ("(****include:cases.ml****)", "cases.ml"),
        ("    (**** include :   sub/cases.ml   ****)", "sub/cases.ml"),
        ("(**** generated; include: /abs/prims.ml ****)", "/abs/prims.ml"),
        ("let x = 1 (**** include: tail.ml ****) in", "tail.ml"),
        ("(**** include: a.ml ****) (* include: b *)", "a.ml"),
        ("(**** include: a.ml ****) (**** include: b.ml", "a.ml"),
    ])
    def test_directive_lines(self, line, expected):
        assert parse_directive(line) == expected

    @pytest.mark.parametrize("line", [
        "let x = 1",
        "(* include: foo.ml *)",
        "(**** include foo.ml ****)",
        "(**** include: foo.ml",
        "include: foo.ml ****)",
        "(**** include: ****)",
        "",
    ])
    def test_ordinary_lines(self, line):
        assert parse_directive(line) is None


class TestResolveInclude:

    def test_relative_to_base_dir(self, tmp_path):
        assert resolve_include("cases.ml", tmp_path) == tmp_path / "cases.ml"

    def test_relative_uses_file_name_only(self, tmp_path):
        assert resolve_include("gen/cases.ml", tmp_path) == tmp_path / "cases.ml"

    def test_absolute_unchanged(self, tmp_path):
        target = tmp_path / "elsewhere" / "x.ml"
        assert resolve_include(str(target), "/unrelated") == target


class TestPreprocess:

    def test_banner_first(self, tmp_path):
        out = preprocess_text("let a = 1\n", tmp_path)
        assert out == BANNER_TEXT + "let a = 1\n"
        assert "AUTO-GENERATED FILE" in out
        assert "DO NOT MODIFY" in out

    def test_directive_scenario(self, write_file):
        write_file("src/cases.ml", "  | OpA -> a\n  | OpB -> b\n")
        src = write_file(
            "src/vm.cppo.ml",
            "let rec exec stack =\n"
            "  match code with\n"
            "(**** include: cases.ml ****)\n"
            "  | _ -> assert false\n",
        )
        out = "".join(preprocess(src))
        assert out == BANNER_TEXT + (
            "let rec exec stack =\n"
            "  match code with\n"
            "  | OpA -> a\n"
            "  | OpB -> b\n"
            "  | _ -> assert false\n"
        )

    def test_relative_directive_drops_directory(self, write_file):
        write_file("src/cases.ml", "  | OpA -> a\n")
        src = write_file("src/vm.ml", "(**** include: gen/cases.ml ****)\n")
        assert "".join(preprocess(src)) == BANNER_TEXT + "  | OpA -> a\n"

    def test_later_include_text_on_directive_line(self, write_file):
        write_file("src/a.ml", "spliced\n")
        src = write_file(
            "src/vm.ml", "(**** include: a.ml ****) (* include: b *)\n"
        )
        assert "".join(preprocess(src)) == BANNER_TEXT + "spliced\n"

    def test_absolute_directive(self, write_file, tmp_path):
        inc = write_file("lib/prims.ml", "prims\n")
        src = write_file("src/main.ml", f"(**** include: {inc} ****)\n")
        assert "".join(preprocess(src)) == BANNER_TEXT + "prims\n"

    def test_included_directives_not_expanded(self, write_file):
        write_file("src/inner.ml", "(**** include: missing.ml ****)\n")
        src = write_file("src/outer.ml", "(**** include: inner.ml ****)\n")
        out = "".join(preprocess(src))
        assert out.endswith("(**** include: missing.ml ****)\n")

    def test_missing_newlines_added(self, write_file):
        write_file("src/inc.ml", "no newline")
        src = write_file("src/a.ml", "(**** include: inc.ml ****)\nlast")
        out = "".join(preprocess(src))
        assert out.endswith("no newline\nlast\n")

    def test_missing_include_fails_after_flushing_prefix(self, write_file):
        src = write_file("src/a.ml", "first\n(**** include: nope.ml ****)\nlast\n")
        emitted = []
        with pytest.raises(IncludeError) as exc_info:
            for line in preprocess(src):
                emitted.append(line)
        assert emitted[-1] == "first\n"
        assert exc_info.value.code == VmgenErrorCodes.INCLUDE_NOT_FOUND
        assert exc_info.value.span.line == 2
        assert exc_info.value.path.endswith("nope.ml")
