from __future__ import annotations

from pathlib import Path

import libcst as cst

from taglint.diagnostics import DiagnosticKind
from taglint.fix import TagFixEngine, is_fixable, render_string_literal
from taglint.linter import lint_source
from tests.file_helpers import write_file

RULES = {"must-match": {"allowed_values": ["@first", "@second"]}}


def test_suggested_corrections_are_applied() -> None:
    source = (
        "describe('suite', {'tags': ['@firts', \"@secnod\"]}, lambda: None)\n"
        "it('case', {'tags': '@frist'}, lambda: None)  # keep me\n"
    )
    diagnostics = lint_source(source, rules=RULES)

    result = TagFixEngine().apply(source, diagnostics)

    assert result.changed
    assert result.source == (
        "describe('suite', {'tags': ['@first', \"@second\"]}, lambda: None)\n"
        "it('case', {'tags': '@first'}, lambda: None)  # keep me\n"
    )
    assert len(result.applied) == 3
    assert result.remaining == []
    assert lint_source(result.source, rules=RULES) == []


def test_unfixable_diagnostics_are_kept() -> None:
    source = "describe('', {'tags': ['', '@firts', TAG]}, lambda: None)\n"
    diagnostics = lint_source(source, rules=RULES)

    result = TagFixEngine().apply(source, diagnostics)

    assert [item.kind for item in result.remaining] == [
        DiagnosticKind.EMPTY_STRING,
        DiagnosticKind.NON_LITERAL_INSIDE,
    ]
    assert "'@first'" in result.source
    assert not any(is_fixable(item) for item in result.remaining)


def test_nothing_to_fix_returns_source_untouched() -> None:
    source = "describe('', {'tags': 1}, lambda: None)\n"
    diagnostics = lint_source(source, rules=RULES)

    result = TagFixEngine().apply(source, diagnostics)

    assert not result.changed
    assert result.source == source
    assert result.remaining == diagnostics


def test_apply_to_file_rewrites_in_place(tmp_path: Path) -> None:
    path = write_file(tmp_path / "test_sample.py", "it('x', {'tags': '@secnd'}, f)\n")
    diagnostics = lint_source(path.read_text(encoding="utf-8"), rules=RULES, path=str(path))

    result = TagFixEngine().apply_to_file(path, diagnostics)

    assert result.changed
    assert path.read_text(encoding="utf-8") == "it('x', {'tags': '@second'}, f)\n"


def test_render_string_literal_keeps_quotes() -> None:
    single = cst.parse_expression("'@x'")
    double = cst.parse_expression('"@x"')
    triple = cst.parse_expression('"""@x"""')
    raw = cst.parse_expression("r'@x'")
    assert isinstance(single, cst.SimpleString)
    assert render_string_literal(single, "@it's") == "'@it\\'s'"
    assert render_string_literal(double, "@y") == '"@y"'
    assert render_string_literal(triple, "@y") == '"""@y"""'
    assert render_string_literal(raw, "@y") == "'@y'"


def test_apply_to_file_reports_unreadable_file(tmp_path: Path) -> None:
    diagnostics = lint_source("it('x', {'tags': '@secnd'}, f)\n", rules=RULES)

    result = TagFixEngine().apply_to_file(tmp_path / "gone.py", diagnostics)

    assert not result.changed
    assert result.remaining == diagnostics
    assert result.errors and result.errors[0].startswith("unable to read file")
