from __future__ import annotations

import pytest

from taglint.diagnostics import DiagnosticKind
from taglint.exceptions import TagConfigError, VocabularyError
from taglint.linter import lint_source
from taglint.rules import MustMatchRule
from tests.file_helpers import FakeFiles, span_of

METHODS = (
    "describe",
    "context",
    "it",
    "describe.only",
    "context.only",
    "it.only",
    "describe.skip",
    "context.skip",
    "it.skip",
)

SINGLE_TAG_MD = "# Tags\n\n- @first: the only tag\n"
MULTIPLE_TAGS_MD = "- @first\n- @second\n"

OPTION_SETS = {
    "allowed values": {
        "single": {"allowed_values": ["@first"]},
        "multiple": {"allowed_values": ["@first", "@second"]},
        "computed": {"allowed_values": ["@first"], "allow_computed": True},
    },
    "markdown file": {
        "single": {"markdown_file": "single-tag.md"},
        "multiple": {"markdown_file": "multiple-tags.md"},
        "computed": {"markdown_file": "single-tag.md", "allow_computed": True},
    },
}


def _reader() -> FakeFiles:
    return FakeFiles(
        {"single-tag.md": SINGLE_TAG_MD, "multiple-tags.md": MULTIPLE_TAGS_MD}
    )


def _lint(code: str, options: dict[str, object] | None, vocabulary_cache) -> list:
    return lint_source(
        code,
        rules={"must-match": options},
        cache=vocabulary_cache,
        reader=_reader(),
    )


@pytest.fixture(params=sorted(OPTION_SETS))
def using(request) -> str:
    return request.param


@pytest.fixture(params=METHODS)
def method(request) -> str:
    return request.param


@pytest.mark.parametrize(
    "template",
    [
        "{m}('', lambda: None)",
        "{m}()",
        "{m}('')",
        "{m}('', 1, 2, 3, lambda: None)",
        "{m}('', {{}}, lambda: None)",
        "{m}('', {{'timeout': 10}}, lambda: None)",
        "{m}('', {{'tags': '@first'}}, lambda: None)",
        "{m}('', {{'tags': ['@first']}}, lambda: None)",
        "{m}('', {{'tags': ('@first',)}}, lambda: None)",
        "{m}('', {{'tags': ['@first', '@first', '@first']}}, lambda: None)",
        "{m}('', {{'tags': f\"firs{{'t'}}\"}}, lambda: None)",
        "{m}('', {{'tags': [f\"firs{{'t'}}\", '@first']}}, lambda: None)",
        "{m}('', {{'tags': 'bad'}}, lambda: None, 'extra')",
    ],
)
def test_valid_tags(template: str, method: str, using: str, vocabulary_cache) -> None:
    code = template.format(m=method)
    assert _lint(code, OPTION_SETS[using]["single"], vocabulary_cache) == []


def test_single_invalid_tag_suggests_the_allowed_one(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': '@another'}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["single"], vocabulary_cache)

    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.kind is DiagnosticKind.SUGGESTED_CORRECTION
    assert diagnostic.rule == "must-match"
    assert diagnostic.message == (
        f"Invalid tag '@another' (using {using}). Did you mean '@first'?"
    )
    assert diagnostic.suggestion == "@first"
    assert diagnostic.data == {"value": "@another", "using": using, "closest": "@first"}
    assert (diagnostic.column, diagnostic.end_column) == span_of(code, "'@another'")
    assert diagnostic.line == diagnostic.end_line == 1


def test_each_invalid_array_element_is_reported(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': ['@bad', '@first', '@another']}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["single"], vocabulary_cache)

    assert [item.message for item in diagnostics] == [
        f"Invalid tag '@bad' (using {using}). Did you mean '@first'?",
        f"Invalid tag '@another' (using {using}). Did you mean '@first'?",
    ]
    assert [(item.column, item.end_column) for item in diagnostics] == [
        span_of(code, "'@bad'"),
        span_of(code, "'@another'"),
    ]


def test_invalid_tag_in_second_place(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': ['@first', '@another']}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["single"], vocabulary_cache)

    assert len(diagnostics) == 1
    assert (diagnostics[0].column, diagnostics[0].end_column) == span_of(code, "'@another'")


def test_nearest_of_several_allowed_tags(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': ['@firts', '@secnod']}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["multiple"], vocabulary_cache)

    assert [item.suggestion for item in diagnostics] == ["@first", "@second"]


def test_empty_array(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': []}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["single"], vocabulary_cache)

    assert len(diagnostics) == 1
    assert diagnostics[0].kind is DiagnosticKind.EMPTY_ARRAY
    assert diagnostics[0].message == "Invalid tags; must not be empty"
    assert (diagnostics[0].column, diagnostics[0].end_column) == span_of(code, "[]")


@pytest.mark.parametrize(
    ("template", "token"),
    [
        ("{m}('', {{'tags': ''}}, lambda: None)", "''"),
        ("{m}('', {{'tags': ['@first', '']}}, lambda: None)", "''"),
    ],
)
def test_empty_string(template: str, token: str, method: str, using: str, vocabulary_cache) -> None:
    code = template.format(m=method)
    diagnostics = _lint(code, OPTION_SETS[using]["single"], vocabulary_cache)

    assert len(diagnostics) == 1
    assert diagnostics[0].kind is DiagnosticKind.EMPTY_STRING
    assert diagnostics[0].message == "Invalid tag; must not be empty"
    assert (diagnostics[0].column, diagnostics[0].end_column) == span_of(code, token, code.index("tags"))


@pytest.mark.parametrize(
    ("template", "token", "kind"),
    [
        ("{m}('', {{'tags': 1}}, lambda: None)", "1", DiagnosticKind.NON_LITERAL_OUTSIDE),
        ("{m}('', {{'tags': None}}, lambda: None)", "None", DiagnosticKind.NON_LITERAL_OUTSIDE),
        ("{m}('', {{'tags': TAGS}}, lambda: None)", "TAGS", DiagnosticKind.NON_LITERAL_OUTSIDE),
        (
            "{m}('', {{'tags': make_tags()}}, lambda: None)",
            "make_tags()",
            DiagnosticKind.NON_LITERAL_OUTSIDE,
        ),
        ("{m}('', {{'tags': [TAG]}}, lambda: None)", "TAG", DiagnosticKind.NON_LITERAL_INSIDE),
        ("{m}('', {{'tags': ['@first', 7]}}, lambda: None)", "7", DiagnosticKind.NON_LITERAL_INSIDE),
        ("{m}('', {{'tags': [*more]}}, lambda: None)", "*more", DiagnosticKind.NON_LITERAL_INSIDE),
    ],
)
def test_non_literal_tags(
    template: str,
    token: str,
    kind: DiagnosticKind,
    method: str,
    using: str,
    vocabulary_cache,
) -> None:
    code = template.format(m=method)
    options = OPTION_SETS[using]
    diagnostics = _lint(code, options["single"], vocabulary_cache)

    assert len(diagnostics) == 1
    assert diagnostics[0].kind is kind
    expected_message = (
        "Invalid tags; must be a literal string or an array of strings"
        if kind is DiagnosticKind.NON_LITERAL_OUTSIDE
        else "Invalid tag; must be a literal string"
    )
    assert diagnostics[0].message == expected_message
    start = code.index("'tags'")
    assert (diagnostics[0].column, diagnostics[0].end_column) == span_of(code, token, start)

    assert _lint(code, options["computed"], vocabulary_cache) == []


def test_allow_computed_still_checks_literals(method: str, using: str, vocabulary_cache) -> None:
    code = f"{method}('', {{'tags': [TAG, '@nope']}}, lambda: None)"
    diagnostics = _lint(code, OPTION_SETS[using]["computed"], vocabulary_cache)

    assert [item.kind for item in diagnostics] == [DiagnosticKind.SUGGESTED_CORRECTION]


def test_multiline_array_elements_keep_their_own_lines(vocabulary_cache) -> None:
    code = (
        "describe(\n"
        "    'suite',\n"
        "    {\n"
        "        'tags': [\n"
        "            '@first',\n"
        "            '@frist',\n"
        "        ],\n"
        "    },\n"
        "    lambda: None,\n"
        ")\n"
    )
    diagnostics = _lint(code, {"allowed_values": ["@first"]}, vocabulary_cache)

    assert len(diagnostics) == 1
    assert (diagnostics[0].line, diagnostics[0].column) == (6, 13)
    assert (diagnostics[0].end_line, diagnostics[0].end_column) == (6, 21)


def test_columns_count_characters_not_bytes(vocabulary_cache) -> None:
    code = "describe('déjà vu', {'tags': '@nope'}, lambda: None)"
    diagnostics = _lint(code, {"allowed_values": ["@first"]}, vocabulary_cache)

    assert (diagnostics[0].column, diagnostics[0].end_column) == span_of(code, "'@nope'")


def test_nested_blocks_are_validated(vocabulary_cache) -> None:
    code = (
        "def suite():\n"
        "    it('works', {'tags': '@nope'}, lambda: None)\n"
        "describe('outer', {'tags': '@first'}, suite)\n"
    )
    diagnostics = _lint(code, {"allowed_values": ["@first"]}, vocabulary_cache)

    assert [(item.line, item.data["value"]) for item in diagnostics] == [(2, "@nope")]


def test_non_mocha_calls_are_ignored(vocabulary_cache) -> None:
    code = (
        "test('', {'tags': '@nope'}, f)\n"
        "describe.each('', {'tags': '@nope'}, f)\n"
        "suite.describe('', {'tags': '@nope'}, f)\n"
        "describe('', dict(tags='@nope'), f)\n"
    )
    assert _lint(code, {"allowed_values": ["@first"]}, vocabulary_cache) == []


def test_default_list_is_used_without_options(vocabulary_cache) -> None:
    code = "describe('', {'tags': ['@smoke', '@fsat']}, lambda: None)"
    diagnostics = _lint(code, None, vocabulary_cache)

    assert len(diagnostics) == 1
    assert diagnostics[0].message == (
        "Invalid tag '@fsat' (using default list). Did you mean '@fast'?"
    )


def test_manifest_source_in_messages(vocabulary_cache) -> None:
    reader = FakeFiles({"package.json": '{"tags": {"speed": ["fast", "slow"]}}'})
    code = "describe('', {'tags': '@fats'}, lambda: None)"
    diagnostics = lint_source(
        code,
        rules={"must-match": {"packageJson": "tags", "manifestFile": "package.json"}},
        cache=vocabulary_cache,
        reader=reader,
    )

    assert [item.message for item in diagnostics] == [
        "Invalid tag '@fats' (using package 'tags'). Did you mean '@fast'?"
    ]


@pytest.mark.parametrize(
    ("template", "invalid"),
    [
        ("{m}('', {{'tags': '@another'}}, lambda: None)", ["@another"]),
        ("{m}('', {{'tags': ['@first', 'first', '@Second']}}, lambda: None)", ["first", "@Second"]),
    ],
)
def test_pattern_mismatch(template: str, invalid: list[str], method: str, vocabulary_cache) -> None:
    code = template.format(m=method)
    diagnostics = _lint(code, {"pattern": "^@(first|second)$"}, vocabulary_cache)

    assert [item.kind for item in diagnostics] == [DiagnosticKind.PATTERN_MISMATCH] * len(invalid)
    assert [item.message for item in diagnostics] == [
        f"Invalid tag '{value}' (using pattern '^@(first|second)$')." for value in invalid
    ]
    assert all(item.suggestion is None for item in diagnostics)


def test_pattern_uses_search_semantics(vocabulary_cache) -> None:
    code = "it('', {'tags': ['@team-a', 'prefix @x']}, lambda: None)"
    assert _lint(code, {"pattern": "@\\w"}, vocabulary_cache) == []


def test_pattern_still_reports_empty_values(vocabulary_cache) -> None:
    code = "it('', {'tags': ''}, lambda: None)"
    diagnostics = _lint(code, {"pattern": ".*"}, vocabulary_cache)
    assert [item.kind for item in diagnostics] == [DiagnosticKind.EMPTY_STRING]


@pytest.mark.parametrize(
    ("options", "error", "message"),
    [
        (
            {"allowed_values": []},
            TagConfigError,
            "At least one tag must be allowed; found none (using allowed values).",
        ),
        ({"markdown_file": "doesnt-exist"}, VocabularyError, "Unable to read markdown file"),
        (
            {"markdown_file": "empty.md"},
            TagConfigError,
            "At least one tag must be allowed; found none (using markdown file).",
        ),
    ],
)
def test_activation_errors(options, error, message, vocabulary_cache) -> None:
    reader = FakeFiles({"empty.md": ""})
    with pytest.raises(error) as exc_info:
        MustMatchRule.activate(options, cache=vocabulary_cache, reader=reader)
    assert message in str(exc_info.value)
