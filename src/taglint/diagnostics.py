from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, TypeAlias


class DiagnosticKind(str, Enum):
    EMPTY_STRING = "EmptyString"
    EMPTY_ARRAY = "EmptyArray"
    NON_LITERAL_OUTSIDE = "NonLiteralOutside"
    NON_LITERAL_INSIDE = "NonLiteralInside"
    PATTERN_MISMATCH = "PatternMismatch"
    SUGGESTED_CORRECTION = "SuggestedCorrection"
    TOO_FEW_ARGUMENTS = "TooFewArguments"
    NON_OBJECT_SECOND_ARGUMENT = "NonObjectSecondArgument"
    MISSING_ANNOTATION_PROPERTY = "MissingAnnotationProperty"

    @property
    def template(self) -> str:
        return _MESSAGE_TEMPLATES[self]

    def format(self, data: Mapping[str, str]) -> str:
        return self.template.format(**data)


_MESSAGE_TEMPLATES: dict[DiagnosticKind, str] = {
    DiagnosticKind.EMPTY_STRING: "Invalid tag; must not be empty",
    DiagnosticKind.EMPTY_ARRAY: "Invalid tags; must not be empty",
    DiagnosticKind.NON_LITERAL_OUTSIDE: (
        "Invalid tags; must be a literal string or an array of strings"
    ),
    DiagnosticKind.NON_LITERAL_INSIDE: "Invalid tag; must be a literal string",
    DiagnosticKind.PATTERN_MISMATCH: "Invalid tag '{value}' (using {using}).",
    DiagnosticKind.SUGGESTED_CORRECTION: (
        "Invalid tag '{value}' (using {using}). Did you mean '{closest}'?"
    ),
    DiagnosticKind.TOO_FEW_ARGUMENTS: (
        "Top level Mocha method block must have 3 arguments "
        "(to supply tags at 2nd argument)"
    ),
    DiagnosticKind.NON_OBJECT_SECOND_ARGUMENT: (
        "Top level Mocha method block must have an object at 2nd argument "
        "(to supply tags property)"
    ),
    DiagnosticKind.MISSING_ANNOTATION_PROPERTY: (
        "Top level Mocha method block must have a property 'tags' at 2nd argument"
    ),
}


@dataclass(frozen=True)
class Diagnostic:
    rule: str
    kind: DiagnosticKind
    message: str
    path: str
    line: int
    column: int
    end_line: int
    end_column: int
    data: Mapping[str, str] = field(default_factory=dict)
    suggestion: str | None = None

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.message} [{self.rule}]"

    def to_payload(self) -> dict[str, object]:
        return {
            "rule": self.rule,
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "data": dict(self.data),
            "suggestion": self.suggestion,
        }


Reporter: TypeAlias = Callable[[Diagnostic], None]

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class SourceSpans:
    """Converts ``ast`` byte offsets into 1-based character columns.

    ``col_offset`` on ``ast`` nodes counts UTF-8 bytes, which drifts from
    the editor column as soon as a line holds non-ASCII text.
    """

    def __init__(self, source: str) -> None:
        self._lines = _LINE_BREAK.split(source)

    def _column(self, lineno: int, byte_offset: int) -> int:
        if lineno < 1 or lineno > len(self._lines):
            return byte_offset + 1
        encoded = self._lines[lineno - 1].encode("utf-8")
        return len(encoded[:byte_offset].decode("utf-8", errors="replace")) + 1

    def span(self, node: ast.AST) -> tuple[int, int, int, int]:
        line = int(getattr(node, "lineno", 1))
        end_line = int(getattr(node, "end_lineno", None) or line)
        start = int(getattr(node, "col_offset", 0))
        end = getattr(node, "end_col_offset", None)
        end_offset = int(end) if end is not None else start
        return (
            line,
            self._column(line, start),
            end_line,
            self._column(end_line, end_offset),
        )


class ReportContext:
    """Per-file reporting handle given to rule visitors."""

    def __init__(self, *, rule: str, path: str, spans: SourceSpans, report: Reporter) -> None:
        self.rule = rule
        self.path = path
        self._spans = spans
        self._report = report

    def report(
        self,
        node: ast.AST,
        kind: DiagnosticKind,
        data: Mapping[str, str] | None = None,
        *,
        suggestion: str | None = None,
    ) -> None:
        payload = dict(data or {})
        line, column, end_line, end_column = self._spans.span(node)
        self._report(
            Diagnostic(
                rule=self.rule,
                kind=kind,
                message=kind.format(payload),
                path=self.path,
                line=line,
                column=column,
                end_line=end_line,
                end_column=end_column,
                data=payload,
                suggestion=suggestion,
            )
        )
