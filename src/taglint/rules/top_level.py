"""top-level: mocha blocks at module level must declare a tags property."""

from __future__ import annotations

import ast
from typing import Mapping

from taglint.diagnostics import DiagnosticKind, ReportContext
from taglint.schema import TopLevelOptions, parse_top_level_options
from taglint.tree import find_annotation_property, is_irrelevant, is_top_level_statement

RULE_NAME = "top-level"
TAGGED_ARGUMENT_COUNT = 3


class TopLevelRule:
    name = RULE_NAME
    description = "Enforce that mocha blocks at the top level have tags"

    def __init__(self, options: TopLevelOptions | None = None) -> None:
        self.options = options or TopLevelOptions()

    @classmethod
    def activate(
        cls,
        options: TopLevelOptions | Mapping[str, object] | None = None,
        **_: object,
    ) -> "TopLevelRule":
        if isinstance(options, TopLevelOptions):
            return cls(options)
        return cls(parse_top_level_options(options))

    def create(
        self,
        context: ReportContext,
        parents: dict[ast.AST, ast.AST],
    ) -> ast.NodeVisitor:
        return _TopLevelVisitor(context, parents)


class _TopLevelVisitor(ast.NodeVisitor):
    def __init__(self, context: ReportContext, parents: dict[ast.AST, ast.AST]) -> None:
        self.context = context
        self.parents = parents

    def visit_Call(self, node: ast.Call) -> None:
        self._check_call(node)
        self.generic_visit(node)

    def _check_call(self, node: ast.Call) -> None:
        if is_irrelevant(node, None) or not is_top_level_statement(node, self.parents):
            return
        count = len(node.args)
        if count < TAGGED_ARGUMENT_COUNT:
            self.context.report(node.func, DiagnosticKind.TOO_FEW_ARGUMENTS)
        elif count == TAGGED_ARGUMENT_COUNT:
            self._check_tags_argument(node.args[1])

    def _check_tags_argument(self, argument: ast.expr) -> None:
        if not isinstance(argument, ast.Dict):
            self.context.report(argument, DiagnosticKind.NON_OBJECT_SECOND_ARGUMENT)
        elif find_annotation_property(argument) is None:
            # A present tags property is validated by must-match.
            self.context.report(argument, DiagnosticKind.MISSING_ANNOTATION_PROPERTY)
