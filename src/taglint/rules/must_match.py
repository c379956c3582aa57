"""must-match: tags on test blocks must come from the allowed vocabulary."""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Mapping

from taglint.diagnostics import DiagnosticKind, ReportContext
from taglint.schema import TagSourceOptions
from taglint.suggest import SuggestionIndex
from taglint.tree import (
    TagValueShape,
    classify_tag_value,
    find_annotation_property,
    is_irrelevant,
)
from taglint.vocabulary import Reader, ResolvedVocabulary, VocabularyCache, resolve_vocabulary

RULE_NAME = "must-match"
TAGGED_ARGUMENT_COUNT = 3


class MustMatchRule:
    name = RULE_NAME
    description = "Enforce that mocha test blocks have tags from the allowed set"

    def __init__(self, vocabulary: ResolvedVocabulary) -> None:
        self.vocabulary = vocabulary
        self.index: SuggestionIndex | None = None
        if not vocabulary.is_pattern:
            self.index = SuggestionIndex(vocabulary.allowed)  # type: ignore[arg-type]

    @classmethod
    def activate(
        cls,
        options: TagSourceOptions | Mapping[str, object] | None = None,
        *,
        root: Path | None = None,
        cache: VocabularyCache | None = None,
        reader: Reader | None = None,
    ) -> "MustMatchRule":
        return cls(resolve_vocabulary(options, root=root, cache=cache, reader=reader))

    def create(
        self,
        context: ReportContext,
        parents: dict[ast.AST, ast.AST],
    ) -> ast.NodeVisitor:
        return _MustMatchVisitor(self, context)


class _MustMatchVisitor(ast.NodeVisitor):
    def __init__(self, rule: MustMatchRule, context: ReportContext) -> None:
        self.rule = rule
        self.context = context
        self.vocabulary = rule.vocabulary

    def visit_Call(self, node: ast.Call) -> None:
        self._check_call(node)
        self.generic_visit(node)

    def _check_call(self, node: ast.Call) -> None:
        if is_irrelevant(node, TAGGED_ARGUMENT_COUNT):
            return
        tags_property = find_annotation_property(node.args[1])
        if tags_property is None:
            return
        self._check_tags_value(tags_property.value)

    def _check_tags_value(self, node: ast.expr) -> None:
        shape = classify_tag_value(node)
        if shape is TagValueShape.STRING:
            self._check_single_tag(node, inside_array=False)
        elif shape is TagValueShape.SEQUENCE:
            elements = node.elts  # type: ignore[attr-defined]
            if not elements:
                self.context.report(node, DiagnosticKind.EMPTY_ARRAY)
                return
            for element in elements:
                self._check_single_tag(element, inside_array=True)
        elif shape is TagValueShape.TEMPLATE:
            # Unknown until runtime.
            return
        elif not self.vocabulary.allow_computed:
            self.context.report(node, DiagnosticKind.NON_LITERAL_OUTSIDE)

    def _check_single_tag(self, node: ast.expr, *, inside_array: bool) -> None:
        shape = classify_tag_value(node)
        if shape is TagValueShape.TEMPLATE:
            return
        if shape is not TagValueShape.STRING:
            if not self.vocabulary.allow_computed:
                kind = (
                    DiagnosticKind.NON_LITERAL_INSIDE
                    if inside_array
                    else DiagnosticKind.NON_LITERAL_OUTSIDE
                )
                self.context.report(node, kind)
            return
        value = node.value  # type: ignore[attr-defined]
        if value == "":
            self.context.report(node, DiagnosticKind.EMPTY_STRING)
        elif self.rule.index is None:
            pattern = self.vocabulary.allowed
            if pattern.search(value) is None:  # type: ignore[union-attr]
                self.context.report(
                    node,
                    DiagnosticKind.PATTERN_MISMATCH,
                    {"value": value, "using": self.vocabulary.using},
                )
        else:
            closest = self.rule.index(value)
            if closest != value:
                self.context.report(
                    node,
                    DiagnosticKind.SUGGESTED_CORRECTION,
                    {"value": value, "using": self.vocabulary.using, "closest": closest},
                    suggestion=closest,
                )
