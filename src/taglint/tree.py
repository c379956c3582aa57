"""Structural predicates over ``ast`` nodes of mocha-style test modules."""

from __future__ import annotations

import ast
from enum import Enum
from typing import NamedTuple

from taglint.constants import TAGGABLE_BLOCKS, TAGGABLE_SUBMETHODS, TAGS_PROPERTY


class ParentAnnotator(ast.NodeVisitor):
    def __init__(self) -> None:
        self.parents: dict[ast.AST, ast.AST] = {}

    def generic_visit(self, node: ast.AST) -> None:
        for child in ast.iter_child_nodes(node):
            self.parents[child] = node
            self.visit(child)


def build_parent_map(tree: ast.AST) -> dict[ast.AST, ast.AST]:
    annotator = ParentAnnotator()
    annotator.visit(tree)
    return annotator.parents


class TagsProperty(NamedTuple):
    key: ast.expr
    value: ast.expr


class TagValueShape(Enum):
    STRING = "string"
    OTHER_LITERAL = "other_literal"
    SEQUENCE = "sequence"
    TEMPLATE = "template"
    COMPUTED = "computed"


def _is_block_name(node: ast.expr) -> bool:
    return isinstance(node, ast.Name) and node.id in TAGGABLE_BLOCKS


def _is_submethod(node: ast.expr) -> bool:
    return (
        isinstance(node, ast.Attribute)
        and isinstance(node.value, ast.Name)
        and (node.value.id, node.attr) in TAGGABLE_SUBMETHODS
    )


def is_taggable_declaration(node: ast.Call) -> bool:
    """``describe(...)``/``context(...)``/``it(...)`` or their only/skip variants."""
    return _is_block_name(node.func) or _is_submethod(node.func)


def has_expected_arity(node: ast.Call, expected_args: int | None) -> bool:
    if expected_args is None:
        return True
    return len(node.args) == expected_args


def is_irrelevant(node: ast.Call, expected_args: int | None = None) -> bool:
    return not has_expected_arity(node, expected_args) or not is_taggable_declaration(node)


def is_top_level_statement(node: ast.AST, parents: dict[ast.AST, ast.AST]) -> bool:
    statement = parents.get(node)
    if not isinstance(statement, ast.Expr):
        return False
    return isinstance(parents.get(statement), ast.Module)


def find_annotation_property(node: ast.AST) -> TagsProperty | None:
    if not isinstance(node, ast.Dict):
        return None
    for key, value in zip(node.keys, node.values):
        # ``**mapping`` entries carry no key.
        if (
            key is not None
            and isinstance(key, ast.Constant)
            and key.value == TAGS_PROPERTY
        ):
            return TagsProperty(key=key, value=value)
    return None


def classify_tag_value(node: ast.expr) -> TagValueShape:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, str):
            return TagValueShape.STRING
        return TagValueShape.OTHER_LITERAL
    if isinstance(node, (ast.List, ast.Tuple)):
        return TagValueShape.SEQUENCE
    if isinstance(node, ast.JoinedStr):
        return TagValueShape.TEMPLATE
    return TagValueShape.COMPUTED
