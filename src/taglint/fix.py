"""Applies suggested tag corrections with LibCST, keeping the rest of the source intact."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Iterable

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from taglint.diagnostics import Diagnostic, DiagnosticKind

logger = logging.getLogger(__name__)

Position = tuple[int, int]


@dataclass
class FixResult:
    source: str
    applied: list[Diagnostic] = field(default_factory=list)
    remaining: list[Diagnostic] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def is_fixable(diagnostic: Diagnostic) -> bool:
    return (
        diagnostic.kind is DiagnosticKind.SUGGESTED_CORRECTION
        and diagnostic.suggestion is not None
    )


def render_string_literal(original: cst.SimpleString, value: str) -> str:
    """Spell ``value`` with the prefix and quotes of ``original`` when that is safe."""
    prefix = original.prefix
    quote = original.quote
    if "r" in prefix.lower() or "b" in prefix.lower():
        return repr(value)
    escaped = value.replace("\\", "\\\\")
    if len(quote) == 1:
        escaped = escaped.replace(quote, "\\" + quote).replace("\n", "\\n")
    elif quote[0] in escaped:
        return repr(value)
    return f"{prefix}{quote}{escaped}{quote}"


class _TagReplacer(cst.CSTTransformer):
    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, fixes: dict[Position, Diagnostic]) -> None:
        self.fixes = fixes
        self.applied: list[Diagnostic] = []

    def leave_SimpleString(
        self,
        original_node: cst.SimpleString,
        updated_node: cst.SimpleString,
    ) -> cst.BaseExpression:
        start = self.get_metadata(PositionProvider, original_node).start
        diagnostic = self.fixes.get((start.line, start.column + 1))
        if diagnostic is None or original_node.evaluated_value != diagnostic.data.get("value"):
            return updated_node
        self.applied.append(diagnostic)
        replacement = render_string_literal(original_node, str(diagnostic.suggestion))
        return updated_node.with_changes(value=replacement)


class TagFixEngine:
    def apply(self, source: str, diagnostics: Iterable[Diagnostic]) -> FixResult:
        items = list(diagnostics)
        fixes = {(item.line, item.column): item for item in items if is_fixable(item)}
        if not fixes:
            return FixResult(source=source, remaining=items)
        try:
            module = cst.parse_module(source)
        except cst.ParserSyntaxError as exc:
            return FixResult(source=source, remaining=items, errors=[f"LibCST parse failed: {exc}"])
        replacer = _TagReplacer(fixes)
        updated = MetadataWrapper(module).visit(replacer)
        applied_ids = {id(item) for item in replacer.applied}
        remaining = [item for item in items if id(item) not in applied_ids]
        return FixResult(source=updated.code, applied=replacer.applied, remaining=remaining)

    def apply_to_file(self, path: Path, diagnostics: Iterable[Diagnostic]) -> FixResult:
        items = list(diagnostics)
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("unable to read %s for fixing: %s", path, exc)
            return FixResult(source="", remaining=items, errors=[f"unable to read file: {exc}"])
        result = self.apply(source, items)
        if result.changed:
            try:
                path.write_text(result.source, encoding="utf-8")
            except OSError as exc:
                logger.warning("unable to write %s: %s", path, exc)
                return FixResult(
                    source=source,
                    remaining=items,
                    errors=[f"unable to write file: {exc}"],
                )
            logger.debug("applied %d fix(es) to %s", len(result.applied), path)
        return result
