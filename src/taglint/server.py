from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence

import libcst as cst
from lsprotocol.types import (
    TEXT_DOCUMENT_CODE_ACTION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    CodeAction,
    CodeActionKind,
    CodeActionParams,
    Diagnostic,
    DiagnosticSeverity,
    MessageType,
    Position,
    PublishDiagnosticsParams,
    Range,
    ShowMessageParams,
    TextEdit,
    WorkspaceEdit,
)
from pygls.lsp.server import LanguageServer
from pygls.workspace import PositionCodec, ServerTextRange

from taglint import __version__
from taglint.config import DEFAULT_CONFIG_NAME, PYPROJECT_NAME, load_config
from taglint.diagnostics import Diagnostic as TagDiagnostic
from taglint.diagnostics import DiagnosticKind
from taglint.exceptions import TagConfigError
from taglint.fix import render_string_literal
from taglint.linter import Linter
from taglint.vocabulary import VocabularyCache

logger = logging.getLogger(__name__)

SOURCE = "taglint"
CONFIG_FILE_NAMES = frozenset({DEFAULT_CONFIG_NAME, PYPROJECT_NAME})

server = LanguageServer("taglint", __version__)

_CACHE = VocabularyCache()
_LINTERS: dict[Path, Linter] = {}


def _linter_for_root(root: Path) -> Linter:
    linter = _LINTERS.get(root)
    if linter is None:
        linter = Linter.from_config(load_config(root=root), root=root, cache=_CACHE)
        _LINTERS[root] = linter
    return linter


def forget_root(root: Path) -> None:
    """Drop the linter and vocabularies built for ``root`` so the next publish reloads them."""
    _LINTERS.pop(root, None)
    _CACHE.clear()


def _severity(diagnostic: TagDiagnostic) -> DiagnosticSeverity:
    if diagnostic.kind is DiagnosticKind.SUGGESTED_CORRECTION:
        return DiagnosticSeverity.Warning
    return DiagnosticSeverity.Error


def to_lsp_diagnostic(
    diagnostic: TagDiagnostic,
    lines: Sequence[str] | None = None,
    codec: PositionCodec | None = None,
) -> Diagnostic:
    """Convert a taglint diagnostic; with ``lines``, columns become client code units."""
    data: dict[str, object] = {"rule": diagnostic.rule, **diagnostic.data}
    if diagnostic.suggestion is not None:
        data["suggestion"] = diagnostic.suggestion
    rng = Range(
        start=Position(line=diagnostic.line - 1, character=diagnostic.column - 1),
        end=Position(line=diagnostic.end_line - 1, character=diagnostic.end_column - 1),
    )
    if lines is not None:
        rng = (codec or PositionCodec()).range_to_client_units(lines, rng)
    return Diagnostic(
        range=rng,
        message=diagnostic.message,
        severity=_severity(diagnostic),
        code=diagnostic.kind.value,
        source=SOURCE,
        data=data,
    )


def diagnostics_for_source(
    source: str,
    path: str,
    linter: Linter,
    codec: PositionCodec | None = None,
) -> list[Diagnostic]:
    try:
        found = linter.lint_source(source, path=path)
    except SyntaxError:
        # The editor's Python tooling already reports syntax errors.
        return []
    lines = source.splitlines(True)
    return [to_lsp_diagnostic(item, lines, codec) for item in found]


def _root_for(ls: LanguageServer, doc_path: str) -> Path:
    root_path = getattr(ls.workspace, "root_path", None)
    if root_path:
        return Path(root_path)
    return Path(doc_path).parent


def _publish(ls: LanguageServer, uri: str) -> None:
    doc = ls.workspace.get_text_document(uri)
    root = _root_for(ls, doc.path)
    try:
        diagnostics = diagnostics_for_source(
            doc.source,
            doc.path,
            _linter_for_root(root),
            ls.workspace.position_codec,
        )
    except TagConfigError as exc:
        logger.warning("taglint configuration error for %s: %s", root, exc)
        ls.window_show_message(
            ShowMessageParams(type=MessageType.Error, message=f"taglint: {exc}")
        )
        diagnostics = []
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def _range_text(lines: Sequence[str], rng: Range | ServerTextRange) -> str:
    """Text covered by a code point range; ``lines`` keep their line endings."""
    if rng.start.line == rng.end.line:
        return lines[rng.start.line][rng.start.character:rng.end.character]
    head = lines[rng.start.line][rng.start.character:]
    middle = lines[rng.start.line + 1:rng.end.line]
    tail = lines[rng.end.line][:rng.end.character]
    return "".join([head, *middle, tail])


def _replacement_literal(original_text: str, suggestion: str) -> str:
    try:
        node = cst.parse_expression(original_text)
    except cst.ParserSyntaxError:
        return repr(suggestion)
    if isinstance(node, cst.SimpleString):
        return render_string_literal(node, suggestion)
    return repr(suggestion)


def _suggestion_of(diagnostic: Diagnostic) -> str | None:
    if diagnostic.source != SOURCE or diagnostic.code != DiagnosticKind.SUGGESTED_CORRECTION.value:
        return None
    data = diagnostic.data
    if not isinstance(data, dict):
        return None
    suggestion = data.get("suggestion")
    return suggestion if isinstance(suggestion, str) else None


@server.feature(TEXT_DOCUMENT_CODE_ACTION)
def code_action(ls: LanguageServer, params: CodeActionParams) -> list[CodeAction]:
    uri = params.text_document.uri
    doc = ls.workspace.get_text_document(uri)
    lines = doc.source.splitlines(True)
    codec = ls.workspace.position_codec
    actions: list[CodeAction] = []
    for diagnostic in params.context.diagnostics:
        suggestion = _suggestion_of(diagnostic)
        if suggestion is None:
            continue
        original = _range_text(lines, codec.range_from_client_units(lines, diagnostic.range))
        edit = TextEdit(range=diagnostic.range, new_text=_replacement_literal(original, suggestion))
        actions.append(
            CodeAction(
                title=f"Replace with '{suggestion}'",
                kind=CodeActionKind.QuickFix,
                diagnostics=[diagnostic],
                edit=WorkspaceEdit(changes={uri: [edit]}),
                is_preferred=True,
            )
        )
    return actions


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params) -> None:
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params) -> None:
    _publish(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: LanguageServer, params) -> None:
    uri = params.text_document.uri
    doc = ls.workspace.get_text_document(uri)
    if Path(doc.path).name not in CONFIG_FILE_NAMES:
        _publish(ls, uri)
        return
    root = _root_for(ls, doc.path)
    logger.debug("configuration %s saved; reloading rules for %s", doc.path, root)
    forget_root(root)
    for open_uri in list(ls.workspace.text_documents):
        if open_uri.endswith(".py"):
            _publish(ls, open_uri)


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server on stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
