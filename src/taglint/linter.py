"""Runs activated rules over Python test modules.

Rules are activated once per ``Linter``; the resulting vocabularies and
suggestion indexes are shared by every file the linter visits.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence

from taglint.config import TomlTable, exclude_patterns, include_patterns, rule_settings
from taglint.diagnostics import Diagnostic, ReportContext, SourceSpans
from taglint.rules import RULES, Rule, activate_rule
from taglint.tree import build_parent_map
from taglint.vocabulary import Reader, VocabularyCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileError:
    path: str
    line: int
    column: int
    message: str

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.message}"


@dataclass
class LintResult:
    diagnostics: list[Diagnostic] = field(default_factory=list)
    errors: list[FileError] = field(default_factory=list)
    files: int = 0
    # Display path of each linted file mapped to the path it was read from.
    sources: dict[str, Path] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.diagnostics and not self.errors


class Linter:
    def __init__(self, rules: Sequence[Rule]) -> None:
        self.rules = tuple(rules)

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, Mapping[str, object] | None] | None = None,
        *,
        root: Path | None = None,
        cache: VocabularyCache | None = None,
        reader: Reader | None = None,
    ) -> "Linter":
        if settings is None:
            settings = {name: None for name in RULES}
        rules = [
            activate_rule(name, options, root=root, cache=cache, reader=reader)
            for name, options in settings.items()
        ]
        logger.debug("activated rules: %s", ", ".join(rule.name for rule in rules))
        return cls(rules)

    @classmethod
    def from_config(
        cls,
        config: TomlTable,
        *,
        root: Path | None = None,
        cache: VocabularyCache | None = None,
        reader: Reader | None = None,
    ) -> "Linter":
        return cls.from_settings(rule_settings(config), root=root, cache=cache, reader=reader)

    def rule(self, name: str) -> Rule | None:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def lint_source(self, source: str, *, path: str = "<string>") -> list[Diagnostic]:
        """Lint one module; ``SyntaxError`` propagates to the caller."""
        tree = ast.parse(source, filename=path)
        parents = build_parent_map(tree)
        spans = SourceSpans(source)
        diagnostics: list[Diagnostic] = []
        for rule in self.rules:
            context = ReportContext(
                rule=rule.name,
                path=path,
                spans=spans,
                report=diagnostics.append,
            )
            rule.create(context, parents).visit(tree)
        return sorted(diagnostics, key=lambda item: (item.line, item.column))

    def lint_file(self, path: Path, *, display_path: str | None = None) -> LintResult:
        shown = display_path or str(path)
        result = LintResult(files=1, sources={shown: path})
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("unable to read %s: %s", shown, exc)
            result.errors.append(FileError(shown, 1, 1, f"unable to read file: {exc}"))
            return result
        try:
            result.diagnostics.extend(self.lint_source(source, path=shown))
        except SyntaxError as exc:
            logger.warning("syntax error in %s: %s", shown, exc.msg)
            result.errors.append(
                FileError(
                    shown,
                    int(exc.lineno or 1),
                    int(exc.offset or 1),
                    f"syntax error while checking tags: {exc.msg}",
                )
            )
        logger.debug("linted %s: %d diagnostic(s)", shown, len(result.diagnostics))
        return result

    def lint_paths(
        self,
        paths: Iterable[Path],
        *,
        root: Path,
        include: Sequence[str] = ("**/*.py",),
        exclude: Sequence[str] = (),
    ) -> LintResult:
        result = LintResult()
        for path in iter_source_files(paths, root=root, include=include, exclude=exclude):
            file_result = self.lint_file(path, display_path=_display_path(path, root))
            result.files += file_result.files
            result.diagnostics.extend(file_result.diagnostics)
            result.errors.extend(file_result.errors)
            result.sources.update(file_result.sources)
        return result


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.as_posix()


def _is_excluded(path: Path, root: Path, exclude: Sequence[str]) -> bool:
    rel = _display_path(path, root)
    return any(fnmatch.fnmatch(rel, pattern) for pattern in exclude)


def iter_source_files(
    paths: Iterable[Path],
    *,
    root: Path,
    include: Sequence[str],
    exclude: Sequence[str] = (),
) -> Iterator[Path]:
    """Expand directories through ``include`` globs; explicit files are kept as given."""
    seen: set[Path] = set()
    for path in paths:
        if path.is_dir():
            candidates: list[Path] = []
            for pattern in include:
                candidates.extend(sorted(path.glob(pattern)))
        else:
            candidates = [path]
        for candidate in candidates:
            if not candidate.is_file() and candidate.exists():
                continue
            if any(part == "__pycache__" for part in candidate.parts):
                continue
            if candidate.resolve() in seen:
                continue
            if path.is_dir() and _is_excluded(candidate, root, exclude):
                continue
            seen.add(candidate.resolve())
            yield candidate


def lint_source(
    source: str,
    *,
    path: str = "<string>",
    rules: Mapping[str, Mapping[str, object] | None] | None = None,
    root: Path | None = None,
    cache: VocabularyCache | None = None,
    reader: Reader | None = None,
) -> list[Diagnostic]:
    linter = Linter.from_settings(rules, root=root, cache=cache, reader=reader)
    return linter.lint_source(source, path=path)


def linter_for_root(
    root: Path,
    config: TomlTable,
    *,
    cache: VocabularyCache | None = None,
) -> tuple[Linter, list[str], list[str]]:
    linter = Linter.from_config(config, root=root, cache=cache)
    return linter, include_patterns(config), exclude_patterns(config)
