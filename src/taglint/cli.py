from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional

import typer

from taglint.config import load_config, rule_settings
from taglint.exceptions import TagConfigError
from taglint.fix import TagFixEngine
from taglint.linter import FileError, LintResult, Linter, linter_for_root
from taglint.rules import MustMatchRule
from taglint.vocabulary import resolve_vocabulary

app = typer.Typer(add_completion=False, help="Validate tags on mocha-style test blocks.")

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG_ERROR = 2

_FORMATS = ("text", "json")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _build_linter(root: Path, config: Optional[Path]) -> tuple[Linter, list[str], list[str]]:
    try:
        settings = load_config(root=root, config_path=config)
        return linter_for_root(root, settings)
    except TagConfigError as exc:
        typer.echo(f"taglint: configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc


def _apply_fixes(result: LintResult, *, to_stderr: bool = False) -> LintResult:
    engine = TagFixEngine()
    by_path: dict[str, list] = {}
    for diagnostic in result.diagnostics:
        by_path.setdefault(diagnostic.path, []).append(diagnostic)
    remaining = []
    errors = list(result.errors)
    for shown, diagnostics in by_path.items():
        fixed = engine.apply_to_file(result.sources[shown], diagnostics)
        errors.extend(FileError(shown, 1, 1, message) for message in fixed.errors)
        if fixed.applied:
            typer.echo(f"Fixed {len(fixed.applied)} tag(s) in {shown}", err=to_stderr)
        remaining.extend(fixed.remaining)
    return LintResult(
        diagnostics=remaining,
        errors=errors,
        files=result.files,
        sources=result.sources,
    )


def _emit(result: LintResult, output_format: str, echo_fn: Callable[[str], None]) -> None:
    if output_format == "json":
        payload = {
            "files": result.files,
            "diagnostics": [item.to_payload() for item in result.diagnostics],
            "errors": [error.render() for error in result.errors],
        }
        echo_fn(json.dumps(payload, indent=2))
        return
    for error in result.errors:
        echo_fn(error.render())
    for diagnostic in result.diagnostics:
        echo_fn(diagnostic.render())
    if result.ok:
        echo_fn(f"No tag problems found in {result.files} file(s).")


@app.command()
def check(
    paths: List[Path] = typer.Argument(None, help="Files or directories to lint."),
    root: Path = typer.Option(Path("."), "--root", help="Project root for config and vocabulary files."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to taglint.toml or pyproject.toml."),
    fix: bool = typer.Option(False, "--fix/--no-fix", help="Rewrite tags that have a suggested correction."),
    output_format: str = typer.Option("text", "--format", help="Output format: text or json."),
) -> None:
    """Lint test modules for invalid or missing tags."""
    if output_format not in _FORMATS:
        raise typer.BadParameter(
            f"--format must be one of: {', '.join(_FORMATS)}", param_hint="--format"
        )
    root = root.resolve()
    linter, include, exclude = _build_linter(root, config)
    targets = list(paths) if paths else [root]
    result = linter.lint_paths(targets, root=root, include=include, exclude=exclude)
    if fix and result.diagnostics:
        result = _apply_fixes(result, to_stderr=output_format == "json")
    _emit(result, output_format, typer.echo)
    raise typer.Exit(code=EXIT_OK if result.ok else EXIT_VIOLATIONS)


@app.command()
def vocabulary(
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print the tags accepted by the must-match rule."""
    root = root.resolve()
    try:
        settings = rule_settings(load_config(root=root, config_path=config))
        resolved = resolve_vocabulary(settings.get(MustMatchRule.name), root=root)
    except TagConfigError as exc:
        typer.echo(f"taglint: configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from exc
    typer.echo(f"Using {resolved.using}:")
    if resolved.is_pattern:
        typer.echo(f"  {resolved.allowed.pattern}")  # type: ignore[union-attr]
        return
    for value in resolved.allowed:
        typer.echo(f"  {value}")


@app.command()
def lsp() -> None:
    """Run the taglint language server over stdio."""
    from taglint.server import start

    start()


if __name__ == "__main__":  # pragma: no cover
    app()
