"""taglint package root."""

from taglint.diagnostics import Diagnostic, DiagnosticKind
from taglint.exceptions import TagConfigError, TagLintError, VocabularyError
from taglint.linter import LintResult, Linter, lint_source

__all__ = [
    "__version__",
    "Diagnostic",
    "DiagnosticKind",
    "LintResult",
    "Linter",
    "TagConfigError",
    "TagLintError",
    "VocabularyError",
    "lint_source",
]

__version__ = "0.1.0"
