"""Exception types raised while activating taglint rules."""

from __future__ import annotations


class TagLintError(Exception):
    """Base class for taglint failures."""


class TagConfigError(TagLintError, ValueError):
    """Rule options or configuration file cannot be used.

    Raised at rule activation. No file is analyzed once this is raised.
    """


class VocabularyError(TagConfigError):
    """A vocabulary source could not be read or parsed."""
