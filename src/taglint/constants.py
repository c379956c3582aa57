from __future__ import annotations

import re

TAG_SIGIL = "@"
TAGS_PROPERTY = "tags"

DEFAULT_ALLOWED_VALUES: tuple[str, ...] = (
    "@smoke",
    "@regression",
    "@slow",
    "@fast",
    "@low",
    "@medium",
    "@high",
    "@critical",
)

TAGGABLE_BLOCKS = frozenset({"describe", "context", "it"})
TAGGABLE_SUBMETHODS = frozenset(
    (block, submethod)
    for block in TAGGABLE_BLOCKS
    for submethod in ("only", "skip")
)

LINE_MATCHER = re.compile(r"^\W*(@\w+)")
LINE_SPLITTER = re.compile(r"\r?\n")

DEFAULT_MANIFEST_NAME = "pyproject.toml"
