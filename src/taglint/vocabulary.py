"""Resolution of the allowed tag vocabulary from rule options.

The vocabulary is either an ordered tuple of tags or a compiled pattern.
File-backed sources are read once per source key and kept in a
``VocabularyCache`` for the lifetime of that cache; the module-level
``DEFAULT_CACHE`` lives as long as the process.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
import re
import threading
import tomllib
from typing import Callable, Hashable, Iterable, Mapping, TypeAlias, TypeVar

from taglint.constants import (
    DEFAULT_ALLOWED_VALUES,
    DEFAULT_MANIFEST_NAME,
    LINE_MATCHER,
    LINE_SPLITTER,
    TAG_SIGIL,
)
from taglint.exceptions import TagConfigError, VocabularyError
from taglint.schema import SourceKind, TagSourceOptions, parse_tag_source_options

logger = logging.getLogger(__name__)

AllowedVocabulary: TypeAlias = tuple[str, ...] | re.Pattern[str]
Reader: TypeAlias = Callable[[Path], str]

T = TypeVar("T")


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class VocabularyCache:
    """Write-once store of resolved vocabularies keyed by source identity."""

    def __init__(self) -> None:
        self._entries: dict[Hashable, object] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: Hashable, factory: Callable[[], T]) -> T:
        with self._lock:
            if key in self._entries:
                logger.debug("vocabulary cache hit for %r", key)
                return self._entries[key]  # type: ignore[return-value]
            logger.debug("vocabulary cache miss for %r", key)
            value = factory()
            self._entries[key] = value
            return value

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


DEFAULT_CACHE = VocabularyCache()


@dataclass(frozen=True)
class ResolvedVocabulary:
    allowed: AllowedVocabulary
    using: str
    allow_computed: bool = False

    @property
    def is_pattern(self) -> bool:
        return isinstance(self.allowed, re.Pattern)


def normalize_values(values: Iterable[str], *, prepend_at_sign: bool = True) -> tuple[str, ...]:
    """Trim, prefix with the sigil and deduplicate, keeping first occurrences."""
    seen: dict[str, None] = {}
    for raw in values:
        value = raw.strip()
        if not value:
            continue
        if prepend_at_sign and not value.startswith(TAG_SIGIL):
            value = TAG_SIGIL + value
        seen.setdefault(value, None)
    return tuple(seen)


def parse_markdown_tags(text: str) -> tuple[str, ...]:
    tags: dict[str, None] = {}
    for line in LINE_SPLITTER.split(text):
        match = LINE_MATCHER.match(line)
        if match is not None:
            tags.setdefault(match.group(1), None)
    return tuple(tags)


def flatten_manifest_value(name: str, value: object) -> list[str]:
    """Accept a list of strings, or a table whose list entries are concatenated."""
    if isinstance(value, list):
        return [_require_string(name, item) for item in value]
    if isinstance(value, Mapping):
        flattened: list[str] = []
        for entry in value.values():
            if isinstance(entry, list):
                flattened.extend(_require_string(name, item) for item in entry)
        return flattened
    raise VocabularyError(
        f"Property '{name}' must be an array of tags or an object of arrays of tags."
    )


def _require_string(name: str, item: object) -> str:
    if not isinstance(item, str):
        raise VocabularyError(f"Property '{name}' must only contain strings; found {item!r}.")
    return item


def _resolve_path(raw: str, root: Path | None) -> Path:
    path = Path(raw)
    if root is not None and not path.is_absolute():
        path = root / path
    return path


def _read_markdown(path: Path, reader: Reader) -> tuple[str, ...]:
    try:
        text = reader(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise VocabularyError(f"Unable to read markdown file '{path}': {exc}") from exc
    tags = parse_markdown_tags(text)
    logger.debug("read %d tag(s) from markdown file %s", len(tags), path)
    return tags


def _load_manifest(path: Path, reader: Reader) -> Mapping[str, object]:
    try:
        text = reader(path)
    except (OSError, UnicodeDecodeError) as exc:
        raise VocabularyError(f"Unable to read manifest '{path}': {exc}") from exc
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise VocabularyError(f"Unable to parse manifest '{path}': {exc}") from exc
    if not isinstance(data, Mapping):
        raise VocabularyError(f"Manifest '{path}' must contain an object at the top level.")
    return data


def _lookup_property(data: Mapping[str, object], name: str, path: Path) -> object:
    if name in data:
        return data[name]
    current: object = data
    for part in name.split("."):
        if not isinstance(current, Mapping) or part not in current:
            raise VocabularyError(f"Property '{name}' not found in manifest '{path}'.")
        current = current[part]
    return current


def _read_manifest_property(
    path: Path,
    name: str,
    prepend_at_sign: bool,
    reader: Reader,
) -> tuple[str, ...]:
    data = _load_manifest(path, reader)
    value = _lookup_property(data, name, path)
    return normalize_values(flatten_manifest_value(name, value), prepend_at_sign=prepend_at_sign)


def _compile_pattern(text: str) -> re.Pattern[str]:
    try:
        return re.compile(text)
    except re.error as exc:
        raise VocabularyError(f"Invalid pattern '{text}': {exc}") from exc


def _resolve_source(
    options: TagSourceOptions,
    *,
    root: Path | None,
    cache: VocabularyCache,
    reader: Reader,
) -> tuple[AllowedVocabulary, str]:
    kind = options.source_kind
    if kind is SourceKind.ALLOWED_VALUES:
        values = normalize_values(
            options.allowed_values or (),
            prepend_at_sign=options.should_prepend_at_sign,
        )
        return values, "allowed values"
    if kind is SourceKind.MARKDOWN_FILE:
        path = _resolve_path(str(options.markdown_file), root)
        values = cache.get_or_create(
            ("markdown", str(path)),
            lambda: _read_markdown(path, reader),
        )
        return values, "markdown file"
    if kind is SourceKind.MANIFEST_PROPERTY:
        name = str(options.manifest_property)
        path = _resolve_path(options.manifest_file or DEFAULT_MANIFEST_NAME, root)
        prepend = options.should_prepend_at_sign
        values = cache.get_or_create(
            ("manifest", str(path), name, prepend),
            lambda: _read_manifest_property(path, name, prepend, reader),
        )
        return values, f"package '{name}'"
    text = str(options.pattern)
    return _compile_pattern(text), f"pattern '{text}'"


def resolve_vocabulary(
    options: TagSourceOptions | Mapping[str, object] | None,
    *,
    root: Path | None = None,
    cache: VocabularyCache | None = None,
    reader: Reader | None = None,
) -> ResolvedVocabulary:
    """Resolve the allowed tags for one rule activation.

    Raises ``TagConfigError`` for malformed options or an empty vocabulary,
    and ``VocabularyError`` when a file-backed source cannot be used or the
    pattern does not compile.
    """
    parsed = parse_tag_source_options(options)
    if parsed is None:
        logger.debug("using default tag list")
        return ResolvedVocabulary(allowed=DEFAULT_ALLOWED_VALUES, using="default list")
    allowed, using = _resolve_source(
        parsed,
        root=root,
        cache=cache if cache is not None else DEFAULT_CACHE,
        reader=reader if reader is not None else read_text,
    )
    if not isinstance(allowed, re.Pattern) and not allowed:
        raise TagConfigError(f"At least one tag must be allowed; found none (using {using}).")
    logger.debug("resolved tag vocabulary using %s", using)
    return ResolvedVocabulary(
        allowed=allowed,
        using=using,
        allow_computed=parsed.allow_computed,
    )
