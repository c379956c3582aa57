from __future__ import annotations

from enum import Enum
from typing import List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from taglint.exceptions import TagConfigError


class SourceKind(str, Enum):
    ALLOWED_VALUES = "allowed_values"
    MARKDOWN_FILE = "markdown_file"
    MANIFEST_PROPERTY = "manifest_property"
    PATTERN = "pattern"


_SOURCE_NAMES = "'allowedValues', 'markdownFile', 'packageJson' or 'pattern'"


class TagSourceOptions(BaseModel):
    """Options of the must-match rule.

    Exactly one source selector may be set. Keys are accepted in snake_case
    and in the camelCase spelling used by JavaScript tooling.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    allowed_values: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("allowed_values", "allowedValues"),
    )
    markdown_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("markdown_file", "markdownFile"),
    )
    manifest_property: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("manifest_property", "packageJson", "package_json"),
    )
    manifest_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("manifest_file", "manifestFile"),
    )
    pattern: Optional[str] = None
    allow_computed: bool = Field(
        default=False,
        validation_alias=AliasChoices("allow_computed", "allowComputed"),
    )
    prepend_at_sign: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("prepend_at_sign", "prependAtSign"),
    )

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "TagSourceOptions":
        selected = [
            kind
            for kind in SourceKind
            if getattr(self, kind.value) is not None
        ]
        if len(selected) != 1:
            raise ValueError(f"Option must be exactly one of {_SOURCE_NAMES}.")
        kind = selected[0]
        if self.prepend_at_sign is not None and kind not in {
            SourceKind.ALLOWED_VALUES,
            SourceKind.MANIFEST_PROPERTY,
        }:
            raise ValueError(
                "Option 'prependAtSign' is only valid with 'allowedValues' or 'packageJson'."
            )
        if self.manifest_file is not None and kind is not SourceKind.MANIFEST_PROPERTY:
            raise ValueError("Option 'manifestFile' is only valid with 'packageJson'.")
        return self

    @property
    def source_kind(self) -> SourceKind:
        for kind in SourceKind:
            if getattr(self, kind.value) is not None:
                return kind
        raise TagConfigError(f"Option must be exactly one of {_SOURCE_NAMES}.")

    @property
    def should_prepend_at_sign(self) -> bool:
        return True if self.prepend_at_sign is None else self.prepend_at_sign


class TopLevelOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


def _validation_message(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        original = (error.get("ctx") or {}).get("error")
        if original is not None:
            parts.append(str(original))
            continue
        loc = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "invalid value"))
        parts.append(f"{loc}: {message}" if loc else message)
    return "; ".join(parts)


def parse_tag_source_options(raw: Mapping[str, object] | None) -> TagSourceOptions | None:
    if raw is None:
        return None
    if isinstance(raw, TagSourceOptions):
        return raw
    if not isinstance(raw, Mapping):
        raise TagConfigError("must-match options must be a table.")
    try:
        return TagSourceOptions.model_validate(dict(raw))
    except ValidationError as exc:
        raise TagConfigError(_validation_message(exc)) from exc


def parse_top_level_options(raw: Mapping[str, object] | None) -> TopLevelOptions:
    if raw is None:
        return TopLevelOptions()
    if not isinstance(raw, Mapping):
        raise TagConfigError("top-level options must be a table.")
    try:
        return TopLevelOptions.model_validate(dict(raw))
    except ValidationError as exc:
        raise TagConfigError(_validation_message(exc)) from exc
