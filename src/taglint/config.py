from __future__ import annotations

from datetime import date, datetime, time
import logging
from pathlib import Path
from typing import TypeAlias
import tomllib

from taglint.exceptions import TagConfigError
from taglint.rules import RULES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "taglint.toml"
PYPROJECT_NAME = "pyproject.toml"
DEFAULT_INCLUDE = ("**/*.py",)

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise TagConfigError(f"Unable to read configuration '{path}': {exc}") from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise TagConfigError(f"Unable to parse configuration '{path}': {exc}") from exc
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    """Load the taglint table.

    An explicit ``config_path`` must exist. Otherwise ``taglint.toml`` in
    ``root`` wins over ``[tool.taglint]`` in ``pyproject.toml``, and no file
    at all means defaults.
    """
    if config_path is not None:
        if not config_path.is_file():
            raise TagConfigError(f"Configuration file '{config_path}' does not exist.")
        data = _load_toml(config_path)
        if config_path.name == PYPROJECT_NAME:
            return _tool_section(data)
        return data
    base = root if root is not None else Path.cwd()
    candidate = base / DEFAULT_CONFIG_NAME
    if candidate.is_file():
        logger.debug("loading configuration from %s", candidate)
        return _load_toml(candidate)
    pyproject = base / PYPROJECT_NAME
    if pyproject.is_file():
        logger.debug("loading configuration from %s [tool.taglint]", pyproject)
        return _tool_section(_load_toml(pyproject))
    return {}


def _tool_section(data: TomlTable) -> TomlTable:
    tool = data.get("tool", {})
    if not isinstance(tool, dict):
        return {}
    section = tool.get("taglint", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def include_patterns(config: TomlTable) -> list[str]:
    patterns = _normalize_name_list(config.get("include"))
    return patterns or list(DEFAULT_INCLUDE)


def exclude_patterns(config: TomlTable) -> list[str]:
    return _normalize_name_list(config.get("exclude"))


def rule_settings(config: TomlTable) -> dict[str, TomlTable | None]:
    """Map each enabled rule id to its options (``None`` means defaults)."""
    section = config.get("rules")
    if section is None:
        return {name: None for name in RULES}
    if not isinstance(section, dict):
        raise TagConfigError("'rules' must be a table of rule ids.")
    enabled: dict[str, TomlTable | None] = {}
    for name, value in section.items():
        if name not in RULES:
            known = ", ".join(sorted(RULES))
            raise TagConfigError(f"Unknown rule '{name}'; expected one of: {known}.")
        if value is False:
            continue
        if value is True:
            enabled[name] = None
        elif isinstance(value, dict):
            enabled[name] = value
        else:
            raise TagConfigError(
                f"Rule '{name}' must be true, false or a table of options."
            )
    return enabled
