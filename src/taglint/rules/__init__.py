"""Registry of taglint rules, keyed by rule id."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Union

from taglint.exceptions import TagConfigError
from taglint.rules.must_match import MustMatchRule
from taglint.rules.top_level import TopLevelRule
from taglint.vocabulary import Reader, VocabularyCache

Rule = Union[MustMatchRule, TopLevelRule]

RULES: dict[str, type[MustMatchRule] | type[TopLevelRule]] = {
    MustMatchRule.name: MustMatchRule,
    TopLevelRule.name: TopLevelRule,
}


def activate_rule(
    name: str,
    options: Mapping[str, object] | None = None,
    *,
    root: Path | None = None,
    cache: VocabularyCache | None = None,
    reader: Reader | None = None,
) -> Rule:
    rule_cls = RULES.get(name)
    if rule_cls is None:
        known = ", ".join(sorted(RULES))
        raise TagConfigError(f"Unknown rule '{name}'; expected one of: {known}.")
    return rule_cls.activate(options, root=root, cache=cache, reader=reader)


__all__ = ["RULES", "MustMatchRule", "Rule", "TopLevelRule", "activate_rule"]
