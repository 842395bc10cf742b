"""Subsidiary assignment rules.

A record is assigned by an explicit ``subsidiary`` column, then an explicit
``business`` column, then by weighted scoring of keyword, category and role
signals. Kintsugi is the default and wins every tie.
"""

from __future__ import annotations

from collections import abc
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Sequence

from kaneshiro_pipeline.domain.fields import normalize_category, resolve_field
from kaneshiro_pipeline.errors import ConfigError

KINTSUGI = "kintsugi"
TAKOSUYA = "takosuya"
SUBSIDIARIES: tuple[str, ...] = (KINTSUGI, TAKOSUYA)
DEFAULT_SUBSIDIARY = KINTSUGI

RULE_TYPES: tuple[str, ...] = ("keywords", "categories", "roles")
KEYWORD_WEIGHT = 2
CATEGORY_WEIGHT = 3
ROLE_WEIGHT = 3

EXPLICIT_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (KINTSUGI, ("kintsugi",)),
    (TAKOSUYA, ("takosuya", "tako")),
)
SUBSIDIARY_FIELDS: tuple[str, ...] = ("subsidiary", "Subsidiary")
BUSINESS_FIELDS: tuple[str, ...] = ("business", "Business")
CATEGORY_FIELDS: tuple[str, ...] = ("category", "Category", "Type")
ROLE_FIELDS: tuple[str, ...] = ("role", "Role")
SEARCH_FIELDS: tuple[str, ...] = (
    "notes",
    "Notes",
    "customer",
    "Customer",
    "staff",
    "Staff",
    "person",
    "Person",
    "name",
    "Name",
    "category",
    "Category",
    "Type",
    "role",
    "Role",
    "description",
    "Description",
)

DEFAULT_RULES: dict[str, dict[str, tuple[str, ...]]] = {
    KINTSUGI: {
        "keywords": ("kintsugi", "motor", "repair", "mechanic", "engine", "vehicle", "car"),
        "categories": ("standard_repair", "engine_replacement", "special_work"),
        "roles": ("mechanic", "tech", "technician", "repair"),
    },
    TAKOSUYA: {
        "keywords": ("takosuya", "tako", "food", "restaurant", "kitchen"),
        "categories": ("food_order", "beverage", "meal"),
        "roles": ("chef", "cook", "server", "waiter", "host"),
    },
}


@dataclass
class RuleSet:
    keywords: set[str] = field(default_factory=set)
    categories: set[str] = field(default_factory=set)
    roles: set[str] = field(default_factory=set)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Iterable[str]]) -> "RuleSet":
        return cls(**{rule_type: _clean_values(data.get(rule_type, ())) for rule_type in RULE_TYPES})

    def values(self, rule_type: str) -> set[str]:
        return getattr(self, rule_type)

    def to_dict(self) -> dict[str, list[str]]:
        return {rule_type: sorted(self.values(rule_type)) for rule_type in RULE_TYPES}


def _clean_values(values: Iterable[str] | str) -> set[str]:
    if isinstance(values, str):
        values = [values]
    elif isinstance(values, Mapping) or not isinstance(values, abc.Iterable):
        raise ConfigError(f"Rule values must be a string or a list of strings, got {type(values).__name__}")
    return {str(value).strip().lower() for value in values if str(value).strip()}


def _explicit_subsidiary(value: str) -> str | None:
    text = value.lower()
    for subsidiary, markers in EXPLICIT_MARKERS:
        if any(marker in text for marker in markers):
            return subsidiary
    return None


def _overlaps(value: str, entry: str) -> bool:
    return entry in value or value in entry


class SubsidiaryRules:
    """Configurable keyword/category/role rule sets and the scoring classifier."""

    def __init__(self, rules: Mapping[str, Mapping[str, Iterable[str]]] | None = None) -> None:
        self._rules: Dict[str, RuleSet] = {}
        self.reset()
        if rules:
            self.load_config(rules)

    def reset(self) -> None:
        self._rules = {name: RuleSet.from_mapping(data) for name, data in DEFAULT_RULES.items()}

    def _rule_set(self, subsidiary: str, rule_type: str) -> set[str]:
        if subsidiary not in self._rules:
            raise ConfigError(f"Unknown subsidiary: {subsidiary!r} (expected one of {list(SUBSIDIARIES)})")
        if rule_type not in RULE_TYPES:
            raise ConfigError(f"Unknown rule type: {rule_type!r} (expected one of {list(RULE_TYPES)})")
        return self._rules[subsidiary].values(rule_type)

    def add_rule(self, subsidiary: str, rule_type: str, value: str | Sequence[str]) -> None:
        self._rule_set(subsidiary, rule_type).update(_clean_values(value))

    def remove_rule(self, subsidiary: str, rule_type: str, value: str | Sequence[str]) -> None:
        self._rule_set(subsidiary, rule_type).difference_update(_clean_values(value))

    def get_rules(self, subsidiary: str) -> dict[str, list[str]] | None:
        rule_set = self._rules.get(subsidiary)
        return rule_set.to_dict() if rule_set is not None else None

    def load_config(self, config: Mapping[str, Mapping[str, Iterable[str]]]) -> None:
        """Replace the listed rule types per subsidiary; unlisted types keep their values."""
        for subsidiary, data in config.items():
            if not isinstance(data, Mapping):
                raise ConfigError(f"Rules for {subsidiary!r} must be a mapping, got {type(data).__name__}")
            for rule_type, values in data.items():
                target = self._rule_set(subsidiary, rule_type)
                cleaned = _clean_values(values)
                target.clear()
                target.update(cleaned)

    def export_config(self) -> dict[str, dict[str, list[str]]]:
        return {name: rule_set.to_dict() for name, rule_set in self._rules.items()}

    def score(self, record: Mapping[str, Any]) -> dict[str, int]:
        search_text = " ".join(
            text for text in (str(record.get(key) or "") for key in SEARCH_FIELDS) if text
        ).lower()
        raw_category = resolve_field(record, CATEGORY_FIELDS).strip().lower()
        categories = {raw_category, normalize_category(raw_category)} - {"", "other"}
        role = resolve_field(record, ROLE_FIELDS).strip().lower()

        scores = {name: 0 for name in SUBSIDIARIES}
        for name, rule_set in self._rules.items():
            for keyword in rule_set.keywords:
                if keyword in search_text:
                    scores[name] += KEYWORD_WEIGHT
            for entry in rule_set.categories:
                if any(_overlaps(category, entry) for category in categories):
                    scores[name] += CATEGORY_WEIGHT
            if role:
                for entry in rule_set.roles:
                    if _overlaps(role, entry):
                        scores[name] += ROLE_WEIGHT
        return scores

    def classify(self, record: Mapping[str, Any]) -> str:
        for aliases in (SUBSIDIARY_FIELDS, BUSINESS_FIELDS):
            explicit = _explicit_subsidiary(resolve_field(record, aliases))
            if explicit is not None:
                return explicit

        scores = self.score(record)
        if scores[TAKOSUYA] > scores[KINTSUGI]:
            return TAKOSUYA
        return DEFAULT_SUBSIDIARY
