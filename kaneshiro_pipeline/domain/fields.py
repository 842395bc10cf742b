"""Header alias resolution and defensive value parsers for raw sheet rows."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Mapping, Sequence

from dateutil import parser as date_parser

from kaneshiro_pipeline.errors import ConfigError

ORDER = "order"
PAYOUT = "payout"
STAFF = "staff"
ENTITY_KINDS: tuple[str, ...] = (ORDER, PAYOUT, STAFF)

DEFAULT_FIELD_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    ORDER: {
        "id": ("id", "ID"),
        "date": ("date", "Date"),
        "customer": ("customer", "Customer"),
        "category": ("category", "Category", "Type"),
        "total": ("total", "Total", "Amount"),
        "status": ("status", "Status"),
        "staff": ("staff", "Staff", "Mechanic", "mechanic"),
        "notes": ("notes", "Notes"),
    },
    PAYOUT: {
        "person": ("person", "Person", "name", "Name"),
        "state_id": ("stateId", "StateID", "state_id"),
        "week": ("week", "Week"),
        "amount": ("amount", "Amount"),
        "type": ("type", "Type"),
        "notes": ("notes", "Notes"),
    },
    STAFF: {
        "name": ("name", "Name", "person", "Person"),
        "state_id": ("stateId", "StateID", "state_id"),
        "role": ("role", "Role"),
        "active": ("active", "Active", "status"),
    },
}

ORDER_CATEGORIES: tuple[str, ...] = (
    "standard_repair",
    "engine_replacement",
    "special_work",
    "food_order",
    "beverage",
    "other",
)
ORDER_CATEGORY_SYNONYMS: dict[str, str] = {
    "repair": "standard_repair",
    "standard": "standard_repair",
    "standard_repair": "standard_repair",
    "engine": "engine_replacement",
    "engine_replacement": "engine_replacement",
    "special": "special_work",
    "special_work": "special_work",
    "custom": "special_work",
    "food": "food_order",
    "order": "food_order",
    "food_order": "food_order",
    "beverage": "beverage",
    "drink": "beverage",
}
DEFAULT_ORDER_CATEGORY = "other"

PAYOUT_TYPES: tuple[str, ...] = ("earning", "reimbursement", "bonus")
PAYOUT_TYPE_SYNONYMS: dict[str, str] = {
    "earning": "earning",
    "earnings": "earning",
    "pay": "earning",
    "payment": "earning",
    "salary": "earning",
    "reimbursement": "reimbursement",
    "reimburse": "reimbursement",
    "refund": "reimbursement",
    "bonus": "bonus",
    "tip": "bonus",
    "extra": "bonus",
}
DEFAULT_PAYOUT_TYPE = "earning"

INACTIVE_VALUES: frozenset[str] = frozenset({"false", "inactive", "no", "0"})

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_WEEK_ENDING = re.compile(r"week ending\s+(\d{1,2}/\d{1,2}/\d{4})", re.IGNORECASE)
_AMOUNT_STRIP = re.compile(r"[$€£¥,\s]")
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def resolve_field(row: Mapping[str, Any], aliases: Sequence[str], default: str = "") -> str:
    """Return the first non-empty value among ``aliases``, in priority order."""
    for key in aliases:
        value = row.get(key)
        if value is None:
            continue
        text = _as_text(value)
        if text:
            return text
    return default


@dataclass(frozen=True)
class FieldAliases:
    """Accepted header spellings per entity kind and logical field."""

    table: Mapping[str, Mapping[str, tuple[str, ...]]] = field(
        default_factory=lambda: {kind: dict(fields) for kind, fields in DEFAULT_FIELD_ALIASES.items()}
    )

    def aliases_for(self, kind: str, name: str) -> tuple[str, ...]:
        fields_for_kind = self.table.get(kind)
        if fields_for_kind is None:
            raise KeyError(f"Unknown entity kind: {kind}")
        return tuple(fields_for_kind.get(name, ()))

    def resolve(self, row: Mapping[str, Any], kind: str, name: str, default: str = "") -> str:
        return resolve_field(row, self.aliases_for(kind, name), default=default)

    def with_overrides(self, overrides: Mapping[str, Mapping[str, Sequence[str]]]) -> "FieldAliases":
        """Return a copy where each given field's alias list replaces the current one."""
        merged: Dict[str, Dict[str, tuple[str, ...]]] = {
            kind: dict(fields) for kind, fields in self.table.items()
        }
        for kind, fields in overrides.items():
            if kind not in merged:
                raise KeyError(f"Unknown entity kind: {kind}")
            if not isinstance(fields, Mapping):
                raise ConfigError(f"Aliases for {kind!r} must be a mapping, got {type(fields).__name__}")
            for name, aliases in fields.items():
                if isinstance(aliases, str):
                    aliases = [aliases]
                elif isinstance(aliases, Mapping) or not isinstance(aliases, Iterable):
                    raise ConfigError(
                        f"Aliases for {kind}.{name} must be a string or a list, got {type(aliases).__name__}"
                    )
                merged[kind][name] = tuple(str(alias) for alias in aliases)
        return FieldAliases(table=merged)


DEFAULT_ALIASES = FieldAliases()


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _parse_iso_prefix(text: str) -> datetime | None:
    match = _ISO_PREFIX.match(text)
    if match is None:
        return None
    try:
        return _normalize_datetime(datetime.fromisoformat(text))
    except ValueError:
        pass
    parsed = _parse_generic(text)
    if parsed is not None:
        return parsed
    year, month, day = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _parse_generic(text: str) -> datetime | None:
    try:
        return _normalize_datetime(date_parser.parse(text))
    except (ValueError, OverflowError):
        return None


def parse_date(value: Any) -> datetime | None:
    """Parse a sheet date; ISO ``YYYY-MM-DD`` prefix first, then free-form. Never raises."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _normalize_datetime(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = _as_text(value).strip()
    if not text:
        return None
    parsed = _parse_iso_prefix(text)
    if parsed is not None:
        return parsed
    return _parse_generic(text)


def parse_week(value: Any) -> datetime | None:
    """Parse a payout week-ending value, including ``Week ending MM/DD/YYYY``."""
    text = _as_text(value).strip()
    match = _WEEK_ENDING.search(text)
    if match is not None:
        parsed = _parse_generic(match.group(1))
        if parsed is not None:
            return parsed
    return parse_date(value)


def parse_amount(value: Any) -> float:
    """Strip currency symbols, commas and whitespace, then read a float; ``0.0`` on failure."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    cleaned = _AMOUNT_STRIP.sub("", _as_text(value))
    match = _NUMBER_PREFIX.match(cleaned)
    if match is None:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def normalize_category(value: Any) -> str:
    key = _as_text(value).strip().lower()
    return ORDER_CATEGORY_SYNONYMS.get(key, DEFAULT_ORDER_CATEGORY)


def normalize_payout_type(value: Any) -> str:
    key = _as_text(value).strip().lower()
    return PAYOUT_TYPE_SYNONYMS.get(key, DEFAULT_PAYOUT_TYPE)


def parse_active(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = _as_text(value).strip().lower()
    if not text:
        return True
    return text not in INACTIVE_VALUES
