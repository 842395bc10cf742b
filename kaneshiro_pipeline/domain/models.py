"""Normalized entities built from raw sheet rows."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from kaneshiro_pipeline.domain.fields import (
    DEFAULT_ALIASES,
    ORDER,
    PAYOUT,
    STAFF,
    FieldAliases,
    normalize_category,
    normalize_payout_type,
    parse_active,
    parse_amount,
    parse_date,
    parse_week,
)
from kaneshiro_pipeline.domain.subsidiary import SubsidiaryRules

DEFAULT_ORDER_STATUS = "completed"
UNDATED_ID_STAMP = "undated"


def _frozen_copy(row: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(row))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def order_id(when: datetime | None, customer: str) -> str:
    """Stable identifier for rows without an explicit id column."""
    stamp = str(int(when.timestamp() * 1000)) if when is not None else UNDATED_ID_STAMP
    short_name = "".join((customer or "unknown")[:8].split())
    return f"{stamp}-{short_name}"


@dataclass(frozen=True)
class Order:
    id: str
    date: datetime | None
    customer: str
    category: str
    total: float
    status: str
    staff: str
    subsidiary: str
    notes: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        rules: SubsidiaryRules,
        aliases: FieldAliases = DEFAULT_ALIASES,
    ) -> "Order":
        when = parse_date(aliases.resolve(row, ORDER, "date"))
        customer = aliases.resolve(row, ORDER, "customer")
        return cls(
            id=aliases.resolve(row, ORDER, "id") or order_id(when, customer),
            date=when,
            customer=customer,
            category=normalize_category(aliases.resolve(row, ORDER, "category")),
            total=max(0.0, parse_amount(aliases.resolve(row, ORDER, "total"))),
            status=aliases.resolve(row, ORDER, "status", default=DEFAULT_ORDER_STATUS),
            staff=aliases.resolve(row, ORDER, "staff"),
            subsidiary=rules.classify(row),
            notes=aliases.resolve(row, ORDER, "notes"),
            raw=_frozen_copy(row),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": _iso(self.date),
            "customer": self.customer,
            "category": self.category,
            "total": self.total,
            "status": self.status,
            "staff": self.staff,
            "subsidiary": self.subsidiary,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class Payout:
    person: str
    state_id: str
    week: datetime | None
    amount: float
    type: str
    subsidiary: str
    notes: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        rules: SubsidiaryRules,
        aliases: FieldAliases = DEFAULT_ALIASES,
    ) -> "Payout":
        return cls(
            person=aliases.resolve(row, PAYOUT, "person"),
            state_id=aliases.resolve(row, PAYOUT, "state_id"),
            week=parse_week(aliases.resolve(row, PAYOUT, "week")),
            amount=parse_amount(aliases.resolve(row, PAYOUT, "amount")),
            type=normalize_payout_type(aliases.resolve(row, PAYOUT, "type")),
            subsidiary=rules.classify(row),
            notes=aliases.resolve(row, PAYOUT, "notes"),
            raw=_frozen_copy(row),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "person": self.person,
            "state_id": self.state_id,
            "week": _iso(self.week),
            "amount": self.amount,
            "type": self.type,
            "subsidiary": self.subsidiary,
            "notes": self.notes,
        }


@dataclass
class StaffMetrics:
    total_orders: int = 0
    total_revenue: float = 0.0
    total_payouts: float = 0.0
    avg_order_value: float = 0.0

    def merge(self, **values: Any) -> None:
        for name, value in values.items():
            if not hasattr(self, name):
                raise AttributeError(f"Unknown staff metric: {name}")
            setattr(self, name, value)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Staff:
    name: str
    state_id: str
    role: str
    active: bool
    subsidiary: str
    metrics: StaffMetrics = field(default_factory=StaffMetrics, compare=False)
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_row(
        cls,
        row: Mapping[str, Any],
        rules: SubsidiaryRules,
        aliases: FieldAliases = DEFAULT_ALIASES,
    ) -> "Staff":
        return cls(
            name=aliases.resolve(row, STAFF, "name"),
            state_id=aliases.resolve(row, STAFF, "state_id"),
            role=aliases.resolve(row, STAFF, "role"),
            active=parse_active(aliases.resolve(row, STAFF, "active")),
            subsidiary=rules.classify(row),
            raw=_frozen_copy(row),
        )

    @property
    def has_state_id(self) -> bool:
        return bool(self.state_id.strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state_id": self.state_id,
            "role": self.role,
            "active": self.active,
            "subsidiary": self.subsidiary,
            "metrics": self.metrics.to_dict(),
        }
