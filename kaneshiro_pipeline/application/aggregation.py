"""Aggregations over normalized orders, payouts and staff."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence

import polars as pl

from kaneshiro_pipeline.application.reporting.metrics import to_float
from kaneshiro_pipeline.domain.models import Order, Payout, Staff
from kaneshiro_pipeline.domain.subsidiary import SUBSIDIARIES

UNASSIGNED_STAFF = "Unassigned"
UNKNOWN_PERSON = "Unknown"
DEFAULT_CATEGORY = "other"

ORDER_SCHEMA: dict[str, Any] = {
    "category": pl.Utf8,
    "staff": pl.Utf8,
    "subsidiary": pl.Utf8,
    "total": pl.Float64,
}
PAYOUT_SCHEMA: dict[str, Any] = {
    "person": pl.Utf8,
    "week": pl.Utf8,
    "type": pl.Utf8,
    "subsidiary": pl.Utf8,
    "amount": pl.Float64,
}


def orders_frame(orders: Sequence[Order]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "category": [order.category or DEFAULT_CATEGORY for order in orders],
            "staff": [order.staff for order in orders],
            "subsidiary": [order.subsidiary for order in orders],
            "total": [to_float(order.total) for order in orders],
        },
        schema=ORDER_SCHEMA,
    )


def payouts_frame(payouts: Sequence[Payout]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            "person": [payout.person for payout in payouts],
            "week": [payout.week.date().isoformat() if payout.week else None for payout in payouts],
            "type": [payout.type for payout in payouts],
            "subsidiary": [payout.subsidiary for payout in payouts],
            "amount": [to_float(payout.amount) for payout in payouts],
        },
        schema=PAYOUT_SCHEMA,
    )


def _column_sum(df: pl.DataFrame, column: str) -> float:
    if df.is_empty():
        return 0.0
    return to_float(df.select(pl.col(column).sum()).item())


def total_revenue(orders: Sequence[Order]) -> float:
    return _column_sum(orders_frame(orders), "total")


def total_payouts(payouts: Sequence[Payout]) -> float:
    return _column_sum(payouts_frame(payouts), "amount")


def group_by_category(orders: Sequence[Order]) -> Dict[str, List[Order]]:
    groups: Dict[str, List[Order]] = {}
    for order in orders:
        groups.setdefault(order.category or DEFAULT_CATEGORY, []).append(order)
    return groups


def group_by_staff(orders: Sequence[Order]) -> Dict[str, List[Order]]:
    groups: Dict[str, List[Order]] = {}
    for order in orders:
        groups.setdefault(order.staff or UNASSIGNED_STAFF, []).append(order)
    return groups


def category_totals(orders: Sequence[Order]) -> Dict[str, Dict[str, float]]:
    """Order count and revenue per category, largest revenue first."""
    df = orders_frame(orders)
    if df.is_empty():
        return {}
    grouped = (
        df.group_by("category", maintain_order=True)
        .agg([pl.len().alias("count"), pl.col("total").sum().alias("total")])
        .sort(["total", "category"], descending=[True, False])
    )
    return {
        row["category"]: {"count": int(row["count"]), "total": to_float(row["total"])}
        for row in grouped.iter_rows(named=True)
    }


@dataclass
class PersonPayouts:
    person: str
    earnings: float = 0.0
    reimbursements: float = 0.0
    bonuses: float = 0.0
    total: float = 0.0
    payouts: List[Payout] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "person": self.person,
            "earnings": self.earnings,
            "reimbursements": self.reimbursements,
            "bonuses": self.bonuses,
            "total": self.total,
            "count": len(self.payouts),
        }


@dataclass
class WeekPayouts:
    week: datetime
    total: float = 0.0
    payouts: List[Payout] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"week": self.week.date().isoformat(), "total": self.total, "count": len(self.payouts)}


def _type_sum(payout_type: str, alias: str) -> pl.Expr:
    return pl.col("amount").filter(pl.col("type") == payout_type).sum().alias(alias)


def payouts_by_person(payouts: Sequence[Payout]) -> Dict[str, PersonPayouts]:
    df = payouts_frame(payouts).with_columns(
        pl.when(pl.col("person") == "").then(pl.lit(UNKNOWN_PERSON)).otherwise(pl.col("person")).alias("person")
    )
    if df.is_empty():
        return {}

    grouped = df.group_by("person", maintain_order=True).agg(
        [
            _type_sum("earning", "earnings"),
            _type_sum("reimbursement", "reimbursements"),
            _type_sum("bonus", "bonuses"),
            pl.col("amount").sum().alias("total"),
        ]
    )
    result: Dict[str, PersonPayouts] = {
        row["person"]: PersonPayouts(
            person=row["person"],
            earnings=to_float(row["earnings"]),
            reimbursements=to_float(row["reimbursements"]),
            bonuses=to_float(row["bonuses"]),
            total=to_float(row["total"]),
        )
        for row in grouped.iter_rows(named=True)
    }
    for payout in payouts:
        result[payout.person or UNKNOWN_PERSON].payouts.append(payout)
    return result


def payouts_by_week(payouts: Sequence[Payout]) -> Dict[str, WeekPayouts]:
    dated = [payout for payout in payouts if payout.week is not None]
    df = payouts_frame(dated)
    if df.is_empty():
        return {}

    grouped = df.group_by("week", maintain_order=True).agg(pl.col("amount").sum().alias("total"))
    totals = {row["week"]: to_float(row["total"]) for row in grouped.iter_rows(named=True)}
    result: Dict[str, WeekPayouts] = {}
    for payout in dated:
        key = payout.week.date().isoformat()
        bucket = result.get(key)
        if bucket is None:
            bucket = WeekPayouts(week=payout.week, total=totals[key])
            result[key] = bucket
        bucket.payouts.append(payout)
    return result


def staff_metrics(staff: Sequence[Staff], orders: Sequence[Order], payouts: Sequence[Payout]) -> List[Staff]:
    """Merge order and payout totals into each member's metrics and return the members."""
    order_stats = {
        row["staff"]: row
        for row in orders_frame(orders)
        .group_by("staff")
        .agg([pl.len().alias("count"), pl.col("total").sum().alias("revenue")])
        .iter_rows(named=True)
    }
    payout_stats = {
        row["person"]: to_float(row["amount"])
        for row in payouts_frame(payouts).group_by("person").agg(pl.col("amount").sum()).iter_rows(named=True)
    }

    for member in staff:
        stats = order_stats.get(member.name)
        count = int(stats["count"]) if stats else 0
        revenue = to_float(stats["revenue"]) if stats else 0.0
        member.metrics.merge(
            total_orders=count,
            total_revenue=revenue,
            total_payouts=payout_stats.get(member.name, 0.0),
            avg_order_value=revenue / count if count > 0 else 0.0,
        )
    return list(staff)


def top_performers(staff: Sequence[Staff], metric: str = "total_revenue", limit: int = 5) -> List[Staff]:
    return sorted(staff, key=lambda member: -to_float(getattr(member.metrics, metric, 0.0)))[:limit]


@dataclass(frozen=True)
class SubsidiarySummary:
    subsidiary: str
    total_orders: int
    total_revenue: float
    total_payouts: float
    active_staff: int
    avg_order_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "subsidiary": self.subsidiary,
            "total_orders": self.total_orders,
            "total_revenue": self.total_revenue,
            "total_payouts": self.total_payouts,
            "active_staff": self.active_staff,
            "avg_order_value": self.avg_order_value,
        }


def subsidiary_summary(
    orders: Sequence[Order],
    payouts: Sequence[Payout],
    staff: Sequence[Staff],
    subsidiary: str,
) -> SubsidiarySummary:
    sub_orders = [order for order in orders if order.subsidiary == subsidiary]
    sub_payouts = [payout for payout in payouts if payout.subsidiary == subsidiary]
    revenue = total_revenue(sub_orders)
    return SubsidiarySummary(
        subsidiary=subsidiary,
        total_orders=len(sub_orders),
        total_revenue=revenue,
        total_payouts=total_payouts(sub_payouts),
        active_staff=sum(1 for member in staff if member.subsidiary == subsidiary and member.active),
        avg_order_value=revenue / len(sub_orders) if sub_orders else 0.0,
    )


def consolidated_summary(
    orders: Sequence[Order],
    payouts: Sequence[Payout],
    staff: Sequence[Staff],
) -> Dict[str, Any]:
    by_subsidiary = {name: subsidiary_summary(orders, payouts, staff, name) for name in SUBSIDIARIES}
    total_orders = sum(summary.total_orders for summary in by_subsidiary.values())
    revenue = sum(summary.total_revenue for summary in by_subsidiary.values())
    return {
        "total_revenue": revenue,
        "total_orders": total_orders,
        "total_payouts": sum(summary.total_payouts for summary in by_subsidiary.values()),
        "active_staff": sum(summary.active_staff for summary in by_subsidiary.values()),
        "avg_order_value": revenue / total_orders if total_orders else 0.0,
        "subsidiaries": by_subsidiary,
    }


@dataclass(frozen=True)
class Alert:
    type: str
    title: str
    message: str
    staff: tuple[Staff, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "staff": [member.name for member in self.staff],
        }


def identify_alerts(staff: Sequence[Staff], payouts: Sequence[Payout]) -> List[Alert]:
    alerts: List[Alert] = []

    missing_state_ids = tuple(member for member in staff if member.active and not member.has_state_id)
    if missing_state_ids:
        alerts.append(
            Alert(
                type="warning",
                title="Missing State IDs",
                message=f"{len(missing_state_ids)} staff member(s) missing state ID",
                staff=missing_state_ids,
            )
        )

    paid = {payout.person for payout in payouts}
    without_payouts = tuple(member for member in staff if member.active and member.name not in paid)
    if without_payouts:
        alerts.append(
            Alert(
                type="info",
                title="Staff Without Payouts",
                message=f"{len(without_payouts)} active staff member(s) have no payouts",
                staff=without_payouts,
            )
        )
    return alerts
