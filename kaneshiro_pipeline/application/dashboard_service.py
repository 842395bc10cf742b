"""Application service: fetch, normalize, window and summarize the three datasets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

import httpx

from kaneshiro_pipeline.application.aggregation import (
    Alert,
    PersonPayouts,
    SubsidiarySummary,
    WeekPayouts,
    category_totals,
    identify_alerts,
    payouts_by_person,
    payouts_by_week,
    staff_metrics,
    subsidiary_summary,
    top_performers,
    total_payouts,
    total_revenue,
)
from kaneshiro_pipeline.application.reporting.metrics import Trend, calculate_trend
from kaneshiro_pipeline.application.time_range import TimeRange, TimeRangeEngine
from kaneshiro_pipeline.config import ORDERS, PAYOUTS, STAFF, PipelineConfig
from kaneshiro_pipeline.domain.fields import DEFAULT_ALIASES, FieldAliases
from kaneshiro_pipeline.domain.models import Order, Payout, Staff
from kaneshiro_pipeline.domain.subsidiary import SUBSIDIARIES, SubsidiaryRules
from kaneshiro_pipeline.infrastructure.sheets_repository import SheetsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Datasets:
    orders: List[Order] = field(default_factory=list)
    payouts: List[Payout] = field(default_factory=list)
    staff: List[Staff] = field(default_factory=list)

    def for_subsidiary(self, subsidiary: str) -> "Datasets":
        return Datasets(
            orders=[order for order in self.orders if order.subsidiary == subsidiary],
            payouts=[payout for payout in self.payouts if payout.subsidiary == subsidiary],
            staff=[member for member in self.staff if member.subsidiary == subsidiary],
        )


def normalize_datasets(
    raw: Mapping[str, Sequence[Mapping[str, Any]]],
    rules: SubsidiaryRules,
    aliases: FieldAliases = DEFAULT_ALIASES,
) -> Datasets:
    return Datasets(
        orders=[Order.from_row(row, rules, aliases) for row in raw.get(ORDERS, ())],
        payouts=[Payout.from_row(row, rules, aliases) for row in raw.get(PAYOUTS, ())],
        staff=[Staff.from_row(row, rules, aliases) for row in raw.get(STAFF, ())],
    )


@dataclass(frozen=True)
class KpiValue:
    value: float
    previous: float
    trend: Trend

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "previous": self.previous, "trend": self.trend.to_dict()}


def _kpi(current: float, previous: float) -> KpiValue:
    return KpiValue(value=current, previous=previous, trend=calculate_trend(current, previous))


def _kpis(
    orders: Sequence[Order],
    payouts: Sequence[Payout],
    prev_orders: Sequence[Order],
    prev_payouts: Sequence[Payout],
) -> Dict[str, KpiValue]:
    revenue = total_revenue(orders)
    prev_revenue = total_revenue(prev_orders)
    avg = revenue / len(orders) if orders else 0.0
    prev_avg = prev_revenue / len(prev_orders) if prev_orders else 0.0
    return {
        "revenue": _kpi(revenue, prev_revenue),
        "orders": _kpi(float(len(orders)), float(len(prev_orders))),
        "payouts": _kpi(total_payouts(payouts), total_payouts(prev_payouts)),
        "avg_order_value": _kpi(avg, prev_avg),
    }


@dataclass(frozen=True)
class DashboardSnapshot:
    period: str
    range: TimeRange
    previous_range: TimeRange
    subsidiary: str | None
    summaries: Dict[str, SubsidiarySummary]
    kpis: Dict[str, KpiValue]
    category_totals: Dict[str, Dict[str, float]]
    payouts_by_person: Dict[str, PersonPayouts]
    payouts_by_week: Dict[str, WeekPayouts]
    top_performers: List[Staff]
    alerts: List[Alert]

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "range": {"start": self.range.start.isoformat(), "end": self.range.end.isoformat()},
            "previous_range": {
                "start": self.previous_range.start.isoformat(),
                "end": self.previous_range.end.isoformat(),
            },
            "subsidiary": self.subsidiary,
            "summaries": {name: summary.to_dict() for name, summary in self.summaries.items()},
            "kpis": {name: kpi.to_dict() for name, kpi in self.kpis.items()},
            "category_totals": self.category_totals,
            "payouts_by_person": {name: group.to_dict() for name, group in self.payouts_by_person.items()},
            "payouts_by_week": {key: group.to_dict() for key, group in self.payouts_by_week.items()},
            "top_performers": [member.to_dict() for member in self.top_performers],
            "alerts": [alert.to_dict() for alert in self.alerts],
        }


def build_snapshot(
    datasets: Datasets,
    time_range: TimeRangeEngine,
    subsidiary: str | None = None,
    top_n: int = 5,
) -> DashboardSnapshot:
    """Summarize ``datasets`` for the engine's current window against the previous one."""
    if subsidiary is not None and subsidiary not in SUBSIDIARIES:
        raise ValueError(f"Unknown subsidiary: {subsidiary!r} (expected one of {list(SUBSIDIARIES)})")
    scoped = datasets.for_subsidiary(subsidiary) if subsidiary else datasets

    orders = time_range.filter_by_range(scoped.orders, "date")
    payouts = time_range.filter_by_range(scoped.payouts, "week")
    prev_orders = time_range.filter_by_previous_range(scoped.orders, "date")
    prev_payouts = time_range.filter_by_previous_range(scoped.payouts, "week")

    ranked = staff_metrics(scoped.staff, orders, payouts)
    return DashboardSnapshot(
        period=time_range.period,
        range=time_range.get_range(),
        previous_range=time_range.get_previous_range(),
        subsidiary=subsidiary,
        summaries={
            name: subsidiary_summary(orders, payouts, scoped.staff, name)
            for name in SUBSIDIARIES
            if subsidiary is None or name == subsidiary
        },
        kpis=_kpis(orders, payouts, prev_orders, prev_payouts),
        category_totals=category_totals(orders),
        payouts_by_person=payouts_by_person(payouts),
        payouts_by_week=payouts_by_week(payouts),
        top_performers=top_performers(ranked, limit=top_n),
        alerts=identify_alerts(scoped.staff, scoped.payouts),
    )


class DashboardService:
    """Wires the repository, classifier and time range engine together."""

    def __init__(
        self,
        repository: SheetsRepository,
        rules: SubsidiaryRules,
        time_range: TimeRangeEngine | None = None,
        aliases: FieldAliases = DEFAULT_ALIASES,
    ) -> None:
        self.repository = repository
        self.rules = rules
        self.time_range = time_range or TimeRangeEngine()
        self.aliases = aliases

    @classmethod
    def from_config(cls, config: PipelineConfig, client: httpx.AsyncClient | None = None) -> "DashboardService":
        return cls(
            repository=SheetsRepository(config.sheets, client=client),
            rules=config.rules,
            aliases=config.aliases,
        )

    async def load(self) -> Datasets:
        raw = await self.repository.fetch_all()
        datasets = normalize_datasets(raw, self.rules, self.aliases)
        logger.info(
            "Loaded %d orders, %d payouts, %d staff",
            len(datasets.orders),
            len(datasets.payouts),
            len(datasets.staff),
        )
        return datasets

    async def refresh(self) -> Datasets:
        raw = await self.repository.refresh()
        return normalize_datasets(raw, self.rules, self.aliases)

    async def snapshot(self, subsidiary: str | None = None, top_n: int = 5) -> DashboardSnapshot:
        return build_snapshot(await self.load(), self.time_range, subsidiary=subsidiary, top_n=top_n)

    async def aclose(self) -> None:
        await self.repository.aclose()
