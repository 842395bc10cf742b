"""Shared numeric/formatting utilities for reporting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

UP = "up"
DOWN = "down"
NEUTRAL = "neutral"
TREND_LABEL = "vs prev period"
NO_TREND_LABEL = "N/A"


@dataclass(frozen=True)
class Trend:
    direction: str
    value: float
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"direction": self.direction, "value": self.value, "label": self.label}


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


def safe_pct_change(curr: float | None, prev: float | None) -> float | None:
    if curr is None or prev is None or prev == 0:
        return None
    return (curr - prev) / prev


def direction(value: float | None) -> str:
    if value is None or value == 0:
        return NEUTRAL
    return UP if value > 0 else DOWN


def calculate_trend(current: float | None, previous: float | None) -> Trend:
    """Percent change of ``current`` against ``previous``; neutral when there is no baseline."""
    change = safe_pct_change(to_float(current), previous)
    if change is None:
        return Trend(direction=NEUTRAL, value=0.0, label=NO_TREND_LABEL)
    pct = change * 100
    return Trend(direction=direction(pct), value=abs(pct), label=TREND_LABEL)


def fmt_money(value: float | None) -> str:
    if value is None:
        return "$0.00"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def fmt_count(value: int | None) -> str:
    return f"{value or 0:,}"


def fmt_trend(trend: Trend) -> str:
    if trend.direction == NEUTRAL and trend.label == NO_TREND_LABEL:
        return NO_TREND_LABEL
    arrow = {UP: "+", DOWN: "-"}.get(trend.direction, "")
    return f"{arrow}{trend.value:.1f}% {trend.label}"
