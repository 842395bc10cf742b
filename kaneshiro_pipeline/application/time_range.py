"""Reporting windows: named periods, previous-window comparison and filtering."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, List, Mapping, TypeVar

from kaneshiro_pipeline.domain.fields import parse_date

logger = logging.getLogger(__name__)

DAY = "day"
WEEK = "week"
MONTH = "month"
CUSTOM = "custom"
PERIODS: tuple[str, ...] = (DAY, WEEK, MONTH, CUSTOM)
DEFAULT_PERIOD = MONTH

T = TypeVar("T")
Listener = Callable[["TimeRange", str], None]


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def _item_value(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, value: Any) -> bool:
        moment = parse_date(value)
        if moment is None:
            return False
        return self.start <= moment <= self.end

    def shifted(self, delta: timedelta) -> "TimeRange":
        return TimeRange(start=self.start + delta, end=self.end + delta)


def day_range(now: datetime) -> TimeRange:
    return TimeRange(start=start_of_day(now), end=end_of_day(now))


def week_range(now: datetime) -> TimeRange:
    monday = start_of_day(now) - timedelta(days=now.weekday())
    return TimeRange(start=monday, end=end_of_day(monday + timedelta(days=6)))


def month_range(now: datetime) -> TimeRange:
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1)
    return TimeRange(start=start, end=end_of_day(start.replace(day=last_day)))


class TimeRangeEngine:
    """Holds the selected period and turns it into concrete date windows."""

    def __init__(self, period: str = DEFAULT_PERIOD, now: Callable[[], datetime] = datetime.now) -> None:
        self._now = now
        self._listeners: list[Listener] = []
        self._custom_start: datetime | None = None
        self._custom_end: datetime | None = None
        self._range: TimeRange | None = None
        self._period = self._checked_period(period)

    @property
    def period(self) -> str:
        return self._period

    def _checked_period(self, period: str) -> str:
        if period in PERIODS:
            return period
        logger.warning("Unknown period %r, falling back to %s", period, DEFAULT_PERIOD)
        return DEFAULT_PERIOD

    def reset(self) -> None:
        self._period = DEFAULT_PERIOD
        self._custom_start = None
        self._custom_end = None
        self._range = None

    def set_period(self, period: str, custom_start: Any = None, custom_end: Any = None) -> TimeRange:
        self._period = self._checked_period(period)
        if self._period == CUSTOM:
            self._custom_start = parse_date(custom_start)
            self._custom_end = parse_date(custom_end)
        self._range = self._calculate_range(self._period)
        self._notify()
        return self._range

    def _calculate_range(self, period: str) -> TimeRange:
        now = self._now()
        if period == DAY:
            return day_range(now)
        if period == WEEK:
            return week_range(now)
        if period == CUSTOM and self._custom_start is not None and self._custom_end is not None:
            start, end = sorted((self._custom_start, self._custom_end))
            return TimeRange(start=start_of_day(start), end=end_of_day(end))
        return month_range(now)

    def get_range(self) -> TimeRange:
        if self._range is None:
            self._range = self._calculate_range(self._period)
        return self._range

    def get_previous_range(self) -> TimeRange:
        current = self.get_range()
        return current.shifted(-current.duration)

    def is_in_range(self, value: Any) -> bool:
        return self.get_range().contains(value)

    def filter_by_range(self, items: Iterable[T], date_field: str = "date") -> List[T]:
        current = self.get_range()
        return [item for item in items if current.contains(_item_value(item, date_field))]

    def filter_by_previous_range(self, items: Iterable[T], date_field: str = "date") -> List[T]:
        previous = self.get_previous_range()
        return [item for item in items if previous.contains(_item_value(item, date_field))]

    def get_weeks_in_range(self) -> List[TimeRange]:
        current = self.get_range()
        cursor = start_of_day(current.start)
        cursor -= timedelta(days=cursor.weekday())
        weeks: list[TimeRange] = []
        while cursor <= current.end:
            weeks.append(TimeRange(start=cursor, end=end_of_day(cursor + timedelta(days=6))))
            cursor += timedelta(days=7)
        return weeks

    def format_range(self) -> str:
        current = self.get_range()
        start_text = f"{current.start:%b} {current.start.day}"
        end_text = f"{current.end:%b} {current.end.day}"
        if current.start.year != current.end.year:
            return f"{start_text}, {current.start.year} – {end_text}, {current.end.year}"
        return f"{start_text} – {end_text}, {current.end.year}"

    def on_change(self, callback: Listener) -> None:
        self._listeners.append(callback)

    def off_change(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        current = self.get_range()
        for callback in list(self._listeners):
            try:
                callback(current, self._period)
            except Exception:
                logger.exception("Error in time range listener")
