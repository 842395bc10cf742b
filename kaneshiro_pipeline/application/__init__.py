"""Application layer package."""

from .dashboard_service import DashboardService, DashboardSnapshot, Datasets, build_snapshot, normalize_datasets
from .time_range import TimeRange, TimeRangeEngine

__all__ = [
    "DashboardService",
    "DashboardSnapshot",
    "Datasets",
    "build_snapshot",
    "normalize_datasets",
    "TimeRange",
    "TimeRangeEngine",
]
