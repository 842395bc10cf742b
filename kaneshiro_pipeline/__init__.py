"""Kaneshiro Enterprises data pipeline package."""

from .application import DashboardService, DashboardSnapshot, Datasets, TimeRange, TimeRangeEngine
from .config import PipelineConfig, SheetsConfig, load_config
from .domain import KINTSUGI, TAKOSUYA, Order, Payout, Staff, SubsidiaryRules
from .errors import ConfigError, SourceUnavailable
from .infrastructure import SheetsRepository
from .ingestion import decode_csv, parse_csv_line

__all__ = [
    "DashboardService",
    "DashboardSnapshot",
    "Datasets",
    "TimeRange",
    "TimeRangeEngine",
    "PipelineConfig",
    "SheetsConfig",
    "load_config",
    "KINTSUGI",
    "TAKOSUYA",
    "Order",
    "Payout",
    "Staff",
    "SubsidiaryRules",
    "ConfigError",
    "SourceUnavailable",
    "SheetsRepository",
    "decode_csv",
    "parse_csv_line",
]
