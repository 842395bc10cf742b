"""Domain layer package."""

from .fields import DEFAULT_ALIASES, FieldAliases, parse_amount, parse_date
from .models import Order, Payout, Staff, StaffMetrics
from .subsidiary import KINTSUGI, SUBSIDIARIES, TAKOSUYA, SubsidiaryRules

__all__ = [
    "DEFAULT_ALIASES",
    "FieldAliases",
    "parse_amount",
    "parse_date",
    "Order",
    "Payout",
    "Staff",
    "StaffMetrics",
    "KINTSUGI",
    "TAKOSUYA",
    "SUBSIDIARIES",
    "SubsidiaryRules",
]
