"""Text rendering helpers for the executive summary."""

from __future__ import annotations

from typing import Any, Dict, List

from kaneshiro_pipeline.application.aggregation import SubsidiarySummary
from kaneshiro_pipeline.application.reporting.metrics import fmt_count, fmt_money

SUBSIDIARY_TITLES: dict[str, str] = {
    "kintsugi": "KINTSUGI",
    "takosuya": "TAKOSUYA",
}


def subsidiary_block(summary: SubsidiarySummary) -> List[str]:
    title = SUBSIDIARY_TITLES.get(summary.subsidiary, summary.subsidiary.upper())
    return [
        f"{title}:",
        f"• Revenue: {fmt_money(summary.total_revenue)}",
        f"• Orders: {fmt_count(summary.total_orders)}",
        f"• Avg Order: {fmt_money(summary.avg_order_value)}",
        f"• Staff: {summary.active_staff}",
    ]


def executive_summary_text(consolidated: Dict[str, Any]) -> str:
    lines: List[str] = [
        "KANESHIRO ENTERPRISES - EXECUTIVE SUMMARY",
        "",
        "CONSOLIDATED PERFORMANCE:",
        f"• Total Revenue: {fmt_money(consolidated.get('total_revenue'))}",
        f"• Total Orders: {fmt_count(consolidated.get('total_orders'))}",
        f"• Total Payouts: {fmt_money(consolidated.get('total_payouts'))}",
        f"• Active Staff: {consolidated.get('active_staff', 0)}",
    ]
    for summary in consolidated.get("subsidiaries", {}).values():
        lines.append("")
        lines.extend(subsidiary_block(summary))
    return "\n".join(lines)
