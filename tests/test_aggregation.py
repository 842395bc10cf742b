from datetime import datetime

import pytest

from conftest import make_order, make_payout, make_staff
from kaneshiro_pipeline.application.aggregation import (
    category_totals,
    consolidated_summary,
    group_by_category,
    group_by_staff,
    identify_alerts,
    payouts_by_person,
    payouts_by_week,
    staff_metrics,
    subsidiary_summary,
    top_performers,
    total_payouts,
    total_revenue,
)
from kaneshiro_pipeline.application.reporting.metrics import calculate_trend, fmt_money, fmt_trend
from kaneshiro_pipeline.application.reporting.rendering import executive_summary_text
from kaneshiro_pipeline.domain.models import Order
from kaneshiro_pipeline.domain.subsidiary import KINTSUGI, TAKOSUYA


@pytest.fixture
def october(datasets, engine):
    orders = engine.filter_by_range(datasets.orders, "date")
    payouts = engine.filter_by_range(datasets.payouts, "week")
    return orders, payouts, datasets.staff


class TestTotals:

    def test_total_revenue(self, october):
        orders, _, _ = october
        assert total_revenue(orders) == pytest.approx(17545.5)

    def test_total_payouts(self, october):
        _, payouts, _ = october
        assert total_payouts(payouts) == pytest.approx(2580.0)

    def test_empty(self):
        assert total_revenue([]) == 0.0
        assert total_payouts([]) == 0.0


class TestGrouping:

    def test_group_by_category(self, october):
        orders, _, _ = october
        groups = group_by_category(orders)
        assert sorted(groups) == ["engine_replacement", "food_order", "standard_repair"]
        assert groups["food_order"][0].customer == "Dana Lee"

    def test_group_by_staff_uses_unassigned(self, rules):
        orders = [make_order(rules, Staff="Bob"), make_order(rules), make_order(rules, Staff="Bob")]
        groups = group_by_staff(orders)
        assert {name: len(items) for name, items in groups.items()} == {"Bob": 2, "Unassigned": 1}

    def test_category_totals_sorted_by_revenue(self, october):
        orders, _, _ = october
        totals = category_totals(orders)
        assert list(totals) == ["engine_replacement", "standard_repair", "food_order"]
        assert totals["standard_repair"] == {"count": 1, "total": 2500.0}

    def test_payouts_by_person_splits_types(self, october):
        _, payouts, _ = october
        people = payouts_by_person(payouts)
        bob = people["Bob Tanaka"]
        assert (bob.earnings, bob.reimbursements, bob.bonuses, bob.total) == (700.0, 0.0, 1500.0, 2200.0)
        yui = people["Yui Mori"]
        assert (yui.earnings, yui.reimbursements, yui.bonuses, yui.total) == (0.0, 80.0, 300.0, 380.0)
        assert yui.to_dict()["count"] == 2

    def test_payouts_without_person_are_unknown(self, rules):
        people = payouts_by_person([make_payout(rules, Person="", Amount="10")])
        assert list(people) == ["Unknown"]
        assert people["Unknown"].earnings == 10.0

    def test_payouts_by_week(self, october):
        _, payouts, _ = october
        weeks = payouts_by_week(payouts)
        assert list(weeks) == ["2026-10-04", "2026-10-11"]
        assert weeks["2026-10-04"].total == 700.0
        assert weeks["2026-10-11"].total == 1880.0
        assert len(weeks["2026-10-11"].payouts) == 3
        assert weeks["2026-10-11"].week == datetime(2026, 10, 11)

    def test_payouts_by_week_skips_undated(self, rules):
        assert payouts_by_week([make_payout(rules, Week="")]) == {}


class TestTrend:

    @pytest.mark.parametrize("previous", [0, None])
    def test_no_baseline_is_neutral(self, previous):
        trend = calculate_trend(500, previous)
        assert (trend.direction, trend.value, trend.label) == ("neutral", 0.0, "N/A")
        assert fmt_trend(trend) == "N/A"

    def test_up(self):
        trend = calculate_trend(150, 100)
        assert trend.direction == "up"
        assert trend.value == pytest.approx(50.0)
        assert fmt_trend(trend) == "+50.0% vs prev period"

    def test_down_reports_absolute_value(self):
        trend = calculate_trend(75, 100)
        assert trend.direction == "down"
        assert trend.value == pytest.approx(25.0)

    def test_flat(self):
        assert calculate_trend(100, 100).direction == "neutral"


class TestStaff:

    def test_staff_metrics(self, october):
        orders, payouts, staff = october
        members = {member.name: member for member in staff_metrics(staff, orders, payouts)}
        bob = members["Bob Tanaka"].metrics
        assert bob.total_orders == 2
        assert bob.total_revenue == 17500.0
        assert bob.total_payouts == 2200.0
        assert bob.avg_order_value == 8750.0
        assert members["Mina Ito"].metrics.avg_order_value == 0.0

    def test_top_performers(self, october):
        orders, payouts, staff = october
        ranked = top_performers(staff_metrics(staff, orders, payouts), limit=2)
        assert [member.name for member in ranked] == ["Bob Tanaka", "Yui Mori"]

    def test_top_performers_by_payouts(self, october):
        orders, payouts, staff = october
        ranked = top_performers(staff_metrics(staff, orders, payouts), metric="total_payouts", limit=1)
        assert ranked[0].name == "Bob Tanaka"

    def test_alerts(self, datasets):
        alerts = {alert.title: alert for alert in identify_alerts(datasets.staff, datasets.payouts)}
        missing = alerts["Missing State IDs"]
        assert missing.type == "warning"
        assert [member.name for member in missing.staff] == ["Yui Mori", "Mina Ito"]
        without = alerts["Staff Without Payouts"]
        assert without.type == "info"
        assert [member.name for member in without.staff] == ["Mina Ito"]

    def test_no_alerts_for_inactive_staff(self, rules):
        staff = [make_staff(rules, Name="Gone", StateID="", Active="no")]
        assert identify_alerts(staff, []) == []


class TestSummaries:

    def test_subsidiary_summary(self, october):
        orders, payouts, staff = october
        kintsugi = subsidiary_summary(orders, payouts, staff, KINTSUGI)
        assert kintsugi.total_orders == 2
        assert kintsugi.total_revenue == 17500.0
        assert kintsugi.total_payouts == 2200.0
        assert kintsugi.active_staff == 2
        assert kintsugi.avg_order_value == 8750.0

        takosuya = subsidiary_summary(orders, payouts, staff, TAKOSUYA)
        assert takosuya.total_orders == 1
        assert takosuya.active_staff == 1
        assert takosuya.total_payouts == 380.0

    def test_single_engine_order(self, rules):
        orders = [
            Order.from_row({"Customer": "A", "Category": "Engine", "Total": "$15,000", "Staff": "Bob"}, rules)
        ]
        summary = subsidiary_summary(orders, [], [], KINTSUGI)
        assert summary.total_revenue == 15000.0
        assert summary.total_orders == 1

    def test_subsidiary_without_orders_has_zero_average(self, rules):
        summary = subsidiary_summary([], [], [], TAKOSUYA)
        assert summary.avg_order_value == 0.0
        assert summary.total_orders == 0

    def test_consolidated_summary(self, october):
        consolidated = consolidated_summary(*october)
        assert consolidated["total_revenue"] == pytest.approx(17545.5)
        assert consolidated["total_orders"] == 3
        assert consolidated["active_staff"] == 3
        assert consolidated["avg_order_value"] == pytest.approx(17545.5 / 3)
        assert set(consolidated["subsidiaries"]) == {KINTSUGI, TAKOSUYA}

    def test_executive_summary_text(self, october):
        text = executive_summary_text(consolidated_summary(*october))
        assert text.startswith("KANESHIRO ENTERPRISES - EXECUTIVE SUMMARY")
        assert "• Total Revenue: $17,545.50" in text
        assert "KINTSUGI:" in text
        assert "• Revenue: $45.50" in text

    def test_fmt_money(self):
        assert fmt_money(1234.5) == "$1,234.50"
        assert fmt_money(-3) == "-$3.00"
        assert fmt_money(None) == "$0.00"
