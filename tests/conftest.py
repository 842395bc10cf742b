from datetime import datetime

import httpx
import pytest

from kaneshiro_pipeline.application.dashboard_service import normalize_datasets
from kaneshiro_pipeline.application.time_range import TimeRangeEngine
from kaneshiro_pipeline.config import SheetsConfig
from kaneshiro_pipeline.domain.models import Order, Payout, Staff
from kaneshiro_pipeline.domain.subsidiary import SubsidiaryRules
from kaneshiro_pipeline.ingestion import decode_csv

SHEET_ID = "test-sheet"
NOW = datetime(2026, 10, 14, 15, 30)  # Wednesday

ORDERS_CSV = (
    "Date,Customer,Category,Total,Staff,Notes\r\n"
    '2026-10-02,Alice Parker,Engine,"$15,000",Bob Tanaka,\r\n'
    '2026-10-09,Carl Ruiz,repair,"$2,500",Bob Tanaka,"brakes, rotors"\r\n'
    "2026-10-10,Dana Lee,food,$45.50,Yui Mori,lunch rush\r\n"
    "2026-09-12,Eve Stone,drink,$12,Yui Mori,\r\n"
)
PAYOUTS_CSV = (
    "Person,StateID,Week,Amount,Type,Notes\n"
    "Bob Tanaka,ST-100,2026-10-04,$700,pay,mechanic shift\n"
    "Bob Tanaka,ST-100,2026-10-11,$1500,bonus,engine bonus\n"
    "Yui Mori,ST-200,Week ending 10/11/2026,$300,tip,takosuya chef\n"
    "Yui Mori,ST-200,2026-10-11,$80,refund,kitchen supplies\n"
)
STAFF_CSV = (
    "Name,StateID,Role,Active\n"
    "Bob Tanaka,ST-100,Mechanic,yes\n"
    "Yui Mori,,Chef,\n"
    "Ken Sato,ST-300,Server,inactive\n"
    "Mina Ito,,Technician,true\n"
)


@pytest.fixture
def rules():
    return SubsidiaryRules()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine(now):
    return TimeRangeEngine(period="month", now=lambda: now)


@pytest.fixture
def sheets_config():
    return SheetsConfig(sheet_id=SHEET_ID, cache_ttl=300.0)


@pytest.fixture
def csv_by_gid(sheets_config):
    return {
        sheets_config.tabs["orders"]: ORDERS_CSV,
        sheets_config.tabs["payouts"]: PAYOUTS_CSV,
        sheets_config.tabs["staff"]: STAFF_CSV,
    }


class FakeClock:
    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()


class SheetServer:
    """httpx.MockTransport handler serving CSV per ``gid`` and counting calls."""

    def __init__(self, csv_by_gid):
        self.csv_by_gid = dict(csv_by_gid)
        self.calls = []
        self.failing = set()

    def __call__(self, request):
        gid = request.url.params.get("gid")
        self.calls.append(gid)
        if gid in self.failing:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, text=self.csv_by_gid.get(gid, ""))


@pytest.fixture
def sheet_server(csv_by_gid):
    return SheetServer(csv_by_gid)


@pytest.fixture
def http_client(sheet_server):
    return httpx.AsyncClient(transport=httpx.MockTransport(sheet_server))


def make_order(rules, **fields):
    row = {"Customer": "Someone", "Total": "100", "Date": "2026-10-05"}
    row.update(fields)
    return Order.from_row(row, rules)


def make_payout(rules, **fields):
    row = {"Person": "Someone", "Amount": "100", "Week": "2026-10-05"}
    row.update(fields)
    return Payout.from_row(row, rules)


def make_staff(rules, **fields):
    row = {"Name": "Someone", "StateID": "ST-1"}
    row.update(fields)
    return Staff.from_row(row, rules)


@pytest.fixture
def datasets(rules):
    raw = {"orders": decode_csv(ORDERS_CSV), "payouts": decode_csv(PAYOUTS_CSV), "staff": decode_csv(STAFF_CSV)}
    return normalize_datasets(raw, rules)
