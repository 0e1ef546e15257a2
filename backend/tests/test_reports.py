"""Tests for report compilation."""

from datetime import date

import pytest

from conftest import FakeRecordStore, seed_estate
from estatebook.middleware.exceptions import UpstreamFetchError
from estatebook.schemas.ledger import PeriodFilter
from estatebook.services.reports import build_report, compile_report

JANUARY = PeriodFilter(start=date(2024, 1, 1), end=date(2024, 1, 31))


def compile_from(store: FakeRecordStore, period=JANUARY):
    return compile_report(
        store.rows("harvests"),
        store.rows("transactions"),
        store.rows("collector_rates"),
        store.rows("collector_advances"),
        store.rows("tea_collectors"),
        store.rows("fields"),
        period,
    )


@pytest.mark.unit
class TestCompileReport:

    def test_ledger_section_matches_aggregate(self, estate):
        report = compile_from(estate)

        assert report.fields[0].field_name == "Field A"
        assert report.fields[0].net_profit == 3000
        assert report.general.total_expense == 300
        assert report.estate.total_profit == 2700
        assert report.skipped_records == 0

    def test_crop_rows_in_first_seen_order(self, estate):
        estate.seed(
            "harvests",
            {"date": date(2024, 1, 11), "field_id": 2, "crop_type": "pepper", "weight": 10, "rate": 600, "total_amount": 6000},
            {"date": date(2024, 1, 12), "field_id": 1, "crop_type": "tea", "weight": 50, "rate": None, "collector_id": 1},
            {"date": date(2024, 1, 13), "field_id": 2, "crop_type": None, "weight": 5, "rate": 10, "total_amount": 50},
        )
        report = compile_from(estate)

        assert [(c.crop_type, c.total_weight, c.total_revenue) for c in report.crops] == [
            ("tea", 150, 6000),
            ("pepper", 10, 6000),
            ("unknown", 5, 50),
        ]

    def test_expense_types_fixed_order_without_zero_rows(self, estate):
        estate.seed("transactions", {
            "date": date(2024, 1, 20), "field_id": 2, "type": "owner_labor",
            "quantity": 1, "rate": 200, "total_amount": 200,
        })
        report = compile_from(estate)

        assert [(e.type, e.label, e.total_amount) for e in report.expense_types] == [
            ("labor_cost", "Labor", 1000),
            ("overhead", "Overheads", 300),
            ("owner_labor", "Owner Labor", 200),
        ]

    def test_collector_summary_and_balance(self, estate):
        estate.seed("tea_collectors", {"id": 2, "name": "Idle"}, {"id": 3, "name": "Advanced only"})
        estate.seed(
            "collector_advances",
            {"collector_id": 1, "date": date(2024, 1, 10), "amount": 1500},
            {"collector_id": 3, "date": date(2024, 1, 5), "amount": 200},
        )
        report = compile_from(estate)

        rows = {c.collector_name: c for c in report.collectors}
        assert set(rows) == {"Ravi", "Advanced only"}
        assert rows["Ravi"].total_weight == 100
        assert rows["Ravi"].total_revenue == 4000
        assert rows["Ravi"].total_advances == 1500
        assert rows["Ravi"].balance == 2500
        assert rows["Advanced only"].balance == -200

    def test_combined_log_newest_first_with_stable_ties(self, estate):
        estate.seed("collector_advances", {
            "collector_id": 1, "date": date(2024, 1, 10), "amount": 500, "description": "cash",
        })
        report = compile_from(estate)

        assert [(e.date.day, e.kind) for e in report.log] == [
            (15, "Expense"),
            (10, "Income"),
            (10, "Expense"),
            (10, "Advance"),
        ]
        overhead, income, labor, advance = report.log
        assert overhead.field_name == "-"
        assert overhead.details == "Electricity"
        assert income.details == "tea (Ravi)"
        assert income.amount == 4000
        assert labor.field_name == "Field A"
        assert labor.details == "labor_cost"
        assert advance.details == "Advance: Ravi"
        assert advance.field_name == "-"

    def test_same_day_entries_of_one_kind_keep_id_order(self, estate):
        estate.seed(
            "transactions",
            {"id": 9, "date": date(2024, 1, 15), "type": "overhead", "description": "Later id", "total_amount": 1},
            {"id": 5, "date": date(2024, 1, 15), "type": "overhead", "description": "Earlier id", "total_amount": 1},
        )
        details = [e.details for e in compile_from(estate).log if e.date == date(2024, 1, 15)]
        assert details == ["Electricity", "Earlier id", "Later id"]

    def test_cash_sale_tea_shows_unknown_collector(self, estate):
        estate.seed("harvests", {
            "date": date(2024, 1, 3), "field_id": 2, "crop_type": "tea", "weight": 10,
            "rate": 30, "collector_id": None, "total_amount": 300,
        })
        log = compile_from(estate).log
        assert log[-1].details == "tea (?)"
        assert log[-1].field_name == "Field B"

    def test_skipped_records_are_counted_and_excluded(self, estate):
        estate.seed(
            "harvests",
            {"date": date(2024, 1, 4), "field_id": None, "crop_type": "pepper", "weight": 1, "rate": 10, "total_amount": 10},
            {"date": date(2024, 1, 4), "field_id": 1, "crop_type": "tea", "weight": 1, "rate": 10,
             "collector_id": 99, "total_amount": 10},
        )
        estate.seed("collector_advances", {"collector_id": 99, "date": date(2024, 1, 4), "amount": 70})
        report = compile_from(estate)

        assert report.skipped_records == 3
        assert len(report.warnings) == 3
        assert report.estate.total_income == 4000
        assert all(e.date != date(2024, 1, 4) for e in report.log)
        assert [c.crop_type for c in report.crops] == ["tea"]
        assert report.crops[0].total_weight == 100

    def test_records_outside_period_are_left_out(self, estate):
        report = compile_from(estate, PeriodFilter(start=date(2024, 1, 11), end=date(2024, 1, 31)))

        assert report.crops == []
        assert [e.kind for e in report.log] == ["Expense"]
        assert report.collectors == []


@pytest.mark.asyncio
class TestBuildReport:

    async def test_builds_from_store(self, estate):
        report = await build_report(estate, JANUARY)

        assert report.estate.total_income == 4000
        assert len(report.log) == 3

    async def test_fetch_failure_aborts(self):
        store = seed_estate(FakeRecordStore(fail_on={"collector_advances"}))

        with pytest.raises(UpstreamFetchError) as exc_info:
            await build_report(store, JANUARY)
        assert exc_info.value.collection == "collector_advances"
