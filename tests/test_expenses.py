"""Tests for totals, time-window filtering and search."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from errors import ValidationError
from expenses import calculate_totals, filter_by_window, search_records, time_window
from model import Record


def make_record(type="Expense", amount="10", on=date(2024, 3, 15), category="", description="", id="r1"):
    return Record(
        id=id,
        owner_id="u1",
        type=type,
        amount=amount,
        date=on,
        category=category,
        description=description,
    )


class TestCalculateTotals:
    def test_empty_input_returns_zeros(self):
        totals = calculate_totals([])
        assert totals.total_income == 0
        assert totals.total_expense == 0
        assert totals.total_balance == 0

    def test_balance_is_income_minus_expense(self):
        records = [
            make_record("Income", "1500.50"),
            make_record("Expense", "200.25"),
            make_record("Expense", "99.75"),
            make_record("Income", "10"),
        ]
        totals = calculate_totals(records)
        assert totals.total_income == Decimal("1510.50")
        assert totals.total_expense == Decimal("300.00")
        assert totals.total_balance == totals.total_income - totals.total_expense

    def test_unparseable_amount_counts_as_zero(self):
        totals = calculate_totals([make_record("Expense", "abc"), make_record("Expense", "5")])
        assert totals.total_expense == Decimal("5")

    def test_out_of_range_amounts_do_not_break_totals(self):
        records = [
            make_record("Income", "1e1000000"),
            make_record("Expense", Decimal("1e400")),
            make_record("Income", "3"),
        ]
        totals = calculate_totals(records)
        assert totals.total_income == Decimal("3")
        assert totals.total_expense == 0

    def test_type_match_is_case_sensitive(self):
        totals = calculate_totals([make_record("income", "100"), make_record("EXPENSE", "40")])
        assert totals.total_income == 0
        assert totals.total_expense == 0

    def test_non_negative_amounts_give_non_negative_sums(self):
        records = [make_record(t, str(a)) for t, a in [("Income", 0), ("Expense", 3), ("Expense", 7)]]
        totals = calculate_totals(records)
        assert totals.total_income >= 0
        assert totals.total_expense >= 0
        assert totals.total_balance == Decimal("-10")


class TestTimeWindow:
    now = datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)

    def test_today_keeps_only_todays_records(self):
        today = make_record(on=date(2024, 3, 15), id="a")
        yesterday = make_record(on=date(2024, 3, 14), id="b")
        assert filter_by_window([today, yesterday], "today", self.now) == [today]

    def test_month_boundaries_are_inclusive(self):
        records = [
            make_record(on=date(2024, 3, 1), id="first"),
            make_record(on=date(2024, 3, 31), id="last"),
            make_record(on=date(2024, 2, 29), id="before"),
            make_record(on=date(2024, 4, 1), id="after"),
        ]
        result = filter_by_window(records, "month", self.now)
        assert [r.id for r in result] == ["first", "last"]

    def test_year_window(self):
        records = [
            make_record(on=date(2024, 1, 1), id="jan"),
            make_record(on=date(2024, 12, 31), id="dec"),
            make_record(on=date(2023, 12, 31), id="old"),
        ]
        assert [r.id for r in filter_by_window(records, "year", self.now)] == ["jan", "dec"]

    def test_window_spans_whole_day(self):
        start, end = time_window("today", self.now)
        assert start == datetime(2024, 3, 15, 0, 0, tzinfo=timezone.utc)
        assert end.date() == date(2024, 3, 15)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_february_leap_year_end(self):
        _, end = time_window("month", datetime(2024, 2, 10, tzinfo=timezone.utc))
        assert end.date() == date(2024, 2, 29)

    @pytest.mark.parametrize("token", ["week", "Today", "", None])
    def test_unknown_token_is_rejected(self, token):
        with pytest.raises(ValidationError):
            filter_by_window([make_record()], token, self.now)


class TestSearch:
    records = [
        make_record(category="Groceries", description="weekly shop", id="g"),
        make_record(type="Income", category="Salary", description="March pay", id="s"),
        make_record(category="Transport", description="Metro card (monthly)", id="t"),
    ]

    def test_case_insensitive_match_on_category(self):
        assert [r.id for r in search_records(self.records, "grocery")] == ["g"]
        assert [r.id for r in search_records(self.records, "GROCERIES")] == ["g"]

    def test_matches_description_and_type(self):
        assert [r.id for r in search_records(self.records, "march")] == ["s"]
        assert [r.id for r in search_records(self.records, "income")] == ["s"]

    def test_keeps_natural_order(self):
        assert [r.id for r in search_records(self.records, "e")] == ["g", "s", "t"]

    def test_plural_forms_match_each_other_only_for_y_and_ies(self):
        records = [
            make_record(category="Grocery", id="grocery"),
            make_record(category="Candles", id="candles"),
        ]
        assert [r.id for r in search_records(records, "groceries")] == ["grocery"]
        assert search_records(records, "candy") == []

    def test_query_is_literal_text(self):
        assert [r.id for r in search_records(self.records, "(monthly)")] == ["t"]
        assert search_records(self.records, ".*") == []

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query_is_rejected(self, query):
        with pytest.raises(ValidationError):
            search_records(self.records, query)
