"""Tests for the transaction aggregation module."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from litfunds.analytics import (
    balance_status,
    biggest_category,
    budget_overview,
    category_budget_usage,
    category_totals,
    daily_series,
    filter_by_range,
    format_currency,
    format_signed,
    normalize_transactions,
    period_range,
    summarize,
    totals,
)
from litfunds.models import BalanceTier, CategoryOrder, Currency, Period, Transaction


def make(amount, category="food", type="expense", when=datetime(2024, 3, 10, 12, 0), **extra):
    return Transaction(amount=Decimal(str(amount)), category=category, type=type, date=when, **extra)


@pytest.fixture
def snapshot():
    """Income 1000, expenses 200 food + 50 Food."""
    return [
        make(1000, category="salary", type="income", when=datetime(2024, 3, 1, 9, 0)),
        make(-200, category="food", when=datetime(2024, 3, 2, 13, 0)),
        make(-50, category="Food", when=datetime(2024, 3, 2, 19, 30)),
    ]


class TestTotals:
    """Tests for totals()."""

    def test_income_expense_balance(self, snapshot):
        result = totals(snapshot)
        assert result.income == Decimal("1000")
        assert result.expense == Decimal("250")
        assert result.balance == Decimal("750")

    def test_empty_input_is_zero(self):
        result = totals([])
        assert (result.income, result.expense, result.balance) == (0, 0, 0)

    def test_balance_is_income_minus_expense(self, snapshot):
        snapshot.append(make(75.25, category="utilities"))
        result = totals(snapshot)
        assert result.balance == result.income - result.expense

    def test_positive_and_negative_expense_conventions_agree(self):
        """Legacy positive magnitudes and signed amounts total the same."""
        legacy = [{"amount": 40, "category": "food", "type": "expense", "date": "2024-03-01"}]
        signed = [{"amount": -40, "category": "food", "type": "expense", "date": "2024-03-01"}]
        assert totals(legacy) == totals(signed)
        assert totals(legacy).expense == Decimal("40")


class TestCategoryTotals:
    """Tests for category_totals()."""

    def test_case_insensitive_grouping(self, snapshot):
        result = category_totals(snapshot)
        assert len(result) == 1
        assert result[0].category == "food"
        assert result[0].amount == Decimal("250")

    def test_income_is_ignored(self):
        result = category_totals([make(500, category="salary", type="income")])
        assert result == []

    def test_first_seen_order(self):
        transactions = [
            make(10, category="transportation"),
            make(90, category="food"),
            make(5, category="transportation"),
        ]
        result = category_totals(transactions)
        assert [entry.category for entry in result] == ["transportation", "food"]

    def test_amount_desc_order_with_stable_ties(self):
        transactions = [
            make(30, category="shopping"),
            make(90, category="food"),
            make(30, category="utilities"),
        ]
        result = category_totals(transactions, order=CategoryOrder.AMOUNT_DESC)
        assert [entry.category for entry in result] == ["food", "shopping", "utilities"]

    def test_order_accepts_string(self):
        result = category_totals([make(1, category="a"), make(2, category="b")], order="amount_desc")
        assert result[0].category == "b"

    def test_sum_matches_total_expense(self, snapshot):
        snapshot += [make(12, category="other"), make(8.5, category="utilities")]
        assert sum(entry.amount for entry in category_totals(snapshot)) == totals(snapshot).expense


class TestBiggestCategory:

    def test_biggest(self, snapshot):
        snapshot.append(make(100, category="transportation"))
        result = biggest_category(snapshot)
        assert result.category == "food"
        assert result.amount == Decimal("250")

    def test_tie_goes_to_first_seen(self):
        transactions = [make(50, category="shopping"), make(50, category="food")]
        assert biggest_category(transactions).category == "shopping"

    def test_none_without_expenses(self):
        assert biggest_category([]) is None
        assert biggest_category([make(10, type="income", category="gift")]) is None


class TestFilterByRange:

    def test_inclusive_whole_days(self):
        transactions = [
            make(1, when=datetime(2024, 3, 1, 0, 0)),
            make(2, when=datetime(2024, 3, 31, 23, 59)),
            make(3, when=datetime(2024, 4, 1, 0, 0)),
        ]
        result = filter_by_range(transactions, date(2024, 3, 1), date(2024, 3, 31))
        assert [t.magnitude for t in result] == [Decimal("1"), Decimal("2")]

    def test_inverted_range_is_empty(self, snapshot):
        assert filter_by_range(snapshot, date(2024, 3, 31), date(2024, 3, 1)) == []

    def test_input_not_mutated(self, snapshot):
        before = [t.model_copy() for t in snapshot]
        filter_by_range(snapshot, date(2024, 3, 2), date(2024, 3, 2))
        assert snapshot == before


class TestDailySeries:

    def test_one_entry_per_day_ascending(self, snapshot):
        result = daily_series(snapshot, date(2024, 3, 1), date(2024, 3, 7))
        assert len(result) == 7
        assert [entry.day for entry in result] == sorted(entry.day for entry in result)
        assert result[0].day == date(2024, 3, 1)
        assert result[-1].day == date(2024, 3, 7)

    def test_time_of_day_ignored(self, snapshot):
        result = daily_series(snapshot, date(2024, 3, 1), date(2024, 3, 3))
        amounts = {entry.day: entry.amount for entry in result}
        assert amounts[date(2024, 3, 1)] == Decimal("0")  # income only
        assert amounts[date(2024, 3, 2)] == Decimal("250")
        assert amounts[date(2024, 3, 3)] == Decimal("0")

    def test_empty_input_still_fills_days(self):
        result = daily_series([], date(2024, 2, 27), date(2024, 3, 1))
        assert len(result) == 4  # leap year
        assert all(entry.amount == 0 for entry in result)

    def test_inverted_range_is_empty(self):
        assert daily_series([], date(2024, 3, 2), date(2024, 3, 1)) == []

    def test_labels(self, snapshot):
        result = daily_series(snapshot, date(2024, 3, 2), date(2024, 3, 2))
        assert result[0].label == "Mar 2"


class TestBalanceStatus:
    """Tests for balance_status() tiers."""

    def test_critical(self):
        status = balance_status(-300, 400)
        assert status.tier == BalanceTier.CRITICAL
        assert status.style == "error-box"

    def test_warning(self):
        assert balance_status(-100, 400).tier == BalanceTier.WARNING

    def test_deficit_exactly_half_is_warning(self):
        assert balance_status(-200, 400).tier == BalanceTier.WARNING

    def test_excellent(self):
        status = balance_status(500, 100)
        assert status.tier == BalanceTier.EXCELLENT
        assert status.style == "success-box"

    def test_good(self):
        assert balance_status(200, 100).tier == BalanceTier.GOOD

    def test_normal(self):
        status = balance_status(100, 100)
        assert status.tier == BalanceTier.NORMAL
        assert status.style == "info-box"

    def test_zero_expenses(self):
        assert balance_status(0, 0).tier == BalanceTier.NORMAL
        assert balance_status(1, 0).tier == BalanceTier.EXCELLENT

    def test_negative_balance_zero_expenses_is_critical(self):
        assert balance_status(-10, 0).tier == BalanceTier.CRITICAL

    def test_signed_expense_total_accepted(self):
        assert balance_status(500, -100).tier == BalanceTier.EXCELLENT

    def test_decimal_input(self):
        assert balance_status(Decimal("300.01"), Decimal("100")).tier == BalanceTier.EXCELLENT


class TestBudgetUsage:
    """Tests for category_budget_usage()."""

    def test_over_budget_clamped(self):
        transactions = [make(400, category="food"), make(200, category="FOOD")]
        usage = category_budget_usage(transactions, "Food", 500)
        assert usage.spent == Decimal("600")
        assert usage.percent == 100.0
        assert usage.ratio == pytest.approx(1.2)
        assert usage.over_budget is True

    def test_under_budget(self):
        usage = category_budget_usage([make(75, category="transportation")], "transportation", 300)
        assert usage.percent == pytest.approx(25.0)
        assert usage.over_budget is False
        assert usage.remaining == Decimal("225")

    def test_zero_limit_never_divides(self):
        nothing = category_budget_usage([], "food", 0)
        assert nothing.percent == 0.0
        assert nothing.ratio is None

        spent = category_budget_usage([make(10)], "food", 0)
        assert spent.percent == 100.0
        assert spent.ratio is None
        assert spent.over_budget is True

    def test_overview_follows_configured_order(self, snapshot):
        result = budget_overview(snapshot, {"food": Decimal("500"), "transportation": Decimal("300")})
        assert [usage.category for usage in result] == ["food", "transportation"]
        assert result[0].spent == Decimal("250")
        assert result[1].spent == Decimal("0")


class TestMalformedRecords:
    """Malformed records are skipped, never fatal."""

    def test_skips_bad_records(self):
        records = [
            {"amount": 100, "category": "food", "type": "expense", "date": "2024-03-02"},
            {"category": "food", "type": "expense", "date": "2024-03-02"},  # no amount
            {"amount": 5, "type": "expense", "date": "2024-03-02"},  # no category
            {"amount": 5, "category": "food", "type": "expense"},  # no date
            {"amount": "lots", "category": "food", "type": "expense", "date": "2024-03-02"},
            {"amount": 5, "category": "food", "type": "refund", "date": "2024-03-02"},
            None,
            "garbage",
        ]
        assert len(normalize_transactions(records)) == 1
        assert totals(records).expense == Decimal("100")
        assert category_totals(records)[0].amount == Decimal("100")
        assert len(daily_series(records, date(2024, 3, 1), date(2024, 3, 3))) == 3

    def test_idempotent(self, snapshot):
        assert summarize(snapshot, date(2024, 3, 1), date(2024, 3, 31)) == \
            summarize(snapshot, date(2024, 3, 1), date(2024, 3, 31))

    def test_raw_records_without_identity_are_stable(self):
        records = [
            {"amount": -20, "category": "Food", "type": "expense", "date": "2024-03-02"},
            {"amount": -20, "category": "Food", "type": "expense", "date": "2024-03-03"},
        ]
        first = filter_by_range(records, date(2024, 3, 1), date(2024, 3, 31))
        second = filter_by_range(records, date(2024, 3, 1), date(2024, 3, 31))

        assert first == second
        assert first[0].id != first[1].id
        assert first[0].created_at == datetime(2024, 3, 2)
        assert normalize_transactions(records) == normalize_transactions(records)

    def test_raw_record_identity_is_kept(self):
        record = {
            "id": "t-1",
            "createdAt": "2024-03-02T08:00:00",
            "amount": 5,
            "category": "food",
            "type": "expense",
            "date": "2024-03-02",
        }
        transaction = normalize_transactions([record])[0]
        assert transaction.id == "t-1"
        assert transaction.created_at == datetime(2024, 3, 2, 8, 0)


class TestPeriodRange:

    def test_week_starts_monday(self):
        result = period_range(Period.WEEK, today=date(2024, 3, 14))  # Thursday
        assert result.start == date(2024, 3, 11)
        assert result.end == date(2024, 3, 17)

    def test_month(self):
        result = period_range("month", today=date(2024, 2, 10))
        assert (result.start, result.end) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_year(self):
        result = period_range(Period.YEAR, today=date(2024, 6, 1))
        assert (result.start, result.end) == (date(2024, 1, 1), date(2024, 12, 31))


class TestSummarize:

    def test_summary_figures(self, snapshot):
        snapshot.append(make(20, category="transportation", when=datetime(2024, 4, 2)))
        summary = summarize(
            snapshot,
            date(2024, 3, 1),
            date(2024, 3, 31),
            budgets={"food": Decimal("500")},
        )
        assert summary.transaction_count == 3
        assert summary.totals.balance == Decimal("750")
        assert summary.status.tier == BalanceTier.GOOD
        assert [c.category for c in summary.categories] == ["food"]
        assert summary.biggest_category.amount == Decimal("250")
        assert len(summary.daily) == 31
        assert summary.max_daily_amount == Decimal("250")
        assert summary.budgets[0].percent == pytest.approx(50.0)

    def test_empty_summary(self):
        summary = summarize([], date(2024, 3, 1), date(2024, 3, 3))
        assert summary.transaction_count == 0
        assert summary.biggest_category is None
        assert summary.status.tier == BalanceTier.NORMAL
        assert summary.budgets == []


class TestFormatting:

    def test_currency_symbols(self):
        assert format_currency(Decimal("1250"), Currency.GHS) == "₵1,250.00"
        assert format_currency(-40, "USD") == "$40.00"

    def test_signed(self):
        assert format_signed(Decimal("-40"), Currency.GHS) == "-₵40.00"
        assert format_signed(15.5, Currency.USD) == "+$15.50"
        assert format_signed(0) == "₵0.00"
