"""
Tests for the aggregation engine.
"""

import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from finance_tracker.engine.aggregation import (
    account_balance,
    annual_metrics,
    monthly_series,
    months_elapsed,
    transactions_for_month,
)
from finance_tracker.models.ledger import Transaction, TransactionKind


TODAY = date(2024, 6, 15)


def debit(amount: str, on: date) -> Transaction:
    return Transaction(
        description="Expense",
        amount=Decimal(amount),
        kind=TransactionKind.DEBIT,
        date=on,
    )


def credit(amount: str, on: date) -> Transaction:
    return Transaction(
        description="Income",
        amount=Decimal(amount),
        kind=TransactionKind.CREDIT,
        date=on,
    )


class TestMonthlySeries:
    """Tests for monthly bucketing."""

    def test_single_month(self):
        """Test one debit and one credit in March."""
        series = monthly_series(
            [debit("-150", date(2024, 3, 4)), credit("2000", date(2024, 3, 5))],
            2024,
        )

        assert series.expense[2] == Decimal("150")
        assert series.income[2] == Decimal("2000")
        for idx in range(12):
            if idx != 2:
                assert series.expense[idx] == 0
                assert series.income[idx] == 0

    def test_other_years_ignored(self):
        series = monthly_series(
            [debit("-10", date(2023, 3, 4)), credit("10", date(2025, 3, 4))],
            2024,
        )
        assert sum(series.expense) == 0
        assert sum(series.income) == 0

    def test_bucket_totals_match_year_totals(self):
        """Test the buckets add up to the year's debits and credits."""
        transactions = [
            debit("-100.50", date(2024, 1, 2)),
            debit("-20", date(2024, 1, 20)),
            debit("-300", date(2024, 7, 1)),
            credit("1500", date(2024, 7, 5)),
            credit("250.25", date(2024, 12, 31)),
            debit("-999", date(2023, 12, 31)),
        ]
        series = monthly_series(transactions, 2024)

        assert sum(series.expense) == Decimal("420.50")
        assert sum(series.income) == Decimal("1750.25")
        assert series.expense[0] == Decimal("120.50")

    def test_undated_transactions_skipped(self):
        undated = SimpleNamespace(
            amount=Decimal("-5"), kind=TransactionKind.DEBIT, date=None
        )
        series = monthly_series([undated, debit("-7", date(2024, 2, 1))], 2024)
        assert series.expense[1] == Decimal("7")
        assert sum(series.expense) == Decimal("7")

    def test_empty(self):
        series = monthly_series([], 2024)
        assert series.year == 2024
        assert len(series.income) == 12
        assert len(series.expense) == 12


class TestMonthsElapsed:
    """Tests for the run-rate divisor."""

    def test_current_year(self):
        assert months_elapsed(2024, today=TODAY) == 6

    def test_future_year(self):
        assert months_elapsed(2025, today=TODAY) == 12

    def test_past_year(self):
        assert months_elapsed(2023, today=TODAY) == 12

    def test_january(self):
        assert months_elapsed(2024, today=date(2024, 1, 1)) == 1


class TestAnnualMetrics:
    """Tests for the annual projection."""

    def test_salary_only(self):
        """No transactions: income is the salary run-rate, nothing committed."""
        metrics = annual_metrics([], Decimal("2000"), 2024, today=TODAY)

        assert metrics.months_elapsed == 6
        assert metrics.projected_income == Decimal("24000")
        assert metrics.projected_spend == 0
        assert metrics.projected_balance == Decimal("24000")
        assert metrics.percent_committed == 0

    def test_blended_income(self):
        """Real credits are blended with the salary once any exist."""
        transactions = [
            credit("3000", date(2024, 2, 1)),
            debit("-600", date(2024, 4, 1)),
        ]
        metrics = annual_metrics(transactions, Decimal("2000"), 2024, today=TODAY)

        assert metrics.spent_ytd == Decimal("600")
        assert metrics.credits_ytd == Decimal("3000")
        assert metrics.projected_spend == Decimal("1200")
        assert metrics.projected_income == Decimal("30000")
        assert metrics.projected_balance == Decimal("28800")
        assert metrics.percent_committed == Decimal("4")

    def test_percent_clamped_at_100(self):
        transactions = [debit("-6000", date(2024, 3, 1))]
        metrics = annual_metrics(transactions, Decimal("100"), 2024, today=TODAY)

        assert metrics.projected_spend == Decimal("12000")
        assert metrics.projected_income == Decimal("1200")
        assert metrics.percent_committed == Decimal("100")
        assert metrics.projected_balance == Decimal("-10800")

    def test_zero_income(self):
        transactions = [debit("-50", date(2024, 3, 1))]
        metrics = annual_metrics(transactions, 0, 2024, today=TODAY)

        assert metrics.projected_income == 0
        assert metrics.percent_committed == 0
        assert metrics.projected_balance < 0

    def test_past_year_uses_twelve_months(self):
        transactions = [debit("-1200", date(2023, 5, 1))]
        metrics = annual_metrics(transactions, Decimal("1000"), 2023, today=TODAY)

        assert metrics.months_elapsed == 12
        assert metrics.projected_spend == Decimal("1200")
        assert metrics.projected_income == Decimal("12000")

    def test_future_year(self):
        transactions = [debit("-2400", date(2025, 1, 5))]
        metrics = annual_metrics(transactions, "1000", 2025, today=TODAY)

        assert metrics.months_elapsed == 12
        assert metrics.projected_spend == Decimal("2400")
        assert metrics.percent_committed == Decimal("20")

    def test_other_years_ignored(self):
        transactions = [debit("-500", date(2023, 12, 31))]
        metrics = annual_metrics(transactions, Decimal("1000"), 2024, today=TODAY)
        assert metrics.spent_ytd == 0


class TestBalanceAndMonthList:
    """Tests for the account balance and per-month listing."""

    def test_account_balance(self):
        transactions = [
            credit("2000", date(2024, 1, 5)),
            debit("-150", date(2024, 1, 9)),
            debit("-50.25", date(2023, 12, 1)),
        ]
        assert account_balance(transactions) == Decimal("1799.75")
        assert account_balance(transactions, Decimal("100")) == Decimal("1899.75")

    def test_account_balance_empty(self):
        assert account_balance([], "10.50") == Decimal("10.50")

    def test_transactions_for_month_sorted(self):
        late = debit("-1", date(2024, 3, 20))
        early = debit("-2", date(2024, 3, 2))
        other = debit("-3", date(2024, 4, 2))
        other_year = debit("-4", date(2023, 3, 2))

        selected = transactions_for_month([late, other, early, other_year], 2, 2024)

        assert selected == [early, late]

    @pytest.mark.parametrize("month_index", [0, 11])
    def test_transactions_for_month_edges(self, month_index):
        tx = credit("5", date(2024, month_index + 1, 1))
        assert transactions_for_month([tx], month_index, 2024) == [tx]
