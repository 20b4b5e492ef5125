"""
Aggregation Engine

Pure folds over a transaction collection:
- monthly income/expense buckets for a year
- an annual financial-health projection based on run-rate extrapolation

Aggregation trusts the ledger sign convention: debits are negative,
credits are non-negative. Classification into healthy/warning/critical
is a policy applied by the caller, not here.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from finance_tracker.models.ledger import (
    AnnualMetrics,
    MonthlySeries,
    Transaction,
    TransactionKind,
)


ZERO = Decimal("0")
MONTHS_PER_YEAR = 12

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _dated_in(transaction: Transaction, year: int) -> bool:
    tx_date = getattr(transaction, "date", None)
    return tx_date is not None and tx_date.year == year


def monthly_series(transactions: Iterable[Transaction], year: int) -> MonthlySeries:
    """
    Fold transactions into 12 monthly income and expense buckets.

    Credits add their amount to income; debits add their absolute amount
    to expense. Transactions from other years, or without a date, are
    skipped.
    """
    income = [ZERO] * MONTHS_PER_YEAR
    expense = [ZERO] * MONTHS_PER_YEAR

    for t in transactions:
        if not _dated_in(t, year):
            continue
        month = t.date.month - 1
        if t.kind == TransactionKind.CREDIT:
            income[month] += t.amount
        elif t.kind == TransactionKind.DEBIT:
            expense[month] += abs(t.amount)

    return MonthlySeries(year=year, income=income, expense=expense)


def months_elapsed(year: int, today: Optional[date] = None) -> int:
    """
    Number of months of `year` that count towards the run-rate.

    The current year counts up to and including the current month.
    Future and past years count as a full 12.
    """
    today = today or date.today()
    if year == today.year:
        return today.month
    return MONTHS_PER_YEAR


def annual_metrics(
    transactions: Iterable[Transaction],
    base_salary: Number,
    year: int,
    today: Optional[date] = None,
) -> AnnualMetrics:
    """
    Project the year's spend and income from what has happened so far.

    Spend is extrapolated from the debits to date. Income blends real
    credits with the configured salary once any credit exists, and falls
    back to salary alone otherwise.
    """
    salary = _to_decimal(base_salary)
    elapsed = months_elapsed(year, today)

    spent_ytd = ZERO
    credits_ytd = ZERO
    for t in transactions:
        if not _dated_in(t, year):
            continue
        if t.kind == TransactionKind.DEBIT:
            spent_ytd += abs(t.amount)
        elif t.kind == TransactionKind.CREDIT:
            credits_ytd += t.amount

    projected_spend = spent_ytd * MONTHS_PER_YEAR / elapsed

    if credits_ytd > 0:
        projected_income = (credits_ytd + salary * elapsed) * MONTHS_PER_YEAR / elapsed
    else:
        projected_income = salary * MONTHS_PER_YEAR

    projected_balance = projected_income - projected_spend

    if projected_income > 0:
        percent_committed = min(projected_spend / projected_income * 100, Decimal("100"))
    else:
        percent_committed = ZERO

    return AnnualMetrics(
        year=year,
        months_elapsed=elapsed,
        spent_ytd=spent_ytd,
        credits_ytd=credits_ytd,
        projected_spend=projected_spend,
        projected_income=projected_income,
        projected_balance=projected_balance,
        percent_committed=percent_committed,
    )


def account_balance(
    transactions: Iterable[Transaction],
    initial_balance: Number = ZERO,
) -> Decimal:
    """Opening balance plus the signed sum of every transaction."""
    return _to_decimal(initial_balance) + sum((t.amount for t in transactions), ZERO)


def transactions_for_month(
    transactions: Iterable[Transaction],
    month_index: int,
    year: int,
) -> list[Transaction]:
    """Transactions dated in one month (0-11), oldest first."""
    selected = [
        t for t in transactions
        if _dated_in(t, year) and t.date.month == month_index + 1
    ]
    return sorted(selected, key=lambda t: t.date)
