"""Projection and aggregation engine."""

from finance_tracker.engine.aggregation import (
    account_balance,
    annual_metrics,
    monthly_series,
    months_elapsed,
    transactions_for_month,
)
from finance_tracker.engine.projection import (
    advance,
    materialize,
    occurrence_date,
    project,
    purge_rule,
)

__all__ = [
    "account_balance",
    "advance",
    "annual_metrics",
    "materialize",
    "monthly_series",
    "months_elapsed",
    "occurrence_date",
    "project",
    "purge_rule",
    "transactions_for_month",
]
