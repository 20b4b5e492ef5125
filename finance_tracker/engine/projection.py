"""
Recurrence Projector

Turns recurring rules into concrete dated transactions.

Each rule carries a watermark (last_generated). A run resumes strictly
after the watermark and stops at the end of December of the later of
"this year" and "the year being viewed". Re-running with the same
horizon is therefore a no-op, and a later horizon picks up exactly where
the previous run stopped.

A rule that has never generated anything starts at the horizon month,
not at its creation date: first use only backfills from the period the
user is looking at.

Everything here is pure. Inputs are never mutated; new collections are
returned and the caller decides whether to persist them.
"""

import calendar
from datetime import date
from typing import Iterable, Optional, Sequence
from uuid import UUID

import structlog

from finance_tracker.models.ledger import (
    ProjectionResult,
    RecurringRule,
    Transaction,
    signed_amount,
)


logger = structlog.get_logger(__name__)

DECEMBER = 11


def occurrence_date(year: int, month_index: int, day_of_month: int) -> date:
    """
    Date a rule lands on in a given month (month_index 0-11).

    Days past the end of a short month are clamped to its last day,
    so day 31 falls on Feb 28/29, Apr 30, and so on.
    """
    month = month_index + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last))


def _next_month(year: int, month_index: int) -> tuple[int, int]:
    if month_index >= DECEMBER:
        return year + 1, 0
    return year, month_index + 1


def _resume_point(
    rule: RecurringRule,
    horizon_month: int,
    horizon_year: int,
) -> tuple[int, int]:
    if rule.last_generated is None:
        return horizon_year, horizon_month
    return _next_month(rule.last_generated.year, rule.last_generated.month - 1)


def materialize(rule: RecurringRule, year: int, month_index: int) -> Transaction:
    """Build the transaction a rule produces for one month."""
    return Transaction(
        description=rule.description,
        amount=signed_amount(rule.amount, rule.kind),
        kind=rule.kind,
        date=occurrence_date(year, month_index, rule.day_of_month),
        category=rule.category,
        is_recurring=True,
        recurring_rule_id=rule.id,
    )


def advance(
    rule: RecurringRule,
    new_transactions: Iterable[Transaction],
) -> RecurringRule:
    """
    Move a rule's watermark to its newest generated transaction.

    Transactions belonging to other rules are ignored. The watermark
    never moves backwards; if nothing newer exists the same rule is
    returned.
    """
    own = [t.date for t in new_transactions if t.recurring_rule_id == rule.id]
    if not own:
        return rule

    latest = max(own)
    if rule.last_generated is not None and latest <= rule.last_generated:
        return rule
    return rule.model_copy(update={"last_generated": latest})


def project(
    transactions: Sequence[Transaction],
    rules: Sequence[RecurringRule],
    horizon_month: int,
    horizon_year: int,
    today: Optional[date] = None,
) -> ProjectionResult:
    """
    Materialize every rule up to the cutoff.

    Args:
        transactions: Current ledger
        rules: Current recurring rules
        horizon_month: Month being viewed (0-11)
        horizon_year: Year being viewed
        today: Reference date (defaults to the real date)

    Returns:
        The original transactions followed by the generated ones, the
        rules with advanced watermarks (same order), and the count.
    """
    if not 0 <= horizon_month <= DECEMBER:
        raise ValueError(f"horizon_month must be 0-11, got {horizon_month}")

    today = today or date.today()
    cutoff = (max(today.year, horizon_year), DECEMBER)

    generated: list[Transaction] = []
    updated_rules: list[RecurringRule] = []

    for rule in rules:
        pointer = _resume_point(rule, horizon_month, horizon_year)
        produced: list[Transaction] = []

        while pointer <= cutoff:
            produced.append(materialize(rule, *pointer))
            pointer = _next_month(*pointer)

        if produced:
            logger.debug(
                "rule_materialized",
                rule_id=str(rule.id),
                count=len(produced),
                first=produced[0].date.isoformat(),
                last=produced[-1].date.isoformat(),
            )

        generated.extend(produced)
        updated_rules.append(advance(rule, produced))

    return ProjectionResult(
        transactions=[*transactions, *generated],
        rules=updated_rules,
        generated_count=len(generated),
    )


def purge_rule(
    transactions: Iterable[Transaction],
    rule_id: UUID,
) -> list[Transaction]:
    """Drop every transaction generated by the given rule."""
    return [t for t in transactions if t.recurring_rule_id != rule_id]
