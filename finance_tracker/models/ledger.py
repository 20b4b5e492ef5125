"""
Core Ledger Models for Personal Finance Tracker

These models define the schemas for everything the ledger holds and
everything the engine returns.

DESIGN DECISION: Ledger records are frozen. A correction is a new value
built with model_copy(), never an in-place mutation. The engine receives
copies and returns new collections, so the orchestration layer alone
decides if and when anything is persisted.

SIGN CONVENTION: Transaction.amount is negative for debits and
non-negative for credits. Aggregation relies on the sign rather than
re-deriving it from the kind. Recurring rules store a non-negative
magnitude; the sign is applied when a rule is materialized.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of money flow."""
    CREDIT = "credit"
    DEBIT = "debit"


class Category(str, Enum):
    """
    Supported ledger categories.

    OTHER is the fallback for legacy records and unknown values.
    """
    FOOD = "food"
    HOUSING = "housing"
    TRANSPORT = "transport"
    LEISURE = "leisure"
    HEALTH = "health"
    EDUCATION = "education"
    SALARY = "salary"
    FIXED_BILLS = "fixed_bills"
    OTHER = "other"


class HealthStatus(str, Enum):
    """Financial health classification applied by the caller of the engine."""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


def signed_amount(magnitude: Decimal, kind: TransactionKind) -> Decimal:
    """Apply the ledger sign convention to a magnitude."""
    value = abs(magnitude)
    return value if kind == TransactionKind.CREDIT else -value


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single dated ledger entry.

    Recurring entries are only ever created by the projector; they carry
    the id of the rule that generated them so a rule deletion can purge
    its history.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    description: str = Field(
        ...,
        max_length=200,
        description="Free text description"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount in the base currency unit"
    )
    kind: TransactionKind
    date: dt.date = Field(
        default_factory=dt.date.today,
        description="Date the entry is effective"
    )
    category: Category = Category.OTHER
    is_recurring: bool = False
    recurring_rule_id: Optional[UUID] = Field(
        default=None,
        description="Rule that generated this entry, if any"
    )

    @model_validator(mode='after')
    def validate_invariants(self) -> 'Transaction':
        """Enforce the sign convention and the recurring back-reference."""
        if self.kind == TransactionKind.DEBIT and self.amount >= 0:
            raise ValueError("Debit amount must be negative")
        if self.kind == TransactionKind.CREDIT and self.amount < 0:
            raise ValueError("Credit amount cannot be negative")
        if self.is_recurring != (self.recurring_rule_id is not None):
            raise ValueError(
                "recurring_rule_id must be set exactly when is_recurring is true"
            )
        return self


class RecurringRule(BaseModel):
    """
    A monthly template plus its generation watermark.

    last_generated is the date of the most recently materialized
    occurrence. None means the rule has never generated anything.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique rule ID"
    )
    description: str = Field(..., max_length=200)
    category: Category = Category.FIXED_BILLS
    kind: TransactionKind = TransactionKind.DEBIT
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Magnitude; the sign is applied at materialization"
    )
    day_of_month: int = Field(
        ...,
        ge=1,
        le=31,
        description="Nominal day each occurrence lands on"
    )
    last_generated: Optional[dt.date] = Field(
        default=None,
        description="Watermark: date of the last materialized occurrence"
    )


class FinanceConfig(BaseModel):
    """Singleton user configuration."""

    base_salary: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Configured monthly salary"
    )
    savings_goal: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Annual savings goal"
    )
    initial_balance: Decimal = Field(
        default=Decimal("0"),
        description="Account balance when tracking started"
    )


# =============================================================================
# INPUT DRAFTS - what a user submits before it becomes a ledger record
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A one-off entry as typed by the user.

    The amount is a magnitude; the sign follows from the kind.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    kind: TransactionKind = TransactionKind.DEBIT
    date: dt.date = Field(default_factory=dt.date.today)
    category: Category = Category.OTHER


class RecurringRuleDraft(BaseModel):
    """A new recurring rule as typed by the user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    kind: TransactionKind = TransactionKind.DEBIT
    day_of_month: int = Field(default=5, ge=1, le=31)
    category: Category = Category.FIXED_BILLS


# =============================================================================
# ENGINE RESULTS
# =============================================================================

class ProjectionResult(BaseModel):
    """Output of one projector run."""

    transactions: list[Transaction]
    rules: list[RecurringRule]
    generated_count: int = Field(ge=0)


class MonthlySeries(BaseModel):
    """Monthly income/expense buckets for one year. Index 0 is January."""

    year: int
    income: list[Decimal] = Field(min_length=12, max_length=12)
    expense: list[Decimal] = Field(min_length=12, max_length=12)


class AnnualMetrics(BaseModel):
    """
    Annual financial-health projection.

    projected_spend and projected_income are run-rate extrapolations,
    not literal annual sums.
    """

    year: int
    months_elapsed: int = Field(ge=1, le=12)
    spent_ytd: Decimal
    credits_ytd: Decimal
    projected_spend: Decimal
    projected_income: Decimal
    projected_balance: Decimal
    percent_committed: Decimal = Field(ge=0, le=100)


class DashboardView(BaseModel):
    """Everything the presentation layer needs for one (month, year)."""

    horizon_month: int = Field(ge=0, le=11)
    horizon_year: int
    series: MonthlySeries
    metrics: AnnualMetrics
    health: HealthStatus
    balance: Decimal
    month_transactions: list[Transaction] = Field(default_factory=list)
    generated_count: int = Field(default=0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of validating a user-entered record.

    Stage 1: Schema validation (types, required fields, ranges)
    Stage 2: Semantic validation (zero or absurd amounts, far-future dates)
    """

    validated_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )
    record_type: str = Field(
        ...,
        description="'transaction' or 'rule'"
    )
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
