"""
Two-Stage Validation for User Input

DESIGN DECISION: Records typed by a user are validated at the boundary,
before they reach the ledger. The engine assumes validated, well-typed
records and never re-checks them.

STAGE 1 - SCHEMA VALIDATION:
- Pydantic parsing of the draft
- Unparseable amounts, empty descriptions, out-of-range days,
  unknown kinds or categories

STAGE 2 - SEMANTIC VALIDATION:
- Zero amounts
- Absurdly large amounts
- Entries dated far in the future

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can reject the record.
"""

from datetime import date, timedelta
from typing import Any, Optional, Union

from pydantic import ValidationError

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.ledger import (
    RecurringRuleDraft,
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
)


class InvalidRecordError(Exception):
    """A user-entered record failed validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.record_type}: {messages}")


def _schema_issues(error: ValidationError) -> list[ValidationIssue]:
    issues = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ())) or "record"
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail.get("type", "invalid_value"),
            message=f"{field}: {detail.get('msg', 'invalid value')}",
            severity="error",
        ))
    return issues


class RecordValidator:
    """
    Validates drafts of transactions and recurring rules.

    Stage 1 runs when a raw mapping is parsed into a draft.
    Stage 2 runs on an already-parsed draft.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # ------------------------------------------------------------------
    # Stage 1
    # ------------------------------------------------------------------

    def parse_transaction(
        self,
        data: Union[TransactionDraft, dict[str, Any]],
    ) -> TransactionDraft:
        """
        Parse raw form data into a TransactionDraft.

        Raises:
            InvalidRecordError: If the data does not fit the schema
        """
        if isinstance(data, TransactionDraft):
            return data
        try:
            return TransactionDraft.model_validate(data)
        except ValidationError as e:
            raise InvalidRecordError(self._schema_failure("transaction", e))

    def parse_rule(
        self,
        data: Union[RecurringRuleDraft, dict[str, Any]],
    ) -> RecurringRuleDraft:
        """
        Parse raw form data into a RecurringRuleDraft.

        Raises:
            InvalidRecordError: If the data does not fit the schema
        """
        if isinstance(data, RecurringRuleDraft):
            return data
        try:
            return RecurringRuleDraft.model_validate(data)
        except ValidationError as e:
            raise InvalidRecordError(self._schema_failure("rule", e))

    def _schema_failure(
        self,
        record_type: str,
        error: ValidationError,
    ) -> ValidationResult:
        return ValidationResult(
            record_type=record_type,
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=_schema_issues(error),
        )

    # ------------------------------------------------------------------
    # Stage 2
    # ------------------------------------------------------------------

    def _amount_issues(self, amount) -> list[ValidationIssue]:
        issues = []

        if amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount without a sign",
            ))

        if amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) exceeds the allowed maximum",
                severity="error",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def validate_transaction(
        self,
        draft: TransactionDraft,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Run semantic checks on a parsed transaction draft."""
        today = today or date.today()
        issues = self._amount_issues(draft.amount)

        horizon = today + timedelta(days=self._settings.future_date_tolerance_days)
        if draft.date > horizon:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({draft.date}) is far in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return self._result("transaction", issues)

    def validate_rule(self, draft: RecurringRuleDraft) -> ValidationResult:
        """Run semantic checks on a parsed recurring rule draft."""
        issues = self._amount_issues(draft.amount)

        if draft.day_of_month > 28:
            issues.append(ValidationIssue(
                field="day_of_month",
                issue_type="clamped_day",
                message=(
                    f"Day {draft.day_of_month} does not exist in every month; "
                    "shorter months use their last day"
                ),
                severity="info",
            ))

        return self._result("rule", issues)

    def _result(
        self,
        record_type: str,
        issues: list[ValidationIssue],
    ) -> ValidationResult:
        semantic_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            record_type=record_type,
            schema_valid=True,
            semantic_valid=semantic_valid,
            is_valid=semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short summary of validation results for display."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if not result.is_valid:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
