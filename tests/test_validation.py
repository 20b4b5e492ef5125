"""
Tests for input validation and stored-record repair.
"""

import pytest
from datetime import date, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import ValidationError

from finance_tracker.config import AppSettings
from finance_tracker.models.ledger import (
    Category,
    RecurringRuleDraft,
    TransactionDraft,
    TransactionKind,
)
from finance_tracker.validation import (
    InvalidRecordError,
    RecordValidator,
    coerce_id,
    sanitize_config,
    sanitize_many,
    sanitize_rule,
    sanitize_transaction,
)
from finance_tracker.validation.sanitizer import _coerce_date


TODAY = date(2024, 6, 15)


@pytest.fixture
def validator():
    return RecordValidator(AppSettings(max_transaction_amount=Decimal("100000")))


class TestCoerceId:
    """Tests for id normalization."""

    def test_uuid_string(self):
        value = "6f1c1b7e-8d3a-4c8e-9a55-1f0c2b3d4e5f"
        assert coerce_id(value) == UUID(value)

    def test_legacy_id_is_stable(self):
        """The same legacy id always maps to the same UUID."""
        assert coerce_id(1700000000000) == coerce_id("1700000000000")
        assert coerce_id("1700000000000") != coerce_id("1700000000001")


class TestCoerceDate:
    """Tests for reducing stored datetimes to calendar dates."""

    def test_utc_instant_takes_local_day(self):
        """Late evening UTC is already the next day east of Greenwich."""
        east = timezone(timedelta(hours=13))
        assert _coerce_date("2024-03-03T23:00:00.000Z", tz=east) == date(2024, 3, 4)

    def test_noon_keeps_day_west_of_utc(self):
        west = timezone(timedelta(hours=-3))
        assert _coerce_date("2024-03-04T12:00:00.000Z", tz=west) == date(2024, 3, 4)
        assert _coerce_date("2024-03-04T12:00:00.000Z", tz=timezone.utc) == date(2024, 3, 4)

    def test_naive_values_kept(self):
        assert _coerce_date("2024-03-04 08:30:00") == date(2024, 3, 4)
        assert _coerce_date("2024-03-04") == "2024-03-04"

    def test_unparseable_time_truncated(self):
        assert _coerce_date("2024-03-04Tnoon") == "2024-03-04"


class TestSanitizeTransaction:
    """Tests for repairing stored transactions."""

    def test_legacy_record(self):
        """Test a record with legacy keys, timestamp id and ISO datetime."""
        tx = sanitize_transaction({
            "id": 1700000000000,
            "description": "Mercado",
            "amount": -150,
            "type": "debit",
            "category": "Alimentação",
            "date": "2024-03-04T12:00:00.000Z",
        })

        assert tx.id == coerce_id(1700000000000)
        assert tx.kind == TransactionKind.DEBIT
        assert tx.amount == Decimal("-150")
        assert tx.category == Category.FOOD
        assert tx.date == date(2024, 3, 4)
        assert tx.is_recurring is False

    @pytest.mark.parametrize("label, expected", [
        ("Moradia", Category.HOUSING),
        ("Salário", Category.SALARY),
        ("Contas Fixas", Category.FIXED_BILLS),
        ("Saúde", Category.HEALTH),
        ("Educação", Category.EDUCATION),
        ("Outros", Category.OTHER),
    ])
    def test_portuguese_category_labels(self, label, expected):
        """Test the category labels of the older app map onto the enum."""
        tx = sanitize_transaction(
            {"description": "Old", "amount": -1, "type": "debit",
             "category": label, "date": "2024-01-01"}
        )
        assert tx.category == expected

    def test_decomposed_accents(self):
        """Test labels stored in decomposed unicode form still map."""
        tx = sanitize_transaction(
            {"description": "Old", "amount": 2000, "type": "credit",
             "category": "Sala\u0301rio", "date": "2024-01-01"}
        )
        assert tx.category == Category.SALARY

    def test_unknown_category_label(self):
        tx = sanitize_transaction(
            {"description": "Old", "amount": -1, "type": "debit",
             "category": "comida", "date": "2024-01-01"}
        )
        assert tx.category == Category.OTHER

    def test_zero_debit_becomes_zero_credit(self):
        """Test a stored zero debit loads instead of failing the sign check."""
        tx = sanitize_transaction(
            {"description": "Free sample", "amount": 0, "type": "debit", "date": "2024-01-01"}
        )
        assert tx.kind == TransactionKind.CREDIT
        assert tx.amount == 0

    def test_negative_zero_debit(self):
        tx = sanitize_transaction(
            {"description": "Free sample", "amount": "-0", "kind": "debit", "date": "2024-01-01"}
        )
        assert tx.kind == TransactionKind.CREDIT
        assert not tx.amount.is_signed()

    def test_missing_date_defaults_to_today(self):
        tx = sanitize_transaction(
            {"description": "Lunch", "amount": "-12.50", "kind": "debit"},
            today=TODAY,
        )
        assert tx.date == TODAY

    def test_missing_category_defaults_to_other(self):
        tx = sanitize_transaction(
            {"description": "Lunch", "amount": "-12.50", "kind": "debit", "date": "2024-01-01"}
        )
        assert tx.category == Category.OTHER

    def test_known_category_kept(self):
        tx = sanitize_transaction({
            "description": "Bus",
            "amount": "-4",
            "kind": "DEBIT",
            "category": " Transport ",
            "date": "2024-01-01",
        })
        assert tx.category == Category.TRANSPORT
        assert tx.kind == TransactionKind.DEBIT

    def test_amount_resigned_from_kind(self):
        """A positive debit is stored negative; a negative credit positive."""
        as_debit = sanitize_transaction(
            {"description": "Rent", "amount": 900, "kind": "debit", "date": "2024-01-01"}
        )
        as_credit = sanitize_transaction(
            {"description": "Refund", "amount": -40, "kind": "credit", "date": "2024-01-01"}
        )
        assert as_debit.amount == Decimal("-900")
        assert as_credit.amount == Decimal("40")

    def test_missing_kind_inferred_from_sign(self):
        tx = sanitize_transaction(
            {"description": "Snack", "amount": -3, "date": "2024-01-01"}
        )
        assert tx.kind == TransactionKind.DEBIT

    def test_recurring_reference_sets_flag(self):
        tx = sanitize_transaction({
            "description": "Salary",
            "amount": 2000,
            "type": "credit",
            "date": "2024-01-05",
            "recurringId": 1699999999999,
        })
        assert tx.is_recurring is True
        assert tx.recurring_rule_id == coerce_id(1699999999999)

    def test_sheet_strings(self):
        """Test the all-strings shape of a spreadsheet row."""
        tx = sanitize_transaction({
            "id": "",
            "description": "Coffee",
            "amount": "-3.20",
            "kind": "debit",
            "date": "2024-02-01",
            "category": "food",
            "is_recurring": "False",
            "recurring_rule_id": "",
        })
        assert tx.is_recurring is False
        assert tx.recurring_rule_id is None
        assert tx.amount == Decimal("-3.20")

    def test_unrepairable_amount_fails(self):
        with pytest.raises(ValidationError):
            sanitize_transaction(
                {"description": "Broken", "amount": "abc", "kind": "debit", "date": "2024-01-01"}
            )


class TestSanitizeRule:
    """Tests for repairing stored recurring rules."""

    def test_legacy_rule(self):
        rule = sanitize_rule({
            "id": 1699999999999,
            "description": "Aluguel",
            "amount": 900,
            "day": 10,
            "category": "Contas Fixas",
            "lastGenerated": "2024-05-10T12:00:00.000Z",
        })

        assert rule.id == coerce_id(1699999999999)
        assert rule.kind == TransactionKind.DEBIT
        assert rule.day_of_month == 10
        assert rule.category == Category.FIXED_BILLS
        assert rule.last_generated == date(2024, 5, 10)

    def test_blank_watermark(self):
        rule = sanitize_rule({
            "description": "Gym",
            "amount": "80",
            "kind": "debit",
            "category": "health",
            "day_of_month": "3",
            "last_generated": "",
        })
        assert rule.last_generated is None
        assert rule.category == Category.HEALTH
        assert rule.day_of_month == 3

    def test_negative_amount_becomes_magnitude(self):
        rule = sanitize_rule(
            {"description": "Gym", "amount": -80, "kind": "debit", "day_of_month": 3}
        )
        assert rule.amount == Decimal("80")

    def test_zero_amount_rule_dropped(self):
        assert sanitize_rule(
            {"description": "Placeholder", "amount": 0, "type": "debit", "day": 5}
        ) is None

    def test_sanitize_many_skips_dropped_rules(self):
        rules = sanitize_many(
            [
                {"description": "Placeholder", "amount": "0", "day_of_month": 1},
                {"description": "Rent", "amount": 900, "day_of_month": 1},
            ],
            sanitize_rule,
        )
        assert [r.description for r in rules] == ["Rent"]

    def test_sanitize_many(self):
        rules = sanitize_many(
            [
                {"description": "A", "amount": 1, "day_of_month": 1},
                {"description": "B", "amount": 2, "day_of_month": 2},
            ],
            sanitize_rule,
        )
        assert [r.description for r in rules] == ["A", "B"]


class TestSanitizeConfig:
    """Tests for the stored configuration."""

    def test_empty_is_none(self):
        assert sanitize_config(None) is None
        assert sanitize_config({}) is None

    def test_legacy_keys(self):
        config = sanitize_config({"salario": "2500", "meta": 10000, "saldoInicial": "-50"})
        assert config.base_salary == Decimal("2500")
        assert config.savings_goal == Decimal("10000")
        assert config.initial_balance == Decimal("-50")

    def test_unknown_keys_ignored(self):
        config = sanitize_config({"base_salary": "100", "theme": "dark"})
        assert config.base_salary == Decimal("100")


class TestRecordValidator:
    """Tests for two-stage validation of user input."""

    def test_parse_valid_transaction(self, validator):
        draft = validator.parse_transaction(
            {"description": "Lunch", "amount": "12.50", "kind": "debit", "date": "2024-06-01"}
        )
        assert isinstance(draft, TransactionDraft)
        assert draft.amount == Decimal("12.50")

    def test_parse_passes_drafts_through(self, validator):
        draft = TransactionDraft(description="Lunch", amount=Decimal("1"))
        assert validator.parse_transaction(draft) is draft

    def test_schema_failure(self, validator):
        with pytest.raises(InvalidRecordError) as excinfo:
            validator.parse_transaction({"description": "", "amount": "abc"})

        result = excinfo.value.result
        assert result.schema_valid is False
        assert result.is_valid is False
        fields = {issue.field for issue in result.issues}
        assert {"description", "amount"} <= fields

    def test_rule_schema_failure(self, validator):
        with pytest.raises(InvalidRecordError) as excinfo:
            validator.parse_rule({"description": "Gym", "amount": "80", "day_of_month": 40})
        assert excinfo.value.result.record_type == "rule"

    def test_zero_amount_rejected(self, validator):
        draft = TransactionDraft(description="Nothing", amount=Decimal("0"), date=TODAY)
        result = validator.validate_transaction(draft, today=TODAY)

        assert result.schema_valid is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_absurd_amount_rejected(self, validator):
        draft = TransactionDraft(description="Yacht", amount=Decimal("250000"), date=TODAY)
        result = validator.validate_transaction(draft, today=TODAY)
        assert result.is_valid is False
        assert result.issues[0].issue_type == "suspicious_value"

    def test_far_future_date_is_warning(self, validator):
        draft = TransactionDraft(
            description="Trip",
            amount=Decimal("500"),
            date=TODAY + timedelta(days=400),
        )
        result = validator.validate_transaction(draft, today=TODAY)

        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_rule_day_above_28_is_info(self, validator):
        draft = RecurringRuleDraft(description="Rent", amount=Decimal("900"), day_of_month=31)
        result = validator.validate_rule(draft)

        assert result.is_valid is True
        assert result.issues[0].severity == "info"
        assert result.warnings == []

    def test_summary(self, validator):
        ok = validator.validate_rule(
            RecurringRuleDraft(description="Rent", amount=Decimal("900"))
        )
        assert validator.get_user_friendly_summary(ok) == "All checks passed."

        bad = validator.validate_transaction(
            TransactionDraft(description="Nothing", amount=Decimal("0"), date=TODAY),
            today=TODAY,
        )
        summary = validator.get_user_friendly_summary(bad)
        assert "Please fix the following:" in summary
        assert "Amount must be greater than zero" in summary

    def test_error_message(self, validator):
        draft = TransactionDraft(description="Nothing", amount=Decimal("0"), date=TODAY)
        error = InvalidRecordError(validator.validate_transaction(draft, today=TODAY))
        assert str(error) == "Invalid transaction: Amount must be greater than zero"
