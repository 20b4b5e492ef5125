"""
Stored Record Sanitizer

Records read back from storage may predate newer fields: no date, no
category, no kind on a recurring rule, camelCase keys, numeric ids.
These are repaired here before anything else sees them.

Repairs are logged, never raised. A recurring rule with a zero amount
cannot generate anything and is dropped (also logged). A record that
cannot be repaired (e.g. an amount that is not a number) still fails
pydantic validation.

Stored datetimes are read in their own offset and converted to the local
timezone before the date is taken, so an entry saved at local noon keeps
its calendar day on either side of UTC.
"""

import unicodedata
from datetime import date, datetime, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional, TypeVar
from uuid import NAMESPACE_OID, UUID, uuid5

import structlog

from finance_tracker.models.ledger import (
    Category,
    FinanceConfig,
    RecurringRule,
    Transaction,
    TransactionKind,
    signed_amount,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

_LEGACY_KEYS = {
    "type": "kind",
    "isRecurring": "is_recurring",
    "recurringId": "recurring_rule_id",
    "recurringRuleId": "recurring_rule_id",
    "lastGenerated": "last_generated",
    "dayOfMonth": "day_of_month",
    "day": "day_of_month",
    "baseSalary": "base_salary",
    "salario": "base_salary",
    "savingsGoal": "savings_goal",
    "meta": "savings_goal",
    "initialBalance": "initial_balance",
    "saldoInicial": "initial_balance",
}

_LEGACY_CATEGORIES = {
    "alimentação": Category.FOOD,
    "moradia": Category.HOUSING,
    "transporte": Category.TRANSPORT,
    "lazer": Category.LEISURE,
    "saúde": Category.HEALTH,
    "educação": Category.EDUCATION,
    "salário": Category.SALARY,
    "outros": Category.OTHER,
    "contas fixas": Category.FIXED_BILLS,
}

_CATEGORY_VALUES = {c.value for c in Category}
_KIND_VALUES = {k.value for k in TransactionKind}


def _normalize_keys(raw: dict[str, Any]) -> dict[str, Any]:
    record = {}
    for key, value in raw.items():
        name = _LEGACY_KEYS.get(key, key)
        # A modern key wins over its legacy spelling
        if name in record and key != name:
            continue
        record[name] = value
    return record


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def coerce_id(value: Any) -> UUID:
    """
    Turn a stored id into a UUID.

    Non-UUID ids (e.g. millisecond timestamps) map to a stable uuid5,
    so the same legacy id always yields the same UUID and references
    between records survive a reload.
    """
    if isinstance(value, UUID):
        return value
    text = str(value).strip()
    try:
        return UUID(text)
    except ValueError:
        return uuid5(NAMESPACE_OID, text)


def _coerce_date(value: Any, tz: Optional[tzinfo] = None) -> Any:
    """
    Reduce a stored date or datetime to a calendar date.

    Offset-aware datetimes are converted to `tz` (the local timezone when
    None) first. ISO strings with a trailing "Z" are treated as UTC.
    """
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return value[:10]
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def _coerce_amount(value: Any) -> Any:
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            return value
    return value


def _repair_category(record: dict[str, Any], repairs: list[str]) -> None:
    category = record.get("category")
    if isinstance(category, Category):
        return
    if isinstance(category, str) and category.strip().lower() in _CATEGORY_VALUES:
        record["category"] = category.strip().lower()
        return
    if isinstance(category, str):
        label = unicodedata.normalize("NFC", category.strip().lower())
        if label in _LEGACY_CATEGORIES:
            record["category"] = _LEGACY_CATEGORIES[label].value
            return
    record["category"] = Category.OTHER.value
    repairs.append("category")


def _log_repairs(record_type: str, record_id: Any, repairs: list[str]) -> None:
    if repairs:
        logger.info(
            "record_repaired",
            record_type=record_type,
            record_id=str(record_id) if record_id is not None else None,
            fields=repairs,
        )


def sanitize_transaction(raw: dict[str, Any], today: Optional[date] = None) -> Transaction:
    """
    Repair a stored transaction record and build the model.

    - missing date -> today
    - missing or unknown category -> other
    - missing kind -> inferred from the amount's sign
    - zero-amount debit -> zero credit
    - amount sign disagreeing with kind -> re-signed from kind
    - back-reference and recurring flag made consistent
    """
    record = _normalize_keys(raw)
    repairs: list[str] = []

    if "id" in record and not _blank(record["id"]):
        record["id"] = coerce_id(record["id"])
    else:
        record.pop("id", None)

    if _blank(record.get("date")):
        record["date"] = (today or date.today()).isoformat()
        repairs.append("date")
    else:
        record["date"] = _coerce_date(record["date"])

    _repair_category(record, repairs)

    amount = _coerce_amount(record.get("amount"))
    record["amount"] = amount

    kind = record.get("kind")
    if isinstance(kind, str):
        kind = kind.strip().lower()
    if kind not in _KIND_VALUES:
        if isinstance(amount, Decimal):
            kind = TransactionKind.DEBIT.value if amount < 0 else TransactionKind.CREDIT.value
            repairs.append("kind")
    if kind == TransactionKind.DEBIT.value and isinstance(amount, Decimal) and amount == 0:
        # Zero has no debit form under the sign convention
        kind = TransactionKind.CREDIT.value
        amount = Decimal("0")
        record["amount"] = amount
        repairs.append("kind")
    record["kind"] = kind

    if isinstance(amount, Decimal) and kind in _KIND_VALUES:
        expected = signed_amount(amount, TransactionKind(kind))
        if expected != amount:
            record["amount"] = expected
            repairs.append("amount_sign")

    rule_id = record.get("recurring_rule_id")
    if _blank(rule_id):
        record["recurring_rule_id"] = None
        if _truthy(record.get("is_recurring")):
            repairs.append("is_recurring")
        record["is_recurring"] = False
    else:
        record["recurring_rule_id"] = coerce_id(rule_id)
        if not _truthy(record.get("is_recurring")):
            repairs.append("is_recurring")
        record["is_recurring"] = True

    _log_repairs("transaction", record.get("id"), repairs)
    return Transaction.model_validate(record)


def sanitize_rule(raw: dict[str, Any]) -> Optional[RecurringRule]:
    """
    Repair a stored recurring rule record and build the model.

    - missing kind -> debit
    - missing or unknown category -> other
    - negative amount -> its magnitude
    - blank watermark -> never generated

    Returns None for a zero-amount rule, which is dropped.
    """
    record = _normalize_keys(raw)
    repairs: list[str] = []

    if "id" in record and not _blank(record["id"]):
        record["id"] = coerce_id(record["id"])
    else:
        record.pop("id", None)

    kind = record.get("kind")
    if _blank(kind):
        record["kind"] = TransactionKind.DEBIT.value
        repairs.append("kind")
    elif isinstance(kind, str):
        record["kind"] = kind.strip().lower()

    _repair_category(record, repairs)

    amount = _coerce_amount(record.get("amount"))
    if isinstance(amount, Decimal) and amount < 0:
        amount = abs(amount)
        repairs.append("amount_sign")
    if isinstance(amount, Decimal) and amount == 0:
        logger.info(
            "record_dropped",
            record_type="rule",
            record_id=str(record["id"]) if "id" in record else None,
            reason="zero_amount",
        )
        return None
    record["amount"] = amount

    if isinstance(record.get("day_of_month"), str):
        record["day_of_month"] = record["day_of_month"].strip()

    if _blank(record.get("last_generated")):
        record["last_generated"] = None
    else:
        record["last_generated"] = _coerce_date(record["last_generated"])

    _log_repairs("rule", record.get("id"), repairs)
    return RecurringRule.model_validate(record)


def sanitize_config(raw: Optional[dict[str, Any]]) -> Optional[FinanceConfig]:
    """Build the finance configuration, or None if nothing was stored."""
    if not raw:
        return None
    record = {
        key: _coerce_amount(value)
        for key, value in _normalize_keys(raw).items()
        if key in FinanceConfig.model_fields and not _blank(value)
    }
    return FinanceConfig.model_validate(record)


def sanitize_many(
    records: Iterable[dict[str, Any]],
    sanitizer: Callable[[dict[str, Any]], Optional[T]],
) -> list[T]:
    """Apply a sanitizer to every record of a collection, skipping dropped ones."""
    sanitized = (sanitizer(record) for record in records)
    return [item for item in sanitized if item is not None]
