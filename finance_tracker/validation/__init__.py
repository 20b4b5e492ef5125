"""Input validation and stored-record repair."""

from finance_tracker.validation.sanitizer import (
    coerce_id,
    sanitize_config,
    sanitize_many,
    sanitize_rule,
    sanitize_transaction,
)
from finance_tracker.validation.validator import InvalidRecordError, RecordValidator

__all__ = [
    "InvalidRecordError",
    "RecordValidator",
    "coerce_id",
    "sanitize_config",
    "sanitize_many",
    "sanitize_rule",
    "sanitize_transaction",
]
