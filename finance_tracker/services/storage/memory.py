"""
In-Memory Storage Implementation

Holds each collection as a list of JSON-compatible dicts, the same shape
a browser key-value store or a JSON file would hold. Loading goes through
the sanitizer exactly like any other backend, so tests can seed legacy
records and see them repaired.
"""

import copy
from typing import Any, Optional

from pydantic import ValidationError

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    FinanceConfig,
    RecurringRule,
    Transaction,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageError,
)
from finance_tracker.validation.sanitizer import (
    sanitize_config,
    sanitize_many,
    sanitize_rule,
    sanitize_transaction,
)


TRANSACTIONS_KEY = "transactions"
RULES_KEY = "recurring_rules"
CONFIG_KEY = "finance_config"


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dict-backed ledger store."""

    def __init__(
        self,
        transactions: Optional[list[dict[str, Any]]] = None,
        rules: Optional[list[dict[str, Any]]] = None,
        config: Optional[dict[str, Any]] = None,
    ):
        self._data: dict[str, Any] = {
            TRANSACTIONS_KEY: copy.deepcopy(transactions or []),
            RULES_KEY: copy.deepcopy(rules or []),
            CONFIG_KEY: copy.deepcopy(config),
        }
        self.save_count = 0

    def raw(self, key: str) -> Any:
        """Stored value for a key, as persisted."""
        return copy.deepcopy(self._data.get(key))

    async def load_transactions(self) -> list[Transaction]:
        try:
            return sanitize_many(self._data[TRANSACTIONS_KEY], sanitize_transaction)
        except ValidationError as e:
            raise StorageError(f"Malformed transaction record: {e}")

    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        self._data[TRANSACTIONS_KEY] = [t.model_dump(mode="json") for t in transactions]
        self.save_count += 1
        return True

    async def load_rules(self) -> list[RecurringRule]:
        try:
            return sanitize_many(self._data[RULES_KEY], sanitize_rule)
        except ValidationError as e:
            raise StorageError(f"Malformed recurring rule record: {e}")

    async def save_rules(self, rules: list[RecurringRule]) -> bool:
        self._data[RULES_KEY] = [r.model_dump(mode="json") for r in rules]
        self.save_count += 1
        return True

    async def load_config(self) -> Optional[FinanceConfig]:
        try:
            return sanitize_config(self._data[CONFIG_KEY])
        except ValidationError as e:
            raise StorageError(f"Malformed finance config: {e}")

    async def save_config(self, config: FinanceConfig) -> bool:
        self._data[CONFIG_KEY] = config.model_dump(mode="json")
        self.save_count += 1
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed append-only audit log."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
