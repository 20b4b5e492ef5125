"""
Abstract Storage Interface

DESIGN DECISION: The ledger is a key-value store holding two named
collections (transactions, recurring rules) and one configuration
record. Every operation reads or writes a whole collection.
This allows us to:
1. Swap Google Sheets for another backend later
2. Use in-memory storage for testing
3. Keep the engine free of any storage access

There is intentionally no query or partial-update operation. Filtering,
projection and aggregation happen on the loaded values.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.ledger import (
    FinanceConfig,
    RecurringRule,
    Transaction,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the ledger store.

    Any storage implementation must implement these methods.
    Loaded records are sanitized before they are returned.
    """

    @abstractmethod
    async def load_transactions(self) -> list[Transaction]:
        """
        Load the whole transaction collection.

        Returns:
            Transactions in insertion order (not necessarily date order)

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def save_transactions(self, transactions: list[Transaction]) -> bool:
        """
        Replace the whole transaction collection.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load_rules(self) -> list[RecurringRule]:
        """
        Load the whole recurring rule collection.

        Raises:
            StorageError: If the collection cannot be read
        """
        pass

    @abstractmethod
    async def save_rules(self, rules: list[RecurringRule]) -> bool:
        """
        Replace the whole recurring rule collection.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def load_config(self) -> Optional[FinanceConfig]:
        """
        Load the finance configuration.

        Returns:
            The stored configuration, or None on first use
        """
        pass

    @abstractmethod
    async def save_config(self, config: FinanceConfig) -> bool:
        """
        Replace the finance configuration.

        Raises:
            StorageError: If save fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
