"""
Storage Services Package

Provides the abstract ledger store interface and its implementations:
an in-memory store for tests and local use, and Google Sheets for
persistence.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
