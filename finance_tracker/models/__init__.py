"""
Data Models Package

This package contains all Pydantic models used in the Personal Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    AnnualMetrics,
    Category,
    DashboardView,
    FinanceConfig,
    HealthStatus,
    MonthlySeries,
    ProjectionResult,
    RecurringRule,
    RecurringRuleDraft,
    Transaction,
    TransactionDraft,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    signed_amount,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AnnualMetrics",
    "Category",
    "DashboardView",
    "FinanceConfig",
    "HealthStatus",
    "MonthlySeries",
    "ProjectionResult",
    "RecurringRule",
    "RecurringRuleDraft",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    "ValidationIssue",
    "ValidationResult",
    "signed_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
