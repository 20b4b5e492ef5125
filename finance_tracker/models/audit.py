"""
Audit Models for Personal Finance Tracker

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of generated and hand-entered transactions
2. Debugging information when a projection looks wrong
3. A record of cascading deletes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recurring rules
    RULE_CREATED = "rule_created"
    RULE_DELETED = "rule_deleted"
    RECURRING_GENERATED = "recurring_generated"

    # Persistence
    LEDGER_PERSISTED = "ledger_persisted"
    CONFIG_UPDATED = "config_updated"

    # Input boundary
    VALIDATION_FAILED = "validation_failed"

    # System events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'rule', 'config')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one view load)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, description, amount, cid)
        event = AuditEventBuilder.rule_deleted(rule_id, purged_count, cid)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        description: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction added: {description} ({amount})",
            details={"amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        changes: dict[str, Any],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction corrected: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def rule_created(
        rule_id: UUID,
        description: str,
        day_of_month: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_CREATED,
            entity_type="rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Recurring rule created: {description} (day {day_of_month})",
            details={"day_of_month": day_of_month},
            is_user_action=True,
        )

    @staticmethod
    def rule_deleted(
        rule_id: UUID,
        purged_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RULE_DELETED,
            entity_type="rule",
            entity_id=rule_id,
            correlation_id=correlation_id,
            description=f"Recurring rule deleted with {purged_count} generated transactions",
            details={"purged_count": purged_count},
            is_user_action=True,
        )

    @staticmethod
    def recurring_generated(
        generated_count: int,
        horizon_month: int,
        horizon_year: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_GENERATED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Materialized {generated_count} recurring transactions",
            details={
                "generated_count": generated_count,
                "horizon_month": horizon_month,
                "horizon_year": horizon_year,
            },
        )

    @staticmethod
    def ledger_persisted(
        transaction_count: int,
        rule_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_PERSISTED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Ledger collections saved",
            details={
                "transaction_count": transaction_count,
                "rule_count": rule_count,
            },
        )

    @staticmethod
    def config_updated(
        changes: dict[str, Any],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIG_UPDATED,
            entity_type="config",
            correlation_id=correlation_id,
            description="Finance configuration updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        record_type: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=record_type,
            correlation_id=correlation_id,
            description=f"{record_type.capitalize()} rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
