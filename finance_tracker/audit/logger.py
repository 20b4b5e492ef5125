"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of what the projector generated and when
2. A record of user corrections and cascading deletes
3. Debugging capability

The audit logger:
- Always logs locally through structlog
- Gracefully handles storage failures (doesn't break the ledger flow)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger().setLevel(getattr(logging, level.upper()))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_added(
        self,
        transaction_id: UUID,
        description: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: UUID,
        changes: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_rule_created(
        self,
        rule_id: UUID,
        description: str,
        day_of_month: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.rule_created(
            rule_id=rule_id,
            description=description,
            day_of_month=day_of_month,
            correlation_id=correlation_id,
        ))

    async def log_rule_deleted(
        self,
        rule_id: UUID,
        purged_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.rule_deleted(
            rule_id=rule_id,
            purged_count=purged_count,
            correlation_id=correlation_id,
        ))

    async def log_recurring_generated(
        self,
        generated_count: int,
        horizon_month: int,
        horizon_year: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_generated(
            generated_count=generated_count,
            horizon_month=horizon_month,
            horizon_year=horizon_year,
            correlation_id=correlation_id,
        ))

    async def log_ledger_persisted(
        self,
        transaction_count: int,
        rule_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_persisted(
            transaction_count=transaction_count,
            rule_count=rule_count,
            correlation_id=correlation_id,
        ))

    async def log_config_updated(
        self,
        changes: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.config_updated(
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        record_type: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            record_type=record_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a view load).
    Pass it through all subsequent operations.
    """
    return uuid4()
