"""
Main Orchestrator for Personal Finance Tracker

This module ties the components together and defines the end-to-end
flows the presentation layer calls:
1. View load (load -> project recurring rules -> persist if changed -> aggregate)
2. Transaction entry, correction and deletion
3. Recurring rule creation and deletion (with cascading purge)
4. Finance configuration

DESIGN DECISION: The engine never touches storage. This layer reads whole
collections, hands copies to the engine, and decides whether the result
is persisted. Read-generate-write runs under a lock so two concurrent
view loads cannot both generate from the same stale watermark.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.engine import (
    account_balance,
    annual_metrics,
    monthly_series,
    project,
    purge_rule,
    transactions_for_month,
)
from finance_tracker.models.ledger import (
    AnnualMetrics,
    DashboardView,
    FinanceConfig,
    HealthStatus,
    RecurringRule,
    RecurringRuleDraft,
    Transaction,
    TransactionDraft,
    ValidationResult,
    signed_amount,
)
from finance_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
)
from finance_tracker.validation import InvalidRecordError, RecordValidator


logger = structlog.get_logger(__name__)

DEFAULT_WARNING_PERCENT = Decimal("80")


def classify_health(
    metrics: AnnualMetrics,
    warning_percent: Decimal = DEFAULT_WARNING_PERCENT,
) -> HealthStatus:
    """
    Health policy applied on top of the engine's numbers.

    A negative projected balance is critical; committing more than
    warning_percent of income is a warning; anything else is healthy.
    """
    if metrics.projected_balance < 0:
        return HealthStatus.CRITICAL
    if metrics.percent_committed > warning_percent:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


class LedgerFlow:
    """
    Orchestrates every ledger operation against one store.

    All mutations follow the same shape: load the whole collection,
    build the new collection, save it whole.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = get_settings().app
        self._validator = validator or RecordValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # View load
    # ------------------------------------------------------------------

    async def load_view(
        self,
        horizon_month: int,
        horizon_year: int,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardView:
        """
        Bring the ledger up to the horizon and compute the dashboard.

        Recurring rules are materialized through December of the later of
        the current year and horizon_year. Collections are written back
        only when something was generated.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()

        async with self._lock:
            transactions = await self._storage.load_transactions()
            rules = await self._storage.load_rules()

            result = project(
                transactions, rules, horizon_month, horizon_year, today=today
            )

            if result.generated_count > 0:
                await self._audit_logger.log_recurring_generated(
                    generated_count=result.generated_count,
                    horizon_month=horizon_month,
                    horizon_year=horizon_year,
                    correlation_id=correlation_id,
                )
                await self._persist(result.transactions, result.rules, correlation_id)

        config = await self.get_config()
        metrics = annual_metrics(
            result.transactions, config.base_salary, horizon_year, today=today
        )

        return DashboardView(
            horizon_month=horizon_month,
            horizon_year=horizon_year,
            series=monthly_series(result.transactions, horizon_year),
            metrics=metrics,
            health=classify_health(metrics, self._settings.health_warning_percent),
            balance=account_balance(result.transactions, config.initial_balance),
            month_transactions=transactions_for_month(
                result.transactions, horizon_month, horizon_year
            ),
            generated_count=result.generated_count,
        )

    async def _persist(
        self,
        transactions: list[Transaction],
        rules: list[RecurringRule],
        correlation_id: UUID,
    ) -> None:
        try:
            await self._storage.save_transactions(transactions)
            await self._storage.save_rules(rules)
        except Exception as e:
            await self._audit_logger.log_storage_error(
                operation="save_ledger",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_ledger_persisted(
            transaction_count=len(transactions),
            rule_count=len(rules),
            correlation_id=correlation_id,
        )

    # ------------------------------------------------------------------
    # Input boundary
    # ------------------------------------------------------------------

    async def _reject(self, result: ValidationResult, correlation_id: UUID) -> None:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        await self._audit_logger.log_validation_failed(
            record_type=result.record_type,
            issues=issues,
            correlation_id=correlation_id,
        )
        raise InvalidRecordError(result)

    async def _accept_transaction(
        self,
        data: Union[TransactionDraft, dict[str, Any]],
        today: Optional[date],
        correlation_id: UUID,
    ) -> TransactionDraft:
        try:
            draft = self._validator.parse_transaction(data)
        except InvalidRecordError as e:
            await self._reject(e.result, correlation_id)

        result = self._validator.validate_transaction(draft, today=today)
        if not result.is_valid:
            await self._reject(result, correlation_id)
        return draft

    async def _accept_rule(
        self,
        data: Union[RecurringRuleDraft, dict[str, Any]],
        correlation_id: UUID,
    ) -> RecurringRuleDraft:
        try:
            draft = self._validator.parse_rule(data)
        except InvalidRecordError as e:
            await self._reject(e.result, correlation_id)

        result = self._validator.validate_rule(draft)
        if not result.is_valid:
            await self._reject(result, correlation_id)
        return draft

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def add_transaction(
        self,
        data: Union[TransactionDraft, dict[str, Any]],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Validate a user-entered entry and append it to the ledger.

        Raises:
            InvalidRecordError: If the entry fails validation
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = await self._accept_transaction(data, today, correlation_id)

        transaction = Transaction(
            description=draft.description,
            amount=signed_amount(draft.amount, draft.kind),
            kind=draft.kind,
            date=draft.date,
            category=draft.category,
        )

        async with self._lock:
            transactions = await self._storage.load_transactions()
            await self._storage.save_transactions([*transactions, transaction])

        await self._audit_logger.log_transaction_added(
            transaction_id=transaction.id,
            description=transaction.description,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        )
        return transaction

    async def update_transaction(
        self,
        transaction_id: UUID,
        data: Union[TransactionDraft, dict[str, Any]],
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Apply an explicit user correction to one transaction.

        The id and the recurring back-reference are preserved.

        Raises:
            NotFoundError: If no transaction has this id
            InvalidRecordError: If the correction fails validation
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = await self._accept_transaction(data, today, correlation_id)

        async with self._lock:
            transactions = await self._storage.load_transactions()
            index = next(
                (i for i, t in enumerate(transactions) if t.id == transaction_id),
                None,
            )
            if index is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")

            original = transactions[index]
            corrected = Transaction(
                id=original.id,
                description=draft.description,
                amount=signed_amount(draft.amount, draft.kind),
                kind=draft.kind,
                date=draft.date,
                category=draft.category,
                is_recurring=original.is_recurring,
                recurring_rule_id=original.recurring_rule_id,
            )
            transactions[index] = corrected
            await self._storage.save_transactions(transactions)

        changes = {
            field: str(getattr(corrected, field))
            for field in ("description", "amount", "kind", "date", "category")
            if getattr(corrected, field) != getattr(original, field)
        }
        await self._audit_logger.log_transaction_updated(
            transaction_id=transaction_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        return corrected

    async def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Remove one transaction from the ledger.

        Raises:
            NotFoundError: If no transaction has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            transactions = await self._storage.load_transactions()
            remaining = [t for t in transactions if t.id != transaction_id]
            if len(remaining) == len(transactions):
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            await self._storage.save_transactions(remaining)

        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )

    # ------------------------------------------------------------------
    # Recurring rules
    # ------------------------------------------------------------------

    async def list_rules(self) -> list[RecurringRule]:
        return await self._storage.load_rules()

    async def create_rule(
        self,
        data: Union[RecurringRuleDraft, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRule:
        """
        Validate and store a new recurring rule.

        The rule starts without a watermark; the next view load
        materializes it from the month being viewed.

        Raises:
            InvalidRecordError: If the rule fails validation
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = await self._accept_rule(data, correlation_id)

        rule = RecurringRule(
            description=draft.description,
            category=draft.category,
            kind=draft.kind,
            amount=draft.amount,
            day_of_month=draft.day_of_month,
        )

        async with self._lock:
            rules = await self._storage.load_rules()
            await self._storage.save_rules([*rules, rule])

        await self._audit_logger.log_rule_created(
            rule_id=rule.id,
            description=rule.description,
            day_of_month=rule.day_of_month,
            correlation_id=correlation_id,
        )
        return rule

    async def delete_rule(
        self,
        rule_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete a rule and every transaction it generated.

        Returns:
            Number of generated transactions purged

        Raises:
            NotFoundError: If no rule has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            rules = await self._storage.load_rules()
            remaining_rules = [r for r in rules if r.id != rule_id]
            if len(remaining_rules) == len(rules):
                raise NotFoundError(f"Recurring rule not found: {rule_id}")

            transactions = await self._storage.load_transactions()
            remaining = purge_rule(transactions, rule_id)
            purged_count = len(transactions) - len(remaining)

            await self._storage.save_rules(remaining_rules)
            await self._storage.save_transactions(remaining)

        await self._audit_logger.log_rule_deleted(
            rule_id=rule_id,
            purged_count=purged_count,
            correlation_id=correlation_id,
        )
        return purged_count

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def get_config(self) -> FinanceConfig:
        """Stored configuration, created from settings defaults on first use."""
        config = await self._storage.load_config()
        if config is None:
            config = FinanceConfig(
                base_salary=self._settings.default_base_salary,
                savings_goal=self._settings.default_savings_goal,
            )
            await self._storage.save_config(config)
            logger.info("config_initialized", base_salary=str(config.base_salary))
        return config

    async def update_config(
        self,
        base_salary: Optional[Decimal] = None,
        savings_goal: Optional[Decimal] = None,
        initial_balance: Optional[Decimal] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FinanceConfig:
        """Apply an explicit user edit to the configuration."""
        correlation_id = correlation_id or create_correlation_id()
        current = await self.get_config()

        changes = {
            key: value
            for key, value in (
                ("base_salary", base_salary),
                ("savings_goal", savings_goal),
                ("initial_balance", initial_balance),
            )
            if value is not None
        }
        updated = FinanceConfig.model_validate({**current.model_dump(), **changes})
        await self._storage.save_config(updated)

        await self._audit_logger.log_config_updated(
            changes={key: str(value) for key, value in changes.items()},
            correlation_id=correlation_id,
        )
        return updated


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (ledger_flow, sheets_client)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    sheets_client = None
    storage: LedgerStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryLedgerStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger()  # Local-only logging

    flow = LedgerFlow(storage=storage, audit_logger=audit_logger)
    return flow, sheets_client
