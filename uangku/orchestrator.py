"""
Main Orchestrator for UangKu Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Recording (raw fields -> validate -> command -> repository -> observers)
2. History (undo / redo of any recorded change, batches included)
3. Monitoring (running balance, budget thresholds)
4. Reporting (date range -> repository -> report)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation goes through the command history
- Observers only hear about changes the repository accepted
- Every step is audited

The orchestrator itself holds no ledger state; the repository is the
source of truth and the notification bus holds a transient snapshot.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from uangku.audit import AuditLogger, configure_logging, create_correlation_id
from uangku.commands import (
    AddTransactionCommand,
    BatchCommand,
    CommandHistory,
    DeleteTransactionCommand,
    UpdateTransactionCommand,
)
from uangku.config import Settings, get_settings
from uangku.models.budget import Budget, BudgetStatus
from uangku.models.report import ReportType
from uangku.models.result import NotFoundError, OperationResult, ValidationFailedError
from uangku.models.transaction import Transaction, TransactionKind
from uangku.notifications import BalanceObserver, BudgetObserver, NotificationBus
from uangku.reports import ReportBuilder
from uangku.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    LayeredTransactionRepository,
    LocalTransactionRepository,
    LocalTransactionStore,
    RemoteTransactionStore,
    TransactionRepository,
)
from uangku.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class TransactionUpdate(BaseModel):
    """
    One entry of a batch update.

    If `old_transaction` is omitted it is looked up in the repository
    before the batch runs.
    """
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    new_transaction: Transaction
    old_transaction: Optional[Transaction] = None


class ReportingService:
    """
    Orchestrates repository, command history, notification bus and audit.

    Flow for every mutation:
    1. Build/validate the payload
    2. Wrap it in a command and execute it through the history
    3. The history publishes the change to the bus on success
    4. Audit the outcome, including any budget threshold crossed
    """

    def __init__(
        self,
        repository: TransactionRepository,
        bus: Optional[NotificationBus] = None,
        history: Optional[CommandHistory] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
        budget_store: Optional[LocalTransactionStore] = None,
    ):
        self._repository = repository
        self._bus = bus if bus is not None else NotificationBus()
        self._history = history if history is not None else CommandHistory(bus=self._bus)
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or TransactionValidator()
        self._budget_store = budget_store
        self._reports = ReportBuilder(repository)

        self._balances: dict[Optional[str], BalanceObserver] = {None: BalanceObserver()}
        self._bus.add_observer(self._balances[None])
        self._budget_observers: dict[str, BudgetObserver] = {}
        self._pending_alerts: list[tuple[Budget, BudgetStatus]] = []

    @property
    def repository(self) -> TransactionRepository:
        return self._repository

    @property
    def bus(self) -> NotificationBus:
        return self._bus

    @property
    def history(self) -> CommandHistory:
        return self._history

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    async def add_income(
        self,
        description: str,
        amount: Decimal,
        date: str,
        category_id: str,
        user_id: str,
        source: str = "Unknown",
    ) -> OperationResult:
        """Validate and record an income."""
        built = self._validator.build(
            TransactionKind.INCOME,
            description=description,
            amount=amount,
            date=date,
            category_id=category_id,
            user_id=user_id,
            source=source,
        )
        if not built.success:
            await self._audit_logger.log_operation_failed("add_income", built)
            return built
        return await self.add_transaction(built.value)

    async def add_expense(
        self,
        description: str,
        amount: Decimal,
        date: str,
        category_id: str,
        user_id: str,
        payment_method: str = "Cash",
    ) -> OperationResult:
        """Validate and record an expense."""
        built = self._validator.build(
            TransactionKind.EXPENSE,
            description=description,
            amount=amount,
            date=date,
            category_id=category_id,
            user_id=user_id,
            payment_method=payment_method,
        )
        if not built.success:
            await self._audit_logger.log_operation_failed("add_expense", built)
            return built
        return await self.add_transaction(built.value)

    async def add_transaction(self, transaction: Transaction) -> OperationResult:
        """
        Record an already-built transaction.

        Semantic warnings (future date, unusual amount) are logged but
        never block the write.
        """
        self._warn_if_suspicious(transaction)

        result = await self._history.execute(
            AddTransactionCommand(self._repository, transaction)
        )
        if not result.success:
            await self._audit_logger.log_operation_failed(
                "add_transaction", result, entity_id=transaction.id,
            )
            return result

        await self._audit_logger.log_transaction_added(transaction)
        await self._flush_alerts()
        return OperationResult.ok(transaction)

    async def update_transaction(
        self,
        transaction_id: str,
        new_transaction: Transaction,
    ) -> OperationResult:
        """
        Replace a stored transaction.

        The previous value is read from the local store so the change can
        be undone. Fails with NOT_FOUND if the id is unknown for the
        owner of `new_transaction`.
        """
        old = await self._find(new_transaction.user_id, transaction_id)
        if not old.success:
            await self._audit_logger.log_operation_failed(
                "update_transaction", old, entity_id=transaction_id,
            )
            return old

        self._warn_if_suspicious(new_transaction)

        result = await self._history.execute(
            UpdateTransactionCommand(self._repository, transaction_id, new_transaction, old.value)
        )
        if not result.success:
            await self._audit_logger.log_operation_failed(
                "update_transaction", result, entity_id=transaction_id,
            )
            return result

        await self._audit_logger.log_transaction_updated(old.value, new_transaction)
        await self._flush_alerts()
        return OperationResult.ok(new_transaction)

    async def delete_transaction(self, user_id: str, transaction_id: str) -> OperationResult:
        """Delete a stored transaction. Fails with NOT_FOUND if unknown."""
        found = await self._find(user_id, transaction_id)
        if not found.success:
            await self._audit_logger.log_operation_failed(
                "delete_transaction", found, entity_id=transaction_id,
            )
            return found

        result = await self._history.execute(
            DeleteTransactionCommand(self._repository, found.value)
        )
        if not result.success:
            await self._audit_logger.log_operation_failed(
                "delete_transaction", result, entity_id=transaction_id,
            )
            return result

        await self._audit_logger.log_transaction_deleted(found.value)
        await self._flush_alerts()
        return OperationResult.ok(found.value)

    async def batch_update(self, updates: Iterable[TransactionUpdate]) -> OperationResult:
        """
        Apply several updates as one undoable step.

        Either every update lands or none does: on the first failure the
        ones already applied are rolled back and the failure is returned.
        """
        correlation_id = create_correlation_id()
        commands = []
        for update in updates:
            old = update.old_transaction
            if old is None:
                found = await self._find(update.new_transaction.user_id, update.transaction_id)
                if not found.success:
                    await self._audit_logger.log_operation_failed(
                        "batch_update", found,
                        entity_id=update.transaction_id, correlation_id=correlation_id,
                    )
                    return found
                old = found.value
            commands.append(UpdateTransactionCommand(
                self._repository, update.transaction_id, update.new_transaction, old,
            ))

        return await self._execute_batch(
            BatchCommand(commands, description=f"Batch update of {len(commands)} transactions"),
            operation="batch_update",
            correlation_id=correlation_id,
        )

    async def batch_add(self, transactions: Iterable[Transaction]) -> OperationResult:
        """Record several transactions as one undoable step."""
        correlation_id = create_correlation_id()
        commands = [AddTransactionCommand(self._repository, tx) for tx in transactions]
        return await self._execute_batch(
            BatchCommand(commands, description=f"Batch add of {len(commands)} transactions"),
            operation="batch_add",
            correlation_id=correlation_id,
        )

    async def _execute_batch(
        self,
        batch: BatchCommand,
        operation: str,
        correlation_id: UUID,
    ) -> OperationResult:
        if len(batch) == 0:
            return OperationResult.fail(ValidationFailedError("Batch must contain at least one operation"))

        result = await self._history.execute(batch)
        if not result.success:
            await self._audit_logger.log_operation_failed(
                operation, result, correlation_id=correlation_id,
            )
            return result

        await self._audit_logger.log_batch_applied(len(batch), correlation_id)
        await self._flush_alerts()
        return result

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    async def undo(self) -> OperationResult:
        command = self._history.peek_undo()
        result = await self._history.undo()
        if not result.success:
            await self._audit_logger.log_operation_failed("undo", result)
            return result
        await self._audit_logger.log_command_undone(command.description)
        await self._flush_alerts()
        return result

    async def redo(self) -> OperationResult:
        command = self._history.peek_redo()
        result = await self._history.redo()
        if not result.success:
            await self._audit_logger.log_operation_failed("redo", result)
            return result
        await self._audit_logger.log_command_redone(command.description)
        await self._flush_alerts()
        return result

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    async def clear_history(self) -> None:
        size = self._history.history_size()
        self._history.clear_history()
        await self._audit_logger.log_history_cleared(size)

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    async def load_user(self, user_id: str) -> OperationResult:
        """
        Load a user's transactions into the notification snapshot.

        Observers are notified once with the loaded snapshot.
        """
        result = await self._repository.get_by_user(user_id)
        if not result.success:
            await self._audit_logger.log_operation_failed("load_user", result, entity_id=user_id)
            return result

        self._bus.replace_snapshot(result.value)
        await self._flush_alerts()
        return result

    def balance(self, user_id: Optional[str] = None) -> Decimal:
        """
        Running balance of the current snapshot.

        Without `user_id` every transaction in the snapshot counts. With it,
        a balance observer scoped to that user is registered on first use.
        """
        observer = self._balances.get(user_id)
        if observer is None:
            observer = BalanceObserver(user_id=user_id)
            observer.on_update(self._bus.current_snapshot())
            self._bus.add_observer(observer)
            self._balances[user_id] = observer
        return observer.balance

    async def add_budget_monitoring(self, budget: Budget) -> BudgetObserver:
        """
        Start watching a budget.

        The budget is evaluated against the current snapshot right away.
        Adding the same budget id twice returns the existing observer.
        """
        if budget.id in self._budget_observers:
            return self._budget_observers[budget.id]

        if self._budget_store is not None:
            self._budget_store.save_budget(budget)

        observer = BudgetObserver(budget, on_threshold=self._queue_alert)
        observer.on_update(self._bus.current_snapshot())
        self._bus.add_observer(observer)
        self._budget_observers[budget.id] = observer

        await self._audit_logger.log_budget_monitoring_started(budget)
        await self._flush_alerts()
        return observer

    async def monitor_user_budgets(self, user_id: str) -> list[BudgetObserver]:
        """Watch every stored budget of a user."""
        if self._budget_store is None:
            return []
        return [
            await self.add_budget_monitoring(budget)
            for budget in self._budget_store.budgets_for_user(user_id)
        ]

    def budget_status(self, budget_id: str) -> Optional[BudgetStatus]:
        observer = self._budget_observers.get(budget_id)
        return observer.status if observer is not None else None

    def _queue_alert(self, budget: Budget, status: BudgetStatus) -> None:
        self._pending_alerts.append((budget, status))

    async def _flush_alerts(self) -> None:
        alerts, self._pending_alerts = self._pending_alerts, []
        for budget, status in alerts:
            await self._audit_logger.log_budget_threshold(budget, status)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    async def generate_report(
        self,
        user_id: str,
        report_type: ReportType,
        start_date: str,
        end_date: str,
    ) -> OperationResult:
        result = await self._reports.build(user_id, report_type, start_date, end_date)
        if not result.success:
            await self._audit_logger.log_operation_failed("generate_report", result, entity_id=user_id)
        return result

    async def monthly_report(self, user_id: str, year: int, month: int) -> OperationResult:
        result = await self._reports.monthly(user_id, year, month)
        if not result.success:
            await self._audit_logger.log_operation_failed("monthly_report", result, entity_id=user_id)
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _find(self, user_id: str, transaction_id: str) -> OperationResult:
        """Current value of a user's transaction, read from the authoritative store."""
        result = await self._repository.get(transaction_id)
        if not result.success:
            return result
        if result.value.user_id != user_id:
            return OperationResult.fail(NotFoundError(f"Transaction {transaction_id} not found"))
        return result

    def _warn_if_suspicious(self, transaction: Transaction) -> None:
        check = self._validator.check(transaction)
        for warning in check.warnings:
            logger.warning("transaction_suspicious", transaction_id=transaction.id, warning=warning)


def create_remote_store(settings: Settings) -> Optional[RemoteTransactionStore]:
    """
    Build the Google Sheets mirror if it is enabled and configured.

    Returns None (local-only) when disabled or when the sheet settings
    cannot be loaded.
    """
    if not settings.ledger.remote_enabled:
        return None
    try:
        client = GoogleSheetsClient(settings.google_sheets)
    except ValidationError as e:
        logger.warning("remote_not_configured", error=str(e))
        return None
    return GoogleSheetsTransactionStore(client)


def create_ledger(
    settings: Optional[Settings] = None,
    remote: Optional[RemoteTransactionStore] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> ReportingService:
    """
    Factory function to create a fully wired ledger service.

    Args:
        settings: Application settings. Defaults to `get_settings()`.
        remote: Remote mirror to use. If None, a Google Sheets mirror is
                built when enabled in settings; otherwise the ledger is
                local-only.
        audit_logger: Audit logger. Defaults to local-only logging.

    Returns:
        A ReportingService owning a fresh local store and history.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    store = LocalTransactionStore()
    local = LocalTransactionRepository(store)
    if remote is None:
        remote = create_remote_store(settings)

    if remote is not None:
        repository: TransactionRepository = LayeredTransactionRepository(
            local,
            remote,
            remote_timeout=settings.ledger.remote_timeout_seconds,
            mirror_deletes=settings.ledger.mirror_deletes,
        )
    else:
        repository = local

    bus = NotificationBus()
    history = CommandHistory(max_size=settings.ledger.history_limit, bus=bus)

    logger.info(
        "ledger_created",
        remote=type(remote).__name__ if remote is not None else None,
        history_limit=settings.ledger.history_limit,
    )

    return ReportingService(
        repository=repository,
        bus=bus,
        history=history,
        audit_logger=audit_logger or AuditLogger(),
        validator=TransactionValidator(settings.app),
        budget_store=store,
    )
