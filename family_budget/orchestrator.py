"""
Main Orchestrator for Family Budget

This module ties together all the components and defines the
end-to-end flows behind every screen action:
1. Validate input (block obviously bad requests locally)
2. Call the backend
3. Apply the answer through the LocalViewSynchronizer
4. Report the outcome as a per-section status message

DESIGN DECISION: The orchestrator enforces the boundaries:
- A failed request changes nothing but its section's status message
- Only synchronizer operations write to the view state
- A response that arrives after the screen was invalidated is dropped
- Every step is audited

Errors never escape a flow. Each flow returns True/False (or the
created entity / None) and leaves the message in the view state.
"""

import asyncio
from datetime import date, datetime
from typing import Any, Awaitable, Optional
from uuid import UUID

from family_budget.audit import AuditLogger, configure_logging, create_correlation_id
from family_budget.config import get_settings
from family_budget.models.audit import AuditEventBuilder
from family_budget.models.budget import (
    Account,
    AccountPayload,
    AccountType,
    Category,
    CategoryPayload,
    CategoryType,
    DisplaySettings,
    PlannedOperation,
    PlannedOperationPayload,
    Recurrence,
    RegisterRequest,
    Transaction,
    TransactionRequest,
    TransactionType,
    UpdateSettingsRequest,
    ValidationResult,
)
from family_budget.models.dates import start_of_day_utc, start_of_month, utc_now
from family_budget.models.view_state import (
    BudgetViewState,
    Section,
    TransactionFilters,
)
from family_budget.services.api import (
    BudgetServiceError,
    BudgetServiceInterface,
    HttpBudgetService,
)
from family_budget.sync import LocalViewSynchronizer
from family_budget.validation import InputValidator, parse_amount_minor


class BudgetSession:
    """
    Orchestrates one budget screen.

    Flow for every mutation:
    1. Check input → inline error, no request
    2. Send request → on failure: status message, no state change
    3. Apply response → synchronizer re-sorts and repairs selections
    4. Refresh what the server recalculated (balances, reports)

    Responses are tagged with the generation that was current when the
    request started. invalidate() bumps the generation, so anything
    still in flight for a dismissed screen is discarded on arrival.
    """

    def __init__(
        self,
        service: BudgetServiceInterface,
        synchronizer: Optional[LocalViewSynchronizer] = None,
        validator: Optional[InputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._service = service
        self._sync = synchronizer or LocalViewSynchronizer()
        self._validator = validator or InputValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._generation = 0

        period = self._sync.state.period
        if period.start is None and period.end is None:
            self._sync.set_period(start_of_month(), utc_now().date())

    @property
    def state(self) -> BudgetViewState:
        return self._sync.state

    @property
    def synchronizer(self) -> LocalViewSynchronizer:
        return self._sync

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self) -> None:
        """Drop every response still in flight for the current screen."""
        self._generation += 1

    async def aclose(self) -> None:
        await self._service.aclose()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _user_id(self, section: Section) -> Optional[str]:
        if self.state.user is None:
            self._sync.set_status(section, "Register first", is_error=True)
            return None
        return self.state.user.id

    def _reject(
        self,
        section: Section,
        result: ValidationResult,
        correlation_id: Optional[UUID],
    ) -> bool:
        """Record a failed pre-flight check. Returns True if input was rejected."""
        if result.is_valid:
            return False
        self._audit_logger.log_validation_failed(
            section=section.value,
            issues=[issue.model_dump() for issue in result.issues],
            correlation_id=correlation_id,
        )
        self._sync.set_status(section, result.first_error, is_error=True)
        return True

    async def _call(
        self,
        section: Section,
        request: Awaitable[Any],
        generation: int,
        correlation_id: Optional[UUID],
    ) -> tuple[bool, Any]:
        """
        Await a backend request.

        Returns:
            (ok, result). ok is False if the request failed or if its
            response belongs to an invalidated generation; in both cases
            the state has not been touched beyond a status message.
        """
        try:
            result = await request
        except BudgetServiceError as e:
            if generation != self._generation:
                self._audit_logger.log_stale_response(
                    section.value, generation, self._generation, correlation_id
                )
                return False, None
            self._audit_logger.log_request_failed(section.value, e, correlation_id)
            self._sync.set_status(section, str(e), is_error=True)
            return False, None

        if generation != self._generation:
            self._audit_logger.log_stale_response(
                section.value, generation, self._generation, correlation_id
            )
            return False, None
        return True, result

    # -------------------------------------------------------------------------
    # Registration and loading
    # -------------------------------------------------------------------------

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        currency: str,
        locale: Optional[str] = None,
        family_name: Optional[str] = None,
        family_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Register the family owner (or a member joining by family id).

        On success the whole screen is loaded: categories, accounts,
        members, planned operations, transactions and reports.
        """
        correlation_id = correlation_id or create_correlation_id()
        section = Section.REGISTRATION

        result = self._validator.check_registration(email, password, name, currency)
        if self._reject(section, result, correlation_id):
            return False

        payload = RegisterRequest(
            email=email,
            password=password,
            name=name,
            currency=currency,
            locale=locale,
            family_name=family_name,
            family_id=family_id,
        )
        generation = self._generation
        ok, response = await self._call(
            section, self._service.register(payload), generation, correlation_id
        )
        if not ok:
            return False

        self._sync.apply_registration(response)
        self._sync.set_status(section, f"Profile created for {response.user.name}")
        self._audit_logger.log(AuditEventBuilder.user_registered(
            user_id=response.user.id,
            family_id=response.family.id,
            joined_existing_family=bool(family_id),
            correlation_id=correlation_id,
        ))

        await self.refresh_all(correlation_id=correlation_id)
        return True

    async def refresh_all(self, correlation_id: Optional[UUID] = None) -> None:
        """Load every section concurrently; each applies only its own data."""
        await asyncio.gather(
            self.refresh_categories(correlation_id=correlation_id),
            self.refresh_accounts(correlation_id=correlation_id),
            self.refresh_members(correlation_id=correlation_id),
            self.refresh_planned_operations(correlation_id=correlation_id),
            self.load_transactions_for_period(correlation_id=correlation_id),
        )

    async def refresh_categories(self, correlation_id: Optional[UUID] = None) -> bool:
        section = Section.CATEGORIES
        user_id = self._user_id(section)
        if user_id is None:
            return False
        ok, categories = await self._call(
            section, self._service.list_categories(user_id), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_category_list(categories)
        self._sync.clear_status(section)
        self._audit_logger.log(AuditEventBuilder.data_refreshed("categories", len(categories), correlation_id))
        return True

    async def refresh_accounts(
        self,
        preferred_account_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        section = Section.ACCOUNTS
        user_id = self._user_id(section)
        if user_id is None:
            return False
        ok, accounts = await self._call(
            section, self._service.list_accounts(user_id), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_account_list(accounts, preferred_account_id=preferred_account_id)
        self._sync.clear_status(section)
        self._audit_logger.log(AuditEventBuilder.data_refreshed("accounts", len(accounts), correlation_id))
        return True

    async def refresh_members(self, correlation_id: Optional[UUID] = None) -> bool:
        section = Section.MEMBERS
        user_id = self._user_id(section)
        if user_id is None:
            return False
        ok, members = await self._call(
            section, self._service.list_members(user_id), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_member_list(members)
        self._sync.clear_status(section)
        return True

    async def refresh_planned_operations(self, correlation_id: Optional[UUID] = None) -> bool:
        section = Section.PLANNED
        user_id = self._user_id(section)
        if user_id is None:
            return False
        ok, response = await self._call(
            section, self._service.list_planned_operations(user_id), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_planned_operations(
            response.planned_operations, response.completed_operations
        )
        self._sync.clear_status(section)
        return True

    async def refresh_settings(self, correlation_id: Optional[UUID] = None) -> bool:
        section = Section.SETTINGS
        user_id = self._user_id(section)
        if user_id is None:
            return False
        ok, summary = await self._call(
            section, self._service.get_settings(user_id), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_settings(summary)
        self._sync.clear_status(section)
        return True

    # -------------------------------------------------------------------------
    # Transactions and reports for the active period
    # -------------------------------------------------------------------------

    async def load_transactions_for_period(self, correlation_id: Optional[UUID] = None) -> bool:
        """Reload the transaction list and the reports for the active period/filters."""
        tx_ok, reports_ok = await asyncio.gather(
            self._load_transactions(correlation_id),
            self.load_reports(correlation_id=correlation_id),
        )
        return tx_ok and reports_ok

    async def _load_transactions(self, correlation_id: Optional[UUID]) -> bool:
        section = Section.TRANSACTIONS
        user_id = self._user_id(section)
        if user_id is None:
            return False
        state = self.state
        if self._reject(section, self._validator.check_period(state.period.start, state.period.end), correlation_id):
            return False
        query = state.filters.to_query(state.period)
        ok, transactions = await self._call(
            section, self._service.list_transactions(user_id, query), self._generation, correlation_id
        )
        if not ok:
            return False
        self._sync.apply_transaction_list(transactions)
        self._sync.clear_status(section)
        self._audit_logger.log(AuditEventBuilder.data_refreshed("transactions", len(transactions), correlation_id))
        return True

    async def load_reports(self, correlation_id: Optional[UUID] = None) -> bool:
        section = Section.REPORTS
        user_id = self._user_id(section)
        if user_id is None:
            return False
        period = self.state.period
        if self._reject(section, self._validator.check_period(period.start, period.end), correlation_id):
            return False
        ok, reports = await self._call(
            section,
            self._service.get_reports_overview(user_id, period.start_bound, period.end_bound),
            self._generation,
            correlation_id,
        )
        if not ok:
            return False
        self._sync.apply_reports(reports)
        self._sync.clear_status(section)
        return True

    async def change_period(
        self,
        start: Optional[date],
        end: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Switch to another period and reload. A reversed period is rejected."""
        result = self._validator.check_period(start, end)
        if self._reject(Section.TRANSACTIONS, result, correlation_id):
            return False
        self._sync.set_period(start, end)
        return await self.load_transactions_for_period(correlation_id=correlation_id)

    async def change_filters(
        self,
        filters: TransactionFilters,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        self._sync.set_filters(filters)
        return await self._load_transactions(correlation_id)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def save_category(
        self,
        name: str,
        category_type: str = CategoryType.EXPENSE.value,
        color: str = "#0ea5e9",
        description: str = "",
        parent_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Category]:
        """
        Create a category, or update the one being edited.

        Returns:
            The category as stored by the server, or None on failure
        """
        correlation_id = correlation_id or create_correlation_id()
        section = Section.CATEGORIES
        user_id = self._user_id(section)
        if user_id is None:
            return None

        editing_id = self.state.selection.editing_category_id
        result = self._validator.check_category(name, category_type, parent_id, editing_id)
        if self._reject(section, result, correlation_id):
            return None

        payload = CategoryPayload(
            name=name,
            type=CategoryType(category_type),
            color=color,
            description=description,
            parent_id=parent_id or None,
        )
        if editing_id:
            request = self._service.update_category(user_id, editing_id, payload)
        else:
            request = self._service.create_category(user_id, payload)

        ok, category = await self._call(section, request, self._generation, correlation_id)
        if not ok:
            return None

        self._sync.upsert_category(category)
        self._sync.end_category_edit()
        self._sync.set_status(section, "Category saved")
        self._audit_logger.log(AuditEventBuilder.category_saved(
            category_id=category.id,
            name=category.name,
            created=editing_id is None,
            correlation_id=correlation_id,
        ))
        return category

    async def set_category_archived(
        self,
        category_id: str,
        archived: bool,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        section = Section.CATEGORIES
        user_id = self._user_id(section)
        if user_id is None:
            return False

        category = self.state.find_category(category_id)
        if self._reject(section, self._validator.check_archive(category, archived), correlation_id):
            return False

        ok, updated = await self._call(
            section,
            self._service.set_category_archived(user_id, category_id, archived),
            self._generation,
            correlation_id,
        )
        if not ok:
            return False

        self._sync.upsert_category(updated)
        self._sync.set_status(section, "Category archived" if archived else "Category restored")
        self._audit_logger.log(AuditEventBuilder.category_archive_changed(
            category_id=category_id,
            archived=archived,
            correlation_id=correlation_id,
        ))
        return True

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def create_account(
        self,
        name: str,
        account_type: str = AccountType.CASH.value,
        currency: Optional[str] = None,
        initial_balance: Optional[str] = None,
        shared: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Account]:
        correlation_id = correlation_id or create_correlation_id()
        section = Section.ACCOUNTS
        user_id = self._user_id(section)
        if user_id is None:
            return None

        result = self._validator.check_account(name, currency, initial_balance)
        if self._reject(section, result, correlation_id):
            return None

        payload = AccountPayload(
            name=name,
            type=AccountType(account_type),
            currency=currency or None,
            initial_balance_minor=parse_amount_minor(initial_balance),
            shared=shared,
        )
        ok, account = await self._call(
            section, self._service.create_account(user_id, payload), self._generation, correlation_id
        )
        if not ok:
            return None

        self._sync.upsert_account(account, select=True)
        self._sync.set_status(section, f"Account {account.name} created")
        self._audit_logger.log(AuditEventBuilder.account_created(
            account_id=account.id,
            currency=account.currency,
            correlation_id=correlation_id,
        ))
        await self.load_reports(correlation_id=correlation_id)
        return account

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def create_transaction(
        self,
        amount: str,
        transaction_type: TransactionType = TransactionType.EXPENSE,
        comment: str = "",
        occurred_at: Optional[datetime] = None,
        account_id: Optional[str] = None,
        category_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """
        Record a transaction.

        Account and category default to the current form selections.
        The new transaction only appears in the list if the active
        period and filters would show it.
        """
        correlation_id = correlation_id or create_correlation_id()
        section = Section.TRANSACTIONS
        user_id = self._user_id(section)
        if user_id is None:
            return None

        selection = self.state.selection
        account = self.state.find_account(account_id or selection.transaction_account_id)
        category_id = category_id or selection.transaction_category_id
        result = self._validator.check_transaction(
            account, category_id, amount, has_accounts=bool(self.state.accounts)
        )
        if self._reject(section, result, correlation_id):
            return None

        payload = TransactionRequest(
            user_id=user_id,
            account_id=account.id,
            category_id=category_id,
            type=transaction_type,
            amount_minor=parse_amount_minor(amount),
            currency=account.currency,
            comment=comment,
            occurred_at=occurred_at or utc_now(),
        )
        generation = self._generation
        ok, transaction = await self._call(
            section, self._service.create_transaction(payload), generation, correlation_id
        )
        if not ok:
            return None

        shown = self._sync.insert_transaction(transaction)
        message = "Transaction saved"
        if not shown:
            message += " (not shown with the current period or filters)"
        self._sync.set_status(section, message)
        self._audit_logger.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction.id,
            amount_minor=transaction.amount_minor,
            currency=transaction.currency,
            shown=shown,
            correlation_id=correlation_id,
        ))

        # Balances and reports are recalculated by the server
        await asyncio.gather(
            self.refresh_accounts(preferred_account_id=account.id, correlation_id=correlation_id),
            self.load_reports(correlation_id=correlation_id),
        )
        return transaction

    # -------------------------------------------------------------------------
    # Planned operations
    # -------------------------------------------------------------------------

    async def create_planned_operation(
        self,
        title: str,
        amount: str,
        due_date: Optional[date],
        comment: str = "",
        recurrence: Optional[Recurrence] = None,
        account_id: Optional[str] = None,
        category_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[PlannedOperation]:
        correlation_id = correlation_id or create_correlation_id()
        section = Section.PLANNED
        user_id = self._user_id(section)
        if user_id is None:
            return None

        selection = self.state.selection
        account = self.state.find_account(account_id or selection.planned_account_id)
        category_id = category_id or selection.planned_category_id
        result = self._validator.check_planned_operation(account, category_id, title, amount, due_date)
        if self._reject(section, result, correlation_id):
            return None

        payload = PlannedOperationPayload(
            account_id=account.id,
            category_id=category_id,
            type=selection.planned_type,
            title=title,
            amount_minor=parse_amount_minor(amount),
            currency=account.currency,
            comment=comment,
            due_at=start_of_day_utc(due_date),
            recurrence=recurrence,
        )
        ok, operation = await self._call(
            section,
            self._service.create_planned_operation(user_id, payload),
            self._generation,
            correlation_id,
        )
        if not ok:
            return None

        self._sync.upsert_planned_operation(operation)
        self._sync.set_status(section, "Planned operation created")
        self._audit_logger.log(AuditEventBuilder.planned_operation_created(
            operation_id=operation.id,
            title=operation.title,
            correlation_id=correlation_id,
        ))
        return operation

    async def complete_planned_operation(
        self,
        operation_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Mark a pending operation as done.

        The server answers with the updated operation and the
        transaction it produced; both are applied to the view.
        """
        correlation_id = correlation_id or create_correlation_id()
        section = Section.PLANNED
        user_id = self._user_id(section)
        if user_id is None:
            return False

        operation = next(
            (op for op in self.state.pending_operations if op.id == operation_id), None
        )
        if operation is None:
            self._sync.set_status(section, "Planned operation is not pending", is_error=True)
            return False

        ok, response = await self._call(
            section,
            self._service.complete_planned_operation(user_id, operation_id),
            self._generation,
            correlation_id,
        )
        if not ok:
            return False

        updated = response.planned_operation
        self._sync.complete_planned_operation(updated)
        self._sync.insert_transaction(response.transaction)
        self._sync.set_status(section, f"{updated.title} completed")
        self._audit_logger.log(AuditEventBuilder.planned_operation_completed(
            operation_id=updated.id,
            transaction_id=response.transaction.id,
            still_pending=not updated.is_completed,
            correlation_id=correlation_id,
        ))

        await asyncio.gather(
            self.refresh_accounts(preferred_account_id=operation.account_id, correlation_id=correlation_id),
            self.load_reports(correlation_id=correlation_id),
        )
        return True

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def update_settings(
        self,
        theme: str,
        density: str,
        show_archived: bool,
        show_totals_in_family_currency: bool,
        user_currency: Optional[str] = None,
        locale: Optional[str] = None,
        family_currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Save preferences.

        The answer carries fresh category and account lists, so archive
        visibility changes are reflected in one step.
        """
        correlation_id = correlation_id or create_correlation_id()
        section = Section.SETTINGS
        user_id = self._user_id(section)
        if user_id is None:
            return False

        result = self._validator.check_settings(theme, density, user_currency, family_currency)
        if self._reject(section, result, correlation_id):
            return False

        payload = UpdateSettingsRequest(
            family_currency=family_currency or None,
            user_currency=user_currency or "",
            locale=locale or "",
            display=DisplaySettings(
                theme=theme,
                density=density,
                show_archived=show_archived,
                show_totals_in_family_currency=show_totals_in_family_currency,
            ),
        )
        ok, summary = await self._call(
            section, self._service.update_settings(user_id, payload), self._generation, correlation_id
        )
        if not ok:
            return False

        self._sync.apply_settings(summary)
        self._sync.set_status(section, "Settings saved")
        self._audit_logger.log(AuditEventBuilder.settings_updated(
            user_id=user_id,
            show_archived=summary.user.display.show_archived,
            correlation_id=correlation_id,
        ))
        return True


def create_session(
    service: Optional[BudgetServiceInterface] = None,
) -> BudgetSession:
    """
    Factory function to create a session with its components.

    Args:
        service: Backend implementation. Defaults to the HTTP client
                 configured from the environment.
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)
    return BudgetSession(
        service=service or HttpBudgetService(settings.api),
        audit_logger=AuditLogger(),
    )
