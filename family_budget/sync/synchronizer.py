"""
Local View Synchronizer

DESIGN DECISION: The server is the only source of truth. After every
successful request the client replaces its local copies with what the
server returned and then re-derives everything that depends on them:

1. Deterministic ordering of every collection
2. Whether a new transaction belongs in the current filtered view
3. Which pending/completed list a planned operation lives in
4. Form selections and list filters that may now point at an archived,
   hidden or deleted entity

Every operation is a pure, synchronous transformation of already
fetched data. None of them can fail, and none of them is called when
the triggering request failed, so a failure never leaves a partial
update behind.

Sorting is stable and every sort key ends with the entity id, which
makes re-applying the same payload a no-op.
"""

from datetime import date
from typing import Iterable, Optional

from family_budget.models.budget import (
    Account,
    Category,
    DisplaySettings,
    FamilyMember,
    PlannedOperation,
    RegisterResponse,
    ReportsOverview,
    Transaction,
    TransactionType,
    UserSettingsSummary,
)
from family_budget.models.view_state import (
    BudgetViewState,
    PeriodFilter,
    Section,
    SectionStatus,
    TransactionFilters,
)


# =============================================================================
# ORDERING RULES
# =============================================================================

def sort_categories(categories: Iterable[Category]) -> list[Category]:
    """Active categories first, alphabetical within each group."""
    return sorted(categories, key=lambda c: (c.is_archived, c.name, c.id))


def sort_accounts(accounts: Iterable[Account]) -> list[Account]:
    """Oldest first, i.e. the order the family created them in."""
    return sorted(accounts, key=lambda a: (a.created_at, a.id))


def sort_members(members: Iterable[FamilyMember]) -> list[FamilyMember]:
    return sorted(members, key=lambda m: (m.name, m.id))


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Most recent first."""
    return sorted(transactions, key=lambda t: (t.occurred_at, t.id), reverse=True)


def sort_pending(operations: Iterable[PlannedOperation]) -> list[PlannedOperation]:
    """Soonest due first."""
    return sorted(operations, key=lambda op: (op.due_at, op.id))


def sort_completed(operations: Iterable[PlannedOperation]) -> list[PlannedOperation]:
    """Most recently completed first."""
    return sorted(operations, key=lambda op: (op.completed_sort_time, op.id), reverse=True)


def _without(items: Iterable, item_id: str) -> list:
    return [item for item in items if item.id != item_id]


# =============================================================================
# SYNCHRONIZER
# =============================================================================

class LocalViewSynchronizer:
    """
    Applies server results to one BudgetViewState.

    The orchestrator calls these operations after a request succeeds;
    the UI calls the selection/filter operations on user input. Nothing
    else writes to the state.
    """

    def __init__(self, state: Optional[BudgetViewState] = None):
        self._state = state or BudgetViewState()

    @property
    def state(self) -> BudgetViewState:
        return self._state

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def apply_category_list(self, categories: Iterable[Category]) -> None:
        self._state.categories = sort_categories(categories)
        self.reconcile_selections()

    def upsert_category(self, category: Category) -> None:
        """
        Replace or add one category.

        Used for create, edit and archive responses alike: the server
        always returns the full resulting entity.
        """
        remaining = _without(self._state.categories, category.id)
        self._state.categories = sort_categories([*remaining, category])
        self.reconcile_selections()

    def begin_category_edit(self, category_id: str) -> None:
        if self._state.find_category(category_id) is not None:
            self._state.selection.editing_category_id = category_id

    def end_category_edit(self) -> None:
        self._state.selection.editing_category_id = None

    # -------------------------------------------------------------------------
    # Accounts and members
    # -------------------------------------------------------------------------

    def apply_account_list(
        self,
        accounts: Iterable[Account],
        preferred_account_id: Optional[str] = None,
    ) -> None:
        """
        Replace the account list.

        Args:
            accounts: Accounts as returned by the server
            preferred_account_id: Account the user just created or used;
                it becomes the transaction-entry account if visible
        """
        self._state.accounts = sort_accounts(accounts)
        if preferred_account_id and any(
            a.id == preferred_account_id for a in self._state.visible_accounts
        ):
            self._state.selection.transaction_account_id = preferred_account_id
        self.reconcile_selections()

    def upsert_account(self, account: Account, select: bool = False) -> None:
        remaining = _without(self._state.accounts, account.id)
        self.apply_account_list(
            [*remaining, account],
            preferred_account_id=account.id if select else None,
        )

    def apply_member_list(self, members: Iterable[FamilyMember]) -> None:
        self._state.members = sort_members(members)
        self.reconcile_selections()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def apply_transaction_list(self, transactions: Iterable[Transaction]) -> None:
        """Replace the window of transactions currently in view."""
        self._state.transactions = sort_transactions(transactions)

    def transaction_in_view(self, transaction: Transaction) -> bool:
        """Would the current period and filters show this transaction?"""
        return (
            self._state.period.contains(transaction.occurred_at)
            and self._state.filters.matches(transaction)
        )

    def insert_transaction(self, transaction: Transaction) -> bool:
        """
        Add a newly created transaction to the view if it belongs there.

        Transactions outside the period or filters are dropped from the
        view only; they exist on the server and show up after a reload.

        Returns:
            True if the transaction is now in the list
        """
        if not self.transaction_in_view(transaction):
            return False
        remaining = _without(self._state.transactions, transaction.id)
        self._state.transactions = sort_transactions([*remaining, transaction])
        return True

    # -------------------------------------------------------------------------
    # Planned operations
    # -------------------------------------------------------------------------

    def apply_planned_operations(
        self,
        pending: Iterable[PlannedOperation],
        completed: Iterable[PlannedOperation],
    ) -> None:
        self._state.pending_operations = sort_pending(pending)
        self._state.completed_operations = sort_completed(completed)

    def upsert_planned_operation(self, operation: PlannedOperation) -> None:
        """Place a created or updated operation into the list its state demands."""
        pending = _without(self._state.pending_operations, operation.id)
        completed = _without(self._state.completed_operations, operation.id)
        if operation.is_completed:
            completed.append(operation)
        else:
            pending.append(operation)
        self._state.pending_operations = sort_pending(pending)
        self._state.completed_operations = sort_completed(completed)

    def complete_planned_operation(self, updated: PlannedOperation) -> None:
        """
        Apply the server's answer to a completion request.

        List membership depends only on `is_completed`: a one-off
        operation moves to the completed list, a recurring one may come
        back pending with its next due date. Applying the same terminal
        state twice changes nothing.
        """
        self.upsert_planned_operation(updated)

    def set_planned_type(self, operation_type: TransactionType) -> None:
        self._state.selection.planned_type = operation_type
        self.reconcile_selections()

    # -------------------------------------------------------------------------
    # Settings, registration, reports
    # -------------------------------------------------------------------------

    def apply_display_settings(self, display: DisplaySettings) -> None:
        self._state.display = display
        self.reconcile_selections()

    def apply_settings(self, summary: UserSettingsSummary) -> None:
        """Store settings and the category/account lists sent with them."""
        self._state.settings = summary
        self._state.display = summary.user.display
        self._state.categories = sort_categories(summary.categories)
        self._state.accounts = sort_accounts(summary.accounts)
        self.reconcile_selections()

    def apply_registration(self, response: RegisterResponse) -> None:
        """Start a fresh view for a newly registered user."""
        self._state.user = response.user
        self._state.family = response.family
        self._state.categories = sort_categories(response.categories)
        self._state.accounts = sort_accounts(response.accounts)
        self._state.members = sort_members(response.members)
        self._state.transactions = []
        self._state.pending_operations = []
        self._state.completed_operations = []
        self._state.reports = None
        self.reconcile_selections()

    def apply_reports(self, reports: Optional[ReportsOverview]) -> None:
        self._state.reports = reports

    # -------------------------------------------------------------------------
    # Period, filters, selections
    # -------------------------------------------------------------------------

    def set_period(self, start: Optional[date], end: Optional[date]) -> None:
        self._state.period = PeriodFilter(start=start, end=end)

    def set_filters(self, filters: TransactionFilters) -> None:
        self._state.filters = filters.model_copy()
        self.reconcile_selections()

    def select_transaction_category(self, category_id: Optional[str]) -> None:
        self._state.selection.transaction_category_id = category_id
        self.reconcile_selections()

    def select_transaction_account(self, account_id: Optional[str]) -> None:
        self._state.selection.transaction_account_id = account_id
        self.reconcile_selections()

    def select_planned_account(self, account_id: Optional[str]) -> None:
        self._state.selection.planned_account_id = account_id
        self.reconcile_selections()

    def select_planned_category(self, category_id: Optional[str]) -> None:
        self._state.selection.planned_category_id = category_id
        self.reconcile_selections()

    def reconcile_selections(self) -> None:
        """
        Repair selections and filters that point at unusable entities.

        Safe to run any number of times; a second run changes nothing.
        """
        state = self._state
        selection = state.selection

        active_ids = [c.id for c in state.active_categories]
        if selection.transaction_category_id not in active_ids:
            selection.transaction_category_id = active_ids[0] if active_ids else None

        visible_ids = [a.id for a in state.visible_accounts]
        if selection.transaction_account_id not in visible_ids:
            selection.transaction_account_id = visible_ids[0] if visible_ids else None
        if selection.planned_account_id not in visible_ids:
            selection.planned_account_id = visible_ids[0] if visible_ids else None

        planned_ids = [c.id for c in state.planned_categories()]
        if selection.planned_category_id not in planned_ids:
            selection.planned_category_id = planned_ids[0] if planned_ids else None

        if selection.editing_category_id is not None:
            editing = state.find_category(selection.editing_category_id)
            if editing is None or editing.is_archived:
                selection.editing_category_id = None

        filters = state.filters
        if filters.category_id and state.find_category(filters.category_id) is None:
            filters.category_id = None
        if filters.account_id and state.find_account(filters.account_id) is None:
            filters.account_id = None
        if filters.member_id and not any(m.id == filters.member_id for m in state.members):
            filters.member_id = None

    # -------------------------------------------------------------------------
    # Section statuses
    # -------------------------------------------------------------------------

    def set_status(self, section: Section, message: str, is_error: bool = False) -> None:
        self._state.statuses[section] = SectionStatus(message=message, is_error=is_error)

    def clear_status(self, section: Section) -> None:
        self._state.statuses.pop(section, None)
