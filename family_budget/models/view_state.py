"""
View State Models

One explicit, serializable state object per budget screen. It holds the
local copies of server collections together with everything the screen
derives from them: the active period and filters, the selections used
by the entry forms and one status message per section.

The state is only changed through LocalViewSynchronizer operations, so
it can be built, inspected and compared in tests without any UI.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from family_budget.models.budget import (
    Account,
    Category,
    DisplaySettings,
    Family,
    FamilyMember,
    PlannedOperation,
    ReportsOverview,
    Transaction,
    TransactionQuery,
    TransactionType,
    User,
    UserSettingsSummary,
)
from family_budget.models.dates import end_of_day_utc, start_of_day_utc


class Section(str, Enum):
    """Screen sections that report their own status message."""
    REGISTRATION = "registration"
    CATEGORIES = "categories"
    ACCOUNTS = "accounts"
    MEMBERS = "members"
    TRANSACTIONS = "transactions"
    PLANNED = "planned"
    REPORTS = "reports"
    SETTINGS = "settings"


class SectionStatus(BaseModel):
    message: str
    is_error: bool = False


class PeriodFilter(BaseModel):
    """
    Calendar period the transaction list and reports are limited to.

    Either bound may be missing, in which case that side is open.
    """

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def start_bound(self) -> Optional[datetime]:
        return start_of_day_utc(self.start) if self.start else None

    @property
    def end_bound(self) -> Optional[datetime]:
        return end_of_day_utc(self.end) if self.end else None

    def contains(self, moment: datetime) -> bool:
        start, end = self.start_bound, self.end_bound
        if start is not None and moment < start:
            return False
        if end is not None and moment > end:
            return False
        return True


class TransactionFilters(BaseModel):
    """Type/category/account/member filters of the transaction list."""

    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    member_id: Optional[str] = None

    def matches(self, transaction: Transaction) -> bool:
        if self.type and transaction.type != self.type:
            return False
        if self.category_id and transaction.category_id != self.category_id:
            return False
        if self.account_id and transaction.account_id != self.account_id:
            return False
        if self.member_id and transaction.author.id != self.member_id:
            return False
        return True

    def to_query(self, period: PeriodFilter) -> TransactionQuery:
        return TransactionQuery(
            start_date=period.start_bound,
            end_date=period.end_bound,
            type=self.type,
            category_id=self.category_id,
            account_id=self.account_id,
            user_id=self.member_id,
        )


class SelectionState(BaseModel):
    """Ids currently chosen in the entry forms."""

    transaction_category_id: Optional[str] = None
    transaction_account_id: Optional[str] = None
    planned_account_id: Optional[str] = None
    planned_category_id: Optional[str] = None
    planned_type: TransactionType = TransactionType.EXPENSE
    # Category currently loaded into the edit form
    editing_category_id: Optional[str] = None


class BudgetViewState(BaseModel):
    """Everything one budget screen shows."""

    user: Optional[User] = None
    family: Optional[Family] = None
    settings: Optional[UserSettingsSummary] = None
    display: DisplaySettings = Field(default_factory=DisplaySettings)

    categories: list[Category] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    members: list[FamilyMember] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    pending_operations: list[PlannedOperation] = Field(default_factory=list)
    completed_operations: list[PlannedOperation] = Field(default_factory=list)
    reports: Optional[ReportsOverview] = None

    period: PeriodFilter = Field(default_factory=PeriodFilter)
    filters: TransactionFilters = Field(default_factory=TransactionFilters)
    selection: SelectionState = Field(default_factory=SelectionState)
    statuses: dict[Section, SectionStatus] = Field(default_factory=dict)

    @property
    def is_registered(self) -> bool:
        return self.user is not None

    @property
    def active_categories(self) -> list[Category]:
        return [c for c in self.categories if not c.is_archived]

    @property
    def archived_categories(self) -> list[Category]:
        return [c for c in self.categories if c.is_archived]

    @property
    def visible_accounts(self) -> list[Account]:
        """Accounts offered in pickers; archived ones only when shown."""
        if self.display.show_archived:
            return list(self.accounts)
        return [a for a in self.accounts if not a.is_archived]

    def planned_categories(self, operation_type: Optional[TransactionType] = None) -> list[Category]:
        operation_type = operation_type or self.selection.planned_type
        return [c for c in self.active_categories if c.type.value == operation_type.value]

    def find_category(self, category_id: Optional[str]) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def status(self, section: Section) -> Optional[SectionStatus]:
        return self.statuses.get(section)
