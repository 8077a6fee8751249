"""
Core Data Models for Family Budget

These models mirror the JSON exchanged with the budget backend.
They are designed to:
1. Decode server payloads strictly enough to catch malformed responses
2. Encode request payloads in the exact wire format (snake_case keys,
   millisecond UTC timestamps, integer minor units)
3. Stay immutable once received

DESIGN DECISION: Server entities are frozen. The client never edits an
entity in place; it replaces it wholesale with whatever the server
returned for the last request.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from family_budget.models.dates import UtcDatetime, format_wire_datetime


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryType(str, Enum):
    """Kind of money movement a category groups."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionType(str, Enum):
    """Transactions and planned operations are either income or expense."""
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK = "bank"
    DEPOSIT = "deposit"
    WALLET = "wallet"


class MemberRole(str, Enum):
    """
    Family member roles known to the client.

    Member models keep the role as a plain string so that a role added on
    the server later still decodes; this enum is used for labels.
    """
    OWNER = "owner"
    ADULT = "adult"
    JUNIOR = "junior"


class Recurrence(str, Enum):
    """How often a planned operation repeats."""
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Theme(str, Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


class Density(str, Enum):
    COMFORTABLE = "comfortable"
    COMPACT = "compact"


# =============================================================================
# SERVER ENTITIES
# =============================================================================

class FamilyMember(BaseModel):
    """Member summary; also embedded as transaction author / plan creator."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str = ""
    role: str = MemberRole.ADULT.value


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    family_id: str
    email: str
    name: str
    role: str
    locale: str = ""
    currency_default: str
    created_at: UtcDatetime
    updated_at: UtcDatetime


class Family(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    currency_base: str
    created_at: Optional[UtcDatetime] = None


class Category(BaseModel):
    """
    Transaction category.

    Categories form a tree through parent_id; the UI only uses one level
    of nesting. System categories cannot be archived from the client.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    family_id: str
    parent_id: Optional[str] = None
    name: str
    type: CategoryType
    color: str = ""
    description: str = ""
    is_system: bool = False
    is_archived: bool = False
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @field_validator('description', mode='before')
    @classmethod
    def none_description_is_empty(cls, v):
        return "" if v is None else v

    @property
    def is_active(self) -> bool:
        return not self.is_archived


class Account(BaseModel):
    """Money account; balances are integer minor units."""
    model_config = ConfigDict(frozen=True)

    id: str
    family_id: str
    name: str
    type: AccountType
    currency: str
    balance_minor: int = 0
    is_shared: bool = True
    is_archived: bool = False
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None


class Transaction(BaseModel):
    """
    A recorded income or expense.

    The sign of the amount is implied by `type`; amount_minor itself is
    what the user typed.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    family_id: str
    user_id: str
    account_id: str
    category_id: str
    type: TransactionType
    amount_minor: int
    currency: str
    comment: Optional[str] = None
    occurred_at: UtcDatetime
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None
    author: FamilyMember


class PlannedOperation(BaseModel):
    """
    A scheduled future transaction.

    Pending until completed; completing one produces a real transaction
    on the server. There is no way back to pending from the client.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    family_id: str
    user_id: str
    account_id: str
    category_id: str
    type: TransactionType
    title: str
    amount_minor: int
    currency: str
    comment: Optional[str] = None
    due_at: UtcDatetime
    recurrence: Recurrence = Recurrence.NONE
    is_completed: bool = False
    last_completed_at: Optional[UtcDatetime] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    creator: FamilyMember

    @field_validator('recurrence', mode='before')
    @classmethod
    def empty_recurrence_is_none(cls, v):
        """The server sends null or "" for one-off operations."""
        if v is None or v == "":
            return Recurrence.NONE
        return v

    @property
    def completed_sort_time(self) -> datetime:
        """When the operation was last completed, falling back to updated_at."""
        return self.last_completed_at or self.updated_at


# =============================================================================
# SETTINGS
# =============================================================================

class DisplaySettings(BaseModel):
    """Per-user presentation preferences. They never affect stored data."""

    theme: Theme = Theme.SYSTEM
    density: Density = Density.COMFORTABLE
    show_archived: bool = False
    show_totals_in_family_currency: bool = False

    @field_validator('theme', 'density', mode='before')
    @classmethod
    def normalize_choice(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class FamilySettings(BaseModel):
    id: str
    name: str
    currency_base: str


class UserPreferences(BaseModel):
    id: str
    locale: str = ""
    currency_default: str
    display: DisplaySettings = Field(default_factory=DisplaySettings)


class UserSettingsSummary(BaseModel):
    """
    Response of GET/PUT /users/{id}/settings.

    The backend also returns the current category and account lists so
    that archive visibility changes can be applied in one step.
    """
    model_config = ConfigDict(frozen=True)

    supported_currencies: list[str] = Field(default_factory=list)
    family: FamilySettings
    user: UserPreferences
    categories: list[Category] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)


# =============================================================================
# REPORTS
# =============================================================================

class CurrencyAmount(BaseModel):
    currency: str
    amount_minor: int


class CategoryReportItem(BaseModel):
    category_id: str
    category_name: str
    category_color: str = ""
    currency: str
    amount_minor: int


class MovementReport(BaseModel):
    totals: list[CurrencyAmount] = Field(default_factory=list)
    by_category: list[CategoryReportItem] = Field(default_factory=list)


class AccountBalanceReport(BaseModel):
    account_id: str
    account_name: str
    account_type: AccountType
    currency: str
    balance_minor: int
    is_shared: bool = True
    is_archived: bool = False


class ReportPeriod(BaseModel):
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None


class ReportsOverview(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: ReportPeriod = Field(default_factory=ReportPeriod)
    expenses: MovementReport = Field(default_factory=MovementReport)
    incomes: MovementReport = Field(default_factory=MovementReport)
    account_balances: list[AccountBalanceReport] = Field(default_factory=list)


# =============================================================================
# RESPONSES WITH MORE THAN ONE ENTITY
# =============================================================================

class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: User
    family: Family
    categories: list[Category] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    members: list[FamilyMember] = Field(default_factory=list)


class PlannedOperationsResponse(BaseModel):
    planned_operations: list[PlannedOperation] = Field(default_factory=list)
    completed_operations: list[PlannedOperation] = Field(default_factory=list)


class CompletePlannedOperationResponse(BaseModel):
    planned_operation: PlannedOperation
    transaction: Transaction


# =============================================================================
# REQUEST PAYLOADS
# =============================================================================

class _Payload(BaseModel):
    """Base for request bodies: strips whitespace, dumps wire JSON."""
    model_config = ConfigDict(str_strip_whitespace=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class RegisterRequest(_Payload):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    locale: Optional[str] = None
    currency: str = Field(..., min_length=3, max_length=3)
    family_name: Optional[str] = None
    # Join an existing family instead of creating a new one
    family_id: Optional[str] = None

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('family_name', 'family_id', 'locale')
    @classmethod
    def blank_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class CategoryPayload(_Payload):
    name: str = Field(..., min_length=1)
    type: CategoryType
    color: str = "#0ea5e9"
    description: str = ""
    parent_id: Optional[str] = None

    def to_wire(self) -> dict:
        # parent_id is sent explicitly as null to detach from a parent
        data = self.model_dump(mode="json")
        data["parent_id"] = self.parent_id or None
        return data


class CategoryArchivePayload(_Payload):
    archived: bool


class AccountPayload(_Payload):
    name: str = Field(..., min_length=1)
    type: AccountType = AccountType.CASH
    currency: Optional[str] = None
    initial_balance_minor: Optional[int] = None
    shared: bool = True

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else None

    @field_validator('initial_balance_minor')
    @classmethod
    def zero_balance_is_missing(cls, v: Optional[int]) -> Optional[int]:
        return v or None


class TransactionRequest(_Payload):
    user_id: str
    account_id: str
    category_id: str
    type: TransactionType
    amount_minor: int
    currency: str
    comment: Optional[str] = None
    occurred_at: datetime

    @field_validator('amount_minor')
    @classmethod
    def amount_not_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Amount cannot be zero")
        return v

    @field_validator('comment')
    @classmethod
    def blank_comment_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_serializer('occurred_at')
    def serialize_occurred_at(self, value: datetime) -> str:
        return format_wire_datetime(value)


class PlannedOperationPayload(_Payload):
    account_id: str
    category_id: str
    type: TransactionType
    title: str = Field(..., min_length=1)
    amount_minor: int = Field(..., gt=0)
    currency: Optional[str] = None
    comment: Optional[str] = None
    due_at: datetime
    recurrence: Optional[Recurrence] = None

    @field_validator('comment')
    @classmethod
    def blank_comment_is_missing(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_serializer('due_at')
    def serialize_due_at(self, value: datetime) -> str:
        return format_wire_datetime(value)


class CompletePlannedOperationPayload(_Payload):
    occurred_at: Optional[datetime] = None

    @field_serializer('occurred_at')
    def serialize_occurred_at(self, value: Optional[datetime]) -> Optional[str]:
        return format_wire_datetime(value) if value else None


class UpdateSettingsRequest(_Payload):
    family_currency: Optional[str] = None
    user_currency: str = ""
    locale: str = ""
    display: DisplaySettings = Field(default_factory=DisplaySettings)

    @field_validator('family_currency', 'user_currency')
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class TransactionQuery(BaseModel):
    """Query-string filters for GET /users/{id}/transactions."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    type: Optional[TransactionType] = None
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    user_id: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.start_date:
            params["start_date"] = format_wire_datetime(self.start_date)
        if self.end_date:
            params["end_date"] = format_wire_datetime(self.end_date)
        if self.type:
            params["type"] = self.type.value
        for key in ("category_id", "account_id", "user_id"):
            value = getattr(self, key)
            if value:
                params[key] = value
        return params


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in user input before a request is sent."""

    field: str = Field(
        ...,
        description="Form field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_integer', 'zero_amount')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of a pre-flight check. Any error blocks the request."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def first_error(self) -> Optional[str]:
        """Message shown inline next to the form."""
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None
