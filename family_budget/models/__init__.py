"""
Data Models Package

This package contains all Pydantic models used by the Family Budget client.
Everything received from or sent to the backend conforms to these schemas.
"""

from family_budget.models.budget import (
    Account,
    AccountBalanceReport,
    AccountPayload,
    AccountType,
    Category,
    CategoryArchivePayload,
    CategoryPayload,
    CategoryReportItem,
    CategoryType,
    CompletePlannedOperationPayload,
    CompletePlannedOperationResponse,
    CurrencyAmount,
    Density,
    DisplaySettings,
    Family,
    FamilyMember,
    FamilySettings,
    MemberRole,
    MovementReport,
    PlannedOperation,
    PlannedOperationPayload,
    PlannedOperationsResponse,
    Recurrence,
    RegisterRequest,
    RegisterResponse,
    ReportPeriod,
    ReportsOverview,
    Theme,
    Transaction,
    TransactionQuery,
    TransactionRequest,
    TransactionType,
    UpdateSettingsRequest,
    User,
    UserPreferences,
    UserSettingsSummary,
    ValidationIssue,
    ValidationResult,
)
from family_budget.models.view_state import (
    BudgetViewState,
    PeriodFilter,
    Section,
    SectionStatus,
    SelectionState,
    TransactionFilters,
)
from family_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "Account",
    "AccountType",
    "Category",
    "CategoryType",
    "Family",
    "FamilyMember",
    "MemberRole",
    "PlannedOperation",
    "Recurrence",
    "Transaction",
    "TransactionType",
    "User",
    # Settings
    "Density",
    "DisplaySettings",
    "FamilySettings",
    "Theme",
    "UserPreferences",
    "UserSettingsSummary",
    # Reports
    "AccountBalanceReport",
    "CategoryReportItem",
    "CurrencyAmount",
    "MovementReport",
    "ReportPeriod",
    "ReportsOverview",
    # Requests and responses
    "AccountPayload",
    "CategoryArchivePayload",
    "CategoryPayload",
    "CompletePlannedOperationPayload",
    "CompletePlannedOperationResponse",
    "PlannedOperationPayload",
    "PlannedOperationsResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TransactionQuery",
    "TransactionRequest",
    "UpdateSettingsRequest",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # View state
    "BudgetViewState",
    "PeriodFilter",
    "Section",
    "SectionStatus",
    "SelectionState",
    "TransactionFilters",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
