"""
Abstract Budget Service Interface

DESIGN DECISION: We define an abstract interface for the backend.
This allows us to:
1. Talk to the real REST backend over HTTP in production
2. Use an in-memory fake in tests and demos
3. Keep the orchestrator decoupled from transport details

One method per backend endpoint. Each returns decoded models or raises
a BudgetServiceError subclass; none of them touches local view state.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from family_budget.models.budget import (
    Account,
    AccountPayload,
    Category,
    CategoryPayload,
    CompletePlannedOperationPayload,
    CompletePlannedOperationResponse,
    FamilyMember,
    PlannedOperation,
    PlannedOperationPayload,
    PlannedOperationsResponse,
    RegisterRequest,
    RegisterResponse,
    ReportsOverview,
    Transaction,
    TransactionQuery,
    TransactionRequest,
    UpdateSettingsRequest,
    UserSettingsSummary,
)


class BudgetServiceInterface(ABC):
    """
    Abstract interface for the budget backend.

    Any implementation (HTTP, in-memory fake) must implement these methods.
    """

    @abstractmethod
    async def register(self, payload: RegisterRequest) -> RegisterResponse:
        """
        Register a user, creating a family or joining an existing one.

        Returns:
            The user, family and the family's categories, accounts and members

        Raises:
            BudgetServiceError: If the request fails
        """
        pass

    # Categories

    @abstractmethod
    async def list_categories(self, user_id: str) -> list[Category]:
        pass

    @abstractmethod
    async def create_category(self, user_id: str, payload: CategoryPayload) -> Category:
        pass

    @abstractmethod
    async def update_category(
        self,
        user_id: str,
        category_id: str,
        payload: CategoryPayload,
    ) -> Category:
        pass

    @abstractmethod
    async def set_category_archived(
        self,
        user_id: str,
        category_id: str,
        archived: bool,
    ) -> Category:
        """Archive or restore a category; returns the resulting category."""
        pass

    # Accounts and members

    @abstractmethod
    async def list_accounts(self, user_id: str) -> list[Account]:
        pass

    @abstractmethod
    async def create_account(self, user_id: str, payload: AccountPayload) -> Account:
        pass

    @abstractmethod
    async def list_members(self, user_id: str) -> list[FamilyMember]:
        pass

    # Settings

    @abstractmethod
    async def get_settings(self, user_id: str) -> UserSettingsSummary:
        pass

    @abstractmethod
    async def update_settings(
        self,
        user_id: str,
        payload: UpdateSettingsRequest,
    ) -> UserSettingsSummary:
        pass

    # Transactions

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        query: Optional[TransactionQuery] = None,
    ) -> list[Transaction]:
        """
        List transactions visible to the user.

        Args:
            user_id: Path user
            query: Period and type/category/account/member filters

        Returns:
            Matching transactions in server order
        """
        pass

    @abstractmethod
    async def create_transaction(self, payload: TransactionRequest) -> Transaction:
        pass

    # Planned operations

    @abstractmethod
    async def list_planned_operations(self, user_id: str) -> PlannedOperationsResponse:
        pass

    @abstractmethod
    async def create_planned_operation(
        self,
        user_id: str,
        payload: PlannedOperationPayload,
    ) -> PlannedOperation:
        pass

    @abstractmethod
    async def complete_planned_operation(
        self,
        user_id: str,
        operation_id: str,
        payload: Optional[CompletePlannedOperationPayload] = None,
    ) -> CompletePlannedOperationResponse:
        """
        Mark a planned operation as done.

        Returns:
            The updated operation and the transaction it produced
        """
        pass

    # Reports

    @abstractmethod
    async def get_reports_overview(
        self,
        user_id: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> ReportsOverview:
        pass

    async def aclose(self) -> None:
        """Release network resources. No-op by default."""
        return None


class BudgetServiceError(Exception):
    """Base exception for backend requests."""
    pass


class TransportError(BudgetServiceError):
    """Could not reach the backend (connection error or timeout)."""
    pass


class DecodeError(BudgetServiceError):
    """The backend answered with a body we could not understand."""

    def __init__(self, message: str = "invalid server response"):
        super().__init__(message)


class ServerError(BudgetServiceError):
    """
    The backend answered with a non-2xx status.

    The response body is the message, as-is.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)
