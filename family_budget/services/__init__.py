"""Services package."""

from family_budget.services.api import (
    BudgetServiceError,
    BudgetServiceInterface,
    DecodeError,
    HttpBudgetService,
    ServerError,
    TransportError,
)

__all__ = [
    "BudgetServiceError",
    "BudgetServiceInterface",
    "DecodeError",
    "HttpBudgetService",
    "ServerError",
    "TransportError",
]
