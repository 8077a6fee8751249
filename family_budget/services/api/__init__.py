"""
Budget API Services Package

Provides the abstract backend interface, its HTTP implementation and
the error taxonomy every request failure maps onto.
"""

from family_budget.services.api.interface import (
    BudgetServiceError,
    BudgetServiceInterface,
    DecodeError,
    ServerError,
    TransportError,
)
from family_budget.services.api.http_client import HttpBudgetService

__all__ = [
    # Interface
    "BudgetServiceInterface",
    # Exceptions
    "BudgetServiceError",
    "DecodeError",
    "ServerError",
    "TransportError",
    # HTTP implementation
    "HttpBudgetService",
]
