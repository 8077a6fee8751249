"""
Local Report Derivations

DESIGN DECISION: All report numbers come from the server.
This module only reshapes what the server returned for display:
per-currency totals of account balances, labels and money formatting.
It never estimates or fills in anything the server did not send.
"""

from decimal import Decimal
from typing import Optional

from family_budget.models.budget import (
    Account,
    Category,
    CurrencyAmount,
    MemberRole,
    Recurrence,
    ReportsOverview,
)
from family_budget.models.view_state import PeriodFilter


ROLE_LABELS = {
    MemberRole.OWNER.value: "Owner",
    MemberRole.ADULT.value: "Member",
    MemberRole.JUNIOR.value: "Guest",
}

RECURRENCE_LABELS = {
    Recurrence.NONE: "Once",
    Recurrence.WEEKLY: "Weekly",
    Recurrence.MONTHLY: "Monthly",
    Recurrence.YEARLY: "Yearly",
}


def account_totals(reports: Optional[ReportsOverview]) -> list[CurrencyAmount]:
    """
    Sum account balances per currency.

    Currencies keep the order in which they first appear.
    """
    if reports is None:
        return []
    totals: dict[str, int] = {}
    for balance in reports.account_balances:
        totals[balance.currency] = totals.get(balance.currency, 0) + balance.balance_minor
    return [
        CurrencyAmount(currency=currency, amount_minor=amount)
        for currency, amount in totals.items()
    ]


def format_money(amount_minor: int, currency: str) -> str:
    """
    Format minor units as a major-unit amount with two decimals.

    >>> format_money(123456, "RUB")
    '1,234.56 RUB'
    """
    value = Decimal(amount_minor) / Decimal(100)
    return f"{value:,.2f} {currency}"


def format_totals(totals: list[CurrencyAmount]) -> str:
    if not totals:
        return "0"
    return " · ".join(format_money(t.amount_minor, t.currency) for t in totals)


def period_label(period: PeriodFilter) -> str:
    if period.start and period.end:
        return f"from {period.start.isoformat()} to {period.end.isoformat()}"
    if period.start:
        return f"from {period.start.isoformat()}"
    if period.end:
        return f"until {period.end.isoformat()}"
    return "all time"


def role_label(role: str) -> str:
    """Unknown roles are shown as sent."""
    return ROLE_LABELS.get(role, role)


def recurrence_label(recurrence: Recurrence) -> str:
    return RECURRENCE_LABELS.get(recurrence, recurrence.value)


def category_name(categories: list[Category], category_id: str) -> str:
    found = next((c for c in categories if c.id == category_id), None)
    return found.name if found else "Unknown category"


def account_name(accounts: list[Account], account_id: str) -> str:
    found = next((a for a in accounts if a.id == account_id), None)
    return found.name if found else "Unknown account"
