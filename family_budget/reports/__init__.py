"""Report display helpers."""

from family_budget.reports.overview import (
    account_name,
    account_totals,
    category_name,
    format_money,
    format_totals,
    period_label,
    recurrence_label,
    role_label,
)

__all__ = [
    "account_name",
    "account_totals",
    "category_name",
    "format_money",
    "format_totals",
    "period_label",
    "recurrence_label",
    "role_label",
]
