"""Local view synchronization package."""

from family_budget.sync.synchronizer import (
    LocalViewSynchronizer,
    sort_accounts,
    sort_categories,
    sort_completed,
    sort_members,
    sort_pending,
    sort_transactions,
)

__all__ = [
    "LocalViewSynchronizer",
    "sort_accounts",
    "sort_categories",
    "sort_completed",
    "sort_members",
    "sort_pending",
    "sort_transactions",
]
