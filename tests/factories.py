"""
Builders for server entities used across the tests.

Every builder takes keyword overrides on top of a valid default payload,
so a test only spells out the fields it cares about.
"""

from datetime import datetime, timezone

from family_budget.models import (
    Account,
    Category,
    FamilyMember,
    PlannedOperation,
    RegisterResponse,
    ReportsOverview,
    Transaction,
    UserSettingsSummary,
)


def at(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


CREATED = at(2024, 1, 1)

MEMBER = {"id": "u-1", "name": "Anna", "email": "anna@example.com", "role": "owner"}


def make_member(**overrides) -> FamilyMember:
    return FamilyMember.model_validate({**MEMBER, **overrides})


def make_category(**overrides) -> Category:
    data = {
        "id": "c-1",
        "family_id": "f-1",
        "name": "Food",
        "type": "expense",
        "color": "#22c55e",
        "description": "",
        "is_system": False,
        "is_archived": False,
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    return Category.model_validate({**data, **overrides})


def make_account(**overrides) -> Account:
    data = {
        "id": "a-1",
        "family_id": "f-1",
        "name": "Wallet",
        "type": "cash",
        "currency": "RUB",
        "balance_minor": 0,
        "is_shared": True,
        "is_archived": False,
        "created_at": CREATED,
    }
    return Account.model_validate({**data, **overrides})


def make_transaction(**overrides) -> Transaction:
    data = {
        "id": "t-1",
        "family_id": "f-1",
        "user_id": "u-1",
        "account_id": "a-1",
        "category_id": "c-1",
        "type": "expense",
        "amount_minor": 1500,
        "currency": "RUB",
        "comment": None,
        "occurred_at": at(2024, 2, 10),
        "author": MEMBER,
    }
    return Transaction.model_validate({**data, **overrides})


def make_planned(**overrides) -> PlannedOperation:
    data = {
        "id": "p-1",
        "family_id": "f-1",
        "user_id": "u-1",
        "account_id": "a-1",
        "category_id": "c-1",
        "type": "expense",
        "title": "Rent",
        "amount_minor": 50000,
        "currency": "RUB",
        "due_at": at(2024, 3, 1, 0),
        "recurrence": None,
        "is_completed": False,
        "created_at": CREATED,
        "updated_at": CREATED,
        "creator": MEMBER,
    }
    return PlannedOperation.model_validate({**data, **overrides})


def make_registration(categories=(), accounts=(), members=None) -> RegisterResponse:
    return RegisterResponse.model_validate({
        "user": {
            "id": "u-1",
            "family_id": "f-1",
            "email": "anna@example.com",
            "name": "Anna",
            "role": "owner",
            "locale": "ru-RU",
            "currency_default": "RUB",
            "created_at": CREATED,
            "updated_at": CREATED,
        },
        "family": {"id": "f-1", "name": "Family", "currency_base": "RUB"},
        "categories": [c.model_dump() for c in categories],
        "accounts": [a.model_dump() for a in accounts],
        "members": [MEMBER] if members is None else members,
    })


def make_settings(categories=(), accounts=(), show_archived=False) -> UserSettingsSummary:
    return UserSettingsSummary.model_validate({
        "supported_currencies": ["RUB", "USD", "EUR"],
        "family": {"id": "f-1", "name": "Family", "currency_base": "RUB"},
        "user": {
            "id": "u-1",
            "locale": "ru-RU",
            "currency_default": "RUB",
            "display": {
                "theme": "dark",
                "density": "compact",
                "show_archived": show_archived,
                "show_totals_in_family_currency": False,
            },
        },
        "categories": [c.model_dump() for c in categories],
        "accounts": [a.model_dump() for a in accounts],
    })


def make_reports(balances=()) -> ReportsOverview:
    return ReportsOverview.model_validate({
        "period": {"start_date": at(2024, 2, 1, 0), "end_date": None},
        "expenses": {
            "totals": [{"currency": "RUB", "amount_minor": 1500}],
            "by_category": [{
                "category_id": "c-1",
                "category_name": "Food",
                "category_color": "#22c55e",
                "currency": "RUB",
                "amount_minor": 1500,
            }],
        },
        "incomes": {"totals": [], "by_category": []},
        "account_balances": list(balances),
    })
