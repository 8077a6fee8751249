"""
Integration tests for BudgetSession flows.

The backend is an in-memory fake that returns canned entities, records
every call and can be told to fail any method.
"""

import asyncio
from datetime import date

import pytest

from family_budget.config import get_settings
from family_budget.models import (
    AuditEventType,
    CompletePlannedOperationResponse,
    PlannedOperationsResponse,
    Section,
    TransactionFilters,
    TransactionType,
)
from family_budget.orchestrator import BudgetSession, create_session
from family_budget.services.api import (
    BudgetServiceInterface,
    DecodeError,
    ServerError,
    TransportError,
)

from tests.factories import (
    at,
    make_account,
    make_category,
    make_member,
    make_planned,
    make_registration,
    make_reports,
    make_settings,
    make_transaction,
)


class FakeBudgetService(BudgetServiceInterface):
    """In-memory backend double."""

    def __init__(self):
        self.calls = []
        self.failures = {}
        self.hooks = {}
        self.categories = [make_category(id="c-1", name="Food")]
        self.accounts = [make_account(id="a-1", balance_minor=10000)]
        self.members = [make_member()]
        self.transactions = []
        self.pending = [make_planned(id="p-1", due_at=at(2024, 2, 20, 0))]
        self.completed = []
        self.reports = make_reports()
        self.next_transaction = make_transaction(id="t-new", occurred_at=at(2024, 2, 10))

    async def _answer(self, name, result, *args):
        self.calls.append((name, args))
        hook = self.hooks.get(name)
        if hook is not None:
            hook()
        if name in self.failures:
            raise self.failures[name]
        return result

    async def register(self, payload):
        return await self._answer("register", make_registration(
            categories=self.categories, accounts=self.accounts,
        ), payload)

    async def list_categories(self, user_id):
        return await self._answer("list_categories", list(self.categories), user_id)

    async def create_category(self, user_id, payload):
        category = make_category(id="c-new", name=payload.name, type=payload.type.value)
        return await self._answer("create_category", category, user_id, payload)

    async def update_category(self, user_id, category_id, payload):
        category = make_category(id=category_id, name=payload.name, type=payload.type.value)
        return await self._answer("update_category", category, user_id, category_id, payload)

    async def set_category_archived(self, user_id, category_id, archived):
        category = make_category(id=category_id, is_archived=archived)
        return await self._answer("set_category_archived", category, user_id, category_id, archived)

    async def list_accounts(self, user_id):
        return await self._answer("list_accounts", list(self.accounts), user_id)

    async def create_account(self, user_id, payload):
        account = make_account(
            id="a-new",
            name=payload.name,
            currency=payload.currency or "RUB",
            created_at=at(2024, 2, 1),
        )
        return await self._answer("create_account", account, user_id, payload)

    async def list_members(self, user_id):
        return await self._answer("list_members", list(self.members), user_id)

    async def get_settings(self, user_id):
        return await self._answer("get_settings", make_settings(self.categories, self.accounts), user_id)

    async def update_settings(self, user_id, payload):
        summary = make_settings(
            self.categories, self.accounts, show_archived=payload.display.show_archived
        )
        return await self._answer("update_settings", summary, user_id, payload)

    async def list_transactions(self, user_id, query=None):
        return await self._answer("list_transactions", list(self.transactions), user_id, query)

    async def create_transaction(self, payload):
        return await self._answer("create_transaction", self.next_transaction, payload)

    async def list_planned_operations(self, user_id):
        response = PlannedOperationsResponse(
            planned_operations=self.pending, completed_operations=self.completed
        )
        return await self._answer("list_planned_operations", response, user_id)

    async def create_planned_operation(self, user_id, payload):
        operation = make_planned(id="p-new", title=payload.title, due_at=payload.due_at)
        return await self._answer("create_planned_operation", operation, user_id, payload)

    async def complete_planned_operation(self, user_id, operation_id, payload=None):
        response = CompletePlannedOperationResponse(
            planned_operation=make_planned(
                id=operation_id, is_completed=True, last_completed_at=at(2024, 2, 20)
            ),
            transaction=make_transaction(id="t-plan", occurred_at=at(2024, 2, 20)),
        )
        return await self._answer("complete_planned_operation", response, user_id, operation_id)

    async def get_reports_overview(self, user_id, start_date=None, end_date=None):
        return await self._answer("get_reports_overview", self.reports, user_id, start_date, end_date)

    def called(self, name):
        return [args for call_name, args in self.calls if call_name == name]


@pytest.fixture
def service():
    return FakeBudgetService()


@pytest.fixture
def session(service):
    return BudgetSession(service)


def run(coro):
    return asyncio.run(coro)


def register(session):
    return run(session.register(
        email="anna@example.com",
        password="secret",
        name="Anna",
        currency="RUB",
    ))


def without_statuses(state):
    return state.model_dump(exclude={"statuses"})


@pytest.fixture
def registered(session):
    """A session registered and switched to February 2024."""
    assert register(session)
    assert run(session.change_period(date(2024, 2, 1), date(2024, 2, 29)))
    return session


class TestRegistration:
    """Tests for the registration flow."""

    def test_register_loads_everything(self, session, service):
        assert register(session)
        state = session.state
        assert state.is_registered
        assert [c.id for c in state.categories] == ["c-1"]
        assert [a.id for a in state.accounts] == ["a-1"]
        assert [op.id for op in state.pending_operations] == ["p-1"]
        assert state.reports is not None
        for name in ["list_categories", "list_accounts", "list_members",
                     "list_planned_operations", "list_transactions", "get_reports_overview"]:
            assert service.called(name), name
        assert state.status(Section.REGISTRATION).message == "Profile created for Anna"

    def test_default_period_is_current_month(self, session):
        period = session.state.period
        assert period.start is not None and period.start.day == 1
        assert period.end is not None

    def test_invalid_input_sends_nothing(self, session, service):
        assert not run(session.register(email="", password="", name="", currency="RUB"))
        assert service.calls == []
        status = session.state.status(Section.REGISTRATION)
        assert status.is_error and status.message == "Email is required"
        events = session.audit_logger.recent_events()
        assert events[0].event_type == AuditEventType.VALIDATION_FAILED

    def test_server_rejection_shown_as_is(self, session, service):
        service.failures["register"] = ServerError(409, "email already registered")
        assert not register(session)
        assert not session.state.is_registered
        assert session.state.status(Section.REGISTRATION).message == "email already registered"

    def test_flows_require_registration(self, session, service):
        assert not run(session.refresh_categories())
        assert service.calls == []
        assert session.state.status(Section.CATEGORIES).is_error

    def test_one_failing_section_does_not_block_others(self, session, service):
        service.failures["list_accounts"] = TransportError("Could not reach the server")
        assert register(session)
        state = session.state
        assert state.status(Section.ACCOUNTS).message == "Could not reach the server"
        assert [a.id for a in state.accounts] == ["a-1"]
        assert state.reports is not None


class TestFailuresLeaveStateUnchanged:
    """A failed request changes nothing but its section's status."""

    @pytest.mark.parametrize("method,flow", [
        ("list_categories", lambda s: s.refresh_categories()),
        ("list_accounts", lambda s: s.refresh_accounts()),
        ("list_members", lambda s: s.refresh_members()),
        ("list_planned_operations", lambda s: s.refresh_planned_operations()),
        ("get_settings", lambda s: s.refresh_settings()),
        ("create_category", lambda s: s.save_category(name="Kids")),
        ("set_category_archived", lambda s: s.set_category_archived("c-1", True)),
        ("create_account", lambda s: s.create_account(name="Card")),
        ("create_transaction", lambda s: s.create_transaction(amount="1500")),
        ("create_planned_operation", lambda s: s.create_planned_operation(
            title="Rent", amount="100", due_date=date(2024, 2, 25))),
        ("complete_planned_operation", lambda s: s.complete_planned_operation("p-1")),
        ("update_settings", lambda s: s.update_settings(
            theme="dark", density="compact", show_archived=True,
            show_totals_in_family_currency=False)),
    ])
    @pytest.mark.parametrize("error", [
        ServerError(500, "boom"),
        TransportError("timeout"),
        DecodeError(),
    ])
    def test_failure(self, registered, service, method, flow, error):
        before = without_statuses(registered.state)
        service.failures[method] = error

        result = run(flow(registered))

        assert not result
        assert without_statuses(registered.state) == before
        errors = [s for s in registered.state.statuses.values() if s.is_error]
        assert [s.message for s in errors] == [str(error)]

    def test_failed_transaction_load_keeps_reports_update(self, registered, service):
        """Test that each half of a period reload applies independently."""
        service.failures["list_transactions"] = ServerError(400, "bad period")
        service.reports = make_reports(balances=[])
        old_transactions = list(registered.state.transactions)

        assert not run(registered.load_transactions_for_period())
        assert registered.state.transactions == old_transactions
        assert registered.state.status(Section.TRANSACTIONS).message == "bad period"
        assert registered.state.status(Section.REPORTS) is None


class TestStaleResponses:
    """Responses for an invalidated screen are discarded."""

    def test_stale_success_discarded(self, registered, service):
        service.accounts = [make_account(id="a-2", name="Card")]
        service.hooks["list_accounts"] = registered.invalidate
        before = without_statuses(registered.state)

        assert not run(registered.refresh_accounts())
        assert without_statuses(registered.state) == before
        assert registered.state.status(Section.ACCOUNTS) is None
        events = registered.audit_logger.recent_events()
        assert events[0].event_type == AuditEventType.STALE_RESPONSE_DISCARDED

    def test_stale_failure_discarded(self, registered, service):
        service.failures["list_members"] = ServerError(500, "boom")
        service.hooks["list_members"] = registered.invalidate

        assert not run(registered.refresh_members())
        assert registered.state.status(Section.MEMBERS) is None

    def test_new_generation_applies(self, registered, service):
        registered.invalidate()
        service.accounts = [make_account(id="a-2", name="Card")]
        assert run(registered.refresh_accounts())
        assert [a.id for a in registered.state.accounts] == ["a-2"]


class TestTransactionFlows:
    """Tests for recording transactions."""

    def test_create_transaction_in_view(self, registered, service):
        tx = run(registered.create_transaction(amount="1500", comment="lunch"))

        assert tx is not None
        assert [t.id for t in registered.state.transactions] == ["t-new"]
        payload = service.called("create_transaction")[0][0]
        assert payload.amount_minor == 1500
        assert payload.currency == "RUB"
        assert payload.account_id == "a-1"
        assert payload.category_id == "c-1"
        assert payload.comment == "lunch"
        # balances and reports reloaded after the write
        assert service.called("list_accounts")[-1] == ("u-1",)
        assert len(service.called("get_reports_overview")) >= 2

    def test_create_transaction_outside_period(self, registered, service):
        service.next_transaction = make_transaction(id="t-old", occurred_at=at(2023, 12, 31))
        tx = run(registered.create_transaction(amount="1500"))

        assert tx is not None
        assert registered.state.transactions == []
        assert "not shown" in registered.state.status(Section.TRANSACTIONS).message

    def test_zero_amount_not_sent(self, registered, service):
        assert run(registered.create_transaction(amount="0")) is None
        assert service.called("create_transaction") == []
        assert registered.state.status(Section.TRANSACTIONS).message == "Amount cannot be zero"

    def test_reversed_period_rejected(self, registered, service):
        calls = len(service.calls)
        assert not run(registered.change_period(date(2024, 3, 1), date(2024, 2, 1)))
        assert len(service.calls) == calls
        assert registered.state.period.start == date(2024, 2, 1)

    def test_change_filters_sends_query(self, registered, service):
        assert run(registered.change_filters(TransactionFilters(type=TransactionType.INCOME)))
        query = service.called("list_transactions")[-1][1]
        assert query.type == TransactionType.INCOME
        assert query.start_date == at(2024, 2, 1, 0)


class TestCategoryFlows:
    """Tests for creating, editing and archiving categories."""

    def test_create_category(self, registered, service):
        category = run(registered.save_category(name="Kids"))
        assert category.id == "c-new"
        assert [c.name for c in registered.state.categories] == ["Food", "Kids"]
        assert service.called("create_category")

    def test_edit_category(self, registered, service):
        registered.synchronizer.begin_category_edit("c-1")
        category = run(registered.save_category(name="Groceries"))

        assert category.id == "c-1"
        assert service.called("update_category")[0][1] == "c-1"
        assert [c.name for c in registered.state.categories] == ["Groceries"]
        assert registered.state.selection.editing_category_id is None

    def test_archive_category(self, registered):
        assert run(registered.set_category_archived("c-1", True))
        assert registered.state.categories[0].is_archived
        assert registered.state.selection.transaction_category_id is None

    def test_system_category_not_archived(self, registered, service):
        service.categories = [make_category(id="c-1", is_system=True)]
        run(registered.refresh_categories())
        assert not run(registered.set_category_archived("c-1", True))
        assert service.called("set_category_archived") == []


class TestAccountFlows:
    def test_create_account_selects_it(self, registered, service):
        account = run(registered.create_account(name="Card", currency="usd", initial_balance="500"))

        assert account.id == "a-new"
        assert registered.state.selection.transaction_account_id == "a-new"
        payload = service.called("create_account")[0][1]
        assert payload.currency == "USD"
        assert payload.initial_balance_minor == 500


class TestPlannedFlows:
    """Tests for planning and completing operations."""

    def test_create_planned_operation(self, registered, service):
        operation = run(registered.create_planned_operation(
            title="Internet", amount="700", due_date=date(2024, 2, 5),
        ))
        assert operation.id == "p-new"
        assert [op.id for op in registered.state.pending_operations] == ["p-new", "p-1"]
        payload = service.called("create_planned_operation")[0][1]
        assert payload.due_at == at(2024, 2, 5, 0)
        assert payload.type == TransactionType.EXPENSE

    def test_uses_selected_account_and_category(self, registered, service):
        service.accounts = [
            make_account(id="a-1"),
            make_account(id="a-2", name="Card", currency="USD", created_at=at(2024, 1, 2)),
        ]
        service.categories = [
            make_category(id="c-1", name="Food"),
            make_category(id="c-2", name="Rent"),
        ]
        run(registered.refresh_accounts())
        run(registered.refresh_categories())
        registered.synchronizer.select_planned_account("a-2")
        registered.synchronizer.select_planned_category("c-2")

        assert run(registered.create_planned_operation(
            title="Rent", amount="50000", due_date=date(2024, 2, 28),
        ))
        payload = service.called("create_planned_operation")[0][1]
        assert payload.account_id == "a-2"
        assert payload.category_id == "c-2"
        assert payload.currency == "USD"

    def test_complete_planned_operation(self, registered, service):
        assert run(registered.complete_planned_operation("p-1"))
        state = registered.state
        assert state.pending_operations == []
        assert [op.id for op in state.completed_operations] == ["p-1"]
        assert [t.id for t in state.transactions] == ["t-plan"]

    def test_complete_unknown_operation(self, registered, service):
        assert not run(registered.complete_planned_operation("p-404"))
        assert service.called("complete_planned_operation") == []


class TestLongNames:
    """Names and titles have no client-side length limit."""

    def test_long_category_name(self, registered, service):
        category = run(registered.save_category(name="x" * 600))
        assert category is not None
        assert service.called("create_category")[0][1].name == "x" * 600

    def test_long_account_name(self, registered, service):
        account = run(registered.create_account(name="a" * 101))
        assert account is not None
        assert service.called("create_account")[0][1].name == "a" * 101

    def test_long_planned_title(self, registered, service):
        operation = run(registered.create_planned_operation(
            title="t" * 600, amount="100", due_date=date(2024, 2, 25),
        ))
        assert operation is not None
        assert service.called("create_planned_operation")[0][1].title == "t" * 600


class TestSettingsFlows:
    def test_update_settings_applies_display(self, registered, service):
        assert run(registered.update_settings(
            theme="Dark",
            density="compact",
            show_archived=True,
            show_totals_in_family_currency=False,
            user_currency="usd",
        ))
        assert registered.state.display.show_archived
        payload = service.called("update_settings")[0][1]
        assert payload.user_currency == "USD"
        assert payload.display.theme.value == "dark"

    def test_invalid_theme_not_sent(self, registered, service):
        assert not run(registered.update_settings(
            theme="neon",
            density="compact",
            show_archived=False,
            show_totals_in_family_currency=False,
        ))
        assert service.called("update_settings") == []


class TestAudit:
    def test_events_share_correlation_id(self, registered):
        run(registered.create_transaction(amount="100"))
        created = registered.audit_logger.recent_events()
        tx_event = next(e for e in created if e.event_type == AuditEventType.TRANSACTION_CREATED)
        related = registered.audit_logger.events_for(tx_event.correlation_id)
        assert tx_event in related
        assert len(related) >= 2


class TestCreateSession:
    """Tests for the session factory."""

    @pytest.fixture
    def levels(self, monkeypatch):
        seen = []
        monkeypatch.setattr("family_budget.orchestrator.configure_logging", seen.append)
        monkeypatch.delenv("BUDGET_APP_LOG_LEVEL", raising=False)
        get_settings.cache_clear()
        yield seen
        get_settings.cache_clear()

    def test_uses_log_level(self, levels, monkeypatch):
        monkeypatch.setenv("BUDGET_APP_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("BUDGET_APP_DEBUG_MODE", "false")
        session = create_session(FakeBudgetService())
        assert isinstance(session, BudgetSession)
        assert levels == ["WARNING"]

    def test_debug_mode_overrides_log_level(self, levels, monkeypatch):
        monkeypatch.setenv("BUDGET_APP_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("BUDGET_APP_DEBUG_MODE", "true")
        create_session(FakeBudgetService())
        assert levels == ["DEBUG"]
