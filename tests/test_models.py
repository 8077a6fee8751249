"""
Tests for Family Budget

Test strategy:
1. Unit tests for individual components (models, validators, synchronizer)
2. Integration tests for flows (with an in-memory backend)
3. No real network calls in tests (httpx.MockTransport or fakes)
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from pydantic import ValidationError

from family_budget.models import (
    AccountPayload,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    CategoryPayload,
    CategoryType,
    CompletePlannedOperationPayload,
    DisplaySettings,
    PeriodFilter,
    PlannedOperationPayload,
    Recurrence,
    RegisterRequest,
    Theme,
    TransactionFilters,
    TransactionQuery,
    TransactionRequest,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from family_budget.models.dates import (
    end_of_day_utc,
    format_wire_datetime,
    start_of_day_utc,
    start_of_month,
)

from tests.factories import at, make_category, make_planned, make_transaction


class TestDates:
    """Tests for wire datetime handling."""

    def test_wire_format_has_milliseconds_and_z(self):
        """Test the backend's timestamp format."""
        value = datetime(2024, 2, 10, 8, 30, 5, 123456, tzinfo=timezone.utc)
        assert format_wire_datetime(value) == "2024-02-10T08:30:05.123Z"

    def test_wire_format_converts_to_utc(self):
        """Test that aware datetimes in other zones are converted."""
        plus_three = timezone(timedelta(hours=3))
        value = datetime(2024, 2, 10, 3, 0, tzinfo=plus_three)
        assert format_wire_datetime(value) == "2024-02-10T00:00:00.000Z"

    def test_day_bounds(self):
        """Test that a period day covers the whole UTC day."""
        day = date(2024, 2, 10)
        assert format_wire_datetime(start_of_day_utc(day)) == "2024-02-10T00:00:00.000Z"
        assert format_wire_datetime(end_of_day_utc(day)) == "2024-02-10T23:59:59.999Z"

    def test_start_of_month(self):
        assert start_of_month(date(2024, 2, 17)) == date(2024, 2, 1)


class TestEntityModels:
    """Tests for server entity decoding."""

    def test_category_null_description_is_empty(self):
        """Test that a null description decodes as empty string."""
        category = make_category(description=None)
        assert category.description == ""
        assert category.is_active

    def test_entities_are_frozen(self):
        """Test that received entities cannot be edited in place."""
        category = make_category()
        with pytest.raises(ValidationError):
            category.name = "Other"

    def test_naive_server_timestamp_is_utc(self):
        """Test that timestamps without offset are treated as UTC."""
        tx = make_transaction(occurred_at="2024-02-10T08:30:00")
        assert tx.occurred_at.tzinfo is not None
        assert tx.occurred_at == at(2024, 2, 10, 8, 30)

    def test_z_suffix_timestamp(self):
        tx = make_transaction(occurred_at="2024-02-10T08:30:00.000Z")
        assert tx.occurred_at == at(2024, 2, 10, 8, 30)

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_recurrence_is_none(self, raw):
        """Test that one-off operations decode with recurrence NONE."""
        assert make_planned(recurrence=raw).recurrence == Recurrence.NONE

    def test_completed_sort_time_falls_back_to_updated_at(self):
        """Test the completed-list ordering key."""
        updated = at(2024, 3, 2)
        completed = at(2024, 3, 1)
        assert make_planned(updated_at=updated).completed_sort_time == updated
        assert make_planned(
            updated_at=updated, last_completed_at=completed
        ).completed_sort_time == completed

    def test_unknown_member_role_is_kept(self):
        """Test that roles added on the server later still decode."""
        tx = make_transaction(author={"id": "u-2", "name": "Ivan", "role": "grandparent"})
        assert tx.author.role == "grandparent"

    def test_unknown_category_type_rejected(self):
        with pytest.raises(ValidationError):
            make_category(type="gift")

    def test_display_settings_normalized(self):
        """Test that theme and density are case-insensitive."""
        display = DisplaySettings(theme=" Dark ", density="COMPACT")
        assert display.theme == Theme.DARK
        assert display.density.value == "compact"


class TestPayloads:
    """Tests for request payload encoding."""

    def test_register_request_wire(self):
        """Test registration payload normalization."""
        payload = RegisterRequest(
            email=" anna@example.com ",
            password="secret",
            name="Anna",
            currency="rub",
            family_name="",
            family_id="",
        )
        wire = payload.to_wire()
        assert wire["email"] == "anna@example.com"
        assert wire["currency"] == "RUB"
        assert "family_name" not in wire
        assert "family_id" not in wire

    def test_category_payload_sends_null_parent(self):
        """Test that parent_id is always present so a parent can be cleared."""
        wire = CategoryPayload(name="Food", type=CategoryType.EXPENSE).to_wire()
        assert wire["parent_id"] is None
        assert wire["type"] == "expense"
        assert wire["color"] == "#0ea5e9"

    def test_account_payload_omits_zero_balance(self):
        wire = AccountPayload(name="Card", currency="usd", initial_balance_minor=0).to_wire()
        assert wire["currency"] == "USD"
        assert "initial_balance_minor" not in wire
        assert wire["shared"] is True

    def test_transaction_request_wire(self):
        """Test the transaction body the backend receives."""
        payload = TransactionRequest(
            user_id="u-1",
            account_id="a-1",
            category_id="c-1",
            type=TransactionType.EXPENSE,
            amount_minor=-250,
            currency="RUB",
            comment="  ",
            occurred_at=datetime(2024, 2, 10, 8, 30, tzinfo=timezone.utc),
        )
        wire = payload.to_wire()
        assert wire["amount_minor"] == -250
        assert wire["occurred_at"] == "2024-02-10T08:30:00.000Z"
        assert wire["type"] == "expense"
        assert "comment" not in wire

    def test_transaction_request_rejects_zero(self):
        """Test that a zero amount is never sent."""
        with pytest.raises(ValidationError):
            TransactionRequest(
                user_id="u-1",
                account_id="a-1",
                category_id="c-1",
                type=TransactionType.INCOME,
                amount_minor=0,
                currency="RUB",
                occurred_at=datetime.now(timezone.utc),
            )

    def test_planned_payload_requires_positive_amount(self):
        with pytest.raises(ValidationError):
            PlannedOperationPayload(
                account_id="a-1",
                category_id="c-1",
                type=TransactionType.EXPENSE,
                title="Rent",
                amount_minor=-1,
                due_at=at(2024, 3, 1, 0),
            )

    def test_planned_payload_due_at_wire(self):
        payload = PlannedOperationPayload(
            account_id="a-1",
            category_id="c-1",
            type=TransactionType.EXPENSE,
            title="Rent",
            amount_minor=100,
            due_at=start_of_day_utc(date(2024, 3, 1)),
            recurrence=Recurrence.MONTHLY,
        )
        wire = payload.to_wire()
        assert wire["due_at"] == "2024-03-01T00:00:00.000Z"
        assert wire["recurrence"] == "monthly"

    def test_empty_complete_payload(self):
        assert CompletePlannedOperationPayload().to_wire() == {}


class TestViewModels:
    """Tests for period and filter semantics."""

    def test_period_bounds_inclusive(self):
        """Test that both period days are fully included."""
        period = PeriodFilter(start=date(2024, 2, 1), end=date(2024, 2, 29))
        assert period.contains(at(2024, 2, 1, 0))
        assert period.contains(datetime(2024, 2, 29, 23, 59, 59, 999000, tzinfo=timezone.utc))
        assert not period.contains(at(2024, 3, 1, 0))
        assert not period.contains(at(2024, 1, 31, 23, 59))

    def test_open_period(self):
        assert PeriodFilter().contains(at(1999, 1, 1))
        assert PeriodFilter(start=date(2024, 2, 1)).contains(at(2030, 1, 1))

    def test_filters_match_author(self):
        """Test that the member filter compares the transaction author."""
        tx = make_transaction()
        assert TransactionFilters(member_id="u-1").matches(tx)
        assert not TransactionFilters(member_id="u-2").matches(tx)
        assert not TransactionFilters(type=TransactionType.INCOME).matches(tx)

    def test_query_params(self):
        """Test that filters and period become query parameters."""
        period = PeriodFilter(start=date(2024, 2, 1), end=date(2024, 2, 29))
        params = TransactionFilters(
            type=TransactionType.EXPENSE, member_id="u-1"
        ).to_query(period).to_params()
        assert params == {
            "start_date": "2024-02-01T00:00:00.000Z",
            "end_date": "2024-02-29T23:59:59.999Z",
            "type": "expense",
            "user_id": "u-1",
        }

    def test_empty_query(self):
        assert TransactionQuery().to_params() == {}


class TestValidationModels:
    """Tests for validation result models."""

    def test_validation_result_valid(self):
        """Test valid result."""
        result = ValidationResult(issues=[])
        assert result.is_valid
        assert not result.has_errors
        assert result.first_error is None

    def test_validation_result_with_errors(self):
        """Test result with errors."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="amount_minor",
                issue_type="zero_amount",
                message="Amount cannot be zero",
            )
        ])
        assert not result.is_valid
        assert result.first_error == "Amount cannot be zero"

    def test_warnings_do_not_block(self):
        result = ValidationResult(issues=[
            ValidationIssue(
                field="comment",
                issue_type="long",
                message="Long comment",
                severity="warning",
            )
        ])
        assert result.is_valid


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_SAVED,
            entity_type="category",
            entity_id="c-1",
            description="Category saved",
        )
        assert event.event_type == AuditEventType.CATEGORY_SAVED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            description="Test event",
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "account_created"
        assert log_dict["correlation_id"] is None

    def test_audit_builder_request_failed(self):
        """Test request failure event is an error."""
        correlation_id = uuid4()
        event = AuditEventBuilder.request_failed(
            section="transactions",
            error_type="ServerError",
            error_message="limit exceeded",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.REQUEST_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "limit exceeded"
        assert event.correlation_id == correlation_id

    def test_audit_builder_transaction_created(self):
        event = AuditEventBuilder.transaction_created(
            transaction_id="t-1",
            amount_minor=1500,
            currency="RUB",
            shown=False,
            correlation_id=None,
        )
        assert event.entity_id == "t-1"
        assert event.details["shown_in_current_view"] is False
