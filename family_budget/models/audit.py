"""
Activity Models for Family Budget

Every significant client action produces an audit event: what the user
asked for, what the server answered and what the local view did with
the answer. Events go to the structured log and to a short in-memory
history shown on the settings page.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from family_budget.models.dates import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    USER_REGISTERED = "user_registered"
    DATA_REFRESHED = "data_refreshed"

    # Mutations confirmed by the server
    CATEGORY_SAVED = "category_saved"
    CATEGORY_ARCHIVED = "category_archived"
    CATEGORY_UNARCHIVED = "category_unarchived"
    ACCOUNT_CREATED = "account_created"
    TRANSACTION_CREATED = "transaction_created"
    PLANNED_OPERATION_CREATED = "planned_operation_created"
    PLANNED_OPERATION_COMPLETED = "planned_operation_completed"
    SETTINGS_UPDATED = "settings_updated"

    # Local view
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    REQUEST_FAILED = "request_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Server ids are opaque strings
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'category', 'transaction')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.category_saved(category_id, name, created, correlation_id)
        event = AuditEventBuilder.request_failed(section, error_type, message, correlation_id)
    """

    @staticmethod
    def user_registered(
        user_id: str,
        family_id: str,
        joined_existing_family: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User registered",
            details={
                "family_id": family_id,
                "joined_existing_family": joined_existing_family,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_refreshed(
        section: str,
        count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_REFRESHED,
            severity=AuditSeverity.DEBUG,
            entity_type=section,
            correlation_id=correlation_id,
            description=f"Loaded {count} {section}",
            details={"count": count},
        )

    @staticmethod
    def category_saved(
        category_id: str,
        name: str,
        created: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_SAVED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category {'created' if created else 'updated'}: {name}",
            details={"created": created},
            is_user_action=True,
        )

    @staticmethod
    def category_archive_changed(
        category_id: str,
        archived: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.CATEGORY_ARCHIVED if archived
                else AuditEventType.CATEGORY_UNARCHIVED
            ),
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description="Category archived" if archived else "Category restored",
            is_user_action=True,
        )

    @staticmethod
    def account_created(
        account_id: str,
        currency: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account created in {currency}",
            details={"currency": currency},
            is_user_action=True,
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        amount_minor: int,
        currency: str,
        shown: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction recorded",
            details={
                "amount_minor": amount_minor,
                "currency": currency,
                "shown_in_current_view": shown,
            },
            is_user_action=True,
        )

    @staticmethod
    def planned_operation_created(
        operation_id: str,
        title: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_OPERATION_CREATED,
            entity_type="planned_operation",
            entity_id=operation_id,
            correlation_id=correlation_id,
            description=f"Planned operation created: {title}",
            is_user_action=True,
        )

    @staticmethod
    def planned_operation_completed(
        operation_id: str,
        transaction_id: str,
        still_pending: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_OPERATION_COMPLETED,
            entity_type="planned_operation",
            entity_id=operation_id,
            correlation_id=correlation_id,
            description="Planned operation completed",
            details={
                "transaction_id": transaction_id,
                # Recurring operations come back pending with a new due date
                "still_pending": still_pending,
            },
            is_user_action=True,
        )

    @staticmethod
    def settings_updated(
        user_id: str,
        show_archived: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTINGS_UPDATED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Settings updated",
            details={"show_archived": show_archived},
            is_user_action=True,
        )

    @staticmethod
    def stale_response_discarded(
        section: str,
        generation: int,
        current_generation: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type=section,
            correlation_id=correlation_id,
            description="Response arrived after the screen was invalidated",
            details={
                "generation": generation,
                "current_generation": current_generation,
            },
        )

    @staticmethod
    def validation_failed(
        section: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=section,
            correlation_id=correlation_id,
            description=f"Input rejected before sending ({len(issues)} issues)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def request_failed(
        section: str,
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=section,
            correlation_id=correlation_id,
            description=f"Request failed: {error_type}",
            error_message=error_message[:1000],
        )
