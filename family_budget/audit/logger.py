"""
Audit Logger

DESIGN DECISION: Every significant client action is logged.
This provides:
1. Traceability from a button press to the request it caused
2. Debugging capability when the view and the server disagree
3. A short activity history the user can look at

The audit logger:
- Writes every event to the structured local log
- Keeps the most recent events in memory (nothing is persisted)
- Supports correlation IDs to trace related events
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from family_budget.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the standard library at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. A bounded in-memory history (for the activity panel)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("family_budget.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))[:limit]

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """All remembered events of one user action, oldest first."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    def log_validation_failed(
        self,
        section: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            section=section,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_request_failed(
        self,
        section: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.request_failed(
            section=section,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_stale_response(
        self,
        section: str,
        generation: int,
        current_generation: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.stale_response_discarded(
            section=section,
            generation=generation,
            current_generation=current_generation,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
