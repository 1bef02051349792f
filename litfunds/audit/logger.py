"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of sign-ins and transaction changes
2. Debugging capability
3. A history the user can review in the spreadsheet

The audit logger:
- Is async like the storage it writes to
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from litfunds.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from litfunds.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_account_created(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.account_created(user_id=user_id, email=email))

    async def log_sign_in(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.sign_in_succeeded(user_id=user_id, email=email))

    async def log_sign_in_failed(self, email: str, reason: str) -> None:
        await self.log(AuditEventBuilder.sign_in_failed(email=email, reason=reason))

    async def log_signed_out(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.signed_out(user_id=user_id))

    async def log_profile_updated(self, user_id: str, changes: dict[str, Any]) -> None:
        await self.log(AuditEventBuilder.profile_updated(user_id=user_id, changes=changes))

    async def log_transaction_created(
        self,
        transaction_id: str,
        user_id: str,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> None:
        """Log a newly saved transaction."""
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            user_id=user_id,
            amount=amount,
            category=category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: str,
        user_id: str,
        changes: dict[str, Any],
        correlation_id: UUID,
    ) -> None:
        """Log an edit, with old/new values of the changed fields."""
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            user_id=user_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        user_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a rejected form submission."""
        event = AuditEventBuilder.validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.save_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one form submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
