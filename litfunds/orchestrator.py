"""
Main Orchestrator for LitFunds

This module ties together all the components and defines the
end-to-end flows behind every page:
1. Auth (sign up / sign in / sign out)
2. Transactions (form → validate → save → audit)
3. Analytics (fetch snapshot → aggregate)
4. Profile (preferences and lifetime stats)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is saved without passing validation
- Every read and write is scoped to the signed-in user
- Every mutation is audited
- Pages never aggregate inline; they call the flows, which call
  the aggregation module

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date, datetime
from typing import NamedTuple, Optional, Union
from uuid import UUID

import structlog

from litfunds.analytics import period_range, summarize, totals
from litfunds.audit import AuditLogger, create_correlation_id
from litfunds.config import AppSettings, get_settings
from litfunds.models.analytics import Period, Summary
from litfunds.models.transaction import Transaction, TransactionInput, ValidationResult
from litfunds.models.user import Currency, ProfileStats, UserAccount, UserProfile
from litfunds.services.auth import AuthenticationError, AuthService
from litfunds.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsProfileStorage,
    GoogleSheetsTransactionStorage,
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from litfunds.validation import TransactionValidator


logger = structlog.get_logger(__name__)

# Fields compared when auditing an edit
AUDITED_FIELDS = ("amount", "description", "category", "type", "date")


class AuthFlow:
    """
    Orchestrates sign up, sign in and sign out with auditing.

    Auth errors propagate to the page, which shows their message.
    """

    def __init__(
        self,
        auth_service: AuthService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = auth_service
        self._audit_logger = audit_logger or AuditLogger()

    async def sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        display_name: str = "",
    ) -> UserAccount:
        account = await self._auth.sign_up(email, password, confirm_password, display_name)
        await self._audit_logger.log_account_created(account.user_id, account.email)
        return account

    async def sign_in(self, email: str, password: str) -> UserAccount:
        try:
            account = await self._auth.sign_in(email, password)
        except AuthenticationError as e:
            await self._audit_logger.log_sign_in_failed(email.strip().lower(), str(e))
            raise
        await self._audit_logger.log_sign_in(account.user_id, account.email)
        return account

    async def sign_out(self, user_id: str) -> None:
        await self._audit_logger.log_signed_out(user_id)


class TransactionFlow:
    """
    Orchestrates creating, editing and deleting transactions.

    Flow for form submissions:
    1. Validate → Two-stage validation (never raises)
    2. Build → Canonical Transaction (sign from type)
    3. Save → Persist to storage
    4. Audit → Record what changed

    Form operations return (transaction_or_None, ValidationResult) so the
    page can show issues next to the form.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = transaction_storage
        self._settings = settings or get_settings().app
        self._validator = validator or TransactionValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    async def _reject(
        self,
        result: ValidationResult,
        user_id: str,
        correlation_id: UUID,
    ) -> None:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        await self._audit_logger.log_validation_failed(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        )

    async def create_transaction(
        self,
        form: TransactionInput,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], ValidationResult]:
        """
        Validate and save a new transaction.

        Returns:
            (saved_transaction, validation_result); the transaction is
            None when validation blocked the save.

        Raises:
            StorageError: If the save itself fails (audited first)
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(form)
        if not result.is_valid:
            await self._reject(result, user_id, correlation_id)
            return None, result

        transaction = self._validator.to_transaction(form, user_id)

        try:
            await self._storage.save_transaction(transaction)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_transaction_created(
            transaction_id=transaction.id,
            user_id=user_id,
            amount=str(transaction.amount),
            category=transaction.category,
            correlation_id=correlation_id,
        )
        return transaction, result

    async def update_transaction(
        self,
        transaction_id: str,
        form: TransactionInput,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], ValidationResult]:
        """
        Validate and apply an edit to one of the user's transactions.

        Raises:
            NotFoundError: If the transaction doesn't exist
            PermissionDeniedError: If it belongs to another user
        """
        correlation_id = correlation_id or create_correlation_id()

        existing = await self._storage.get_transaction(transaction_id, user_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        result = self._validator.validate(form)
        if not result.is_valid:
            await self._reject(result, user_id, correlation_id)
            return None, result

        updated = self._validator.to_transaction(
            form,
            user_id,
            transaction_id=existing.id,
            created_at=existing.created_at,
        )

        changes = {}
        for field in AUDITED_FIELDS:
            old, new = getattr(existing, field), getattr(updated, field)
            if old != new:
                changes[field] = {"old": str(old), "new": str(new)}

        try:
            await self._storage.update_transaction(updated)
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_transaction_updated(
            transaction_id=updated.id,
            user_id=user_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        return updated, result

    async def delete_transaction(
        self,
        transaction_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()

        await self._storage.delete_transaction(transaction_id, user_id)
        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return True

    async def get_transaction(self, transaction_id: str, user_id: str) -> Optional[Transaction]:
        return await self._storage.get_transaction(transaction_id, user_id)

    async def list_recent(self, user_id: str, limit: Optional[int] = None) -> list[Transaction]:
        """Newest transactions for the home page list."""
        return await self._storage.list_transactions(
            user_id,
            limit=limit or self._settings.recent_transactions_limit,
        )

    async def load_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """The user's full snapshot (optionally date bounded)."""
        return await self._storage.list_transactions(
            user_id,
            date_from=date_from,
            date_to=date_to,
        )


class AnalyticsFlow:
    """
    Fetches a user's snapshot and hands it to the aggregation module.

    Budgets come from configuration, not per-user data.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = transaction_storage
        self._settings = settings or get_settings().app

    async def summary_for_range(self, user_id: str, start: date, end: date) -> Summary:
        transactions = await self._storage.list_transactions(
            user_id,
            date_from=start,
            date_to=end,
        )
        return summarize(transactions, start, end, budgets=self._settings.category_budgets)

    async def summary_for_period(
        self,
        user_id: str,
        period: Union[Period, str],
        today: Optional[date] = None,
    ) -> Summary:
        date_range = period_range(period, today)
        return await self.summary_for_range(user_id, date_range.start, date_range.end)

    async def monthly_summary(self, user_id: str, today: Optional[date] = None) -> Summary:
        """Current calendar month, for the home page."""
        return await self.summary_for_period(user_id, Period.MONTH, today)


class ProfileFlow:
    """Display name, currency and lifetime stats."""

    def __init__(
        self,
        profile_storage: ProfileStorageInterface,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._profiles = profile_storage
        self._transactions = transaction_storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app

    async def get_profile(self, user_id: str, email: str = "") -> UserProfile:
        """Stored profile, or defaults when the user never saved one."""
        profile = await self._profiles.get_profile(user_id)
        if profile is not None:
            return profile
        return UserProfile(
            user_id=user_id,
            email=email,
            currency=Currency(self._settings.default_currency),
        )

    async def update_profile(
        self,
        user_id: str,
        display_name: str,
        currency: Union[Currency, str],
        email: str = "",
    ) -> UserProfile:
        current = await self.get_profile(user_id, email)
        updated = current.model_copy(update={
            "display_name": display_name.strip(),
            "currency": Currency(currency),
            "email": current.email or email,
            "updated_at": datetime.utcnow(),
        })

        await self._profiles.save_profile(updated)

        changes = {}
        if current.display_name != updated.display_name:
            changes["display_name"] = {"old": current.display_name, "new": updated.display_name}
        if current.currency != updated.currency:
            changes["currency"] = {"old": current.currency.value, "new": updated.currency.value}
        await self._audit_logger.log_profile_updated(user_id, changes)

        return updated

    async def get_stats(self, user_id: str) -> ProfileStats:
        """Lifetime income, expenses, balance and count."""
        transactions = await self._transactions.list_transactions(user_id)
        lifetime = totals(transactions)
        return ProfileStats(
            total_income=lifetime.income,
            total_expenses=lifetime.expense,
            balance=lifetime.balance,
            transaction_count=len(transactions),
            last_transaction_at=max((t.date for t in transactions), default=None),
        )


class AppComponents(NamedTuple):
    auth_flow: AuthFlow
    transaction_flow: TransactionFlow
    analytics_flow: AnalyticsFlow
    profile_flow: ProfileFlow
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run on
                    in-memory storage instead.
        settings: App settings override (defaults to environment)

    Returns:
        AppComponents(auth_flow, transaction_flow, analytics_flow,
                      profile_flow, sheets_client)
    """
    settings = settings or get_settings().app

    sheets_client = None
    transaction_storage: TransactionStorageInterface
    account_storage: AccountStorageInterface
    profile_storage: ProfileStorageInterface
    audit_storage: AuditStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    if sheets_client is not None:
        transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
        account_storage = GoogleSheetsAccountStorage(sheets_client)
        profile_storage = GoogleSheetsProfileStorage(sheets_client)
        audit_storage = GoogleSheetsAuditStorage(sheets_client)
    else:
        transaction_storage = InMemoryTransactionStorage()
        account_storage = InMemoryAccountStorage()
        profile_storage = InMemoryProfileStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)

    return AppComponents(
        auth_flow=AuthFlow(
            AuthService(account_storage, profile_storage, settings),
            audit_logger=audit_logger,
        ),
        transaction_flow=TransactionFlow(
            transaction_storage,
            audit_logger=audit_logger,
            settings=settings,
        ),
        analytics_flow=AnalyticsFlow(transaction_storage, settings=settings),
        profile_flow=ProfileFlow(
            profile_storage,
            transaction_storage,
            audit_logger=audit_logger,
            settings=settings,
        ),
        sheets_client=sheets_client,
    )
