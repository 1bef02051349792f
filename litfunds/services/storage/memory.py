"""
In-Memory Storage Implementation

Process-local dictionaries behind the same interfaces as the Google
Sheets backend. Used by the test suite and as the fallback when Sheets
is not configured; nothing survives a restart.

Stored models are copied on the way in and out so that callers can
never mutate storage through a reference they hold.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from litfunds.models.audit import AuditEvent
from litfunds.models.transaction import Transaction, TransactionType
from litfunds.models.user import UserAccount, UserProfile
from litfunds.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    ProfileStorageInterface,
    TransactionStorageInterface,
    select_transactions,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions keyed by ID."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: dict[str, Transaction] = {}
        for transaction in transactions or []:
            self._transactions[transaction.id] = transaction.model_copy(deep=True)

    def _owned(self, transaction_id: str, user_id: Optional[str]) -> Transaction:
        stored = self._transactions.get(transaction_id)
        if stored is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        if stored.user_id != user_id:
            raise PermissionDeniedError(
                f"Transaction {transaction_id} does not belong to this user"
            )
        return stored

    async def save_transaction(self, transaction: Transaction) -> bool:
        if transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Optional[Transaction]:
        if transaction_id not in self._transactions:
            return None
        return self._owned(transaction_id, user_id).model_copy(deep=True)

    async def update_transaction(self, transaction: Transaction) -> bool:
        self._owned(transaction.id, transaction.user_id)
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        self._owned(transaction_id, user_id)
        del self._transactions[transaction_id]
        return True

    async def list_transactions(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        selected = select_transactions(
            list(self._transactions.values()),
            user_id,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            category=category,
            limit=limit,
            offset=offset,
        )
        return [transaction.model_copy(deep=True) for transaction in selected]


class InMemoryAccountStorage(AccountStorageInterface):
    """Accounts keyed by lowercase email."""

    def __init__(self):
        self._accounts: dict[str, UserAccount] = {}

    async def create_account(self, account: UserAccount) -> bool:
        if account.email in self._accounts:
            raise DuplicateError(f"Account already exists: {account.email}")
        self._accounts[account.email] = account.model_copy()
        return True

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        account = self._accounts.get(email.strip().lower())
        return account.model_copy() if account else None


class InMemoryProfileStorage(ProfileStorageInterface):

    def __init__(self):
        self._profiles: dict[str, UserProfile] = {}

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy() if profile else None

    async def save_profile(self, profile: UserProfile) -> bool:
        self._profiles[profile.user_id] = profile.model_copy()
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if user_id is None or e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
