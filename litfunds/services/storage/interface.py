"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and offline use
3. Keep the flows and pages decoupled from the backend

The interface is intentionally simple - we're not building a full ORM.
Every transaction operation is scoped to the owning user.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from litfunds.models.audit import AuditEvent
from litfunds.models.transaction import Transaction, TransactionType
from litfunds.models.user import UserAccount, UserProfile


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """
        Save a new transaction.

        Raises:
            DuplicateError: If a transaction with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Optional[Transaction]:
        """
        Retrieve one of the user's transactions by ID.

        Returns:
            The transaction if found, None otherwise

        Raises:
            PermissionDeniedError: If the transaction belongs to another user
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            PermissionDeniedError: If it belongs to another user
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        """
        Delete one of the user's transactions.

        Raises:
            NotFoundError: If the transaction doesn't exist
            PermissionDeniedError: If it belongs to another user
        """
        pass

    @abstractmethod
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
        """
        List the user's transactions, newest first (by date, then created_at).

        Args:
            user_id: Owner whose transactions are listed
            date_from: Only transactions on or after this day
            date_to: Only transactions on or before this day
            transaction_type: Only income or only expenses
            category: Only this category (case-insensitive)
            limit: Maximum number of results (None for all)
            offset: Number of results to skip

        Returns:
            List of matching transactions
        """
        pass


class AccountStorageInterface(ABC):
    """Login accounts, looked up by email."""

    @abstractmethod
    async def create_account(self, account: UserAccount) -> bool:
        """
        Raises:
            DuplicateError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        pass


class ProfileStorageInterface(ABC):
    """Per-user display preferences."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> bool:
        """Insert or replace the profile for profile.user_id."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one form submission).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return
            user_id: Only events for this user

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PermissionDeniedError(StorageError):
    """Attempted to read or change another user's record."""
    pass


def select_transactions(
    transactions: list[Transaction],
    user_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    transaction_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[Transaction]:
    """
    Filtering, ordering and pagination shared by every backend.

    Backends fetch rows, then hand them here so that list_transactions
    behaves identically everywhere.
    """
    wanted_category = category.strip().lower() if category else None

    selected = []
    for transaction in transactions:
        if transaction.user_id != user_id:
            continue
        if date_from and transaction.day < date_from:
            continue
        if date_to and transaction.day > date_to:
            continue
        if transaction_type and transaction.type != transaction_type:
            continue
        if wanted_category and transaction.category != wanted_category:
            continue
        selected.append(transaction)

    # Newest first
    selected.sort(key=lambda t: (t.date, t.created_at), reverse=True)

    if limit is None:
        return selected[offset:]
    return selected[offset:offset + limit]
