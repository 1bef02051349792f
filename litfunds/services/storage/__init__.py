"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and unconfigured installs.
"""

from litfunds.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    PermissionDeniedError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
    select_transactions,
)
from litfunds.services.storage.google_sheets import (
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsProfileStorage,
    GoogleSheetsTransactionStorage,
)
from litfunds.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ProfileStorageInterface",
    "TransactionStorageInterface",
    "select_transactions",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsProfileStorage",
    "GoogleSheetsTransactionStorage",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "InMemoryProfileStorage",
    "InMemoryTransactionStorage",
]
