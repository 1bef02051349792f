"""Services package."""

from litfunds.services.auth import (
    AccountExistsError,
    AuthenticationError,
    AuthError,
    AuthService,
    InvalidEmailError,
    PasswordMismatchError,
    WeakPasswordError,
)
from litfunds.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
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
    PermissionDeniedError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Auth services
    "AccountExistsError",
    "AuthenticationError",
    "AuthError",
    "AuthService",
    "InvalidEmailError",
    "PasswordMismatchError",
    "WeakPasswordError",
    # Storage services
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsProfileStorage",
    "GoogleSheetsTransactionStorage",
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "InMemoryProfileStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "PermissionDeniedError",
    "ProfileStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
]
