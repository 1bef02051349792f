"""Authentication services package."""

from litfunds.services.auth.auth_service import (
    AccountExistsError,
    AuthenticationError,
    AuthError,
    AuthService,
    InvalidEmailError,
    PasswordMismatchError,
    WeakPasswordError,
)

__all__ = [
    "AccountExistsError",
    "AuthenticationError",
    "AuthError",
    "AuthService",
    "InvalidEmailError",
    "PasswordMismatchError",
    "WeakPasswordError",
]
