"""
Email/Password Authentication

Accounts live in an AccountStorageInterface; only werkzeug password
hashes are stored. Signing up also creates the user's default profile.

IMPORTANT BOUNDARIES:
1. This service does NOT manage sessions - the app keeps the signed-in
   user in its own session state
2. Error messages are user-facing; sign-in failures never reveal
   whether the email exists
"""

import re
from typing import Optional

import structlog
from werkzeug.security import check_password_hash, generate_password_hash

from litfunds.config import AppSettings, get_settings
from litfunds.models.user import Currency, UserAccount, UserProfile
from litfunds.services.storage.interface import (
    AccountStorageInterface,
    DuplicateError,
    ProfileStorageInterface,
)


logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass


class PasswordMismatchError(AuthError):
    """Password and confirmation differ at sign up."""

    def __init__(self):
        super().__init__("Passwords do not match")


class WeakPasswordError(AuthError):
    """Password shorter than the configured minimum."""

    def __init__(self, min_length: int):
        self.min_length = min_length
        super().__init__(f"Password must be at least {min_length} characters")


class InvalidEmailError(AuthError):
    pass


class AccountExistsError(AuthError):
    """Email already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"An account with {email} already exists")


class AuthenticationError(AuthError):
    """Unknown email or wrong password."""

    def __init__(self):
        super().__init__("Invalid email or password")


class AuthService:
    """Sign up and sign in against an account store."""

    def __init__(
        self,
        account_storage: AccountStorageInterface,
        profile_storage: Optional[ProfileStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._accounts = account_storage
        self._profiles = profile_storage
        self._settings = settings or get_settings().app

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    async def sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        display_name: str = "",
    ) -> UserAccount:
        """
        Register a new account.

        Raises:
            InvalidEmailError, PasswordMismatchError, WeakPasswordError,
            AccountExistsError
        """
        email = self._normalize_email(email)
        if not EMAIL_PATTERN.match(email):
            raise InvalidEmailError("Please enter a valid email address")

        if password != confirm_password:
            raise PasswordMismatchError()

        if len(password) < self._settings.min_password_length:
            raise WeakPasswordError(self._settings.min_password_length)

        if await self._accounts.get_account_by_email(email) is not None:
            raise AccountExistsError(email)

        account = UserAccount(
            email=email,
            password_hash=generate_password_hash(password),
        )
        try:
            await self._accounts.create_account(account)
        except DuplicateError:
            raise AccountExistsError(email)

        if self._profiles is not None:
            await self._profiles.save_profile(UserProfile(
                user_id=account.user_id,
                email=email,
                display_name=display_name.strip(),
                currency=Currency(self._settings.default_currency),
            ))

        logger.info("account_created", user_id=account.user_id)
        return account

    async def sign_in(self, email: str, password: str) -> UserAccount:
        """
        Verify credentials.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        email = self._normalize_email(email)
        account = await self._accounts.get_account_by_email(email)

        if account is None or not check_password_hash(account.password_hash, password):
            logger.info("sign_in_rejected", email=email)
            raise AuthenticationError()

        logger.info("sign_in_accepted", user_id=account.user_id)
        return account
