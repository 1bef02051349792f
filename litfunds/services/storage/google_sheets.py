"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions across rows (each write touches one row)
- Limited query capabilities (we filter in Python)

Each worksheet holds one record per row under a header row. Worksheets
are created with their headers on first use. Rows that fail to parse
are skipped when reading, never fatal.
"""

import json
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from litfunds.config import GoogleSheetsSettings, get_settings
from litfunds.models.audit import AuditEvent, AuditEventType, AuditSeverity
from litfunds.models.transaction import Transaction, TransactionType
from litfunds.models.user import Currency, UserAccount, UserProfile
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


logger = structlog.get_logger(__name__)


TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "amount",
    "description",
    "category",
    "type",
    "date",
    "created_at",
]

ACCOUNT_COLUMNS = [
    "user_id",
    "email",
    "password_hash",
    "created_at",
]

PROFILE_COLUMNS = [
    "user_id",
    "email",
    "display_name",
    "currency",
    "updated_at",
]

# Matches AuditEvent.to_sheets_row
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Retry transient API failures (quota, 5xx) only
sheets_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _row_to_dict(columns: list[str], row: list) -> dict[str, str]:
    """Zip a row against its header, padding short rows with blanks."""
    padded = list(row) + [""] * (len(columns) - len(row))
    return dict(zip(columns, padded))


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup. A spreadsheet object
    can be passed in directly (used by tests with an in-process fake).
    """

    def __init__(
        self,
        settings: Optional[GoogleSheetsSettings] = None,
        spreadsheet: Optional[Any] = None,
    ):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet = spreadsheet
        self._settings = settings or (get_settings().google_sheets if spreadsheet is None else None)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _sheet_name(self, attribute: str, default: str) -> str:
        if self._settings is None:
            return default
        return getattr(self._settings, attribute)

    @sheets_retry
    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet by title, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            logger.info("worksheet_created", title=title)
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._sheet_name("transactions_sheet_name", "Transactions"),
            TRANSACTION_COLUMNS,
        )

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._sheet_name("accounts_sheet_name", "Accounts"),
            ACCOUNT_COLUMNS,
        )

    def get_profiles_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._sheet_name("profiles_sheet_name", "Profiles"),
            PROFILE_COLUMNS,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._sheet_name("audit_sheet_name", "AuditLog"),
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    @staticmethod
    @sheets_retry
    def read_rows(sheet: gspread.Worksheet) -> list[list]:
        """All data rows, header excluded."""
        return sheet.get_all_values()[1:]

    @staticmethod
    @sheets_retry
    def append_row(sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    @staticmethod
    @sheets_retry
    def replace_row(sheet: gspread.Worksheet, row_number: int, row: list) -> None:
        sheet.update(values=[row], range_name=f"A{row_number}", value_input_option="RAW")

    @staticmethod
    @sheets_retry
    def delete_row(sheet: gspread.Worksheet, row_number: int) -> None:
        sheet.delete_rows(row_number)


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """
    Google Sheets implementation of transaction storage.

    Transactions are stored one per row. Amounts are written signed
    (income positive, expense negative) as plain decimal strings.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _transaction_to_row(transaction: Transaction) -> list:
        """Convert a Transaction to a spreadsheet row."""
        return [
            transaction.id,
            transaction.user_id or "",
            str(transaction.amount),
            transaction.description,
            transaction.category,
            transaction.type.value,
            transaction.date.isoformat(),
            transaction.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_transaction(row: list) -> Transaction:
        """
        Convert a spreadsheet row to a Transaction.

        Raises ValidationError for rows that don't describe a transaction.
        """
        data = _row_to_dict(TRANSACTION_COLUMNS, row)
        if not data["created_at"]:
            data.pop("created_at")
        return Transaction.model_validate(data)

    def _load_all(self) -> list[tuple[int, Transaction]]:
        """Every parseable transaction with its sheet row number."""
        sheet = self._client.get_transactions_sheet()
        loaded = []
        # Start from 2 (row 1 is header)
        for row_number, row in enumerate(self._client.read_rows(sheet), start=2):
            if not row or not row[0]:
                continue
            try:
                loaded.append((row_number, self._row_to_transaction(row)))
            except ValidationError as e:
                logger.debug("sheet_row_skipped", sheet="transactions", row=row_number, errors=e.error_count())
        return loaded

    def _find(self, transaction_id: str) -> Optional[tuple[int, Transaction]]:
        for row_number, transaction in self._load_all():
            if transaction.id == transaction_id:
                return row_number, transaction
        return None

    @staticmethod
    def _check_owner(transaction: Transaction, user_id: Optional[str]) -> None:
        if transaction.user_id != user_id:
            raise PermissionDeniedError(
                f"Transaction {transaction.id} does not belong to this user"
            )

    async def save_transaction(self, transaction: Transaction) -> bool:
        """Append a new transaction row."""
        try:
            if self._find(transaction.id) is not None:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            sheet = self._client.get_transactions_sheet()
            self._client.append_row(sheet, self._transaction_to_row(transaction))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(
        self,
        transaction_id: str,
        user_id: str,
    ) -> Optional[Transaction]:
        """Retrieve one of the user's transactions by ID."""
        try:
            found = self._find(transaction_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

        if found is None:
            return None
        _, transaction = found
        self._check_owner(transaction, user_id)
        return transaction

    async def update_transaction(self, transaction: Transaction) -> bool:
        """Rewrite the row holding this transaction."""
        try:
            found = self._find(transaction.id)
            if found is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")

            row_number, existing = found
            self._check_owner(existing, transaction.user_id)

            sheet = self._client.get_transactions_sheet()
            self._client.replace_row(sheet, row_number, self._transaction_to_row(transaction))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        """Delete the row holding this transaction."""
        try:
            found = self._find(transaction_id)
            if found is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")

            row_number, existing = found
            self._check_owner(existing, user_id)

            sheet = self._client.get_transactions_sheet()
            self._client.delete_row(sheet, row_number)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

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
        """List the user's transactions, newest first."""
        try:
            transactions = [transaction for _, transaction in self._load_all()]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        return select_transactions(
            transactions,
            user_id,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            category=category,
            limit=limit,
            offset=offset,
        )


class GoogleSheetsAccountStorage(AccountStorageInterface):
    """Login accounts, one row per email."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _account_to_row(account: UserAccount) -> list:
        return [
            account.user_id,
            account.email,
            account.password_hash,
            account.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_account(row: list) -> UserAccount:
        data = _row_to_dict(ACCOUNT_COLUMNS, row)
        return UserAccount(
            user_id=data["user_id"],
            email=data["email"],
            password_hash=data["password_hash"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    async def create_account(self, account: UserAccount) -> bool:
        try:
            if await self.get_account_by_email(account.email) is not None:
                raise DuplicateError(f"Account already exists: {account.email}")
            sheet = self._client.get_accounts_sheet()
            self._client.append_row(sheet, self._account_to_row(account))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create account: {e}")

    async def get_account_by_email(self, email: str) -> Optional[UserAccount]:
        wanted = email.strip().lower()
        try:
            sheet = self._client.get_accounts_sheet()
            rows = self._client.read_rows(sheet)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read accounts: {e}")

        for row in rows:
            if len(row) > 1 and row[1].strip().lower() == wanted:
                try:
                    return self._row_to_account(row)
                except (ValidationError, ValueError):
                    logger.warning("sheet_row_skipped", sheet="accounts", email=wanted)
        return None


class GoogleSheetsProfileStorage(ProfileStorageInterface):
    """User profiles, one row per user."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _profile_to_row(profile: UserProfile) -> list:
        return [
            profile.user_id,
            profile.email,
            profile.display_name,
            profile.currency.value,
            profile.updated_at.isoformat(),
        ]

    @staticmethod
    def _row_to_profile(row: list) -> UserProfile:
        data = _row_to_dict(PROFILE_COLUMNS, row)
        return UserProfile(
            user_id=data["user_id"],
            email=data["email"],
            display_name=data["display_name"],
            currency=Currency(data["currency"] or Currency.GHS.value),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data["updated_at"] else datetime.utcnow(),
        )

    def _find_row(self, sheet: gspread.Worksheet, user_id: str) -> Optional[tuple[int, list]]:
        for row_number, row in enumerate(self._client.read_rows(sheet), start=2):
            if row and row[0] == user_id:
                return row_number, row
        return None

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            sheet = self._client.get_profiles_sheet()
            found = self._find_row(sheet, user_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read profile: {e}")

        if found is None:
            return None
        try:
            return self._row_to_profile(found[1])
        except (ValidationError, ValueError):
            logger.warning("sheet_row_skipped", sheet="profiles", user_id=user_id)
            return None

    async def save_profile(self, profile: UserProfile) -> bool:
        try:
            sheet = self._client.get_profiles_sheet()
            found = self._find_row(sheet, profile.user_id)
            row = self._profile_to_row(profile)
            if found is None:
                self._client.append_row(sheet, row)
            else:
                self._client.replace_row(sheet, found[0], row)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save profile: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        data = _row_to_dict(AUDIT_COLUMNS, row)
        return AuditEvent(
            event_id=UUID(data["event_id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            event_type=AuditEventType(data["event_type"]),
            severity=AuditSeverity(data["severity"]),
            entity_type=data["entity_type"] or None,
            entity_id=data["entity_id"] or None,
            user_id=data["user_id"] or None,
            correlation_id=UUID(data["correlation_id"]) if data["correlation_id"] else None,
            description=data["description"],
            details=json.loads(data["details_json"]) if data["details_json"] else {},
            error_message=data["error_message"] or None,
            is_user_action=data["is_user_action"].lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row_number, row in enumerate(self._client.read_rows(sheet), start=2):
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValidationError, ValueError) as e:
                logger.debug("sheet_row_skipped", sheet="audit", row=row_number, error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            self._client.append_row(sheet, event.to_sheets_row())
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning(
                "audit_write_failed",
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._load_events()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        if user_id:
            events = [e for e in events if e.user_id == user_id]

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
