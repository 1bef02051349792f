"""
Tests for storage backends.

The Google Sheets backend is exercised against an in-process fake
spreadsheet; no network calls are made.
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import gspread

from litfunds.models import (
    AuditEventBuilder,
    Currency,
    Transaction,
    TransactionType,
    UserAccount,
    UserProfile,
)
from litfunds.services.storage import (
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
)
from litfunds.services.storage.google_sheets import TRANSACTION_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage classes."""

    def __init__(self, title):
        self.title = title
        self.rows = []

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(value) for value in row])

    def update(self, values=None, range_name=None, value_input_option=None):
        row_number = int(range_name[1:])
        self.rows[row_number - 1] = [str(value) for value in values[0]]

    def delete_rows(self, row_number):
        del self.rows[row_number - 1]


class FakeSpreadsheet:

    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = FakeWorksheet(title)
        return self.sheets[title]


def make(user_id="u1", amount=-40, category="food", type="expense", when=datetime(2024, 3, 10), **extra):
    return Transaction(user_id=user_id, amount=Decimal(str(amount)), category=category, type=type, date=when, **extra)


@pytest.fixture
def spreadsheet():
    return FakeSpreadsheet()


@pytest.fixture(params=["memory", "sheets"])
def transaction_storage(request, spreadsheet):
    if request.param == "memory":
        return InMemoryTransactionStorage()
    return GoogleSheetsTransactionStorage(GoogleSheetsClient(spreadsheet=spreadsheet))


class TestTransactionStorage:
    """Behaviour shared by every transaction backend."""

    def test_save_and_get(self, transaction_storage):
        transaction = make(description="Lunch")
        asyncio.run(transaction_storage.save_transaction(transaction))

        loaded = asyncio.run(transaction_storage.get_transaction(transaction.id, "u1"))
        assert loaded.id == transaction.id
        assert loaded.amount == Decimal("-40")
        assert loaded.description == "Lunch"
        assert loaded.date == transaction.date

    def test_missing_is_none(self, transaction_storage):
        assert asyncio.run(transaction_storage.get_transaction("nope", "u1")) is None

    def test_duplicate_id_rejected(self, transaction_storage):
        transaction = make()
        asyncio.run(transaction_storage.save_transaction(transaction))
        with pytest.raises(DuplicateError):
            asyncio.run(transaction_storage.save_transaction(transaction))

    def test_other_users_record_is_denied(self, transaction_storage):
        transaction = make(user_id="owner")
        asyncio.run(transaction_storage.save_transaction(transaction))

        with pytest.raises(PermissionDeniedError):
            asyncio.run(transaction_storage.get_transaction(transaction.id, "intruder"))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(transaction_storage.delete_transaction(transaction.id, "intruder"))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(transaction_storage.update_transaction(
                transaction.model_copy(update={"user_id": "intruder"})
            ))

    def test_update(self, transaction_storage):
        transaction = make()
        asyncio.run(transaction_storage.save_transaction(transaction))

        changed = transaction.model_copy(update={"category": "shopping", "description": "Shoes"})
        asyncio.run(transaction_storage.update_transaction(changed))

        loaded = asyncio.run(transaction_storage.get_transaction(transaction.id, "u1"))
        assert loaded.category == "shopping"
        assert loaded.description == "Shoes"

    def test_update_missing_raises(self, transaction_storage):
        with pytest.raises(NotFoundError):
            asyncio.run(transaction_storage.update_transaction(make()))

    def test_delete(self, transaction_storage):
        keep, drop = make(), make()
        asyncio.run(transaction_storage.save_transaction(keep))
        asyncio.run(transaction_storage.save_transaction(drop))

        asyncio.run(transaction_storage.delete_transaction(drop.id, "u1"))

        remaining = asyncio.run(transaction_storage.list_transactions("u1"))
        assert [t.id for t in remaining] == [keep.id]
        with pytest.raises(NotFoundError):
            asyncio.run(transaction_storage.delete_transaction(drop.id, "u1"))

    def test_list_is_scoped_sorted_and_filtered(self, transaction_storage):
        old = make(when=datetime(2024, 3, 1))
        new = make(when=datetime(2024, 3, 20))
        income = make(amount=500, type="income", category="salary", when=datetime(2024, 3, 5))
        foreign = make(user_id="u2", when=datetime(2024, 3, 10))
        for transaction in (old, new, income, foreign):
            asyncio.run(transaction_storage.save_transaction(transaction))

        listed = asyncio.run(transaction_storage.list_transactions("u1"))
        assert [t.id for t in listed] == [new.id, income.id, old.id]

        ranged = asyncio.run(transaction_storage.list_transactions(
            "u1", date_from=date(2024, 3, 2), date_to=date(2024, 3, 20)
        ))
        assert [t.id for t in ranged] == [new.id, income.id]

        expenses = asyncio.run(transaction_storage.list_transactions(
            "u1", transaction_type=TransactionType.EXPENSE, category="FOOD"
        ))
        assert {t.id for t in expenses} == {old.id, new.id}

        page = asyncio.run(transaction_storage.list_transactions("u1", limit=1, offset=1))
        assert [t.id for t in page] == [income.id]

    def test_same_day_ordered_by_created_at(self, transaction_storage):
        first = make(created_at=datetime(2024, 3, 10, 8, 0))
        second = make(created_at=datetime(2024, 3, 10, 9, 0))
        asyncio.run(transaction_storage.save_transaction(first))
        asyncio.run(transaction_storage.save_transaction(second))

        listed = asyncio.run(transaction_storage.list_transactions("u1"))
        assert [t.id for t in listed] == [second.id, first.id]


class TestGoogleSheetsRows:
    """Row layout and tolerance of the Sheets backend."""

    def test_worksheet_created_with_header(self, spreadsheet):
        storage = GoogleSheetsTransactionStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        asyncio.run(storage.list_transactions("u1"))
        assert spreadsheet.sheets["Transactions"].rows[0] == TRANSACTION_COLUMNS

    def test_amount_written_signed(self, spreadsheet):
        storage = GoogleSheetsTransactionStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        asyncio.run(storage.save_transaction(make(amount=40)))
        row = spreadsheet.sheets["Transactions"].rows[1]
        assert row[2] == "-40"
        assert row[5] == "expense"

    def test_malformed_rows_skipped(self, spreadsheet):
        storage = GoogleSheetsTransactionStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        asyncio.run(storage.save_transaction(make()))
        sheet = spreadsheet.sheets["Transactions"]
        sheet.rows.append(["bad-1", "u1", "not-a-number", "", "food", "expense", "2024-03-01T00:00:00", ""])
        sheet.rows.append(["bad-2", "u1", "10"])  # truncated row
        sheet.rows.append([])

        listed = asyncio.run(storage.list_transactions("u1"))
        assert len(listed) == 1

    def test_legacy_positive_expense_row_normalized(self, spreadsheet):
        storage = GoogleSheetsTransactionStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        asyncio.run(storage.list_transactions("u1"))
        spreadsheet.sheets["Transactions"].rows.append(
            ["legacy", "u1", "25", "Bus", "Transportation", "expense", "2024-03-01T07:00:00", ""]
        )
        listed = asyncio.run(storage.list_transactions("u1"))
        assert listed[0].amount == Decimal("-25")
        assert listed[0].category == "transportation"

    def test_accounts_round_trip(self, spreadsheet):
        storage = GoogleSheetsAccountStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        account = UserAccount(email="ama@example.com", password_hash="hash")
        asyncio.run(storage.create_account(account))

        loaded = asyncio.run(storage.get_account_by_email("AMA@example.com"))
        assert loaded.user_id == account.user_id
        with pytest.raises(DuplicateError):
            asyncio.run(storage.create_account(UserAccount(email="ama@example.com", password_hash="x")))

    def test_profile_upsert(self, spreadsheet):
        storage = GoogleSheetsProfileStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        asyncio.run(storage.save_profile(UserProfile(user_id="u1", display_name="Ama")))
        asyncio.run(storage.save_profile(UserProfile(user_id="u1", display_name="Ama K", currency=Currency.USD)))

        assert len(spreadsheet.sheets["Profiles"].rows) == 2  # header + one profile
        loaded = asyncio.run(storage.get_profile("u1"))
        assert loaded.display_name == "Ama K"
        assert loaded.currency == Currency.USD

    def test_unparseable_audit_rows_skipped(self, spreadsheet):
        storage = GoogleSheetsAuditStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        event = AuditEventBuilder.signed_out("u1")
        asyncio.run(storage.append_event(event))
        spreadsheet.sheets["AuditLog"].rows.append(["not-a-uuid", "yesterday", "signed_out"])

        events = asyncio.run(storage.get_recent_events())
        assert [e.event_id for e in events] == [event.event_id]

    def test_audit_events_round_trip(self, spreadsheet):
        storage = GoogleSheetsAuditStorage(GoogleSheetsClient(spreadsheet=spreadsheet))
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_created("t1", "u1", "-40", "food", correlation_id)
        assert asyncio.run(storage.append_event(event)) is True

        events = asyncio.run(storage.get_events_by_correlation_id(correlation_id))
        assert len(events) == 1
        assert events[0].entity_id == "t1"
        assert events[0].details == {"amount": "-40", "category": "food"}
        assert asyncio.run(storage.get_recent_events(user_id="someone-else")) == []


class TestInMemoryStorage:

    def test_returned_models_are_copies(self):
        storage = InMemoryTransactionStorage()
        transaction = make()
        asyncio.run(storage.save_transaction(transaction))

        loaded = asyncio.run(storage.get_transaction(transaction.id, "u1"))
        loaded.description = "changed"
        assert asyncio.run(storage.get_transaction(transaction.id, "u1")).description == ""

    def test_accounts_and_profiles(self):
        accounts = InMemoryAccountStorage()
        asyncio.run(accounts.create_account(UserAccount(email="kofi@example.com", password_hash="h")))
        assert asyncio.run(accounts.get_account_by_email(" Kofi@Example.com ")) is not None

        profiles = InMemoryProfileStorage()
        assert asyncio.run(profiles.get_profile("u1")) is None
        asyncio.run(profiles.save_profile(UserProfile(user_id="u1", display_name="Kofi")))
        assert asyncio.run(profiles.get_profile("u1")).display_name == "Kofi"

    def test_audit_recent_newest_first(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.signed_out("u1")
        second = AuditEventBuilder.signed_out("u1")
        second.timestamp = datetime(2100, 1, 1)
        asyncio.run(storage.append_event(first))
        asyncio.run(storage.append_event(second))

        recent = asyncio.run(storage.get_recent_events(limit=1))
        assert recent == [second]
