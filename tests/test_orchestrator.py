"""
Tests for the end-to-end flows over in-memory storage.
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal

from litfunds.audit import AuditLogger
from litfunds.config import AppSettings
from litfunds.models import (
    AuditEventType,
    BalanceTier,
    Currency,
    Period,
    Transaction,
    TransactionInput,
)
from litfunds.orchestrator import (
    AnalyticsFlow,
    AuthFlow,
    ProfileFlow,
    TransactionFlow,
    create_app_components,
)
from litfunds.services.auth import AuthenticationError, AuthService
from litfunds.services.storage import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
    PermissionDeniedError,
    StorageError,
)


SETTINGS = AppSettings(
    category_budgets={"food": Decimal("500"), "transportation": Decimal("300")},
    recent_transactions_limit=2,
)


def form(amount="40", category="food", type="expense", when=date(2024, 3, 10), **extra):
    return TransactionInput(amount=amount, category=category, type=type, transaction_date=when, **extra)


def event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class FailingTransactionStorage(InMemoryTransactionStorage):

    async def save_transaction(self, transaction: Transaction) -> bool:
        raise StorageError("quota exceeded")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def transactions():
    return InMemoryTransactionStorage()


@pytest.fixture
def flow(transactions, audit_storage):
    return TransactionFlow(transactions, audit_logger=AuditLogger(audit_storage), settings=SETTINGS)


class TestAuthFlow:

    @pytest.fixture
    def auth_flow(self, audit_storage):
        service = AuthService(InMemoryAccountStorage(), InMemoryProfileStorage(), SETTINGS)
        return AuthFlow(service, AuditLogger(audit_storage))

    def test_sign_up_sign_in_sign_out_audited(self, auth_flow, audit_storage):
        account = asyncio.run(auth_flow.sign_up("ama@example.com", "secret1", "secret1"))
        asyncio.run(auth_flow.sign_in("ama@example.com", "secret1"))
        asyncio.run(auth_flow.sign_out(account.user_id))

        assert event_types(audit_storage) == [
            AuditEventType.ACCOUNT_CREATED,
            AuditEventType.SIGN_IN_SUCCEEDED,
            AuditEventType.SIGNED_OUT,
        ]

    def test_failed_sign_in_audited_and_raised(self, auth_flow, audit_storage):
        with pytest.raises(AuthenticationError):
            asyncio.run(auth_flow.sign_in("ghost@example.com", "whatever"))
        assert event_types(audit_storage) == [AuditEventType.SIGN_IN_FAILED]


class TestTransactionFlow:

    def test_create_saves_and_audits(self, flow, transactions, audit_storage):
        saved, result = asyncio.run(flow.create_transaction(form(description="Lunch"), "u1"))

        assert result.is_valid is True
        assert saved.amount == Decimal("-40")
        assert asyncio.run(transactions.get_transaction(saved.id, "u1")) is not None
        assert event_types(audit_storage) == [AuditEventType.TRANSACTION_CREATED]

    def test_invalid_form_not_saved(self, flow, transactions, audit_storage):
        saved, result = asyncio.run(flow.create_transaction(form(amount="0"), "u1"))

        assert saved is None
        assert result.is_valid is False
        assert asyncio.run(transactions.list_transactions("u1")) == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_warnings_do_not_block(self, flow):
        saved, result = asyncio.run(flow.create_transaction(form(amount="5000000"), "u1"))
        assert saved is not None
        assert result.warnings

    def test_overlong_description_rejected_not_raised(self, flow, transactions, audit_storage):
        saved, result = asyncio.run(flow.create_transaction(form(description="x" * 600), "u1"))

        assert saved is None
        assert result.is_valid is False
        assert asyncio.run(transactions.list_transactions("u1")) == []
        assert event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_overlong_category_edit_rejected(self, flow):
        saved, _ = asyncio.run(flow.create_transaction(form(), "u1"))
        updated, result = asyncio.run(flow.update_transaction(saved.id, form(category="c" * 150), "u1"))
        assert updated is None
        assert result.is_valid is False

    def test_save_failure_audited_and_raised(self, audit_storage):
        failing = TransactionFlow(
            FailingTransactionStorage(),
            audit_logger=AuditLogger(audit_storage),
            settings=SETTINGS,
        )
        with pytest.raises(StorageError):
            asyncio.run(failing.create_transaction(form(), "u1"))
        assert event_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    def test_update_records_changes(self, flow, audit_storage):
        saved, _ = asyncio.run(flow.create_transaction(form(description="Lunch"), "u1"))

        updated, result = asyncio.run(flow.update_transaction(
            saved.id,
            form(amount="55", category="Shopping", description="Lunch"),
            "u1",
        ))

        assert result.is_valid is True
        assert updated.id == saved.id
        assert updated.created_at == saved.created_at
        assert updated.amount == Decimal("-55")

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.TRANSACTION_UPDATED
        assert set(event.details["changes"]) == {"amount", "category"}

    def test_update_switching_type_flips_sign(self, flow):
        saved, _ = asyncio.run(flow.create_transaction(form(), "u1"))
        updated, _ = asyncio.run(flow.update_transaction(
            saved.id, form(type="income", category="gift"), "u1"
        ))
        assert updated.amount == Decimal("40")

    def test_other_user_cannot_edit_or_delete(self, flow):
        saved, _ = asyncio.run(flow.create_transaction(form(), "owner"))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(flow.update_transaction(saved.id, form(), "intruder"))
        with pytest.raises(PermissionDeniedError):
            asyncio.run(flow.delete_transaction(saved.id, "intruder"))

    def test_delete_audited(self, flow, transactions, audit_storage):
        saved, _ = asyncio.run(flow.create_transaction(form(), "u1"))
        asyncio.run(flow.delete_transaction(saved.id, "u1"))

        assert asyncio.run(transactions.list_transactions("u1")) == []
        assert event_types(audit_storage)[-1] == AuditEventType.TRANSACTION_DELETED

    def test_list_recent_uses_configured_limit(self, flow):
        for day in (1, 2, 3):
            asyncio.run(flow.create_transaction(form(when=date(2024, 3, day)), "u1"))

        recent = asyncio.run(flow.list_recent("u1"))
        assert [t.day for t in recent] == [date(2024, 3, 3), date(2024, 3, 2)]


class TestAnalyticsFlow:

    def test_monthly_summary_scoped_to_user(self):
        storage = InMemoryTransactionStorage([
            Transaction(user_id="u1", amount=1000, category="salary", type="income", date=datetime(2024, 3, 1)),
            Transaction(user_id="u1", amount=250, category="food", type="expense", date=datetime(2024, 3, 2)),
            Transaction(user_id="u1", amount=99, category="food", type="expense", date=datetime(2024, 2, 28)),
            Transaction(user_id="u2", amount=400, category="food", type="expense", date=datetime(2024, 3, 2)),
        ])
        analytics = AnalyticsFlow(storage, settings=SETTINGS)

        summary = asyncio.run(analytics.monthly_summary("u1", today=date(2024, 3, 15)))

        assert summary.transaction_count == 2
        assert summary.totals.expense == Decimal("250")
        assert summary.status.tier == BalanceTier.GOOD
        assert len(summary.daily) == 31
        assert [b.category for b in summary.budgets] == ["food", "transportation"]
        assert summary.budgets[0].percent == pytest.approx(50.0)

    def test_week_period(self):
        analytics = AnalyticsFlow(InMemoryTransactionStorage(), settings=SETTINGS)
        summary = asyncio.run(analytics.summary_for_period("u1", Period.WEEK, today=date(2024, 3, 14)))
        assert summary.date_range.start == date(2024, 3, 11)
        assert len(summary.daily) == 7


class TestProfileFlow:

    @pytest.fixture
    def profile_flow(self, transactions, audit_storage):
        return ProfileFlow(
            InMemoryProfileStorage(),
            transactions,
            audit_logger=AuditLogger(audit_storage),
            settings=SETTINGS,
        )

    def test_defaults_when_missing(self, profile_flow):
        profile = asyncio.run(profile_flow.get_profile("u1", "ama@example.com"))
        assert profile.currency == Currency.GHS
        assert profile.greeting_name == "ama@example.com"

    def test_update_persists_and_audits(self, profile_flow, audit_storage):
        asyncio.run(profile_flow.update_profile("u1", " Ama ", "USD"))

        profile = asyncio.run(profile_flow.get_profile("u1"))
        assert profile.display_name == "Ama"
        assert profile.currency == Currency.USD

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.PROFILE_UPDATED
        assert set(event.details) == {"display_name", "currency"}

    def test_stats(self, profile_flow, flow):
        asyncio.run(flow.create_transaction(form(amount="1000", type="income", category="salary"), "u1"))
        asyncio.run(flow.create_transaction(form(amount="300", when=date(2024, 3, 12)), "u1"))

        stats = asyncio.run(profile_flow.get_stats("u1"))
        assert stats.total_income == Decimal("1000")
        assert stats.total_expenses == Decimal("300")
        assert stats.balance == Decimal("700")
        assert stats.transaction_count == 2
        assert stats.last_transaction_at == datetime(2024, 3, 12)

    def test_stats_empty(self, profile_flow):
        stats = asyncio.run(profile_flow.get_stats("nobody"))
        assert stats.transaction_count == 0
        assert stats.last_transaction_at is None


class TestCreateAppComponents:

    def test_in_memory_components_work_end_to_end(self):
        components = create_app_components(use_storage=False, settings=SETTINGS)
        assert components.sheets_client is None

        account = asyncio.run(components.auth_flow.sign_up("efua@example.com", "secret1", "secret1"))
        saved, _ = asyncio.run(components.transaction_flow.create_transaction(form(), account.user_id))

        stats = asyncio.run(components.profile_flow.get_stats(account.user_id))
        assert stats.transaction_count == 1
        assert saved.user_id == account.user_id
