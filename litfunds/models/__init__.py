"""
Data Models Package

This package contains all Pydantic models used in LitFunds.
All data flowing through the system must conform to these schemas.
"""

from litfunds.models.transaction import (
    DEFAULT_CATEGORIES,
    Transaction,
    TransactionInput,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    normalize_category,
)
from litfunds.models.user import (
    Currency,
    ProfileStats,
    UserAccount,
    UserProfile,
)
from litfunds.models.analytics import (
    BalanceStatus,
    BalanceTier,
    BudgetUsage,
    CategoryOrder,
    CategoryTotal,
    DailyAmount,
    DateRange,
    Period,
    Summary,
    Totals,
)
from litfunds.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DEFAULT_CATEGORIES",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "normalize_category",
    # User models
    "Currency",
    "ProfileStats",
    "UserAccount",
    "UserProfile",
    # Analytics models
    "BalanceStatus",
    "BalanceTier",
    "BudgetUsage",
    "CategoryOrder",
    "CategoryTotal",
    "DailyAmount",
    "DateRange",
    "Period",
    "Summary",
    "Totals",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
