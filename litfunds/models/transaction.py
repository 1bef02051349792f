"""
Core Data Models for LitFunds

These models define the strict schemas for transaction data flowing
through the system. They are designed to:
1. Enforce type safety at runtime
2. Normalize legacy records exactly once, at ingestion
3. Be serializable for storage and logging

DESIGN DECISION: The stored amount is signed consistently with the
transaction type (income positive, expense negative). The sign is always
re-derived from the type, so a legacy expense stored as a positive
magnitude is normalized on read and never flipped twice.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


# Categories offered by the transaction form. Stored categories are
# free text, so anything else typed in by the user is still accepted.
DEFAULT_CATEGORIES: dict[str, str] = {
    "food": "Food & Dining",
    "transportation": "Transportation",
    "entertainment": "Entertainment",
    "utilities": "Utilities",
    "shopping": "Shopping",
    "other": "Other",
}


def normalize_category(value: str) -> str:
    """Grouping key for a free-text category."""
    return value.strip().lower()


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; aware values are converted."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Inside Transaction the name `date` is the field, not the type
Day = date

MAX_DESCRIPTION_LENGTH = 500
MAX_CATEGORY_LENGTH = 100


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record owned by one user.

    Accepts both snake_case and the camelCase keys written by older
    revisions of the app (userId, createdAt).
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    # Identity
    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    user_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("user_id", "userId"),
        description="Owning user"
    )

    amount: Decimal = Field(
        ...,
        description="Signed amount: positive for income, negative for expense"
    )
    description: str = Field(
        default="",
        max_length=MAX_DESCRIPTION_LENGTH,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CATEGORY_LENGTH,
        description="Lowercase category label"
    )
    type: TransactionType
    date: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        validation_alias=AliasChoices("created_at", "createdAt"),
        description="When the record was created (default sort order only)"
    )

    @field_validator('category', mode='before')
    @classmethod
    def lowercase_category(cls, v: Any) -> Any:
        """Categories group case-insensitively."""
        if isinstance(v, str):
            return normalize_category(v)
        return v

    @field_validator('description', mode='before')
    @classmethod
    def empty_description(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('date', 'created_at', mode='before')
    @classmethod
    def promote_plain_date(cls, v: Any) -> Any:
        """A bare calendar date means midnight of that day."""
        if isinstance(v, datetime):
            return to_naive_utc(v)
        if isinstance(v, date):
            return datetime.combine(v, time.min)
        return v

    @field_validator('date', 'created_at')
    @classmethod
    def drop_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @model_validator(mode='after')
    def apply_sign_convention(self) -> 'Transaction':
        """Derive the sign of the amount from the type."""
        magnitude = abs(self.amount)
        self.amount = magnitude if self.type == TransactionType.INCOME else -magnitude
        return self

    @property
    def magnitude(self) -> Decimal:
        """Unsigned amount for display and expense sums."""
        return abs(self.amount)

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def day(self) -> Day:
        """Calendar day of the transaction (time of day dropped)."""
        return self.date.date()


class TransactionInput(BaseModel):
    """
    Raw values from the new/edit transaction form.

    Nothing here is trusted yet; the validator turns it into a
    Transaction or reports what is wrong.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: str = Field(
        default="",
        description="Amount as typed, always a positive magnitude"
    )
    description: str = ""
    category: str = "food"
    type: str = TransactionType.EXPENSE.value
    transaction_date: Optional[date] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> 'TransactionInput':
        """Pre-fill the edit form from a stored transaction."""
        return cls(
            amount=str(transaction.magnitude),
            description=transaction.description,
            category=transaction.category,
            type=transaction.type.value,
            transaction_date=transaction.day,
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage form validation.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (sanity checks)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool = Field(
        ...,
        description="Can the transaction be saved?"
    )

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
