"""User account and profile models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Currency(str, Enum):
    """Display currencies offered on the profile page."""
    GHS = "GHS"
    USD = "USD"

    @property
    def symbol(self) -> str:
        return {"GHS": "₵", "USD": "$"}[self.value]

    @property
    def label(self) -> str:
        return {"GHS": "Ghana Cedi (₵)", "USD": "US Dollar ($)"}[self.value]


class UserAccount(BaseModel):
    """
    Login credentials for one user.

    The password is never stored; only its werkzeug hash.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
    )
    password_hash: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserProfile(BaseModel):
    """Editable per-user preferences."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str
    email: str = ""
    display_name: str = Field(default="", max_length=100)
    currency: Currency = Currency.GHS
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def greeting_name(self) -> str:
        return self.display_name or self.email


class ProfileStats(BaseModel):
    """Lifetime totals shown on the profile page."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)
    last_transaction_at: Optional[datetime] = None
