"""
Analytics output models.

Plain view models produced by the aggregation module and consumed by
the pages. Nothing here touches storage.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CategoryOrder(str, Enum):
    """How category totals are ordered."""
    FIRST_SEEN = "first_seen"  # Order in which categories first appear
    AMOUNT_DESC = "amount_desc"  # Biggest spend first


class Period(str, Enum):
    """Analytics page range selector."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class BalanceTier(str, Enum):
    """Qualitative financial health, worst to best."""
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"
    GOOD = "good"
    EXCELLENT = "excellent"


class DateRange(BaseModel):
    """Inclusive calendar range."""

    start: date
    end: date

    @property
    def is_valid(self) -> bool:
        return self.start <= self.end

    @property
    def day_count(self) -> int:
        if not self.is_valid:
            return 0
        return (self.end - self.start).days + 1

    def label(self) -> str:
        return f"{self.start:%b} {self.start.day} - {self.end:%b} {self.end.day}, {self.end.year}"


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal


class DailyAmount(BaseModel):
    """Expense total for one calendar day."""

    day: date
    amount: Decimal

    @property
    def label(self) -> str:
        return f"{self.day:%b} {self.day.day}"


class Totals(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class BalanceStatus(BaseModel):
    """
    Financial health classification.

    `style` names the CSS box class the pages use for the card.
    """

    tier: BalanceTier
    message: str
    style: str


class BudgetUsage(BaseModel):
    """Spend against one category budget."""

    category: str
    spent: Decimal
    limit: Decimal
    percent: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Spent as a percentage of the limit, clamped to 100 for progress bars"
    )
    ratio: Optional[float] = Field(
        default=None,
        description="Unclamped spent / limit; None when the limit is not positive"
    )

    @property
    def over_budget(self) -> bool:
        return self.spent > self.limit

    @property
    def remaining(self) -> Decimal:
        return self.limit - self.spent


class Summary(BaseModel):
    """Everything a dashboard card needs for one date range."""

    date_range: DateRange
    transaction_count: int = Field(ge=0)
    totals: Totals
    status: BalanceStatus
    categories: list[CategoryTotal] = Field(default_factory=list)
    ranked_categories: list[CategoryTotal] = Field(
        default_factory=list,
        description="Same totals, biggest spend first"
    )
    biggest_category: Optional[CategoryTotal] = None
    daily: list[DailyAmount] = Field(default_factory=list)
    budgets: list[BudgetUsage] = Field(default_factory=list)

    @property
    def max_daily_amount(self) -> Decimal:
        """Largest daily spend, for scaling bar heights."""
        return max((entry.amount for entry in self.daily), default=Decimal("0"))
