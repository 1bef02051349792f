"""
Transaction Aggregation

Derived totals over one user's transaction snapshot: category totals,
daily spending series, income/expense/balance, biggest category,
balance health and budget usage.

DESIGN DECISION: Every function here is pure.
- No I/O, no shared state, inputs are never mutated
- Outputs are freshly built models
- A malformed record is skipped, never fatal to the whole computation

Every page calls these functions (usually through `summarize`) instead
of re-implementing the arithmetic inline.

Inputs may be Transaction models or raw mappings as read from storage.
Raw mappings are normalized through the Transaction model, which is
the single place the amount sign convention is applied.
"""

import calendar
import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union
from uuid import UUID, uuid5

import structlog
from pydantic import ValidationError

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
from litfunds.models.transaction import (
    Transaction,
    normalize_category,
    to_naive_utc,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

TransactionLike = Union[Transaction, Mapping[str, Any]]
DateLike = Union[date, datetime]

# A raw record missing any of these is skipped
REQUIRED_FIELDS = ("amount", "date", "category", "type")

RECORD_NAMESPACE = UUID("5d0c4e52-7b1f-4c59-9a63-2f1e8b6d3a40")

# (message, css box class) per tier
TIER_DISPLAY: dict[BalanceTier, tuple[str, str]] = {
    BalanceTier.CRITICAL: (
        "Critical: expenses are far ahead of income. Cut back now.",
        "error-box",
    ),
    BalanceTier.WARNING: (
        "Warning: you are spending more than you earn.",
        "warning-box",
    ),
    BalanceTier.NORMAL: (
        "On track: income covers your expenses.",
        "info-box",
    ),
    BalanceTier.GOOD: (
        "Good: your balance is larger than your expenses.",
        "success-box",
    ),
    BalanceTier.EXCELLENT: (
        "Excellent: your balance is more than three times your expenses.",
        "success-box",
    ),
}


# =============================================================================
# INGESTION
# =============================================================================

def _coerce(record: Any) -> Optional[Transaction]:
    """Turn one record into a Transaction, or None if it is unusable."""
    if isinstance(record, Transaction):
        return record

    if not isinstance(record, Mapping):
        logger.debug("transaction_skipped", reason="not a mapping", record_type=type(record).__name__)
        return None

    missing = [name for name in REQUIRED_FIELDS if record.get(name) in (None, "")]
    if missing:
        logger.debug("transaction_skipped", reason="missing fields", fields=missing, record_id=record.get("id"))
        return None

    data = dict(record)
    # Records without identity get one derived from their contents
    if not data.get("id"):
        data["id"] = str(uuid5(RECORD_NAMESPACE, json.dumps(data, sort_keys=True, default=str)))
    if not (data.get("created_at") or data.get("createdAt")):
        data["created_at"] = data["date"]

    try:
        return Transaction.model_validate(data)
    except ValidationError as e:
        logger.debug(
            "transaction_skipped",
            reason="invalid fields",
            fields=[".".join(str(part) for part in err["loc"]) for err in e.errors()],
            record_id=record.get("id"),
        )
        return None


def normalize_transactions(records: Iterable[TransactionLike]) -> list[Transaction]:
    """
    Normalize a snapshot of records into Transaction models.

    Malformed records (missing amount/date/category/type, or values that
    don't parse) are dropped. Order is preserved.
    """
    transactions = []
    for record in records:
        transaction = _coerce(record)
        if transaction is not None:
            transactions.append(transaction)
    return transactions


def _to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _as_day(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _bounds(start: DateLike, end: DateLike) -> Optional[tuple[datetime, datetime]]:
    """
    Inclusive datetime bounds for a range.

    A plain date bound covers that whole calendar day.
    Returns None for an inverted range.
    """
    if isinstance(start, datetime):
        lower = to_naive_utc(start)
    else:
        lower = datetime.combine(start, time.min)

    if isinstance(end, datetime):
        upper = to_naive_utc(end)
    else:
        upper = datetime.combine(end, time.max)

    if lower > upper:
        return None
    return lower, upper


# =============================================================================
# AGGREGATIONS
# =============================================================================

def filter_by_range(
    transactions: Iterable[TransactionLike],
    start: DateLike,
    end: DateLike,
) -> list[Transaction]:
    """
    Keep transactions dated within [start, end] inclusive.

    An inverted range (start after end) yields an empty list.
    """
    bounds = _bounds(start, end)
    if bounds is None:
        return []

    lower, upper = bounds
    return [
        transaction
        for transaction in normalize_transactions(transactions)
        if lower <= transaction.date <= upper
    ]


def category_totals(
    transactions: Iterable[TransactionLike],
    order: Union[CategoryOrder, str] = CategoryOrder.FIRST_SEEN,
) -> list[CategoryTotal]:
    """
    Sum expense magnitudes per lowercase category.

    Args:
        transactions: Snapshot of one user's records
        order: FIRST_SEEN keeps the order categories first appear in;
               AMOUNT_DESC puts the biggest spend first (ties keep
               first-seen order)

    Returns:
        One CategoryTotal per category with at least one expense
    """
    order = CategoryOrder(order)

    sums: dict[str, Decimal] = {}
    for transaction in normalize_transactions(transactions):
        if not transaction.is_expense:
            continue
        sums[transaction.category] = sums.get(transaction.category, ZERO) + transaction.magnitude

    entries = [CategoryTotal(category=category, amount=amount) for category, amount in sums.items()]

    if order == CategoryOrder.AMOUNT_DESC:
        # list.sort is stable with reverse=True, so ties stay first-seen
        entries.sort(key=lambda entry: entry.amount, reverse=True)

    return entries


def daily_series(
    transactions: Iterable[TransactionLike],
    start: DateLike,
    end: DateLike,
) -> list[DailyAmount]:
    """
    Expense total for every calendar day in [start, end], ascending.

    Days without expenses are present with amount 0, so the result
    always has (end - start + 1) entries. Time of day is ignored.
    An inverted range yields an empty list.
    """
    first_day = _as_day(start)
    last_day = _as_day(end)
    if first_day > last_day:
        return []

    per_day: dict[date, Decimal] = {}
    for transaction in normalize_transactions(transactions):
        if not transaction.is_expense:
            continue
        day = transaction.day
        if first_day <= day <= last_day:
            per_day[day] = per_day.get(day, ZERO) + transaction.magnitude

    day_count = (last_day - first_day).days + 1
    series = []
    for offset in range(day_count):
        day = first_day + timedelta(days=offset)
        series.append(DailyAmount(day=day, amount=per_day.get(day, ZERO)))
    return series


def totals(transactions: Iterable[TransactionLike]) -> Totals:
    """Income, expense magnitude and balance (income - expense)."""
    income = ZERO
    expense = ZERO

    for transaction in normalize_transactions(transactions):
        if transaction.is_income:
            income += transaction.amount
        else:
            expense += transaction.magnitude

    return Totals(income=income, expense=expense, balance=income - expense)


def biggest_category(transactions: Iterable[TransactionLike]) -> Optional[CategoryTotal]:
    """
    The category with the largest expense total.

    Ties go to the category seen first. None when there are no expenses.
    """
    biggest = None
    for entry in category_totals(transactions, order=CategoryOrder.FIRST_SEEN):
        if biggest is None or entry.amount > biggest.amount:
            biggest = entry
    return biggest


def balance_status(
    balance: Union[Decimal, int, float],
    total_expenses: Union[Decimal, int, float],
) -> BalanceStatus:
    """
    Classify financial health from balance and total expenses.

    Thresholds:
        balance < 0, deficit > half of expenses  -> critical
        balance < 0 otherwise                    -> warning
        balance > 3 x expenses                   -> excellent
        balance > expenses                       -> good
        otherwise                                -> normal

    With zero expenses, a zero balance is normal and any positive
    balance is excellent. No ratio is ever divided out.
    """
    balance = _to_decimal(balance)
    expenses = abs(_to_decimal(total_expenses))

    if balance < 0:
        if abs(balance) > expenses * Decimal("0.5"):
            tier = BalanceTier.CRITICAL
        else:
            tier = BalanceTier.WARNING
    elif expenses == 0:
        tier = BalanceTier.EXCELLENT if balance > 0 else BalanceTier.NORMAL
    elif balance > expenses * 3:
        tier = BalanceTier.EXCELLENT
    elif balance > expenses:
        tier = BalanceTier.GOOD
    else:
        tier = BalanceTier.NORMAL

    message, style = TIER_DISPLAY[tier]
    return BalanceStatus(tier=tier, message=message, style=style)


def category_budget_usage(
    transactions: Iterable[TransactionLike],
    category: str,
    budget_limit: Union[Decimal, int, float],
) -> BudgetUsage:
    """
    How much of a category budget has been spent.

    `percent` is clamped to 100 for progress bars; `ratio` keeps the
    unclamped spent/limit and `over_budget` compares spent to limit
    directly. A non-positive limit is never divided by: percent is 0 when
    nothing was spent and 100 otherwise, and ratio is None.
    """
    key = normalize_category(category)
    limit = _to_decimal(budget_limit)

    spent = ZERO
    for transaction in normalize_transactions(transactions):
        if transaction.is_expense and transaction.category == key:
            spent += transaction.magnitude

    if limit > 0:
        ratio = spent / limit
        percent = float(min(ratio * 100, Decimal("100")))
        return BudgetUsage(category=key, spent=spent, limit=limit, percent=percent, ratio=float(ratio))

    percent = 0.0 if spent == 0 else 100.0
    return BudgetUsage(category=key, spent=spent, limit=limit, percent=percent, ratio=None)


def budget_overview(
    transactions: Iterable[TransactionLike],
    budgets: Mapping[str, Union[Decimal, int, float]],
) -> list[BudgetUsage]:
    """Budget usage for each configured category, in configured order."""
    snapshot = normalize_transactions(transactions)
    return [
        category_budget_usage(snapshot, category, limit)
        for category, limit in budgets.items()
    ]


# =============================================================================
# RANGES AND SUMMARIES
# =============================================================================

def period_range(period: Union[Period, str], today: Optional[date] = None) -> DateRange:
    """
    Calendar range containing `today` for the analytics page selector.

    Weeks start on Monday.
    """
    period = Period(period)
    today = today or date.today()

    if period == Period.WEEK:
        start = today - timedelta(days=today.weekday())
        return DateRange(start=start, end=start + timedelta(days=6))

    if period == Period.MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateRange(start=today.replace(day=1), end=today.replace(day=last_day))

    return DateRange(start=date(today.year, 1, 1), end=date(today.year, 12, 31))


def summarize(
    transactions: Iterable[TransactionLike],
    start: DateLike,
    end: DateLike,
    budgets: Optional[Mapping[str, Union[Decimal, int, float]]] = None,
) -> Summary:
    """
    Build every dashboard figure for one date range in a single pass
    over the snapshot.

    Args:
        transactions: One user's records (any order)
        start: First day of the range (inclusive)
        end: Last day of the range (inclusive)
        budgets: Optional {category: limit} for the budget overview

    Returns:
        Summary with totals, health status, category totals (both
        orderings), biggest category, daily series and budget usage
    """
    in_range = filter_by_range(transactions, start, end)
    range_totals = totals(in_range)

    return Summary(
        date_range=DateRange(start=_as_day(start), end=_as_day(end)),
        transaction_count=len(in_range),
        totals=range_totals,
        status=balance_status(range_totals.balance, range_totals.expense),
        categories=category_totals(in_range, order=CategoryOrder.FIRST_SEEN),
        ranked_categories=category_totals(in_range, order=CategoryOrder.AMOUNT_DESC),
        biggest_category=biggest_category(in_range),
        daily=daily_series(in_range, start, end),
        budgets=budget_overview(in_range, budgets or {}),
    )
