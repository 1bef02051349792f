"""
Analytics Package

Pure aggregation over a user's transaction snapshot, plus money
formatting for the pages.
"""

from litfunds.analytics.aggregation import (
    balance_status,
    biggest_category,
    budget_overview,
    category_budget_usage,
    category_totals,
    daily_series,
    filter_by_range,
    normalize_transactions,
    period_range,
    summarize,
    totals,
)
from litfunds.analytics.formatting import format_currency, format_signed

__all__ = [
    "balance_status",
    "biggest_category",
    "budget_overview",
    "category_budget_usage",
    "category_totals",
    "daily_series",
    "filter_by_range",
    "normalize_transactions",
    "period_range",
    "summarize",
    "totals",
    "format_currency",
    "format_signed",
]
