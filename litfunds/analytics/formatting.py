"""Money formatting for cards, lists and chart labels."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from litfunds.models.user import Currency


CENTS = Decimal("0.01")


def format_currency(amount: Union[Decimal, int, float], currency: Union[Currency, str] = Currency.GHS) -> str:
    """
    Unsigned amount with the currency symbol, e.g. "₵1,250.00".

    The sign is dropped; use format_signed where direction matters.
    """
    currency = Currency(currency)
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    value = abs(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    return f"{currency.symbol}{value:,.2f}"


def format_signed(amount: Union[Decimal, int, float], currency: Union[Currency, str] = Currency.GHS) -> str:
    """Amount with an explicit +/- prefix, e.g. "-₵40.00". Zero has no sign."""
    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    if value > 0:
        prefix = "+"
    elif value < 0:
        prefix = "-"
    else:
        prefix = ""
    return f"{prefix}{format_currency(value, currency)}"
