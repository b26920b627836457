"""Currency formatting for paise amounts."""

from decimal import Decimal


CURRENCY = "INR"
CURRENCY_SYMBOL = "₹"


def to_major_units(amount_paise: int) -> Decimal:
    """Convert paise to an exact rupee amount with two decimal places."""
    return (Decimal(amount_paise) / 100).quantize(Decimal("0.01"))


def format_amount(amount_paise: int) -> str:
    """Plain two-decimal string, e.g. 3000 -> '30.00'."""
    return f"{to_major_units(amount_paise):.2f}"


def format_currency(amount_paise: int) -> str:
    """
    Format an amount in paise as a rupee string with symbol.

    Args:
        amount_paise: Amount in minor units (e.g., 1234 for ₹12.34)

    Returns:
        Formatted string with symbol (e.g., "₹12.34", "-₹5.00")
    """
    if amount_paise < 0:
        return f"-{CURRENCY_SYMBOL}{format_amount(-amount_paise)}"
    return f"{CURRENCY_SYMBOL}{format_amount(amount_paise)}"
