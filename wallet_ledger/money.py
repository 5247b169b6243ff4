"""
Money Module

Amount parsing and Decimal precision rules for the single ledger currency.
NEVER uses float for monetary values: floats accepted at the boundary are
converted through their string representation.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Any

from .errors import InvalidAmount

# Set global decimal context for financial precision
getcontext().prec = 28

MONEY_PRECISION = 2
QUANTUM = Decimal('0.1') ** MONEY_PRECISION
ZERO = Decimal('0').quantize(QUANTUM)


def quantize(value: Decimal) -> Decimal:
    """Round to ledger precision"""
    return value.quantize(QUANTUM, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Decimal:
    """
    Validate a transfer amount and convert it to a Decimal at ledger precision

    Args:
        value: int, Decimal, finite float or numeric string

    Returns:
        Positive Decimal rounded half-up to MONEY_PRECISION places

    Raises:
        InvalidAmount: If the value is not numeric, not finite, or not positive
    """
    # bool is an int subclass; True is not an amount
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"Amount must be numeric, got {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidAmount(f"Amount must be numeric, got {value!r}")
    else:
        raise InvalidAmount(f"Amount must be numeric, got {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}")

    try:
        amount = quantize(amount)
    except InvalidOperation:
        raise InvalidAmount(f"Amount out of range: {value!r}")
    if amount <= ZERO:
        raise InvalidAmount(f"Amount must be positive, got {value!r}")

    return amount


def parse_balance(value: Any) -> Decimal:
    """Convert a stored balance (Decimal string or number) to a Decimal"""
    if isinstance(value, Decimal):
        return quantize(value)
    return quantize(Decimal(str(value)))


def to_minor_units(amount: Decimal) -> int:
    """Convert a Decimal amount to integer minor units (cents)"""
    return int(quantize(amount).scaleb(MONEY_PRECISION))


def from_minor_units(units: int) -> Decimal:
    """Convert integer minor units back to a Decimal amount"""
    return quantize(Decimal(units).scaleb(-MONEY_PRECISION))


def format_amount(amount: Decimal) -> str:
    """Format for display"""
    return f"{amount:,.{MONEY_PRECISION}f}"
