"""Obligation error kinds and money helpers."""
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

Money = Union[Decimal, int, float, str]

ZERO = Decimal("0")


class ObligationError(Exception):
    """Base class for recoverable obligation errors surfaced to the caller."""
    pass


class NotFoundError(ObligationError):
    """The requested obligation does not exist."""
    pass


class InvalidStateError(ObligationError):
    """The operation is not allowed for the obligation's current status."""
    pass


class InvalidAmountError(ObligationError):
    """A monetary input is out of range."""
    pass


class InvalidInputError(ObligationError):
    """A non-monetary input is not one the ledgers accept."""
    pass


def to_money(value: Money) -> Decimal:
    """
    Convert a monetary input to Decimal.

    Floats go through their string form so 0.1 stays 0.1 instead of the
    nearest binary fraction.
    """
    if isinstance(value, Decimal):
        return value
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid monetary value: {value!r}")


def require_positive(value: Money, field: str = "amount") -> Decimal:
    amount = to_money(value)
    if amount <= ZERO:
        raise InvalidAmountError(f"{field} must be greater than zero, got {amount}")
    return amount


def require_non_negative(value: Optional[Money], field: str) -> Decimal:
    if value is None:
        return ZERO
    amount = to_money(value)
    if amount < ZERO:
        raise InvalidAmountError(f"{field} must not be negative, got {amount}")
    return amount


def append_note(existing: Optional[str], tag: str, note: Optional[str]) -> Optional[str]:
    """Append a tagged line to a notes field without replacing earlier notes."""
    if not note:
        return existing
    return f"{existing or ''}\n[{tag}] {note}".strip()
