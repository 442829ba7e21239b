"""Decimal <-> base-unit conversion."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

Number = Union[str, int, float, Decimal]

SOL_DECIMALS = 9
U64_MAX = 2**64 - 1


def parse_amount(value: Number) -> Decimal:
    """Parse a user-supplied amount.

    Raises:
        ValueError: If the value is not a finite number
    """
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return amount


def to_base_units(amount: Number, decimals: int) -> int:
    """Convert a UI amount to integer base units, rounding down.

    Raises:
        ValueError: If the amount is not a number or does not fit in a u64
    """
    parsed = parse_amount(amount)
    with localcontext() as ctx:
        ctx.prec = 60
        try:
            scaled = (parsed * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
        except InvalidOperation:
            raise ValueError(f"Amount {amount} is too large")
    units = int(scaled)
    if units > U64_MAX:
        raise ValueError(f"Amount {amount} is too large")
    return units


def from_base_units(amount: int, decimals: int) -> Decimal:
    return Decimal(amount) / (Decimal(10) ** decimals)


def sol_to_lamports(amount: Number) -> int:
    return to_base_units(amount, SOL_DECIMALS)


def lamports_to_sol(lamports: int) -> Decimal:
    return from_base_units(lamports, SOL_DECIMALS)
