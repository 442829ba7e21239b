"""Input validation shared by services."""

from decimal import Decimal

from solders.pubkey import Pubkey

from solcustody.services.errors import InvalidAddressError, InvalidAmountError
from solcustody.utils.amounts import Number, parse_amount, to_base_units


def parse_address(value: str, what: str = "address") -> Pubkey:
    """Parse a base58 Solana address.

    Raises:
        InvalidAddressError: If ``value`` is not a 32-byte base58 key
    """
    try:
        return Pubkey.from_string(value.strip())
    except (ValueError, AttributeError) as e:
        raise InvalidAddressError(f"Invalid {what}: {value!r}") from e


def parse_positive_amount(value: Number) -> Decimal:
    """Parse an amount that must be > 0.

    Raises:
        InvalidAmountError: If the amount is not a positive number
    """
    try:
        amount = parse_amount(value)
    except ValueError as e:
        raise InvalidAmountError(str(e)) from e
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")
    return amount


def to_raw_amount(amount: Decimal, decimals: int) -> int:
    """Convert a parsed amount to on-chain base units.

    Raises:
        InvalidAmountError: If the amount does not fit in a u64
    """
    try:
        return to_base_units(amount, decimals)
    except ValueError as e:
        raise InvalidAmountError(str(e)) from e
