"""Errors raised by the service layer."""

from decimal import Decimal
from typing import Optional

from solcustody.errors import ErrorKind, SolcustodyError


class ServiceError(SolcustodyError):
    """Base class for service-level input errors."""

    kind = ErrorKind.INVALID_INPUT


class WalletNotRegisteredError(ServiceError):
    """The user has no custodial wallet yet (/start creates one)."""

    def __init__(self, user_id):
        super().__init__(f"User {user_id} has no wallet")
        self.user_id = user_id


class InvalidAddressError(ServiceError):
    """Not a valid base58 Solana address."""


class InvalidAmountError(ServiceError):
    """Amount is not a positive number (or out of range)."""


class InsufficientBalanceError(ServiceError):
    """Wallet holds less than the operation needs."""

    def __init__(self, have: Decimal, need: Decimal, asset: Optional[str] = "SOL"):
        super().__init__(f"Insufficient {asset} balance: have {have}, need {need}")
        self.have = have
        self.need = need
        self.asset = asset


class PositionNotFoundError(ServiceError):
    """The wallet has no such position in the pool."""
