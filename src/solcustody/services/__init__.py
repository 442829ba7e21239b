"""Services orchestrating wallets, transfers, swaps and liquidity."""

from solcustody.services.errors import (
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    PositionNotFoundError,
    ServiceError,
    WalletNotRegisteredError,
)
from solcustody.services.liquidity import (
    FeesClaimed,
    LiquidityResult,
    LiquidityService,
    PoolStatus,
    PositionResult,
)
from solcustody.services.swaps import SwapResult, SwapService
from solcustody.services.transfers import TransferResult, TransferService
from solcustody.services.wallets import WalletOverview, WalletService

__all__ = [
    "WalletService",
    "WalletOverview",
    "TransferService",
    "TransferResult",
    "SwapService",
    "SwapResult",
    "LiquidityService",
    "PositionResult",
    "LiquidityResult",
    "FeesClaimed",
    "PoolStatus",
    # Errors
    "ServiceError",
    "WalletNotRegisteredError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InsufficientBalanceError",
    "PositionNotFoundError",
]
