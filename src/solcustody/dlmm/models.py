"""DLMM pool and position models."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Union


class PositionKind(str, Enum):
    """How liquidity is spread when a position is opened."""
    BALANCE = "balance"        # both sides, Y sized by the builder
    IMBALANCE = "imbalance"    # both sides, y = x / 2
    ONE_SIDE = "one-side"      # X only, bins at and above the active bin


class StrategyType(str, Enum):
    """Liquidity distribution shape across the bin range."""
    SPOT = "spot"
    CURVE = "curve"
    BID_ASK = "bid-ask"


@dataclass(frozen=True)
class TokenInfo:
    mint: str
    decimals: int


@dataclass(frozen=True)
class PoolInfo:
    """Static pool data (safe to cache)."""
    address: str
    token_x: TokenInfo
    token_y: TokenInfo
    bin_step: int  # basis points per bin

    @property
    def bin_step_pct(self) -> Decimal:
        return Decimal(self.bin_step) / Decimal(100)

    def bin_price(self, bin_id: int) -> Decimal:
        """Price of ``bin_id``: (1 + bin_step)^bin_id."""
        return (Decimal(1) + Decimal(self.bin_step) / Decimal(10_000)) ** bin_id


@dataclass
class ActiveBin:
    """The bin currently holding the market price. Never cached."""
    bin_id: int
    x_amount: int
    y_amount: int
    price: Decimal


@dataclass
class PositionInfo:
    """A liquidity position owned by a wallet."""
    address: str
    lower_bin_id: int
    upper_bin_id: int
    bin_ids: list[int] = field(default_factory=list)

    @property
    def from_bin_id(self) -> int:
        return self.bin_ids[0] if self.bin_ids else self.lower_bin_id

    @property
    def to_bin_id(self) -> int:
        return self.bin_ids[-1] if self.bin_ids else self.upper_bin_id


@dataclass(frozen=True)
class BinRange:
    min_bin_id: int
    max_bin_id: int


def position_range(kind: PositionKind, active_bin_id: int, interval: int) -> BinRange:
    """Bin range for a new position of the given kind.

    balance / imbalance: active - interval .. active + interval
    one-side:            active .. active + 2 * interval
    """
    if interval <= 0:
        raise ValueError("Range interval must be positive")
    if kind == PositionKind.ONE_SIDE:
        return BinRange(active_bin_id, active_bin_id + 2 * interval)
    return BinRange(active_bin_id - interval, active_bin_id + interval)


@dataclass
class FeesClaimable:
    """Fees are waiting; ``templates`` claim them, in order."""
    templates: list


@dataclass
class NoFeesAvailable:
    """Nothing to claim. Not an error."""
    reason: str = "No fees to claim"


FeeClaimCheck = Union[FeesClaimable, NoFeesAvailable]
