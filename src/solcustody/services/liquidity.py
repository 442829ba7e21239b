"""Meteora DLMM positions, liquidity and fees for custodial wallets.

Opening a position needs a fresh position account, whose keypair must sign
alongside the fee-paying custodial wallet. That keypair is generated per
call, used by the assembler, and dropped when the call returns.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from solders.keypair import Keypair

from solcustody.assembly.assembler import TransactionAssembler
from solcustody.dlmm.bridge import BridgeError, DlmmBridge
from solcustody.dlmm.models import (
    ActiveBin,
    BinRange,
    NoFeesAvailable,
    PoolInfo,
    PositionInfo,
    PositionKind,
    position_range,
)
from solcustody.dlmm.pool_cache import PoolCache
from solcustody.services.errors import InvalidAmountError, PositionNotFoundError, ServiceError
from solcustody.services.validation import parse_address, parse_positive_amount, to_raw_amount
from solcustody.signing.base import CustodialWallet
from solcustody.utils.amounts import Number, parse_amount

logger = logging.getLogger(__name__)

FULL_BPS = 10_000


@dataclass
class PositionResult:
    position: str
    signatures: list[str]
    bins: BinRange
    total_x: int
    total_y: Optional[int]


@dataclass
class LiquidityResult:
    position: str
    signatures: list[str] = field(default_factory=list)
    closed: bool = False


@dataclass
class FeesClaimed:
    signatures: list[str]


@dataclass
class PoolStatus:
    pool: PoolInfo
    active_bin: ActiveBin


class LiquidityService:
    """DLMM operations signed by the custodial wallet."""

    def __init__(
        self,
        bridge: DlmmBridge,
        assembler: TransactionAssembler,
        pool_cache: PoolCache,
        default_range_interval: int = 10,
    ):
        self.bridge = bridge
        self.assembler = assembler
        self.pool_cache = pool_cache
        self.default_range_interval = default_range_interval

    async def _pool(self, pool: str) -> PoolInfo:
        address = str(parse_address(pool, "pool address"))
        return await self.pool_cache.get(address, self.bridge.get_pool)

    async def _find_position(self, wallet: CustodialWallet, pool: str, position: str) -> PositionInfo:
        address = str(parse_address(position, "position address"))
        for info in await self.bridge.get_positions(pool, wallet.address):
            if info.address == address:
                return info
        raise PositionNotFoundError(f"Position {address} not found in pool {pool}")

    async def create_position(
        self,
        wallet: CustodialWallet,
        pool: str,
        kind: Union[PositionKind, str],
        amount: Number,
        range_interval: Optional[int] = None,
    ) -> PositionResult:
        """Open a new position and deposit ``amount`` of token X.

        balance:   range active +/- interval, Y sized by the builder
        imbalance: range active +/- interval, Y = X / 2
        one-side:  range active .. active + 2 * interval, Y = 0
        """
        try:
            kind = PositionKind(kind)
        except ValueError:
            raise ServiceError(f"Invalid position type {kind!r}; use balance, imbalance or one-side")
        ui_amount = parse_positive_amount(amount)
        interval = range_interval if range_interval is not None else self.default_range_interval
        if interval <= 0:
            raise InvalidAmountError(f"Range interval must be positive, got {interval}")

        pool_info = await self._pool(pool)
        active = await self.bridge.get_active_bin(pool_info.address)
        bins = position_range(kind, active.bin_id, interval)

        total_x = to_raw_amount(ui_amount, pool_info.token_x.decimals)
        if total_x == 0:
            raise InvalidAmountError(f"Amount {ui_amount} is below the token's smallest unit")

        if kind == PositionKind.BALANCE:
            total_y = None
        elif kind == PositionKind.IMBALANCE:
            total_y = to_raw_amount(ui_amount / 2, pool_info.token_y.decimals)
        else:
            total_y = 0

        position_keypair = Keypair()
        position = str(position_keypair.pubkey())
        logger.info(
            f"Creating {kind.value} position {position} in {pool_info.address}: "
            f"bins {bins.min_bin_id}..{bins.max_bin_id}, x={total_x}, y={total_y}"
        )

        templates = await self.bridge.build_create_position(
            pool_info.address, wallet.address, position, total_x, total_y, bins
        )
        if not templates:
            raise BridgeError("DLMM bridge returned no transactions for the new position")

        try:
            signatures = await self.assembler.assemble_and_send_all(templates, position_keypair, wallet)
        except Exception as e:
            logger.error(f"Creating position {position} failed: {e}")
            raise

        return PositionResult(
            position=position, signatures=signatures, bins=bins, total_x=total_x, total_y=total_y
        )

    async def list_positions(self, wallet: CustodialWallet, pool: str) -> list[PositionInfo]:
        pool_info = await self._pool(pool)
        return await self.bridge.get_positions(pool_info.address, wallet.address)

    async def get_active_bin(self, pool: str) -> ActiveBin:
        pool_info = await self._pool(pool)
        return await self.bridge.get_active_bin(pool_info.address)

    async def get_pool_status(self, pool: str) -> PoolStatus:
        pool_info = await self._pool(pool)
        active = await self.bridge.get_active_bin(pool_info.address)
        return PoolStatus(pool=pool_info, active_bin=active)

    async def add_liquidity(
        self,
        wallet: CustodialWallet,
        pool: str,
        position: str,
        x_amount: Number,
        y_amount: Number,
    ) -> LiquidityResult:
        """Deposit into an existing position across its whole bin range."""
        x_ui = parse_positive_amount(x_amount)
        y_ui = parse_positive_amount(y_amount)

        pool_info = await self._pool(pool)
        info = await self._find_position(wallet, pool_info.address, position)
        total_x = to_raw_amount(x_ui, pool_info.token_x.decimals)
        total_y = to_raw_amount(y_ui, pool_info.token_y.decimals)

        templates = await self.bridge.build_add_liquidity(
            pool_info.address,
            wallet.address,
            info.address,
            total_x,
            total_y,
            BinRange(info.lower_bin_id, info.upper_bin_id),
        )

        try:
            signatures = await self.assembler.assemble_and_send_all(templates, None, wallet)
        except Exception as e:
            logger.error(f"Adding liquidity to {info.address} failed: {e}")
            raise

        logger.info(f"Added liquidity to {info.address}: x={total_x}, y={total_y}")
        return LiquidityResult(position=info.address, signatures=signatures)

    async def remove_liquidity(
        self,
        wallet: CustodialWallet,
        pool: str,
        position: str,
        percentage: Number,
    ) -> LiquidityResult:
        """Withdraw ``percentage`` (1-100) of the position; 100 also closes it."""
        try:
            pct = parse_amount(percentage)
        except ValueError as e:
            raise InvalidAmountError(str(e)) from e
        if pct < 1 or pct > 100:
            raise InvalidAmountError(f"Percentage must be between 1 and 100, got {pct}")

        bps = int(pct * 100)
        close = bps == FULL_BPS

        pool_info = await self._pool(pool)
        info = await self._find_position(wallet, pool_info.address, position)

        templates = await self.bridge.build_remove_liquidity(
            pool_info.address, wallet.address, info, bps, close
        )

        try:
            signatures = await self.assembler.assemble_and_send_all(templates, None, wallet)
        except Exception as e:
            logger.error(f"Removing liquidity from {info.address} failed: {e}")
            raise

        logger.info(f"Removed {pct}% from {info.address} in {len(signatures)} transaction(s)")
        return LiquidityResult(position=info.address, signatures=signatures, closed=close)

    async def claim_fees(
        self,
        wallet: CustodialWallet,
        pool: str,
        position: Optional[str] = None,
    ) -> Union[FeesClaimed, NoFeesAvailable]:
        """Claim swap fees of one position, or of every position in the pool."""
        pool_info = await self._pool(pool)
        positions = None
        if position is not None:
            positions = [(await self._find_position(wallet, pool_info.address, position)).address]

        check = await self.bridge.build_claim_fees(pool_info.address, wallet.address, positions)
        if isinstance(check, NoFeesAvailable):
            logger.info(f"No fees to claim for {wallet.address} in {pool_info.address}")
            return check

        try:
            signatures = await self.assembler.assemble_and_send_all(check.templates, None, wallet)
        except Exception as e:
            logger.error(f"Claiming fees in {pool_info.address} failed: {e}")
            raise

        logger.info(f"Claimed fees in {pool_info.address}: {signatures}")
        return FeesClaimed(signatures=signatures)
