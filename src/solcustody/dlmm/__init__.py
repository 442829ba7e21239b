"""Meteora DLMM: pool models, SDK sidecar client, pool cache."""

from solcustody.dlmm.bridge import BridgeError, DlmmBridge, PoolNotFoundError
from solcustody.dlmm.models import (
    ActiveBin,
    BinRange,
    FeeClaimCheck,
    FeesClaimable,
    NoFeesAvailable,
    PoolInfo,
    PositionInfo,
    PositionKind,
    StrategyType,
    TokenInfo,
    position_range,
)
from solcustody.dlmm.pool_cache import PoolCache

__all__ = [
    "DlmmBridge",
    "BridgeError",
    "PoolNotFoundError",
    "PoolCache",
    "PositionKind",
    "StrategyType",
    "TokenInfo",
    "PoolInfo",
    "ActiveBin",
    "PositionInfo",
    "BinRange",
    "position_range",
    "FeesClaimable",
    "NoFeesAvailable",
    "FeeClaimCheck",
]
