"""Chain access: broadcaster protocol and Solana RPC client."""

from solcustody.chain.base import Broadcaster
from solcustody.chain.rpc import (
    LAMPORTS_PER_SOL,
    RpcUnavailableError,
    SolanaRpc,
    TokenBalance,
    TransactionSummary,
)

__all__ = [
    "Broadcaster",
    "SolanaRpc",
    "RpcUnavailableError",
    "TokenBalance",
    "TransactionSummary",
    "LAMPORTS_PER_SOL",
]
