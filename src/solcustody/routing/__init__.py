"""Swap routing through the Jupiter Ultra aggregator."""

from solcustody.routing.base import (
    SOL_MINT,
    SlippageExceededError,
    SwapError,
    SwapExecution,
    SwapOrder,
)
from solcustody.routing.jupiter import JupiterUltraClient

__all__ = [
    "SOL_MINT",
    "SwapOrder",
    "SwapExecution",
    "SwapError",
    "SlippageExceededError",
    "JupiterUltraClient",
]
