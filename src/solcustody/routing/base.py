"""Value types for aggregator swaps."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from solcustody.errors import ErrorKind, SolcustodyError

# Wrapped SOL mint, used as the input of SOL -> token swaps
SOL_MINT = "So11111111111111111111111111111111111111112"


@dataclass
class SwapOrder:
    """An executable order from the aggregator.

    ``transaction`` is the base64 transaction the taker must sign as is;
    it is bound to ``request_id`` and must not be rebuilt.
    """

    request_id: str
    transaction: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    slippage_bps: int = 0
    price_impact_pct: Decimal = Decimal("0")
    router: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def effective_rate(self) -> Decimal:
        """Raw output units per raw input unit."""
        if self.in_amount == 0:
            return Decimal("0")
        return Decimal(self.out_amount) / Decimal(self.in_amount)


@dataclass
class SwapExecution:
    """Result of executing a signed order."""

    status: str
    signature: Optional[str] = None
    code: Optional[int] = None
    error: Optional[str] = None
    input_amount_result: Optional[int] = None
    output_amount_result: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status.lower() == "success"


class SwapError(SolcustodyError):
    """The aggregator refused or failed the swap."""

    kind = ErrorKind.TRANSIENT


class SlippageExceededError(SwapError):
    """Price moved beyond the order's slippage (custom program error 0x1771)."""
