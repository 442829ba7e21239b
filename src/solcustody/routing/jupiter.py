"""Jupiter Ultra API integration for Solana swaps.

Ultra returns a ready-to-sign transaction per order and lands it itself:
    GET  /order?inputMint&outputMint&amount&taker
    POST /execute {signedTransaction, requestId}
    GET  /balances/{address}
"""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from solcustody.routing.base import SlippageExceededError, SwapError, SwapExecution, SwapOrder

logger = logging.getLogger(__name__)

JUPITER_ULTRA_API = "https://lite-api.jup.ag/ultra/v1"

# Custom program error raised by the swap program when slippage is exceeded
SLIPPAGE_ERROR_HEX = "0x1771"
SLIPPAGE_ERROR_CODE = 0x1771


def _is_slippage_failure(code: Optional[int], error: Optional[str]) -> bool:
    if code == SLIPPAGE_ERROR_CODE:
        return True
    return bool(error) and SLIPPAGE_ERROR_HEX in error.lower()


class JupiterUltraClient:
    """Jupiter Ultra aggregator client."""

    def __init__(
        self,
        base_url: str = JUPITER_ULTRA_API,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Jupiter client.

        Args:
            base_url: Ultra API base URL
            api_key: Optional API key for higher rate limits
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _call(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method, f"{self.base_url}{path}", headers=self._get_headers(), **kwargs
                )
        except httpx.HTTPError as e:
            raise SwapError(f"Jupiter request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code != 200:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning(f"Jupiter API error: {response.status_code} - {response.text}")
            if _is_slippage_failure(None, message):
                raise SlippageExceededError(message)
            raise SwapError(message or f"Jupiter API error ({response.status_code})")

        return data

    async def get_order(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        taker: str,
    ) -> SwapOrder:
        """Request an executable order.

        Args:
            input_mint: Mint sold
            output_mint: Mint bought
            amount: Raw input amount (smallest units)
            taker: Wallet that signs and pays

        Raises:
            SwapError: If no route exists or the API fails
        """
        data = await self._call(
            "GET",
            "/order",
            params={
                "inputMint": input_mint,
                "outputMint": output_mint,
                "amount": str(amount),
                "taker": taker,
            },
        )

        transaction = data.get("transaction")
        if not transaction:
            raise SwapError(data.get("errorMessage") or data.get("error") or "No transaction in order")

        order = SwapOrder(
            request_id=data["requestId"],
            transaction=transaction,
            input_mint=data.get("inputMint", input_mint),
            output_mint=data.get("outputMint", output_mint),
            in_amount=int(data.get("inAmount", amount)),
            out_amount=int(data.get("outAmount", "0")),
            slippage_bps=int(data.get("slippageBps", 0)),
            price_impact_pct=Decimal(str(data.get("priceImpactPct", "0"))),
            router=data.get("router"),
        )
        logger.info(
            f"Jupiter order {order.request_id}: {order.in_amount} {input_mint[:8]} -> "
            f"{order.out_amount} {output_mint[:8]}"
        )
        return order

    async def execute(self, signed_transaction: str, request_id: str) -> SwapExecution:
        """Submit a signed order transaction.

        Raises:
            SlippageExceededError: If the swap failed on slippage
            SwapError: For any other failed execution
        """
        data = await self._call(
            "POST",
            "/execute",
            json={"signedTransaction": signed_transaction, "requestId": request_id},
        )

        result = SwapExecution(
            status=data.get("status", ""),
            signature=data.get("signature"),
            code=data.get("code"),
            error=data.get("error"),
            input_amount_result=int(data["inputAmountResult"]) if data.get("inputAmountResult") else None,
            output_amount_result=int(data["outputAmountResult"]) if data.get("outputAmountResult") else None,
        )

        if not result.succeeded:
            logger.warning(f"Jupiter execute failed for {request_id}: {result.code} {result.error}")
            if _is_slippage_failure(result.code, result.error):
                raise SlippageExceededError(result.error or "Slippage tolerance exceeded")
            raise SwapError(result.error or f"Swap failed with status {result.status!r}")

        logger.info(f"Jupiter swap executed: {result.signature}")
        return result

    async def get_balances(self, address: str) -> dict[str, dict]:
        """Balances keyed by mint ("SOL" for native SOL)."""
        return await self._call("GET", f"/balances/{address}")

    async def get_sol_balance(self, address: str) -> Decimal:
        """Native SOL balance in SOL (ui amount)."""
        balances = await self.get_balances(address)
        sol = balances.get("SOL") or {}
        return Decimal(str(sol.get("uiAmount", 0)))
