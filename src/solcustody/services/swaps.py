"""Aggregator swaps signed by the custodial wallet."""

import asyncio
import base64
import logging
from dataclasses import dataclass

from solcustody.assembly.errors import MissingSignerError
from solcustody.assembly.templates import from_wire, has_valid_signature, serialize
from solcustody.routing.base import SOL_MINT, SwapError
from solcustody.routing.jupiter import JupiterUltraClient
from solcustody.services.errors import InsufficientBalanceError, InvalidAmountError
from solcustody.services.validation import parse_address, parse_positive_amount, to_raw_amount
from solcustody.signing.base import CustodialWallet, RemoteSigner, SigningTimeoutError
from solcustody.utils.amounts import SOL_DECIMALS, Number

logger = logging.getLogger(__name__)


@dataclass
class SwapResult:
    signature: str
    in_amount: int
    out_amount: int
    output_mint: str


class SwapService:
    """SOL -> token swaps through Jupiter Ultra.

    The order transaction is bound to its request id, so it is signed
    exactly as returned and never rebuilt.
    """

    def __init__(
        self,
        jupiter: JupiterUltraClient,
        signer: RemoteSigner,
        remote_sign_timeout: float = 30.0,
    ):
        self.jupiter = jupiter
        self.signer = signer
        self.remote_sign_timeout = remote_sign_timeout

    async def swap_sol_for_token(
        self,
        wallet: CustodialWallet,
        output_mint: str,
        amount_sol: Number,
    ) -> SwapResult:
        """Swap ``amount_sol`` SOL for ``output_mint``.

        Raises:
            InvalidAddressError / InvalidAmountError: Bad input
            InsufficientBalanceError: Not enough SOL
            SlippageExceededError: Price moved past the order's slippage
            SwapError: Any other aggregator failure
        """
        mint = parse_address(output_mint, "token address")
        amount = parse_positive_amount(amount_sol)
        lamports = to_raw_amount(amount, SOL_DECIMALS)
        if lamports == 0:
            raise InvalidAmountError(f"Amount {amount} SOL is below one lamport")

        balance = await self.jupiter.get_sol_balance(wallet.address)
        if balance < amount:
            raise InsufficientBalanceError(have=balance, need=amount)

        order = await self.jupiter.get_order(SOL_MINT, str(mint), lamports, wallet.address)

        try:
            returned = await asyncio.wait_for(
                self.signer.sign_transaction(wallet.wallet_id, base64.b64decode(order.transaction)),
                timeout=self.remote_sign_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SigningTimeoutError(
                f"Remote signer did not answer within {self.remote_sign_timeout}s"
            ) from e

        try:
            signed = from_wire(returned)
        except Exception as e:
            raise SwapError(f"Signed order transaction is unreadable: {e}") from e

        if not has_valid_signature(signed, wallet.pubkey):
            raise MissingSignerError(
                f"Order transaction lacks a valid signature from {wallet.address}", [wallet.address]
            )

        try:
            execution = await self.jupiter.execute(
                base64.b64encode(serialize(signed)).decode(), order.request_id
            )
        except SwapError as e:
            logger.error(f"Swap {order.request_id} for {wallet.address} failed: {e}")
            raise

        logger.info(f"Swapped {amount} SOL for {order.out_amount} of {mint}: {execution.signature}")
        return SwapResult(
            signature=execution.signature,
            in_amount=execution.input_amount_result or order.in_amount,
            out_amount=execution.output_amount_result or order.out_amount,
            output_mint=str(mint),
        )
