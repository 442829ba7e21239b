"""SOL and SPL token transfers from a custodial wallet."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from solders.system_program import TransferParams, transfer
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    TransferCheckedParams,
    create_associated_token_account,
    get_associated_token_address,
    transfer_checked,
)

from solcustody.assembly.assembler import TransactionAssembler
from solcustody.assembly.templates import template_from_instructions
from solcustody.chain.rpc import SolanaRpc
from solcustody.services.errors import InsufficientBalanceError, InvalidAmountError
from solcustody.services.validation import parse_address, parse_positive_amount, to_raw_amount
from solcustody.signing.base import CustodialWallet
from solcustody.utils.amounts import SOL_DECIMALS, Number, from_base_units, lamports_to_sol

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    signature: str
    recipient: str
    amount: Decimal
    mint: str = "SOL"


class TransferService:
    """Builds transfers locally and sends them through the assembler."""

    def __init__(self, rpc: SolanaRpc, assembler: TransactionAssembler):
        self.rpc = rpc
        self.assembler = assembler

    async def transfer_sol(
        self,
        wallet: CustodialWallet,
        to_address: str,
        amount_sol: Number,
    ) -> TransferResult:
        """Send SOL from the custodial wallet.

        Raises:
            InvalidAddressError: If the recipient is not a valid address
            InvalidAmountError: If the amount is not positive
            InsufficientBalanceError: If the wallet holds too little SOL
        """
        recipient = parse_address(to_address, "recipient address")
        amount = parse_positive_amount(amount_sol)
        lamports = to_raw_amount(amount, SOL_DECIMALS)
        if lamports == 0:
            raise InvalidAmountError(f"Amount {amount} SOL is below one lamport")

        balance = await self.rpc.get_sol_balance(wallet.address)
        if balance < lamports:
            raise InsufficientBalanceError(have=lamports_to_sol(balance), need=amount)

        ix = transfer(TransferParams(from_pubkey=wallet.pubkey, to_pubkey=recipient, lamports=lamports))
        template = template_from_instructions([ix], wallet.pubkey)

        try:
            signature = await self.assembler.assemble_and_send(template, None, wallet)
        except Exception as e:
            logger.error(f"SOL transfer from {wallet.address} failed: {e}")
            raise

        logger.info(f"Transferred {amount} SOL {wallet.address} -> {recipient}: {signature}")
        return TransferResult(signature=signature, recipient=str(recipient), amount=amount)

    async def transfer_token(
        self,
        wallet: CustodialWallet,
        to_address: str,
        mint: str,
        amount: Number,
    ) -> TransferResult:
        """Send an SPL token between associated token accounts.

        The recipient's associated token account is created (paid by the
        wallet) when it does not exist yet.
        """
        recipient = parse_address(to_address, "recipient address")
        mint_key = parse_address(mint, "token mint")
        ui_amount = parse_positive_amount(amount)

        decimals = await self.rpc.get_token_decimals(str(mint_key))
        raw_amount = to_raw_amount(ui_amount, decimals)
        if raw_amount == 0:
            raise InvalidAmountError(f"Amount {ui_amount} is below the token's smallest unit")

        balance = await self.rpc.get_token_balance(wallet.address, str(mint_key))
        if balance < raw_amount:
            raise InsufficientBalanceError(
                have=from_base_units(balance, decimals), need=ui_amount, asset=str(mint_key)
            )

        source = get_associated_token_address(wallet.pubkey, mint_key)
        dest = get_associated_token_address(recipient, mint_key)

        instructions = []
        if not await self.rpc.account_exists(str(dest)):
            logger.debug(f"Creating associated token account {dest} for {recipient}")
            instructions.append(
                create_associated_token_account(payer=wallet.pubkey, owner=recipient, mint=mint_key)
            )
        instructions.append(
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=source,
                    mint=mint_key,
                    dest=dest,
                    owner=wallet.pubkey,
                    amount=raw_amount,
                    decimals=decimals,
                )
            )
        )

        template = template_from_instructions(instructions, wallet.pubkey)
        try:
            signature = await self.assembler.assemble_and_send(template, None, wallet)
        except Exception as e:
            logger.error(f"Token transfer from {wallet.address} failed: {e}")
            raise

        logger.info(f"Transferred {ui_amount} of {mint_key} {wallet.address} -> {recipient}: {signature}")
        return TransferResult(
            signature=signature, recipient=str(recipient), amount=ui_amount, mint=str(mint_key)
        )
