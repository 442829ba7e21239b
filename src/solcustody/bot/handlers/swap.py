"""Swap handler (SOL -> token through Jupiter Ultra)."""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from solcustody.bot.parsing import UsageError, error_reply, split_args, usage_reply
from solcustody.context import get_context

logger = logging.getLogger(__name__)

router = Router()

SWAP_USAGE = (
    "/swap <token_mint> <amount_sol>\n"
    "Example: /swap EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v 0.1"
)


@router.message(Command("swap"))
async def cmd_swap(message: Message, command: CommandObject) -> None:
    """Swap SOL for another token."""
    if not message.from_user:
        return

    try:
        token_mint, amount = split_args(command.args, 2, SWAP_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    await message.answer("🔄 Creating swap order...")
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.swaps.swap_sol_for_token(wallet, token_mint, amount)
    except Exception as e:
        await message.answer(error_reply(e, "swap"))
        return

    await message.answer(
        f"✅ Swap successful!\n\n"
        f"Transaction: {context.settings.explorer_tx_url(result.signature)}\n"
        f"Received {result.out_amount} base units of {result.output_mint}\n\n"
        f"Use /getwallet to check your new balance"
    )
