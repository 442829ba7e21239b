"""SOL and token transfer handlers."""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from solcustody.bot.parsing import UsageError, error_reply, split_args, usage_reply
from solcustody.context import get_context

logger = logging.getLogger(__name__)

router = Router()

TRANSFER_USAGE = "/transfer <address> <amount>\nExample: /transfer Hq5eXj... 0.1"
TRANSFER_TOKEN_USAGE = (
    "/transfertoken <address> <token_mint> <amount>\n"
    "Example: /transfertoken Hq5eXj... AqeS6f... 15000"
)


@router.message(Command("transfer"))
async def cmd_transfer(message: Message, command: CommandObject) -> None:
    """Send SOL to another address."""
    if not message.from_user:
        return

    try:
        to_address, amount = split_args(command.args, 2, TRANSFER_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    await message.answer("🔄 Processing transfer...")
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.transfers.transfer_sol(wallet, to_address, amount)
    except Exception as e:
        await message.answer(error_reply(e, "transfer SOL"))
        return

    await message.answer(
        f"✅ Transfer successful!\n\n"
        f"Sent {result.amount} SOL to {result.recipient}\n"
        f"Transaction: {context.settings.explorer_tx_url(result.signature)}"
    )


@router.message(Command("transfertoken"))
async def cmd_transfer_token(message: Message, command: CommandObject) -> None:
    """Send an SPL token to another address."""
    if not message.from_user:
        return

    try:
        to_address, mint, amount = split_args(command.args, 3, TRANSFER_TOKEN_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    await message.answer("🔄 Processing token transfer...")
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.transfers.transfer_token(wallet, to_address, mint, amount)
    except Exception as e:
        await message.answer(error_reply(e, "transfer tokens"))
        return

    await message.answer(
        f"✅ Token transfer successful!\n\n"
        f"Sent {result.amount} of {result.mint} to {result.recipient}\n"
        f"Transaction: {context.settings.explorer_tx_url(result.signature)}"
    )
