"""Start and help handlers."""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandStart
from aiogram.types import Message

from solcustody.bot.parsing import error_reply
from solcustody.context import get_context

logger = logging.getLogger(__name__)

router = Router()

HELP_TEXT = """Solana Custody Bot Commands

Wallet:
  /getwallet - Wallet address and all token balances
  /balance - SOL balance
  /transactions [limit] - Recent transactions

Transfers:
  /transfer <address> <amount> - Send SOL
  /transfertoken <address> <token_mint> <amount> - Send an SPL token

Trading:
  /swap <token_mint> <amount_sol> - Swap SOL for a token

Positions (Meteora DLMM):
  /createposition <pool> <balance|imbalance|one-side> <amount> [range]
  /listpositions <pool>
  /addliquidity <pool> <position> <x_amount> <y_amount>
  /removeliquidity <pool> <position> <percentage>
  /claimfees <pool> [position]

Pool info:
  /getactivebin <pool>
  /getpoolstatus <pool>"""


@router.message(CommandStart())
async def cmd_start(message: Message) -> None:
    """Handle /start command - create or look up the user's wallet."""
    if not message.from_user:
        return

    user_id = message.from_user.id
    try:
        wallet, created = await get_context().wallets.ensure_wallet(user_id)
    except Exception as e:
        await message.answer(error_reply(e, "access your wallet"))
        return

    greeting = "✅ Your new wallet is ready!" if created else "👋 Welcome back!"
    await message.answer(
        f"{greeting}\n\nYour wallet address is: {wallet.address}\n\n{HELP_TEXT}"
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    """Handle /help command."""
    await message.answer(HELP_TEXT)
