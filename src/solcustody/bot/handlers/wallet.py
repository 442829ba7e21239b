"""Wallet, balance and history handlers."""

import logging
from datetime import datetime, timezone

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from solcustody.bot.parsing import UsageError, error_reply, split_args, usage_reply
from solcustody.context import get_context

logger = logging.getLogger(__name__)

router = Router()


@router.message(Command("getwallet"))
async def cmd_getwallet(message: Message) -> None:
    """Show wallet address, SOL and every token balance."""
    if not message.from_user:
        return

    try:
        overview = await get_context().wallets.get_overview(message.from_user.id)
    except Exception as e:
        await message.answer(error_reply(e, "load your wallet"))
        return

    lines = [
        "💼 Your Wallet",
        f"Address: {overview.wallet.address}",
        "",
        f"SOL: {overview.sol:.4f}",
    ]
    for token in overview.tokens:
        lines.append(f"{token.mint[:4]}...{token.mint[-4:]}: {token.ui_amount}")
    if not overview.tokens:
        lines.append("No token balances")

    await message.answer("\n".join(lines))


@router.message(Command("balance"))
async def cmd_balance(message: Message) -> None:
    """Show SOL balance."""
    if not message.from_user:
        return

    try:
        balance = await get_context().wallets.get_sol_balance(message.from_user.id)
    except Exception as e:
        await message.answer(error_reply(e, "check your balance"))
        return

    await message.answer(f"💰 Your SOL balance: {balance:.4f} SOL")


@router.message(Command("transactions"))
async def cmd_transactions(message: Message, command: CommandObject) -> None:
    """Show recent transactions."""
    if not message.from_user:
        return

    usage = "/transactions [limit]  (limit 1-50)"
    try:
        args = split_args(command.args, 0, usage, optional=1)
        limit = int(args[0]) if args else 10
        if not 1 <= limit <= 50:
            raise UsageError(usage)
    except ValueError:
        await message.answer(usage_reply(UsageError(usage)))
        return

    context = get_context()
    try:
        history = await context.wallets.get_recent_transactions(message.from_user.id, limit=limit)
    except Exception as e:
        await message.answer(error_reply(e, "load your transactions"))
        return

    if not history:
        await message.answer("📭 No transactions yet.")
        return

    lines = ["📜 Recent Transactions", ""]
    for tx in history:
        when = (
            datetime.fromtimestamp(tx.block_time, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
            if tx.block_time
            else "pending"
        )
        change = f"{tx.sol_change:+.6f} SOL" if tx.sol_change is not None else "n/a"
        status = "❌" if tx.failed else "✅"
        lines.append(f"{status} {when}  {change}")
        lines.append(context.settings.explorer_tx_url(tx.signature))
    await message.answer("\n".join(lines))
