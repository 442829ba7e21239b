"""Meteora DLMM position handlers."""

import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from solcustody.bot.parsing import UsageError, error_reply, split_args, usage_reply
from solcustody.context import get_context
from solcustody.dlmm.models import NoFeesAvailable

logger = logging.getLogger(__name__)

router = Router()

EXAMPLE_POOL = "NPLipchco8sZA4jSR47dVafy77PdbpBCfqPf8Ksvsvj"

CREATE_USAGE = (
    "/createposition <pool> <balance|imbalance|one-side> <amount> [range]\n"
    f"Example: /createposition {EXAMPLE_POOL} balance 100"
)
LIST_USAGE = f"/listpositions <pool>\nExample: /listpositions {EXAMPLE_POOL}"
ADD_USAGE = "/addliquidity <pool> <position> <x_amount> <y_amount>\nExample: /addliquidity NPLi... 3xZc... 100 50"
REMOVE_USAGE = "/removeliquidity <pool> <position> <percentage>\nExample: /removeliquidity NPLi... 3xZc... 50"
CLAIM_USAGE = "/claimfees <pool> [position]"
ACTIVE_BIN_USAGE = "/getactivebin <pool>"
POOL_STATUS_USAGE = "/getpoolstatus <pool>"


def _tx_links(signatures: list[str]) -> str:
    settings = get_context().settings
    return "\n".join(settings.explorer_tx_url(s) for s in signatures)


@router.message(Command("createposition"))
async def cmd_create_position(message: Message, command: CommandObject) -> None:
    """Open a new position with a fresh position account."""
    if not message.from_user:
        return

    try:
        args = split_args(command.args, 3, CREATE_USAGE, optional=1)
        pool, kind, amount = args[:3]
        interval = int(args[3]) if len(args) == 4 else None
    except ValueError:
        await message.answer(usage_reply(UsageError(CREATE_USAGE)))
        return

    context = get_context()
    await message.answer("🔄 Creating position...")
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.liquidity.create_position(wallet, pool, kind, amount, interval)
    except Exception as e:
        await message.answer(error_reply(e, "create the position"))
        return

    await message.answer(
        f"✅ Position created!\n\n"
        f"Position: {result.position}\n"
        f"Bins: {result.bins.min_bin_id} to {result.bins.max_bin_id}\n"
        f"Transactions:\n{_tx_links(result.signatures)}"
    )


@router.message(Command("listpositions"))
async def cmd_list_positions(message: Message, command: CommandObject) -> None:
    if not message.from_user:
        return

    try:
        (pool,) = split_args(command.args, 1, LIST_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        positions = await context.liquidity.list_positions(wallet, pool)
    except Exception as e:
        await message.answer(error_reply(e, "list positions"))
        return

    if not positions:
        await message.answer("📭 No positions found in this pool.")
        return

    lines = ["📊 Your positions:", ""]
    for i, pos in enumerate(positions, 1):
        lines.append(f"{i}. {pos.address}")
        lines.append(f"   Bins {pos.lower_bin_id} to {pos.upper_bin_id}")
    await message.answer("\n".join(lines))


@router.message(Command("addliquidity"))
async def cmd_add_liquidity(message: Message, command: CommandObject) -> None:
    if not message.from_user:
        return

    try:
        pool, position, x_amount, y_amount = split_args(command.args, 4, ADD_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.liquidity.add_liquidity(wallet, pool, position, x_amount, y_amount)
    except Exception as e:
        await message.answer(error_reply(e, "add liquidity"))
        return

    await message.answer(
        f"✅ Liquidity added successfully!\n\n"
        f"Position: {result.position}\n"
        f"X Amount: {x_amount}\n"
        f"Y Amount: {y_amount}\n"
        f"Transactions:\n{_tx_links(result.signatures)}"
    )


@router.message(Command("removeliquidity"))
async def cmd_remove_liquidity(message: Message, command: CommandObject) -> None:
    if not message.from_user:
        return

    try:
        pool, position, percentage = split_args(command.args, 3, REMOVE_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    context = get_context()
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.liquidity.remove_liquidity(wallet, pool, position, percentage)
    except Exception as e:
        await message.answer(error_reply(e, "remove liquidity"))
        return

    closed = "\nPosition closed." if result.closed else ""
    await message.answer(
        f"✅ Liquidity removed successfully!\n\n"
        f"Position: {result.position}\n"
        f"Percentage: {percentage}%{closed}\n"
        f"Transactions:\n{_tx_links(result.signatures)}"
    )


@router.message(Command("claimfees"))
async def cmd_claim_fees(message: Message, command: CommandObject) -> None:
    if not message.from_user:
        return

    try:
        args = split_args(command.args, 1, CLAIM_USAGE, optional=1)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return
    pool = args[0]
    position = args[1] if len(args) == 2 else None

    context = get_context()
    try:
        wallet = await context.wallets.get_wallet(message.from_user.id)
        result = await context.liquidity.claim_fees(wallet, pool, position)
    except Exception as e:
        await message.answer(error_reply(e, "claim fees"))
        return

    if isinstance(result, NoFeesAvailable):
        await message.answer(f"ℹ️ {result.reason}")
        return

    await message.answer(f"✅ Fees claimed!\n\nTransactions:\n{_tx_links(result.signatures)}")


@router.message(Command("getactivebin"))
async def cmd_get_active_bin(message: Message, command: CommandObject) -> None:
    try:
        (pool,) = split_args(command.args, 1, ACTIVE_BIN_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    try:
        active = await get_context().liquidity.get_active_bin(pool)
    except Exception as e:
        await message.answer(error_reply(e, "load the active bin"))
        return

    await message.answer(
        f"📍 Active Bin\n\n"
        f"Bin ID: {active.bin_id}\n"
        f"X Amount: {active.x_amount}\n"
        f"Y Amount: {active.y_amount}\n"
        f"Price: {active.price}"
    )


@router.message(Command("getpoolstatus"))
async def cmd_get_pool_status(message: Message, command: CommandObject) -> None:
    try:
        (pool,) = split_args(command.args, 1, POOL_STATUS_USAGE)
    except UsageError as e:
        await message.answer(usage_reply(e))
        return

    try:
        status = await get_context().liquidity.get_pool_status(pool)
    except Exception as e:
        await message.answer(error_reply(e, "load the pool"))
        return

    info = status.pool
    await message.answer(
        f"🏊 Pool Status\n\n"
        f"Base Token (X): {info.token_x.mint} ({info.token_x.decimals} decimals)\n"
        f"Quote Token (Y): {info.token_y.mint} ({info.token_y.decimals} decimals)\n"
        f"Bin Step: {info.bin_step_pct}%\n"
        f"Active Bin: {status.active_bin.bin_id} @ {status.active_bin.price}"
    )
