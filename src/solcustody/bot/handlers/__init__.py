"""Bot handlers module."""

from aiogram import Router

from solcustody.bot.handlers import positions, start, swap, transfer, wallet


def setup_routers() -> Router:
    """Create and configure all routers."""
    main_router = Router()

    # Register all routers
    main_router.include_router(start.router)
    main_router.include_router(wallet.router)
    main_router.include_router(transfer.router)
    main_router.include_router(swap.router)
    main_router.include_router(positions.router)

    return main_router
