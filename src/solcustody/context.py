"""Process-wide wiring of collaborators.

Built once from settings; the bot handlers and the API read services from
here instead of constructing their own clients.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from solcustody.assembly.assembler import TransactionAssembler
from solcustody.chain.rpc import SolanaRpc
from solcustody.config import Settings, get_settings
from solcustody.dlmm.bridge import DlmmBridge
from solcustody.dlmm.pool_cache import PoolCache
from solcustody.routing.jupiter import JupiterUltraClient
from solcustody.services.liquidity import LiquidityService
from solcustody.services.swaps import SwapService
from solcustody.services.transfers import TransferService
from solcustody.services.wallets import WalletService
from solcustody.signing.base import RemoteSigner
from solcustody.signing.factory import get_signer
from solcustody.storage.wallet_store import JsonWalletStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    signer: RemoteSigner
    rpc: SolanaRpc
    bridge: DlmmBridge
    assembler: TransactionAssembler
    wallets: WalletService
    transfers: TransferService
    swaps: SwapService
    liquidity: LiquidityService

    async def close(self):
        await self.rpc.close()


def build_context(settings: Settings, signer: Optional[RemoteSigner] = None) -> AppContext:
    """Wire every service from settings."""
    signer = signer or get_signer()
    rpc = SolanaRpc(settings.get_rpc_url())
    bridge = DlmmBridge(settings.dlmm_bridge_url)
    assembler = TransactionAssembler(
        rpc,
        signer,
        blockhash_commitment=settings.blockhash_commitment,
        preflight_commitment=settings.preflight_commitment,
        skip_preflight=settings.skip_preflight,
        remote_sign_timeout=settings.remote_sign_timeout,
        submit_timeout=settings.submit_timeout,
    )
    jupiter = JupiterUltraClient(settings.jupiter_api_url, api_key=settings.jupiter_api_key)

    logger.info(f"Context ready: network={settings.solana_network}, signer={signer!r}")
    return AppContext(
        settings=settings,
        signer=signer,
        rpc=rpc,
        bridge=bridge,
        assembler=assembler,
        wallets=WalletService(signer, JsonWalletStore(settings.wallet_store_path), rpc),
        transfers=TransferService(rpc, assembler),
        swaps=SwapService(jupiter, signer, remote_sign_timeout=settings.remote_sign_timeout),
        liquidity=LiquidityService(
            bridge,
            assembler,
            PoolCache(),
            default_range_interval=settings.default_range_interval,
        ),
    )


_context: Optional[AppContext] = None


def get_context() -> AppContext:
    """Get the process context, building it on first use."""
    global _context
    if _context is None:
        _context = build_context(get_settings())
    return _context


def set_context(context: Optional[AppContext]):
    """Install a context (tests) or clear it with None."""
    global _context
    _context = context
