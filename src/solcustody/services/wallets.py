"""Custodial wallet lifecycle and read-only wallet views."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Union

from solcustody.chain.rpc import SolanaRpc, TokenBalance, TransactionSummary
from solcustody.services.errors import WalletNotRegisteredError
from solcustody.signing.base import CustodialWallet, RemoteSigner
from solcustody.storage.wallet_store import JsonWalletStore
from solcustody.utils.amounts import lamports_to_sol
from solcustody.utils.locks import user_lock

logger = logging.getLogger(__name__)

UserKey = Union[int, str]


@dataclass
class WalletOverview:
    """SOL balance plus every non-zero token balance."""
    wallet: CustodialWallet
    lamports: int
    tokens: list[TokenBalance] = field(default_factory=list)

    @property
    def sol(self) -> Decimal:
        return lamports_to_sol(self.lamports)


class WalletService:
    """Maps users to custodial wallets and reads wallet state."""

    def __init__(self, signer: RemoteSigner, store: JsonWalletStore, rpc: SolanaRpc):
        self.signer = signer
        self.store = store
        self.rpc = rpc

    async def ensure_wallet(self, user_id: UserKey) -> tuple[CustodialWallet, bool]:
        """Return the user's wallet, creating it on first use.

        Returns:
            (wallet, created)
        """
        async with user_lock(user_id, operation="ensure_wallet"):
            wallet_id = self.store.get(user_id)
            if wallet_id:
                return await self.signer.get_wallet(wallet_id), False

            wallet = await self.signer.create_wallet()
            self.store.set(user_id, wallet.wallet_id)
            logger.info(f"Created wallet {wallet.address} for user {user_id}")
            return wallet, True

    async def get_wallet(self, user_id: UserKey) -> CustodialWallet:
        """Raises WalletNotRegisteredError if the user never ran /start."""
        wallet_id = self.store.get(user_id)
        if not wallet_id:
            raise WalletNotRegisteredError(user_id)
        return await self.signer.get_wallet(wallet_id)

    async def get_sol_balance(self, user_id: UserKey) -> Decimal:
        wallet = await self.get_wallet(user_id)
        return lamports_to_sol(await self.rpc.get_sol_balance(wallet.address))

    async def get_overview(self, user_id: UserKey) -> WalletOverview:
        wallet = await self.get_wallet(user_id)
        try:
            lamports = await self.rpc.get_sol_balance(wallet.address)
            tokens = await self.rpc.get_all_token_balances(wallet.address)
        except Exception as e:
            logger.error(f"Failed to load balances for {wallet.address}: {e}")
            raise
        return WalletOverview(wallet=wallet, lamports=lamports, tokens=tokens)

    async def get_recent_transactions(
        self, user_id: UserKey, limit: int = 10
    ) -> list[TransactionSummary]:
        wallet = await self.get_wallet(user_id)
        return await self.rpc.get_recent_transactions(wallet.address, limit=limit)
