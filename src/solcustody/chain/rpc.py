"""Solana JSON-RPC access.

SolanaRpc is the broadcaster the assembler submits through, plus the
read-only queries the services need (balances, decimals, history).
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from solcustody.assembly.errors import BroadcastRejected, BroadcastTimeoutError
from solcustody.errors import ErrorKind, SolcustodyError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

# Node message for a token account that was never created
MISSING_ACCOUNT_MARKER = "could not find account"


@dataclass
class TokenBalance:
    """SPL token holding of a wallet."""
    mint: str
    amount: int
    decimals: int

    @property
    def ui_amount(self) -> Decimal:
        return Decimal(self.amount) / Decimal(10 ** self.decimals)


@dataclass
class TransactionSummary:
    """One entry of a wallet's recent history.

    ``lamports_change`` is post - pre for the wallet's own account
    (negative when the wallet paid), or None when it cannot be determined.
    """
    signature: str
    slot: int
    block_time: Optional[int]
    failed: bool
    lamports_change: Optional[int]

    @property
    def sol_change(self) -> Optional[Decimal]:
        if self.lamports_change is None:
            return None
        return Decimal(self.lamports_change) / Decimal(LAMPORTS_PER_SOL)


class RpcUnavailableError(SolcustodyError):
    """The RPC node could not be reached (connection failure, timeout)."""

    kind = ErrorKind.TRANSIENT


@asynccontextmanager
async def _transport(operation: str):
    """Turn solana-py transport failures into RpcUnavailableError."""
    try:
        yield
    except SolanaRpcException as e:
        detail = getattr(e, "error_msg", None) or repr(e)
        logger.error(f"RPC transport failure during {operation}: {detail}")
        raise RpcUnavailableError(f"Solana RPC unavailable during {operation}") from e


def rpc_error_reason(error: RPCException) -> str:
    """Extract the node's message from an RPCException."""
    if error.args:
        detail = error.args[0]
        message = getattr(detail, "message", None)
        if message:
            return str(message)
        return str(detail)
    return str(error)


class SolanaRpc:
    """Async Solana RPC client.

    Wraps ``solana.rpc.async_api.AsyncClient``; the underlying HTTP
    connection pool is shared by all callers.
    """

    def __init__(self, endpoint: str, client: Optional[AsyncClient] = None):
        self.endpoint = endpoint
        self.client = client or AsyncClient(endpoint)

    async def close(self):
        await self.client.close()

    # ------------------------------------------------------------------
    # Broadcaster
    # ------------------------------------------------------------------

    async def get_latest_blockhash(self, commitment: str = "finalized") -> Hash:
        async with _transport("get_latest_blockhash"):
            resp = await self.client.get_latest_blockhash(Commitment(commitment))
        return resp.value.blockhash

    async def submit(
        self,
        data: bytes,
        *,
        skip_preflight: bool = False,
        preflight_commitment: str = "confirmed",
    ) -> str:
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=skip_preflight,
            preflight_commitment=Commitment(preflight_commitment),
        )
        try:
            resp = await self.client.send_raw_transaction(data, opts=opts)
        except RPCException as e:
            reason = rpc_error_reason(e)
            logger.error(f"Node rejected transaction: {reason}")
            raise BroadcastRejected(reason) from e
        except SolanaRpcException as e:
            logger.error(f"Transport failure while submitting: {e}")
            raise BroadcastTimeoutError(f"transport failure: {e}") from e

        return str(resp.value)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_sol_balance(self, address: str) -> int:
        """Balance in lamports."""
        async with _transport("get_balance"):
            resp = await self.client.get_balance(Pubkey.from_string(address))
        return resp.value

    async def account_exists(self, address: str) -> bool:
        async with _transport("get_account_info"):
            resp = await self.client.get_account_info(Pubkey.from_string(address))
        return resp.value is not None

    async def get_token_decimals(self, mint: str) -> int:
        async with _transport("get_token_supply"):
            resp = await self.client.get_token_supply(Pubkey.from_string(mint))
        return resp.value.decimals

    async def get_token_balance(self, owner: str, mint: str) -> int:
        """Raw balance of the owner's associated token account (0 if it does not exist)."""
        ata = get_associated_token_address(Pubkey.from_string(owner), Pubkey.from_string(mint))
        try:
            async with _transport("get_token_account_balance"):
                resp = await self.client.get_token_account_balance(ata)
        except RPCException as e:
            if MISSING_ACCOUNT_MARKER in rpc_error_reason(e).lower():
                return 0
            raise
        return int(resp.value.amount)

    async def get_all_token_balances(self, owner: str) -> list[TokenBalance]:
        """Every non-zero SPL token balance held by ``owner``."""
        async with _transport("get_token_accounts_by_owner"):
            resp = await self.client.get_token_accounts_by_owner_json_parsed(
                Pubkey.from_string(owner),
                TokenAccountOpts(program_id=TOKEN_PROGRAM_ID),
            )

        balances = []
        for keyed in resp.value:
            info = keyed.account.data.parsed["info"]
            token_amount = info["tokenAmount"]
            amount = int(token_amount["amount"])
            if amount == 0:
                continue
            balances.append(
                TokenBalance(mint=info["mint"], amount=amount, decimals=token_amount["decimals"])
            )
        return balances

    @staticmethod
    def _lamports_change(tx_value, address: str) -> Optional[int]:
        if tx_value is None:
            return None
        meta = tx_value.transaction.meta
        if meta is None:
            return None
        keys = [str(key) for key in tx_value.transaction.transaction.message.account_keys]
        if address not in keys:
            return None
        index = keys.index(address)
        return meta.post_balances[index] - meta.pre_balances[index]

    async def get_recent_transactions(self, address: str, limit: int = 10) -> list[TransactionSummary]:
        """Most recent transactions touching ``address``, newest first."""
        async with _transport("get_signatures_for_address"):
            resp = await self.client.get_signatures_for_address(Pubkey.from_string(address), limit=limit)

        summaries = []
        for status in resp.value:
            async with _transport("get_transaction"):
                tx_resp = await self.client.get_transaction(
                    status.signature, max_supported_transaction_version=0
                )
            summaries.append(
                TransactionSummary(
                    signature=str(status.signature),
                    slot=status.slot,
                    block_time=status.block_time,
                    failed=status.err is not None,
                    lamports_change=self._lamports_change(tx_resp.value, address),
                )
            )
        return summaries
