"""Local signing backend.

Holds solders keypairs in memory, keyed by wallet id. Suitable for:
- Development/testing
- Devnet demos without a custodial service account

WARNING: Private keys live in process memory. Use the custodial
backend for anything holding real funds.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair

from solcustody.assembly.errors import MissingSignerError
from solcustody.assembly.templates import apply_signature, from_wire, serialize
from solcustody.signing.base import (
    CustodialWallet,
    MalformedTransactionError,
    RemoteSigner,
    SignerType,
    WalletNotFoundError,
)

logger = logging.getLogger(__name__)


def load_keypair_file(path: str) -> Keypair:
    """Load a Solana CLI keypair file (JSON array of 64 secret key bytes)."""
    raw = json.loads(Path(path).read_text())
    return Keypair.from_bytes(bytes(raw))


class LocalSigner(RemoteSigner):
    """Signing backend using in-memory keypairs.

    Wallet ids are the base58 addresses of the keypairs.
    """

    def __init__(self, keypair_path: Optional[str] = None):
        super().__init__(SignerType.LOCAL)
        self._keys: dict[str, Keypair] = {}
        if keypair_path:
            keypair = load_keypair_file(keypair_path)
            self.add_key(keypair)
            logger.info(f"Loaded local keypair {keypair.pubkey()}")

    def _get_key(self, wallet_id: str) -> Keypair:
        if wallet_id not in self._keys:
            raise WalletNotFoundError(f"No local key for wallet {wallet_id}")
        return self._keys[wallet_id]

    async def create_wallet(self) -> CustodialWallet:
        keypair = Keypair()
        wallet = self.add_key(keypair)
        logger.info(f"Created local wallet {wallet.address}")
        return wallet

    async def get_wallet(self, wallet_id: str) -> CustodialWallet:
        keypair = self._get_key(wallet_id)
        return CustodialWallet(wallet_id=wallet_id, address=str(keypair.pubkey()))

    async def sign_transaction(self, wallet_id: str, transaction: bytes) -> bytes:
        keypair = self._get_key(wallet_id)

        try:
            tx = from_wire(transaction)
        except Exception as e:
            raise MalformedTransactionError(f"Cannot parse transaction: {e}") from e

        try:
            signed = apply_signature(tx, keypair)
        except MissingSignerError as e:
            raise MalformedTransactionError(
                f"Wallet {wallet_id} is not a signer of this transaction"
            ) from e

        logger.debug(f"Signed transaction locally for {wallet_id}")
        return serialize(signed)

    def add_key(self, keypair: Keypair) -> CustodialWallet:
        """Add a keypair (for testing or runtime configuration)."""
        address = str(keypair.pubkey())
        self._keys[address] = keypair
        return CustodialWallet(wallet_id=address, address=address)

    def remove_key(self, wallet_id: str):
        """Remove a keypair."""
        self._keys.pop(wallet_id, None)

    async def health_check(self) -> bool:
        """Local signer is always available."""
        return True
