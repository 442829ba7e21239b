"""Base interfaces for custodial transaction signing.

Signing flow:
1. Build the unsigned (or partially signed) transaction locally
2. Submit the serialized bytes to the signer with a wallet identifier
3. Signer returns the signed transaction bytes (key material never leaves it)
4. Verify signatures and broadcast
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from solders.pubkey import Pubkey

from solcustody.errors import ErrorKind, SolcustodyError

logger = logging.getLogger(__name__)


class SignerType(str, Enum):
    """Type of signing backend."""
    PRIVY = "privy"   # Remote custodial wallet service
    LOCAL = "local"   # Keypairs held in process (devnet demos only)


@dataclass(frozen=True)
class CustodialWallet:
    """Handle naming a custodial wallet.

    Attributes:
        wallet_id: Identifier understood by the signing backend
        address: Base58 public address (fee payer for our transactions)
    """
    wallet_id: str
    address: str

    @property
    def pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.address)


class RemoteSigner(ABC):
    """Abstract base class for signing backends.

    Implementations never expose private keys. ``sign_transaction`` takes
    and returns full serialized transactions (legacy or versioned) so that
    signatures already present are carried through.
    """

    def __init__(self, signer_type: SignerType):
        self.signer_type = signer_type

    @abstractmethod
    async def create_wallet(self) -> CustodialWallet:
        """Create a new Solana wallet."""
        pass

    @abstractmethod
    async def get_wallet(self, wallet_id: str) -> CustodialWallet:
        """Look up a wallet by identifier.

        Raises:
            WalletNotFoundError: If the backend does not know the wallet
        """
        pass

    @abstractmethod
    async def sign_transaction(self, wallet_id: str, transaction: bytes) -> bytes:
        """Sign a serialized transaction with the wallet's key.

        Args:
            wallet_id: Wallet identifier
            transaction: Serialized transaction (wire format)

        Returns:
            Serialized transaction of the same shape carrying the wallet signature
        """
        pass

    async def health_check(self) -> bool:
        """Check if the signing backend is available."""
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.signer_type.value})"


class RemoteSignerError(SolcustodyError):
    """Exception raised when the signing backend fails.

    Defaults to transient; subclasses narrow it down.
    """

    kind = ErrorKind.TRANSIENT


class WalletNotFoundError(RemoteSignerError):
    """The signing backend does not know the wallet."""

    kind = ErrorKind.INVALID_INPUT


class AuthorizationError(RemoteSignerError):
    """Credentials or authorization signature were refused."""

    kind = ErrorKind.TERMINAL


class MalformedTransactionError(RemoteSignerError):
    """The signing backend could not parse the transaction."""

    kind = ErrorKind.INVALID_INPUT


class SigningTimeoutError(RemoteSignerError):
    """The signing backend did not answer in time."""

    kind = ErrorKind.TRANSIENT
