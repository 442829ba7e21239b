"""Transaction signing backends.

- PrivySigner: custodial wallet service (keys never leave it)
- LocalSigner: in-memory keypairs for devnet demos and tests
"""

from solcustody.signing.base import (
    AuthorizationError,
    CustodialWallet,
    MalformedTransactionError,
    RemoteSigner,
    RemoteSignerError,
    SignerType,
    SigningTimeoutError,
    WalletNotFoundError,
)
from solcustody.signing.factory import get_signer, get_signer_info, reset_signer
from solcustody.signing.local import LocalSigner
from solcustody.signing.privy import PrivySigner

__all__ = [
    "CustodialWallet",
    "RemoteSigner",
    "SignerType",
    "LocalSigner",
    "PrivySigner",
    "get_signer",
    "get_signer_info",
    "reset_signer",
    # Errors
    "RemoteSignerError",
    "WalletNotFoundError",
    "AuthorizationError",
    "MalformedTransactionError",
    "SigningTimeoutError",
]
