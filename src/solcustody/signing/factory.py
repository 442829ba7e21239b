"""Signer factory.

Creates the signing backend named by ``SIGNER_BACKEND`` (privy or local).
"""

import logging
from typing import Optional

from solcustody.config import get_settings
from solcustody.signing.base import RemoteSigner, SignerType

logger = logging.getLogger(__name__)


def get_signer_type() -> SignerType:
    """Resolve the configured backend.

    Raises:
        ValueError: If SIGNER_BACKEND names an unknown backend
    """
    backend = get_settings().signer_backend.lower()
    try:
        return SignerType(backend)
    except ValueError:
        raise ValueError(f"Unknown signer backend: {backend!r} (expected privy or local)")


_signer_instance: Optional[RemoteSigner] = None


def get_signer() -> RemoteSigner:
    """Get the configured signer instance.

    Returns singleton instance for the configured signer type.
    """
    global _signer_instance

    if _signer_instance is not None:
        return _signer_instance

    settings = get_settings()
    signer_type = get_signer_type()
    logger.info(f"Initializing {signer_type.value} signer")

    if signer_type == SignerType.PRIVY:
        from solcustody.signing.privy import PrivySigner
        _signer_instance = PrivySigner(
            app_id=settings.privy_app_id,
            app_secret=settings.privy_app_secret,
            api_url=settings.privy_api_url,
            authorization_key=settings.privy_authorization_private_key,
            timeout=settings.remote_sign_timeout,
        )

    else:  # LOCAL
        if settings.is_mainnet:
            logger.warning("Local signer configured on mainnet; keys live in process memory")
        from solcustody.signing.local import LocalSigner
        _signer_instance = LocalSigner(keypair_path=settings.local_keypair_path)

    return _signer_instance


def reset_signer():
    """Reset the signer instance (for testing)."""
    global _signer_instance
    _signer_instance = None


async def get_signer_info(signer: Optional[RemoteSigner] = None) -> dict:
    """Get information about the current signer configuration."""
    signer = signer or get_signer()
    health = await signer.health_check()

    return {
        "type": signer.signer_type.value,
        "healthy": health,
        "class": signer.__class__.__name__,
    }
