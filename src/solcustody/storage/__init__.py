"""Persistence for user -> wallet mappings."""

from solcustody.storage.wallet_store import JsonWalletStore

__all__ = ["JsonWalletStore"]
