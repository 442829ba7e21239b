"""Application configuration using pydantic-settings.

All secrets for the custodial wallet service live here; nothing else in
the package reads the environment directly.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default public RPC per cluster
NETWORK_RPC_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3003, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Solana
    # ======================
    solana_network: str = Field(default="devnet", description="Cluster: devnet, testnet or mainnet")
    sol_rpc_url: str = Field(default="", description="Explicit RPC URL (overrides network default)")
    blockhash_commitment: str = Field(
        default="finalized", description="Commitment used when fetching a fresh blockhash"
    )
    preflight_commitment: str = Field(
        default="confirmed", description="Commitment used for preflight simulation"
    )
    skip_preflight: bool = Field(default=False, description="Skip node-side preflight simulation")
    submit_timeout: float = Field(default=30.0, description="Seconds to wait for sendTransaction")

    # ======================
    # Custodial wallet service
    # ======================
    signer_backend: str = Field(default="privy", description="Signing backend: privy or local")
    privy_app_id: str = Field(default="", description="Privy application ID")
    privy_app_secret: str = Field(default="", description="Privy application secret")
    privy_authorization_private_key: Optional[str] = Field(
        default=None, description="Wallet authorization key (wallet-auth:<base64 PKCS8>)"
    )
    privy_api_url: str = Field(default="https://api.privy.io/v1", description="Privy API base URL")
    remote_sign_timeout: float = Field(
        default=30.0, description="Seconds to wait for the custodial service to sign"
    )
    local_keypair_path: Optional[str] = Field(
        default=None, description="Keypair JSON file for the local signer (devnet only)"
    )

    # ======================
    # Swap aggregator
    # ======================
    jupiter_api_url: str = Field(
        default="https://lite-api.jup.ag/ultra/v1", description="Jupiter Ultra API base URL"
    )
    jupiter_api_key: Optional[str] = Field(default=None, description="Jupiter API key")

    # ======================
    # DLMM
    # ======================
    dlmm_bridge_url: str = Field(
        default="http://localhost:3005", description="DLMM SDK sidecar base URL"
    )
    default_range_interval: int = Field(
        default=10, description="Bins on each side of the active bin for new positions"
    )

    # ======================
    # Storage
    # ======================
    wallet_store_path: str = Field(
        default="./data/wallet-mappings.json", description="User to wallet mapping file"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_mainnet(self) -> bool:
        return self.solana_network.lower() in ("mainnet", "mainnet-beta")

    def get_rpc_url(self) -> str:
        """Get RPC URL for the configured network."""
        if self.sol_rpc_url:
            return self.sol_rpc_url
        network = self.solana_network.lower()
        if network == "mainnet-beta":
            network = "mainnet"
        return NETWORK_RPC_URLS.get(network, NETWORK_RPC_URLS["devnet"])

    def explorer_tx_url(self, signature: str) -> str:
        """Solscan link for a transaction signature."""
        if self.is_mainnet:
            return f"https://solscan.io/tx/{signature}"
        return f"https://solscan.io/tx/{signature}?cluster={self.solana_network.lower()}"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "solana": {
                "network": self.solana_network,
                "rpc": self.get_rpc_url(),
                "blockhash_commitment": self.blockhash_commitment,
                "preflight_commitment": self.preflight_commitment,
                "skip_preflight": self.skip_preflight,
            },
            "signer": {
                "backend": self.signer_backend,
                "privy_app_id": self.privy_app_id or "(not set)",
                "privy_app_secret": "***" if self.privy_app_secret else "(not set)",
                "authorization_key": "***" if self.privy_authorization_private_key else "(not set)",
            },
            "jupiter": {
                "url": self.jupiter_api_url,
                "api_key": "***" if self.jupiter_api_key else "(not set)",
            },
            "dlmm_bridge": self.dlmm_bridge_url,
            "wallet_store": self.wallet_store_path,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
