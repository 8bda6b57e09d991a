"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional

from solders.pubkey import Pubkey


MAINNET_PROGRAM_ID = "FqzkXZdwYjurnUKetJCAvaUw5WAqbwzU6gZEwydeEfqS"
DEVNET_PROGRAM_ID = "coUnmi3oBUtwtd9fjeAvSsJssXh5A5xyPbhpewyzRVF"

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

CLUSTER_PROGRAM_IDS = {
    "devnet": DEVNET_PROGRAM_ID,
    "testnet": DEVNET_PROGRAM_ID,
    "mainnet-beta": MAINNET_PROGRAM_ID,
}


class MinterConfig(BaseSettings):
    """Token minter configuration"""

    # Program configuration
    cluster: str = "mainnet-beta"  # devnet, testnet or mainnet-beta
    program_id: Optional[str] = None  # Overrides the per-cluster id
    authority_seed: str = "mint_authority"

    # Well-known service identities
    token_program_id: str = TOKEN_PROGRAM_ID
    associated_token_program_id: str = ASSOCIATED_TOKEN_PROGRAM_ID
    system_program_id: str = SYSTEM_PROGRAM_ID

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Feature flags
    enable_audit_logging: bool = True

    class Config:
        env_prefix = "MINTER_"
        env_file = ".env"
        case_sensitive = False

    def resolve_program_id(self) -> Pubkey:
        """Program id for the configured cluster unless explicitly overridden"""
        if self.program_id:
            return Pubkey.from_string(self.program_id)
        # Unknown clusters fall back to the mainnet deployment
        return Pubkey.from_string(CLUSTER_PROGRAM_IDS.get(self.cluster, MAINNET_PROGRAM_ID))

    @property
    def seed_bytes(self) -> bytes:
        return self.authority_seed.encode("utf-8")


# Global configuration instance
config = MinterConfig()


def get_config() -> MinterConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> MinterConfig:
    """Reload configuration from environment"""
    global config
    config = MinterConfig()
    return config
