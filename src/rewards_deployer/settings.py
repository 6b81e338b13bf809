"""
rewards_deployer.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the deployer.
- Describe the target networks (endpoint, chain id, confirmation policy).
- Hide the deployer private key from repr/logging.
- Offer a cached settings instance loaded once at process start.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from rewards_deployer.models import DeploymentParameters

GIN_TOKEN_ADDRESS = "0xce407B8Bc78274E6338E7a1eB4C9F4c4374bFAcf"


class UnknownNetwork(LookupError):
    """Raised when the requested network name is not configured."""


class NetworkConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    rpc_url: str
    chain_id: int
    # Blocks on top of the receipt's block before a step counts as confirmed.
    confirmations: int = Field(default=1, ge=1)
    confirmation_timeout_s: float = Field(default=30.0, gt=0)
    poll_latency_s: float = Field(default=1.0, gt=0)
    # Legacy gas price override; None lets the node/web3 pick fees.
    gas_price_gwei: Decimal | None = None


def _default_networks() -> dict[str, NetworkConfig]:
    return {
        "boba_mainnet": NetworkConfig(
            rpc_url="https://mainnet.boba.network",
            chain_id=288,
            confirmation_timeout_s=60.0,
        ),
        "boba_rinkeby": NetworkConfig(
            rpc_url="wss://wss.rinkeby.boba.network/",
            chain_id=28,
        ),
    }


class Settings(BaseSettings):
    """
    Deployer configuration:
    - Strict env-driven configuration (prefix DEPLOYER_, optional .env file)
    - Defaults mirror the GIN locked staking farm launch
    - Single settings object passed explicitly into the service/orchestrator
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOYER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "rewards-deployer"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Network selection
    network: str = "boba_rinkeby"
    networks: dict[str, NetworkConfig] = Field(default_factory=_default_networks)

    # Signing key (DEPLOYER_PRIVATE_KEY)
    private_key: SecretStr | None = Field(default=None, repr=False)

    # Compiled contract artifacts (Truffle build output)
    artifacts_dir: Path = Path("build/contracts")
    factory_contract: str = "GinLockedStakingRewardsFactory"

    # Deployment parameters
    reward_token_address: str = GIN_TOKEN_ADDRESS
    reward_amount: int = 86400 * 10**18
    reward_duration: int = 86400  # 1 day
    lock_period: int = 600  # 10 minutes
    cooldown_period: int = 600
    boost_multiplier: int = 2

    # Funding policy
    funding_multiple: int = Field(default=3, ge=1)
    funding_target: Literal["staking_rewards", "factory"] = "staking_rewards"
    propagation_delay_ms: int = Field(default=3000, ge=0)

    # Run ledger
    database_url: str = "sqlite+aiosqlite:///./deployments.db"

    def network_config(self, name: str | None = None) -> NetworkConfig:
        key = name or self.network
        try:
            return self.networks[key]
        except KeyError:
            known = ", ".join(sorted(self.networks)) or "<none>"
            raise UnknownNetwork(f"unknown network {key!r} (configured: {known})") from None

    def deployment_parameters(self) -> DeploymentParameters:
        return DeploymentParameters(
            reward_token=self.reward_token_address,
            reward_amount=self.reward_amount,
            reward_duration=self.reward_duration,
            lock_period=self.lock_period,
            cooldown_period=self.cooldown_period,
            boost_multiplier=self.boost_multiplier,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars; configuration is never mutated after start.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# DEPLOYER_NETWORKS takes a JSON object and replaces the default network table, e.g.
# DEPLOYER_NETWORKS='{"local": {"rpc_url": "http://127.0.0.1:8545", "chain_id": 1337}}'
