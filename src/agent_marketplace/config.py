"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. Secrets (the orchestrator
private key and the x402 API keys) are held as SecretStr so they never show
up in logs or reprs.

Usage:
    from agent_marketplace.config import get_settings
    settings = get_settings()
    print(settings.settlement_mode)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_marketplace.domain.enums import SettlementMode


class Settings(BaseSettings):
    """Central configuration for the Agent Marketplace."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    # Base URL that relative (local) agent endpoints are joined to
    public_base_url: str = "http://localhost:8000"

    # --- GOAT Network ---
    goat_rpc_url: str = "https://rpc.testnet3.goat.network"
    chain_id: int = 48816
    usdt_address: str = ""
    usdt_decimals: int = 6
    explorer_url: str = "https://explorer.testnet3.goat.network"

    # --- ERC-8004 Identity Registry ---
    erc8004_registry_address: str = ""
    registry_timeout_seconds: float = 10.0

    # --- x402 Settlement ---
    goatx402_api_url: str = "https://x402-api-lx58aabp0r.testnet3.goat.network"
    goatx402_api_key: SecretStr = SecretStr("")
    goatx402_merchant_id: str = "agents_marketplace"
    # JSON object in the environment, e.g. {"translator_agent": "key-123"}
    goatx402_merchant_api_keys: dict[str, SecretStr] = Field(default_factory=dict)
    agent_private_key: SecretStr = SecretStr("")
    settlement_poll_interval_seconds: float = 2.0
    settlement_poll_timeout_seconds: float = 30.0

    # --- Agent invocation ---
    agent_call_timeout_seconds: float = 10.0
    default_price_usdt: str = "0.10"

    # --- Caller authentication (optional shared secret) ---
    agent_api_token: SecretStr = SecretStr("")

    # --- Local agents (LiteLLM) ---
    litellm_model: str = "gpt-4o-mini"
    litellm_max_tokens: int = 1024
    litellm_temperature: float = 0.2
    agent_summarizer_wallet: str = ""
    agent_translator_wallet: str = ""

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def settlement_mode(self) -> SettlementMode:
        """LIVE only when both the x402 API key and the orchestrator key are set."""
        if self.goatx402_api_key.get_secret_value() and self.agent_private_key.get_secret_value():
            return SettlementMode.LIVE
        return SettlementMode.SIMULATED

    def merchant_api_key(self, merchant_id: str) -> str:
        """Return the x402 API key for a merchant, falling back to the default key."""
        override = self.goatx402_merchant_api_keys.get(merchant_id)
        if override is not None and override.get_secret_value():
            return override.get_secret_value()
        return self.goatx402_api_key.get_secret_value()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
