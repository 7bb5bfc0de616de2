"""
Application settings.

Loads anchoring configuration from environment variables using pydantic-settings.
Every variable carries the SHARDEUM_ prefix (SHARDEUM_ENABLED, SHARDEUM_RPC_URL, ...).
"""

import re
from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from civic_anchor.config.constants import (
    CONNECTION_CACHE_SECONDS,
    DEFAULT_CHAIN_ID,
    DEFAULT_CURRENCY_SYMBOL,
    DEFAULT_EXPLORER_URL,
    DEFAULT_FALLBACK_RPC_URLS,
    DEFAULT_GAS_LIMIT,
    DEFAULT_NETWORK_NAME,
    DEFAULT_RPC_URL,
    GAS_PRICE_MULTIPLIER,
    PLACEHOLDER_PRIVATE_KEY,
    RECEIPT_MAX_WAIT,
    RECEIPT_POLL_INTERVAL,
)

_PRIVATE_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class ChainSettings(BaseSettings):
    """Anchoring settings loaded from environment variables."""

    # Feature flags (both off by default: read-only is the conservative mode)
    enabled: bool = Field(
        default=False,
        description="Master switch for the scaling-network integration",
    )
    event_logging: bool = Field(
        default=False,
        description="Allow writes (event anchoring); requires enabled",
    )

    # Network
    rpc_url: str = DEFAULT_RPC_URL
    fallback_rpc_urls: str = DEFAULT_FALLBACK_RPC_URLS  # Comma-separated list
    chain_id: int = Field(default=DEFAULT_CHAIN_ID, gt=0)
    network_name: str = DEFAULT_NETWORK_NAME
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    explorer_url: str = DEFAULT_EXPLORER_URL

    # Wallet (hex, no 0x prefix)
    private_key: str | None = None

    # Transactions
    gas_price_multiplier: float = Field(default=GAS_PRICE_MULTIPLIER, ge=1.0)
    gas_limit: int = Field(default=DEFAULT_GAS_LIMIT, gt=21_000)
    receipt_poll_interval: float = Field(
        default=RECEIPT_POLL_INTERVAL, gt=0, description="Receipt polling interval in seconds"
    )
    receipt_timeout: float = Field(
        default=RECEIPT_MAX_WAIT, gt=0, description="Maximum wait for a receipt in seconds"
    )
    connection_cache_seconds: float = Field(default=CONNECTION_CACHE_SECONDS, ge=0)

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="SHARDEUM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("private_key", mode="before")
    @classmethod
    def normalize_private_key(cls, value: Any) -> Any:
        """Strip whitespace and an optional 0x prefix; blank means unset."""
        if value is None:
            return None
        value = str(value).strip()
        if value.lower().startswith("0x"):
            value = value[2:]
        return value or None

    @field_validator("rpc_url", "explorer_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize URLs so endpoint de-duplication and explorer links work."""
        return value.strip().rstrip("/")

    @model_validator(mode="after")
    def warn_on_unusable_key(self) -> "ChainSettings":
        """Warn (never fail) when a key is present but cannot be used."""
        if self.private_key and not self.has_usable_key:
            logger.warning(
                "SHARDEUM_PRIVATE_KEY is set but unusable "
                "(placeholder or not 64 hex characters) - read-only mode"
            )
        if self.event_logging and not self.enabled:
            logger.warning(
                "SHARDEUM_EVENT_LOGGING is on while SHARDEUM_ENABLED is off - "
                "configuration is invalid, anchoring stays disabled"
            )
        return self

    @property
    def has_usable_key(self) -> bool:
        """True when the private key is a real 32-byte hex key."""
        if not self.private_key or self.private_key == PLACEHOLDER_PRIVATE_KEY:
            return False
        return bool(_PRIVATE_KEY_RE.match(self.private_key))

    @property
    def is_valid_configuration(self) -> bool:
        """Event logging without the master switch is a contradiction."""
        return not (self.event_logging and not self.enabled)

    @property
    def can_write(self) -> bool:
        """True when every flag and the key allow anchoring writes."""
        return (
            self.enabled
            and self.event_logging
            and self.is_valid_configuration
            and self.has_usable_key
        )

    @property
    def fallback_rpc_url_list(self) -> list[str]:
        """Parse comma-separated fallback URLs."""
        return [
            url.strip().rstrip("/")
            for url in self.fallback_rpc_urls.split(",")
            if url.strip()
        ]

    @property
    def rpc_candidates(self) -> list[str]:
        """Primary URL followed by fallbacks, duplicates removed, order kept."""
        return list(dict.fromkeys([self.rpc_url, *self.fallback_rpc_url_list]))

    def config_summary(self) -> dict[str, Any]:
        """Configuration summary for debugging (never includes the key)."""
        return {
            "network": self.network_name,
            "chain_id": self.chain_id,
            "rpc_url": self.rpc_url,
            "fallback_rpc_urls": self.fallback_rpc_url_list,
            "enabled": self.enabled,
            "event_logging": self.event_logging,
            "read_only": not self.can_write,
            "has_key": self.has_usable_key,
            "role": "Civic event layer (scale)",
        }


@lru_cache
def get_settings() -> ChainSettings:
    """Settings loaded once per process from the environment."""
    return ChainSettings()
