"""
Network status.

Read-only connectivity and chain information for the configured endpoint,
with a short cache so inspection screens can poll it freely.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from loguru import logger

from civic_anchor.config.settings import ChainSettings
from civic_anchor.utils.datetime_utils import elapsed_seconds, utc_now

from .models import Endpoint
from .rpc_client import AnchorRpcClient, ClientFactory

CAPABILITIES = (
    "Raw civic event logging",
    "High-frequency activity tracking",
    "Scalable participation metrics",
    "Cost-efficient data anchoring",
)

LIMITATIONS = (
    "Final attestations (trust layer)",
    "Governance decisions (trust layer)",
    "Identity verification (trust layer)",
    "Proof-of-Resolution (trust layer)",
    "Cross-chain bridging",
    "Token transfers",
)


class ConnectionState(StrEnum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    DISABLED = "disabled"


@dataclass(frozen=True)
class ConnectionStatus:
    is_connected: bool
    state: ConnectionState
    message: str
    checked_at: datetime
    chain_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["checked_at"] = self.checked_at.isoformat()
        return data


@dataclass(frozen=True)
class ChainInfo:
    network_name: str
    chain_id: int
    is_enabled: bool
    architectural_role: str
    capabilities: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    latest_block: int | None = None
    gas_price: int | None = None
    rpc_url: str | None = None
    explorer_url: str | None = None
    currency_symbol: str | None = None
    fetched_at: datetime | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["capabilities"] = list(self.capabilities)
        data["limitations"] = list(self.limitations)
        data["fetched_at"] = self.fetched_at.isoformat() if self.fetched_at else None
        return data


class NetworkMonitor:
    """
    Connectivity checks and chain info for the primary endpoint.

    Works in read-only mode; never needs a wallet.
    """

    def __init__(
        self,
        settings: ChainSettings,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings
        self.client_factory = client_factory or AnchorRpcClient.for_endpoint
        self._last_connected_at: datetime | None = None
        self._cached_chain_info: ChainInfo | None = None

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(url=self.settings.rpc_url, expected_chain_id=self.settings.chain_id)

    async def is_connected(
        self,
        force_check: bool = False,
        cache_seconds: float | None = None,
    ) -> ConnectionStatus:
        """
        Check connectivity, reusing a recent positive result.

        Args:
            force_check: Ignore the cache
            cache_seconds: Cache window (default: settings.connection_cache_seconds)

        Returns:
            ConnectionStatus
        """
        if not self.settings.enabled:
            return ConnectionStatus(
                is_connected=False,
                state=ConnectionState.DISABLED,
                message="Scaling-network integration is disabled",
                checked_at=utc_now(),
            )

        if cache_seconds is None:
            cache_seconds = self.settings.connection_cache_seconds
        if (
            not force_check
            and self._last_connected_at is not None
            and elapsed_seconds(self._last_connected_at) < cache_seconds
        ):
            return ConnectionStatus(
                is_connected=True,
                state=ConnectionState.CONNECTED,
                message="Connected (cached)",
                checked_at=self._last_connected_at,
            )

        client = self.client_factory(self.endpoint)
        try:
            chain_id = await client.get_chain_id()
        except Exception as e:
            logger.warning(f"Connection check failed: {e}")
            return ConnectionStatus(
                is_connected=False,
                state=ConnectionState.DISCONNECTED,
                message="Unable to connect to network",
                checked_at=utc_now(),
            )
        finally:
            await client.close()

        self._last_connected_at = utc_now()
        return ConnectionStatus(
            is_connected=True,
            state=ConnectionState.CONNECTED,
            message=f"Connected to {self.settings.network_name}",
            checked_at=self._last_connected_at,
            chain_id=chain_id,
        )

    async def get_chain_info(self, use_cache: bool = True) -> ChainInfo:
        """
        Fetch chain ID, latest block and gas price.

        Returns basic info with error set when the endpoint is unreachable.
        """
        if use_cache and self._cached_chain_info is not None:
            return self._cached_chain_info

        if not self.settings.enabled:
            return ChainInfo(
                network_name=self.settings.network_name,
                chain_id=self.settings.chain_id,
                is_enabled=False,
                architectural_role="Disabled - trust layer is primary chain",
            )

        client = self.client_factory(self.endpoint)
        try:
            chain_id = await client.get_chain_id()
            latest_block = await client.get_block_number()
            gas_price = await client.get_gas_price()
        except Exception as e:
            logger.error(f"Failed to fetch chain info: {e}")
            return ChainInfo(
                network_name=self.settings.network_name,
                chain_id=self.settings.chain_id,
                is_enabled=True,
                architectural_role="High-throughput civic event layer (offline)",
                capabilities=CAPABILITIES,
                error=str(e),
            )
        finally:
            await client.close()

        self._cached_chain_info = ChainInfo(
            network_name=self.settings.network_name,
            chain_id=chain_id,
            is_enabled=True,
            architectural_role="High-throughput civic event layer",
            capabilities=CAPABILITIES,
            limitations=LIMITATIONS,
            latest_block=latest_block,
            gas_price=gas_price,
            rpc_url=self.settings.rpc_url,
            explorer_url=self.settings.explorer_url,
            currency_symbol=self.settings.currency_symbol,
            fetched_at=utc_now(),
        )
        return self._cached_chain_info
