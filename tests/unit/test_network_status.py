"""
Unit tests for NetworkMonitor.

Tests cover:
- Disabled integration
- Connected, cached and disconnected checks
- Chain info with and without a reachable endpoint
"""

from unittest.mock import MagicMock

import pytest

from civic_anchor.config.settings import ChainSettings
from civic_anchor.services.anchoring.network_status import ConnectionState, NetworkMonitor
from tests.factories import build_rpc_client


class TestIsConnected:
    """Test connectivity checks."""

    @pytest.mark.asyncio
    async def test_disabled(self):
        """Test disabled integration never touches the network."""
        factory = MagicMock()
        monitor = NetworkMonitor(ChainSettings(_env_file=None), client_factory=factory)

        status = await monitor.is_connected()

        assert status.state is ConnectionState.DISABLED
        assert status.is_connected is False
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_connected_then_cached(self, settings, client_factory, rpc_client):
        """Test positive result reused within the cache window."""
        monitor = NetworkMonitor(settings, client_factory=client_factory)

        first = await monitor.is_connected()
        second = await monitor.is_connected()

        assert first.state is ConnectionState.CONNECTED
        assert first.chain_id == 8119
        assert second.message == "Connected (cached)"
        assert rpc_client.get_chain_id.await_count == 1
        rpc_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_check(self, settings, client_factory, rpc_client):
        """Test force_check bypasses the cache."""
        monitor = NetworkMonitor(settings, client_factory=client_factory)

        await monitor.is_connected()
        await monitor.is_connected(force_check=True)

        assert rpc_client.get_chain_id.await_count == 2

    @pytest.mark.asyncio
    async def test_disconnected(self, settings, client_factory, rpc_client):
        """Test failed connection check reported as disconnected."""
        rpc_client.get_chain_id.side_effect = ConnectionError("refused")
        monitor = NetworkMonitor(settings, client_factory=client_factory)

        status = await monitor.is_connected()

        assert status.state is ConnectionState.DISCONNECTED
        assert status.to_dict()["state"] == "disconnected"
        rpc_client.close.assert_awaited_once()


class TestChainInfo:
    """Test chain info retrieval."""

    @pytest.mark.asyncio
    async def test_chain_info(self, settings, client_factory):
        """Test live chain info cached after first fetch."""
        monitor = NetworkMonitor(settings, client_factory=client_factory)

        info = await monitor.get_chain_info()
        again = await monitor.get_chain_info()

        assert info.latest_block == 1000
        assert info.gas_price == 100
        assert info.error is None
        assert again is info
        assert client_factory.call_count == 1

    @pytest.mark.asyncio
    async def test_chain_info_error(self, settings):
        """Test unreachable endpoint returns info with error set."""
        client = build_rpc_client()
        client.get_block_number.side_effect = ConnectionError("refused")
        monitor = NetworkMonitor(settings, client_factory=MagicMock(return_value=client))

        info = await monitor.get_chain_info()

        assert info.error == "refused"
        assert info.latest_block is None
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_chain_info_disabled(self):
        """Test disabled integration reports basic info only."""
        monitor = NetworkMonitor(ChainSettings(_env_file=None), client_factory=MagicMock())

        info = await monitor.get_chain_info()

        assert info.is_enabled is False
        assert info.latest_block is None
