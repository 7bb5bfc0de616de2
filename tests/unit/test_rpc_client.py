"""
Unit tests for the RPC client and timeout wrapper.

AsyncWeb3 is replaced by a mock so no network access happens.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3.exceptions import TransactionNotFound

from civic_anchor.services.anchoring.models import Endpoint
from civic_anchor.services.anchoring.rpc_client import AnchorRpcClient
from civic_anchor.services.anchoring.rpc_wrapper import with_timeout
from civic_anchor.utils.exceptions import AnchorTimeoutError, ConnectivityError
from tests.factories import PRIMARY_URL, TEST_CHAIN_ID, TEST_TX_HASH


async def _value(value):
    return value


@pytest.fixture
def web3():
    web3 = MagicMock()
    web3.eth.get_transaction_count = AsyncMock(return_value=7)
    web3.eth.send_raw_transaction = AsyncMock(return_value=bytes.fromhex(TEST_TX_HASH[2:]))
    web3.eth.get_transaction_receipt = AsyncMock()
    web3.eth.get_balance = AsyncMock(return_value=10**18)
    web3.provider.disconnect = AsyncMock()
    return web3


@pytest.fixture
def client(web3):
    endpoint = Endpoint(url=PRIMARY_URL, expected_chain_id=TEST_CHAIN_ID)
    return AnchorRpcClient(endpoint, web3=web3, timeout=0.5)


class TestWithTimeout:
    """Test timeout conversion."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        """Test fast call result passed through."""
        assert await with_timeout(_value(5), timeout=1) == 5

    @pytest.mark.asyncio
    async def test_timeout_raises_anchor_timeout(self):
        """Test slow call raises AnchorTimeoutError."""
        with pytest.raises(AnchorTimeoutError) as exc_info:
            await with_timeout(asyncio.sleep(1), timeout=0.01, operation_name="eth_chainId")

        assert "eth_chainId" in str(exc_info.value)
        assert isinstance(exc_info.value, ConnectivityError)


class TestAnchorRpcClient:
    """Test client calls over a mocked AsyncWeb3."""

    @pytest.mark.asyncio
    async def test_chain_id(self, client, web3):
        """Test chain ID awaited from the eth namespace."""
        web3.eth.chain_id = _value(TEST_CHAIN_ID)

        assert await client.get_chain_id() == TEST_CHAIN_ID

    @pytest.mark.asyncio
    async def test_pending_nonce(self, client, web3):
        """Test nonce counted including pending transactions."""
        assert await client.get_pending_nonce("0xabc") == 7
        web3.eth.get_transaction_count.assert_awaited_once_with("0xabc", "pending")

    @pytest.mark.asyncio
    async def test_send_raw_transaction_hex(self, client):
        """Test broadcast returns a 0x-prefixed hash string."""
        assert await client.send_raw_transaction(b"\x01") == TEST_TX_HASH

    @pytest.mark.asyncio
    async def test_receipt_not_found(self, client, web3):
        """Test unknown transaction yields None."""
        web3.eth.get_transaction_receipt.side_effect = TransactionNotFound("not found")

        assert await client.get_transaction_receipt(TEST_TX_HASH) is None

    @pytest.mark.asyncio
    async def test_receipt_normalized(self, client, web3):
        """Test receipt mapping converted to Receipt."""
        web3.eth.get_transaction_receipt.return_value = {
            "blockNumber": 42,
            "gasUsed": 21000,
            "status": 1,
            "effectiveGasPrice": 120,
        }

        receipt = await client.get_transaction_receipt(TEST_TX_HASH)

        assert receipt.block_number == 42
        assert receipt.success is True
        assert receipt.tx_hash == TEST_TX_HASH

    @pytest.mark.asyncio
    async def test_close_swallows_errors(self, client, web3):
        """Test close never raises."""
        web3.provider.disconnect.side_effect = RuntimeError("already closed")

        await client.close()

        web3.provider.disconnect.assert_awaited_once()
