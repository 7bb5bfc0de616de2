"""
JSON-RPC client for the scaling network.

Thin async wrapper over web3's AsyncWeb3 exposing exactly the calls the
anchoring pipeline needs, each bounded by a timeout. Components receive
a client (or a factory for one) so tests can substitute a mock.
"""

from collections.abc import Callable

from loguru import logger
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from civic_anchor.config.constants import CHAIN_ID_TIMEOUT, RPC_TIMEOUT

from .models import Endpoint, Receipt
from .rpc_wrapper import with_timeout


class AnchorRpcClient:
    """
    Async JSON-RPC client bound to one endpoint.

    Calls used:
    - eth_chainId (resolver)
    - eth_gasPrice, eth_getTransactionCount (submitter)
    - eth_sendRawTransaction (submitter)
    - eth_getTransactionReceipt, eth_blockNumber (tracker, status)
    """

    def __init__(
        self,
        endpoint: Endpoint,
        web3: AsyncWeb3 | None = None,
        timeout: float = RPC_TIMEOUT,
    ) -> None:
        """
        Initialize RPC client.

        Args:
            endpoint: Endpoint to talk to
            web3: Preconfigured AsyncWeb3 (built from endpoint.url if None)
            timeout: Per-call timeout in seconds
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.web3 = web3 or AsyncWeb3(
            AsyncHTTPProvider(endpoint.url, request_kwargs={"timeout": timeout})
        )

    @classmethod
    def for_endpoint(cls, endpoint: Endpoint) -> "AnchorRpcClient":
        """Default client factory."""
        return cls(endpoint)

    async def get_chain_id(self, timeout: float = CHAIN_ID_TIMEOUT) -> int:
        return int(
            await with_timeout(
                self.web3.eth.chain_id, timeout=timeout, operation_name="eth_chainId"
            )
        )

    async def get_gas_price(self) -> int:
        return int(
            await with_timeout(
                self.web3.eth.gas_price, timeout=self.timeout, operation_name="eth_gasPrice"
            )
        )

    async def get_transaction_count(self, address: str, block: str = "latest") -> int:
        return int(
            await with_timeout(
                self.web3.eth.get_transaction_count(address, block),
                timeout=self.timeout,
                operation_name=f"eth_getTransactionCount({block})",
            )
        )

    async def get_pending_nonce(self, address: str) -> int:
        """Next usable nonce, counting not-yet-confirmed transactions."""
        return await self.get_transaction_count(address, "pending")

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """
        Broadcast a signed transaction.

        Returns:
            0x-prefixed transaction hash (accepted into the pending pool)
        """
        tx_hash = await with_timeout(
            self.web3.eth.send_raw_transaction(raw_transaction),
            timeout=self.timeout,
            operation_name="eth_sendRawTransaction",
        )
        return Web3.to_hex(tx_hash)

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt | None:
        """
        Fetch a receipt.

        Returns:
            Receipt, or None while the transaction is not yet mined
        """
        try:
            receipt = await with_timeout(
                self.web3.eth.get_transaction_receipt(tx_hash),
                timeout=self.timeout,
                operation_name="eth_getTransactionReceipt",
            )
        except TransactionNotFound:
            return None
        if not receipt:
            return None
        return Receipt.from_rpc(tx_hash, receipt)

    async def get_block_number(self) -> int:
        return int(
            await with_timeout(
                self.web3.eth.block_number, timeout=self.timeout, operation_name="eth_blockNumber"
            )
        )

    async def get_balance(self, address: str) -> int:
        return int(
            await with_timeout(
                self.web3.eth.get_balance(address),
                timeout=self.timeout,
                operation_name="eth_getBalance",
            )
        )

    async def close(self) -> None:
        """Release the provider's HTTP session."""
        try:
            await self.web3.provider.disconnect()
        except Exception as e:
            logger.debug(f"Error closing RPC client for {self.endpoint.label}: {e}")

    def __repr__(self) -> str:
        return f"AnchorRpcClient({self.endpoint.label})"


ClientFactory = Callable[[Endpoint], AnchorRpcClient]
