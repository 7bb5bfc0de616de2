"""
Endpoint Resolver.

Finds the first reachable RPC endpoint that reports the expected chain ID.
Replaces provider failover at call time: resolution happens once, at
service initialization, and "nothing matched" is a normal outcome.
"""

from collections.abc import Iterable

from loguru import logger

from civic_anchor.config.constants import CHAIN_ID_TIMEOUT

from .models import Endpoint
from .rpc_client import AnchorRpcClient, ClientFactory


class EndpointResolver:
    """
    Resolve a live endpoint from an ordered candidate list.

    First match wins (not lowest latency). Each candidate is checked with a
    short-lived client that is always closed.
    """

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        timeout: float = CHAIN_ID_TIMEOUT,
    ) -> None:
        """
        Initialize resolver.

        Args:
            client_factory: Builds a client for an endpoint (default: AnchorRpcClient)
            timeout: Chain ID check timeout in seconds
        """
        self.client_factory = client_factory or AnchorRpcClient.for_endpoint
        self.timeout = timeout

    async def resolve(
        self,
        candidates: Iterable[Endpoint],
        expected_chain_id: int,
    ) -> Endpoint | None:
        """
        Return the first candidate whose chain ID equals expected_chain_id.

        Args:
            candidates: Endpoints in preference order
            expected_chain_id: Network identity to match

        Returns:
            Matching endpoint, or None if every candidate failed or mismatched
        """
        seen: set[str] = set()

        for endpoint in candidates:
            if endpoint.url in seen:
                continue
            seen.add(endpoint.url)

            logger.debug(f"Trying RPC endpoint: {endpoint.label}")
            chain_id = await self._query_chain_id(endpoint)
            if chain_id is None:
                continue

            if chain_id == expected_chain_id:
                logger.info(f"RPC endpoint working: {endpoint.label} (chain ID {chain_id})")
                return endpoint

            logger.warning(
                f"Wrong chain ID at {endpoint.label}: {chain_id} "
                f"(expected {expected_chain_id})"
            )

        logger.error(
            f"No RPC endpoint matched chain ID {expected_chain_id} "
            f"({len(seen)} candidates tried)"
        )
        return None

    async def _query_chain_id(self, endpoint: Endpoint) -> int | None:
        """Query chain ID through a short-lived client; None on any failure."""
        client = None
        try:
            client = self.client_factory(endpoint)
            return await client.get_chain_id(timeout=self.timeout)
        except Exception as e:
            logger.warning(f"RPC endpoint failed: {endpoint.label} - {type(e).__name__}: {e}")
            return None
        finally:
            if client is not None:
                await client.close()
