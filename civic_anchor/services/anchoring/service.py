"""
Anchoring Service.

Main orchestrator wiring resolver, submitter, tracker, ledger, bus and
statistics. Constructed explicitly and passed to callers; there is no
process-global instance.

Callers (issue reporting) invoke log_civic_event() after their own write
succeeded and treat success=False as a soft warning.
"""

import asyncio
from typing import Any

from loguru import logger

from civic_anchor.config.constants import TEST_EVENT_TYPE
from civic_anchor.config.settings import ChainSettings
from civic_anchor.utils.datetime_utils import utc_now
from civic_anchor.utils.exceptions import ConfigurationError, ConnectivityError
from civic_anchor.utils.security import mask_address

from .confirmation_tracker import ConfirmationTracker
from .endpoint_resolver import EndpointResolver
from .models import (
    AnchorResult,
    Endpoint,
    StatisticsSnapshot,
    TransactionRecord,
    TransactionStatus,
    Wallet,
    explorer_link,
)
from .notification_bus import NotificationBus
from .rpc_client import AnchorRpcClient, ClientFactory
from .statistics import compute_stats
from .transaction_ledger import TransactionLedger
from .transaction_submitter import TransactionSubmitter


class AnchoringService:
    """
    Civic event anchoring pipeline.

    Features:
    - Endpoint resolution with ordered fallbacks
    - Non-blocking submission (confirmation tracked in background tasks)
    - Live ledger with subscriptions and statistics
    - Read-only mode whenever flags or key do not allow writes
    """

    def __init__(
        self,
        settings: ChainSettings,
        client_factory: ClientFactory | None = None,
        bus: NotificationBus | None = None,
        ledger: TransactionLedger | None = None,
        wallet: Wallet | None = None,
    ) -> None:
        """
        Initialize anchoring service.

        Args:
            settings: Anchoring settings
            client_factory: Builds RPC clients (default: AnchorRpcClient)
            bus: Notification bus (new one if None)
            ledger: Ledger (new one on the bus if None)
            wallet: Signing wallet (built from settings.private_key if None)
        """
        self.settings = settings
        self.client_factory = client_factory or AnchorRpcClient.for_endpoint
        self.bus = bus or NotificationBus()
        self.ledger = ledger or TransactionLedger(bus=self.bus)

        if wallet is None and settings.has_usable_key:
            try:
                wallet = Wallet(settings.private_key)
            except Exception as e:
                logger.error(f"Invalid signing key, staying read-only: {type(e).__name__}")
                wallet = None
        self._wallet = wallet

        self.resolver = EndpointResolver(client_factory=self.client_factory)
        self.submitter = TransactionSubmitter(
            ledger=self.ledger,
            chain_id=settings.chain_id,
            wallet=self._wallet,
            gas_price_multiplier=settings.gas_price_multiplier,
            gas_limit=settings.gas_limit,
        )
        self.tracker = ConfirmationTracker(
            ledger=self.ledger,
            poll_interval=settings.receipt_poll_interval,
            max_wait=settings.receipt_timeout,
        )

        self._client: AnchorRpcClient | None = None
        self._endpoint: Endpoint | None = None
        self._initialized = False
        self._init_error: tuple[str, type[Exception]] | None = None
        self._tracking_tasks: set[asyncio.Task] = set()

        if self._wallet:
            logger.info(f"AnchoringService created with wallet: {mask_address(self._wallet.address)}")
        else:
            logger.warning("AnchoringService created without signing key - read-only mode")

    @classmethod
    def from_settings(
        cls,
        settings: ChainSettings,
        client_factory: ClientFactory | None = None,
        bus: NotificationBus | None = None,
    ) -> "AnchoringService":
        return cls(settings, client_factory=client_factory, bus=bus)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def endpoints(self) -> list[Endpoint]:
        """Primary endpoint followed by fallbacks, in preference order."""
        return [
            Endpoint(url=url, expected_chain_id=self.settings.chain_id)
            for url in self.settings.rpc_candidates
        ]

    async def initialize(self) -> bool:
        """
        Check configuration and resolve a live endpoint.

        Returns:
            True if the service can anchor events (never raises)
        """
        if not self.settings.enabled:
            return self._not_ready("Anchoring is disabled in config", ConfigurationError)

        if not self.settings.is_valid_configuration:
            return self._not_ready("Invalid anchoring configuration", ConfigurationError)

        if not self.settings.event_logging:
            return self._not_ready("Event logging disabled - read-only mode", ConfigurationError)

        if self._wallet is None:
            return self._not_ready("No private key configured - read-only mode", ConfigurationError)

        try:
            endpoint = await self.resolver.resolve(self.endpoints, self.settings.chain_id)
        except Exception as e:
            logger.exception(f"Endpoint resolution failed: {e}")
            endpoint = None

        if endpoint is None:
            return self._not_ready("No working RPC endpoint found", ConnectivityError)

        await self._attach(endpoint)
        self._initialized = True
        self._init_error = None
        logger.success(
            f"AnchoringService ready on {endpoint.label} "
            f"(chain {self.settings.chain_id}, wallet {mask_address(self._wallet.address)})"
        )
        return True

    def _not_ready(self, message: str, kind: type[Exception]) -> bool:
        logger.warning(message)
        self._initialized = False
        self._init_error = (message, kind)
        return False

    async def _attach(self, endpoint: Endpoint) -> None:
        if self._client is not None:
            await self._client.close()
        self._endpoint = endpoint
        self._client = self.client_factory(endpoint)
        self.submitter.attach(self._client)
        self.tracker.attach(self._client)

    @property
    def is_ready(self) -> bool:
        return self._initialized and self._client is not None and self._wallet is not None

    @property
    def read_only(self) -> bool:
        return not self.settings.can_write or self._wallet is None

    @property
    def wallet_address(self) -> str | None:
        return self._wallet.address if self._wallet else None

    @property
    def current_endpoint(self) -> Endpoint | None:
        return self._endpoint

    @property
    def pending_confirmations(self) -> int:
        return len(self._tracking_tasks)

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    async def log_civic_event(
        self,
        event_type: str,
        subject_ids: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AnchorResult:
        """
        Broadcast a civic event and track confirmation in the background.

        Args:
            event_type: Event name, e.g. "grievance_submitted"
            subject_ids: e.g. {"village_id": "V1", "grievance_id": "G42"}
            metadata: Free-form event data

        Returns:
            AnchorResult; on success the record is pending
        """
        if not self.is_ready:
            return self._not_ready_result()

        result = await self.submitter.log_civic_event(event_type, subject_ids, metadata)
        if result.success and result.record is not None:
            self._start_tracking(result.record)
        return result

    async def log_civic_event_and_wait(
        self,
        event_type: str,
        subject_ids: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        max_wait: float | None = None,
    ) -> AnchorResult:
        """Broadcast and await the terminal outcome (manual actions only)."""
        if not self.is_ready:
            return self._not_ready_result()

        result = await self.submitter.log_civic_event(event_type, subject_ids, metadata)
        if not result.success or result.record is None:
            return result
        return await self.tracker.track(result.record, max_wait=max_wait)

    async def send_test_event(self) -> AnchorResult:
        """Manual "send test transaction" action from the inspection surface."""
        stamp = int(utc_now().timestamp() * 1000)
        return await self.log_civic_event_and_wait(
            TEST_EVENT_TYPE,
            subject_ids={
                "village_id": f"TEST_VILLAGE_{stamp}",
                "grievance_id": f"TEST_{stamp}",
            },
            metadata={
                "test": True,
                "timestamp": utc_now().isoformat(),
                "purpose": "Testing blockchain integration",
            },
        )

    def _not_ready_result(self) -> AnchorResult:
        message, kind = self._init_error or (
            "Service not initialized or no wallet configured",
            ConfigurationError,
        )
        return AnchorResult.failure(message, kind)

    def _start_tracking(self, record: TransactionRecord) -> asyncio.Task:
        task = asyncio.create_task(
            self.tracker.track(record),
            name=f"track-{record.tx_hash[:10]}",
        )
        self._tracking_tasks.add(task)
        task.add_done_callback(self._tracking_tasks.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Wait until every background confirmation has finished."""
        while self._tracking_tasks:
            await asyncio.gather(*list(self._tracking_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def transaction_history(self) -> tuple[TransactionRecord, ...]:
        return self.ledger.all()

    def get_transactions_by_status(self, status: TransactionStatus) -> tuple[TransactionRecord, ...]:
        return self.ledger.by_status(status)

    def get_transaction_by_hash(self, tx_hash: str) -> TransactionRecord | None:
        return self.ledger.by_hash(tx_hash)

    def get_stats(self) -> StatisticsSnapshot:
        return compute_stats(self.ledger.all())

    def explorer_url(self, tx_hash: str) -> str | None:
        return explorer_link(self.settings.explorer_url, tx_hash)

    async def get_balance(self, address: str | None = None) -> int:
        """Balance in wei (0 when unavailable)."""
        address = address or self.wallet_address
        if self._client is None or not address:
            return 0
        try:
            return await self._client.get_balance(address)
        except Exception as e:
            logger.error(f"Failed to get balance for {mask_address(address)}: {e}")
            return 0

    async def get_transaction_count(self, address: str | None = None) -> int:
        """Confirmed transaction count (0 when unavailable)."""
        address = address or self.wallet_address
        if self._client is None or not address:
            return 0
        try:
            return await self._client.get_transaction_count(address)
        except Exception as e:
            logger.error(f"Failed to get transaction count for {mask_address(address)}: {e}")
            return 0

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on the anchoring service.

        Returns:
            Dict with readiness, endpoint, wallet and ledger statistics
        """
        latest_block = None
        if self._client is not None:
            try:
                latest_block = await self._client.get_block_number()
            except Exception as e:
                logger.error(f"Error checking latest block: {e}")

        return {
            "enabled": self.settings.enabled,
            "initialized": self._initialized,
            "ready": self.is_ready,
            "read_only": self.read_only,
            "endpoint": self._endpoint.url if self._endpoint else None,
            "latest_block": latest_block,
            "wallet": mask_address(self.wallet_address) if self.wallet_address else None,
            "pending_confirmations": self.pending_confirmations,
            "stats": self.get_stats().to_dict(),
            "init_error": self._init_error[0] if self._init_error else None,
        }

    async def close(self) -> None:
        """Cancel background tracking, drop listeners and release the client."""
        for task in list(self._tracking_tasks):
            task.cancel()
        if self._tracking_tasks:
            await asyncio.gather(*list(self._tracking_tasks), return_exceptions=True)

        self.bus.clear()
        if self._client is not None:
            await self._client.close()
        self._client = None
        self.submitter.attach(None)
        self.tracker.attach(None)
        self._initialized = False
        logger.debug("AnchoringService closed")
