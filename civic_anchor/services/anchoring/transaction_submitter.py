"""
Transaction Submitter.

Encodes a civic event, signs it into a zero-value self-transaction and
broadcasts it. Returns as soon as the node accepts the transaction into
its pending pool; confirmation is tracked separately.
"""

import asyncio
from decimal import ROUND_DOWN, Decimal
from typing import Any

from loguru import logger
from web3 import Web3

from civic_anchor.config.constants import DEFAULT_GAS_LIMIT, GAS_PRICE_MULTIPLIER
from civic_anchor.utils.datetime_utils import utc_now
from civic_anchor.utils.exceptions import ConfigurationError, ConnectivityError, SubmissionError
from civic_anchor.utils.security import mask_address, mask_tx_hash

from .models import AnchorResult, EventPayload, TransactionRecord, Wallet
from .rpc_client import AnchorRpcClient
from .transaction_ledger import TransactionLedger


class TransactionSubmitter:
    """
    Builds, signs and broadcasts anchoring transactions.

    Features:
    - Deterministic payload encoding
    - Gas price safety multiplier
    - Pending-view nonce, serialized per wallet with the broadcast
    - Every attempt recorded in the ledger (pending or error)
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        chain_id: int,
        wallet: Wallet | None = None,
        client: AnchorRpcClient | None = None,
        gas_price_multiplier: float = GAS_PRICE_MULTIPLIER,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        """
        Initialize submitter.

        Args:
            ledger: Ledger receiving every attempt
            chain_id: Chain ID signed into transactions (replay protection)
            wallet: Signing wallet (None means read-only)
            client: RPC client of the resolved endpoint (attach later if None)
            gas_price_multiplier: Factor applied to the reported gas price
            gas_limit: Gas limit for anchoring transactions
        """
        self.ledger = ledger
        self.chain_id = chain_id
        self.client = client
        self.gas_price_multiplier = Decimal(str(gas_price_multiplier))
        self.gas_limit = gas_limit
        self._wallet = wallet

        # Nonce lock: acquire nonce -> sign -> broadcast is one critical section
        self._nonce_lock = asyncio.Lock()

    @property
    def wallet_address(self) -> str | None:
        return self._wallet.address if self._wallet else None

    def attach(self, client: AnchorRpcClient | None) -> None:
        """Bind (or unbind) the client of the resolved endpoint."""
        self.client = client

    async def log_civic_event(
        self,
        event_type: str,
        subject_ids: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AnchorResult:
        """
        Anchor a civic event.

        Args:
            event_type: Event name, e.g. "grievance_submitted"
            subject_ids: Subject identifiers, e.g. {"village_id": ..., "grievance_id": ...}
            metadata: Free-form event data

        Returns:
            AnchorResult; success means broadcast accepted (record is pending)
        """
        if self._wallet is None:
            return AnchorResult.failure(
                "No signing key configured - read-only mode", ConfigurationError
            )
        if self.client is None:
            return AnchorResult.failure(
                "No RPC endpoint resolved - service unavailable", ConnectivityError
            )

        started_at = utc_now()
        payload: EventPayload | None = None

        try:
            payload = EventPayload.create(event_type, subject_ids, metadata)
            logger.info(f"Starting transaction: {event_type} {payload.subject_ids}")

            data = payload.encode()
            gas_price = await self._get_adjusted_gas_price()

            async with self._nonce_lock:
                nonce = await self.client.get_pending_nonce(self._wallet.address)
                logger.debug(f"Acquired nonce {nonce} for {mask_address(self._wallet.address)}")

                transaction = self._build_transaction(data, gas_price, nonce)
                raw_transaction = self._wallet.sign_transaction(transaction)
                tx_hash = await self.client.send_raw_transaction(raw_transaction)

        except Exception as e:
            logger.error(f"Transaction error ({event_type}): {type(e).__name__}: {e}")
            if payload is None:
                # Event itself was invalid; record what the caller sent
                payload = EventPayload(
                    event_type=event_type or "",
                    subject_ids={str(k): str(v) for k, v in (subject_ids or {}).items()},
                    metadata={},
                    created_at=started_at,
                )
            record = self.ledger.append(
                TransactionRecord.errored(payload, started_at, str(e) or type(e).__name__)
            )
            return AnchorResult.failure(
                record.error_message or "Submission failed",
                SubmissionError,
                record=record,
            )

        logger.info(
            f"Transaction sent! Hash: {mask_tx_hash(tx_hash)}\n"
            f"  Nonce: {nonce}\n"
            f"  Gas Price: {Web3.from_wei(gas_price, 'gwei')} Gwei"
        )

        record = self.ledger.append(
            TransactionRecord.pending(payload, tx_hash, started_at, gas_price)
        )
        return AnchorResult.ok(record)

    async def _get_adjusted_gas_price(self) -> int:
        """Network gas price times the safety multiplier, in wei."""
        gas_price_wei = await self.client.get_gas_price()
        adjusted = int(
            (Decimal(gas_price_wei) * self.gas_price_multiplier).to_integral_value(ROUND_DOWN)
        )
        logger.debug(f"Gas price: {gas_price_wei} wei -> {adjusted} wei")
        return adjusted

    def _build_transaction(self, data: str, gas_price: int, nonce: int) -> dict[str, Any]:
        """Zero-value transaction to our own address carrying the payload."""
        return {
            "to": self._wallet.address,
            "value": 0,
            "gas": self.gas_limit,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": self.chain_id,
            "data": data,
        }
