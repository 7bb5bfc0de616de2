"""
Confirmation Tracker.

Polls for the receipt of an already-broadcast transaction at a fixed
interval and drives its ledger record to a terminal status. Never
re-broadcasts.
"""

import asyncio

from loguru import logger

from civic_anchor.config.constants import RECEIPT_MAX_WAIT, RECEIPT_POLL_INTERVAL
from civic_anchor.utils.datetime_utils import elapsed_seconds, utc_now
from civic_anchor.utils.exceptions import (
    ConfirmationTimeoutError,
    TransactionRevertedError,
    error_kind,
)
from civic_anchor.utils.security import mask_tx_hash

from .models import AnchorResult, Receipt, TransactionRecord, TransactionStatus
from .rpc_client import AnchorRpcClient
from .transaction_ledger import TransactionLedger


class ConfirmationTracker:
    """
    Waits for receipts and records outcomes.

    Features:
    - Fixed-interval bounded polling (no backoff: blocks arrive at a steady cadence)
    - Revert and timeout both end in "failed" (error kind tells them apart)
    - Gas cost from the receipt's effective gas price when reported
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        client: AnchorRpcClient | None = None,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        max_wait: float = RECEIPT_MAX_WAIT,
    ) -> None:
        """
        Initialize tracker.

        Args:
            ledger: Ledger holding the records to finalize
            client: RPC client of the resolved endpoint (attach later if None)
            poll_interval: Seconds between receipt queries
            max_wait: Default confirmation window in seconds
        """
        self.ledger = ledger
        self.client = client
        self.poll_interval = poll_interval
        self.max_wait = max_wait

    def attach(self, client: AnchorRpcClient | None) -> None:
        self.client = client

    async def wait_for_receipt(
        self,
        tx_hash: str,
        max_wait: float | None = None,
    ) -> Receipt | None:
        """
        Poll for a receipt until found or max_wait elapses.

        Args:
            tx_hash: Broadcast transaction hash
            max_wait: Window in seconds (default: tracker's max_wait)

        Returns:
            Receipt, or None on timeout
        """
        if self.client is None:
            raise RuntimeError("ConfirmationTracker has no RPC client attached")

        max_wait = self.max_wait if max_wait is None else max_wait
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + max_wait
        polls = 0

        while True:
            polls += 1
            try:
                # A slow query never stretches the window past the deadline
                receipt = await asyncio.wait_for(
                    self.client.get_transaction_receipt(tx_hash),
                    timeout=max(deadline - loop.time(), 0),
                )
            except asyncio.CancelledError:
                raise
            except TimeoutError:
                logger.debug(f"Receipt poll {polls} for {mask_tx_hash(tx_hash)} hit the deadline")
                receipt = None
            except Exception as e:
                # Not yet known to this node or transient RPC error
                logger.debug(f"Receipt poll {polls} for {mask_tx_hash(tx_hash)} failed: {e}")
                receipt = None

            if receipt is not None:
                return receipt

            remaining = deadline - loop.time()
            if remaining <= 0:
                return None

            await asyncio.sleep(min(self.poll_interval, remaining))
            logger.debug(
                f"Still waiting for {mask_tx_hash(tx_hash)}... "
                f"({loop.time() - started:.1f}s)"
            )

    async def track(
        self,
        record: TransactionRecord,
        max_wait: float | None = None,
    ) -> AnchorResult:
        """
        Drive a pending record to confirmed or failed.

        Args:
            record: Pending record with a transaction hash
            max_wait: Confirmation window override

        Returns:
            AnchorResult for the final record (never raises)
        """
        if record.status is not TransactionStatus.PENDING or not record.tx_hash:
            return AnchorResult.failure(
                f"Record {record.record_id} is not a pending broadcast ({record.status})",
                "TransactionStateError",
                record=record,
            )

        tx_hash = record.tx_hash
        logger.info(f"Waiting for confirmation of {mask_tx_hash(tx_hash)}...")

        try:
            receipt = await self.wait_for_receipt(tx_hash, max_wait=max_wait)
            now = utc_now()

            if receipt is None:
                logger.warning(f"Transaction {mask_tx_hash(tx_hash)} confirmation timeout")
                return self._fail(
                    record,
                    ConfirmationTimeoutError("Timed out waiting for receipt"),
                    duration=elapsed_seconds(record.submitted_at, now),
                )

            if not receipt.success:
                logger.error(
                    f"Transaction {mask_tx_hash(tx_hash)} reverted in block {receipt.block_number}"
                )
                return self._fail(
                    record,
                    TransactionRevertedError("Transaction reverted"),
                    duration=elapsed_seconds(record.submitted_at, now),
                )

            gas_price = receipt.effective_gas_price or record.gas_price
            updated = self.ledger.update_status(
                tx_hash,
                TransactionStatus.CONFIRMED,
                block_number=receipt.block_number,
                gas_used=receipt.gas_used,
                gas_price=gas_price,
                gas_cost=receipt.gas_used * gas_price,
                confirmed_at=now,
                duration=elapsed_seconds(record.submitted_at, now),
            )
            logger.success(
                f"Transaction confirmed in block {receipt.block_number}\n"
                f"  TX: {mask_tx_hash(tx_hash)}\n"
                f"  Gas used: {receipt.gas_used}"
            )
            return AnchorResult.ok(updated or record)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error tracking {mask_tx_hash(tx_hash)}: {e}")
            return AnchorResult.failure(str(e), error_kind(e), record=record)

    def _fail(
        self,
        record: TransactionRecord,
        error: Exception,
        duration: float,
    ) -> AnchorResult:
        updated = self.ledger.update_status(
            record.tx_hash,
            TransactionStatus.FAILED,
            error_message=str(error),
            duration=duration,
        )
        return AnchorResult.failure(str(error), error, record=updated or record)
