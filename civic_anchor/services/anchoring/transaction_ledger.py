"""
Transaction Ledger.

Session-local, newest-first history of anchoring attempts. Records are
immutable; a status update swaps the entry at its existing position.
"""

import threading
from typing import Any

from loguru import logger

from civic_anchor.config.constants import RECENT_TRANSACTIONS_LIMIT
from civic_anchor.utils.security import mask_tx_hash

from .models import TransactionRecord, TransactionStatus
from .notification_bus import NotificationBus


class TransactionLedger:
    """
    Append-only in-memory store of TransactionRecord.

    Features:
    - Newest-first ordering
    - Lookups by status, hash or record id (linear scan)
    - Validated status transitions
    - Publication of every change to a NotificationBus
    """

    def __init__(self, bus: NotificationBus | None = None) -> None:
        """
        Initialize ledger.

        Args:
            bus: Bus receiving every appended/updated record (optional)
        """
        self.bus = bus
        self._records: list[TransactionRecord] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def append(self, record: TransactionRecord) -> TransactionRecord:
        """
        Insert a record at the front and notify listeners.

        Raises:
            TransactionStateError: If the record is not a valid starting state
            ValueError: If the record is already in the ledger
        """
        record.check_initial()
        with self._lock:
            if any(r.record_id == record.record_id for r in self._records):
                raise ValueError(f"Record {record.record_id} already in ledger")
            self._records.insert(0, record)

        logger.debug(
            f"Ledger append: {record.event_type} {record.status} "
            f"tx={mask_tx_hash(record.tx_hash)}"
        )
        self._publish(record)
        return record

    def update_status(
        self,
        key: str,
        status: TransactionStatus,
        **changes: Any,
    ) -> TransactionRecord | None:
        """
        Move a record to a new status in place.

        Args:
            key: Transaction hash or record id
            status: Target status
            **changes: Fields set with the status (block_number, gas_used, ...)

        Returns:
            Updated record, or None if no record matches key

        Raises:
            TransactionStateError: If the transition is not allowed
        """
        with self._lock:
            index = self._index_of(key)
            if index is None:
                logger.warning(f"Ledger update for unknown record {mask_tx_hash(key)}")
                return None
            updated = self._records[index].transition(status, **changes)
            self._records[index] = updated

        logger.debug(
            f"Ledger update: {updated.event_type} -> {updated.status} "
            f"tx={mask_tx_hash(updated.tx_hash)}"
        )
        self._publish(updated)
        return updated

    def all(self) -> tuple[TransactionRecord, ...]:
        """Read-only snapshot, newest first."""
        with self._lock:
            return tuple(self._records)

    def recent(self, limit: int = RECENT_TRANSACTIONS_LIMIT) -> tuple[TransactionRecord, ...]:
        with self._lock:
            return tuple(self._records[:limit])

    def by_status(self, status: TransactionStatus) -> tuple[TransactionRecord, ...]:
        status = TransactionStatus(status)
        with self._lock:
            return tuple(r for r in self._records if r.status is status)

    def by_hash(self, tx_hash: str) -> TransactionRecord | None:
        if not tx_hash:
            return None
        wanted = tx_hash.lower()
        with self._lock:
            return next((r for r in self._records if r.tx_hash.lower() == wanted), None)

    def by_id(self, record_id: str) -> TransactionRecord | None:
        with self._lock:
            return next((r for r in self._records if r.record_id == record_id), None)

    def _index_of(self, key: str) -> int | None:
        """Caller holds the lock."""
        if not key:
            return None
        wanted = key.lower()
        for index, record in enumerate(self._records):
            if record.record_id == key or (record.tx_hash and record.tx_hash.lower() == wanted):
                return index
        return None

    def _publish(self, record: TransactionRecord) -> None:
        if self.bus is None:
            return
        try:
            self.bus.publish(record)
        except Exception as e:
            logger.error(f"Notification publish failed for {record.record_id}: {e}")
