"""
Anchoring data models.

Endpoints, event payloads, the signing wallet, ledger records, receipts,
results and statistics snapshots.
"""

import copy
import json
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from eth_account import Account

from civic_anchor.utils.datetime_utils import utc_now
from civic_anchor.utils.exceptions import TransactionStateError, error_kind, is_transient
from civic_anchor.utils.security import mask_address


class TransactionStatus(StrEnum):
    """Lifecycle status of an anchoring attempt."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


# pending -> {confirmed, failed}; error is only ever a starting state
ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.CONFIRMED, TransactionStatus.FAILED}
    ),
}

INITIAL_STATUSES = frozenset({TransactionStatus.PENDING, TransactionStatus.ERROR})


def explorer_link(explorer_base: str, tx_hash: str) -> str | None:
    """Block explorer link for a transaction hash (None without a hash)."""
    if not tx_hash:
        return None
    return f"{explorer_base.rstrip('/')}/transaction/{tx_hash}"


@dataclass(frozen=True)
class Endpoint:
    """JSON-RPC endpoint of the scaling network."""

    url: str
    expected_chain_id: int
    name: str | None = None

    @property
    def label(self) -> str:
        return self.name or self.url


@dataclass(frozen=True)
class EventPayload:
    """Civic event carried as transaction data."""

    event_type: str
    subject_ids: dict[str, str]
    metadata: dict[str, Any]
    created_at: datetime

    @classmethod
    def create(
        cls,
        event_type: str,
        subject_ids: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "EventPayload":
        """Build a payload, copying caller-owned mappings."""
        if not event_type:
            raise ValueError("event_type must not be empty")
        return cls(
            event_type=event_type,
            subject_ids={str(k): str(v) for k, v in (subject_ids or {}).items()},
            metadata=copy.deepcopy(metadata or {}),
            created_at=utc_now(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "subjects": dict(self.subject_ids),
            "timestamp": self.created_at.isoformat(),
            "metadata": copy.deepcopy(self.metadata),
        }

    def to_json(self) -> str:
        """Deterministic compact JSON (sorted keys, no whitespace)."""
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )

    def encode(self) -> str:
        """0x-prefixed hex of the UTF-8 JSON encoding."""
        return "0x" + self.to_json().encode("utf-8").hex()

    @staticmethod
    def decode(data: str | bytes) -> dict[str, Any]:
        """Decode transaction data produced by encode()."""
        if isinstance(data, str):
            data = bytes.fromhex(data.removeprefix("0x"))
        return json.loads(data.decode("utf-8"))


class Wallet:
    """
    Signing wallet.

    Owned by the submitter only. The private key never leaves this object
    and is not part of repr() or any record.
    """

    def __init__(self, private_key: str) -> None:
        # SECURITY: Derive address, then drop the Account object
        account = Account.from_key(private_key)
        try:
            self.address: str = account.address
        finally:
            del account
        self._private_key = private_key

    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        """
        Sign a transaction dict locally.

        Args:
            transaction: Transaction fields (to, value, gas, gasPrice, nonce, chainId, data)

        Returns:
            Raw signed transaction bytes
        """
        # SECURITY: Create Account only for signing, then immediately clear it
        account = None
        try:
            account = Account.from_key(self._private_key)
            signed = account.sign_transaction(transaction)
        finally:
            if account:
                del account
        return bytes(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"Wallet(address={mask_address(self.address)})"


@dataclass(frozen=True)
class Receipt:
    """Normalized transaction receipt."""

    tx_hash: str
    block_number: int
    gas_used: int
    success: bool
    effective_gas_price: int | None = None

    @classmethod
    def from_rpc(cls, tx_hash: str, receipt: Any) -> "Receipt":
        """Build from a web3 receipt mapping."""
        effective = receipt.get("effectiveGasPrice") if hasattr(receipt, "get") else None
        return cls(
            tx_hash=tx_hash,
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            success=receipt["status"] == 1,
            effective_gas_price=int(effective) if effective is not None else None,
        )


@dataclass(frozen=True)
class TransactionRecord:
    """Ledger entry for one anchoring attempt."""

    payload: EventPayload
    submitted_at: datetime
    status: TransactionStatus
    tx_hash: str = ""
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    confirmed_at: datetime | None = None
    block_number: int | None = None
    gas_used: int | None = None
    gas_price: int = 0
    gas_cost: int = 0
    duration: float = 0.0
    error_message: str | None = None

    @classmethod
    def pending(
        cls,
        payload: EventPayload,
        tx_hash: str,
        submitted_at: datetime,
        gas_price: int,
    ) -> "TransactionRecord":
        return cls(
            payload=payload,
            submitted_at=submitted_at,
            status=TransactionStatus.PENDING,
            tx_hash=tx_hash,
            gas_price=gas_price,
        )

    @classmethod
    def errored(
        cls,
        payload: EventPayload,
        submitted_at: datetime,
        error_message: str,
    ) -> "TransactionRecord":
        """Pre-broadcast failure: no hash, zero duration."""
        return cls(
            payload=payload,
            submitted_at=submitted_at,
            status=TransactionStatus.ERROR,
            error_message=error_message,
        )

    @property
    def event_type(self) -> str:
        return self.payload.event_type

    def check_initial(self) -> None:
        """
        Validate a record about to enter the ledger.

        Raises:
            TransactionStateError: If the record cannot be a starting state
        """
        if self.status not in INITIAL_STATUSES:
            raise TransactionStateError(
                f"Records must start as pending or error, not {self.status}"
            )
        if self.block_number is not None or self.gas_used is not None:
            raise TransactionStateError(
                "block_number/gas_used are only allowed on confirmed records"
            )
        if self.status is TransactionStatus.PENDING and not self.tx_hash:
            raise TransactionStateError("Pending records require a transaction hash")

    def transition(self, status: TransactionStatus, **changes: Any) -> "TransactionRecord":
        """
        Return a copy moved to a new status.

        Args:
            status: Target status
            **changes: Fields to set alongside the status

        Returns:
            Updated record

        Raises:
            TransactionStateError: If the transition or field combination is illegal
        """
        status = TransactionStatus(status)
        if status not in ALLOWED_TRANSITIONS.get(self.status, frozenset()):
            raise TransactionStateError(
                f"Illegal transition {self.status} -> {status} for record {self.record_id}"
            )

        block_number = changes.get("block_number")
        gas_used = changes.get("gas_used")
        if status is TransactionStatus.CONFIRMED:
            if block_number is None or gas_used is None:
                raise TransactionStateError(
                    "Confirmed records require block_number and gas_used"
                )
        elif block_number is not None or gas_used is not None:
            raise TransactionStateError(
                f"block_number/gas_used are only allowed on confirmed records, not {status}"
            )

        forbidden = {"record_id", "payload", "submitted_at", "status"} & changes.keys()
        if forbidden:
            raise TransactionStateError(f"Immutable fields cannot change: {sorted(forbidden)}")

        return replace(self, status=status, **changes)

    def explorer_url(self, explorer_base: str) -> str | None:
        """Human inspection link, None until a hash exists."""
        return explorer_link(explorer_base, self.tx_hash)

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "tx_hash": self.tx_hash,
            "event": self.payload.to_dict(),
            "submitted_at": self.submitted_at.isoformat(),
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "status": self.status.value,
            "block_number": self.block_number,
            "gas_used": self.gas_used,
            "gas_price": self.gas_price,
            "gas_cost": str(self.gas_cost),
            "duration": self.duration,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class AnchorResult:
    """Outcome returned to callers; success=False is never fatal to them."""

    success: bool
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    record: TransactionRecord | None = None
    error_message: str | None = None
    error_kind: str | None = None

    @classmethod
    def ok(cls, record: TransactionRecord) -> "AnchorResult":
        return cls(
            success=True,
            tx_hash=record.tx_hash,
            block_number=record.block_number,
            gas_used=record.gas_used,
            record=record,
        )

    @classmethod
    def failure(
        cls,
        message: str,
        kind: str | type[BaseException] | BaseException,
        record: TransactionRecord | None = None,
    ) -> "AnchorResult":
        return cls(
            success=False,
            tx_hash=(record.tx_hash or None) if record else None,
            record=record,
            error_message=message,
            error_kind=kind if isinstance(kind, str) else error_kind(kind),
        )

    @property
    def is_pending(self) -> bool:
        return self.record is not None and self.record.status is TransactionStatus.PENDING

    @property
    def retryable(self) -> bool:
        """True when calling again later (as a new record) may succeed."""
        return not self.success and is_transient(self.error_kind)


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Derived ledger statistics; never persisted."""

    total: int = 0
    pending: int = 0
    confirmed: int = 0
    failed: int = 0
    errored: int = 0
    success_rate: float = 0.0
    average_confirmation_time: float = 0.0
    total_gas_cost: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["total_gas_cost"] = str(self.total_gas_cost)
        return data
