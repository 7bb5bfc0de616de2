"""
Unit tests for TransactionSubmitter.

Tests cover:
- Successful broadcast (pending record, transaction fields)
- Gas price multiplier
- Read-only and unresolved preconditions
- Pre-broadcast failures recorded as error
- Nonce serialization across concurrent submissions
"""

import asyncio

import pytest
from eth_account import Account

from civic_anchor.services.anchoring.models import (
    EventPayload,
    TransactionStatus,
    Wallet,
)
from civic_anchor.services.anchoring.transaction_ledger import TransactionLedger
from civic_anchor.services.anchoring.transaction_submitter import TransactionSubmitter
from tests.factories import TEST_CHAIN_ID, TEST_PRIVATE_KEY, TEST_TX_HASH, build_rpc_client


@pytest.fixture
def ledger():
    return TransactionLedger()


@pytest.fixture
def wallet():
    return Wallet(TEST_PRIVATE_KEY)


@pytest.fixture
def submitter(ledger, wallet):
    return TransactionSubmitter(
        ledger=ledger,
        chain_id=TEST_CHAIN_ID,
        wallet=wallet,
        client=build_rpc_client(),
    )


class TestSubmitSuccess:
    """Test accepted broadcasts."""

    @pytest.mark.asyncio
    async def test_returns_pending_record(self, submitter, ledger):
        """Test success result with pending record in ledger."""
        result = await submitter.log_civic_event(
            "grievance_submitted",
            {"village_id": "V1", "grievance_id": "G42"},
            {"category": "water"},
        )

        assert result.success is True
        assert result.tx_hash == TEST_TX_HASH
        assert result.block_number is None
        assert result.record.status is TransactionStatus.PENDING
        assert ledger.all() == (result.record,)

    @pytest.mark.asyncio
    async def test_gas_price_multiplier(self, submitter):
        """Test reported gas price 100 becomes 120."""
        result = await submitter.log_civic_event("grievance_submitted")

        assert result.record.gas_price == 120

    @pytest.mark.asyncio
    async def test_gas_price_rounds_down(self, ledger, wallet):
        """Test fractional wei truncated."""
        submitter = TransactionSubmitter(
            ledger=ledger,
            chain_id=TEST_CHAIN_ID,
            wallet=wallet,
            client=build_rpc_client(gas_price=7),
        )
        result = await submitter.log_civic_event("e")

        assert result.record.gas_price == 8

    @pytest.mark.asyncio
    async def test_signed_transaction_fields(self, submitter, wallet):
        """Test zero-value self-transaction with payload data and pending nonce."""
        result = await submitter.log_civic_event("grievance_submitted", {"village_id": "V1"})

        raw = submitter.client.send_raw_transaction.await_args.args[0]
        sender = Account.recover_transaction(raw)
        assert sender == wallet.address

        submitter.client.get_pending_nonce.assert_awaited_once_with(wallet.address)
        built = submitter._build_transaction(
            result.record.payload.encode(), result.record.gas_price, 5
        )
        assert built["to"] == wallet.address
        assert built["value"] == 0
        assert built["gas"] == 100_000
        assert built["gasPrice"] == 120
        assert built["nonce"] == 5
        assert built["chainId"] == TEST_CHAIN_ID
        assert EventPayload.decode(built["data"])["type"] == "grievance_submitted"


class TestSubmitPreconditions:
    """Test read-only and unresolved states."""

    @pytest.mark.asyncio
    async def test_no_wallet(self, ledger):
        """Test missing key fails without touching the ledger."""
        client = build_rpc_client()
        submitter = TransactionSubmitter(ledger=ledger, chain_id=TEST_CHAIN_ID, client=client)

        result = await submitter.log_civic_event("e")

        assert result.success is False
        assert result.error_kind == "ConfigurationError"
        assert len(ledger) == 0
        client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_client(self, ledger, wallet):
        """Test unresolved endpoint fails without touching the ledger."""
        submitter = TransactionSubmitter(ledger=ledger, chain_id=TEST_CHAIN_ID, wallet=wallet)

        result = await submitter.log_civic_event("e")

        assert result.success is False
        assert result.error_kind == "ConnectivityError"
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_invalid_event_type(self, submitter, ledger):
        """Test empty event type still leaves an error record in history."""
        result = await submitter.log_civic_event("", {"village_id": "V1"})
        await submitter.log_civic_event("grievance_submitted")

        assert result.success is False
        assert result.error_kind == "SubmissionError"
        assert len(ledger) == 2
        record = ledger.by_id(result.record.record_id)
        assert record.status is TransactionStatus.ERROR
        assert record.tx_hash == ""
        assert record.payload.subject_ids == {"village_id": "V1"}
        submitter.client.get_gas_price.assert_awaited_once()


class TestSubmitFailures:
    """Test failures before a hash is obtained."""

    @pytest.mark.asyncio
    async def test_nonce_failure_recorded_as_error(self, submitter, ledger):
        """Test nonce query failure leaves an error record with no hash."""
        submitter.client.get_pending_nonce.side_effect = ConnectionError("node down")

        result = await submitter.log_civic_event("grievance_submitted")

        assert result.success is False
        assert result.error_kind == "SubmissionError"
        assert result.tx_hash is None
        record = ledger.all()[0]
        assert record.status is TransactionStatus.ERROR
        assert record.tx_hash == ""
        assert record.duration == 0
        assert "node down" in record.error_message
        submitter.client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broadcast_rejected(self, submitter, ledger):
        """Test node rejection recorded as error."""
        submitter.client.send_raw_transaction.side_effect = ValueError("insufficient funds")

        result = await submitter.log_civic_event("grievance_submitted")

        assert result.success is False
        assert ledger.all()[0].status is TransactionStatus.ERROR
        assert ledger.all()[0].error_message == "insufficient funds"

    @pytest.mark.asyncio
    async def test_gas_price_failure(self, submitter, ledger):
        """Test gas price query failure recorded as error."""
        submitter.client.get_gas_price.side_effect = TimeoutError()

        result = await submitter.log_civic_event("grievance_submitted")

        assert result.success is False
        assert ledger.all()[0].error_message == "TimeoutError"


class TestNonceSerialization:
    """Test concurrent submissions share the nonce critical section."""

    @pytest.mark.asyncio
    async def test_concurrent_submissions_do_not_overlap(self, submitter, ledger):
        """Test nonce -> broadcast sections never interleave."""
        active = 0
        max_active = 0
        nonces = iter(range(10))

        async def get_nonce(address):
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            return next(nonces)

        async def send(raw):
            nonlocal active
            await asyncio.sleep(0.01)
            active -= 1
            return "0x" + raw[:32].hex()

        submitter.client.get_pending_nonce.side_effect = get_nonce
        submitter.client.send_raw_transaction.side_effect = send

        results = await asyncio.gather(
            *(submitter.log_civic_event(f"event_{i}") for i in range(3))
        )

        assert all(r.success for r in results)
        assert max_active == 1
        assert len(ledger) == 3
