"""
Statistics Aggregator.

Derives counts, success rate, average confirmation time and total gas
cost from a ledger snapshot.
"""

from collections import Counter
from collections.abc import Iterable

from .models import StatisticsSnapshot, TransactionRecord, TransactionStatus


def compute_stats(records: Iterable[TransactionRecord]) -> StatisticsSnapshot:
    """
    Compute a statistics snapshot.

    Args:
        records: Ledger records (any order)

    Returns:
        StatisticsSnapshot where:
        - success_rate is confirmed / total * 100, or 0.0 for an empty ledger
        - average_confirmation_time covers only records with duration > 0
        - total_gas_cost sums confirmed records only
    """
    records = list(records)
    total = len(records)
    counts = Counter(record.status for record in records)

    durations = [record.duration for record in records if record.duration > 0]
    average = sum(durations) / len(durations) if durations else 0.0

    total_gas_cost = sum(
        record.gas_cost
        for record in records
        if record.status is TransactionStatus.CONFIRMED
    )

    confirmed = counts[TransactionStatus.CONFIRMED]
    success_rate = confirmed / total * 100 if total else 0.0

    return StatisticsSnapshot(
        total=total,
        pending=counts[TransactionStatus.PENDING],
        confirmed=confirmed,
        failed=counts[TransactionStatus.FAILED],
        errored=counts[TransactionStatus.ERROR],
        success_rate=success_rate,
        average_confirmation_time=average,
        total_gas_cost=total_gas_cost,
    )
