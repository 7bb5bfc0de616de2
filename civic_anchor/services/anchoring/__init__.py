"""
Anchoring services module.

Module structure:
- models.py - Endpoint, EventPayload, Wallet, TransactionRecord, results
- rpc_client.py / rpc_wrapper.py - JSON-RPC access with timeouts
- endpoint_resolver.py - First matching endpoint from an ordered list
- transaction_submitter.py - Encode, sign, broadcast
- confirmation_tracker.py - Receipt polling and terminal status
- transaction_ledger.py - Newest-first session history
- notification_bus.py - Listener fan-out with failure isolation
- statistics.py - Derived ledger statistics
- network_status.py / chain_router.py - Read-only network info and routing
- service.py - AnchoringService orchestrating all components
"""

from .chain_router import CivicActionType, recommend_chain
from .confirmation_tracker import ConfirmationTracker
from .endpoint_resolver import EndpointResolver
from .models import (
    AnchorResult,
    Endpoint,
    EventPayload,
    Receipt,
    StatisticsSnapshot,
    TransactionRecord,
    TransactionStatus,
    Wallet,
)
from .network_status import NetworkMonitor
from .notification_bus import NotificationBus, Subscription
from .rpc_client import AnchorRpcClient
from .service import AnchoringService
from .statistics import compute_stats
from .transaction_ledger import TransactionLedger
from .transaction_submitter import TransactionSubmitter


__all__ = [
    "AnchorResult",
    "AnchorRpcClient",
    "AnchoringService",
    "CivicActionType",
    "ConfirmationTracker",
    "Endpoint",
    "EndpointResolver",
    "EventPayload",
    "NetworkMonitor",
    "NotificationBus",
    "Receipt",
    "StatisticsSnapshot",
    "Subscription",
    "TransactionLedger",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionSubmitter",
    "Wallet",
    "compute_stats",
    "recommend_chain",
]
