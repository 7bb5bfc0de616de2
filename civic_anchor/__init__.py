"""
Civic event anchoring on an EVM scaling network.

Signs civic events into zero-value self-transactions, broadcasts them over
JSON-RPC and tracks them in a session-local ledger.
"""

__version__ = "0.1.0"
