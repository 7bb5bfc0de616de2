"""
Application constants.

Centralized constants for the anchoring pipeline.
"""

# ========================================================================
# NETWORK DEFAULTS
# ========================================================================

# Shardeum EVM testnet (Mezame)
DEFAULT_RPC_URL = "https://api-mezame.shardeum.org"
DEFAULT_FALLBACK_RPC_URLS = "https://api-mezame.shardeum.org,https://api.shardeum.org"
DEFAULT_CHAIN_ID = 8119
DEFAULT_NETWORK_NAME = "Shardeum EVM Testnet"
DEFAULT_CURRENCY_SYMBOL = "SHM"
DEFAULT_EXPLORER_URL = "https://explorer-mezame.shardeum.org"

# Value shipped in the sample .env; treated as "no key"
PLACEHOLDER_PRIVATE_KEY = "your-private-key-here-without-0x-prefix"

# ========================================================================
# RPC CONSTANTS
# ========================================================================

# Timeouts (in seconds)
RPC_TIMEOUT = 30.0  # Standard RPC calls (gas price, nonce, broadcast, receipt)
CHAIN_ID_TIMEOUT = 10.0  # Endpoint identity check during resolution

# ========================================================================
# TRANSACTION CONSTANTS
# ========================================================================

GAS_PRICE_MULTIPLIER = 1.2  # Safety margin over the reported gas price
DEFAULT_GAS_LIMIT = 100_000  # Self-transaction with calldata payload

# Confirmation polling (in seconds)
RECEIPT_POLL_INTERVAL = 2.0
RECEIPT_MAX_WAIT = 60.0

# ========================================================================
# INSPECTION CONSTANTS
# ========================================================================

RECENT_TRANSACTIONS_LIMIT = 20
CONNECTION_CACHE_SECONDS = 30.0
TEST_EVENT_TYPE = "test_event"
