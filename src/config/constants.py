"""
Configuration Constants for the Limit Order Hedge Toolkit

Centralizes chain, contract, protocol and operational constants used by the
order flows. Values that operators tune per run (amounts, thresholds, RPC
endpoints, keys) live in config.settings and can be overridden through the
environment; everything here is fixed by the target network or protocol.

Key Principles:
- Single source of truth for addresses and protocol constants
- All constants are Final (immutable)
- Per-run overrides belong in config.settings, not here
"""

from typing import Final, List


# ============================================================================
# 1. NETWORK CONFIGURATION (Base mainnet)
# ============================================================================

BASE_CHAIN_ID: Final[int] = 8453

# Public Base RPC endpoints, tried in order until one answers eth_blockNumber.
# BASE_RPC_URL (see settings) is always tried first when set.
BASE_RPC_URLS: Final[List[str]] = [
    "https://mainnet.base.org",
    "https://base-mainnet.public.blastapi.io",
    "https://1rpc.io/base",
    "https://base.blockpi.network/v1/rpc/public",
]

# Timeout for a single JSON-RPC request (seconds)
RPC_TIMEOUT_SEC: Final[int] = 30


# ============================================================================
# 2. CONTRACT ADDRESSES (Base mainnet)
# ============================================================================

# 1inch Aggregation Router v6 (hosts Limit Order Protocol v4).
# Same address on every chain except zkSync.
LIMIT_ORDER_PROTOCOL_ADDRESS: Final[str] = "0x111111125421cA6dc452d289314280a0f8842A65"

# Tokens
DAI_ADDRESS: Final[str] = "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb"
USDC_ADDRESS: Final[str] = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

# Volatility gate: checker contract queried by the predicate, and the
# dynamic-fee hook whose volatility it reports.
VOLATILITY_CHECKER_ADDRESS: Final[str] = "0x46d38CCB6B28CD7ed5e029DD835821260BC70914"
DYNAMIC_FEE_HOOK_ADDRESS: Final[str] = "0xDD91b0AE5cF2b63EC0809F90BC37F710e90a0080"

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"


# ============================================================================
# 3. LIMIT ORDER PROTOCOL (v4) EIP-712 DOMAIN
# ============================================================================

LOP_DOMAIN_NAME: Final[str] = "1inch Aggregation Router"
LOP_DOMAIN_VERSION: Final[str] = "6"


# ============================================================================
# 4. ORDER DEFAULTS
# ============================================================================

# Threshold passed to checkVolatility(hook, threshold); uint24 (5000 = 0.5% fee)
VOLATILITY_THRESHOLD: Final[int] = 5000

# Default order size (human units): sell 0.1 maker token for 0.1 taker token
DEFAULT_MAKING_AMOUNT: Final[str] = "0.1"
DEFAULT_TAKING_AMOUNT: Final[str] = "0.1"

MAX_UINT256: Final[int] = 2**256 - 1
MAX_UINT24: Final[int] = 2**24 - 1
MAX_UINT40: Final[int] = 2**40 - 1


# ============================================================================
# 5. TRANSACTION PARAMETERS
# ============================================================================

# Gas limit for fills with extensions when estimation fails
DEFAULT_FILL_GAS_LIMIT: Final[int] = 500_000

# Gas limit for ERC20 approve()
DEFAULT_APPROVE_GAS_LIMIT: Final[int] = 100_000

# Multiplier applied on top of eth_estimateGas
GAS_ESTIMATE_BUFFER: Final[float] = 1.2

# How long to wait for a mined receipt (seconds)
TX_RECEIPT_TIMEOUT_SEC: Final[int] = 120

# Warn when native balance (ETH on Base) drops below this
LOW_NATIVE_BALANCE_ETH: Final[float] = 0.0005


# ============================================================================
# 6. RETRY POLICY
# ============================================================================

MAX_RETRIES: Final[int] = 3

# Exponential backoff base delay (seconds)
RETRY_BASE_DELAY: Final[float] = 1.0

MAX_BACKOFF_DELAY: Final[float] = 30.0


# ============================================================================
# 7. LOGGING CONFIGURATION
# ============================================================================

# Logging level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'
LOG_LEVEL: Final[str] = 'INFO'

LOG_FILE_PATH: Final[str] = 'logs/limit_order_hedge.log'

# Rotate after 10 MB, keep 5 backups
MAX_LOG_FILE_SIZE: Final[int] = 10 * 1024 * 1024
LOG_BACKUP_COUNT: Final[int] = 5

# JSON lines in the log file, plain text on the console
STRUCTURED_LOGGING: Final[bool] = True
