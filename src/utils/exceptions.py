"""
Custom Exception Classes for the Limit Order Hedge Toolkit

Provides a hierarchy of specific exceptions so the CLI can tell a bad
configuration from an RPC outage or an on-chain revert, and exit accordingly.

Exception Hierarchy:
├── LimitOrderToolError (Base)
│   ├── ConfigurationError
│   ├── AuthenticationError
│   ├── DataValidationError
│   ├── NetworkError
│   │   └── RPCConnectionError
│   ├── EncodingError
│   │   ├── ExtensionEncodingError
│   │   └── PredicateEncodingError
│   ├── OrderError
│   │   ├── InvalidOrderError
│   │   └── SigningError
│   ├── TransactionError
│   │   ├── ApprovalError
│   │   ├── TransactionRevertedError
│   │   └── FillError
│   ├── InsufficientBalanceError
│   ├── HedgeError
│   │   └── HedgeNotArmedError
│   └── FlowError
"""

from typing import Optional, Dict, Any, List


class LimitOrderToolError(Exception):
    """
    Base exception for all toolkit errors.
    Enables catching every toolkit failure with: except LimitOrderToolError
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize error with structured information.

        Args:
            message: Human-readable error message
            error_code: Error code for classification (e.g., 'TX_REVERTED')
            details: Additional context dict
            original_error: Original exception that caused this (for error chaining)
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        error_str = f"{self.__class__.__name__}: {self.message}"
        if self.error_code:
            error_str += f" (Code: {self.error_code})"
        if self.details:
            error_str += f" | Details: {self.details}"
        return error_str


# ============================================================================
# CONFIGURATION & CREDENTIALS
# ============================================================================

class ConfigurationError(LimitOrderToolError):
    """
    Raised when configuration is invalid or incomplete.
    Examples: hedge contract address not set, Secrets Manager lookup failed
    Action: Fix .env / environment and rerun
    """
    pass


class AuthenticationError(LimitOrderToolError):
    """
    Raised when the signing key is missing or unusable.
    Examples: PRIVATE_KEY unset, key not 32 bytes of hex
    """
    pass


class DataValidationError(LimitOrderToolError):
    """
    Raised when input data fails validation.
    Examples: malformed address, negative amount, too many decimals
    """
    pass


# ============================================================================
# NETWORK
# ============================================================================

class NetworkError(LimitOrderToolError):
    """Raised when network/RPC calls fail"""

    def __init__(self, message: str, retry_count: int = 0, **kwargs):
        self.retry_count = retry_count
        super().__init__(message, **kwargs)


class RPCConnectionError(NetworkError):
    """
    Raised when none of the configured RPC endpoints answers.
    Carries the per-endpoint failure reasons for diagnostics.
    """

    def __init__(
        self,
        message: str,
        endpoints: Optional[List[str]] = None,
        failures: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        self.endpoints = endpoints or []
        self.failures = failures or {}
        super().__init__(
            message,
            retry_count=len(self.endpoints),
            error_code="NO_RPC_AVAILABLE",
            details={'failures': self.failures} if self.failures else None,
            **kwargs
        )


# ============================================================================
# ENCODING
# ============================================================================

class EncodingError(LimitOrderToolError):
    """Base exception for protocol encoding failures"""
    pass


class ExtensionEncodingError(EncodingError):
    """
    Raised when an order extension or taker-traits args cannot be
    encoded or decoded (field too long, truncated input, bad offsets).
    """
    pass


class PredicateEncodingError(EncodingError):
    """Raised when a predicate call cannot be ABI-encoded"""
    pass


# ============================================================================
# ORDERS
# ============================================================================

class OrderError(LimitOrderToolError):
    """Base exception for order construction and signing errors"""
    pass


class InvalidOrderError(OrderError):
    """
    Raised when order parameters are invalid.
    Examples: zero amount, expiration beyond 40 bits, salt/extension mismatch
    """
    pass


class SigningError(OrderError):
    """Raised when EIP-712 signing or signature decoding fails"""
    pass


# ============================================================================
# TRANSACTIONS
# ============================================================================

class TransactionError(LimitOrderToolError):
    """Base exception for on-chain transaction failures"""

    def __init__(self, message: str, tx_hash: Optional[str] = None, **kwargs):
        self.tx_hash = tx_hash
        super().__init__(message, **kwargs)


class ApprovalError(TransactionError):
    """Raised when an ERC20 approve() fails or is not mined"""
    pass


class TransactionRevertedError(TransactionError):
    """
    Raised when a transaction is mined with status 0.
    The receipt is attached for post-mortem.
    """

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        receipt: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.receipt = receipt
        super().__init__(message, tx_hash=tx_hash, error_code="TX_REVERTED", **kwargs)


class FillError(TransactionError):
    """Raised when building or broadcasting a fill transaction fails"""
    pass


class InsufficientBalanceError(LimitOrderToolError):
    """
    Raised when the maker does not hold enough of the asset being sold.
    Action: Fund the wallet or reduce MAKING_AMOUNT
    """

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
        token: Optional[str] = None,
        **kwargs
    ):
        self.required = required
        self.available = available
        self.token = token
        super().__init__(message, error_code="INSUFFICIENT_BALANCE", **kwargs)


# ============================================================================
# HEDGE
# ============================================================================

class HedgeError(LimitOrderToolError):
    """Base exception for hedge arming failures"""
    pass


class HedgeNotArmedError(HedgeError):
    """
    Raised when isHedgeActiveFor(trader) still reads zero after arming.
    A fill would fail the order predicate, so the flow stops here.
    """

    def __init__(self, message: str, trader: Optional[str] = None, **kwargs):
        self.trader = trader
        super().__init__(message, error_code="HEDGE_NOT_ARMED", **kwargs)


# ============================================================================
# FLOWS
# ============================================================================

class FlowError(LimitOrderToolError):
    """Raised when an order flow fails for a reason not covered above"""

    def __init__(self, message: str, flow: Optional[str] = None, stage: Optional[str] = None, **kwargs):
        self.flow = flow
        self.stage = stage
        super().__init__(message, **kwargs)
