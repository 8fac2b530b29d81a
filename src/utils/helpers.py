"""
Validators and Helper Utilities for the Limit Order Hedge Toolkit

Provides:
- Address validation and checksumming
- Hex/bytes conversion
- Token unit conversion (human amount <-> raw integer)
- ABI function-call encoding
- Async retry with exponential backoff
"""

import re
import asyncio
from decimal import Decimal, InvalidOperation
from functools import wraps
from typing import Any, Sequence, Union

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from config.constants import MAX_BACKOFF_DELAY
from utils.logger import get_logger
from utils.exceptions import DataValidationError


logger = get_logger(__name__)

_ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')
_HEX_RE = re.compile(r'^(0x)?[0-9a-fA-F]*$')


# ============================================================================
# 1. ADDRESS VALIDATION
# ============================================================================

def validate_ethereum_address(address: str) -> bool:
    """
    Validate address format (0x followed by 40 hex characters).

    Returns:
        True if valid

    Raises:
        DataValidationError: If address is malformed
    """
    if not isinstance(address, str):
        raise DataValidationError(
            f"Address must be string, got {type(address).__name__}",
            details={'address': str(address)}
        )

    if not _ADDRESS_RE.match(address):
        raise DataValidationError(
            "Invalid Ethereum address format",
            error_code='INVALID_ADDRESS_FORMAT',
            details={'address': address, 'expected_format': '0x + 40 hex chars'}
        )

    return True


def to_checksum(address: str) -> str:
    """Validate and return the EIP-55 checksum form of an address"""
    validate_ethereum_address(address)
    return to_checksum_address(address)


# ============================================================================
# 2. HEX / BYTES
# ============================================================================

def trim_0x(hex_string: str) -> str:
    if hex_string[0:2] in ('0x', '0X'):
        return hex_string[2:]
    return hex_string


def hex_to_bytes(value: Union[str, bytes, bytearray]) -> bytes:
    """
    Convert a hex string ('0x' prefix optional) to bytes.
    Bytes input is returned unchanged.
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str) or not _HEX_RE.match(value):
        raise DataValidationError(f"Not a hex string: {value!r}")
    body = trim_0x(value)
    if len(body) % 2:
        raise DataValidationError(
            f"Hex string has odd length: {value!r}",
            error_code='ODD_HEX_LENGTH'
        )
    return bytes.fromhex(body)


def bytes_to_hex(value: Union[bytes, bytearray]) -> str:
    """Bytes to 0x-prefixed lowercase hex ('0x' for empty input)"""
    return '0x' + bytes(value).hex()


# ============================================================================
# 3. TOKEN UNITS
# ============================================================================

def parse_units(amount: Union[str, int, Decimal], decimals: int) -> int:
    """
    Convert a human-readable token amount to its raw integer value.

    Args:
        amount: Amount in whole tokens (e.g. "0.1")
        decimals: Token decimals (e.g. 6 for USDC, 18 for DAI)

    Raises:
        DataValidationError: If amount is negative, not a number, or has more
            fractional digits than the token supports
    """
    if isinstance(amount, float):
        # floats cannot represent most decimal amounts exactly
        amount = repr(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise DataValidationError(f"Invalid token amount: {amount!r}")

    if not value.is_finite() or value < 0:
        raise DataValidationError(f"Token amount must be a non-negative number, got {amount}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise DataValidationError(
            f"Amount {amount} has more than {decimals} decimal places",
            error_code='TOO_MANY_DECIMALS'
        )
    return int(scaled)


def format_units(raw: int, decimals: int) -> Decimal:
    """Convert a raw integer token amount to a human-readable Decimal"""
    return Decimal(int(raw)).scaleb(-decimals)


# ============================================================================
# 4. ABI ENCODING
# ============================================================================

def encode_function_call(signature: str, types: Sequence[str], args: Sequence[Any]) -> bytes:
    """
    Build calldata for a contract call: 4-byte selector + ABI-encoded args.

    Example:
        encode_function_call("checkVolatility(address,uint24)",
                             ["address", "uint24"], [hook, 5000])
    """
    return function_signature_to_4byte_selector(signature) + encode(list(types), list(args))


# ============================================================================
# 5. RETRY
# ============================================================================

def async_retry_with_backoff(max_retries: int = 3, base_delay: float = 1.0):
    """
    Decorator for async functions with exponential backoff retry logic.

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay between retries (seconds)
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            delay = base_delay
            last_error = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    last_error = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Attempt {attempt + 1} of {func.__name__} failed, retrying in {delay}s",
                            extra={
                                'function': func.__name__,
                                'attempt': attempt + 1,
                                'max_retries': max_retries,
                                'error': str(e)
                            }
                        )
                        await asyncio.sleep(delay)
                        delay = min(delay * 2, MAX_BACKOFF_DELAY)

            logger.error(
                f"Function {func.__name__} failed after {max_retries} attempts",
                extra={'function': func.__name__, 'attempts': max_retries}
            )
            raise last_error

        return wrapper
    return decorator
