"""
Order Predicates (Limit Order Protocol v4)

A predicate is calldata that the protocol executes against *itself* with a
staticcall at fill time; the fill proceeds only if the call succeeds and
returns 1. The protocol's PredicateHelper exposes the building blocks:

    arbitraryStaticCall(address target, bytes data) -> uint256
    lt(uint256 value, bytes data)   result <  value
    gt(uint256 value, bytes data)   result >  value
    eq(uint256 value, bytes data)   result == value
    not(bytes data)
    and(uint256 offsets, bytes data)
    or(uint256 offsets, bytes data)

`data` in lt/gt/eq/not is itself a predicate-helper call (usually
arbitraryStaticCall), so external view functions are reached through it.
"""

from typing import Union

from eth_abi.exceptions import EncodingError as AbiEncodingError

from config.constants import MAX_UINT24
from utils.exceptions import PredicateEncodingError
from utils.helpers import encode_function_call, hex_to_bytes, to_checksum


UINT32_MAX = 2**32 - 1

BytesLike = Union[str, bytes]


def _encode(signature: str, types, args) -> bytes:
    try:
        return encode_function_call(signature, types, args)
    except (AbiEncodingError, TypeError, OverflowError) as e:
        raise PredicateEncodingError(
            f"Cannot encode {signature}: {e}",
            original_error=e
        )


# ============================================================================
# PredicateHelper calls
# ============================================================================

def arbitrary_static_call(target: str, calldata: BytesLike) -> bytes:
    return _encode(
        "arbitraryStaticCall(address,bytes)",
        ["address", "bytes"],
        [to_checksum(target), hex_to_bytes(calldata)]
    )


def lt(value: int, data: BytesLike) -> bytes:
    return _encode("lt(uint256,bytes)", ["uint256", "bytes"], [value, hex_to_bytes(data)])


def gt(value: int, data: BytesLike) -> bytes:
    return _encode("gt(uint256,bytes)", ["uint256", "bytes"], [value, hex_to_bytes(data)])


def eq(value: int, data: BytesLike) -> bytes:
    return _encode("eq(uint256,bytes)", ["uint256", "bytes"], [value, hex_to_bytes(data)])


def not_(data: BytesLike) -> bytes:
    return _encode("not(bytes)", ["bytes"], [hex_to_bytes(data)])


def _join(predicates) -> tuple:
    """Concatenate predicates and pack their cumulative end offsets (uint32 each)"""
    if not predicates:
        raise PredicateEncodingError("At least one predicate is required")
    if len(predicates) > 8:
        raise PredicateEncodingError(f"At most 8 predicates can be combined, got {len(predicates)}")

    offsets = 0
    cumulative = 0
    parts = []
    for index, predicate in enumerate(predicates):
        raw = hex_to_bytes(predicate)
        cumulative += len(raw)
        if cumulative > UINT32_MAX:
            raise PredicateEncodingError("Combined predicate data exceeds uint32 offsets")
        offsets |= cumulative << (32 * index)
        parts.append(raw)
    return offsets, b''.join(parts)


def and_(*predicates: BytesLike) -> bytes:
    offsets, data = _join(predicates)
    return _encode("and(uint256,bytes)", ["uint256", "bytes"], [offsets, data])


def or_(*predicates: BytesLike) -> bytes:
    offsets, data = _join(predicates)
    return _encode("or(uint256,bytes)", ["uint256", "bytes"], [offsets, data])


# ============================================================================
# External view calls used by the flows
# ============================================================================

def volatility_check_calldata(hook: str, threshold: int) -> bytes:
    """checkVolatility(address hook, uint24 threshold) on the volatility checker"""
    if not 0 <= threshold <= MAX_UINT24:
        raise PredicateEncodingError(f"Volatility threshold must fit in uint24, got {threshold}")
    return _encode(
        "checkVolatility(address,uint24)",
        ["address", "uint24"],
        [to_checksum(hook), threshold]
    )


def hedge_active_calldata(trader: str) -> bytes:
    """isHedgeActiveFor(address trader) on the TraderHedgeLOP contract"""
    return _encode("isHedgeActiveFor(address)", ["address"], [to_checksum(trader)])


def volatility_predicate(checker: str, hook: str, threshold: int, min_result: int = 0) -> bytes:
    """Allow fills while checker.checkVolatility(hook, threshold) > min_result"""
    return gt(min_result, arbitrary_static_call(checker, volatility_check_calldata(hook, threshold)))


def hedge_predicate(hedge_contract: str, trader: str) -> bytes:
    """Allow fills only while the hedge is armed for trader"""
    return gt(0, arbitrary_static_call(hedge_contract, hedge_active_calldata(trader)))
