"""
Limit Order Protocol v4 calldata builders

    fillOrder(Order order, bytes32 r, bytes32 vs, uint256 amount, uint256 takerTraits)
    fillOrderArgs(Order order, bytes32 r, bytes32 vs, uint256 amount, uint256 takerTraits, bytes args)
    cancelOrder(uint256 makerTraits, bytes32 orderHash)

fillOrder cannot carry args, so any order with an extension (or a taker
receiver/interaction) must go through fillOrderArgs.
"""

from typing import Union

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from core.limit_order import LimitOrder
from core.maker_traits import MakerTraits
from core.signer import compact_signature
from core.taker_traits import TakerTraits
from utils.exceptions import FillError
from utils.helpers import bytes_to_hex, hex_to_bytes


ORDER_TUPLE = "(uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256)"

FILL_ORDER_SIGNATURE = f"fillOrder({ORDER_TUPLE},bytes32,bytes32,uint256,uint256)"
FILL_ORDER_ARGS_SIGNATURE = f"fillOrderArgs({ORDER_TUPLE},bytes32,bytes32,uint256,uint256,bytes)"
CANCEL_ORDER_SIGNATURE = "cancelOrder(uint256,bytes32)"

FILL_ORDER_SELECTOR = function_signature_to_4byte_selector(FILL_ORDER_SIGNATURE)
FILL_ORDER_ARGS_SELECTOR = function_signature_to_4byte_selector(FILL_ORDER_ARGS_SIGNATURE)
CANCEL_ORDER_SELECTOR = function_signature_to_4byte_selector(CANCEL_ORDER_SIGNATURE)


def fill_order_calldata(
    order: LimitOrder,
    signature: Union[str, bytes],
    amount: int,
    taker_traits: TakerTraits
) -> str:
    """
    Calldata for fillOrder (no args).

    Raises:
        FillError: If the taker traits carry args, which fillOrder would drop
    """
    if taker_traits.has_args():
        raise FillError("Taker traits carry args; use fillOrderArgs")
    traits, _ = taker_traits.encode()
    r, vs = compact_signature(signature)
    body = encode(
        [ORDER_TUPLE, "bytes32", "bytes32", "uint256", "uint256"],
        [order.as_abi_tuple(), r, vs, amount, traits]
    )
    return bytes_to_hex(FILL_ORDER_SELECTOR + body)


def fill_order_args_calldata(
    order: LimitOrder,
    signature: Union[str, bytes],
    amount: int,
    taker_traits: TakerTraits
) -> str:
    """Calldata for fillOrderArgs (extension/receiver/interaction in args)"""
    traits, args = taker_traits.encode()
    r, vs = compact_signature(signature)
    body = encode(
        [ORDER_TUPLE, "bytes32", "bytes32", "uint256", "uint256", "bytes"],
        [order.as_abi_tuple(), r, vs, amount, traits, args]
    )
    return bytes_to_hex(FILL_ORDER_ARGS_SELECTOR + body)


def build_fill_calldata(
    order: LimitOrder,
    signature: Union[str, bytes],
    amount: int,
    taker_traits: TakerTraits
) -> str:
    """fillOrderArgs when the traits carry args, fillOrder otherwise"""
    if taker_traits.has_args():
        return fill_order_args_calldata(order, signature, amount, taker_traits)
    return fill_order_calldata(order, signature, amount, taker_traits)


def cancel_order_calldata(maker_traits: MakerTraits, order_hash: Union[str, bytes]) -> str:
    body = encode(["uint256", "bytes32"], [int(maker_traits), hex_to_bytes(order_hash)])
    return bytes_to_hex(CANCEL_ORDER_SELECTOR + body)
