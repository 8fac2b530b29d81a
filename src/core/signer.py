"""
EIP-712 signing of limit orders

Orders are signed off-chain by the maker. The protocol's fill functions take
the signature in compact EIP-2098 form (r, vs), where vs packs the recovery
bit into the top bit of s.
"""

from dataclasses import dataclass
from typing import Tuple, Union

from eth_account import Account
from eth_account.messages import encode_typed_data

from core.limit_order import LimitOrder
from utils.exceptions import SigningError
from utils.helpers import bytes_to_hex, hex_to_bytes
from utils.logger import get_logger


logger = get_logger(__name__)

_SECP256K1_HALF_N = 0x7FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF5D576E7357A4501DDFE92F46681B20A0


@dataclass(frozen=True)
class SignedOrder:
    order: LimitOrder
    signature: str
    order_hash: str
    signer: str
    chain_id: int
    verifying_contract: str

    @property
    def r(self) -> bytes:
        return compact_signature(self.signature)[0]

    @property
    def vs(self) -> bytes:
        return compact_signature(self.signature)[1]

    def to_api_payload(self) -> dict:
        return self.order.to_api_payload(self.signature, self.chain_id, self.verifying_contract)


def sign_order(
    order: LimitOrder,
    private_key: str,
    chain_id: int,
    verifying_contract: str
) -> SignedOrder:
    """
    Sign an order's EIP-712 typed data with the maker key.

    Raises:
        SigningError: If the key is unusable or does not belong to order.maker
    """
    try:
        account = Account.from_key(private_key)
    except (ValueError, TypeError) as e:
        raise SigningError(f"Invalid signing key: {e}", original_error=e)

    if account.address != order.maker:
        raise SigningError(
            f"Signing key belongs to {account.address}, but order maker is {order.maker}",
            error_code='MAKER_MISMATCH'
        )

    signable = encode_typed_data(full_message=order.get_typed_data(chain_id, verifying_contract))
    signed = account.sign_message(signable)
    signature = bytes_to_hex(signed.signature)
    order_hash = order.get_order_hash(chain_id, verifying_contract)

    logger.debug(f"Order signed by {account.address}", extra={'order_hash': order_hash})
    return SignedOrder(
        order=order,
        signature=signature,
        order_hash=order_hash,
        signer=account.address,
        chain_id=chain_id,
        verifying_contract=verifying_contract,
    )


def compact_signature(signature: Union[str, bytes]) -> Tuple[bytes, bytes]:
    """
    Split a 65-byte (r, s, v) signature into EIP-2098 (r, vs).

    Returns:
        (r, vs) as 32-byte values

    Raises:
        SigningError: If the signature is not 65 bytes or v is not 27/28 (or 0/1)
    """
    raw = hex_to_bytes(signature)
    if len(raw) != 65:
        raise SigningError(f"Expected a 65-byte signature, got {len(raw)} bytes")

    r = raw[:32]
    s = int.from_bytes(raw[32:64], 'big')
    v = raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SigningError(f"Invalid signature recovery byte v={v}")
    if s > _SECP256K1_HALF_N:
        raise SigningError("Signature s value is not in the lower half order (malleable)")

    vs = s | ((v - 27) << 255)
    return r, vs.to_bytes(32, 'big')


def recover_signer(
    order: LimitOrder,
    signature: Union[str, bytes],
    chain_id: int,
    verifying_contract: str
) -> str:
    """Address that produced signature over the order's typed data"""
    signable = encode_typed_data(full_message=order.get_typed_data(chain_id, verifying_contract))
    try:
        return Account.recover_message(signable, signature=hex_to_bytes(signature))
    except Exception as e:
        raise SigningError(f"Cannot recover signer: {e}", original_error=e)
