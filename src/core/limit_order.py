"""
Limit Order (Limit Order Protocol v4)

The signed struct has eight fields:

    struct Order {
        uint256 salt;
        Address maker;
        Address receiver;
        Address makerAsset;
        Address takerAsset;
        uint256 makingAmount;
        uint256 takingAmount;
        MakerTraits makerTraits;
    }

`Address` and `MakerTraits` are uint256 user-defined value types on-chain,
so calldata carries every field as uint256, while EIP-712 types the address
fields as `address`. The extension is not part of the struct: the order
commits to it through the salt's low 160 bits.
"""

import secrets
from typing import Any, Dict, Optional, Tuple

from eth_account.messages import encode_typed_data
from eth_utils import keccak

from config.constants import LOP_DOMAIN_NAME, LOP_DOMAIN_VERSION, ZERO_ADDRESS
from core.extension import Extension
from core.maker_traits import MakerTraits
from utils.exceptions import InvalidOrderError
from utils.helpers import bytes_to_hex, to_checksum


UINT160_MASK = (1 << 160) - 1
MAX_BASE_SALT = (1 << 96) - 1

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPE = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "receiver", "type": "address"},
    {"name": "makerAsset", "type": "address"},
    {"name": "takerAsset", "type": "address"},
    {"name": "makingAmount", "type": "uint256"},
    {"name": "takingAmount", "type": "uint256"},
    {"name": "makerTraits", "type": "uint256"},
]


class LimitOrder:
    """
    An unsigned v4 limit order.

    Example:
        order = LimitOrder(
            maker_asset=DAI_ADDRESS,
            taker_asset=USDC_ADDRESS,
            making_amount=10**17,
            taking_amount=10**5,
            maker=account.address,
            extension=ExtensionBuilder().with_predicate(predicate).build(),
        )
    """

    def __init__(
        self,
        maker_asset: str,
        taker_asset: str,
        making_amount: int,
        taking_amount: int,
        maker: str,
        receiver: str = ZERO_ADDRESS,
        maker_traits: Optional[MakerTraits] = None,
        extension: Optional[Extension] = None,
        salt: Optional[int] = None,
        base_salt: Optional[int] = None,
    ):
        """
        Args:
            salt: Full salt, e.g. when re-creating an order received from elsewhere.
                Must agree with the extension hash if an extension is present.
            base_salt: Upper 96 bits of a freshly derived salt (random if omitted).
                Ignored when salt is given.
        """
        self.maker_asset = to_checksum(maker_asset)
        self.taker_asset = to_checksum(taker_asset)
        self.maker = to_checksum(maker)
        self.receiver = to_checksum(receiver)

        for name, amount in (('making_amount', making_amount), ('taking_amount', taking_amount)):
            if not isinstance(amount, int) or isinstance(amount, bool):
                raise InvalidOrderError(f"{name} must be an integer number of base units")
            if not 0 < amount < 2**256:
                raise InvalidOrderError(f"{name} must be positive and fit in uint256, got {amount}")
        if self.maker_asset == self.taker_asset:
            raise InvalidOrderError("maker_asset and taker_asset must differ")

        self.making_amount = making_amount
        self.taking_amount = taking_amount
        self.extension = extension or Extension()
        self.maker_traits = (maker_traits or MakerTraits.default()).copy()

        if not self.extension.is_empty():
            self.maker_traits.with_extension()
        if self.extension.pre_interaction:
            self.maker_traits.enable_pre_interaction()
        if self.extension.post_interaction:
            self.maker_traits.enable_post_interaction()

        if salt is not None:
            if not 0 <= salt < 2**256:
                raise InvalidOrderError(f"salt must fit in uint256, got {salt}")
            self.salt = salt
            self.validate_extension()
        else:
            self.salt = self._derive_salt(base_salt)

    def _derive_salt(self, base_salt: Optional[int]) -> int:
        if base_salt is None:
            base_salt = secrets.randbits(96)
        if not 0 <= base_salt <= MAX_BASE_SALT:
            raise InvalidOrderError(f"base_salt must fit in 96 bits, got {base_salt}")
        if self.extension.is_empty():
            return base_salt
        return (base_salt << 160) | (self.extension.keccak_int() & UINT160_MASK)

    def validate_extension(self) -> None:
        """
        Check the salt/extension binding the protocol enforces at fill time.

        Raises:
            InvalidOrderError: If the order has an extension whose hash does not
                match the salt, or the HAS_EXTENSION flag disagrees
        """
        if self.extension.is_empty():
            if self.maker_traits.has_extension():
                raise InvalidOrderError("HAS_EXTENSION flag set on an order without extension")
            return
        if not self.maker_traits.has_extension():
            raise InvalidOrderError("Order carries an extension but HAS_EXTENSION flag is not set")
        if (self.salt & UINT160_MASK) != (self.extension.keccak_int() & UINT160_MASK):
            raise InvalidOrderError(
                "Salt does not commit to the extension (low 160 bits != keccak256(extension))",
                error_code='INVALID_EXTENSION_HASH'
            )

    def build(self) -> Dict[str, Any]:
        """The order struct as EIP-712 message values"""
        return {
            "salt": self.salt,
            "maker": self.maker,
            "receiver": self.receiver,
            "makerAsset": self.maker_asset,
            "takerAsset": self.taker_asset,
            "makingAmount": self.making_amount,
            "takingAmount": self.taking_amount,
            "makerTraits": int(self.maker_traits),
        }

    def as_abi_tuple(self) -> Tuple[int, ...]:
        """The order struct as calldata values (every field a uint256)"""
        return (
            self.salt,
            int(self.maker, 16),
            int(self.receiver, 16),
            int(self.maker_asset, 16),
            int(self.taker_asset, 16),
            self.making_amount,
            self.taking_amount,
            int(self.maker_traits),
        )

    def get_typed_data(self, chain_id: int, verifying_contract: str) -> Dict[str, Any]:
        """Full EIP-712 message (domain, types, primaryType, message)"""
        return {
            "types": {
                "EIP712Domain": EIP712_DOMAIN_TYPE,
                "Order": ORDER_TYPE,
            },
            "primaryType": "Order",
            "domain": {
                "name": LOP_DOMAIN_NAME,
                "version": LOP_DOMAIN_VERSION,
                "chainId": chain_id,
                "verifyingContract": to_checksum(verifying_contract),
            },
            "message": self.build(),
        }

    def get_order_hash(self, chain_id: int, verifying_contract: str) -> str:
        """EIP-712 digest the protocol uses as the order id"""
        signable = encode_typed_data(full_message=self.get_typed_data(chain_id, verifying_contract))
        digest = keccak(b'\x19' + signable.version + signable.header + signable.body)
        return bytes_to_hex(digest)

    def to_api_payload(self, signature: str, chain_id: int, verifying_contract: str) -> Dict[str, Any]:
        """JSON-serializable signed order (numbers as strings, as order-book APIs expect)"""
        data = {key: str(value) for key, value in self.build().items()}
        data["extension"] = self.extension.encode()
        return {
            "orderHash": self.get_order_hash(chain_id, verifying_contract),
            "signature": signature,
            "data": data,
        }

    def __repr__(self) -> str:
        return (
            f"LimitOrder(maker={self.maker}, {self.making_amount} {self.maker_asset} -> "
            f"{self.taking_amount} {self.taker_asset}, salt=0x{self.salt:x})"
        )
