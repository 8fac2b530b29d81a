"""
Taker Traits (Limit Order Protocol v4)

takerTraits is the uint256 the filler passes to fillOrder/fillOrderArgs:

    bits 0..184    threshold (max taking / min making amount, 0 = no limit)
    bits 200..223  length of the interaction in args
    bits 224..247  length of the extension in args
    bit  251       ARGS_HAS_TARGET (args start with a 20-byte receiver)
    bit  252       USE_PERMIT2
    bit  253       SKIP_ORDER_PERMIT
    bit  254       UNWRAP_WETH
    bit  255       MAKER_AMOUNT (fill amount is in maker asset units)

The matching `args` bytes are: [target (20)] | extension | interaction.
"""

from enum import Enum
from typing import Optional, Tuple, Union

from core.extension import Extension
from utils.exceptions import ExtensionEncodingError, InvalidOrderError
from utils.helpers import hex_to_bytes, to_checksum


MAKER_AMOUNT_FLAG = 255
UNWRAP_WETH_FLAG = 254
SKIP_ORDER_PERMIT_FLAG = 253
USE_PERMIT2_FLAG = 252
ARGS_HAS_TARGET_FLAG = 251

ARGS_EXTENSION_LENGTH_SHIFT = 224
ARGS_INTERACTION_LENGTH_SHIFT = 200
UINT24_MAX = 2**24 - 1
THRESHOLD_MAX = 2**185 - 1


class AmountMode(Enum):
    """Which asset the fill `amount` is denominated in"""
    TAKER = 'taker'
    MAKER = 'maker'


class TakerTraits:
    """Builder for (takerTraits, args)"""

    def __init__(self):
        self.flags = 0
        self.threshold = 0
        self.receiver: Optional[str] = None
        self.extension: Extension = Extension()
        self.interaction: bytes = b''

    @classmethod
    def default(cls) -> 'TakerTraits':
        return cls()

    def _set_flag(self, bit: int, enabled: bool) -> 'TakerTraits':
        if enabled:
            self.flags |= (1 << bit)
        else:
            self.flags &= ~(1 << bit)
        return self

    def set_amount_mode(self, mode: AmountMode) -> 'TakerTraits':
        return self._set_flag(MAKER_AMOUNT_FLAG, mode is AmountMode.MAKER)

    def amount_mode(self) -> AmountMode:
        return AmountMode.MAKER if (self.flags >> MAKER_AMOUNT_FLAG) & 1 else AmountMode.TAKER

    def set_threshold(self, threshold: int) -> 'TakerTraits':
        if not 0 <= threshold <= THRESHOLD_MAX:
            raise InvalidOrderError(f"Threshold must fit in 185 bits, got {threshold}")
        self.threshold = threshold
        return self

    def set_receiver(self, receiver: Optional[str]) -> 'TakerTraits':
        self.receiver = to_checksum(receiver) if receiver else None
        return self

    def set_extension(self, extension: Extension) -> 'TakerTraits':
        self.extension = extension
        return self

    def remove_extension(self) -> 'TakerTraits':
        self.extension = Extension()
        return self

    def set_interaction(self, target: str, data: Union[str, bytes]) -> 'TakerTraits':
        self.interaction = hex_to_bytes(to_checksum(target)) + hex_to_bytes(data)
        return self

    def enable_native_unwrap(self) -> 'TakerTraits':
        return self._set_flag(UNWRAP_WETH_FLAG, True)

    def skip_order_permit(self) -> 'TakerTraits':
        return self._set_flag(SKIP_ORDER_PERMIT_FLAG, True)

    def enable_permit2(self) -> 'TakerTraits':
        return self._set_flag(USE_PERMIT2_FLAG, True)

    def encode(self) -> Tuple[int, bytes]:
        """
        Returns:
            (takerTraits, args)

        Raises:
            ExtensionEncodingError: If extension or interaction exceed 24-bit lengths
        """
        extension = self.extension.encode_bytes()
        if len(extension) > UINT24_MAX:
            raise ExtensionEncodingError(f"Extension too long for taker args ({len(extension)} bytes)")
        if len(self.interaction) > UINT24_MAX:
            raise ExtensionEncodingError(f"Interaction too long for taker args ({len(self.interaction)} bytes)")

        traits = self.flags | self.threshold
        traits |= len(extension) << ARGS_EXTENSION_LENGTH_SHIFT
        traits |= len(self.interaction) << ARGS_INTERACTION_LENGTH_SHIFT

        target = b''
        if self.receiver:
            traits |= 1 << ARGS_HAS_TARGET_FLAG
            target = hex_to_bytes(self.receiver)

        return traits, target + extension + self.interaction

    def has_args(self) -> bool:
        return bool(self.receiver) or not self.extension.is_empty() or bool(self.interaction)
