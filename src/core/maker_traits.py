"""
Maker Traits (Limit Order Protocol v4)

makerTraits is a single uint256 carried in the signed order:

    bits 0..79     allowed sender (low 80 bits of the address, 0 = anyone)
    bits 80..119   expiration timestamp (0 = never)
    bits 120..159  nonce or epoch
    bits 160..199  series
    bit  247       UNWRAP_WETH
    bit  248       USE_PERMIT2
    bit  249       HAS_EXTENSION
    bit  250       NEED_CHECK_EPOCH_MANAGER
    bit  251       POST_INTERACTION_CALL
    bit  252       PRE_INTERACTION_CALL
    bit  254       ALLOW_MULTIPLE_FILLS
    bit  255       NO_PARTIAL_FILLS
"""

from config.constants import MAX_UINT40, ZERO_ADDRESS
from utils.exceptions import InvalidOrderError
from utils.helpers import to_checksum


NO_PARTIAL_FILLS_FLAG = 255
ALLOW_MULTIPLE_FILLS_FLAG = 254
PRE_INTERACTION_CALL_FLAG = 252
POST_INTERACTION_CALL_FLAG = 251
NEED_CHECK_EPOCH_MANAGER_FLAG = 250
HAS_EXTENSION_FLAG = 249
USE_PERMIT2_FLAG = 248
UNWRAP_WETH_FLAG = 247

_ALLOWED_SENDER_MASK = (1 << 80) - 1
_EXPIRATION_SHIFT = 80
_NONCE_SHIFT = 120
_SERIES_SHIFT = 160
_UINT40_MASK = (1 << 40) - 1


class MakerTraits:
    """Mutable builder around the packed makerTraits value"""

    def __init__(self, value: int = 0):
        if not 0 <= value < 2**256:
            raise InvalidOrderError(f"makerTraits must fit in uint256, got {value}")
        self.value = value

    @classmethod
    def default(cls) -> 'MakerTraits':
        """Partial and multiple fills allowed, no expiration, any sender"""
        return cls().allow_multiple_fills()

    def __int__(self) -> int:
        return self.value

    def __eq__(self, other) -> bool:
        return isinstance(other, MakerTraits) and other.value == self.value

    def __repr__(self) -> str:
        return f"MakerTraits(0x{self.value:064x})"

    # ------------------------------------------------------------------
    # bit helpers
    # ------------------------------------------------------------------

    def _get_flag(self, bit: int) -> bool:
        return bool((self.value >> bit) & 1)

    def _set_flag(self, bit: int, enabled: bool) -> 'MakerTraits':
        if enabled:
            self.value |= (1 << bit)
        else:
            self.value &= ~(1 << bit)
        return self

    def _set_uint40(self, shift: int, field: str, number: int) -> 'MakerTraits':
        if not 0 <= number <= MAX_UINT40:
            raise InvalidOrderError(f"{field} must fit in 40 bits, got {number}")
        self.value = (self.value & ~(_UINT40_MASK << shift)) | (number << shift)
        return self

    def _get_uint40(self, shift: int) -> int:
        return (self.value >> shift) & _UINT40_MASK

    # ------------------------------------------------------------------
    # fields
    # ------------------------------------------------------------------

    def with_allowed_sender(self, address: str) -> 'MakerTraits':
        """Restrict fills to a single taker (zero address = anyone)"""
        low_bits = int(to_checksum(address), 16) & _ALLOWED_SENDER_MASK
        self.value = (self.value & ~_ALLOWED_SENDER_MASK) | low_bits
        return self

    def allowed_sender(self) -> int:
        return self.value & _ALLOWED_SENDER_MASK

    def is_private(self) -> bool:
        return self.allowed_sender() != int(ZERO_ADDRESS, 16)

    def with_expiration(self, timestamp: int) -> 'MakerTraits':
        return self._set_uint40(_EXPIRATION_SHIFT, 'expiration', timestamp)

    def expiration(self) -> int:
        return self._get_uint40(_EXPIRATION_SHIFT)

    def is_expired(self, now: int) -> bool:
        expiration = self.expiration()
        return expiration != 0 and expiration <= now

    def with_nonce(self, nonce: int) -> 'MakerTraits':
        return self._set_uint40(_NONCE_SHIFT, 'nonce', nonce)

    def nonce_or_epoch(self) -> int:
        return self._get_uint40(_NONCE_SHIFT)

    def with_epoch(self, series: int, epoch: int) -> 'MakerTraits':
        """Tie the order to the epoch manager (series/epoch cancellation)"""
        self.with_series(series)
        self._set_uint40(_NONCE_SHIFT, 'epoch', epoch)
        return self._set_flag(NEED_CHECK_EPOCH_MANAGER_FLAG, True)

    def with_series(self, series: int) -> 'MakerTraits':
        return self._set_uint40(_SERIES_SHIFT, 'series', series)

    def series(self) -> int:
        return self._get_uint40(_SERIES_SHIFT)

    # ------------------------------------------------------------------
    # flags
    # ------------------------------------------------------------------

    def with_extension(self) -> 'MakerTraits':
        return self._set_flag(HAS_EXTENSION_FLAG, True)

    def has_extension(self) -> bool:
        return self._get_flag(HAS_EXTENSION_FLAG)

    def allow_partial_fills(self) -> 'MakerTraits':
        return self._set_flag(NO_PARTIAL_FILLS_FLAG, False)

    def disable_partial_fills(self) -> 'MakerTraits':
        return self._set_flag(NO_PARTIAL_FILLS_FLAG, True)

    def is_partial_fill_allowed(self) -> bool:
        return not self._get_flag(NO_PARTIAL_FILLS_FLAG)

    def allow_multiple_fills(self) -> 'MakerTraits':
        return self._set_flag(ALLOW_MULTIPLE_FILLS_FLAG, True)

    def disable_multiple_fills(self) -> 'MakerTraits':
        return self._set_flag(ALLOW_MULTIPLE_FILLS_FLAG, False)

    def is_multiple_fills_allowed(self) -> bool:
        return self._get_flag(ALLOW_MULTIPLE_FILLS_FLAG)

    def is_bit_invalidator_mode(self) -> bool:
        """Single-fill orders are invalidated through the nonce bitmap"""
        return not self.is_partial_fill_allowed() or not self.is_multiple_fills_allowed()

    def enable_pre_interaction(self) -> 'MakerTraits':
        return self._set_flag(PRE_INTERACTION_CALL_FLAG, True)

    def has_pre_interaction(self) -> bool:
        return self._get_flag(PRE_INTERACTION_CALL_FLAG)

    def enable_post_interaction(self) -> 'MakerTraits':
        return self._set_flag(POST_INTERACTION_CALL_FLAG, True)

    def has_post_interaction(self) -> bool:
        return self._get_flag(POST_INTERACTION_CALL_FLAG)

    def enable_permit2(self) -> 'MakerTraits':
        return self._set_flag(USE_PERMIT2_FLAG, True)

    def is_permit2(self) -> bool:
        return self._get_flag(USE_PERMIT2_FLAG)

    def enable_native_unwrap(self) -> 'MakerTraits':
        return self._set_flag(UNWRAP_WETH_FLAG, True)

    def is_native_unwrap_enabled(self) -> bool:
        return self._get_flag(UNWRAP_WETH_FLAG)

    def need_check_epoch_manager(self) -> bool:
        return self._get_flag(NEED_CHECK_EPOCH_MANAGER_FLAG)

    def copy(self) -> 'MakerTraits':
        return MakerTraits(self.value)
