"""
Tests for Taker Traits
"""

import pytest

from core.extension import Extension, ExtensionBuilder
from core.taker_traits import (
    ARGS_HAS_TARGET_FLAG,
    MAKER_AMOUNT_FLAG,
    AmountMode,
    TakerTraits,
)
from utils.exceptions import ExtensionEncodingError, InvalidOrderError


RECEIVER = '0x1234567890123456789012345678901234567890'


class TestTakerTraits:
    """Test takerTraits/args encoding"""

    def test_default_is_taker_amount_without_args(self):
        traits = TakerTraits.default()

        assert traits.amount_mode() is AmountMode.TAKER
        assert not traits.has_args()
        assert traits.encode() == (0, b'')

    def test_maker_amount_mode_and_threshold(self):
        traits = TakerTraits.default().set_amount_mode(AmountMode.MAKER).set_threshold(10**5)
        value, args = traits.encode()

        assert (value >> MAKER_AMOUNT_FLAG) & 1 == 1
        assert value & ((1 << 185) - 1) == 10**5
        assert args == b''

    def test_threshold_limit(self):
        with pytest.raises(InvalidOrderError):
            TakerTraits().set_threshold(2**185)

    def test_extension_length_and_args(self):
        extension = ExtensionBuilder().with_predicate('0xabcdef').build()
        value, args = TakerTraits().set_extension(extension).encode()

        assert (value >> 224) & 0xFFFFFF == len(extension.encode_bytes())
        assert args == extension.encode_bytes()

    def test_receiver_prefixes_args(self):
        extension = ExtensionBuilder().with_predicate('0x01').build()
        traits = TakerTraits().set_receiver(RECEIVER).set_extension(extension).set_interaction(RECEIVER, '0x02')
        value, args = traits.encode()

        assert (value >> ARGS_HAS_TARGET_FLAG) & 1 == 1
        assert args[:20] == bytes.fromhex(RECEIVER[2:])
        assert args[20:20 + len(extension.encode_bytes())] == extension.encode_bytes()
        assert args.endswith(bytes.fromhex(RECEIVER[2:]) + b'\x02')
        assert (value >> 200) & 0xFFFFFF == 21

    def test_remove_extension(self):
        extension = ExtensionBuilder().with_predicate('0x01').build()
        traits = TakerTraits().set_extension(extension).remove_extension()

        assert not traits.has_args()

    def test_flags(self):
        value, _ = TakerTraits().enable_native_unwrap().skip_order_permit().enable_permit2().encode()

        assert (value >> 254) & 1 == 1
        assert (value >> 253) & 1 == 1
        assert (value >> 252) & 1 == 1

    def test_extension_too_long_for_args(self):
        extension = Extension(custom_data=b'\x00' * 2**24)

        with pytest.raises(ExtensionEncodingError, match="Extension too long"):
            TakerTraits().set_extension(extension).encode()

    def test_interaction_too_long_for_args(self):
        traits = TakerTraits().set_interaction(RECEIVER, b'\x00' * (2**24 - 20))

        with pytest.raises(ExtensionEncodingError, match="Interaction too long"):
            traits.encode()

    def test_interaction_at_length_limit(self):
        traits = TakerTraits().set_interaction(RECEIVER, b'\x00' * (2**24 - 21))
        value, args = traits.encode()

        assert (value >> 200) & 0xFFFFFF == 2**24 - 1
        assert len(args) == 2**24 - 1
