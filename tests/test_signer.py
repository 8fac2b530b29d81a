"""
Tests for EIP-712 order signing
"""

import pytest

from config.constants import DAI_ADDRESS, USDC_ADDRESS
from core.limit_order import LimitOrder
from core.signer import compact_signature, recover_signer, sign_order
from utils.exceptions import SigningError

from conftest import TEST_ADDRESS, TEST_PRIVATE_KEY


OTHER_KEY = '0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d'


class TestSignOrder:
    """Test signing with the maker key"""

    def test_signature_recovers_maker(self, sample_order, chain_id, lop_address):
        signed = sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address)

        assert signed.signer == TEST_ADDRESS
        assert signed.order_hash == sample_order.get_order_hash(chain_id, lop_address)
        assert len(bytes.fromhex(signed.signature[2:])) == 65
        assert recover_signer(sample_order, signed.signature, chain_id, lop_address) == TEST_ADDRESS

    def test_signing_is_deterministic(self, sample_order, chain_id, lop_address):
        first = sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address)
        second = sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address)

        assert first.signature == second.signature

    def test_maker_mismatch(self, sample_order, chain_id, lop_address):
        with pytest.raises(SigningError) as exc_info:
            sign_order(sample_order, OTHER_KEY, chain_id, lop_address)
        assert exc_info.value.error_code == 'MAKER_MISMATCH'

    def test_invalid_key(self, sample_order, chain_id, lop_address):
        with pytest.raises(SigningError, match="Invalid signing key"):
            sign_order(sample_order, '0x1234', chain_id, lop_address)

    def test_api_payload_carries_signature(self, sample_order, chain_id, lop_address):
        signed = sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address)
        payload = signed.to_api_payload()

        assert payload['signature'] == signed.signature
        assert payload['orderHash'] == signed.order_hash

    def test_different_order_different_signature(self, sample_order, chain_id, lop_address):
        other = LimitOrder(
            maker_asset=DAI_ADDRESS,
            taker_asset=USDC_ADDRESS,
            making_amount=10**17,
            taking_amount=2 * 10**5,
            maker=TEST_ADDRESS,
            base_salt=42,
        )

        assert (
            sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address).signature
            != sign_order(other, TEST_PRIVATE_KEY, chain_id, lop_address).signature
        )


class TestCompactSignature:
    """Test EIP-2098 (r, vs) conversion"""

    def _signature(self, s: int, v: int) -> bytes:
        return b'\x11' * 32 + s.to_bytes(32, 'big') + bytes([v])

    def test_v27_leaves_top_bit_clear(self):
        r, vs = compact_signature(self._signature(5, 27))

        assert r == b'\x11' * 32
        assert int.from_bytes(vs, 'big') == 5

    def test_v28_sets_top_bit(self):
        _, vs = compact_signature(self._signature(5, 28))

        assert int.from_bytes(vs, 'big') == 5 | (1 << 255)

    def test_v_zero_one_accepted(self):
        assert compact_signature(self._signature(5, 1)) == compact_signature(self._signature(5, 28))

    def test_invalid_v(self):
        with pytest.raises(SigningError, match="recovery byte"):
            compact_signature(self._signature(5, 29))

    def test_wrong_length(self):
        with pytest.raises(SigningError, match="65-byte"):
            compact_signature(b'\x00' * 64)

    def test_high_s_rejected(self):
        with pytest.raises(SigningError, match="malleable"):
            compact_signature(self._signature(2**255, 27))

    def test_signed_order_properties(self, sample_order, chain_id, lop_address):
        signed = sign_order(sample_order, TEST_PRIVATE_KEY, chain_id, lop_address)

        assert signed.r == bytes.fromhex(signed.signature[2:66])
        assert len(signed.vs) == 32
