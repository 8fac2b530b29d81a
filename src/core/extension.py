"""
Order Extension (Limit Order Protocol v4)

An extension is the auxiliary data the protocol reads at fill time
(predicate, permits, interactions, amount getters). Wire layout:

    offsets (32 bytes) | makerAssetSuffix | takerAssetSuffix | makingAmountData |
    takingAmountData | predicate | makerPermit | preInteraction | postInteraction |
    customData

offsets packs eight uint32 values; the i-th (bits 32*i .. 32*i+31) is the
cumulative end offset of field i within the concatenated body. customData is
not indexed and runs to the end. An extension with every field empty encodes
as '0x'.

The order commits to its extension through the salt (low 160 bits of the salt
== low 160 bits of keccak256(extension)), so the bytes passed at fill time
must be exactly the ones that were hashed before signing.
"""

from dataclasses import dataclass, fields
from typing import Union

from eth_utils import keccak

from utils.exceptions import ExtensionEncodingError
from utils.helpers import bytes_to_hex, hex_to_bytes, to_checksum


UINT32_MAX = 2**32 - 1

# Order matters: it defines the offsets word
INDEXED_FIELDS = (
    'maker_asset_suffix',
    'taker_asset_suffix',
    'making_amount_data',
    'taking_amount_data',
    'predicate',
    'maker_permit',
    'pre_interaction',
    'post_interaction',
)


@dataclass(frozen=True)
class Extension:
    maker_asset_suffix: bytes = b''
    taker_asset_suffix: bytes = b''
    making_amount_data: bytes = b''
    taking_amount_data: bytes = b''
    predicate: bytes = b''
    maker_permit: bytes = b''
    pre_interaction: bytes = b''
    post_interaction: bytes = b''
    custom_data: bytes = b''

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (bytes, bytearray)):
                raise ExtensionEncodingError(
                    f"Extension field {f.name} must be bytes, got {type(value).__name__}"
                )

    @classmethod
    def default(cls) -> 'Extension':
        return cls()

    def is_empty(self) -> bool:
        return all(len(getattr(self, f.name)) == 0 for f in fields(self))

    def offsets(self) -> int:
        """Packed cumulative end offsets of the eight indexed fields"""
        packed = 0
        cumulative = 0
        for index, name in enumerate(INDEXED_FIELDS):
            cumulative += len(getattr(self, name))
            if cumulative > UINT32_MAX:
                raise ExtensionEncodingError(
                    f"Extension too large: field {name} ends at byte {cumulative}"
                )
            packed |= cumulative << (32 * index)
        return packed

    def encode_bytes(self) -> bytes:
        if self.is_empty():
            return b''
        body = b''.join(bytes(getattr(self, name)) for name in INDEXED_FIELDS)
        return self.offsets().to_bytes(32, 'big') + body + bytes(self.custom_data)

    def encode(self) -> str:
        """0x-prefixed hex of the wire encoding"""
        return bytes_to_hex(self.encode_bytes())

    def keccak(self) -> bytes:
        return keccak(self.encode_bytes())

    def keccak_int(self) -> int:
        return int.from_bytes(self.keccak(), 'big')

    @classmethod
    def decode(cls, data: Union[str, bytes]) -> 'Extension':
        """
        Parse an encoded extension.

        Raises:
            ExtensionEncodingError: On truncated input or inconsistent offsets
        """
        raw = hex_to_bytes(data)
        if len(raw) == 0:
            return cls()
        if len(raw) < 32:
            raise ExtensionEncodingError(
                f"Extension shorter than offsets header ({len(raw)} bytes)"
            )

        offsets = int.from_bytes(raw[:32], 'big')
        body = raw[32:]
        values = {}
        previous = 0
        for index, name in enumerate(INDEXED_FIELDS):
            end = (offsets >> (32 * index)) & UINT32_MAX
            if end < previous:
                raise ExtensionEncodingError(
                    f"Extension offsets not monotonic at field {name} ({end} < {previous})"
                )
            if end > len(body):
                raise ExtensionEncodingError(
                    f"Extension field {name} ends at {end}, body is {len(body)} bytes"
                )
            values[name] = body[previous:end]
            previous = end

        values['custom_data'] = body[previous:]
        return cls(**values)


class ExtensionBuilder:
    """
    Fluent builder for Extension.

    Example:
        extension = ExtensionBuilder().with_predicate(predicate_bytes).build()
    """

    def __init__(self):
        self._fields = {}

    def _set(self, name: str, value: Union[str, bytes]) -> 'ExtensionBuilder':
        self._fields[name] = hex_to_bytes(value)
        return self

    def with_maker_asset_suffix(self, suffix: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('maker_asset_suffix', suffix)

    def with_taker_asset_suffix(self, suffix: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('taker_asset_suffix', suffix)

    def with_making_amount_data(self, getter: str, data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('making_amount_data', _target_and_data(getter, data))

    def with_taking_amount_data(self, getter: str, data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('taking_amount_data', _target_and_data(getter, data))

    def with_predicate(self, predicate: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('predicate', predicate)

    def with_maker_permit(self, token: str, permit_data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('maker_permit', _target_and_data(token, permit_data))

    def with_pre_interaction(self, target: str, data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('pre_interaction', _target_and_data(target, data))

    def with_post_interaction(self, target: str, data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('post_interaction', _target_and_data(target, data))

    def with_custom_data(self, data: Union[str, bytes]) -> 'ExtensionBuilder':
        return self._set('custom_data', data)

    def build(self) -> Extension:
        return Extension(**self._fields)


def _target_and_data(target: str, data: Union[str, bytes]) -> bytes:
    """20-byte address followed by call data (protocol 'target + data' fields)"""
    return hex_to_bytes(to_checksum(target)) + hex_to_bytes(data)
