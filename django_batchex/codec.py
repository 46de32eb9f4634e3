"""Default codec: key prefixing plus serializer and compressor stacks.

Keys and hash fields are plain strings on the wire. Values go through the
first configured serializer and, when set, the first configured
compressor. Decoding tries every configured serializer and compressor in
order, which lets stored data migrate from one format to another.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django_batchex.compat import DEFAULT_SERIALIZER, create_compressor, create_serializer
from django_batchex.exceptions import CompressorError, SerializerError

if TYPE_CHECKING:
    from django_batchex.types import EncodableT, KeyT


def to_bytes(value: KeyT | int) -> bytes:
    """Render a key or hash field as bytes."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode()
    if isinstance(value, memoryview):
        return value.tobytes()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value).encode()
    msg = f"Keys and fields must be str, bytes or int, not {type(value).__name__}"
    raise TypeError(msg)


class SerializingCodec:
    """Codec built from the serializer/compressor stack.

    Args:
        serializer: Serializer instance, class or import path, or a list of
            them. The first one encodes; all of them are tried when decoding.
        compressor: Compressor config in the same shapes, or None.
        key_prefix: Prepended to every key as ``prefix:key``. Hash fields are
            never prefixed.
    """

    def __init__(
        self,
        serializer: str | list | type | Any | None = DEFAULT_SERIALIZER,
        compressor: str | list | type | Any | None = None,
        *,
        key_prefix: str = "",
    ) -> None:
        self._serializers = self._create_serializers(serializer)
        self._compressors = self._create_compressors(compressor)
        self.key_prefix = key_prefix

    def __repr__(self) -> str:
        serializers = [type(s).__name__ for s in self._serializers]
        compressors = [type(c).__name__ for c in self._compressors]
        return f"<{type(self).__name__} serializers={serializers} compressors={compressors}>"

    # =========================================================================
    # Serializer/Compressor Setup
    # =========================================================================

    def _create_serializers(self, config: str | list | type | Any | None) -> list:
        if isinstance(config, list):
            return [create_serializer(item) for item in config]
        return [create_serializer(config)]

    def _create_compressors(self, config: str | list | type | Any | None) -> list:
        if config is None:
            return []
        if isinstance(config, list):
            return [create_compressor(item) for item in config]
        return [create_compressor(config)]

    def _decompress(self, value: bytes) -> bytes:
        """Decompress with fallback support for multiple compressors."""
        for compressor in self._compressors:
            try:
                return compressor.decompress(value)
            except CompressorError:
                continue
        return value

    def _deserialize(self, value: bytes) -> Any:
        """Deserialize with fallback support for multiple serializers."""
        last_error: SerializerError | None = None
        for serializer in self._serializers:
            try:
                return serializer.loads(value)
            except SerializerError as e:
                last_error = e
                continue

        if last_error is not None:
            raise last_error
        raise SerializerError("No serializers configured")

    # =========================================================================
    # Encoding/Decoding
    # =========================================================================

    def make_key(self, key: KeyT) -> KeyT:
        if not self.key_prefix:
            return key
        if isinstance(key, (bytes, memoryview)):
            return self.key_prefix.encode() + b":" + bytes(key)
        return f"{self.key_prefix}:{key}"

    def encode_key(self, key: KeyT) -> bytes:
        return to_bytes(self.make_key(key))

    def encode_field(self, field: KeyT) -> bytes:
        return to_bytes(field)

    def encode_value(self, value: EncodableT) -> bytes:
        """Encode a value for storage (serialize + compress).

        Integers are stored as decimal text so the store can still INCR them.
        """
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value).encode()
        data = self._serializers[0].dumps(value)
        if self._compressors:
            return self._compressors[0].compress(data)
        return data

    def decode_value(self, value: bytes | int) -> Any:
        """Decode a value read back from the store (decompress + deserialize)."""
        try:
            return int(value)
        except (ValueError, TypeError):
            value = self._decompress(value)  # type: ignore[arg-type]
            return self._deserialize(value)
