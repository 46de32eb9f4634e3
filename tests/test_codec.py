"""Tests for SerializingCodec and the codec factory."""

import pickle

import pytest

from django_batchex.codec import SerializingCodec, to_bytes
from django_batchex.compat import create_codec
from django_batchex.compressors import ZlibCompressor
from django_batchex.exceptions import SerializerError
from django_batchex.serializers.json import JSONSerializer
from django_batchex.types import Codec


class TestToBytes:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("user:1", b"user:1"),
            (b"user:1", b"user:1"),
            (memoryview(b"user:1"), b"user:1"),
            (42, b"42"),
            ("émoji", "émoji".encode()),
        ],
    )
    def test_supported_types(self, value, expected):
        assert to_bytes(value) == expected

    @pytest.mark.parametrize("value", [1.5, None, True, ("a",)])
    def test_unsupported_types_raise(self, value):
        with pytest.raises(TypeError, match="Keys and fields must be"):
            to_bytes(value)


class TestKeys:
    def test_no_prefix(self):
        assert SerializingCodec().encode_key("k") == b"k"

    def test_prefix(self):
        codec = SerializingCodec(key_prefix="app")
        assert codec.encode_key("k") == b"app:k"
        assert codec.encode_key(b"k") == b"app:k"

    def test_fields_never_prefixed(self):
        codec = SerializingCodec(key_prefix="app")
        assert codec.encode_field("email") == b"email"

    def test_float_key_rejected(self):
        with pytest.raises(TypeError):
            SerializingCodec().encode_key(1.5)


class TestValues:
    def test_ints_stored_as_decimal_text(self):
        codec = SerializingCodec()
        assert codec.encode_value(5) == b"5"
        assert codec.encode_value(-12) == b"-12"

    def test_bools_are_serialized_not_stringified(self):
        codec = SerializingCodec()
        assert codec.encode_value(True) == pickle.dumps(True, pickle.DEFAULT_PROTOCOL)

    def test_json_serializer(self):
        codec = SerializingCodec(serializer=JSONSerializer)
        assert codec.encode_value({"a": 1}) == b'{"a": 1}'

    def test_roundtrip(self):
        codec = SerializingCodec()
        for value in ["text", 1.25, {"nested": [1, 2]}, None, 7]:
            assert codec.decode_value(codec.encode_value(value)) == value

    def test_compressor_applied_above_min_length(self):
        codec = SerializingCodec(serializer=JSONSerializer, compressor=ZlibCompressor)
        value = "x" * 1000
        encoded = codec.encode_value(value)
        assert len(encoded) < 1000
        assert codec.decode_value(encoded) == value

    def test_short_values_skip_compression(self):
        codec = SerializingCodec(serializer=JSONSerializer, compressor=ZlibCompressor)
        assert codec.encode_value("short") == b'"short"'
        assert codec.decode_value(b'"short"') == "short"

    def test_unserializable_value_raises_serializer_error(self):
        codec = SerializingCodec(serializer=JSONSerializer)
        with pytest.raises(SerializerError):
            codec.encode_value(object())


class TestFallback:
    def test_decode_with_second_serializer(self):
        """Values written by an older serializer still decode."""
        old = SerializingCodec()
        new = SerializingCodec(
            serializer=[
                "django_batchex.serializers.json.JSONSerializer",
                "django_batchex.serializers.pickle.PickleSerializer",
            ],
        )
        stored = old.encode_value({"legacy": True})
        assert new.decode_value(stored) == {"legacy": True}
        assert new.encode_value({"a": 1}) == b'{"a": 1}'

    def test_decode_failure_raises_last_error(self):
        codec = SerializingCodec(serializer=JSONSerializer)
        with pytest.raises(SerializerError):
            codec.decode_value(b"\x80not json")


class TestFactory:
    def test_codec_protocol(self):
        assert isinstance(SerializingCodec(), Codec)

    def test_none_gives_serializing_codec(self):
        codec = create_codec(None, key_prefix="p")
        assert isinstance(codec, SerializingCodec)
        assert codec.key_prefix == "p"

    def test_instance_passthrough(self):
        codec = SerializingCodec()
        assert create_codec(codec) is codec

    def test_dotted_path(self):
        codec = create_codec("django_batchex.codec.SerializingCodec", serializer=JSONSerializer)
        assert codec.encode_value("a") == b'"a"'
