"""Build serializers, compressors and codecs from configuration.

Every factory accepts the same shapes: a dotted import path, a class, a
ready instance, or None for the package default. Instances are recognized
by the methods they expose, so third-party objects work without
subclassing anything here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_SERIALIZER = "django_batchex.serializers.pickle.PickleSerializer"
DEFAULT_COMPRESSOR = "django_batchex.compressors.IdentityCompressor"
DEFAULT_CODEC = "django_batchex.codec.SerializingCodec"


def _has_methods(obj: Any, *names: str) -> bool:
    if isinstance(obj, type):
        return False
    return all(callable(getattr(obj, name, None)) for name in names)


def is_serializer_instance(obj: Any) -> bool:
    return _has_methods(obj, "dumps", "loads")


def is_compressor_instance(obj: Any) -> bool:
    return _has_methods(obj, "compress", "decompress")


def is_codec_instance(obj: Any) -> bool:
    return _has_methods(obj, "encode_key", "encode_value", "encode_field")


def _instantiate(
    config: str | type | Any | None,
    default: str,
    is_instance: Callable[[Any], bool],
    kwargs: dict[str, Any],
) -> Any:
    if config is None:
        config = default
    if is_instance(config):
        return config
    cls = config if isinstance(config, type) else import_string(config)
    return cls(**kwargs)


def create_serializer(config: str | type | Any | None, **kwargs: Any) -> Any:
    """Create a serializer; None selects pickle. ``kwargs`` go to the constructor."""
    return _instantiate(config, DEFAULT_SERIALIZER, is_serializer_instance, kwargs)


def create_compressor(config: str | type | Any | None, **kwargs: Any) -> Any:
    """Create a compressor; None selects the identity compressor."""
    return _instantiate(config, DEFAULT_COMPRESSOR, is_compressor_instance, kwargs)


def create_codec(config: str | type | Any | None, **kwargs: Any) -> Any:
    """Create a codec; None selects ``SerializingCodec`` built with ``kwargs``.

    An instance is returned as-is and ``kwargs`` are ignored.
    """
    return _instantiate(config, DEFAULT_CODEC, is_codec_instance, kwargs)
