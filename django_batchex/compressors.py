# Derived from django-redis (https://github.com/jazzband/django-redis)
# Copyright (c) 2011-2016 Andrey Antukh <niwi@niwi.nz>
# Copyright (c) 2011 Sean Bleier
# Licensed under BSD-3-Clause
#
# django-redis was used as inspiration for this project.

"""Value compressors for the serializing codec.

A compressor only runs on values longer than ``min_length`` bytes, so small
payloads in a batch reach the store unchanged. Decompressing data a
compressor did not produce raises ``CompressorError``, which is how the
codec tells it to try the next configured compressor, or none at all.

Example:
    Configure in Django settings::

        BATCH_SUBMITTERS = {
            "default": {
                "OPTIONS": {
                    "compressor": "django_batchex.compressors.ZlibCompressor",
                },
            },
        }
"""

import gzip
import lzma
import zlib
from typing import Any, ClassVar

from django_batchex.exceptions import CompressorError


class BaseCompressor:
    """Base class for batch value compressors.

    Subclasses implement ``_compress`` / ``_decompress`` and list the
    exceptions their library raises on bad input in ``errors``.
    """

    min_length: int = 256
    errors: ClassVar[tuple[type[Exception], ...]] = ()

    def __init__(self, *, min_length: int | None = None, **kwargs: Any) -> None:
        if min_length is not None:
            self.min_length = min_length

    def compress(self, data: bytes) -> bytes:
        if len(data) > self.min_length:
            return self._compress(data)
        return data

    def decompress(self, data: bytes) -> bytes:
        try:
            return self._decompress(data)
        except self.errors as e:
            raise CompressorError from e

    def _compress(self, data: bytes) -> bytes:
        raise NotImplementedError

    def _decompress(self, data: bytes) -> bytes:
        raise NotImplementedError


class IdentityCompressor(BaseCompressor):
    """Leaves values as they are."""

    def _compress(self, data: bytes) -> bytes:
        return data

    def _decompress(self, data: bytes) -> bytes:
        return data


class ZlibCompressor(BaseCompressor):
    level: int = 6
    errors = (zlib.error,)

    def __init__(self, *, level: int | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if level is not None:
            self.level = level

    def _compress(self, data: bytes) -> bytes:
        return zlib.compress(data, self.level)

    def _decompress(self, data: bytes) -> bytes:
        return zlib.decompress(data)


class GzipCompressor(BaseCompressor):
    # Truncated streams raise EOFError rather than BadGzipFile
    errors = (gzip.BadGzipFile, EOFError)

    def _compress(self, data: bytes) -> bytes:
        return gzip.compress(data)

    def _decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)


class LzmaCompressor(BaseCompressor):
    preset: int = 4
    errors = (lzma.LZMAError,)

    def __init__(self, *, preset: int | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if preset is not None:
            self.preset = preset

    def _compress(self, data: bytes) -> bytes:
        return lzma.compress(data, preset=self.preset)

    def _decompress(self, data: bytes) -> bytes:
        return lzma.decompress(data)


__all__ = [
    "BaseCompressor",
    "GzipCompressor",
    "IdentityCompressor",
    "LzmaCompressor",
    "ZlibCompressor",
]
