# Derived from django-redis (https://github.com/jazzband/django-redis)
# Copyright (c) 2011-2016 Andrey Antukh <niwi@niwi.nz>
# Copyright (c) 2011 Sean Bleier
# Licensed under BSD-3-Clause
#
# django-redis was used as inspiration for this project.

"""Exceptions for django-batchex.

This module defines the exceptions a batch submission may raise. Every
failure propagates to the caller; nothing is retried or swallowed here.
"""

from __future__ import annotations

import socket
from typing import Any

from django.core.exceptions import ImproperlyConfigured

# Build exception tuples from available libraries (redis-py / valkey-py).
# These are the errors the submitter translates into BatchSubmissionError.
_exception_list: list[type[Exception]] = [socket.timeout]

try:
    from redis.exceptions import ConnectionError as RedisConnectionError
    from redis.exceptions import RedisClusterException
    from redis.exceptions import ResponseError as RedisResponseError
    from redis.exceptions import TimeoutError as RedisTimeoutError

    _exception_list.extend([RedisConnectionError, RedisTimeoutError, RedisResponseError, RedisClusterException])
except ImportError:
    pass

try:
    from valkey.exceptions import ConnectionError as ValkeyConnectionError
    from valkey.exceptions import ResponseError as ValkeyResponseError
    from valkey.exceptions import TimeoutError as ValkeyTimeoutError

    _exception_list.extend([ValkeyConnectionError, ValkeyTimeoutError, ValkeyResponseError])
except ImportError:
    pass

_main_exceptions = tuple(_exception_list)


class CompressorError(Exception):
    """Raised when compression or decompression fails.

    When several compressors are configured, this error makes the codec
    fall back to the next one while decoding.
    """


class SerializerError(Exception):
    """Raised when serialization or deserialization fails.

    This can occur when:
    - The data format doesn't match the expected serializer format
    - The data is corrupted
    - The serializer encounters an incompatible type

    When several serializers are configured, this error makes the codec
    fall back to the next one while decoding.
    """


class EncodingError(Exception):
    """Raised when an entry of a batch cannot be encoded.

    Encoding happens for the whole batch before the pipeline is opened, so
    when this is raised no command of the batch has reached the store.
    The underlying codec error is available as ``__cause__``.

    Attributes:
        index: Position of the offending entry in the batch.
        entry: The entry that failed to encode.
    """

    def __init__(self, index: int, entry: Any) -> None:
        self.index = index
        self.entry = entry
        super().__init__(index, entry)

    def __str__(self) -> str:
        msg = f"Could not encode entry {self.index} ({self.entry!r})"
        if self.__cause__ is not None:
            msg += f": {type(self.__cause__).__name__}: {self.__cause__}"
        return msg


class BatchSubmissionError(Exception):
    """Raised when the store or the connection fails a pipelined batch.

    The error covers the whole batch. Pipelining gives no per-command
    outcome, so the caller cannot tell which queued command failed, and
    the store may already have applied the commands queued before it.
    The client library error is available as ``__cause__``.

    Attributes:
        connection: The client the pipeline was bound to, if one was acquired.
        kind: The entry kind of the failed batch.
        size: Number of commands the batch queued.

    Example:
        Retrying is left to the caller::

            from django_batchex.exceptions import BatchSubmissionError

            try:
                submitter.set_values({"user:1": profile})
            except BatchSubmissionError:
                logger.warning("Profile batch failed, scheduling retry")
                schedule_retry()
    """

    def __init__(self, connection: Any = None, kind: str | None = None, size: int = 0) -> None:
        self.connection = connection
        self.kind = kind
        self.size = size
        super().__init__(connection, kind, size)

    def __str__(self) -> str:
        msg = f"Pipelined batch of {self.size} {self.kind} command(s) failed"
        if self.__cause__ is not None:
            msg += f": {type(self.__cause__).__name__}: {self.__cause__}"
        return msg


class InvalidSubmitterBackendError(ImproperlyConfigured):
    """Raised when a BATCH_SUBMITTERS alias is missing or misconfigured."""
