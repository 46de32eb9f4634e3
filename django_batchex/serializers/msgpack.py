from typing import Any

import msgpack

from django_batchex.exceptions import SerializerError
from django_batchex.serializers.base import BaseSerializer


class MessagePackSerializer(BaseSerializer):
    """MessagePack-based serializer for compact binary values.

    Supports None, bool, int, float, str, bytes, list and dict. Other types
    (datetime, Decimal, custom objects) fail to encode, which aborts the
    batch they belong to.
    """

    def dumps(self, obj: Any) -> bytes:
        try:
            return msgpack.dumps(obj)
        except (TypeError, ValueError, OverflowError) as e:
            raise SerializerError from e

    def loads(self, data: bytes) -> Any:
        try:
            return msgpack.loads(data, raw=False)
        except Exception as e:
            raise SerializerError from e
