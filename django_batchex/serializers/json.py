import json
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder

from django_batchex.exceptions import SerializerError
from django_batchex.serializers.base import BaseSerializer


class JSONSerializer(BaseSerializer):
    """JSON-based serializer using Django's DjangoJSONEncoder.

    Stored values are human-readable and can be read by non-Python
    consumers of the store, but only JSON-compatible types survive a
    round trip. DjangoJSONEncoder adds datetime, Decimal, UUID and lazy
    string support on the way in.

    Attributes:
        encoder_class: The JSON encoder class to use. Defaults to DjangoJSONEncoder.

    Example:
        Configure in Django settings::

            BATCH_SUBMITTERS = {
                "default": {
                    "BACKEND": "django_batchex.executor.RedisPipelineExecutor",
                    "LOCATION": "redis://localhost:6379/1",
                    "OPTIONS": {
                        "serializer": "django_batchex.serializers.json.JSONSerializer",
                    },
                },
            }
    """

    encoder_class = DjangoJSONEncoder

    def dumps(self, obj: Any) -> bytes:
        try:
            return json.dumps(obj, cls=self.encoder_class).encode()
        except (TypeError, ValueError) as e:
            raise SerializerError from e

    def loads(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializerError from e
