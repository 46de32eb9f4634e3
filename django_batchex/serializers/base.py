from typing import Any


class BaseSerializer:
    """Base class for batch value serializers.

    Any object with ``dumps`` and ``loads`` methods works as a serializer;
    this class only fixes the interface. ``dumps`` must return bytes because
    the codec hands its output straight to the pipeline.

    Serializers accept ``**kwargs`` for configuration (e.g. ``protocol`` for
    pickle). ``create_serializer()`` in ``django_batchex.compat`` passes the
    configured options through.
    """

    def __init__(self, **kwargs: Any) -> None:
        pass

    def dumps(self, obj: Any) -> bytes:
        raise NotImplementedError

    def loads(self, data: bytes) -> Any:
        raise NotImplementedError
