"""Pipeline executors for Redis-compatible stores.

An executor hands out single-use pipeline contexts. Each context is bound
to one client for the lifetime of one batch: commands are queued with
``issue()`` and sent in one round trip by ``close()``.

Architecture:
- KeyValuePipelineExecutor: Base class with all logic, library-agnostic
- RedisPipelineExecutor: Sets class attributes for redis-py
- ValkeyPipelineExecutor: Sets class attributes for valkey-py

The class attributes pattern allows subclasses to swap the underlying
library while inheriting pool management and the context lifecycle.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import weakref
from typing import TYPE_CHECKING, Any, Self

from django.utils.module_loading import import_string

if TYPE_CHECKING:
    from types import TracebackType

_REDIS_AVAILABLE = False
_VALKEY_AVAILABLE = False

try:
    import redis

    _REDIS_AVAILABLE = True
except ImportError:
    redis = None  # type: ignore[assignment]

try:
    import valkey

    _VALKEY_AVAILABLE = True
except ImportError:
    valkey = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# =============================================================================
# Pipeline contexts
# =============================================================================


class PipelineContext:
    """Single-use wrapper around a raw client pipeline.

    Usage:
        with executor.open() as ctx:
            ctx.issue("SET", b"key1", b"value1")
            ctx.issue("HDEL", b"user:1", b"email")
        # both commands were sent in one round trip here

    Leaving the ``with`` block normally flushes; leaving it with an
    exception discards the queued commands. Either way the pipeline is
    reset, which returns its connection to the pool.
    """

    def __init__(self, pipeline: Any, client: Any = None) -> None:
        self._pipeline = pipeline
        self.client = client
        self.issued = 0
        self.closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def issue(self, name: str, *args: Any) -> None:
        """Queue one command. Nothing is sent until close()."""
        if self.closed:
            raise RuntimeError("Cannot issue commands on a closed pipeline context")
        self._pipeline.execute_command(name, *args)
        self.issued += 1

    def close(self) -> list[Any]:
        """Flush every queued command in one round trip and release the connection.

        Returns the raw replies. Calling close() again is a no-op.
        """
        if self.closed:
            return []
        self.closed = True
        try:
            if not self.issued:
                return []
            return self._pipeline.execute()
        finally:
            self._pipeline.reset()

    def discard(self) -> None:
        """Drop queued commands without sending them and release the connection."""
        if self.closed:
            return
        self.closed = True
        self._pipeline.reset()


class AsyncPipelineContext:
    """Async counterpart of PipelineContext, used with ``async with``."""

    def __init__(self, pipeline: Any, client: Any = None) -> None:
        self._pipeline = pipeline
        self.client = client
        self.issued = 0
        self.closed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self.discard()

    def issue(self, name: str, *args: Any) -> None:
        """Queue one command. Queuing never awaits; only close() does I/O."""
        if self.closed:
            raise RuntimeError("Cannot issue commands on a closed pipeline context")
        self._pipeline.execute_command(name, *args)
        self.issued += 1

    async def _reset(self) -> None:
        # Cluster pipelines have no reset(); others may return a coroutine
        reset = getattr(self._pipeline, "reset", None)
        if reset is None:
            return
        result = reset()
        if inspect.isawaitable(result):
            await result

    async def close(self) -> list[Any]:
        if self.closed:
            return []
        self.closed = True
        try:
            if not self.issued:
                return []
            return await self._pipeline.execute()
        finally:
            await self._reset()

    async def discard(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._reset()


# =============================================================================
# KeyValuePipelineExecutor - base class (library-agnostic)
# =============================================================================


class KeyValuePipelineExecutor:
    """Base executor class with configurable library.

    Subclasses must set:
    - _lib: The library module (e.g., valkey or redis)
    - _client_class: The client class (e.g., valkey.Valkey)
    - _pool_class: The connection pool class
    - _async_client_class / _async_pool_class for the async path

    Either pass server URLs, in which case pools are created lazily and
    writes go to the first server, or pass ready-made clients with
    ``client=`` / ``async_client=``.
    """

    # Class attributes - subclasses override these
    _lib: Any = None  # The library module
    _client_class: type | None = None  # e.g., redis.Redis
    _pool_class: type | None = None  # e.g., redis.ConnectionPool
    _async_client_class: type | None = None  # e.g., redis.asyncio.Redis
    _async_pool_class: type | None = None  # e.g., redis.asyncio.ConnectionPool

    # Options consumed by the codec or the executor itself, never passed to pools
    _CLIENT_ONLY_OPTIONS = frozenset(
        {
            "codec",
            "compressor",
            "serializer",
            "key_prefix",
            "transaction",
        }
    )

    def __init__(
        self,
        servers: str | list[str] | None = None,
        *,
        client: Any = None,
        async_client: Any = None,
        transaction: bool = False,
        pool_class: str | type | None = None,
        parser_class: str | type | None = None,
        async_pool_class: str | type | None = None,
        **options: Any,
    ) -> None:
        """Initialize the executor.

        Args:
            servers: Server URL, or a list (or ``,``/``;`` separated string) of URLs
            client: Existing sync client to pipeline through
            async_client: Existing async client to pipeline through
            transaction: Wrap each batch in MULTI/EXEC
            pool_class: Connection pool class or import path
            parser_class: Parser class or import path
            async_pool_class: Async connection pool class or import path
            **options: Additional options passed to connection pools
        """
        if isinstance(servers, str):
            servers = re.split("[;,]", servers)
        self._servers: list[str] = list(servers or [])
        if not self._servers and client is None and async_client is None:
            raise ValueError("Pass server URLs or a client to pipeline through")

        self._client = client
        self._async_client = async_client
        self._transaction = transaction
        self._pool: Any = None

        # Async pools: WeakKeyDictionary keyed by event loop
        # Using WeakKeyDictionary ensures automatic cleanup when the event loop is GC'd
        self._async_pools: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Any] = weakref.WeakKeyDictionary()

        if isinstance(pool_class, str):
            pool_class = import_string(pool_class)
        self._pool_class = pool_class or self.__class__._pool_class  # type: ignore[assignment]

        if isinstance(async_pool_class, str):
            async_pool_class = import_string(async_pool_class)
        self._async_pool_class = async_pool_class or self.__class__._async_pool_class  # type: ignore[assignment]

        if isinstance(parser_class, str):
            parser_class = import_string(parser_class)
        if parser_class is None and self._lib is not None:
            parser_class = self._lib.connection.DefaultParser

        self._pool_options: dict[str, Any] = {"parser_class": parser_class}
        for key, value in options.items():
            if key not in self._CLIENT_ONLY_OPTIONS:
                self._pool_options[key] = value

        self._options = options

    def __repr__(self) -> str:
        target = self._servers[0] if self._servers else repr(self._client or self._async_client)
        return f"<{type(self).__name__} {target}>"

    @property
    def transaction(self) -> bool:
        return self._transaction

    # =========================================================================
    # Connection Pool Management
    # =========================================================================

    def _get_connection_pool(self) -> Any:
        # Writes always go to the first server
        if self._pool is None:
            assert self._pool_class is not None, "Subclasses must set _pool_class"  # noqa: S101
            self._pool = self._pool_class.from_url(  # type: ignore[attr-defined]
                self._servers[0],
                **self._pool_options,
            )
        return self._pool

    def get_client(self) -> Any:
        """Get a client bound to the write pool."""
        if self._client is not None:
            return self._client
        if not self._servers:
            raise RuntimeError("This executor was built with an async client only")
        pool = self._get_connection_pool()
        assert self._client_class is not None, "Subclasses must set _client_class"  # noqa: S101
        return self._client_class(connection_pool=pool)

    def _get_async_connection_pool(self) -> Any:
        """Get the async pool for the running event loop.

        Raises:
            RuntimeError: If no event loop is running or async pool class is not set
        """
        loop = asyncio.get_running_loop()
        if loop in self._async_pools:
            return self._async_pools[loop]

        if self._async_pool_class is None:
            msg = "Async batches require _async_pool_class to be set. Use RedisPipelineExecutor or ValkeyPipelineExecutor."
            raise RuntimeError(msg)

        # parser_class is sync-specific
        async_pool_options = {k: v for k, v in self._pool_options.items() if k != "parser_class"}
        pool = self._async_pool_class.from_url(  # type: ignore[attr-defined]
            self._servers[0],
            **async_pool_options,
        )
        self._async_pools[loop] = pool
        return pool

    def get_async_client(self) -> Any:
        """Get an async client for the running event loop."""
        if self._async_client is not None:
            return self._async_client
        if not self._servers:
            raise RuntimeError("This executor was built with a sync client only")
        pool = self._get_async_connection_pool()
        if self._async_client_class is None:
            msg = "Async batches require _async_client_class to be set. Use RedisPipelineExecutor or ValkeyPipelineExecutor."
            raise RuntimeError(msg)
        return self._async_client_class(connection_pool=pool)

    # =========================================================================
    # Pipelines
    # =========================================================================

    def _make_pipeline(self, client: Any) -> Any:
        return client.pipeline(transaction=self._transaction)

    def open(self) -> PipelineContext:
        """Open a fresh pipeline context for one batch."""
        client = self.get_client()
        return PipelineContext(self._make_pipeline(client), client=client)

    def aopen(self) -> AsyncPipelineContext:
        """Open a fresh async pipeline context for one batch (needs a running loop)."""
        client = self.get_async_client()
        return AsyncPipelineContext(self._make_pipeline(client), client=client)

    def close(self) -> None:
        """Disconnect the pools this executor created. Injected clients are left alone."""
        if self._pool is not None:
            logger.debug("Disconnecting pipeline pool for %s", self._servers[0])
            self._pool.disconnect()
            self._pool = None

    async def aclose(self) -> None:
        """Disconnect the async pool bound to the running event loop, if one was created."""
        pool = self._async_pools.pop(asyncio.get_running_loop(), None)
        if pool is not None:
            logger.debug("Disconnecting async pipeline pool for %s", self._servers[0])
            result = pool.disconnect()
            if inspect.isawaitable(result):
                await result


# =============================================================================
# RedisPipelineExecutor - concrete implementation for redis-py
# =============================================================================

if _REDIS_AVAILABLE:
    from redis.asyncio import ConnectionPool as RedisAsyncConnectionPool
    from redis.asyncio import Redis as RedisAsyncClient

    class RedisPipelineExecutor(KeyValuePipelineExecutor):
        """Pipeline executor using redis-py."""

        _lib = redis
        _client_class = redis.Redis
        _pool_class = redis.ConnectionPool
        _async_client_class = RedisAsyncClient
        _async_pool_class = RedisAsyncConnectionPool

else:

    class RedisPipelineExecutor(KeyValuePipelineExecutor):  # type: ignore[no-redef]
        """Pipeline executor (requires redis-py)."""

        def __init__(self, *args: Any, **kwargs: Any) -> None:
            msg = "RedisPipelineExecutor requires redis-py. Install with: pip install redis"
            raise ImportError(msg)


# =============================================================================
# ValkeyPipelineExecutor - concrete implementation for valkey-py
# =============================================================================

if _VALKEY_AVAILABLE:
    from valkey.asyncio import ConnectionPool as ValkeyAsyncConnectionPool
    from valkey.asyncio import Valkey as ValkeyAsyncClient

    class ValkeyPipelineExecutor(KeyValuePipelineExecutor):
        """Pipeline executor using valkey-py."""

        _lib = valkey
        _client_class = valkey.Valkey
        _pool_class = valkey.ConnectionPool
        _async_client_class = ValkeyAsyncClient
        _async_pool_class = ValkeyAsyncConnectionPool

else:

    class ValkeyPipelineExecutor(KeyValuePipelineExecutor):  # type: ignore[no-redef]
        """Pipeline executor (requires valkey-py)."""

        def __init__(self, *args: Any, **kwargs: Any) -> None:
            raise ImportError("ValkeyPipelineExecutor requires valkey-py. Install with: pip install valkey")


__all__ = [
    "AsyncPipelineContext",
    "KeyValuePipelineExecutor",
    "PipelineContext",
    "RedisPipelineExecutor",
    "ValkeyPipelineExecutor",
]
