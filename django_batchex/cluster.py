"""Cluster pipeline executors for Redis-compatible backends.

A cluster pipeline splits its queued commands by slot and sends one
batch per node. Commands keep their relative order on each node, but
there is no ordering across nodes and no MULTI/EXEC, so the
``transaction`` option is ignored here.
"""

from __future__ import annotations

import asyncio
import inspect
import weakref
from typing import Any, override
from urllib.parse import urlparse

from django_batchex.executor import KeyValuePipelineExecutor


class KeyValueClusterPipelineExecutor(KeyValuePipelineExecutor):
    """Cluster executor base class.

    The cluster client manages its own per-node pools, so one instance is
    created lazily and reused for every batch.
    """

    # Set by the library-specific subclasses below
    _cluster_class: type[Any] | None = None
    _async_cluster_class: type[Any] | None = None

    @override
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._cluster_instance: Any | None = None
        # Async clusters are bound to the loop they're created on
        self._async_cluster_instances: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop,
            Any,
        ] = weakref.WeakKeyDictionary()

    def _get_cluster_options(self) -> dict[str, Any]:
        parsed_url = urlparse(self._servers[0])
        # parser_class belongs to single-node pools
        cluster_options = {key: value for key, value in self._pool_options.items() if key != "parser_class"}
        if parsed_url.hostname:
            cluster_options["host"] = parsed_url.hostname
        if parsed_url.port:
            cluster_options["port"] = parsed_url.port
        return cluster_options

    def _build_cluster(self, cluster_class: type[Any] | None) -> Any:
        if cluster_class is None:
            msg = f"{type(self).__name__} does not define a cluster client class"
            raise RuntimeError(msg)
        return cluster_class(**self._get_cluster_options())

    @override
    def get_client(self) -> Any:
        """Return the shared cluster client, creating it on first use."""
        if self._client is not None:
            return self._client
        if self._cluster_instance is None:
            self._cluster_instance = self._build_cluster(self._cluster_class)
        return self._cluster_instance

    @override
    def get_async_client(self) -> Any:
        """Return the async cluster client bound to the running event loop."""
        if self._async_client is not None:
            return self._async_client
        loop = asyncio.get_running_loop()
        if loop not in self._async_cluster_instances:
            self._async_cluster_instances[loop] = self._build_cluster(self._async_cluster_class)
        return self._async_cluster_instances[loop]

    @override
    def _make_pipeline(self, client: Any) -> Any:
        return client.pipeline()

    @override
    def close(self) -> None:
        if self._cluster_instance is not None:
            self._cluster_instance.close()
            self._cluster_instance = None

    @override
    async def aclose(self) -> None:
        cluster = self._async_cluster_instances.pop(asyncio.get_running_loop(), None)
        if cluster is None:
            return
        # redis-py's async cluster has aclose(); older releases only close()
        close = getattr(cluster, "aclose", None) or cluster.close
        result = close()
        if inspect.isawaitable(result):
            await result


# redis-py cluster support
try:
    import redis
    from redis.asyncio.cluster import RedisCluster as AsyncRedisCluster
    from redis.cluster import RedisCluster

    class RedisClusterPipelineExecutor(KeyValueClusterPipelineExecutor):
        """Redis Cluster pipeline executor using redis-py."""

        _lib = redis
        _client_class = redis.Redis
        _pool_class = redis.ConnectionPool
        _cluster_class = RedisCluster
        _async_cluster_class = AsyncRedisCluster

except ImportError:

    class RedisClusterPipelineExecutor(KeyValuePipelineExecutor):  # type: ignore[no-redef]
        """Redis Cluster pipeline executor (requires redis-py)."""

        def __init__(self, *args: Any, **kwargs: Any) -> None:
            raise ImportError(
                "RedisClusterPipelineExecutor requires redis-py to be installed. Install it with: pip install redis",
            )


# valkey-py cluster support
try:
    import valkey
    from valkey.asyncio.cluster import ValkeyCluster as AsyncValkeyCluster
    from valkey.cluster import ValkeyCluster

    class ValkeyClusterPipelineExecutor(KeyValueClusterPipelineExecutor):
        """Valkey Cluster pipeline executor using valkey-py."""

        _lib = valkey
        _client_class = valkey.Valkey
        _pool_class = valkey.ConnectionPool
        _cluster_class = ValkeyCluster
        _async_cluster_class = AsyncValkeyCluster

except ImportError:

    class ValkeyClusterPipelineExecutor(KeyValuePipelineExecutor):  # type: ignore[no-redef]
        """Valkey Cluster pipeline executor (requires valkey-py with cluster support)."""

        def __init__(self, *args: Any, **kwargs: Any) -> None:
            raise ImportError(
                "ValkeyClusterPipelineExecutor requires valkey-py with cluster support. Install it with: pip install valkey",
            )


__all__ = [
    "KeyValueClusterPipelineExecutor",
    "RedisClusterPipelineExecutor",
    "ValkeyClusterPipelineExecutor",
]
