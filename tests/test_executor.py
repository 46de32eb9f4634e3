"""Tests for pipeline contexts and single-node executors."""

import pytest
import redis

from django_batchex.executor import (
    AsyncPipelineContext,
    KeyValuePipelineExecutor,
    PipelineContext,
    RedisPipelineExecutor,
)
from django_batchex.types import PipelineExecutorProtocol


@pytest.fixture
def pipeline(mocker):
    pipe = mocker.Mock()
    pipe.execute.return_value = [True, True]
    return pipe


@pytest.fixture
def async_pipeline(mocker):
    pipe = mocker.Mock()
    pipe.execute = mocker.AsyncMock(return_value=[True])
    pipe.reset = mocker.AsyncMock()
    return pipe


class TestPipelineContext:
    def test_issue_queues_without_sending(self, pipeline):
        context = PipelineContext(pipeline)
        context.issue("SET", b"k", b"v")
        pipeline.execute_command.assert_called_once_with("SET", b"k", b"v")
        pipeline.execute.assert_not_called()
        assert context.issued == 1

    def test_close_flushes_once_and_resets(self, pipeline):
        context = PipelineContext(pipeline)
        context.issue("SET", b"a", b"1")
        context.issue("SET", b"b", b"2")
        assert context.close() == [True, True]
        pipeline.execute.assert_called_once_with()
        pipeline.reset.assert_called_once_with()

    def test_close_is_idempotent(self, pipeline):
        context = PipelineContext(pipeline)
        context.issue("SET", b"a", b"1")
        context.close()
        assert context.close() == []
        assert pipeline.execute.call_count == 1
        assert pipeline.reset.call_count == 1

    def test_close_without_commands_skips_round_trip(self, pipeline):
        context = PipelineContext(pipeline)
        assert context.close() == []
        pipeline.execute.assert_not_called()
        pipeline.reset.assert_called_once_with()

    def test_issue_after_close_raises(self, pipeline):
        context = PipelineContext(pipeline)
        context.close()
        with pytest.raises(RuntimeError, match="closed"):
            context.issue("SET", b"k", b"v")

    def test_reset_runs_when_flush_fails(self, pipeline):
        pipeline.execute.side_effect = redis.exceptions.ConnectionError("gone")
        context = PipelineContext(pipeline)
        context.issue("SET", b"k", b"v")
        with pytest.raises(redis.exceptions.ConnectionError):
            context.close()
        pipeline.reset.assert_called_once_with()
        assert context.closed

    def test_with_block_flushes_on_success(self, pipeline):
        with PipelineContext(pipeline) as context:
            context.issue("HDEL", b"user:1", b"email")
        pipeline.execute.assert_called_once_with()

    def test_with_block_discards_on_error(self, pipeline):
        with pytest.raises(ValueError), PipelineContext(pipeline) as context:
            context.issue("SET", b"k", b"v")
            raise ValueError("caller bailed out")
        pipeline.execute.assert_not_called()
        pipeline.reset.assert_called_once_with()


class TestAsyncPipelineContext:
    @pytest.mark.asyncio
    async def test_close_awaits_flush_and_reset(self, async_pipeline):
        context = AsyncPipelineContext(async_pipeline)
        context.issue("SET", b"k", b"v")
        assert await context.close() == [True]
        async_pipeline.execute.assert_awaited_once()
        async_pipeline.reset.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sync_reset_supported(self, async_pipeline, mocker):
        async_pipeline.reset = mocker.Mock(return_value=None)
        async with AsyncPipelineContext(async_pipeline) as context:
            context.issue("SET", b"k", b"v")
        async_pipeline.reset.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_missing_reset_supported(self, async_pipeline):
        del async_pipeline.reset
        context = AsyncPipelineContext(async_pipeline)
        context.issue("SET", b"k", b"v")
        await context.close()
        assert context.closed

    @pytest.mark.asyncio
    async def test_async_with_discards_on_error(self, async_pipeline):
        with pytest.raises(KeyError):
            async with AsyncPipelineContext(async_pipeline) as context:
                context.issue("SET", b"k", b"v")
                raise KeyError("boom")
        async_pipeline.execute.assert_not_awaited()
        async_pipeline.reset.assert_awaited_once()


class TestExecutorConstruction:
    def test_requires_servers_or_client(self):
        with pytest.raises(ValueError, match="server URLs or a client"):
            RedisPipelineExecutor()

    def test_server_string_split(self):
        executor = RedisPipelineExecutor("redis://a:6379/0,redis://b:6379/0;redis://c:6379/0")
        assert executor._servers == ["redis://a:6379/0", "redis://b:6379/0", "redis://c:6379/0"]

    def test_client_only_options_not_passed_to_pool(self):
        executor = RedisPipelineExecutor(
            "redis://localhost:6379/0",
            serializer="x",
            compressor="y",
            key_prefix="z",
            socket_timeout=3,
        )
        assert executor._pool_options["socket_timeout"] == 3
        assert not {"serializer", "compressor", "key_prefix"} & executor._pool_options.keys()

    def test_default_parser_class(self):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        assert executor._pool_options["parser_class"] is redis.connection.DefaultParser

    def test_pool_class_from_path(self):
        executor = RedisPipelineExecutor(
            "redis://localhost:6379/0",
            pool_class="redis.BlockingConnectionPool",
        )
        assert executor._pool_class is redis.BlockingConnectionPool

    def test_satisfies_protocol(self):
        assert isinstance(RedisPipelineExecutor("redis://localhost:6379/0"), PipelineExecutorProtocol)

    def test_transaction_default_off(self):
        assert RedisPipelineExecutor("redis://localhost:6379/0").transaction is False


class TestExecutorPools:
    def test_pool_created_lazily_and_reused(self):
        executor = RedisPipelineExecutor("redis://localhost:6379/3")
        assert executor._pool is None
        pool = executor._get_connection_pool()
        assert pool is executor._get_connection_pool()
        assert pool.connection_kwargs["db"] == 3

    def test_client_bound_to_pool(self):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        client = executor.get_client()
        assert isinstance(client, redis.Redis)
        assert client.connection_pool is executor._get_connection_pool()

    def test_close_disconnects_own_pool(self, mocker):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        pool = executor._get_connection_pool()
        disconnect = mocker.patch.object(pool, "disconnect")
        executor.close()
        disconnect.assert_called_once_with()
        assert executor._pool is None

    def test_close_leaves_injected_client(self, mocker):
        client = mocker.Mock()
        RedisPipelineExecutor(client=client).close()
        client.close.assert_not_called()

    def test_sync_only_executor_has_no_async_client(self, mocker):
        executor = RedisPipelineExecutor(client=mocker.Mock())
        with pytest.raises(RuntimeError, match="sync client only"):
            executor.get_async_client()

    @pytest.mark.asyncio
    async def test_async_pool_per_loop(self):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        pool = executor._get_async_connection_pool()
        assert pool is executor._get_async_connection_pool()
        assert "parser_class" not in pool.connection_kwargs

    @pytest.mark.asyncio
    async def test_aclose_disconnects_async_pool(self, mocker):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        pool = executor._get_async_connection_pool()
        disconnect = mocker.patch.object(pool, "disconnect", new_callable=mocker.AsyncMock)
        await executor.aclose()
        disconnect.assert_awaited_once_with()
        assert len(executor._async_pools) == 0

    @pytest.mark.asyncio
    async def test_aclose_without_async_pool_is_noop(self):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        await executor.aclose()
        assert len(executor._async_pools) == 0

    @pytest.mark.asyncio
    async def test_aclose_leaves_sync_pool(self, mocker):
        executor = RedisPipelineExecutor("redis://localhost:6379/0")
        pool = executor._get_connection_pool()
        disconnect = mocker.patch.object(pool, "disconnect")
        await executor.aclose()
        disconnect.assert_not_called()
        assert executor._pool is pool


class TestOpen:
    def test_open_binds_context_to_client(self, mocker):
        client = mocker.Mock()
        context = KeyValuePipelineExecutor(client=client).open()
        assert isinstance(context, PipelineContext)
        assert context.client is client
        client.pipeline.assert_called_once_with(transaction=False)

    def test_transaction_passed_to_pipeline(self, mocker):
        client = mocker.Mock()
        KeyValuePipelineExecutor(client=client, transaction=True).open()
        client.pipeline.assert_called_once_with(transaction=True)

    def test_each_open_is_a_fresh_pipeline(self, executor):
        first = executor.open()
        second = executor.open()
        assert first._pipeline is not second._pipeline

    def test_open_against_fake_store(self, executor, fake_client):
        with executor.open() as context:
            context.issue("SET", b"a", b"1")
            context.issue("RPUSH", b"q", b"x", b"y")
        assert fake_client.get("a") == b"1"
        assert fake_client.lrange("q", 0, -1) == [b"x", b"y"]

    @pytest.mark.asyncio
    async def test_aopen_uses_async_client(self, mocker):
        async_client = mocker.Mock()
        context = KeyValuePipelineExecutor(async_client=async_client).aopen()
        assert isinstance(context, AsyncPipelineContext)
        assert context.client is async_client
