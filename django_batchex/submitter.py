"""Batch submitter: one pipelined round trip per batch.

Every entry of a batch is encoded first. Only when the whole batch has
encoded cleanly is a pipeline context opened, one command queued per entry
in input order, and the context flushed as a single unit. An empty batch
never touches the executor.

Guarantees:
- Commands reach the store in the order the entries were given, so later
  entries for the same key win.
- An encoding error aborts the batch before anything is sent.
- A connection or command error surfaces as one BatchSubmissionError for
  the whole batch. Pipelining is not a transaction: the store may have
  applied some commands of a failed batch, and there is no way to tell
  which one failed. Commands from other clients may interleave unless the
  executor was built with ``transaction=True``.

Usage:
    submitter = BatchSubmitter(RedisPipelineExecutor("redis://localhost:6379/0"), SerializingCodec())
    submitter.set_values({"user:1": {"name": "Ada"}, "user:2": {"name": "Grace"}})
    submitter.add_sorted_set_values([("leaderboard", 10.5, "alice"), ("leaderboard", 20.0, "bob")])
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from django_batchex.exceptions import BatchSubmissionError, EncodingError, _main_exceptions
from django_batchex.types import (
    ENTRY_CLASSES,
    Batch,
    Command,
    EntryKind,
    HashDelete,
    HashPut,
    ListPush,
    ListSide,
    SetAdd,
    SortedSetAdd,
    StringSet,
    StringSetWithTTL,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from django_batchex.types import Codec, PipelineExecutorProtocol

logger = logging.getLogger(__name__)


# =============================================================================
# Per-kind encoders
# =============================================================================


def _encode_string_set(codec: Codec, entry: StringSet) -> Command:
    return Command("SET", (codec.encode_key(entry.key), codec.encode_value(entry.value)))


def _encode_string_set_ttl(codec: Codec, entry: StringSetWithTTL) -> Command:
    # PSETEX takes the expiry before the value
    return Command("PSETEX", (codec.encode_key(entry.key), entry.ttl_ms, codec.encode_value(entry.value)))


def _encode_list_push(codec: Codec, entry: ListPush) -> Command:
    name = "LPUSH" if entry.side is ListSide.LEFT else "RPUSH"
    return Command(name, (codec.encode_key(entry.key), *(codec.encode_value(v) for v in entry.values)))


def _encode_set_add(codec: Codec, entry: SetAdd) -> Command:
    return Command("SADD", (codec.encode_key(entry.key), *(codec.encode_value(v) for v in entry.values)))


def _encode_hash_put(codec: Codec, entry: HashPut) -> Command:
    return Command(
        "HSET",
        (codec.encode_key(entry.key), codec.encode_field(entry.field), codec.encode_value(entry.value)),
    )


def _encode_hash_delete(codec: Codec, entry: HashDelete) -> Command:
    return Command("HDEL", (codec.encode_key(entry.key), codec.encode_field(entry.field)))


def _encode_sorted_set_add(codec: Codec, entry: SortedSetAdd) -> Command:
    # The client only sends int, float, str and bytes; a Decimal score would fail at flush
    return Command("ZADD", (codec.encode_key(entry.key), float(entry.score), codec.encode_value(entry.value)))


ENCODERS: dict[EntryKind, Callable[[Codec, Any], Command]] = {
    EntryKind.STRING_SET: _encode_string_set,
    EntryKind.STRING_SET_TTL: _encode_string_set_ttl,
    EntryKind.LIST_PUSH: _encode_list_push,
    EntryKind.SET_ADD: _encode_set_add,
    EntryKind.HASH_PUT: _encode_hash_put,
    EntryKind.HASH_DELETE: _encode_hash_delete,
    EntryKind.SORTED_SET_ADD: _encode_sorted_set_add,
}


def build_batch(kind: EntryKind, values: Iterable[Any] | Mapping[Any, Any], **defaults: Any) -> Batch:
    """Build a batch of ``kind`` from entries, plain tuples, or a mapping.

    Tuples are unpacked into the entry class. A mapping is read as
    ``(key, value)`` pairs. ``defaults`` are extra entry fields applied to
    every entry, e.g. ``side`` for list pushes.
    """
    entry_class = ENTRY_CLASSES[kind]
    items = values.items() if isinstance(values, Mapping) else values
    entries = []
    for item in items:
        if isinstance(item, entry_class):
            entry = dataclasses.replace(item, **defaults) if defaults else item
        elif isinstance(item, (tuple, list)):
            entry = entry_class(*item, **defaults)
        else:
            # Batch rejects anything that is not an entry of this kind
            entry = item
        entries.append(entry)
    return Batch(kind, entries)


# =============================================================================
# BatchSubmitter
# =============================================================================


class BatchSubmitter:
    """Submits batches of writes through one pipeline each.

    The executor and codec are passed in explicitly. The submitter holds no
    other state, so one instance can serve concurrent callers; each
    submission opens its own pipeline context.
    """

    def __init__(self, executor: PipelineExecutorProtocol, codec: Codec) -> None:
        self._executor = executor
        self._codec = codec

    def __repr__(self) -> str:
        return f"<{type(self).__name__} executor={self._executor!r} codec={self._codec!r}>"

    @property
    def executor(self) -> PipelineExecutorProtocol:
        return self._executor

    @property
    def codec(self) -> Codec:
        return self._codec

    def close(self) -> None:
        """Release the executor's pools, if it owns any."""
        close = getattr(self._executor, "close", None)
        if close is not None:
            close()

    async def aclose(self) -> None:
        """Release the executor's async pools for the running event loop."""
        aclose = getattr(self._executor, "aclose", None)
        if aclose is not None:
            await aclose()

    # =========================================================================
    # Core
    # =========================================================================

    def prepare(self, batch: Batch) -> list[Command]:
        """Encode every entry of ``batch`` into a store command, in order.

        Performs no I/O.

        Raises:
            EncodingError: If any entry fails to encode. Its ``index`` points
                at the entry and the codec error is chained as the cause.
        """
        if not batch:
            return []
        encode = ENCODERS[batch.kind]
        commands = []
        for index, entry in enumerate(batch):
            try:
                commands.append(encode(self._codec, entry))
            except Exception as e:
                raise EncodingError(index, entry) from e
        return commands

    def submit(self, batch: Batch) -> None:
        """Send ``batch`` to the store in one pipelined round trip.

        Raises:
            EncodingError: Before anything is sent, if an entry fails to encode.
            BatchSubmissionError: If acquiring the connection, queuing, or the
                flush fails.
        """
        if not batch:
            return
        commands = self.prepare(batch)
        logger.debug("Submitting %d %s command(s) in one pipeline", len(commands), batch.kind)

        connection = None
        try:
            with self._executor.open() as context:
                connection = getattr(context, "client", None)
                for command in commands:
                    context.issue(command.name, *command.args)
        except _main_exceptions as e:
            raise BatchSubmissionError(connection=connection, kind=batch.kind, size=len(commands)) from e

    async def asubmit(self, batch: Batch) -> None:
        """Send ``batch`` to the store in one pipelined round trip asynchronously."""
        if not batch:
            return
        commands = self.prepare(batch)
        logger.debug("Submitting %d %s command(s) in one async pipeline", len(commands), batch.kind)

        connection = None
        try:
            async with self._executor.aopen() as context:
                connection = getattr(context, "client", None)
                for command in commands:
                    context.issue(command.name, *command.args)
        except _main_exceptions as e:
            raise BatchSubmissionError(connection=connection, kind=batch.kind, size=len(commands)) from e

    # =========================================================================
    # String Operations
    # =========================================================================

    def set_values(self, values: Mapping[Any, Any] | Iterable[StringSet | tuple]) -> None:
        """SET each key to its value. Accepts a mapping or ``(key, value)`` pairs."""
        self.submit(build_batch(EntryKind.STRING_SET, values))

    def set_values_with_ttl(self, values: Iterable[StringSetWithTTL | tuple]) -> None:
        """PSETEX each ``(key, value, ttl)``; ``ttl`` is a timedelta or milliseconds."""
        self.submit(build_batch(EntryKind.STRING_SET_TTL, values))

    async def aset_values(self, values: Mapping[Any, Any] | Iterable[StringSet | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.STRING_SET, values))

    async def aset_values_with_ttl(self, values: Iterable[StringSetWithTTL | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.STRING_SET_TTL, values))

    # =========================================================================
    # List Operations
    # =========================================================================

    def left_push_list_values(self, values: Iterable[ListPush | tuple]) -> None:
        """LPUSH every ``(key, values)`` pair, all values of a key in one command."""
        self.submit(build_batch(EntryKind.LIST_PUSH, values, side=ListSide.LEFT))

    def right_push_list_values(self, values: Iterable[ListPush | tuple]) -> None:
        """RPUSH every ``(key, values)`` pair, all values of a key in one command."""
        self.submit(build_batch(EntryKind.LIST_PUSH, values, side=ListSide.RIGHT))

    async def aleft_push_list_values(self, values: Iterable[ListPush | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.LIST_PUSH, values, side=ListSide.LEFT))

    async def aright_push_list_values(self, values: Iterable[ListPush | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.LIST_PUSH, values, side=ListSide.RIGHT))

    # =========================================================================
    # Set Operations
    # =========================================================================

    def add_set_values(self, values: Iterable[SetAdd | tuple]) -> None:
        """SADD every ``(key, members)`` pair, all members of a key in one command."""
        self.submit(build_batch(EntryKind.SET_ADD, values))

    async def aadd_set_values(self, values: Iterable[SetAdd | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.SET_ADD, values))

    # =========================================================================
    # Hash Operations
    # =========================================================================

    def put_hash_values(self, values: Iterable[HashPut | tuple]) -> None:
        """HSET every ``(key, field, value)`` triple."""
        self.submit(build_batch(EntryKind.HASH_PUT, values))

    def delete_hash_values(self, values: Mapping[Any, Any] | Iterable[HashDelete | tuple]) -> None:
        """HDEL every ``(key, field)`` pair.

        A mapping of key to field works too, but can only name one field per key.
        """
        self.submit(build_batch(EntryKind.HASH_DELETE, values))

    async def aput_hash_values(self, values: Iterable[HashPut | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.HASH_PUT, values))

    async def adelete_hash_values(self, values: Mapping[Any, Any] | Iterable[HashDelete | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.HASH_DELETE, values))

    # =========================================================================
    # Sorted Set Operations
    # =========================================================================

    def add_sorted_set_values(self, values: Iterable[SortedSetAdd | tuple]) -> None:
        """ZADD every ``(key, score, member)`` triple."""
        self.submit(build_batch(EntryKind.SORTED_SET_ADD, values))

    async def aadd_sorted_set_values(self, values: Iterable[SortedSetAdd | tuple]) -> None:
        await self.asubmit(build_batch(EntryKind.SORTED_SET_ADD, values))


__all__ = [
    "ENCODERS",
    "BatchSubmitter",
    "build_batch",
]
