"""Types for django-batchex.

Entries describe one logical write each. A ``Batch`` groups entries of a
single kind so the submitter can encode them with one routine and send
them through one pipeline. Key types match redis-py and valkey-py and are
defined locally to avoid a runtime dependency on either library.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, NamedTuple, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

# Key types - matches redis.typing.KeyT and valkey.typing.KeyT
type KeyT = bytes | str | memoryview

# Anything the codec can turn into a stored value
type EncodableT = Any

# Relative expiry, as a timedelta or in milliseconds
type TTLT = int | timedelta


class EntryKind(StrEnum):
    """The kinds of write a batch can carry."""

    STRING_SET = "string_set"
    STRING_SET_TTL = "string_set_ttl"
    LIST_PUSH = "list_push"
    SET_ADD = "set_add"
    HASH_PUT = "hash_put"
    HASH_DELETE = "hash_delete"
    SORTED_SET_ADD = "sorted_set_add"


class ListSide(StrEnum):
    """End of a list that values are pushed onto."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"


# =============================================================================
# Entries
# =============================================================================


def _check_values(values: Any) -> None:
    # A bare string would otherwise be pushed one character at a time
    if isinstance(values, (str, bytes, bytearray, memoryview)):
        msg = f"values must be a collection of values, not {type(values).__name__}"
        raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class StringSet:
    kind: ClassVar[EntryKind] = EntryKind.STRING_SET

    key: KeyT
    value: EncodableT


@dataclass(frozen=True, slots=True)
class StringSetWithTTL:
    """A string value that expires after ``ttl``.

    ``ttl`` is either a ``timedelta`` or a number of milliseconds. Anything
    below one millisecond is truncated.
    """

    kind: ClassVar[EntryKind] = EntryKind.STRING_SET_TTL

    key: KeyT
    value: EncodableT
    ttl: TTLT

    @property
    def ttl_ms(self) -> int:
        if isinstance(self.ttl, timedelta):
            return self.ttl // timedelta(milliseconds=1)
        return int(self.ttl)


@dataclass(frozen=True, slots=True)
class ListPush:
    """Values pushed onto one list in a single command, in the given order."""

    kind: ClassVar[EntryKind] = EntryKind.LIST_PUSH

    key: KeyT
    values: tuple[EncodableT, ...]
    side: ListSide = ListSide.RIGHT

    def __post_init__(self) -> None:
        _check_values(self.values)
        object.__setattr__(self, "values", tuple(self.values))
        object.__setattr__(self, "side", ListSide(self.side))


@dataclass(frozen=True, slots=True)
class SetAdd:
    """Members added to one set in a single command."""

    kind: ClassVar[EntryKind] = EntryKind.SET_ADD

    key: KeyT
    values: tuple[EncodableT, ...]

    def __post_init__(self) -> None:
        _check_values(self.values)
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True, slots=True)
class HashPut:
    kind: ClassVar[EntryKind] = EntryKind.HASH_PUT

    key: KeyT
    field: KeyT
    value: EncodableT


@dataclass(frozen=True, slots=True)
class HashDelete:
    kind: ClassVar[EntryKind] = EntryKind.HASH_DELETE

    key: KeyT
    field: KeyT


@dataclass(frozen=True, slots=True)
class SortedSetAdd:
    kind: ClassVar[EntryKind] = EntryKind.SORTED_SET_ADD

    key: KeyT
    score: float
    value: EncodableT


type Entry = StringSet | StringSetWithTTL | ListPush | SetAdd | HashPut | HashDelete | SortedSetAdd

ENTRY_CLASSES: dict[EntryKind, type] = {
    EntryKind.STRING_SET: StringSet,
    EntryKind.STRING_SET_TTL: StringSetWithTTL,
    EntryKind.LIST_PUSH: ListPush,
    EntryKind.SET_ADD: SetAdd,
    EntryKind.HASH_PUT: HashPut,
    EntryKind.HASH_DELETE: HashDelete,
    EntryKind.SORTED_SET_ADD: SortedSetAdd,
}


# =============================================================================
# Batches and commands
# =============================================================================


@dataclass(frozen=True, slots=True)
class Batch:
    """An ordered group of entries of one kind, submitted together.

    An empty batch is valid and submitting it does nothing. ``kind`` may
    only be omitted for an empty batch.

    Usage:
        batch = Batch.of([StringSet("a", 1), StringSet("b", 2)])
        submitter.submit(batch)
    """

    kind: EntryKind | None
    entries: tuple[Entry, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        if self.kind is None:
            if self.entries:
                raise ValueError("A non-empty batch needs a kind")
            return
        object.__setattr__(self, "kind", EntryKind(self.kind))
        for index, entry in enumerate(self.entries):
            entry_kind = getattr(entry, "kind", None)
            if entry_kind != self.kind:
                msg = f"Entry {index} is {entry_kind or type(entry).__name__}, expected {self.kind}"
                raise ValueError(msg)

    @classmethod
    def of(cls, entries: Iterable[Entry], kind: EntryKind | None = None) -> Self:
        """Build a batch, taking the kind from the first entry if not given."""
        entries = tuple(entries)
        if kind is None and entries:
            kind = getattr(entries[0], "kind", None)
            if kind is None:
                raise ValueError(f"{type(entries[0]).__name__} is not a batch entry")
        return cls(kind, entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


class Command(NamedTuple):
    """One store command, already encoded and ready to be queued."""

    name: str
    args: tuple[Any, ...]


# =============================================================================
# Collaborator protocols
# =============================================================================


@runtime_checkable
class Codec(Protocol):
    """Turns keys, hash fields and values into their wire bytes.

    Implementations must be deterministic and free of shared mutable
    state, since one codec serves concurrent submissions.
    """

    def encode_key(self, key: KeyT) -> bytes: ...

    def encode_value(self, value: EncodableT) -> bytes: ...

    def encode_field(self, field: KeyT) -> bytes: ...


class PipelineContextProtocol(Protocol):
    def issue(self, name: str, *args: Any) -> None: ...

    def close(self) -> list[Any]: ...

    def discard(self) -> None: ...

    def __enter__(self) -> Self: ...

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...


@runtime_checkable
class PipelineExecutorProtocol(Protocol):
    """Scoped access to the store's pipelining primitive."""

    def open(self) -> PipelineContextProtocol: ...

    def aopen(self) -> Any: ...
