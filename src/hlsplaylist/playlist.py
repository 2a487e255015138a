"""Playlist model: an ordered, read-only sequence of tags and URI lines."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Iterator, List, Optional, Tuple, Type, TypeVar, Union

from .tags import (
    MASTER_TAGS,
    MEDIA_TAGS,
    EndList,
    Inf,
    MediaSequence,
    StreamInf,
    Tag,
    TargetDuration,
    Version,
    to_decimal,
)
from .validator import validate


T = TypeVar("T", bound=Tag)


@dataclass(frozen=True)
class Uri:
    """A plain URI line naming a media segment or a variant playlist."""
    value: str

    def __str__(self) -> str:
        return self.value


Entry = Union[Tag, Uri]


class Playlist:
    """Decoded form of a whole playlist.

    Entries keep their source (or builder) order. The derived flags are
    computed once at construction; a Playlist is never mutated afterwards.
    """

    def __init__(self, entries: Iterable[Entry]):
        self._entries: Tuple[Entry, ...] = tuple(entries)
        self.version: Optional[int] = None
        self.is_master = False
        self.is_media = False
        self.has_end_list = False

        for entry in self._entries:
            kind = type(entry)
            if kind is Version and self.version is None:
                self.version = entry.number
            if kind in MASTER_TAGS:
                self.is_master = True
            elif kind in MEDIA_TAGS:
                self.is_media = True
            if kind is EndList:
                self.has_end_list = True

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def __eq__(self, other):
        if not isinstance(other, Playlist):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self):
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"Playlist({len(self._entries)} entries, version={self.version})"

    @property
    def tags(self) -> List[Tag]:
        return [entry for entry in self._entries if isinstance(entry, Tag)]

    @property
    def uris(self) -> List[str]:
        return [entry.value for entry in self._entries if isinstance(entry, Uri)]

    def first(self, tag_type: Type[T]) -> Optional[T]:
        """Return the first tag of exactly ``tag_type``, or None."""
        for entry in self._entries:
            if type(entry) is tag_type:
                return entry
        return None

    def find_all(self, tag_type: Type[T]) -> List[T]:
        return [entry for entry in self._entries if type(entry) is tag_type]

    @property
    def target_duration(self) -> Optional[int]:
        tag = self.first(TargetDuration)
        return tag.seconds if tag else None

    @property
    def media_sequence(self) -> int:
        tag = self.first(MediaSequence)
        return tag.number if tag else 0

    def _described_uris(self, tag_type: Type[T]) -> List[Tuple[T, Uri]]:
        pairs = []
        pending = None
        for entry in self._entries:
            if type(entry) is tag_type:
                pending = entry
            elif isinstance(entry, Uri) and pending is not None:
                pairs.append((pending, entry))
                pending = None
        return pairs

    @property
    def segments(self) -> List[Tuple[Inf, Uri]]:
        """Media segments as (EXTINF, URI) pairs in playlist order."""
        return self._described_uris(Inf)

    @property
    def variants(self) -> List[Tuple[StreamInf, Uri]]:
        """Variant streams as (EXT-X-STREAM-INF, URI) pairs in playlist order."""
        return self._described_uris(StreamInf)

    @property
    def duration(self) -> Decimal:
        return sum((to_decimal(inf.duration) for inf, _ in self.segments), Decimal(0))

    def validate(self) -> None:
        """Check the structural rules a built playlist must satisfy.

        Raises:
            ValidationError: The first rule that fails
        """
        validate(self._entries)

    def dumps(self, newline: str = "\n") -> str:
        from .serializer import dumps
        return dumps(self, newline=newline)
