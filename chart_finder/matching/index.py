"""
Identity index over chart records, keyed by normalized artist.

The index is built once per run and never mutated. Lookups return every
record whose normalized artist is within a maximum edit distance of the
normalized query.

Acceleration:
    Keys are bucketed by length. Two strings whose lengths differ by more
    than k cannot be within edit distance k, so a lookup only compares the
    query against keys in buckets len(query) - k .. len(query) + k. Each
    comparison uses rapidfuzz's Levenshtein with a score cutoff.

The index is generic over records with an `artist` attribute; it is used
for both CatalogEntry (candidate matching) and InstalledEntry (installed
predicate).

Usage:
    from chart_finder.matching.index import IdentityIndex

    index = IdentityIndex.build(catalog_entries)
    for entry in index.lookup("Metallica", max_distance=1):
        print(entry.title)
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Generic, Iterable, Protocol, Sequence, TypeVar

from chart_finder.matching.normalize import normalize_text, within_distance


class HasArtist(Protocol):
    artist: str


RecordT = TypeVar("RecordT", bound=HasArtist)


@dataclass(frozen=True)
class _ArtistKey:
    key: str
    # Positions of the records sharing this key, ascending
    positions: tuple[int, ...]


class IdentityIndex(Generic[RecordT]):
    """
    Read-only fuzzy index from normalized artist to records.

    Attributes:
        size: Number of indexed records.

    Thread Safety:
        Instances are immutable after build() and can be queried from any
        number of threads.
    """

    def __init__(
        self,
        records: tuple[RecordT, ...],
        buckets: dict[int, tuple[_ArtistKey, ...]],
    ) -> None:
        self._records = records
        self._buckets = buckets

    @classmethod
    def build(cls, records: Iterable[RecordT]) -> "IdentityIndex[RecordT]":
        """
        Build an index from records.

        Records whose artist normalizes to an empty string are not
        indexed; they can never be matched.

        Args:
            records: Records in catalog order.

        Returns:
            A new IdentityIndex.
        """
        records = tuple(records)

        positions_by_key: dict[str, list[int]] = defaultdict(list)
        for position, record in enumerate(records):
            key = normalize_text(record.artist)
            if key:
                positions_by_key[key].append(position)

        buckets: dict[int, list[_ArtistKey]] = defaultdict(list)
        for key, positions in positions_by_key.items():
            buckets[len(key)].append(_ArtistKey(key, tuple(positions)))

        return cls(records, {length: tuple(keys) for length, keys in buckets.items()})

    @property
    def size(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def lookup(self, query: str, max_distance: int) -> list[RecordT]:
        """
        Find records whose artist is within max_distance edits of query.

        All matching artist spellings are returned. Records are returned
        in the order they were given to build().

        Args:
            query: Artist to look up (raw; normalized here).
            max_distance: Maximum edit distance, >= 0.

        Returns:
            Matching records, possibly empty.

        Raises:
            ValueError: If max_distance is negative.

        Example:
            index.lookup("Metallica", 1) matches "Metalica" but not "Megadeth".
        """
        if max_distance < 0:
            raise ValueError("max_distance must be non-negative")

        normalized = normalize_text(query)
        if not normalized:
            return []

        positions: list[int] = []
        query_length = len(normalized)
        for length in range(query_length - max_distance, query_length + max_distance + 1):
            for artist_key in self._buckets.get(length, ()):
                if within_distance(normalized, artist_key.key, max_distance):
                    positions.extend(artist_key.positions)

        return [self._records[position] for position in sorted(positions)]

    def records(self) -> Sequence[RecordT]:
        """All indexed records in build order."""
        return self._records
