"""
Data models for the listener's tracks and the local chart library.

Track is the external input of a reconciliation run: one song the user
listens to. InstalledEntry is one chart found in the local Songs folder.
Both are immutable and discarded at the end of the run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from chart_finder.catalog.models import CatalogEntry


@dataclass(frozen=True)
class Track:
    """
    Immutable representation of a listened track.

    Attributes:
        artist: Track artist as reported by the listening service.
                Example: "Metallica"

        title: Track title.
               Example: "One"

        play_count: Number of completed plays, 0 when the source does not
                    provide play counts (e.g. a plain track list).
    """

    artist: str
    title: str
    play_count: int = 0

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"


@dataclass(frozen=True)
class InstalledEntry:
    """
    Immutable representation of a chart installed in the local library.

    Attributes:
        artist: Artist from song.ini.
        title: Song name from song.ini.
        charter: Charter from song.ini, "" if unknown.
        difficulties: Mapping from category to difficulty, same meaning as
                      CatalogEntry.difficulties.
        modified_time: Last modification time of the chart, None if unknown.
        path: Song folder, None for entries not backed by a folder.
    """

    artist: str
    title: str
    charter: str = ""
    difficulties: dict[str, int] = field(default_factory=dict)
    modified_time: datetime | None = None
    path: Path | None = None

    def to_catalog_entry(self) -> CatalogEntry:
        """
        Convert to a CatalogEntry so the chart selector can compare it.

        The modification time stands in for the upload time.
        """
        return CatalogEntry(
            artist=self.artist,
            title=self.title,
            charter=self.charter,
            difficulties=dict(self.difficulties),
            uploaded_at=self.modified_time,
        )

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"
