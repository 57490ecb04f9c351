"""
Data models for chart catalog entries.

This module defines the immutable CatalogEntry dataclass that represents
one chart offered by the remote catalog. The same type is used for the
chart selector's incumbent and challengers, so installed charts are
converted to a CatalogEntry before an update check.

Catalog Wire Format:
    The catalog is a JSON list of chart objects:

        {
            "name": "One",
            "artist": "Metallica",
            "charter": "Harmonix",
            "diff_drums": 5,
            "diff_guitar": 6,
            "diff_bass": -1,
            "diff_keys": null,
            "modifiedTime": "2023-04-01T12:00:00.000Z",
            "md5": "0123456789abcdef0123456789abcdef"
        }

    Every "diff_<category>" key becomes an entry of the difficulties
    mapping. A null value means the category is absent; -1 means the
    category is present but not charted.

Usage:
    from chart_finder.catalog.models import CatalogEntry

    entry = CatalogEntry.from_catalog_dict(chart_data)
    print(f"{entry.title} by {entry.charter_display}")
    print(entry.download_url("https://files.enchor.us"))
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from chart_finder.matching.normalize import strip_style_tags


# Prefix of difficulty keys in the catalog wire format and in song.ini
DIFFICULTY_PREFIX = "diff_"

# Difficulty value meaning "category present but not charted"
NOT_CHARTED = -1


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Args:
        value: Timestamp string such as "2023-04-01T12:00:00.000Z",
               or None.

    Returns:
        Datetime in UTC, or None if the value is missing or malformed.
        Naive timestamps are assumed to be UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    # fromisoformat() before Python 3.11 does not accept a trailing Z
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_difficulty(value: Any) -> int | None:
    """
    Parse one difficulty value.

    Returns:
        The integer difficulty, or None if the value is null or not a
        number. Numeric strings (as found in song.ini) are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def extract_difficulties(data: dict[str, Any]) -> dict[str, int]:
    """
    Collect "diff_<category>" keys into a difficulty mapping.

    Keys are returned in sorted order so the mapping iterates the same
    way regardless of the source document's key order.

    Example:
        {"diff_guitar": 6, "diff_drums": None, "name": "One"}
        -> {"guitar": 6}
    """
    difficulties: dict[str, int] = {}
    for key in sorted(data):
        if not isinstance(key, str) or not key.startswith(DIFFICULTY_PREFIX):
            continue
        category = key[len(DIFFICULTY_PREFIX):]
        if not category:
            continue
        value = parse_difficulty(data[key])
        if value is not None:
            difficulties[category] = value
    return difficulties


@dataclass(frozen=True)
class CatalogEntry:
    """
    Immutable representation of one chart in the catalog.

    Attributes:
        artist: Artist of the charted song.
                Example: "Metallica"

        title: Title of the charted song (the catalog's "name" field).
               Example: "One"

        charter: Author of the chart, possibly with style tags.
                 Example: "<color=#FF0000>Harmonix</color>"

        difficulties: Mapping from category to difficulty. -1 means
                      not charted, >= 0 means charted, higher is harder.
                      A category missing from the mapping is absent.
                      Example: {"drums": 5, "guitar": 6, "bass": -1}

        uploaded_at: When the chart was uploaded or last modified.
                     None if unknown.

        md5: Content digest of the chart package, used to build the
             download reference.

    Note:
        The difficulties dict makes instances unhashable. Entries are
        identified by position in the candidate list, never by hash.
    """

    artist: str
    title: str
    charter: str = ""
    difficulties: dict[str, int] = field(default_factory=dict)
    uploaded_at: datetime | None = None
    md5: str = ""

    @classmethod
    def from_catalog_dict(cls, data: dict[str, Any]) -> "CatalogEntry":
        """
        Create a CatalogEntry from one catalog JSON object.

        Args:
            data: Chart object in the catalog wire format.

        Returns:
            CatalogEntry populated from the object.

        Raises:
            ValueError: If the object has no artist or no name.
        """
        artist = data.get("artist")
        title = data.get("name")
        if not isinstance(artist, str) or not artist.strip():
            raise ValueError("chart has no artist")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("chart has no name")

        charter = data.get("charter")
        md5 = data.get("md5")

        return cls(
            artist=artist.strip(),
            title=title.strip(),
            charter=charter.strip() if isinstance(charter, str) else "",
            difficulties=extract_difficulties(data),
            uploaded_at=parse_timestamp(data.get("modifiedTime")),
            md5=md5.strip().lower() if isinstance(md5, str) else "",
        )

    @property
    def charter_display(self) -> str:
        """Charter name with style tags removed."""
        return strip_style_tags(self.charter)

    def difficulty(self, category: str) -> int | None:
        """Difficulty of one category, or None if the category is absent."""
        return self.difficulties.get(category)

    def has_part(self, category: str) -> bool:
        """True if the category is charted (difficulty >= 0)."""
        value = self.difficulties.get(category)
        return value is not None and value >= 0

    @property
    def difficulty_sum(self) -> int:
        """Sum of all non-negative difficulty values."""
        return sum(value for value in self.difficulties.values() if value >= 0)

    @property
    def instruments(self) -> dict[str, int]:
        """Charted categories and their difficulty, in category order."""
        return {
            category: value
            for category, value in sorted(self.difficulties.items())
            if value >= 0
        }

    def instruments_summary(self) -> str:
        """
        Instrument summary for display.

        Example:
            "drums: 5, guitar: 6" or "no instruments"
        """
        instruments = self.instruments
        if not instruments:
            return "no instruments"
        return ", ".join(f"{name}: {value}" for name, value in instruments.items())

    def download_url(self, base_url: str) -> str:
        """
        Build the download reference of the chart.

        Args:
            base_url: Base URL without trailing slash.

        Returns:
            "{base_url}/{md5}.sng", or "" if the entry has no md5.
        """
        if not self.md5:
            return ""
        return f"{base_url.rstrip('/')}/{self.md5}.sng"

    def to_export_dict(self, base_url: str) -> dict[str, Any]:
        """Convert to a JSON-serializable dict for the CLI export."""
        return {
            "artist": self.artist,
            "title": self.title,
            "charter": self.charter_display,
            "instruments": self.instruments,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "md5": self.md5,
            "download_url": self.download_url(base_url),
        }

    def __str__(self) -> str:
        return f"{self.artist} - {self.title} ({self.charter_display or 'unknown charter'})"
