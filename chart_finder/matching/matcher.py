"""
Candidate matching between listened tracks and catalog charts.

Matching Algorithm:
    1. Artist lookup in the IdentityIndex (bounded edit distance,
       default <= 1 after normalization)
    2. Title verification on every artist match: normalized edit distance
       <= 4, or one title containing the other
    3. Survivors are returned in catalog order, unranked

The installed predicate uses the same two steps against the local library
with looser thresholds (artist <= 2, title <= 4), so a chart the user
already has is recognized even when song.ini spells things differently.

Usage:
    from chart_finder.matching.matcher import CandidateMatcher

    matcher = CandidateMatcher(index, config.matching)
    candidates = matcher.match(track)
"""

from typing import Callable, Iterable

from chart_finder.catalog.models import CatalogEntry
from chart_finder.core.config import MatchingConfig
from chart_finder.core.exceptions import InvalidTrackError
from chart_finder.core.logger import get_logger
from chart_finder.library.models import InstalledEntry, Track
from chart_finder.matching.index import IdentityIndex
from chart_finder.matching.normalize import normalize_text, titles_match

logger = get_logger(__name__)


# (artist, title, charter) -> already installed?
IsInstalledFilter = Callable[..., bool]


class CandidateMatcher:
    """
    Finds the catalog charts that correspond to a track.

    Attributes:
        index: IdentityIndex over the catalog.
        artist_max_distance: Maximum artist edit distance.
        title_max_distance: Maximum title edit distance.

    Thread Safety:
        Stateless apart from the read-only index; match() can be called
        from several worker threads at once.
    """

    def __init__(
        self,
        index: IdentityIndex[CatalogEntry],
        config: MatchingConfig | None = None,
    ) -> None:
        config = config or MatchingConfig()
        self.index = index
        self.artist_max_distance = config.artist_max_distance
        self.title_max_distance = config.title_max_distance

    def match(self, track: Track) -> list[CatalogEntry]:
        """
        Find candidate charts for a track.

        Args:
            track: Track with non-empty artist and title.

        Returns:
            Charts passing both the artist and the title filter, in
            catalog order. Empty if nothing matches.

        Raises:
            InvalidTrackError: If the artist or title is empty, or
                               normalizes to an empty string.
        """
        artist = normalize_text(track.artist or "")
        title = normalize_text(track.title or "")
        if not artist or not title:
            raise InvalidTrackError(
                f"Track has an empty artist or title: {track.artist!r} - {track.title!r}",
                details={"artist": track.artist, "title": track.title}
            )

        artist_matches = self.index.lookup(track.artist, self.artist_max_distance)
        candidates = [
            entry for entry in artist_matches
            if titles_match(title, normalize_text(entry.title), self.title_max_distance)
        ]

        logger.debug(
            f"{track.artist} - {track.title}: {len(artist_matches)} artist matches, "
            f"{len(candidates)} candidates"
        )
        return candidates


def create_is_installed_filter(
    installed: Iterable[InstalledEntry],
    config: MatchingConfig | None = None,
) -> IsInstalledFilter:
    """
    Build the installed predicate from the local library.

    Args:
        installed: Charts found by the library scan.
        config: Matching configuration; the installed_* thresholds are used.

    Returns:
        A function is_installed(artist, title, charter=None) -> bool.
        When a charter is passed and the installed chart records one, the
        normalized charters must be equal as well, so a different chart of
        an installed song is not considered installed.

    Example:
        is_installed = create_is_installed_filter(entries)
        is_installed("Metallica", "One")              # any chart of the song
        is_installed("Metallica", "One", "Harmonix")  # that specific chart
    """
    config = config or MatchingConfig()
    index: IdentityIndex[InstalledEntry] = IdentityIndex.build(installed)
    artist_max_distance = config.installed_artist_max_distance
    title_max_distance = config.installed_title_max_distance

    def is_installed(artist: str, title: str, charter: str | None = None) -> bool:
        normalized_title = normalize_text(title or "")
        if not normalized_title:
            return False
        normalized_charter = normalize_text(charter) if charter else ""

        for entry in index.lookup(artist or "", artist_max_distance):
            if not titles_match(normalized_title, normalize_text(entry.title), title_max_distance):
                continue
            if normalized_charter and entry.charter:
                if normalize_text(entry.charter) != normalized_charter:
                    continue
            return True
        return False

    return is_installed
