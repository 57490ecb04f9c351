"""
Listening history import for chart-finder.

Two sources of tracks are supported:

    Streaming history dump:
        A directory of JSON files (as exported by the streaming service),
        each a list of play events:

            {
                "master_metadata_album_artist_name": "Metallica",
                "master_metadata_track_name": "One",
                "reason_end": "trackdone",
                ...
            }

        Only plays that ran to the end (reason_end == "trackdone") are
        counted. Events without an artist are ignored. Tracks are returned
        with their play count, most played first.

    Track list:
        A JSON file with a list of track objects, either
        {"name": "One", "artists": ["Metallica"]} (playlist export) or
        {"artist": "Metallica", "title": "One"}. Duplicates are dropped.

Usage:
    from chart_finder.library.history import load_streaming_history

    tracks = load_streaming_history(Path("~/Downloads/my_spotify_data"))
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any

from chart_finder.core.exceptions import HistoryError
from chart_finder.core.logger import get_logger
from chart_finder.library.models import Track

logger = get_logger(__name__)


ARTIST_FIELD = "master_metadata_album_artist_name"
TRACK_FIELD = "master_metadata_track_name"
REASON_END_FIELD = "reason_end"
COMPLETED_REASON = "trackdone"


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise HistoryError(
            f"Failed to read {path.name}: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError
        raise HistoryError(
            f"{path.name} is not valid UTF-8 JSON: {e}",
            details={"file_path": str(path), "original_error": str(e)}
        ) from e


def _read_json_list(path: Path) -> list[Any]:
    document = _read_json(path)
    if not isinstance(document, list):
        raise HistoryError(
            f"{path.name} must contain a JSON list",
            details={"file_path": str(path), "type": type(document).__name__}
        )
    return document


def count_plays(events: list[Any]) -> Counter:
    """
    Count completed plays per (artist, title).

    Args:
        events: Play events from the streaming history.

    Returns:
        Counter keyed by (artist, title), in order of first play.
    """
    plays: Counter = Counter()
    for event in events:
        if not isinstance(event, dict):
            continue
        if event.get(REASON_END_FIELD) != COMPLETED_REASON:
            continue

        artist = event.get(ARTIST_FIELD)
        title = event.get(TRACK_FIELD)
        # Podcast episodes and some ads carry no track metadata
        if not artist or not title:
            continue

        plays[(artist, title)] += 1
    return plays


def load_streaming_history(directory: Path) -> list[Track]:
    """
    Load a streaming history dump.

    Args:
        directory: Directory containing the history JSON files. Non-JSON
                   files (such as the dump's ReadMe PDF) are ignored.

    Returns:
        One Track per (artist, title) with its completed play count,
        sorted by play count descending. Ties keep first-play order.

    Raises:
        HistoryError: If the directory does not exist, holds no JSON
                       files, or a file is unreadable or not a JSON list.
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        raise HistoryError(
            f"History directory not found: {directory}",
            details={"directory": str(directory)}
        )

    json_files = sorted(
        path for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() == ".json"
    )
    if not json_files:
        raise HistoryError(
            f"No streaming history JSON files in {directory}",
            details={"directory": str(directory)}
        )

    plays: Counter = Counter()
    total_events = 0
    for path in json_files:
        events = _read_json_list(path)
        total_events += len(events)
        plays.update(count_plays(events))
        logger.debug(f"Read {len(events)} play events from {path.name}")

    tracks = [
        Track(artist=artist, title=title, play_count=count)
        for (artist, title), count in plays.items()
    ]
    tracks.sort(key=lambda track: track.play_count, reverse=True)

    logger.info(
        f"Loaded {len(tracks)} tracks from {total_events} play events "
        f"({len(json_files)} files)"
    )
    return tracks


def _track_from_item(item: Any) -> tuple[Track, str] | None:
    if not isinstance(item, dict):
        return None

    title = item.get("name") or item.get("title")
    artists = item.get("artists")
    if isinstance(artists, list) and artists:
        names = [
            artist.get("name") if isinstance(artist, dict) else artist
            for artist in artists
        ]
        names = [name for name in names if isinstance(name, str) and name]
        artist = ", ".join(names)
        # The first credited artist is the one charts are filed under
        primary_artist = names[0] if names else ""
    else:
        artist = primary_artist = item.get("artist") or ""

    if not isinstance(title, str) or not title:
        return None
    if not isinstance(primary_artist, str) or not primary_artist:
        return None
    return Track(artist=primary_artist, title=title), f"{title} - {artist}".lower()


def load_track_list(path: Path) -> list[Track]:
    """
    Load a track list export.

    Args:
        path: JSON file with a list of track objects.

    Returns:
        Tracks in file order, without duplicates (first occurrence wins).
        The dedupe key is "<title> - <artists joined by ', '>", lower-cased.

    Raises:
        HistoryError: If the file is unreadable or not a JSON list.
    """
    path = Path(path).expanduser()
    items = _read_json_list(path)

    tracks: list[Track] = []
    seen: set[str] = set()
    for position, item in enumerate(items):
        parsed = _track_from_item(item)
        if parsed is None:
            logger.warning(f"Skipping track list item {position}: no artist or title")
            continue

        track, key = parsed
        if key in seen:
            continue
        seen.add(key)
        tracks.append(track)

    logger.info(f"Loaded {len(tracks)} tracks from {path.name}")
    return tracks
