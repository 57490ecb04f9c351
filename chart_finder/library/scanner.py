"""
Local chart library scanner for chart-finder.

Walks the Songs directory and reads every song folder, i.e. every
directory containing a song.ini file. The [song] section provides:

    name        -> title
    artist      -> artist
    charter     -> charter (falls back to "frets")
    diff_*      -> difficulties

The modification time of song.ini is used as the chart's modified time.

Cancellation:
    The caller may pass a threading.Event. It is checked before each
    folder; once set, the scan stops and UserCanceledError is raised, so no
    partial library is ever returned.

Usage:
    from chart_finder.library.scanner import scan_library

    with ScanProgressBar() as progress:
        installed = scan_library(songs_dir, progress_callback=progress)
"""

import configparser
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from chart_finder.catalog.models import extract_difficulties
from chart_finder.core.exceptions import LibraryScanError, UserCanceledError
from chart_finder.core.logger import get_logger
from chart_finder.library.models import InstalledEntry

logger = get_logger(__name__)


SONG_INI_FILENAME = "song.ini"
SONG_SECTION = "song"


def read_song_ini(ini_path: Path) -> InstalledEntry | None:
    """
    Parse one song.ini into an InstalledEntry.

    Args:
        ini_path: Path of the song.ini file.

    Returns:
        InstalledEntry, or None if the file has no [song] section or no
        artist/name.

    Raises:
        OSError: If the file cannot be read.
        configparser.Error: If the file is not a valid ini file.
    """
    # song.ini files in the wild repeat keys and use % freely
    parser = configparser.ConfigParser(strict=False, interpolation=None)
    with open(ini_path, "r", encoding="utf-8-sig", errors="replace") as f:
        parser.read_file(f)

    section_name = next(
        (name for name in parser.sections() if name.strip().lower() == SONG_SECTION),
        None
    )
    if section_name is None:
        return None

    section = dict(parser[section_name])
    artist = (section.get("artist") or "").strip()
    title = (section.get("name") or "").strip()
    if not artist or not title:
        return None

    charter = (section.get("charter") or section.get("frets") or "").strip()
    modified_time = datetime.fromtimestamp(ini_path.stat().st_mtime, tz=timezone.utc)

    return InstalledEntry(
        artist=artist,
        title=title,
        charter=charter,
        difficulties=extract_difficulties(section),
        modified_time=modified_time,
        path=ini_path.parent,
    )


def scan_library(
    directory: Path,
    progress_callback: Callable[[], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> list[InstalledEntry]:
    """
    Scan a Songs directory for installed charts.

    Args:
        directory: Root of the local library.
        progress_callback: Called once per song folder discovered.
        cancel_event: When set, the scan aborts.

    Returns:
        Installed charts in traversal order (folders sorted by name).

    Raises:
        LibraryScanError: If the directory does not exist or cannot be
                          listed.
        UserCanceledError: If cancel_event is set during the scan.

    Behavior:
        Folders whose song.ini cannot be parsed, or lacks an artist or
        name, are skipped with a warning; they do not abort the scan.
    """
    directory = Path(directory).expanduser()
    if not directory.is_dir():
        raise LibraryScanError(
            f"Songs directory not found: {directory}",
            details={"directory": str(directory)}
        )

    logger.info(f"Scanning library: {directory}")

    def on_walk_error(error: OSError) -> None:
        raise LibraryScanError(
            f"Failed to scan library: {error}",
            details={"directory": str(directory), "original_error": str(error)}
        ) from error

    entries: list[InstalledEntry] = []
    skipped = 0

    for root, dirs, files in os.walk(directory, onerror=on_walk_error):
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Library scan canceled")
            raise UserCanceledError()

        # Deterministic traversal order
        dirs.sort()
        ini_name = next((name for name in files if name.lower() == SONG_INI_FILENAME), None)
        if ini_name is None:
            continue

        ini_path = Path(root) / ini_name
        try:
            entry = read_song_ini(ini_path)
        except (OSError, configparser.Error) as e:
            logger.warning(f"Skipping {ini_path}: {e}")
            entry = None

        if entry is None:
            skipped += 1
            logger.debug(f"No usable [song] metadata in {ini_path}")
        else:
            entries.append(entry)

        if progress_callback is not None:
            progress_callback()

    logger.info(f"Found {len(entries)} installed charts ({skipped} skipped)")
    return entries
