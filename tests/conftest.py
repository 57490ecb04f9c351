"""Test configuration and fixtures"""

import io
import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from chart_finder.catalog.models import CatalogEntry
from chart_finder.library.models import InstalledEntry, Track


T0 = datetime(2023, 1, 1, tzinfo=timezone.utc)


class FakeFileRef:
    """In-memory file reference that can claim any size"""

    def __init__(self, content: bytes, size: int | None = None, kind: str = "file", name: str = "fake.sng"):
        self.content = content
        self._size = len(content) if size is None else size
        self._kind = kind
        self.name = name
        self.open_count = 0

    @property
    def kind(self) -> str:
        return self._kind

    def size(self) -> int:
        return self._size

    def open_for_read(self):
        self.open_count += 1
        return io.BytesIO(self.content)


def make_chart(
    artist="Metallica",
    title="One",
    charter="RandomUser",
    uploaded_at=T0,
    md5="",
    **difficulties,
) -> CatalogEntry:
    """Build a CatalogEntry; keyword arguments become difficulties"""
    return CatalogEntry(
        artist=artist,
        title=title,
        charter=charter,
        difficulties=dict(difficulties),
        uploaded_at=uploaded_at,
        md5=md5,
    )


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_catalog():
    """Small catalog with near-duplicate artists and charts"""
    return [
        make_chart("Metallica", "One", "RandomUser", drums=-1, guitar=5, md5="a" * 32),
        make_chart("Metalica", "One (2x bass pedal)", "Drummer", drums=6, md5="b" * 32),
        make_chart("Megadeth", "Symphony of Destruction", "Harmonix", drums=4, guitar=4, md5="c" * 32),
        make_chart("Metallica", "Enter Sandman", "Harmonix", drums=5, guitar=5, md5="d" * 32),
        make_chart("Muse", "Knights of Cydonia", "Neversoft", guitar=6, md5="e" * 32),
    ]


@pytest.fixture
def sample_tracks():
    """Tracks as imported from a listening history"""
    return [
        Track("Metallica", "One", play_count=12),
        Track("Megadeth", "Symphony Of Destruction", play_count=7),
        Track("Unknown Artist", "Unknown Song", play_count=3),
        Track("Metallica", "Enter Sandman", play_count=1),
    ]


@pytest.fixture
def sample_installed():
    """Charts already in the local library"""
    return [
        InstalledEntry(
            artist="Metallica",
            title="Enter Sandman",
            charter="Harmonix",
            difficulties={"drums": 5, "guitar": 5},
            modified_time=T0,
        ),
    ]


@pytest.fixture
def catalog_file(temp_dir):
    """Catalog JSON file in the wire format"""
    document = [
        {
            "name": "One",
            "artist": "Metallica",
            "charter": "<color=#FF0000>Harmonix</color>",
            "diff_drums": 5,
            "diff_guitar": 6,
            "diff_bass": -1,
            "diff_keys": None,
            "modifiedTime": "2023-04-01T12:00:00.000Z",
            "md5": "0123456789ABCDEF0123456789ABCDEF",
        },
        {
            "name": "Holy Wars",
            "artist": "Megadeth",
            "charter": "Someone",
            "diff_guitar": 6,
            "modifiedTime": (T0 + timedelta(days=3)).isoformat(),
            "md5": "fedcba9876543210fedcba9876543210",
        },
        {"name": "No Artist", "charter": "Someone"},
    ]
    path = temp_dir / "charts.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path
